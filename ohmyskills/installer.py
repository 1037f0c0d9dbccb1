"""Skill installation from URLs, pasted content, ZIP uploads, and GitHub folders."""

from __future__ import annotations

import asyncio
import base64
import binascii
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from ohmyskills.agents import AgentId, concrete_agents, skills_dir
from ohmyskills.archive import extract_skill_archive
from ohmyskills.config import Config, get_config
from ohmyskills.exceptions import (
    InstallError,
    InvalidInputError,
    InvalidSourceError,
    NetworkError,
    OhMySkillsError,
)
from ohmyskills.github import (
    build_github_headers,
    contents_api_url,
    fetch_remote_tree,
    is_github_tree_url,
    parse_github_tree_url,
)
from ohmyskills.logging import get_logger
from ohmyskills.metadata import write_skill_metadata
from ohmyskills.naming import resolve_skill_name, sanitize_skill_name
from ohmyskills.paths import resolve_within

log = get_logger(__name__)

SKILL_FILENAME = "SKILL.md"
_DEFAULT_GITHUB_SKILL_NAME = "skill"


@dataclass
class InstalledSkill:
    name: str
    skill_dir: Path


@dataclass
class AgentOutcome:
    agent: AgentId
    skill: InstalledSkill | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.skill is not None


@dataclass
class FanOutResult:
    outcomes: list[AgentOutcome] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def skill_name(self) -> str:
        for outcome in self.outcomes:
            if outcome.skill is not None:
                return outcome.skill.name
        return ""

    def message(self) -> str:
        return f"Installed {self.skill_name} to {self.success_count} agents"


InstallStrategy = Callable[[AgentId], Awaitable[InstalledSkill]]


def decode_archive_payload(archive: bytes | str) -> bytes:
    """Accept raw ZIP bytes or the base64 text an upload form sends."""
    if isinstance(archive, bytes):
        return archive
    try:
        return base64.b64decode("".join(str(archive).split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidSourceError(f"Invalid base64: {exc}") from exc


def _skill_slug(name: str, source: str) -> str:
    slug = sanitize_skill_name(name)
    if not slug:
        raise InvalidSourceError(f"Unable to derive a skill name from {source!r}")
    return slug


class SkillInstaller:
    """Materialize skills into agent skill folders.

    Every public ``install_*`` method accepts a concrete agent or
    ``AgentId.ALL``. For a concrete agent it returns ``"Installed: <name>"``
    or raises ``InstallError``. For the wildcard it runs the same strategy
    once per agent, never raises for per-agent failures, and returns
    ``"Installed <name> to <count> agents"`` even when the count is zero.
    """

    def __init__(self, cfg: Config | None = None, client: httpx.AsyncClient | None = None):
        self.config = cfg or get_config()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.config.http.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.config.http.user_agent},
        )

    async def __aenter__(self) -> "SkillInstaller":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this installer created it."""
        if self._owns_client:
            await self.client.aclose()

    async def fan_out(self, strategy: InstallStrategy) -> FanOutResult:
        """Run ``strategy`` for every concrete agent, collecting one outcome each."""
        result = FanOutResult()
        for agent in concrete_agents():
            try:
                skill = await strategy(agent)
            except (OhMySkillsError, OSError) as exc:
                log.warning("Skill install failed for agent", agent=agent.value, error=str(exc))
                result.outcomes.append(AgentOutcome(agent=agent, error=str(exc)))
                continue
            result.outcomes.append(AgentOutcome(agent=agent, skill=skill))
        log.info(
            "Installed skill to all agents",
            skill=result.skill_name,
            succeeded=result.success_count,
            total=len(result.outcomes),
        )
        return result

    async def _dispatch(self, agent: AgentId, strategy: InstallStrategy) -> str:
        if agent is AgentId.ALL:
            return (await self.fan_out(strategy)).message()
        skill = await strategy(agent)
        return f"Installed: {skill.name}"

    async def install_from_url(self, agent: AgentId, url: str) -> str:
        """Install from a GitHub ``/tree/`` folder URL or a direct SKILL.md URL."""
        url = str(url or "").strip()
        if is_github_tree_url(url):
            return await self._dispatch(agent, lambda target: self._install_github_dir(target, url))
        return await self._dispatch(agent, lambda target: self._install_direct_url(target, url))

    async def install_from_content(self, agent: AgentId, content: str, filename: str) -> str:
        """Install pasted or uploaded SKILL.md text."""

        async def strategy(target: AgentId) -> InstalledSkill:
            name = resolve_skill_name(content, filename)
            return self._write_single_file_skill(target, name, content, source=None)

        return await self._dispatch(agent, strategy)

    async def install_from_zip(self, agent: AgentId, archive: bytes | str, source: str) -> str:
        """Install from a ZIP archive given as bytes or base64 text."""
        return await self._dispatch(agent, lambda target: self._install_zip(target, archive, source))

    async def _install_direct_url(self, agent: AgentId, url: str) -> InstalledSkill:
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Failed to download {url}: {exc}") from exc
        if response.status_code >= 400:
            raise NetworkError(
                f"Failed to download {url}: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        content = response.text
        name = resolve_skill_name(content, url)
        return self._write_single_file_skill(agent, name, content, source=url)

    async def _install_github_dir(self, agent: AgentId, url: str) -> InstalledSkill:
        ref = parse_github_tree_url(url)
        api_url = contents_api_url(ref, self.config.github.api_base_url)
        files = await fetch_remote_tree(
            self.client,
            api_url,
            build_github_headers(self.config),
            timeout=self.config.github.timeout,
        )
        if not files:
            raise InstallError("No files found in GitHub directory")

        name = ""
        for file_path, content in files:
            if file_path.lower() == SKILL_FILENAME.lower():
                name = resolve_skill_name(content.decode("utf-8", errors="replace"), "")
                break
        if not name:
            name = ref.path.rsplit("/", 1)[-1] or ref.repo or _DEFAULT_GITHUB_SKILL_NAME

        skill_dir = skills_dir(agent, self.config) / _skill_slug(name, url)
        try:
            skill_dir.mkdir(parents=True, exist_ok=True)
            for file_path, content in files:
                try:
                    destination = resolve_within(skill_dir, file_path)
                except InvalidInputError:
                    log.warning("Skipping GitHub file outside skill root", path=file_path)
                    continue
                destination.parent.mkdir(parents=True, exist_ok=True)
                destination.write_bytes(content)
            write_skill_metadata(skill_dir, name, url)
        except OSError as exc:
            raise InstallError(f"Failed to write skill {name}: {exc}") from exc

        log.info("Installed skill from GitHub", agent=agent.value, skill=name, files=len(files), url=url)
        return InstalledSkill(name=name, skill_dir=skill_dir)

    async def _install_zip(self, agent: AgentId, archive: bytes | str, source: str) -> InstalledSkill:
        data = decode_archive_payload(archive)
        root = skills_dir(agent, self.config)
        try:
            extracted = await asyncio.to_thread(extract_skill_archive, data, root, source)
            write_skill_metadata(extracted.skill_dir, extracted.name, source)
        except OSError as exc:
            raise InstallError(f"Failed to extract skill archive {source}: {exc}") from exc
        log.info("Installed skill from archive", agent=agent.value, skill=extracted.name, source=source)
        return InstalledSkill(name=extracted.name, skill_dir=extracted.skill_dir)

    def _write_single_file_skill(
        self,
        agent: AgentId,
        name: str,
        content: str,
        source: str | None,
    ) -> InstalledSkill:
        skill_dir = skills_dir(agent, self.config) / _skill_slug(name, source or "pasted content")
        try:
            skill_dir.mkdir(parents=True, exist_ok=True)
            (skill_dir / SKILL_FILENAME).write_text(content, encoding="utf-8")
            write_skill_metadata(skill_dir, name, source)
        except OSError as exc:
            raise InstallError(f"Failed to write skill {name}: {exc}") from exc
        log.info("Installed skill", agent=agent.value, skill=name, source=source or "local")
        return InstalledSkill(name=name, skill_dir=skill_dir)
