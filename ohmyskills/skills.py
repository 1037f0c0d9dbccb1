"""Installed skill listing, browsing, and removal."""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from ohmyskills.agents import AgentId, concrete_agents, skills_dir
from ohmyskills.config import Config
from ohmyskills.exceptions import NotFoundError, OhMySkillsError, UnsupportedError
from ohmyskills.logging import get_logger
from ohmyskills.metadata import SkillMetadata, read_skill_metadata
from ohmyskills.paths import resolve_within, validate_segment

log = get_logger(__name__)

SKILL_FILENAME = "SKILL.md"
_CHARS_PER_TOKEN = 4


@dataclass
class SkillInfo:
    name: str
    path: str
    token_count: int | None = None


@dataclass
class FileItem:
    name: str
    path: str
    is_directory: bool
    size: int | None = None


def find_skill_md(directory: Path) -> Path | None:
    """Anchor file of a skill: root ``SKILL.md``/``skill.md``, else depth-first search."""
    for candidate in (SKILL_FILENAME, SKILL_FILENAME.lower()):
        direct = directory / candidate
        if direct.is_file():
            return direct
    try:
        entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
    except OSError:
        return None
    for entry in entries:
        if entry.is_file() and entry.name.lower() == SKILL_FILENAME.lower():
            return entry
        if entry.is_dir() and not entry.is_symlink():
            found = find_skill_md(entry)
            if found is not None:
                return found
    return None


def _require_concrete(agent: AgentId, operation: str) -> None:
    if agent is AgentId.ALL:
        raise UnsupportedError(agent.value, f"Cannot {operation} for all agents")


def _skill_path(agent: AgentId, name: str, cfg: Config) -> Path:
    return skills_dir(agent, cfg) / validate_segment(name)


def _list_for_agent(agent: AgentId, cfg: Config) -> list[SkillInfo]:
    root = skills_dir(agent, cfg)
    if not root.is_dir():
        return []
    skills: list[SkillInfo] = []
    for entry in root.iterdir():
        if not entry.is_dir() or entry.name.startswith("."):
            continue
        skill_md = find_skill_md(entry)
        token_count = skill_md.stat().st_size // _CHARS_PER_TOKEN if skill_md else None
        skills.append(SkillInfo(name=entry.name, path=str(entry), token_count=token_count))
    skills.sort(key=lambda skill: skill.name)
    return skills


def list_skills(agent: AgentId, cfg: Config) -> list[SkillInfo]:
    """Installed skills sorted by name; the wildcard merges agents, first name wins."""
    if agent is not AgentId.ALL:
        return _list_for_agent(agent, cfg)

    merged: list[SkillInfo] = []
    seen: set[str] = set()
    for individual in concrete_agents():
        try:
            skills = _list_for_agent(individual, cfg)
        except OSError as exc:
            log.warning("Failed to list skills", agent=individual.value, error=str(exc))
            continue
        for skill in skills:
            if skill.name in seen:
                continue
            seen.add(skill.name)
            merged.append(skill)
    merged.sort(key=lambda skill: skill.name)
    return merged


def get_skill_content(agent: AgentId, name: str, cfg: Config) -> str:
    _require_concrete(agent, "read skill content")
    skill_md = find_skill_md(_skill_path(agent, name, cfg))
    if skill_md is None:
        raise NotFoundError(f"SKILL.md not found in {name}")
    return skill_md.read_text(encoding="utf-8", errors="replace")


def get_skill_metadata(agent: AgentId, name: str, cfg: Config) -> SkillMetadata | None:
    _require_concrete(agent, "read skill metadata")
    return read_skill_metadata(_skill_path(agent, name, cfg))


def list_skill_files(
    agent: AgentId,
    name: str,
    cfg: Config,
    subpath: str | None = None,
) -> list[FileItem]:
    """Immediate children of a skill folder (or one of its subfolders), folders first."""
    _require_concrete(agent, "list skill files")
    skill_dir = _skill_path(agent, name, cfg)
    if not skill_dir.is_dir():
        raise NotFoundError(f"Skill not found: {name}")
    directory = resolve_within(skill_dir, subpath) if subpath else skill_dir.resolve()
    if not directory.is_dir():
        raise NotFoundError(f"Directory not found in {name}: {subpath}")

    base = skill_dir.resolve()
    items: list[FileItem] = []
    for entry in directory.iterdir():
        if entry.name.startswith("."):
            continue
        is_directory = entry.is_dir()
        items.append(
            FileItem(
                name=entry.name,
                path=entry.relative_to(base).as_posix(),
                is_directory=is_directory,
                size=None if is_directory else entry.stat().st_size,
            )
        )
    items.sort(key=lambda item: (not item.is_directory, item.name.lower()))
    return items


def read_skill_file(agent: AgentId, name: str, path: str, cfg: Config) -> str:
    _require_concrete(agent, "read skill files")
    target = resolve_within(_skill_path(agent, name, cfg), path)
    if not target.is_file():
        raise NotFoundError(f"File not found in {name}: {path}")
    return target.read_text(encoding="utf-8", errors="replace")


def _delete_for_agent(agent: AgentId, name: str, cfg: Config) -> bool:
    skill_dir = _skill_path(agent, name, cfg)
    if not skill_dir.exists():
        return False
    shutil.rmtree(skill_dir)
    log.info("Deleted skill", agent=agent.value, skill=name)
    return True


def delete_skill(agent: AgentId, name: str, cfg: Config) -> int:
    """Remove a skill folder; a missing folder is not an error.

    Returns the number of agents the skill was removed from.
    """
    validate_segment(name)
    if agent is not AgentId.ALL:
        return int(_delete_for_agent(agent, name, cfg))

    removed = 0
    for individual in concrete_agents():
        try:
            removed += int(_delete_for_agent(individual, name, cfg))
        except (OSError, OhMySkillsError) as exc:
            log.warning("Failed to delete skill", agent=individual.value, skill=name, error=str(exc))
    return removed


def _folder_open_command(path: Path) -> list[str]:
    if sys.platform == "darwin":
        return ["open", str(path)]
    if sys.platform.startswith("win"):
        return ["explorer", str(path)]
    return ["xdg-open", str(path)]


def open_skill_folder(agent: AgentId, name: str, cfg: Config) -> None:
    _require_concrete(agent, "open folder")
    skill_dir = _skill_path(agent, name, cfg)
    if not skill_dir.is_dir():
        raise NotFoundError(f"Skill not found: {name}")
    subprocess.Popen(_folder_open_command(skill_dir))
