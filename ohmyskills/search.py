"""Skill search against the public skills directory API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from ohmyskills.config import Config
from ohmyskills.exceptions import MalformedResponseError, NetworkError
from ohmyskills.logging import get_logger

log = get_logger(__name__)


@dataclass
class SearchSkill:
    name: str
    slug: str
    source: str = ""
    installs: int = 0


def _parse_search_item(item: Any) -> SearchSkill | None:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    slug = item.get("id")
    if not isinstance(name, str) or not isinstance(slug, str):
        return None
    source = item.get("topSource")
    installs = item.get("installs")
    return SearchSkill(
        name=name,
        slug=slug,
        source=source if isinstance(source, str) else "",
        installs=installs if isinstance(installs, int) and installs >= 0 else 0,
    )


async def search_skills(
    query: str,
    cfg: Config,
    client: httpx.AsyncClient | None = None,
) -> list[SearchSkill]:
    """Free-text skill search; a blank query or a non-2xx answer yields no results."""
    q = (query or "").strip()
    if not q:
        return []

    owns_client = client is None
    http = client or httpx.AsyncClient(
        follow_redirects=True,
        headers={"User-Agent": cfg.http.user_agent},
    )
    try:
        try:
            response = await http.get(
                cfg.search.url,
                params={"q": q, "limit": cfg.search.limit},
                timeout=cfg.search.timeout,
            )
        except httpx.HTTPError as exc:
            log.error("Skill search failed", query=q, error=str(exc))
            raise NetworkError(f"Failed to search: {exc}") from exc
    finally:
        if owns_client:
            await http.aclose()

    if response.status_code >= 400:
        log.warning("Skill search returned an error status", query=q, status=response.status_code)
        return []
    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedResponseError(f"Invalid response: {exc}") from exc

    items = payload.get("skills") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        return []
    return [skill for skill in (_parse_search_item(item) for item in items) if skill is not None]
