"""Per-skill metadata sidecar (``.metadata.json``)."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ValidationError

from ohmyskills.exceptions import InvalidInputError
from ohmyskills.logging import get_logger

log = get_logger(__name__)

METADATA_FILENAME = ".metadata.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SkillMetadata(BaseModel):
    """Provenance record written next to an installed skill."""

    name: str
    source: str | None = None
    version: str | None = None
    author: str | None = None
    installed_at: str
    updated_at: str


def write_skill_metadata(
    skill_dir: Path,
    name: str,
    source: str | None,
    now: datetime | None = None,
) -> SkillMetadata:
    """Write the sidecar, replacing any previous one.

    Both timestamps are set to ``now`` on every call; nothing is read back
    from an existing sidecar, so a reinstall also resets ``installed_at``.
    """
    stamp = (now or _utcnow()).isoformat()
    metadata = SkillMetadata(
        name=name,
        source=source,
        installed_at=stamp,
        updated_at=stamp,
    )
    (skill_dir / METADATA_FILENAME).write_text(
        metadata.model_dump_json(indent=2),
        encoding="utf-8",
    )
    log.debug("Wrote skill metadata", skill=name, path=str(skill_dir))
    return metadata


def read_skill_metadata(skill_dir: Path) -> SkillMetadata | None:
    path = skill_dir / METADATA_FILENAME
    if not path.is_file():
        return None
    try:
        return SkillMetadata.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid skill metadata in {path}: {exc}") from exc
