"""ZIP skill archive extraction.

An uploaded archive may wrap the skill in any number of folders
(``my-skill/SKILL.md``, ``repo-main/skills/foo/SKILL.md``). The first
``SKILL.md`` found decides which folder is the skill root: everything under
that folder is copied into the agent's skills directory with the folder
prefix stripped, and everything outside it is ignored.
"""

from __future__ import annotations

import io
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path

from ohmyskills.exceptions import AnchorNotFoundError, ArchiveError, InvalidInputError
from ohmyskills.logging import get_logger
from ohmyskills.naming import resolve_skill_name, sanitize_skill_name
from ohmyskills.paths import normalize_relative_path

log = get_logger(__name__)

SKILL_FILENAME = "SKILL.md"
_METADATA_MARKERS = {"__MACOSX"}
# Damaged deflate streams and unsupported compression methods surface as these.
_MEMBER_READ_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, EOFError, OSError, RuntimeError)


@dataclass
class ArchiveAnchor:
    path: str
    prefix: str
    content: str


@dataclass
class ExtractedSkill:
    name: str
    slug: str
    skill_dir: Path
    files: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _is_metadata_entry(member_name: str) -> bool:
    return any(part in _METADATA_MARKERS for part in member_name.split("/"))


def _is_anchor_entry(member_name: str) -> bool:
    return member_name.rsplit("/", 1)[-1].lower() == SKILL_FILENAME.lower()


def open_archive(archive_bytes: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(archive_bytes), "r")
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as exc:
        raise ArchiveError(f"Invalid ZIP: {exc}") from exc


def locate_archive_anchor(archive: zipfile.ZipFile) -> ArchiveAnchor:
    """Find the first SKILL.md in archive order and the folder prefix it lives in."""
    for member in archive.infolist():
        name = member.filename
        if member.is_dir() or _is_metadata_entry(name):
            continue
        if not _is_anchor_entry(name):
            continue
        cut = name.rfind("/")
        prefix = name[: cut + 1] if cut >= 0 else ""
        try:
            raw = archive.read(member)
        except _MEMBER_READ_ERRORS as exc:
            raise ArchiveError(f"Failed to read {name}: {exc}") from exc
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ArchiveError(f"{name} is not valid UTF-8: {exc}") from exc
        return ArchiveAnchor(path=name, prefix=prefix, content=content)
    raise AnchorNotFoundError()


def extract_skill_archive(archive_bytes: bytes, skills_root: Path, source: str) -> ExtractedSkill:
    """Extract the skill contained in ``archive_bytes`` under ``skills_root``.

    Args:
        archive_bytes: Raw ZIP bytes
        skills_root: Agent skills directory; the skill lands in ``skills_root/<slug>``
        source: Origin label (usually the uploaded filename), used as the name fallback

    Returns:
        ExtractedSkill with the resolved name and the written relative paths

    Raises:
        ArchiveError: Bad archive, undecodable anchor, or no usable name
        AnchorNotFoundError: No SKILL.md in the archive
    """
    with open_archive(archive_bytes) as archive:
        anchor = locate_archive_anchor(archive)
        name = resolve_skill_name(anchor.content, source)
        slug = sanitize_skill_name(name)
        if not slug:
            raise ArchiveError(f"Unable to derive a skill name from {source!r}")

        skill_dir = skills_root / slug
        skill_dir.mkdir(parents=True, exist_ok=True)
        base = skill_dir.resolve()
        result = ExtractedSkill(name=name, slug=slug, skill_dir=skill_dir)

        for member in archive.infolist():
            member_name = member.filename
            if member.is_dir() or _is_metadata_entry(member_name):
                continue
            if anchor.prefix and not member_name.startswith(anchor.prefix):
                continue
            relative = member_name[len(anchor.prefix):]
            if not relative:
                continue
            try:
                normalized = normalize_relative_path(relative)
            except InvalidInputError:
                log.warning("Skipping archive entry outside skill root", entry=member_name)
                result.skipped.append(member_name)
                continue
            if normalized is None:
                continue
            destination = (base / normalized).resolve()
            try:
                destination.relative_to(base)
            except ValueError:
                log.warning("Skipping archive entry outside skill root", entry=member_name)
                result.skipped.append(member_name)
                continue

            destination.parent.mkdir(parents=True, exist_ok=True)
            try:
                data = archive.read(member)
            except _MEMBER_READ_ERRORS as exc:
                raise ArchiveError(f"Failed to read {member_name}: {exc}") from exc
            destination.write_bytes(data)
            result.files.append(normalized)

    log.info(
        "Extracted skill archive",
        skill=name,
        prefix=anchor.prefix,
        files=len(result.files),
        skipped=len(result.skipped),
    )
    return result
