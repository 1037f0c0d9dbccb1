"""Path-safety helpers for untrusted relative paths (archives, remote trees, user input)."""

from __future__ import annotations

import posixpath
from pathlib import Path

from ohmyskills.exceptions import InvalidInputError


def normalize_relative_path(raw: str) -> str | None:
    """Normalize a ``/``-separated relative path.

    Returns ``None`` for paths that reduce to nothing and raises
    ``InvalidInputError`` for absolute paths or paths that climb out with ``..``.
    """
    cleaned = str(raw or "").replace("\\", "/")
    if not cleaned:
        return None
    if cleaned.startswith("/") or (len(cleaned) > 1 and cleaned[1] == ":"):
        raise InvalidInputError(f"Absolute path not allowed: {raw}")
    parts = [part for part in cleaned.split("/") if part and part != "."]
    if not parts:
        return None
    if any(part == ".." for part in parts):
        raise InvalidInputError(f"Path escapes target directory: {raw}")
    normalized = posixpath.normpath("/".join(parts))
    if normalized in {"", "."}:
        return None
    return normalized


def resolve_within(root: Path, relative: str) -> Path:
    """Join ``relative`` under ``root`` and verify the result stays inside it."""
    normalized = normalize_relative_path(relative)
    if normalized is None:
        raise InvalidInputError(f"Empty path: {relative!r}")
    base = root.resolve()
    target = (base / normalized).resolve()
    try:
        target.relative_to(base)
    except ValueError as exc:
        raise InvalidInputError(f"Path escapes target directory: {relative}") from exc
    return target


def validate_segment(name: str) -> str:
    """Accept a single directory name such as a skill slug."""
    value = str(name or "").strip()
    if not value or value in {".", ".."} or "/" in value or "\\" in value:
        raise InvalidInputError(f"Invalid skill name: {name!r}")
    return value
