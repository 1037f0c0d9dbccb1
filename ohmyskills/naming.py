"""Skill name resolution from SKILL.md frontmatter and install sources."""

from __future__ import annotations

FRONTMATTER_DELIMITER = "---"
MAX_SLUG_LENGTH = 50
_STRIPPED_EXTENSIONS = (".md", ".zip")
_QUOTES = ('"', "'")


def _frontmatter_name(content: str) -> str:
    if not content.startswith(FRONTMATTER_DELIMITER):
        return ""
    start = len(FRONTMATTER_DELIMITER)
    end = content.find(FRONTMATTER_DELIMITER, start)
    if end < 0:
        return ""
    for line in content[start:end].splitlines():
        if not line.startswith("name:"):
            continue
        value = line[len("name:"):].strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
            value = value[1:-1]
        if value:
            return value
    return ""


def resolve_skill_name(content: str, fallback: str) -> str:
    """Return the frontmatter ``name:`` value, else a name derived from ``fallback``.

    The fallback is the last ``/`` segment of a URL, filename or archive label
    with one trailing ``.md`` or ``.zip`` removed. Never raises; an empty
    fallback gives an empty name.
    """
    name = _frontmatter_name(content or "")
    if name:
        return name
    tail = str(fallback or "").rsplit("/", 1)[-1]
    for extension in _STRIPPED_EXTENSIONS:
        if tail.endswith(extension):
            return tail[: -len(extension)]
    return tail


def sanitize_skill_name(name: str) -> str:
    """Filesystem-safe slug: ``[a-z0-9_-]``, at most 50 characters."""
    cleaned = "".join(
        char if (char.isascii() and char.isalnum()) or char in "-_" else "-"
        for char in str(name or "")
    )
    return cleaned.lower()[:MAX_SLUG_LENGTH]
