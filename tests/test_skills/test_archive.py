import io
import zipfile
from pathlib import Path

import pytest

from ohmyskills.archive import extract_skill_archive, locate_archive_anchor, open_archive
from ohmyskills.exceptions import AnchorNotFoundError, ArchiveError, NotFoundError

SKILL_MD = "---\nname: Pkg Skill\ndescription: Packaged skill.\n---\n\n# Pkg\n"


def _zip(entries: list[tuple[str, bytes | str]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries:
            archive.writestr(name, data)
    return buffer.getvalue()


def _files_under(root: Path) -> set[str]:
    return {path.relative_to(root).as_posix() for path in root.rglob("*") if path.is_file()}


def test_extract_strips_anchor_prefix_and_ignores_entries_outside_it(tmp_path: Path):
    archive = _zip(
        [
            ("__MACOSX/pkg/SKILL.md", "---\nname: wrong\n---\n"),
            ("pkg/", b""),
            ("pkg/SKILL.md", SKILL_MD),
            ("pkg/extra/notes.txt", "notes"),
            ("other/readme.txt", "not part of the skill"),
        ]
    )
    skills_root = tmp_path / "skills"

    result = extract_skill_archive(archive, skills_root, "bundle.zip")

    assert result.name == "Pkg Skill"
    assert result.slug == "pkg-skill"
    assert result.skill_dir == skills_root / "pkg-skill"
    assert _files_under(result.skill_dir) == {"SKILL.md", "extra/notes.txt"}
    assert (result.skill_dir / "extra" / "notes.txt").read_text() == "notes"
    assert not (result.skill_dir / "pkg").exists()


def test_extract_root_anchor_uses_source_label_as_fallback_name(tmp_path: Path):
    archive = _zip([("SKILL.md", "# untitled"), ("scripts/run.sh", "echo hi")])

    result = extract_skill_archive(archive, tmp_path, "uploads/My Upload.zip")

    assert result.name == "My Upload"
    assert result.slug == "my-upload"
    assert _files_under(tmp_path / "my-upload") == {"SKILL.md", "scripts/run.sh"}


def test_extract_matches_anchor_case_insensitively(tmp_path: Path):
    archive = _zip([("nested/dir/skill.md", SKILL_MD), ("nested/dir/a.txt", "a")])

    anchor = locate_archive_anchor(open_archive(archive))
    result = extract_skill_archive(archive, tmp_path, "x.zip")

    assert anchor.prefix == "nested/dir/"
    assert _files_under(result.skill_dir) == {"skill.md", "a.txt"}


def test_extract_writes_binary_entries_verbatim(tmp_path: Path):
    payload = bytes(range(256))
    archive = _zip([("SKILL.md", SKILL_MD), ("assets/logo.bin", payload)])

    result = extract_skill_archive(archive, tmp_path, "x.zip")

    assert (result.skill_dir / "assets" / "logo.bin").read_bytes() == payload


@pytest.mark.parametrize("evil_entry", ["../../evil", "pkg/../../evil", "pkg/sub/../../../../evil"])
def test_extract_never_writes_outside_skill_directory(tmp_path: Path, evil_entry: str):
    archive = _zip([("pkg/SKILL.md", SKILL_MD), (evil_entry, "pwned"), ("pkg/ok.txt", "ok")])
    skills_root = tmp_path / "home" / "skills"

    result = extract_skill_archive(archive, skills_root, "x.zip")

    assert list(tmp_path.rglob("evil")) == []
    assert _files_under(tmp_path) == {
        "home/skills/pkg-skill/SKILL.md",
        "home/skills/pkg-skill/ok.txt",
    }
    if evil_entry.startswith("pkg/"):
        assert result.skipped == [evil_entry]


def test_extract_without_anchor_raises_anchor_not_found(tmp_path: Path):
    archive = _zip([("pkg/README.md", "hi"), ("__MACOSX/SKILL.md", "hidden")])

    with pytest.raises(AnchorNotFoundError) as excinfo:
        extract_skill_archive(archive, tmp_path, "x.zip")

    assert isinstance(excinfo.value, NotFoundError)
    assert list(tmp_path.iterdir()) == []


def test_extract_rejects_bytes_that_are_not_a_zip(tmp_path: Path):
    with pytest.raises(ArchiveError, match="Invalid ZIP"):
        extract_skill_archive(b"definitely not a zip", tmp_path, "x.zip")


def test_extract_rejects_anchor_that_is_not_utf8(tmp_path: Path):
    archive = _zip([("SKILL.md", b"\xff\xfe\x00bad")])

    with pytest.raises(ArchiveError, match="UTF-8"):
        extract_skill_archive(archive, tmp_path, "x.zip")


def test_extract_rejects_names_that_sanitize_to_nothing(tmp_path: Path):
    archive = _zip([("SKILL.md", "no frontmatter")])

    with pytest.raises(ArchiveError, match="skill name"):
        extract_skill_archive(archive, tmp_path, "")


def _damaged_zip(entries: list[tuple[str, str]], damaged: str) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries:
            archive.writestr(name, data)
        info = archive.getinfo(damaged)
    raw = bytearray(buffer.getvalue())
    start = info.header_offset + 30 + len(info.filename.encode()) + len(info.extra)
    for offset in range(start + 4, start + 12):
        raw[offset] ^= 0xFF
    return bytes(raw)


def _noisy_text(lines: int = 400) -> str:
    return "".join(f"line {index} value {index * index}\n" for index in range(lines))


def test_extract_rejects_damaged_anchor_stream(tmp_path: Path):
    archive = _damaged_zip([("pkg/SKILL.md", SKILL_MD + _noisy_text())], "pkg/SKILL.md")

    with pytest.raises(ArchiveError):
        extract_skill_archive(archive, tmp_path / "skills", "bundle.zip")


def test_extract_rejects_damaged_support_file(tmp_path: Path):
    archive = _damaged_zip(
        [("pkg/SKILL.md", SKILL_MD), ("pkg/data.txt", _noisy_text())],
        "pkg/data.txt",
    )

    with pytest.raises(ArchiveError, match="pkg/data.txt"):
        extract_skill_archive(archive, tmp_path / "skills", "bundle.zip")


def test_extract_rejects_unsupported_compression_method(tmp_path: Path):
    raw = bytearray(_zip([("SKILL.md", SKILL_MD)]))
    # Compression method lives at offset 8 of the local header and 10 of the central entry.
    central = raw.index(b"PK\x01\x02")
    raw[8:10] = (99).to_bytes(2, "little")
    raw[central + 10:central + 12] = (99).to_bytes(2, "little")

    with pytest.raises(ArchiveError):
        extract_skill_archive(bytes(raw), tmp_path / "skills", "bundle.zip")
