"""Zip archive codec for release directories.

Members are deflated and named relative to the parent of the archived
directory, so archiving `dmd.v2.064.linux/dmd2` yields members under
`dmd2/...`. Modification times and Unix mode bits are stored and restored.
"""

from __future__ import annotations

import os
import time
import zipfile
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from cdr.core.errors import Fail

__all__ = ["SKIPPED_PREFIXES", "build_archive", "extract_archive"]

# Version control metadata and Finder scratch files never go into an archive.
SKIPPED_PREFIXES = (".git", ".DS_Store")


def _collect(source_dir: Path) -> list[tuple[Path, str]]:
    base = source_dir.parent
    out: list[tuple[Path, str]] = []
    for root, dirnames, filenames in os.walk(source_dir, topdown=False):
        root_path = Path(root)
        if any(part.startswith(SKIPPED_PREFIXES) for part in root_path.relative_to(base).parts):
            continue
        for name in sorted(filenames):
            if name.startswith(SKIPPED_PREFIXES):
                continue
            path = root_path / name
            if not path.is_file():
                continue
            out.append((path, path.relative_to(base).as_posix()))
    return out


def build_archive(source_dir: Path, archive_path: Path) -> int:
    """Write every regular file under `source_dir` to a zip archive.

    An existing archive is replaced.

    Returns:
        Number of members written.

    Raises:
        Fail: If `source_dir` is not a directory.
    """
    if not source_dir.is_dir():
        raise Fail("path_missing", f"Directory not found: {source_dir}")

    archive_path = archive_path.absolute()
    files = _collect(source_dir)

    archive_path.parent.mkdir(parents=True, exist_ok=True)
    archive_path.unlink(missing_ok=True)
    # Files with pre-1980 mtimes cannot be represented exactly in a zip.
    with ZipFile(archive_path, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
        for src, arc in files:
            zf.write(src, arcname=arc)
    return len(files)


def _is_within_root(root: Path, path: Path) -> bool:
    try:
        path.resolve().relative_to(root)
    except ValueError:
        return False
    return True


def extract_archive(archive_path: Path, output_dir: Path) -> list[str]:
    """Extract every non-empty member of `archive_path` into `output_dir`.

    Empty members (directory placeholders) are skipped. Each member's
    modification time is restored, and its mode bits when the archive
    recorded them.

    Returns:
        Names of the extracted members.

    Raises:
        Fail: If the archive is unreadable or a member would be written
            outside `output_dir`.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    root = output_dir.resolve()

    extracted: list[str] = []
    try:
        with ZipFile(archive_path, "r") as zf:
            for info in zf.infolist():
                if info.file_size == 0:
                    continue

                name = info.filename.replace("\\", "/")
                target = output_dir / name
                if not _is_within_root(root, target):
                    raise Fail(
                        "archive_invalid",
                        f"Archive member escapes the output directory: {info.filename}",
                    )

                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(zf.read(info))

                mode = (info.external_attr >> 16) & 0o7777
                if mode:
                    target.chmod(mode)

                mtime = time.mktime(info.date_time + (0, 0, -1))
                os.utime(target, (mtime, mtime))
                extracted.append(name)
    except zipfile.BadZipFile as e:
        raise Fail("archive_invalid", f"Invalid zip file {archive_path}: {e}") from e

    return extracted
