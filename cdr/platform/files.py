"""Filesystem helpers used to assemble a release tree.

Failures the user can act on (missing source directory, a directory that
cannot be deleted) raise `Fail`. Misuse of the API raises ordinary
exceptions.

Functions accept an optional `log` callable that receives one line per
action; the pipeline passes its verbose logger.
"""

from __future__ import annotations

import fnmatch
import os
import shutil
import stat
from collections.abc import Callable, Iterable, Sequence
from enum import Enum, auto
from pathlib import Path

from cdr.core.errors import Fail

from .detection import supports_symlinks

__all__ = [
    "FileFilter",
    "Log",
    "SpanMode",
    "copy_directory",
    "copy_file",
    "copy_file_if_exists",
    "copy_tree",
    "ensure_dir",
    "ensure_file",
    "ensure_not_file",
    "make_dir",
    "remove_files_matching",
    "remove_tree",
]

# Receives a "/"-separated path relative to the operation's root.
type FileFilter = Callable[[str], bool]
type Log = Callable[[str], None]


class SpanMode(Enum):
    """Directory traversal order."""

    DEPTH = auto()  # children before their parent
    SHALLOW = auto()  # immediate entries only
    BREADTH = auto()  # parents before children; not allowed for deletion


def _noop(_: str) -> None:
    pass


def ensure_dir(path: Path) -> None:
    if not path.is_dir():
        raise Fail("path_missing", f"Directory not found: {path}")


def ensure_file(path: Path) -> None:
    if not path.is_file():
        raise Fail("path_missing", f"Missing file: {path}")


def ensure_not_file(path: Path) -> None:
    if path.exists() and not path.is_dir():
        raise Fail("invalid_input", f"'{path}' is a file, not a directory")


def make_dir(path: Path, *, log: Log | None = None) -> None:
    """Create `path` and its parents; no error if it already exists."""
    if not path.exists():
        (log or _noop)(f"Creating dir: {path}")
        path.mkdir(parents=True, exist_ok=True)


def _remove_readonly(_func: Callable[[str], object], path: str, exc: BaseException) -> None:
    """Retry deletion of read-only entries (e.g. .git/objects/pack/*.idx)."""
    if isinstance(exc, PermissionError):
        os.chmod(path, stat.S_IWRITE)
        os.unlink(path)
    else:
        raise exc


def remove_tree(path: Path, *, log: Log | None = None) -> None:
    """Delete `path` recursively. Does nothing if it does not exist.

    Raises:
        Fail: If the tree could not be removed. The usual cause is another
            process holding a file open inside it.
    """
    if not os.path.lexists(path):
        return

    (log or _noop)(f"Removing dir: {path}")

    def failed() -> Fail:
        return Fail(
            "remove_failed",
            f"Failed to remove directory: {path}\n"
            "    A process may still be holding an open handle within the directory.\n"
            "    Either delete the directory manually or try again later.",
        )

    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
        else:
            shutil.rmtree(path, onexc=_remove_readonly)
    except OSError as e:
        raise failed() from e

    if os.path.lexists(path):
        raise failed()


def remove_files_matching(
    directory: Path,
    patterns: str | Sequence[str],
    mode: SpanMode = SpanMode.DEPTH,
    filter: FileFilter | None = None,
    *,
    log: Log | None = None,
) -> list[str]:
    """Delete regular files whose name matches any of `patterns`.

    Args:
        directory: Root of the search.
        patterns: fnmatch-style name patterns, e.g. "*.o".
        mode: DEPTH (recursive) or SHALLOW.
        filter: Called with the relative path; the file is kept if it
            returns False.

    Returns:
        Relative paths of the deleted files.

    Raises:
        ValueError: If `mode` is BREADTH.
    """
    if mode == SpanMode.BREADTH:
        raise ValueError("remove_files_matching can only take SpanMode DEPTH or SHALLOW")

    log = log or _noop
    names = (patterns,) if isinstance(patterns, str) else tuple(patterns)
    suffix = "" if mode == SpanMode.SHALLOW else "/*"
    log(f"Deleting '{', '.join(names)}' from '{directory}{suffix}'")

    if not directory.is_dir():
        return []

    if mode == SpanMode.SHALLOW:
        candidates: Iterable[Path] = sorted(directory.iterdir())
    else:
        candidates = (
            Path(root) / name
            for root, _dirs, files in os.walk(directory, topdown=False)
            for name in sorted(files)
        )

    removed: list[str] = []
    for entry in candidates:
        if entry.is_symlink() or not entry.is_file():
            continue
        if not any(fnmatch.fnmatchcase(entry.name, p) for p in names):
            continue
        rel = entry.relative_to(directory).as_posix()
        if filter is not None and not filter(rel):
            log(f"    Skipping: {rel}")
            continue
        log(f"    {rel}")
        entry.unlink()
        removed.append(rel)
    return removed


def copy_file(src: Path, dst: Path, *, log: Log | None = None) -> None:
    """Copy one file, creating parent directories and keeping its mode."""
    if not src.is_file():
        raise Fail("path_missing", f"Missing file: {src}")
    (log or _noop)(f"Copying file '{src}' to '{dst}'")
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)


def copy_file_if_exists(src: Path, dst: Path, *, log: Log | None = None) -> bool:
    if not src.exists():
        return False
    copy_file(src, dst, log=log)
    return True


def copy_tree(
    files: Iterable[str],
    src_dir: Path,
    dst_dir: Path,
    filter: FileFilter | None = None,
    *,
    log: Log | None = None,
) -> list[str]:
    """Copy an explicit list of relative paths from `src_dir` to `dst_dir`.

    Returns:
        The relative paths that were copied.
    """
    log = log or _noop
    log(f"Copying files from '{src_dir}' to '{dst_dir}'")

    copied: list[str] = []
    for rel in files:
        if filter is not None and not filter(rel):
            continue
        src = src_dir / rel
        dst = dst_dir / rel
        if not os.path.lexists(src):
            raise Fail("path_missing", f"Missing file: {src}")
        log(f"    {rel}")
        dst.parent.mkdir(parents=True, exist_ok=True)
        if os.path.lexists(dst) and dst.is_symlink():
            dst.unlink()
        shutil.copy2(src, dst, follow_symlinks=False)
        copied.append(rel)
    return copied


def _copy_symlink(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    if os.path.lexists(dst):
        if dst.is_dir() and not dst.is_symlink():
            shutil.rmtree(dst)
        else:
            dst.unlink()
    os.symlink(os.readlink(src), dst)


def copy_directory(
    src: Path,
    dst: Path,
    filter: FileFilter | None = None,
    *,
    log: Log | None = None,
) -> None:
    """Recursively copy the contents of `src` into `dst`.

    Entries whose name starts with "." are skipped, and dot-directories are
    not descended into. Symlinks are recreated as symlinks where the host
    supports them. `filter` receives each entry's relative path; a rejected
    directory is not created but its children are still considered.
    `dst` is created if missing; existing files are overwritten.

    Raises:
        Fail: If `src` is not a directory.
    """
    log = log or _noop
    log(f"Copying from '{src}' to '{dst}'")

    ensure_dir(src)
    make_dir(dst)
    keep_links = supports_symlinks()

    def accepted(rel: str) -> bool:
        if filter is not None and not filter(rel):
            log(f"    Skipping: {rel}")
            return False
        log(f"    {rel}")
        return True

    for root, dirnames, filenames in os.walk(src):
        root_path = Path(root)
        rel_root = root_path.relative_to(src)

        descend: list[str] = []
        for name in sorted(dirnames):
            if name.startswith("."):
                continue
            rel = (rel_root / name).as_posix()
            entry = root_path / name
            if keep_links and entry.is_symlink():
                if accepted(rel):
                    _copy_symlink(entry, dst / rel)
                continue
            if accepted(rel):
                make_dir(dst / rel)
            descend.append(name)
        dirnames[:] = descend

        for name in sorted(filenames):
            if name.startswith("."):
                continue
            rel = (rel_root / name).as_posix()
            if not accepted(rel):
                continue
            entry = root_path / name
            target = dst / rel
            if keep_links and entry.is_symlink():
                _copy_symlink(entry, target)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            if target.is_symlink():
                target.unlink()
            shutil.copy2(entry, target)
