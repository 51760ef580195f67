"""Optional settings file.

Settings cover the few values that are fixed in practice but worth
overriding when testing against mirrors or forks:

    [sources]
    url_prefix = "https://github.com/D-Programming-Language/"

    [build]
    jobs = 8

    [workspace]
    work_dir = "/var/tmp/create_dmd_release"
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from .result import Err, Ok, Result

__all__ = [
    "DEFAULT_URL_PREFIX",
    "WORK_DIR_ENV",
    "Settings",
    "SettingsError",
    "load_settings",
]

DEFAULT_URL_PREFIX = "https://github.com/D-Programming-Language/"

# Overrides the temporary clone workspace location.
WORK_DIR_ENV = "CDR_WORK_DIR"

type StrDict = dict[str, object]


@dataclass(frozen=True, slots=True)
class SettingsError:
    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class Settings:
    """Values loaded from the settings file (all optional)."""

    repo_url_prefix: str = DEFAULT_URL_PREFIX
    jobs: int | None = None
    work_dir: Path | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Settings:
        sources = _table(data, "sources")
        build = _table(data, "build")
        workspace = _table(data, "workspace")

        prefix = _str(sources, "url_prefix") or DEFAULT_URL_PREFIX
        if not prefix.endswith("/"):
            prefix += "/"

        jobs = build.get("jobs")
        if jobs is not None and (isinstance(jobs, bool) or not isinstance(jobs, int) or jobs < 1):
            raise ValueError("build.jobs must be a positive integer")

        work_dir = _str(workspace, "work_dir")
        return cls(
            repo_url_prefix=prefix,
            jobs=jobs,
            work_dir=Path(work_dir).expanduser() if work_dir else None,
        )

    def with_env(self, environ: Mapping[str, str] | None = None) -> Settings:
        """Apply environment overrides ($CDR_WORK_DIR)."""
        env = os.environ if environ is None else environ
        value = env.get(WORK_DIR_ENV, "").strip()
        if not value:
            return self
        return Settings(
            repo_url_prefix=self.repo_url_prefix,
            jobs=self.jobs,
            work_dir=Path(value).expanduser(),
        )


def _table(data: Mapping[str, object], key: str) -> StrDict:
    value = data.get(key)
    if isinstance(value, dict):
        return cast(StrDict, value)
    return {}


def _str(table: Mapping[str, object], key: str) -> str | None:
    value = table.get(key)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def load_settings(path: Path) -> Result[Settings, SettingsError]:
    """Load settings from a TOML file.

    Returns:
        Ok(Settings) on success, Err(SettingsError) on failure
    """
    import tomllib

    try:
        data: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(SettingsError(f"Settings file not found: {path}", path=path))
    except PermissionError:
        return Err(SettingsError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(SettingsError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(SettingsError(f"Error reading settings: {e}", path=path))

    if not isinstance(data, dict):
        return Err(SettingsError("Settings root must be a TOML table", path=path))

    try:
        return Ok(Settings.from_dict(cast(StrDict, data)))
    except (TypeError, ValueError) as e:
        return Err(SettingsError(f"Invalid settings: {e}", path=path))
