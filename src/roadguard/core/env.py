"""
Environment + project-root helpers.

The Google Maps key and the hazard feed URL usually live in a repo-local `.env`.
Offline inputs for the CLI (`--routes-file`, `--hazards-file`) are often given as
paths relative to the repo, even when the command runs from another directory.

- `load_dotenv_if_present()` loads `.env` once, never overriding the process env.
- `get_project_root()` walks up from the CWD (then from this file) to the repo root.
- `resolve_project_path()` anchors relative paths at that root.

`ROADGUARD_PROJECT_ROOT` pins the root; `ROADGUARD_ENV_FILE` names the env file
(and its directory becomes the root).
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Iterator

from dotenv import load_dotenv

_ROOT_MARKERS = (".env", ".git", "pyproject.toml")


def _env_path(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value).expanduser().resolve() if value else None


def _walk_up(start: Path) -> Iterator[Path]:
    here = start.resolve()
    yield here
    yield from here.parents


def _is_root(path: Path) -> bool:
    if any((path / marker).exists() for marker in _ROOT_MARKERS):
        return True
    return (path / "src" / "roadguard").is_dir()


@lru_cache
def get_project_root() -> Path:
    """Return the best-guess project root directory (cached)."""
    pinned = _env_path("ROADGUARD_PROJECT_ROOT")
    if pinned is not None:
        return pinned

    env_file = _env_path("ROADGUARD_ENV_FILE")
    if env_file is not None:
        return env_file.parent

    for start in (Path.cwd(), Path(__file__).parent):
        root = next((p for p in _walk_up(start) if _is_root(p)), None)
        if root is not None:
            return root
    return Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the env file once; returns its path, or None when there is none."""
    env_path = _env_path("ROADGUARD_ENV_FILE") or get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
