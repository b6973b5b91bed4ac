from __future__ import annotations

from pathlib import Path
from typing import Iterable

DEFAULT_IGNORES = {
    ".git",
    ".venv",
    "venv",
    "env",
    "__pycache__",
    "node_modules",
    "dist",
    "build",
    ".tox",
    ".nox",
    ".mypy_cache",
    ".ruff_cache",
    ".pytest_cache",
    ".routescribe",
}


def should_ignore_dir(dir_path: Path, extra: Iterable[str] = ()) -> bool:
    name = dir_path.name
    return name in DEFAULT_IGNORES or name in set(extra) or name.endswith(".egg-info")
