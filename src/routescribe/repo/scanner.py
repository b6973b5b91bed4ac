from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from routescribe.repo.ignore import should_ignore_dir


def scan_python_files(
    repo_path: Path,
    max_files: int | None = None,
    extra_ignores: Iterable[str] = (),
) -> list[str]:
    """
    Return absolute paths (as strings) of .py files under repo_path.
    Directories and files are visited in sorted order so the result, and
    every report built from it, is stable across runs and platforms.
    """
    extra = tuple(extra_ignores)
    out: list[str] = []
    for root, dirs, files in os.walk(repo_path):
        root_p = Path(root)

        # prune ignored dirs; sorting in place fixes os.walk's visiting order
        dirs[:] = sorted(d for d in dirs if not should_ignore_dir(root_p / d, extra))

        for f in sorted(files):
            if f.endswith(".py"):
                out.append(str((root_p / f).resolve()))
                if max_files is not None and len(out) >= max_files:
                    return out
    return out
