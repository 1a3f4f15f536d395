"""Filesystem discovery of candidate files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator


def _walk_regular_files(root: str) -> Iterator[str]:
    pending = [root]
    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except (FileNotFoundError, PermissionError, NotADirectoryError):
            continue
        for entry in entries:
            if entry.is_symlink():
                continue
            if entry.is_file(follow_symlinks=False):
                yield entry.path
            elif entry.is_dir(follow_symlinks=False):
                pending.append(entry.path)


def expand_paths(path: str | os.PathLike[str]) -> list[str]:
    """Flatten a file or directory into a sorted list of absolute file paths.

    Symbolic links are neither listed nor followed. A path that is neither a
    file nor a directory yields an empty list.
    """
    target = Path(path).expanduser().absolute()
    if target.is_dir():
        return sorted(_walk_regular_files(str(target)))
    if target.is_file():
        return [str(target)]
    return []
