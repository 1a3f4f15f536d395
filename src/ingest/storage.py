"""Managed storage area that receives copied volumes and thumbnails."""

from __future__ import annotations

from pathlib import Path

from .errors import StorageError


class StorageArea:
    """Path-addressable area rooted at the configured data location.

    Names handed around the pipeline are storage-relative POSIX strings; only
    this class turns them into filesystem paths.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def absolute(self, relative: str) -> Path:
        return self.root / relative.lstrip("/")

    def mkpath(self, relative_dir: str) -> Path:
        target = self.absolute(relative_dir)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create directory {target}: {exc}") from exc
        return target

    def discard(self, relative: str) -> None:
        target = self.absolute(relative)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot remove {target}: {exc}") from exc
