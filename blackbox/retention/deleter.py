"""File deletion seam so retention logic can be tested without side effects."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class FileDeleter(ABC):
    """Deletes a single file. Implementations raise OSError on failure."""

    @abstractmethod
    def delete(self, path: Path) -> None:
        """Remove *path*."""


class UnlinkDeleter(FileDeleter):
    """Default deleter: ``Path.unlink`` that ignores already-missing files."""

    def delete(self, path: Path) -> None:
        path.unlink(missing_ok=True)
