"""Caller-supplied bundle attachments."""

from __future__ import annotations

from dataclasses import dataclass


class InvalidAttachmentPathError(ValueError):
    """Raised when an attachment path is not a normalised relative path."""


def validate_path_in_zip(path: str) -> str:
    """Return *path* unchanged if it is a safe archive member name.

    Safe means non-blank, relative, forward-slash separated, with no empty,
    ``.`` or ``..`` segments.
    """
    if not path or not path.strip():
        raise InvalidAttachmentPathError("path_in_zip must be non-blank")
    if path.startswith("/"):
        raise InvalidAttachmentPathError(f"path_in_zip must be relative: {path!r}")
    if "\\" in path:
        raise InvalidAttachmentPathError(f"path_in_zip must use forward slashes: {path!r}")
    for segment in path.split("/"):
        if not segment:
            raise InvalidAttachmentPathError(f"path_in_zip must be normalized: {path!r}")
        if segment in (".", ".."):
            raise InvalidAttachmentPathError(f"path_in_zip must not contain dot segments: {path!r}")
    return path


@dataclass(frozen=True)
class BundleAttachment:
    """Binary file placed into the bundle at ``path_in_zip``.

    The path is validated here, at construction, so an unsafe path can never
    reach the archive writer.
    """

    path_in_zip: str
    data: bytes

    def __post_init__(self) -> None:
        validate_path_in_zip(self.path_in_zip)
        object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def text(cls, path_in_zip: str, content: str) -> BundleAttachment:
        return cls(path_in_zip, content.encode("utf-8"))
