"""File size limits.

Files strictly larger than the limit are left out of the sync plan and
reported to the caller; a file exactly at the limit is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .exceptions import SizePolicyError

MAX_FILE_SIZE = 10 * 1024 * 1024

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(size: int) -> str:
    """Format a byte count using base-1024 units.

    >>> format_size(0)
    '0 B'
    >>> format_size(1536)
    '1.50 KB'
    """
    if size < 1024:
        return f"{size} B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {_UNITS[unit]}"


@dataclass(frozen=True)
class OversizedFile:
    """A file that exceeds the size limit.

    Attributes:
        path: Repo path of the file.
        size: Size in bytes.
        formatted_size: *size* rendered by :func:`format_size`.
    """
    path: str
    size: int
    formatted_size: str


@dataclass(frozen=True)
class SizeValidation:
    """Result of :meth:`SizeGuard.validate`."""
    is_valid: bool
    oversized: list[OversizedFile] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.oversized)

    def raise_for_oversized(self) -> None:
        """Raise :class:`SizePolicyError` if any file is oversized."""
        if self.oversized:
            raise SizePolicyError(self.oversized)


class SizeGuard:
    """Flags files larger than *max_file_size* bytes.

    *files* may be any objects with ``path`` and ``size`` attributes
    (e.g. :class:`~notesync.reconcile.LocalFileRecord`).
    """

    def __init__(self, max_file_size: int = MAX_FILE_SIZE):
        if max_file_size < 0:
            raise ValueError(f"max_file_size must be >= 0, got {max_file_size}")
        self.max_file_size = max_file_size

    def __repr__(self) -> str:
        return f"SizeGuard({self.max_file_size_formatted})"

    @property
    def max_file_size_formatted(self) -> str:
        return format_size(self.max_file_size)

    def is_oversized(self, file) -> bool:
        return file.size > self.max_file_size

    def find_oversized(self, files: Iterable) -> list[OversizedFile]:
        return [
            OversizedFile(f.path, f.size, format_size(f.size))
            for f in files
            if self.is_oversized(f)
        ]

    def validate(self, files: Iterable) -> SizeValidation:
        oversized = self.find_oversized(files)
        return SizeValidation(is_valid=not oversized, oversized=oversized)


def find_oversized(files: Iterable, threshold: int = MAX_FILE_SIZE) -> list[OversizedFile]:
    return SizeGuard(threshold).find_oversized(files)


def validate(files: Iterable, threshold: int = MAX_FILE_SIZE) -> SizeValidation:
    return SizeGuard(threshold).validate(files)
