"""Read-only index over a flattened remote tree listing.

A :class:`TreeIndex` is built once per sync attempt from the recursive
listing of a branch and never mutated afterwards.
"""

from __future__ import annotations

import logging
import os
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)


class EntryKind(str, Enum):
    """Kind of remote tree entry: ``FILE`` or ``DIRECTORY``."""
    FILE = "file"
    DIRECTORY = "directory"

    def __str__(self) -> str:          # noqa: D105
        return self.value


# Listing ``type`` values (git object types) to entry kinds
_TYPE_TO_KIND = {
    "blob": EntryKind.FILE,
    "tree": EntryKind.DIRECTORY,
}


def _normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path: unify separators, strip slashes, compose to NFC.

    Raises ValueError for empty paths and ``.``/``..`` segments.  Case is
    preserved.
    """
    path = os.fspath(path).replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    path = path.strip("/")
    if not path:
        raise ValueError("Path must not be empty")
    segments = path.split("/")
    for seg in segments:
        if not seg:
            raise ValueError(f"Empty segment in path: {path!r}")
        if seg in (".", ".."):
            raise ValueError(f"Invalid path segment: {seg!r}")
    return unicodedata.normalize("NFC", "/".join(segments))


def normalize_root(root: str | None) -> str:
    """Normalize a content root; ``""`` means the repository root."""
    if root is None or not os.fspath(root).strip("/\\"):
        return ""
    return _normalize_path(root)


def _ancestors(path: str) -> Iterator[str]:
    """Yield every proper ancestor directory of *path*, shallowest first."""
    parts = path.split("/")
    for i in range(1, len(parts)):
        yield "/".join(parts[:i])


@dataclass(frozen=True)
class RemoteTreeEntry:
    """One entry of a flattened remote tree.

    Attributes:
        path: Normalized repo path.
        mode: :class:`EntryKind` of the entry.
        content_hash: Object id reported by the remote (git blob/tree sha).
        size: Byte size for files, ``None`` for directories.
    """
    path: str
    mode: EntryKind
    content_hash: str
    size: int | None = None

    @property
    def is_file(self) -> bool:
        return self.mode is EntryKind.FILE

    @classmethod
    def from_listing(cls, item: Mapping) -> RemoteTreeEntry:
        """Create an entry from a provider listing item.

        Accepts ``{"path", "type": "blob"|"tree", "sha", "size"?}``.
        Submodules (``"commit"``) are reported as files so they are never
        overwritten by a directory.
        """
        kind = _TYPE_TO_KIND.get(item.get("type"), EntryKind.FILE)
        size = item.get("size") if kind is EntryKind.FILE else None
        return cls(
            path=_normalize_path(item["path"]),
            mode=kind,
            content_hash=item["sha"],
            size=size,
        )


@dataclass(frozen=True)
class TypeConflict:
    """A path that is a file on one side and a directory on the other.

    Attributes:
        path: The local file path that cannot be written.
        remote_path: The remote path of the clashing entry.
        remote_kind: What the remote holds at *remote_path*.
    """
    path: str
    remote_path: str
    remote_kind: EntryKind

    @property
    def message(self) -> str:
        if self.remote_kind is EntryKind.DIRECTORY:
            return f"{self.path} is a file locally but a directory on the remote"
        return (f"{self.path} needs directory {self.remote_path} "
                f"but the remote has a file there")


class TreeIndex:
    """Keyed view ``path → RemoteTreeEntry`` over a remote tree listing.

    Only file entries take part in diffing.  Directory paths (listed or
    implied by file ancestors) are kept for type-conflict checks.
    """

    __slots__ = ("_files", "_dirs", "commit", "duplicates")

    def __init__(self, files: dict[str, RemoteTreeEntry], dirs: set[str],
                 commit: str | None = None, duplicates: tuple[str, ...] = ()):
        self._files = files
        self._dirs = frozenset(dirs)
        self.commit = commit
        self.duplicates = duplicates

    @classmethod
    def build(cls, entries: Iterable[RemoteTreeEntry | Mapping], commit: str | None = None) -> TreeIndex:
        """Build an index in a single pass over *entries*.

        Duplicate paths keep the last entry and are logged as a remote
        inconsistency.  *commit* is the reference hash the listing was
        taken at.
        """
        files: dict[str, RemoteTreeEntry] = {}
        dirs: set[str] = set()
        seen: set[str] = set()
        duplicates: list[str] = []
        for entry in entries:
            if not isinstance(entry, RemoteTreeEntry):
                entry = RemoteTreeEntry.from_listing(entry)
            if entry.path in seen:
                duplicates.append(entry.path)
                logger.warning("Duplicate remote tree entry %r; keeping the last one", entry.path)
                files.pop(entry.path, None)
                dirs.discard(entry.path)
            seen.add(entry.path)
            if entry.is_file:
                files[entry.path] = entry
                dirs.update(_ancestors(entry.path))
            else:
                dirs.add(entry.path)
                dirs.update(_ancestors(entry.path))
        return cls(files, dirs, commit, tuple(duplicates))

    def __repr__(self) -> str:
        return f"TreeIndex({len(self._files)} files, commit={self.commit!r})"

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: str) -> bool:
        return path in self._files

    def __iter__(self) -> Iterator[RemoteTreeEntry]:
        return iter(self._files.values())

    def get(self, path: str) -> RemoteTreeEntry | None:
        """Return the file entry at *path* or ``None``."""
        return self._files.get(path)

    def paths(self) -> set[str]:
        """Return the set of file paths."""
        return set(self._files)

    def is_dir(self, path: str) -> bool:
        return path in self._dirs

    def conflict_for(self, path: str) -> TypeConflict | None:
        """Return a :class:`TypeConflict` if a local file at *path* clashes."""
        if path in self._dirs:
            return TypeConflict(path, path, EntryKind.DIRECTORY)
        for parent in _ancestors(path):
            if parent in self._files:
                return TypeConflict(path, parent, EntryKind.FILE)
        return None

    def scoped(self, root: str) -> TreeIndex:
        """Return an index restricted to files under *root* (paths unchanged)."""
        root = normalize_root(root)
        if not root:
            return self
        prefix = root + "/"
        files = {p: e for p, e in self._files.items() if p.startswith(prefix)}
        dirs = {d for d in self._dirs if d == root or d.startswith(prefix)}
        return TreeIndex(files, dirs, self.commit, self.duplicates)
