"""Interface to the remote repository holding the published notes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Mapping

from .tree import RemoteTreeEntry, TreeIndex

if TYPE_CHECKING:
    from .commit import CommitFile, CommitResult


@dataclass(frozen=True)
class RemoteRelease:
    """Latest published release of a repository."""
    tag: str
    name: str
    published_at: str
    body: str


class Remote(ABC):
    """A branch of a git repository that notes are synced to.

    Implementations raise :class:`~notesync.exceptions.RemoteError` (or
    a subclass) on failure.  :meth:`update_ref` must be a compare-and-swap
    and raise :class:`~notesync.exceptions.ConcurrentModificationError`
    when the branch no longer points at *expected*.
    """

    branch: str

    @property
    @abstractmethod
    def key(self) -> str:
        """Identity of the repository+branch, used to serialize syncs."""

    @abstractmethod
    def resolve_ref(self) -> str | None:
        """Return the commit the branch points at, or ``None`` if unborn."""

    @abstractmethod
    def get_tree(self, ref: str) -> list[RemoteTreeEntry]:
        """Return the recursive tree listing at commit *ref*."""

    @abstractmethod
    def get_file_content(self, path: str, ref: str | None = None) -> bytes | None:
        """Return file content at *path*, or ``None`` if missing.

        Used for conflict diagnostics only, never for diffing.
        """

    @abstractmethod
    def create_tree(self, base_commit: str | None, changes: Mapping[str, bytes | None]) -> str:
        """Write blobs and a new root tree; ``None`` content removes a path."""

    @abstractmethod
    def create_commit(self, message: str, tree: str, parents: list[str]) -> str:
        """Write a commit object and return its hash."""

    @abstractmethod
    def update_ref(self, new_commit: str, expected: str | None) -> None:
        """Move the branch from *expected* to *new_commit* atomically."""

    # -- derived operations ------------------------------------------------

    def fetch_index(self) -> TreeIndex:
        """Resolve the branch and index its tree."""
        head = self.resolve_ref()
        entries = self.get_tree(head) if head is not None else []
        return TreeIndex.build(entries, commit=head)

    def commit_files(self, files: Iterable[CommitFile], message: str) -> CommitResult:
        """Commit *files* on top of the current branch head in one commit.

        ``None`` content signals deletion.
        """
        from .commit import BatchCommitter, CommitRequest
        request = CommitRequest(tuple(files), message)
        return BatchCommitter(self).apply(request, self.resolve_ref())
