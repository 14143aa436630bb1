"""Remote backed by a bare git repository on disk, accessed with dulwich.

Useful as a publishing target in its own right (push it anywhere with
plain git) and as a faithful stand-in for a hosted repository in tests.
"""

from __future__ import annotations

import logging
import os
import stat
import time
from collections import defaultdict
from typing import Iterator, Mapping

from dulwich.errors import NotGitRepository
from dulwich.objects import Blob, Commit, Tree
from dulwich.objects import S_ISGITLINK
from dulwich.repo import Repo

from .exceptions import ConcurrentModificationError, RemoteError
from .remote import Remote
from .tree import EntryKind, RemoteTreeEntry, _normalize_path

logger = logging.getLogger(__name__)

GIT_FILEMODE_TREE = 0o040000
GIT_FILEMODE_BLOB = 0o100644


def _rebuild_tree(
    store,
    base_tree_id: bytes | None,
    writes: dict[str, bytes],
    removes: set[str],
) -> bytes:
    """Rebuild a tree with writes and removes applied.

    Only the ancestor chain from changed leaves to root is rebuilt.
    Sibling subtrees are shared by hash reference.  Directories left
    empty are pruned.

    Args:
        store: The dulwich object store.
        base_tree_id: Hex id of the existing tree (or None for empty).
        writes: Mapping of normalized path → blob hex id.
        removes: Set of normalized paths to remove.

    Returns:
        Hex id of the new root tree.
    """
    # Group changes by first path segment
    sub_writes: dict[str, dict[str, bytes]] = defaultdict(dict)
    leaf_writes: dict[str, bytes] = {}
    sub_removes: dict[str, set[str]] = defaultdict(set)
    leaf_removes: set[str] = set()

    for path, blob_id in writes.items():
        parts = path.split("/", 1)
        if len(parts) == 1:
            leaf_writes[parts[0]] = blob_id
        else:
            sub_writes[parts[0]][parts[1]] = blob_id

    for path in removes:
        parts = path.split("/", 1)
        if len(parts) == 1:
            leaf_removes.add(parts[0])
        else:
            sub_removes[parts[0]].add(parts[1])

    tree = Tree()
    if base_tree_id is not None:
        for entry in store[base_tree_id].iteritems():
            tree.add(entry.path, entry.mode, entry.sha)

    for name, blob_id in leaf_writes.items():
        tree.add(name.encode(), GIT_FILEMODE_BLOB, blob_id)

    # Missing names are ignored; callers only remove what they listed
    for name in leaf_removes:
        key = name.encode()
        if key in tree:
            del tree[key]

    for subdir in set(sub_writes) | set(sub_removes):
        key = subdir.encode()
        existing_id = None
        if key in tree:
            mode, sha = tree[key]
            if stat.S_ISDIR(mode):
                existing_id = sha
            else:
                del tree[key]

        new_subtree_id = _rebuild_tree(
            store,
            existing_id,
            sub_writes.get(subdir, {}),
            sub_removes.get(subdir, set()),
        )

        if len(store[new_subtree_id]) == 0:
            if key in tree:
                del tree[key]
        else:
            tree.add(key, GIT_FILEMODE_TREE, new_subtree_id)

    store.add_object(tree)
    return tree.id


def _walk_tree(store, tree_id: bytes, prefix: str = "") -> Iterator[RemoteTreeEntry]:
    """Yield a flat, recursive listing of the tree, directories included."""
    for entry in store[tree_id].iteritems():
        name = entry.path.decode("utf-8")
        path = f"{prefix}/{name}" if prefix else name
        sha = entry.sha.decode("ascii")
        if stat.S_ISDIR(entry.mode):
            yield RemoteTreeEntry(path, EntryKind.DIRECTORY, sha)
            yield from _walk_tree(store, entry.sha, path)
        elif S_ISGITLINK(entry.mode):
            yield RemoteTreeEntry(path, EntryKind.FILE, sha)
        else:
            yield RemoteTreeEntry(path, EntryKind.FILE, sha, store[entry.sha].raw_length())


class RepoRemote(Remote):
    """A branch of a bare git repository on the local filesystem."""

    def __init__(self, path: str | os.PathLike[str], branch: str = "main", *,
                 author: str = "notesync", email: str = "notesync@localhost"):
        self.path = os.fspath(path)
        try:
            self._repo = Repo(self.path)
        except NotGitRepository as exc:
            raise RemoteError(f"Not a git repository: {self.path}", kind="not_found") from exc
        self.branch = branch
        self._ref_name = f"refs/heads/{branch}".encode()
        self._identity = f"{author} <{email}>".encode()

    def __repr__(self) -> str:
        return f"RepoRemote({self.path!r}, branch={self.branch!r})"

    @classmethod
    def init(cls, path: str | os.PathLike[str], branch: str = "main", **kwargs) -> RepoRemote:
        """Create an empty bare repository whose HEAD points at *branch*."""
        repo = Repo.init_bare(os.fspath(path), mkdir=True)
        repo.refs.set_symbolic_ref(b"HEAD", f"refs/heads/{branch}".encode())
        return cls(path, branch, **kwargs)

    @property
    def key(self) -> str:
        return f"{os.path.realpath(self.path)}@{self.branch}"

    @property
    def _store(self):
        return self._repo.object_store

    # -- reads -------------------------------------------------------------

    def resolve_ref(self) -> str | None:
        try:
            return self._repo.refs[self._ref_name].decode("ascii")
        except KeyError:
            return None

    def _tree_of(self, commit: str) -> bytes:
        try:
            return self._store[commit.encode("ascii")].tree
        except KeyError as exc:
            raise RemoteError(f"Unknown commit: {commit}", kind="not_found") from exc

    def get_tree(self, ref: str) -> list[RemoteTreeEntry]:
        return list(_walk_tree(self._store, self._tree_of(ref)))

    def get_file_content(self, path: str, ref: str | None = None) -> bytes | None:
        ref = ref or self.resolve_ref()
        if ref is None:
            return None
        obj = self._store[self._tree_of(ref)]
        for seg in _normalize_path(path).split("/"):
            if not isinstance(obj, Tree):
                return None
            try:
                _mode, sha = obj[seg.encode()]
            except KeyError:
                return None
            obj = self._store[sha]
        return obj.data if isinstance(obj, Blob) else None

    # -- writes ------------------------------------------------------------

    def create_tree(self, base_commit: str | None, changes: Mapping[str, bytes | None]) -> str:
        base_tree = self._tree_of(base_commit) if base_commit is not None else None
        writes: dict[str, bytes] = {}
        removes: set[str] = set()
        try:
            for path, content in changes.items():
                if content is None:
                    removes.add(path)
                else:
                    blob = Blob.from_string(content)
                    self._store.add_object(blob)
                    writes[path] = blob.id
            return _rebuild_tree(self._store, base_tree, writes, removes).decode("ascii")
        except OSError as exc:
            raise RemoteError(f"Failed to write tree: {exc}") from exc

    def create_commit(self, message: str, tree: str, parents: list[str]) -> str:
        c = Commit()
        c.tree = tree.encode("ascii")
        c.parents = [p.encode("ascii") for p in parents]
        c.author = c.committer = self._identity
        c.author_time = c.commit_time = int(time.time())
        c.author_timezone = c.commit_timezone = 0
        msg = message.encode()
        if not msg.endswith(b"\n"):
            msg += b"\n"
        c.message = msg
        c.encoding = b"UTF-8"
        try:
            self._store.add_object(c)
        except OSError as exc:
            raise RemoteError(f"Failed to write commit: {exc}") from exc
        return c.id.decode("ascii")

    def update_ref(self, new_commit: str, expected: str | None) -> None:
        new = new_commit.encode("ascii")
        try:
            if expected is None:
                ok = self._repo.refs.add_if_new(self._ref_name, new)
            else:
                ok = self._repo.refs.set_if_equals(self._ref_name, expected.encode("ascii"), new)
        except OSError as exc:
            raise RemoteError(f"Failed to update {self.branch}: {exc}") from exc
        if not ok:
            raise ConcurrentModificationError(
                f"Branch {self.branch!r} no longer points at {expected}",
                kind="stale",
            )
