"""Two-way diff between a local snapshot and a remote tree.

The remote side is described by a :class:`~notesync.tree.TreeIndex`; local
content is hashed with the git blob scheme and compared against the remote
object ids, so no remote content is ever downloaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .exceptions import TypeConflictError
from .hashing import hash_many
from .policy import PathPolicy
from .size import OversizedFile, SizeGuard
from .tree import TreeIndex, TypeConflict, _ancestors, _normalize_path, normalize_root

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LocalFileRecord:
    """A local file as seen by one sync attempt.

    Attributes:
        path: Repo-style path (forward slashes) the file maps to remotely.
        content: Exact bytes of the file.
        size: Byte size; defaults to ``len(content)``.
    """
    path: str
    content: bytes = field(repr=False)
    size: int = -1

    def __post_init__(self):
        object.__setattr__(self, "path", _normalize_path(self.path))
        if self.size < 0:
            object.__setattr__(self, "size", len(self.content))


@dataclass(frozen=True)
class PlanCounts:
    """Cardinalities of a :class:`SyncPlan`."""
    new: int
    modified: int
    deleted: int


@dataclass(frozen=True)
class SyncAction:
    """A single create/update/delete action."""
    path: str
    action: str     # "create", "update", "delete"


@dataclass(frozen=True)
class SyncPlan:
    """What a sync would change on the remote.

    Attributes:
        to_create: Paths absent remotely.
        to_update: Paths whose content hash differs from the remote.
        to_delete: Remote paths with no eligible local counterpart.
        base_commit: Reference hash the remote listing was taken at.
        excluded: Local paths skipped by an exclusion pattern.
        oversized: Local files skipped by the size limit.
        conflicts: Local paths skipped because of a file/directory clash.
    """
    to_create: tuple[str, ...] = ()
    to_update: tuple[str, ...] = ()
    to_delete: tuple[str, ...] = ()
    base_commit: str | None = None
    excluded: tuple[str, ...] = ()
    oversized: tuple[OversizedFile, ...] = ()
    conflicts: tuple[TypeConflict, ...] = ()

    @property
    def counts(self) -> PlanCounts:
        return PlanCounts(
            new=len(self.to_create),
            modified=len(self.to_update),
            deleted=len(self.to_delete),
        )

    @property
    def in_sync(self) -> bool:
        """``True`` if there is nothing to create, update, or delete."""
        return not self.to_create and not self.to_update and not self.to_delete

    @property
    def total(self) -> int:
        return len(self.to_create) + len(self.to_update) + len(self.to_delete)

    @property
    def write_paths(self) -> tuple[str, ...]:
        """Paths whose content must be materialized (creates and updates)."""
        return self.to_create + self.to_update

    def actions(self) -> list[SyncAction]:
        """All actions sorted by path."""
        result = [SyncAction(p, "create") for p in self.to_create]
        result += [SyncAction(p, "update") for p in self.to_update]
        result += [SyncAction(p, "delete") for p in self.to_delete]
        result.sort(key=lambda a: a.path)
        return result

    def raise_for_conflicts(self) -> None:
        if self.conflicts:
            raise TypeConflictError(self.conflicts)


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------

def _relative(path: str, root: str) -> str:
    if root and path.startswith(root + "/"):
        return path[len(root) + 1:]
    return path


def _is_protected(path: str, protected: set[str]) -> bool:
    """True if *path* or one of its ancestor directories is protected."""
    return path in protected or any(a in protected for a in _ancestors(path))


class Reconciler:
    """Computes a :class:`SyncPlan` from a local snapshot and a remote index.

    Args:
        size_guard: Size limit; defaults to :class:`SizeGuard` with the
            standard 10 MiB threshold.
        root: Content root on the remote.  Patterns match paths relative
            to it and only remote files under it can be deleted.
        max_workers: Thread count for hashing (``None`` = executor default).
    """

    def __init__(self, size_guard: SizeGuard | None = None, root: str = "",
                 max_workers: int | None = None):
        self.size_guard = size_guard or SizeGuard()
        self.root = normalize_root(root)
        self.max_workers = max_workers

    def plan(
        self,
        local_files: Iterable[LocalFileRecord],
        remote_index: TreeIndex,
        patterns: Sequence[str] | PathPolicy = (),
        include: Sequence[str] = (),
    ) -> SyncPlan:
        """Diff *local_files* against *remote_index*.

        Local paths excluded by *patterns* or outside a non-empty
        *include* set are skipped, and their remote copies are kept.

        Raises:
            PolicyError: If any pattern is invalid (checked before diffing).
        """
        policy = patterns if isinstance(patterns, PathPolicy) else PathPolicy(patterns, include)
        root = self.root

        excluded: list[str] = []
        oversized: list[OversizedFile] = []
        conflicts: list[TypeConflict] = []
        eligible: dict[str, LocalFileRecord] = {}
        # Remote paths that must never be deleted even without a local twin
        protected: set[str] = set()

        for rec in local_files:
            if policy.excludes(_relative(rec.path, root)):
                excluded.append(rec.path)
                protected.add(rec.path)
                continue
            if self.size_guard.is_oversized(rec):
                oversized.extend(self.size_guard.find_oversized([rec]))
                protected.add(rec.path)
                continue
            conflict = remote_index.conflict_for(rec.path)
            if conflict is not None:
                logger.warning("Type conflict: %s", conflict.message)
                conflicts.append(conflict)
                protected.add(conflict.remote_path)
                continue
            eligible[rec.path] = rec

        remote_paths = remote_index.scoped(root).paths()

        to_create = sorted(p for p in eligible if p not in remote_index)

        common = sorted(p for p in eligible if p in remote_index)
        hashes = hash_many([eligible[p].content for p in common], self.max_workers)
        to_update = [
            p for p, h in zip(common, hashes)
            if h != remote_index.get(p).content_hash
        ]

        to_delete = sorted(
            p for p in remote_paths - eligible.keys()
            if not _is_protected(p, protected)
            and not policy.excludes(_relative(p, root))
        )

        plan = SyncPlan(
            to_create=tuple(to_create),
            to_update=tuple(to_update),
            to_delete=tuple(to_delete),
            base_commit=remote_index.commit,
            excluded=tuple(sorted(excluded)),
            oversized=tuple(sorted(oversized, key=lambda o: o.path)),
            conflicts=tuple(sorted(conflicts, key=lambda c: c.path)),
        )
        counts = plan.counts
        logger.info(
            "Plan: %d new, %d modified, %d deleted (%d excluded, %d oversized, %d conflicts)",
            counts.new, counts.modified, counts.deleted,
            len(plan.excluded), len(plan.oversized), len(plan.conflicts),
        )
        return plan


def plan(
    local_files: Iterable[LocalFileRecord],
    remote_index: TreeIndex,
    patterns: Sequence[str] | PathPolicy = (),
    *,
    size_guard: SizeGuard | None = None,
    include: Sequence[str] = (),
    root: str = "",
) -> SyncPlan:
    """Functional shortcut for :meth:`Reconciler.plan`."""
    return Reconciler(size_guard, root).plan(local_files, remote_index, patterns, include)
