"""Sync orchestration: fetch, plan, confirm, commit.

This is the caller layer around the core.  It owns the per-branch lock
and the human confirmation step; the core modules stay free of both.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from ._lock import sync_lock
from .commit import BatchCommitter, CommitResult
from .local import materializer_for
from .policy import PathPolicy
from .reconcile import LocalFileRecord, Reconciler, SyncPlan
from .remote import Remote
from .size import SizeGuard
from .tree import TreeIndex

logger = logging.getLogger(__name__)

# Capability: show the plan to a human, return True to proceed
ConfirmPlan = Callable[[SyncPlan], bool]


@dataclass(frozen=True)
class SyncOutcome:
    """Result of :meth:`Syncer.push`.

    Attributes:
        plan: The plan that was computed.
        result: Commit result, or ``None`` when nothing was committed
            because the plan was empty or the user declined.
        declined: ``True`` if the confirmation step said no.
    """
    plan: SyncPlan
    result: CommitResult | None = None
    declined: bool = False

    @property
    def success(self) -> bool:
        if self.declined:
            return False
        return self.result is None or self.result.success


@dataclass(frozen=True)
class ConflictDiagnosis:
    """Remote side of a file that could not be synced."""
    path: str
    remote_content: bytes | None
    local_content: bytes | None


class Syncer:
    """Syncs local records to one branch of a :class:`Remote`.

    Args:
        remote: Target repository branch.
        patterns: Exclusion glob patterns, validated immediately.
        include: If given, only paths matching one of these are synced.
        size_guard: File size limit.
        root: Remote content root (e.g. ``"content"``).
    """

    def __init__(
        self,
        remote: Remote,
        *,
        patterns: Sequence[str] = (),
        include: Sequence[str] = (),
        size_guard: SizeGuard | None = None,
        root: str = "",
    ):
        self.remote = remote
        self.policy = PathPolicy(patterns, include)
        self.reconciler = Reconciler(size_guard, root)
        self.committer = BatchCommitter(remote)

    def __repr__(self) -> str:
        return f"Syncer({self.remote!r}, root={self.reconciler.root!r})"

    def fetch_index(self) -> TreeIndex:
        index = self.remote.fetch_index()
        logger.debug("Fetched %d remote file(s) at %s", len(index), index.commit)
        return index

    def plan(self, local_files: Iterable[LocalFileRecord]) -> SyncPlan:
        """Fetch the remote tree and diff *local_files* against it."""
        return self.reconciler.plan(local_files, self.fetch_index(), self.policy)

    def push(
        self,
        local_files: Iterable[LocalFileRecord],
        *,
        message: str | None = None,
        confirm: ConfirmPlan | None = None,
        cancel: threading.Event | None = None,
    ) -> SyncOutcome:
        """Plan and commit in one locked attempt.

        An empty plan returns without asking or writing.  *confirm* is
        only called for a non-empty plan; returning False aborts cleanly.
        """
        records = list(local_files)
        with sync_lock(self.remote.key):
            plan = self.plan(records)
            if plan.in_sync:
                logger.info("Nothing to sync for %s", self.remote.key)
                return SyncOutcome(plan)
            if confirm is not None and not confirm(plan):
                logger.info("Sync to %s declined", self.remote.key)
                return SyncOutcome(plan, declined=True)
            result = self.committer.commit(
                plan, materializer_for(records), message, cancel=cancel,
            )
        return SyncOutcome(plan, result)

    def explain_conflict(self, path: str, local_files: Iterable[LocalFileRecord] = ()) -> ConflictDiagnosis:
        """Fetch the remote content at *path* to show next to the local one."""
        local = next((r.content for r in local_files if r.path == path), None)
        return ConflictDiagnosis(path, self.remote.get_file_content(path), local)
