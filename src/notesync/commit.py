"""Atomic multi-file commits.

All changes of a plan land in exactly one new commit or in none.  The
remote write is three sequential steps:

1. create the full target tree (base tree + writes - removals)
2. create a commit on top of the plan's base commit
3. compare-and-swap the branch reference from the base to the new commit

Objects written before a failed step 3 are unreachable, so no rollback is
needed.  Nothing here retries; :attr:`CommitResult.retryable` tells the
caller whether trying again can help.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from .exceptions import (
    CommitCancelled,
    ConcurrentModificationError,
    PartialTreeFailure,
    ReferenceUpdateFailure,
    RemoteError,
)
from .tree import _normalize_path

if TYPE_CHECKING:
    from .reconcile import SyncPlan
    from .remote import Remote

logger = logging.getLogger(__name__)


class CommitErrorKind(str, Enum):
    """Why a commit attempt failed."""
    CONCURRENT_MODIFICATION = "concurrent_modification"
    PARTIAL_TREE_FAILURE = "partial_tree_failure"
    REFERENCE_UPDATE_FAILURE = "reference_update_failure"
    CANCELLED = "cancelled"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True)
class CommitFile:
    """One path of a :class:`CommitRequest`; ``content=None`` deletes it."""
    path: str
    content: bytes | None = None

    @property
    def is_delete(self) -> bool:
        return self.content is None


@dataclass(frozen=True)
class CommitRequest:
    """Materialized payload of a plan plus the commit message."""
    files: tuple[CommitFile, ...]
    message: str

    @classmethod
    def from_plan(cls, plan: SyncPlan, materializer: Callable[[str], bytes],
                  message: str) -> CommitRequest:
        files = [CommitFile(p, materializer(p)) for p in plan.write_paths]
        files += [CommitFile(p) for p in plan.to_delete]
        return cls(tuple(files), message)

    def changes(self) -> dict[str, bytes | None]:
        """Return ``{normalized_path: content_or_None}``; last entry wins."""
        return {_normalize_path(f.path): f.content for f in self.files}


@dataclass(frozen=True)
class CommitResult:
    """Terminal value of one commit attempt.

    Attributes:
        success: ``True`` if the branch now points at *commit_hash*.
        commit_hash: New branch head (the unchanged base for empty plans).
        error: Human-readable failure description.
        kind: :class:`CommitErrorKind` on failure.
    """
    success: bool
    commit_hash: str | None = None
    error: str | None = None
    kind: CommitErrorKind | None = None

    @property
    def needs_replan(self) -> bool:
        """True if the remote moved and the plan must be recomputed."""
        return self.kind is CommitErrorKind.CONCURRENT_MODIFICATION

    @property
    def retryable(self) -> bool:
        """True if nothing became visible and the push can be tried again."""
        return not self.success


_KIND_BY_ERROR = {
    ConcurrentModificationError: CommitErrorKind.CONCURRENT_MODIFICATION,
    PartialTreeFailure: CommitErrorKind.PARTIAL_TREE_FAILURE,
    ReferenceUpdateFailure: CommitErrorKind.REFERENCE_UPDATE_FAILURE,
    CommitCancelled: CommitErrorKind.CANCELLED,
}


# ---------------------------------------------------------------------------
# Commit messages
# ---------------------------------------------------------------------------

def _auto_message(plan: SyncPlan) -> str:
    """Generate the default commit message."""
    if plan.total == 0:
        return "No changes"

    if plan.total == 1:
        if plan.to_create:
            return f"+ {plan.to_create[0]}"
        elif plan.to_update:
            return f"~ {plan.to_update[0]}"
        else:
            return f"- {plan.to_delete[0]}"

    parts = []
    if plan.to_create:
        parts.append(f"+{len(plan.to_create)}")
    if plan.to_update:
        parts.append(f"~{len(plan.to_update)}")
    if plan.to_delete:
        parts.append(f"-{len(plan.to_delete)}")
    return "Sync: " + " ".join(parts)


# Only these names are substituted; any other brace is literal text
_PLACEHOLDER_RE = re.compile(r"\{(default|new|modified|deleted|total)\}")


def format_commit_message(plan: SyncPlan, custom_message: str | None = None) -> str:
    """Generate a commit message for *plan*.

    *custom_message* overrides the generated one and may contain the
    placeholders ``{default}``, ``{new}``, ``{modified}``, ``{deleted}``
    and ``{total}``.  Other braces are kept as written.
    """
    if custom_message:
        if "{" in custom_message:
            counts = plan.counts
            values = {
                "default": _auto_message(plan),
                "new": counts.new,
                "modified": counts.modified,
                "deleted": counts.deleted,
                "total": plan.total,
            }
            return _PLACEHOLDER_RE.sub(lambda m: str(values[m.group(1)]), custom_message)
        return custom_message
    return _auto_message(plan)


# ---------------------------------------------------------------------------
# BatchCommitter
# ---------------------------------------------------------------------------

class BatchCommitter:
    """Applies a :class:`~notesync.reconcile.SyncPlan` as one commit."""

    def __init__(self, remote: Remote):
        self.remote = remote

    def commit(
        self,
        plan: SyncPlan,
        materializer: Callable[[str], bytes],
        message: str | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> CommitResult:
        """Commit *plan*, reading new content through *materializer*.

        An empty plan succeeds without contacting the remote.
        """
        if plan.in_sync:
            return CommitResult(success=True, commit_hash=plan.base_commit)
        request = CommitRequest.from_plan(
            plan, materializer, format_commit_message(plan, message)
        )
        return self.apply(request, plan.base_commit, cancel=cancel)

    def apply(
        self,
        request: CommitRequest,
        base_commit: str | None,
        *,
        cancel: threading.Event | None = None,
    ) -> CommitResult:
        """Write *request* on top of *base_commit* and move the branch.

        Remote failures are returned as a failed :class:`CommitResult`,
        never raised.
        """
        try:
            new_commit = self._write(request, base_commit, cancel)
        except (RemoteError, CommitCancelled) as exc:
            kind = _KIND_BY_ERROR.get(type(exc), CommitErrorKind.PARTIAL_TREE_FAILURE)
            logger.warning("Commit to %s failed (%s): %s", self.remote.key, kind, exc)
            return CommitResult(success=False, error=str(exc), kind=kind)
        logger.info("Committed %d change(s) to %s as %s",
                    len(request.files), self.remote.key, new_commit)
        return CommitResult(success=True, commit_hash=new_commit)

    def _write(self, request: CommitRequest, base_commit: str | None,
               cancel: threading.Event | None) -> str:
        remote = self.remote

        def checkpoint(step: str) -> None:
            if cancel is not None and cancel.is_set():
                raise CommitCancelled(f"Commit cancelled before {step}")

        checkpoint("validating the base")
        head = remote.resolve_ref()
        if head != base_commit:
            raise ConcurrentModificationError(
                f"Branch {remote.branch!r} moved from {base_commit} to {head} "
                "since the plan was computed"
            )

        changes = request.changes()
        parents = [base_commit] if base_commit is not None else []

        checkpoint("creating the tree")
        try:
            logger.debug("Creating tree with %d change(s) on %s", len(changes), base_commit)
            tree = remote.create_tree(base_commit, changes)
            checkpoint("creating the commit")
            logger.debug("Creating commit for tree %s", tree)
            new_commit = remote.create_commit(request.message, tree, parents)
        except (PartialTreeFailure, CommitCancelled):
            raise
        except RemoteError as exc:
            raise PartialTreeFailure(str(exc), exc.status_code, exc.kind) from exc

        checkpoint("updating the reference")
        try:
            logger.debug("Moving %s from %s to %s", remote.branch, base_commit, new_commit)
            remote.update_ref(new_commit, base_commit)
        except (ConcurrentModificationError, ReferenceUpdateFailure):
            raise
        except RemoteError as exc:
            raise ReferenceUpdateFailure(str(exc), exc.status_code, exc.kind) from exc
        return new_commit
