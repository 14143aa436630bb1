"""Exceptions for notesync."""

from __future__ import annotations


class NotesyncError(Exception):
    """Base class for all notesync errors."""


class ValidationError(NotesyncError, ValueError):
    """Raised for bad user input, always before any network call."""


class PolicyError(ValidationError):
    """Raised when one or more exclusion patterns fail validation.

    Attributes:
        invalid: ``(pattern, validation)`` pairs for every rejected pattern.
    """

    def __init__(self, invalid):
        self.invalid = list(invalid)
        details = "; ".join(f"{p!r}: {v.error}" for p, v in self.invalid)
        super().__init__(f"Invalid pattern(s): {details}")


class SizePolicyError(NotesyncError):
    """Raised in strict mode when files exceed the size limit.

    By default oversized files are only reported and skipped.
    """

    def __init__(self, oversized):
        self.oversized = list(oversized)
        names = ", ".join(f"{o.path} ({o.formatted_size})" for o in self.oversized)
        super().__init__(f"{len(self.oversized)} file(s) exceed the size limit: {names}")


class TypeConflictError(NotesyncError):
    """Raised when a path is a file on one side and a directory on the other."""

    def __init__(self, conflicts):
        self.conflicts = list(conflicts)
        names = ", ".join(c.path for c in self.conflicts)
        super().__init__(f"File/directory type conflict: {names}")


class RemoteError(NotesyncError):
    """A failure reported by the remote repository or its transport.

    Attributes:
        status_code: HTTP status when the remote is HTTP-based, else ``None``.
        kind: Short machine-readable category (``"not_found"``, ...).
    """

    def __init__(self, message: str, status_code: int | None = None, kind: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind


class ConcurrentModificationError(RemoteError):
    """Raised when the branch reference moved since the plan was computed.

    Re-fetch the remote tree and re-plan, then commit again.
    """


class PartialTreeFailure(RemoteError):
    """Raised when writing tree or commit objects fails.

    Nothing was linked to the branch, so retrying the whole push is safe.
    """


class ReferenceUpdateFailure(RemoteError):
    """Raised when the final reference update fails for a non-CAS reason."""


class CommitCancelled(NotesyncError):
    """Raised when a commit is cancelled before the reference update."""
