from .exceptions import (
    NotesyncError, ValidationError, PolicyError, SizePolicyError, TypeConflictError,
    RemoteError, ConcurrentModificationError, PartialTreeFailure, ReferenceUpdateFailure,
    CommitCancelled,
)
from .policy import PathPolicy, PatternError, PatternValidation, validate, validate_all, matches
from .size import SizeGuard, SizeValidation, OversizedFile, MAX_FILE_SIZE, format_size
from .hashing import blob_hash, hash_file, hash_many
from .tree import TreeIndex, RemoteTreeEntry, EntryKind, TypeConflict
from .reconcile import LocalFileRecord, SyncPlan, PlanCounts, SyncAction, Reconciler, plan
from .commit import BatchCommitter, CommitFile, CommitRequest, CommitResult, CommitErrorKind
from .commit import format_commit_message
from .remote import Remote, RemoteRelease
from .gitrepo import RepoRemote
from .github import GitHubRemote
from .local import scan_directory
from .sync import Syncer, SyncOutcome
from .config import SyncConfig, load_config

__all__ = [
    "NotesyncError", "ValidationError", "PolicyError", "SizePolicyError", "TypeConflictError",
    "RemoteError", "ConcurrentModificationError", "PartialTreeFailure", "ReferenceUpdateFailure",
    "CommitCancelled",
    "PathPolicy", "PatternError", "PatternValidation", "validate", "validate_all", "matches",
    "SizeGuard", "SizeValidation", "OversizedFile", "MAX_FILE_SIZE", "format_size",
    "blob_hash", "hash_file", "hash_many",
    "TreeIndex", "RemoteTreeEntry", "EntryKind", "TypeConflict",
    "LocalFileRecord", "SyncPlan", "PlanCounts", "SyncAction", "Reconciler", "plan",
    "BatchCommitter", "CommitFile", "CommitRequest", "CommitResult", "CommitErrorKind",
    "format_commit_message",
    "Remote", "RemoteRelease", "RepoRemote", "GitHubRemote",
    "scan_directory", "Syncer", "SyncOutcome", "SyncConfig", "load_config",
]
