"""Sync configuration loaded from YAML.

Example ``notesync.yml``::

    github: alice/my-garden
    branch: main
    root: content
    token: ${GITHUB_TOKEN}
    include:
      - garden/**
    exclude:
      - private/*
      - "**/*.canvas"
    home: Home.md
    max_file_size: 10485760

Strings may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.
"""

from __future__ import annotations

import dataclasses
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ValidationError
from .local import HOME_PAGE
from .remote import Remote
from .size import MAX_FILE_SIZE, SizeGuard

DEFAULT_ROOT = "content"

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` with environment values."""

    def _replace(match: re.Match) -> str:
        env_val = os.environ.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate(v) for v in obj]
    return obj


@dataclass
class SyncConfig:
    """Everything needed to build a :class:`~notesync.sync.Syncer`.

    Exactly one of *repo* (path to a bare git repository) or *github*
    (``owner/name``) selects the remote.  A non-empty *include* limits
    publishing to matching paths; *home* names the local note published
    as ``index.md``.
    """
    repo: str | None = None
    github: str | None = None
    branch: str = "main"
    root: str = DEFAULT_ROOT
    exclude: list[str] = field(default_factory=list)
    include: list[str] = field(default_factory=list)
    home: str | None = None
    max_file_size: int = MAX_FILE_SIZE
    token: str | None = None
    message: str | None = None

    def __post_init__(self):
        if self.token is None:
            self.token = os.environ.get("GITHUB_TOKEN") or None
        if isinstance(self.exclude, str):
            self.exclude = [self.exclude]
        if isinstance(self.include, str):
            self.include = [self.include]
        if not isinstance(self.max_file_size, int) or self.max_file_size < 0:
            raise ValidationError(f"max_file_size must be a non-negative integer, got {self.max_file_size!r}")

    @classmethod
    def from_dict(cls, data: dict) -> SyncConfig:
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(f"Unknown config key(s): {', '.join(unknown)}")
        return cls(**data)

    def merged(self, **overrides) -> SyncConfig:
        """Return a copy with every non-``None`` override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None and v != ()}
        return dataclasses.replace(self, **changes)

    def publish_include(self) -> list[str]:
        """Include patterns, widened so the home page is always published."""
        include = list(self.include)
        if include and self.home and HOME_PAGE not in include:
            include.append(HOME_PAGE)
        return include

    def build_remote(self) -> Remote:
        if bool(self.repo) == bool(self.github):
            raise ValidationError("Configure exactly one of 'repo' or 'github'")
        if self.repo:
            from .gitrepo import RepoRemote
            return RepoRemote(self.repo, self.branch)
        owner, sep, name = self.github.partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValidationError(f"github must be 'owner/repo', got {self.github!r}")
        from .github import GitHubRemote
        return GitHubRemote(owner, name, self.branch, self.token)

    def build_syncer(self):
        from .sync import Syncer
        return Syncer(
            self.build_remote(),
            patterns=self.exclude,
            include=self.publish_include(),
            size_guard=SizeGuard(self.max_file_size),
            root=self.root,
        )


def load_config(path: str | os.PathLike[str]) -> SyncConfig:
    """Load a :class:`SyncConfig` from a YAML file."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ValidationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationError(f"Config {path} must be a mapping")
    return SyncConfig.from_dict(_interpolate(data))
