"""Validation and matching of exclusion and inclusion glob patterns.

Patterns are matched segment by segment against normalized repo paths:

* ``*`` matches any run of characters within one path segment
* ``?`` matches exactly one character within one segment
* ``[...]`` is a character class
* ``**`` as a whole segment matches zero or more segments

Matching is case-sensitive; the remote decides what case means.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from functools import lru_cache
from typing import Iterable, Sequence

from .exceptions import PolicyError
from .tree import _normalize_path

MAX_PATTERN_LENGTH = 256

_CONTROL_RE = re.compile(r"[\x00-\x1f]")
_WILDCARD_RUN_RE = re.compile(r"\*{3,}")
_ALLOWED_RE = re.compile(r"[A-Za-z0-9._*?/\[\]-]*")


class PatternError(str, Enum):
    """Reason a pattern was rejected, in the order rules are checked."""
    EMPTY = "empty"
    ABSOLUTE = "absolute"
    CONTROL_CHARACTER = "control character"
    CONSECUTIVE_WILDCARD = "consecutive wildcard"
    TOO_LONG = "too long"
    INVALID_CHARACTER = "invalid character"

    def __str__(self) -> str:          # noqa: D105
        return self.value


_MESSAGES = {
    PatternError.EMPTY: "Pattern must not be empty",
    PatternError.ABSOLUTE: "Absolute paths are not allowed",
    PatternError.CONTROL_CHARACTER: "Control characters are not allowed",
    PatternError.CONSECUTIVE_WILDCARD: "Consecutive wildcards (***) are not allowed",
    PatternError.TOO_LONG: f"Pattern must not exceed {MAX_PATTERN_LENGTH} characters",
    PatternError.INVALID_CHARACTER: (
        "Only letters, digits and - _ . / * ? [ ] are allowed"
    ),
}


@dataclass(frozen=True)
class PatternValidation:
    """Outcome of validating one pattern.

    Attributes:
        valid: ``True`` if the pattern passed every rule.
        error: Human-readable message for an invalid pattern.
        reason: :class:`PatternError` of the first failing rule.
    """
    valid: bool
    error: str | None = None
    reason: PatternError | None = None

    @classmethod
    def fail(cls, reason: PatternError, detail: str | None = None) -> PatternValidation:
        message = _MESSAGES[reason]
        if detail:
            message = f"{message}: {detail}"
        return cls(False, message, reason)


_OK = PatternValidation(True)


def validate(pattern: str) -> PatternValidation:
    """Validate a single glob pattern.  Never raises."""
    if not isinstance(pattern, str) or not pattern.strip():
        return PatternValidation.fail(PatternError.EMPTY)
    if pattern.startswith("/"):
        return PatternValidation.fail(PatternError.ABSOLUTE)
    m = _CONTROL_RE.search(pattern)
    if m:
        return PatternValidation.fail(
            PatternError.CONTROL_CHARACTER, f"0x{ord(m.group()):02x} at {m.start()}"
        )
    if _WILDCARD_RUN_RE.search(pattern):
        return PatternValidation.fail(PatternError.CONSECUTIVE_WILDCARD)
    if len(pattern) > MAX_PATTERN_LENGTH:
        return PatternValidation.fail(PatternError.TOO_LONG)
    if not _ALLOWED_RE.fullmatch(pattern):
        bad = next(ch for ch in pattern if not _ALLOWED_RE.fullmatch(ch))
        return PatternValidation.fail(PatternError.INVALID_CHARACTER, repr(bad))
    return _OK


def validate_all(patterns: Iterable[str]) -> list[PatternValidation]:
    """Validate each pattern, returning results in input order."""
    return [validate(p) for p in patterns]


def is_valid(pattern: str) -> bool:
    return validate(pattern).valid


def all_valid(patterns: Iterable[str]) -> bool:
    return all(is_valid(p) for p in patterns)


def check_patterns(patterns: Iterable[str]) -> list[str]:
    """Return *patterns* as a list, raising :class:`PolicyError` if any is invalid."""
    patterns = list(patterns)
    invalid = [(p, v) for p, v in zip(patterns, validate_all(patterns)) if not v.valid]
    if invalid:
        raise PolicyError(invalid)
    return patterns


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _collapse(pat: Sequence[str]) -> tuple[str, ...]:
    """Merge runs of ``**`` segments; ``**/**`` matches what ``**`` does."""
    out: list[str] = []
    for seg in pat:
        if seg == "**" and out and out[-1] == "**":
            continue
        out.append(seg)
    return tuple(out)


def _match_segments(pat: Sequence[str], parts: Sequence[str]) -> bool:
    pat = _collapse(pat)
    parts = tuple(parts)

    # step(i, j): does pat[i:] match parts[j:]
    @lru_cache(maxsize=None)
    def step(i: int, j: int) -> bool:
        if i == len(pat):
            return j == len(parts)
        if pat[i] == "**":
            # ** consumes zero or more whole segments
            return step(i + 1, j) or (j < len(parts) and step(i, j + 1))
        if j == len(parts):
            return False
        return fnmatchcase(parts[j], pat[i]) and step(i + 1, j + 1)

    return step(0, 0)


def match(path: str, pattern: str) -> bool:
    """Return True if the normalized *path* matches a single *pattern*."""
    if not validate(pattern).valid:
        return False
    try:
        path = _normalize_path(path)
    except ValueError:
        return False
    pat = [seg for seg in pattern.split("/") if seg]
    return _match_segments(pat, path.split("/"))


def matches(path: str, patterns: Iterable[str]) -> bool:
    """Return True if *path* matches any of *patterns*."""
    return any(match(path, p) for p in patterns)


class PathPolicy:
    """A validated set of exclusion and inclusion patterns.

    A path is published only if it matches one of *include* (when any
    are given) and none of *patterns*.  Construction validates every
    pattern up front and raises :class:`~notesync.exceptions.PolicyError`
    listing all the bad ones.
    """

    def __init__(self, patterns: Iterable[str] = (), include: Iterable[str] = ()):
        patterns = list(patterns)
        include = list(include)
        check_patterns(patterns + include)
        self.patterns: tuple[str, ...] = tuple(patterns)
        self.include: tuple[str, ...] = tuple(include)

    def __repr__(self) -> str:
        if self.include:
            return f"PathPolicy({list(self.patterns)!r}, include={list(self.include)!r})"
        return f"PathPolicy({list(self.patterns)!r})"

    @property
    def active(self) -> bool:
        """True if any pattern is configured."""
        return bool(self.patterns or self.include)

    def includes(self, path: str) -> bool:
        """True if *path* is inside the include set (everything when empty)."""
        return not self.include or matches(path, self.include)

    def excludes(self, path: str) -> bool:
        """True if *path* must be left alone on both sides."""
        return not self.includes(path) or matches(path, self.patterns)
