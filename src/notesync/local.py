"""Local snapshot provider: read a directory of notes into records."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterable

from .exceptions import ValidationError
from .reconcile import LocalFileRecord
from .tree import _normalize_path, normalize_root


def _walk_local_paths(local_path: str | os.PathLike[str], include_hidden: bool = False) -> list[str]:
    """Return sorted relative paths of regular files under *local_path*.

    Dot-files and dot-directories (``.git``, ``.obsidian``, ...) are
    skipped unless *include_hidden*.  Symlinked directories are not
    descended into.
    """
    result: list[str] = []
    base = Path(local_path)
    for dirpath, dirnames, filenames in os.walk(base):
        dp = Path(dirpath)
        dirnames[:] = sorted(
            d for d in dirnames
            if (include_hidden or not d.startswith("."))
            and not (dp / d).is_symlink()
        )
        for fname in filenames:
            if not include_hidden and fname.startswith("."):
                continue
            full = dp / fname
            if not full.is_file():
                continue
            result.append(full.relative_to(base).as_posix())
    result.sort()
    return result


HOME_PAGE = "index.md"


def scan_directory(
    local_path: str | os.PathLike[str],
    prefix: str = "",
    *,
    include_hidden: bool = False,
    home: str | None = None,
) -> list[LocalFileRecord]:
    """Read every file under *local_path* into a :class:`LocalFileRecord`.

    Record paths are relative to *local_path* and placed under *prefix*
    (the remote content root).  The *home* note, if given, is published
    as ``index.md`` instead of under its own name.

    Raises:
        NotADirectoryError: If *local_path* is not a directory.
        ValidationError: If *home* is missing or a local ``index.md``
            would collide with it.
    """
    base = Path(local_path)
    if not base.is_dir():
        raise NotADirectoryError(str(base))
    prefix = normalize_root(prefix)
    rel_paths = _walk_local_paths(base, include_hidden)
    if home is not None:
        home = _normalize_path(home)
        if home not in rel_paths:
            raise ValidationError(f"Home note {home!r} not found in {base}")
        if home != HOME_PAGE and HOME_PAGE in rel_paths:
            raise ValidationError(f"{HOME_PAGE} already exists; it would be replaced by {home!r}")
    records = []
    for rel in rel_paths:
        content = (base / rel).read_bytes()
        target = HOME_PAGE if rel == home else rel
        path = f"{prefix}/{target}" if prefix else target
        records.append(LocalFileRecord(path, content, len(content)))
    records.sort(key=lambda r: r.path)
    return records


def materializer_for(records: Iterable[LocalFileRecord]) -> Callable[[str], bytes]:
    """Return a ``path -> bytes`` function over already-read *records*."""
    by_path = {r.path: r.content for r in records}

    def materialize(path: str) -> bytes:
        return by_path[path]

    return materialize
