"""Offline content addressing compatible with git blob ids.

Git blob OID = SHA-1(``blob <size>\\0`` + content), so a local file can be
compared with a remote tree entry without downloading anything.
"""

from __future__ import annotations

import hashlib
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

_HASH_CHUNK_SIZE = 65536

# Below this many payloads a thread pool costs more than it saves
_PARALLEL_THRESHOLD = 8


def _blob_hasher(size: int) -> hashlib._Hash:
    """Return a SHA-1 hasher pre-loaded with the git blob header."""
    return hashlib.sha1(f"blob {size}\0".encode())


def blob_hash(content: bytes) -> str:
    """Return the git blob id of *content* as lower-case hex."""
    h = _blob_hasher(len(content))
    h.update(content)
    return h.hexdigest()


def hash_file(path: str | os.PathLike[str]) -> str:
    """Return the git blob id of a file on disk, streaming its content."""
    size = os.stat(path).st_size
    h = _blob_hasher(size)
    with open(path, "rb") as f:
        while True:
            chunk = f.read(_HASH_CHUNK_SIZE)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def hash_many(contents: Sequence[bytes], max_workers: int | None = None) -> list[str]:
    """Hash several payloads, concurrently when there are enough of them.

    Results are returned in input order.  hashlib releases the GIL for
    large buffers, so threads give real parallelism here.
    """
    if len(contents) < _PARALLEL_THRESHOLD or max_workers == 1:
        return [blob_hash(c) for c in contents]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(blob_hash, contents))
