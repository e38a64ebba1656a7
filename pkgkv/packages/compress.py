"""Gzip helpers for aggregated metadata documents."""

from __future__ import annotations

import gzip
import zlib

from pkgkv.kv.errors import SerializationError


def gzip_bytes(data: bytes) -> bytes:
    """Compress at level 9. Output is deterministic (mtime is pinned)."""
    return gzip.compress(data, compresslevel=9, mtime=0)


def gunzip_bytes(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise SerializationError("gzip payload", e) from e
