"""Key-value store interface and an in-memory implementation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from pkgkv.kv.encoding import decode_value
from pkgkv.kv.errors import KeyNotFoundError

logger = logging.getLogger(__name__)


class BulkEntry(BaseModel):
    """One key/value pair in a bulk write request."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str
    base64: bool = False


@runtime_checkable
class KVStore(Protocol):
    """Namespaced key-value backend.

    ``read`` raises KeyNotFoundError for missing keys and ReadError for every
    other failure. ``write_batch`` returns the store's success flag.
    """

    def read(self, namespace: str, key: str) -> bytes: ...

    def write_batch(self, namespace: str, entries: list[BulkEntry]) -> bool: ...

    def list_keys(self, namespace: str) -> list[str]: ...

    def delete_keys(self, namespace: str, keys: Iterable[str]) -> bool: ...


class MemoryKVStore:
    """KVStore kept in process memory.

    Used for local dry runs and tests. Every submitted batch is recorded in
    ``batches`` as ``(namespace, [keys])`` so callers can inspect how writes
    were split.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, bytes]] = {}
        self._lock = threading.Lock()
        self.batches: list[tuple[str, list[str]]] = []

    def read(self, namespace: str, key: str) -> bytes:
        with self._lock:
            try:
                return self._data[namespace][key]
            except KeyError:
                raise KeyNotFoundError(namespace, key) from None

    def write_batch(self, namespace: str, entries: list[BulkEntry]) -> bool:
        with self._lock:
            bucket = self._data.setdefault(namespace, {})
            for entry in entries:
                value = decode_value(entry.value) if entry.base64 else entry.value.encode("utf-8")
                bucket[entry.key] = value
            self.batches.append((namespace, [e.key for e in entries]))
        logger.debug("memory write ns=%s entries=%d", namespace, len(entries))
        return True

    def list_keys(self, namespace: str) -> list[str]:
        with self._lock:
            return sorted(self._data.get(namespace, {}))

    def delete_keys(self, namespace: str, keys: Iterable[str]) -> bool:
        with self._lock:
            bucket = self._data.get(namespace, {})
            for key in keys:
                bucket.pop(key, None)
        return True
