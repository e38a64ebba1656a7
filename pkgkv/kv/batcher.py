"""Packing of key/value writes into size-bounded bulk requests."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pkgkv.config.models import LimitsConfig
from pkgkv.kv.encoding import encode_value
from pkgkv.kv.errors import OversizedItemError, WriteError
from pkgkv.kv.store import BulkEntry, KVStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteItem:
    """A single value to store under *key*."""

    key: str
    value: bytes


class BulkBatcher:
    """Writes items to one namespace in as few bulk requests as the limits allow.

    Items are packed greedily in input order. A batch is closed as soon as the
    next item would push its encoded total past ``max_bulk_payload``. Every
    item must fit under ``max_file_size`` on its own, which is checked for the
    whole input before the first request goes out.
    """

    def __init__(self, store: KVStore, namespace: str, limits: LimitsConfig) -> None:
        self.store = store
        self.namespace = namespace
        self.limits = limits

    def plan(self, items: Sequence[WriteItem]) -> list[list[BulkEntry]]:
        """Encode and split *items* into batches without submitting anything.

        Raises OversizedItemError for the first item over the per-item ceiling.
        """
        batches: list[list[BulkEntry]] = []
        current: list[BulkEntry] = []
        total = 0
        for item in items:
            encoded = encode_value(item.value)
            if encoded.size > self.limits.max_file_size:
                raise OversizedItemError(item.key, encoded.size, self.limits.max_file_size)
            if current and total + encoded.size > self.limits.max_bulk_payload:
                batches.append(current)
                current = []
                total = 0
            current.append(BulkEntry(key=item.key, value=encoded.data, base64=True))
            total += encoded.size
        if current:
            batches.append(current)
        return batches

    def write_all(self, items: Sequence[WriteItem]) -> list[str]:
        """Submit every item and return the written keys in input order.

        Batches go out sequentially. The first failing batch raises WriteError
        and the remaining batches are skipped; earlier batches stay written.
        """
        batches = self.plan(items)
        written: list[str] = []
        for i, batch in enumerate(batches):
            logger.debug(
                "writing bulk %d/%d ns=%s entries=%d", i + 1, len(batches), self.namespace, len(batch)
            )
            try:
                ok = self.store.write_batch(self.namespace, batch)
            except Exception as e:
                raise WriteError(self.namespace, i, len(batches), len(batch), written, e) from e
            if not ok:
                raise WriteError(
                    self.namespace, i, len(batches), len(batch), written, "store reported failure"
                )
            written.extend(entry.key for entry in batch)

        logger.info("wrote %d keys in %d bulk request(s) to ns=%s", len(written), len(batches), self.namespace)
        return written
