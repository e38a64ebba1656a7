"""Aggregated metadata: one gzipped JSON document per package with every version's assets."""

from __future__ import annotations

import logging

from pkgkv.config.models import LimitsConfig
from pkgkv.kv.batcher import BulkBatcher, WriteItem
from pkgkv.kv.errors import KeyNotFoundError
from pkgkv.kv.store import KVStore
from pkgkv.packages.compress import gunzip_bytes, gzip_bytes
from pkgkv.packages.models import Asset, Package

logger = logging.getLogger(__name__)


def merge_aggregated_metadata(
    existing: Package | None, base: Package, new_version: str, new_asset: Asset
) -> tuple[Package, bool]:
    """Merge *new_asset* into a package's aggregated document.

    Returns the new document and whether an existing one was found. Without
    an existing document the result starts from *base*. An asset already
    present for *new_version* is replaced, never duplicated. ``version`` always
    ends up as *new_version*. Neither input is modified.
    """
    if existing is None:
        merged = base.model_copy(deep=True)
        merged.assets = [new_asset]
        found = False
    else:
        merged = existing.model_copy(deep=True)
        if merged.has_version(new_version):
            merged.update_version(new_version, new_asset)
        else:
            merged.assets.append(new_asset)
        found = True
    merged.version = new_version
    return merged, found


class Aggregator:
    """Reads, merges and rewrites aggregated metadata in its own namespace."""

    def __init__(self, store: KVStore, namespace: str, limits: LimitsConfig) -> None:
        self.store = store
        self.namespace = namespace
        self._batcher = BulkBatcher(store, namespace, limits)

    def read(self, name: str) -> Package:
        """Fetch and decode the aggregated document for *name*.

        Raises KeyNotFoundError when the package was never aggregated.
        """
        raw = self.store.read(self.namespace, name)
        return Package.from_json(gunzip_bytes(raw))

    def update(self, base: Package, new_version: str, new_asset: Asset) -> tuple[list[str], bool]:
        """Merge a version into the stored document and write it back.

        Any read failure other than a missing key propagates before anything
        is written.
        """
        try:
            existing = self.read(base.name)
        except KeyNotFoundError:
            logger.info("KV key %r not found, inserting aggregated metadata", base.name)
            existing = None

        merged, found = merge_aggregated_metadata(existing, base, new_version, new_asset)
        if found:
            logger.info(
                "aggregated metadata for %r found, %d version(s) after merging %s",
                base.name,
                len(merged.assets),
                new_version,
            )

        item = WriteItem(key=merged.name, value=gzip_bytes(merged.to_json()))
        return self._batcher.write_all([item]), found
