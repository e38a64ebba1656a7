"""Top-level ingestion of one package version into the KV projection."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from pkgkv.config.models import PkgKVConfig
from pkgkv.kv.aggregate import Aggregator
from pkgkv.kv.batcher import BulkBatcher
from pkgkv.kv.errors import KVError, WriteError
from pkgkv.kv.index import IndexBuilder
from pkgkv.kv.store import KVStore
from pkgkv.packages.files import read_version_files
from pkgkv.packages.models import Asset, Package

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    """Outcome of ingesting one version.

    ``written_keys`` lists every key submitted before the run ended, including
    keys from batches that succeeded before a later failure.
    """

    package: str
    version: str
    written_keys: list[str] = Field(default_factory=list)
    found_existing: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Ingestor:
    """Writes a version's files, index documents and aggregated metadata."""

    def __init__(self, store: KVStore, config: PkgKVConfig) -> None:
        self.store = store
        self.config = config
        ns = config.namespaces
        self.index_builder = IndexBuilder(store, ns.index)
        self.aggregator = Aggregator(store, ns.metadata, config.limits)
        self._files_batcher = BulkBatcher(store, ns.files, config.limits)
        self._index_batcher = BulkBatcher(store, ns.index, config.limits)

    def ingest_version(
        self,
        descriptor: Package,
        version: str,
        version_dir: Path,
        update_root: bool = True,
    ) -> IngestResult:
        """Ingest *version* of *descriptor* from the files under *version_dir*.

        KV failures end the run and are reported in the result together with
        the keys already written; nothing is retried. Callers that ingest many
        packages at once pass ``update_root=False`` and call
        :meth:`register_packages` afterwards.
        """
        result = IngestResult(package=descriptor.name, version=version)
        try:
            files = read_version_files(version_dir)
            logger.info("ingesting %s@%s (%d files)", descriptor.name, version, len(files))

            records = self.index_builder.build_records_for_version(
                descriptor.name, version, files, include_root=update_root
            )
            if self.config.namespaces.files == self.config.namespaces.index:
                result.written_keys += self._index_batcher.write_all(records.all_items())
            else:
                result.written_keys += self._files_batcher.write_all(records.files)
                result.written_keys += self._index_batcher.write_all(records.index_items())

            asset = Asset(version=version, files=[f.name for f in files])
            keys, found = self.aggregator.update(descriptor, version, asset)
            result.written_keys += keys
            result.found_existing = found
        except WriteError as e:
            result.written_keys += e.written_keys
            result.error = str(e)
        except KVError as e:
            result.error = str(e)

        if result.error:
            logger.error("ingest %s@%s failed: %s", descriptor.name, version, result.error)
        else:
            logger.info(
                "ingested %s@%s: %d keys written, existing metadata found=%s",
                descriptor.name,
                version,
                len(result.written_keys),
                result.found_existing,
            )
        return result

    def register_packages(self, packages: list[str]) -> list[str]:
        """Add *packages* to the root document in a single read and write.

        Raises the underlying ``KVError`` on failure.
        """
        item = self.index_builder.build_root_record(packages)
        logger.info("registering %d package(s) in the root document", len(packages))
        return self._index_batcher.write_all([item])
