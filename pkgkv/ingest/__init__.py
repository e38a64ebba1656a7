"""Version ingestion and the parallel worker pool."""

from pkgkv.ingest.ingestor import IngestResult, Ingestor
from pkgkv.ingest.pool import IngestJob, IngestPool, VersionSource

__all__ = ["IngestJob", "IngestPool", "IngestResult", "Ingestor", "VersionSource"]
