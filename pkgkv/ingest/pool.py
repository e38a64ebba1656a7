"""Fixed-size worker pool for ingesting independent packages in parallel."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from pydantic import BaseModel, Field

from pkgkv.ingest.ingestor import IngestResult, Ingestor
from pkgkv.kv.errors import KVError
from pkgkv.packages.models import Package

logger = logging.getLogger(__name__)


class VersionSource(BaseModel):
    version: str
    version_dir: Path


class IngestJob(BaseModel):
    """One package and the versions to ingest for it, in order."""

    descriptor: Package
    versions: list[VersionSource] = Field(default_factory=list)


class IngestPool:
    """Runs ingest jobs on a bounded thread pool.

    Packages are processed in parallel; the versions of one package run
    sequentially on a single worker and stop at the first failure. The root
    document is shared by every package, so workers leave it alone and the
    pool registers all packages with at least one ingested version in one
    update after the workers join. Results come back in job order, and an
    unexpected exception in one job is recorded on its result without
    stopping the others.
    """

    def __init__(self, ingestor: Ingestor, max_workers: int) -> None:
        self.ingestor = ingestor
        self.max_workers = max_workers

    def _run_one(self, job: IngestJob) -> list[IngestResult]:
        results = []
        for source in job.versions:
            try:
                result = self.ingestor.ingest_version(
                    job.descriptor, source.version, source.version_dir, update_root=False
                )
            except Exception as e:
                logger.exception("ingest %s@%s crashed", job.descriptor.name, source.version)
                result = IngestResult(
                    package=job.descriptor.name, version=source.version, error=str(e)
                )
            results.append(result)
            if not result.ok:
                break
        return results

    def run(self, jobs: list[IngestJob]) -> list[IngestResult]:
        if not jobs:
            return []
        workers = min(self.max_workers, len(jobs))
        logger.info("running %d package job(s) on %d worker(s)", len(jobs), workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            per_job = list(pool.map(self._run_one, jobs))

        self._register(per_job)
        return [r for results in per_job for r in results]

    def _register(self, per_job: list[list[IngestResult]]) -> None:
        # Last successful result per package; a failed root write is reported there.
        landed = {}
        for results in per_job:
            for r in results:
                if r.ok:
                    landed[r.package] = r
        if not landed:
            return

        try:
            self.ingestor.register_packages(sorted(landed))
        except KVError as e:
            logger.error("root document update failed: %s", e)
            for r in landed.values():
                r.error = f"root document update failed: {e}"
