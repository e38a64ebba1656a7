"""Tests for the ingest worker pool."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

from pkgkv.ingest import IngestJob, IngestPool, IngestResult, Ingestor, VersionSource
from pkgkv.kv.errors import ReadError
from pkgkv.kv.index import ROOT_KEY
from pkgkv.kv.store import MemoryKVStore
from pkgkv.packages import Package


def _job(name: str, *versions: str) -> IngestJob:
    return IngestJob(
        descriptor=Package(name=name),
        versions=[VersionSource(version=v, version_dir=Path(f"/libs/{name}/{v}")) for v in versions],
    )


def _fake_ingestor(fail: set[tuple[str, str]] = frozenset(), crash: set[tuple[str, str]] = frozenset()):
    ingestor = MagicMock(spec=Ingestor)

    def ingest_version(descriptor, version, version_dir, update_root=True):
        if (descriptor.name, version) in crash:
            raise RuntimeError("disk on fire")
        error = "boom" if (descriptor.name, version) in fail else None
        return IngestResult(package=descriptor.name, version=version, error=error)

    ingestor.ingest_version.side_effect = ingest_version
    return ingestor


def test_results_in_job_order():
    pool = IngestPool(_fake_ingestor(), max_workers=4)
    results = pool.run([_job("c", "1", "2"), _job("a", "1"), _job("b", "3")])
    assert [(r.package, r.version) for r in results] == [("c", "1"), ("c", "2"), ("a", "1"), ("b", "3")]
    assert all(r.ok for r in results)


def test_package_stops_at_first_failure():
    pool = IngestPool(_fake_ingestor(fail={("a", "2")}), max_workers=2)
    results = pool.run([_job("a", "1", "2", "3"), _job("b", "1")])
    assert [(r.package, r.version, r.ok) for r in results] == [
        ("a", "1", True),
        ("a", "2", False),
        ("b", "1", True),
    ]


def test_crash_is_recorded_not_raised():
    pool = IngestPool(_fake_ingestor(crash={("a", "1")}), max_workers=2)
    results = pool.run([_job("a", "1"), _job("b", "1")])
    assert results[0].error == "disk on fire"
    assert results[1].ok


def test_empty_jobs():
    assert IngestPool(_fake_ingestor(), max_workers=2).run([]) == []


def test_versions_of_one_package_run_on_one_thread():
    threads: dict[str, set[int]] = {}
    lock = threading.Lock()
    ingestor = MagicMock(spec=Ingestor)

    def ingest_version(descriptor, version, version_dir, update_root=True):
        with lock:
            threads.setdefault(descriptor.name, set()).add(threading.get_ident())
        return IngestResult(package=descriptor.name, version=version)

    ingestor.ingest_version.side_effect = ingest_version
    IngestPool(ingestor, max_workers=4).run([_job("a", "1", "2", "3"), _job("b", "1", "2")])

    assert all(len(idents) == 1 for idents in threads.values())


def test_workers_do_not_touch_root():
    ingestor = _fake_ingestor()
    IngestPool(ingestor, max_workers=2).run([_job("b", "1"), _job("a", "1")])

    for call in ingestor.ingest_version.call_args_list:
        assert call.kwargs["update_root"] is False
    ingestor.register_packages.assert_called_once_with(["a", "b"])


def test_only_ingested_packages_are_registered():
    ingestor = _fake_ingestor(fail={("a", "1")}, crash={("c", "1")})
    IngestPool(ingestor, max_workers=3).run([_job("a", "1"), _job("b", "1", "2"), _job("c", "1")])
    ingestor.register_packages.assert_called_once_with(["b"])


def test_nothing_registered_when_all_fail():
    ingestor = _fake_ingestor(fail={("a", "1")})
    IngestPool(ingestor, max_workers=1).run([_job("a", "1")])
    ingestor.register_packages.assert_not_called()


def test_root_failure_is_reported_on_results():
    ingestor = _fake_ingestor()
    ingestor.register_packages.side_effect = ReadError("index", ROOT_KEY, "HTTP 500")

    results = IngestPool(ingestor, max_workers=2).run([_job("a", "1", "2"), _job("b", "1")])

    assert [(r.package, r.version, r.ok) for r in results] == [
        ("a", "1", True),
        ("a", "2", False),
        ("b", "1", False),
    ]
    assert "root document update failed" in results[1].error


class _LaggyStore(MemoryKVStore):
    """Memory store with network-like latency on reads and writes."""

    def read(self, namespace, key):
        time.sleep(0.01)
        return super().read(namespace, key)

    def write_batch(self, namespace, entries):
        time.sleep(0.01)
        return super().write_batch(namespace, entries)


def test_root_lists_every_package_under_latency(sample_config, tmp_path):
    store = _LaggyStore()
    jobs = []
    for i in range(20):
        name = f"pkg{i:02d}"
        version_dir = tmp_path / name / "1.0.0"
        version_dir.mkdir(parents=True)
        (version_dir / "index.js").write_text(f"// {name}")
        jobs.append(
            IngestJob(
                descriptor=Package(name=name),
                versions=[VersionSource(version="1.0.0", version_dir=version_dir)],
            )
        )

    results = IngestPool(Ingestor(store, sample_config), max_workers=8).run(jobs)

    assert all(r.ok for r in results)
    root = json.loads(store.read("index-ns", ROOT_KEY))["packages"]
    assert root == sorted(f"pkg{i:02d}" for i in range(20))
