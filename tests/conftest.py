"""Shared test fixtures for pkgkv."""

import pytest

from pkgkv.config.models import KVConfig, NamespaceConfig, PkgKVConfig
from pkgkv.kv.store import MemoryKVStore
from pkgkv.packages.models import Package


@pytest.fixture
def sample_config():
    return PkgKVConfig(
        kv=KVConfig(provider="memory"),
        namespaces=NamespaceConfig(files="files-ns", index="index-ns", metadata="meta-ns"),
    )


@pytest.fixture
def memory_store():
    return MemoryKVStore()


@pytest.fixture
def sample_package():
    return Package(
        name="widget",
        description="A tiny widget library",
        filename="widget.min.js",
        keywords=["widget", "ui"],
        license="MIT",
        homepage="https://example.com/widget",
        autoupdate={"source": "npm", "target": "widget"},
    )


@pytest.fixture
def version_dir(tmp_path):
    """A version directory with a nested file layout."""
    root = tmp_path / "widget" / "1.2.0"
    (root / "css").mkdir(parents=True)
    (root / "widget.js").write_text("console.log('widget');")
    (root / "widget.min.js").write_text("console.log('w');")
    (root / "css" / "widget.css").write_text(".widget { color: red; }")
    return root
