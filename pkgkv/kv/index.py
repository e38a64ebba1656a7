"""Root/package/version index records for a single version observation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pkgkv.kv.batcher import WriteItem
from pkgkv.kv.errors import KeyNotFoundError, SerializationError
from pkgkv.kv.sorted_list import insert_if_absent
from pkgkv.kv.store import KVStore
from pkgkv.packages.files import VersionFile

logger = logging.getLogger(__name__)

ROOT_KEY = "/"

_Doc = TypeVar("_Doc", bound=BaseModel)


class RootDocument(BaseModel):
    packages: list[str] = Field(default_factory=list)


class PackageDocument(BaseModel):
    versions: list[str] = Field(default_factory=list)


class FileRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    content_hash: str = Field(alias="sri")


class VersionDocument(BaseModel):
    files: list[FileRecord] = Field(default_factory=list)


def package_key(package: str) -> str:
    return package


def version_key(package: str, version: str) -> str:
    return f"{package}/{version}"


def file_key(package: str, version: str, name: str) -> str:
    return f"{package}/{version}/{name}"


def _dump(doc: BaseModel) -> bytes:
    return doc.model_dump_json(by_alias=True).encode("utf-8")


@dataclass(frozen=True)
class VersionRecords:
    """Everything one version ingestion writes, grouped by document kind."""

    files: list[WriteItem]
    version: WriteItem
    package: WriteItem
    root: WriteItem | None = None

    def index_items(self) -> list[WriteItem]:
        items = [self.version, self.package]
        if self.root is not None:
            items.append(self.root)
        return items

    def all_items(self) -> list[WriteItem]:
        return [*self.files, *self.index_items()]


class IndexBuilder:
    """Builds index records, reading the current package and root documents."""

    def __init__(self, store: KVStore, namespace: str) -> None:
        self.store = store
        self.namespace = namespace

    def build_records_for_version(
        self,
        package: str,
        version: str,
        files: Sequence[VersionFile],
        include_root: bool = True,
    ) -> VersionRecords:
        """Produce file, version, package and root records for *version*.

        The package and root documents are read first. A missing key means an
        empty document; any other read error propagates so a document that
        merely failed to load is never overwritten.

        With ``include_root=False`` the root document is neither read nor
        returned; the caller registers the package later with
        :meth:`build_root_record`.
        """
        pkg_doc = self._read(package_key(package), PackageDocument)
        root = self.build_root_record([package]) if include_root else None

        file_items = [WriteItem(file_key(package, version, f.name), f.content) for f in files]
        version_doc = VersionDocument(
            files=[FileRecord(name=f.name, content_hash=f.sri) for f in files]
        )
        pkg_doc = PackageDocument(versions=insert_if_absent(pkg_doc.versions, version))

        return VersionRecords(
            files=file_items,
            version=WriteItem(version_key(package, version), _dump(version_doc)),
            package=WriteItem(package_key(package), _dump(pkg_doc)),
            root=root,
        )

    def build_root_record(self, packages: Iterable[str]) -> WriteItem:
        """Read the root document once and insert every name in *packages*."""
        names = self._read(ROOT_KEY, RootDocument).packages
        for package in packages:
            names = insert_if_absent(names, package)
        return WriteItem(ROOT_KEY, _dump(RootDocument(packages=names)))

    def _read(self, key: str, model: type[_Doc]) -> _Doc:
        try:
            raw = self.store.read(self.namespace, key)
        except KeyNotFoundError:
            logger.info("KV key %r not found, starting a new document", key)
            return model()
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            raise SerializationError(f"{model.__name__} at {key!r}", e) from e
