"""Package descriptors, version file listings and compression helpers."""

from pkgkv.packages.compress import gunzip_bytes, gzip_bytes
from pkgkv.packages.files import (
    VersionFile,
    calculate_sri,
    list_files_in_version,
    read_version_files,
)
from pkgkv.packages.models import Asset, Package

__all__ = [
    "Asset",
    "Package",
    "VersionFile",
    "calculate_sri",
    "gunzip_bytes",
    "gzip_bytes",
    "list_files_in_version",
    "read_version_files",
]
