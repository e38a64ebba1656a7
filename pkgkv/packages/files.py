"""Reading a version directory into file records."""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class VersionFile:
    """One file of a published version: relative name, bytes and SRI digest."""

    name: str
    content: bytes
    sri: str


def calculate_sri(content: bytes) -> str:
    """Subresource-integrity digest (``sha512-<base64>``) of *content*."""
    digest = hashlib.sha512(content).digest()
    return "sha512-" + base64.b64encode(digest).decode("ascii")


def list_files_in_version(version_dir: Path) -> list[str]:
    """Relative POSIX paths of every regular file under *version_dir*, sorted."""
    version_dir = Path(version_dir)
    if not version_dir.is_dir():
        raise NotADirectoryError(f"version directory not found: {version_dir}")
    return sorted(
        p.relative_to(version_dir).as_posix()
        for p in version_dir.rglob("*")
        if p.is_file()
    )


def read_version_files(version_dir: Path) -> list[VersionFile]:
    version_dir = Path(version_dir)
    files = []
    for name in list_files_in_version(version_dir):
        content = (version_dir / name).read_bytes()
        files.append(VersionFile(name=name, content=content, sri=calculate_sri(content)))
    return files
