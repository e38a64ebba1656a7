"""Pydantic models for package descriptors and their assets."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pkgkv.kv.errors import SerializationError


class Asset(BaseModel):
    """The file manifest of one published version."""

    version: str
    files: list[str] = Field(default_factory=list)


class Package(BaseModel):
    """A package descriptor, optionally carrying aggregated assets.

    Descriptor fields this model doesn't name (``autoupdate``, ``repository``,
    ``author`` ...) are kept as extras and written back unchanged.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    version: str | None = None
    description: str | None = None
    filename: str | None = None
    keywords: list[str] | None = None
    license: str | None = None
    homepage: str | None = None
    assets: list[Asset] = Field(default_factory=list)

    def has_version(self, version: str) -> bool:
        return any(a.version == version for a in self.assets)

    def update_version(self, version: str, asset: Asset) -> None:
        """Replace the asset entry for *version* in place."""
        for i, existing in enumerate(self.assets):
            if existing.version == version:
                self.assets[i] = asset
                return
        raise KeyError(version)

    @classmethod
    def from_json(cls, data: bytes | str) -> Package:
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise SerializationError("package descriptor", e) from e

    def to_json(self) -> bytes:
        return self.model_dump_json(exclude_none=True).encode("utf-8")
