"""Validated decoding of version-published event metadata."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from pkgkv.packages.models import Package


class InvalidEventError(ValueError):
    """Event metadata is missing a required field or has the wrong shape."""


class VersionEvent(BaseModel):
    """A new version of *package* is ready to ingest; *config* is its descriptor."""

    package: str = Field(min_length=1)
    version: str = Field(min_length=1)
    config: Package

    @field_validator("package", "version")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("cannot be empty or whitespace")
        return v

    @field_validator("config", mode="before")
    @classmethod
    def parse_config(cls, v: Any) -> Any:
        # Object storage metadata carries the descriptor as a JSON string.
        if isinstance(v, (str, bytes)):
            return json.loads(v)
        return v

    @model_validator(mode="after")
    def config_matches_package(self) -> "VersionEvent":
        if self.config.name != self.package:
            raise ValueError(
                f"config name {self.config.name!r} does not match package {self.package!r}"
            )
        return self


def decode_version_event(metadata: Mapping[str, Any]) -> VersionEvent:
    """Decode loosely typed event metadata, failing fast on bad input."""
    if not isinstance(metadata, Mapping):
        raise InvalidEventError(f"event metadata must be a mapping, got {type(metadata).__name__}")
    try:
        return VersionEvent.model_validate(dict(metadata))
    except (ValidationError, json.JSONDecodeError) as e:
        raise InvalidEventError(f"invalid version event: {e}") from e
