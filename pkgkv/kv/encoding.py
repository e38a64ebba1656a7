"""Transport encoding for bulk values."""

from __future__ import annotations

import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class EncodedValue:
    data: str
    size: int


def encode_value(raw: bytes) -> EncodedValue:
    """Base64-encode *raw* for a bulk request and report the encoded length.

    The store decodes the value on arrival, so the stored size is the raw
    size. Request limits apply to the encoded form.
    """
    data = base64.b64encode(raw).decode("ascii")
    return EncodedValue(data=data, size=len(data))


def decode_value(data: str) -> bytes:
    return base64.b64decode(data)
