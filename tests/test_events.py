"""Tests for version event decoding."""

from __future__ import annotations

import json

import pytest

from pkgkv.events import InvalidEventError, decode_version_event


def _metadata(**overrides) -> dict:
    data = {
        "package": "widget",
        "version": "1.2.0",
        "config": json.dumps({"name": "widget", "filename": "widget.min.js"}),
    }
    data.update(overrides)
    return data


def test_decodes_json_string_config():
    event = decode_version_event(_metadata())
    assert event.package == "widget"
    assert event.version == "1.2.0"
    assert event.config.filename == "widget.min.js"


def test_accepts_mapping_config():
    event = decode_version_event(_metadata(config={"name": "widget"}))
    assert event.config.name == "widget"


@pytest.mark.parametrize("field", ["package", "version", "config"])
def test_missing_field(field):
    data = _metadata()
    del data[field]
    with pytest.raises(InvalidEventError):
        decode_version_event(data)


def test_wrong_type():
    with pytest.raises(InvalidEventError):
        decode_version_event(_metadata(version=123))


def test_blank_version():
    with pytest.raises(InvalidEventError):
        decode_version_event(_metadata(version="   "))


def test_config_not_json():
    with pytest.raises(InvalidEventError):
        decode_version_event(_metadata(config="{broken"))


def test_config_name_mismatch():
    with pytest.raises(InvalidEventError, match="does not match"):
        decode_version_event(_metadata(config={"name": "other"}))


def test_non_mapping():
    with pytest.raises(InvalidEventError):
        decode_version_event(["widget", "1.2.0"])


def test_invalid_event_is_value_error():
    assert issubclass(InvalidEventError, ValueError)
