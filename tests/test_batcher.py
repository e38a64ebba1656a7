"""Tests for the bulk batcher."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from pkgkv.config.models import LimitsConfig
from pkgkv.kv.batcher import BulkBatcher, WriteItem
from pkgkv.kv.encoding import encode_value
from pkgkv.kv.errors import OversizedItemError, WriteError
from pkgkv.kv.store import MemoryKVStore


def _item(key: str, encoded_size: int) -> WriteItem:
    """An item whose base64 form is exactly *encoded_size* bytes (multiple of 4)."""
    assert encoded_size % 4 == 0
    return WriteItem(key, b"x" * (encoded_size // 4 * 3))


@pytest.fixture
def limits():
    return LimitsConfig(max_file_size=1000, max_bulk_payload=2500)


def test_item_helper_sizes():
    assert encode_value(_item("k", 900).value).size == 900


def test_four_items_make_two_batches(limits):
    store = MemoryKVStore()
    batcher = BulkBatcher(store, "ns", limits)
    items = [_item(f"k{i}", 900) for i in range(4)]

    keys = batcher.write_all(items)

    assert keys == ["k0", "k1", "k2", "k3"]
    assert store.batches == [("ns", ["k0", "k1"]), ("ns", ["k2", "k3"])]


def test_batches_never_exceed_ceiling_and_preserve_order(limits):
    sizes = [400, 1000, 1000, 100, 800, 4, 1000, 996, 500, 500, 500, 500, 500, 100]
    items = [_item(f"k{i}", s) for i, s in enumerate(sizes)]
    batcher = BulkBatcher(MemoryKVStore(), "ns", limits)

    batches = batcher.plan(items)

    for batch in batches:
        assert sum(len(e.value) for e in batch) <= limits.max_bulk_payload
    assert [e.key for batch in batches for e in batch] == [i.key for i in items]


def test_exact_ceiling_fits_in_one_batch():
    limits = LimitsConfig(max_file_size=1000, max_bulk_payload=2000)
    batcher = BulkBatcher(MemoryKVStore(), "ns", limits)
    assert len(batcher.plan([_item("a", 1000), _item("b", 1000)])) == 1


def test_entries_are_base64_flagged(limits):
    batcher = BulkBatcher(MemoryKVStore(), "ns", limits)
    [[entry]] = batcher.plan([WriteItem("k", b"abc")])
    assert entry.base64 is True
    assert entry.value == "YWJj"


def test_oversized_item_rejected_before_any_write(limits):
    store = MagicMock()
    batcher = BulkBatcher(store, "ns", limits)
    items = [_item("ok", 100), _item("too-big", 1100)]

    with pytest.raises(OversizedItemError) as exc_info:
        batcher.write_all(items)

    assert exc_info.value.key == "too-big"
    assert exc_info.value.size == 1100
    assert exc_info.value.limit == 1000
    store.write_batch.assert_not_called()


def test_empty_input_writes_nothing(limits):
    store = MagicMock()
    assert BulkBatcher(store, "ns", limits).write_all([]) == []
    store.write_batch.assert_not_called()


def test_failed_batch_stops_remaining(limits):
    store = MagicMock()
    store.write_batch.side_effect = [True, False, True]
    batcher = BulkBatcher(store, "ns", limits)
    items = [_item(f"k{i}", 900) for i in range(6)]

    with pytest.raises(WriteError) as exc_info:
        batcher.write_all(items)

    err = exc_info.value
    assert err.batch_index == 1
    assert err.batch_count == 3
    assert err.item_count == 2
    assert err.written_keys == ["k0", "k1"]
    assert store.write_batch.call_count == 2


def test_transport_exception_wrapped(limits):
    store = MagicMock()
    boom = ConnectionError("reset by peer")
    store.write_batch.side_effect = boom
    batcher = BulkBatcher(store, "ns", limits)

    with pytest.raises(WriteError) as exc_info:
        batcher.write_all([WriteItem("k", b"v")])

    assert exc_info.value.__cause__ is boom
    assert exc_info.value.written_keys == []
    assert "1/1" in str(exc_info.value)
