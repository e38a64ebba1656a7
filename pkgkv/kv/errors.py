"""Error taxonomy for key-value reads, writes and document encoding."""

from __future__ import annotations


class KVError(Exception):
    """Base class for every failure raised by the key-value layer."""


class KeyNotFoundError(KVError):
    """The key does not exist in the namespace.

    Expected on first ingestion of a package; callers branch on it to create
    documents from scratch.
    """

    def __init__(self, namespace: str, key: str) -> None:
        self.namespace = namespace
        self.key = key
        super().__init__(f"key {key!r} not found in namespace {namespace!r}")


class ReadError(KVError):
    """Any read failure other than a missing key (auth, network, server)."""

    def __init__(self, namespace: str, key: str, cause: Exception | str) -> None:
        self.namespace = namespace
        self.key = key
        super().__init__(f"failed to read {key!r} from namespace {namespace!r}: {cause}")
        if isinstance(cause, Exception):
            self.__cause__ = cause


class OversizedItemError(KVError):
    """A single value exceeds the per-item ceiling once encoded."""

    def __init__(self, key: str, size: int, limit: int) -> None:
        self.key = key
        self.size = size
        self.limit = limit
        super().__init__(f"oversized item {key!r}: {size} bytes encoded (limit {limit})")


class WriteError(KVError):
    """A bulk batch submission failed.

    Batches submitted before the failing one are not rolled back; their keys
    are available in ``written_keys``.
    """

    def __init__(
        self,
        namespace: str,
        batch_index: int,
        batch_count: int,
        item_count: int,
        written_keys: list[str],
        cause: Exception | str,
    ) -> None:
        self.namespace = namespace
        self.batch_index = batch_index
        self.batch_count = batch_count
        self.item_count = item_count
        self.written_keys = written_keys
        super().__init__(
            f"bulk write {batch_index + 1}/{batch_count} to namespace {namespace!r} "
            f"({item_count} items) failed: {cause}"
        )
        if isinstance(cause, Exception):
            self.__cause__ = cause


class SerializationError(KVError):
    """A stored or outgoing document could not be encoded or decoded."""

    def __init__(self, what: str, cause: Exception) -> None:
        self.what = what
        super().__init__(f"failed to serialize {what}: {cause}")
        self.__cause__ = cause
