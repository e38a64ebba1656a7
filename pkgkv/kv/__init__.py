"""Key-value layer: stores, bulk batching and the error taxonomy."""

import os

from pkgkv.config.models import KVConfig
from pkgkv.kv.batcher import BulkBatcher, WriteItem
from pkgkv.kv.cloudflare import CloudflareKVStore
from pkgkv.kv.encoding import EncodedValue, decode_value, encode_value
from pkgkv.kv.errors import (
    KeyNotFoundError,
    KVError,
    OversizedItemError,
    ReadError,
    SerializationError,
    WriteError,
)
from pkgkv.kv.sorted_list import insert_if_absent
from pkgkv.kv.store import BulkEntry, KVStore, MemoryKVStore


def create_store(config: KVConfig) -> KVStore:
    """Create a KV store from config.

    For the cloudflare provider the account ID and API token are resolved from
    the environment variables named in config.
    """
    if config.provider == "memory":
        return MemoryKVStore()
    if config.provider != "cloudflare":
        raise ValueError(f"Unsupported KV provider: {config.provider!r}")

    account_id = os.environ.get(config.account_id_env, "")
    token = os.environ.get(config.api_token_env, "")
    if not account_id or not token:
        raise ValueError(
            f"KV credentials not found. Set the {config.account_id_env} and "
            f"{config.api_token_env} environment variables."
        )
    return CloudflareKVStore(
        account_id=account_id,
        api_token=token,
        base_url=config.base_url,
        timeout=config.timeout,
    )


__all__ = [
    "BulkBatcher",
    "BulkEntry",
    "CloudflareKVStore",
    "EncodedValue",
    "KVError",
    "KVStore",
    "KeyNotFoundError",
    "MemoryKVStore",
    "OversizedItemError",
    "ReadError",
    "SerializationError",
    "WriteError",
    "WriteItem",
    "create_store",
    "decode_value",
    "encode_value",
    "insert_if_absent",
]
