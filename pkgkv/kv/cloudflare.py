"""KVStore implementation backed by the Cloudflare Workers KV REST API."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from urllib.parse import quote

import httpx

from pkgkv.kv.errors import KeyNotFoundError, ReadError
from pkgkv.kv.store import BulkEntry

logger = logging.getLogger(__name__)

# Workers KV accepts at most this many keys per bulk delete.
_DELETE_CHUNK = 10_000
_LIST_PAGE = 1000
# Stands in for a key in errors raised while listing.
_KEY_LISTING = "<key listing>"


class CloudflareKVStore:
    """Workers KV client that conforms to the KVStore protocol.

    Only the calls ingestion and administration need are implemented: value
    reads, bulk writes, key listing and bulk deletes.
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        base_url: str = "https://api.cloudflare.com/client/v4",
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._account_id = account_id
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _ns_path(self, namespace: str) -> str:
        return f"/accounts/{self._account_id}/storage/kv/namespaces/{namespace}"

    # -- KVStore protocol -----------------------------------------------------

    def read(self, namespace: str, key: str) -> bytes:
        url = f"{self._ns_path(namespace)}/values/{quote(key, safe='')}"
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as e:
            raise ReadError(namespace, key, e) from e

        if resp.status_code == 404:
            raise KeyNotFoundError(namespace, key)
        if resp.is_error:
            raise ReadError(namespace, key, f"HTTP {resp.status_code}: {_error_summary(resp)}")
        return resp.content

    def write_batch(self, namespace: str, entries: list[BulkEntry]) -> bool:
        body = [entry.model_dump() for entry in entries]
        resp = self._client.put(f"{self._ns_path(namespace)}/bulk", json=body)
        return _envelope_success(resp)

    def list_keys(self, namespace: str) -> list[str]:
        keys: list[str] = []
        cursor = ""
        while True:
            params = {"limit": _LIST_PAGE}
            if cursor:
                params["cursor"] = cursor
            try:
                resp = self._client.get(f"{self._ns_path(namespace)}/keys", params=params)
            except httpx.HTTPError as e:
                raise ReadError(namespace, _KEY_LISTING, e) from e
            if resp.is_error:
                raise ReadError(
                    namespace, _KEY_LISTING, f"HTTP {resp.status_code}: {_error_summary(resp)}"
                )
            try:
                data = resp.json()
            except ValueError as e:
                raise ReadError(namespace, _KEY_LISTING, e) from e
            keys.extend(item["name"] for item in data.get("result", []))
            cursor = (data.get("result_info") or {}).get("cursor") or ""
            if not cursor:
                return keys

    def delete_keys(self, namespace: str, keys: Iterable[str]) -> bool:
        keys = list(keys)
        ok = True
        for start in range(0, len(keys), _DELETE_CHUNK):
            chunk = keys[start : start + _DELETE_CHUNK]
            try:
                resp = self._client.request(
                    "DELETE", f"{self._ns_path(namespace)}/bulk", json=chunk
                )
            except httpx.HTTPError as e:
                logger.warning("bulk delete failed ns=%s chunk_start=%d: %s", namespace, start, e)
                ok = False
                continue
            if not _envelope_success(resp):
                logger.warning("bulk delete failed ns=%s chunk_start=%d", namespace, start)
                ok = False
        return ok


def _envelope_success(resp: httpx.Response) -> bool:
    """Read the ``success`` flag from a Cloudflare API response envelope."""
    if resp.is_error:
        logger.warning("KV API returned HTTP %d: %s", resp.status_code, _error_summary(resp))
        return False
    try:
        return bool(resp.json().get("success", False))
    except ValueError:
        logger.warning("KV API returned a non-JSON body")
        return False


def _error_summary(resp: httpx.Response) -> str:
    try:
        errors = resp.json().get("errors") or []
    except ValueError:
        return resp.text[:200]
    return "; ".join(f"{e.get('code')}: {e.get('message')}" for e in errors) or resp.reason_phrase
