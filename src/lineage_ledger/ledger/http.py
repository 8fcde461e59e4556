"""JSON-RPC transport for the ledger over httpx."""
from __future__ import annotations

import itertools
from typing import Any

import httpx

from lineage_ledger.config import CONFIG, TreeConfig
from lineage_ledger.errors import LedgerRpcError
from lineage_ledger.logging import get_logger

logger = get_logger(__name__)


class HttpLedgerContract:
    """``LedgerContract`` backed by JSON-RPC 2.0 POSTs.

    Example:
        async with HttpLedgerContract(config) as contract:
            api = LedgerQueryApi(contract, QueryCache())
            total = await api.get_total_versions("0xabc...", ttl_ms=60_000)

    No retries are attempted; failures surface as :class:`LedgerRpcError`.
    """

    def __init__(self, config: TreeConfig | None = None, client: httpx.AsyncClient | None = None) -> None:
        """Initialize transport.

        Args:
            config: Endpoint settings. Defaults to the environment config.
            client: Pre-built client (tests, shared pools). It is not closed
                by this contract.
        """
        self.config = config or CONFIG
        self._client = client
        self._owns_client = client is None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> HttpLedgerContract:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.rpc_timeout,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
            )
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def call(self, method: str, *params: Any) -> Any:
        """Invoke one RPC method and return its raw ``result``."""
        if self._client is None:
            raise RuntimeError("Contract not initialized. Use 'async with' context.")

        request_id = next(self._ids)
        body = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": list(params)}
        try:
            response = await self._client.post(self.config.rpc_url, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LedgerRpcError(
                f"RPC {method} failed: {e}",
                method=method,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise LedgerRpcError(f"RPC {method} failed: {e}", method=method) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise LedgerRpcError(f"RPC {method} returned invalid JSON", method=method) from e

        if not isinstance(payload, dict):
            raise LedgerRpcError(f"RPC {method} returned a non-object body", method=method, payload=payload)
        if payload.get("error"):
            error = payload["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            raise LedgerRpcError(f"RPC {method} error: {message}", method=method, payload=error)
        if "result" not in payload:
            raise LedgerRpcError(f"RPC {method} returned no result", method=method, payload=payload)

        logger.debug("ledger.rpc", method=method, id=request_id)
        return payload["result"]

    async def list_person_versions(self, person_hash: str, offset: int, limit: int) -> Any:
        return await self.call("listPersonVersions", person_hash, offset, limit)

    async def list_children(
        self,
        parent_hash: str,
        parent_version_index: int,
        offset: int,
        limit: int,
    ) -> Any:
        return await self.call("listChildren", parent_hash, parent_version_index, offset, limit)

    async def get_version_details(self, person_hash: str, version_index: int) -> Any:
        return await self.call("getVersionDetails", person_hash, version_index)

    async def get_nft_details(self, token_id: str) -> Any:
        return await self.call("getNFTDetails", str(token_id))
