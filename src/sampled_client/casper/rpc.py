"""Casper node JSON-RPC client over httpx."""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from sampled_client.errors import RpcError, TransportError

log = logging.getLogger(__name__)


class CasperRpcClient:
    """Thin async JSON-RPC 2.0 client for a Casper node.

    Every call is a single POST. A JSON-RPC ``error`` member becomes an
    RpcError; connection problems, HTTP failures without a JSON-RPC body and
    unparseable responses become a TransportError.
    """

    def __init__(
        self,
        rpc_url: str,
        access_token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = access_token
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10),
            headers=headers,
            transport=transport,
        )
        self._ids = itertools.count(1)

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    async def __aenter__(self) -> CasperRpcClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def call(self, method: str, params: Any = None) -> Any:
        """Invoke ``method`` and return its ``result`` member."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": [] if params is None else params,
        }
        try:
            resp = await self._client.post(self._rpc_url, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method}: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            raise TransportError(
                f"{method}: HTTP {resp.status_code}, response is not JSON"
            ) from None

        if isinstance(body, dict) and body.get("error") is not None:
            err = body["error"]
            if isinstance(err, dict):
                raise RpcError(err.get("code"), str(err.get("message") or "RPC Error"), err.get("data"))
            raise RpcError(None, str(err))

        if resp.status_code >= 400:
            raise TransportError(f"{method}: HTTP {resp.status_code}")
        if not isinstance(body, dict) or "result" not in body:
            raise TransportError(f"{method}: response has no result")
        return body["result"]

    # ── State ──────────────────────────────────────────────

    async def get_state_root_hash(self) -> str:
        result = await self.call("chain_get_state_root_hash")
        srh = result.get("state_root_hash") if isinstance(result, dict) else None
        if not srh:
            raise TransportError("chain_get_state_root_hash: empty state root")
        return str(srh)

    async def get_item(self, state_root_hash: str, key: str, path: list[str] | None = None) -> dict:
        return await self.call(
            "state_get_item",
            {"state_root_hash": state_root_hash, "key": key, "path": path or []},
        )

    async def get_dictionary_item(self, state_root_hash: str, dictionary_identifier: dict) -> dict:
        return await self.call(
            "state_get_dictionary_item",
            {
                "state_root_hash": state_root_hash,
                "dictionary_identifier": dictionary_identifier,
            },
        )

    async def query_global_state(
        self, key: str, path: list[str] | None = None, state_root_hash: str | None = None,
    ) -> dict:
        state_identifier = {"StateRootHash": state_root_hash} if state_root_hash else None
        return await self.call(
            "query_global_state",
            {"state_identifier": state_identifier, "key": key, "path": path or []},
        )

    async def query_balance(self, public_key_hex: str) -> int:
        """Main purse balance of a public key, in motes."""
        result = await self.call(
            "query_balance",
            {"purse_identifier": {"main_purse_under_public_key": public_key_hex}},
        )
        return int(result.get("balance") or 0)

    # ── Deploys ────────────────────────────────────────────

    async def put_deploy(self, deploy: dict) -> str:
        result = await self.call("account_put_deploy", {"deploy": deploy})
        deploy_hash = result.get("deploy_hash") if isinstance(result, dict) else None
        if not deploy_hash:
            raise TransportError("account_put_deploy: no deploy_hash in response")
        return str(deploy_hash)

    async def get_deploy(self, deploy_hash: str) -> dict:
        return await self.call("info_get_deploy", {"deploy_hash": deploy_hash})
