"""NodeRpc protocol - the JSON-RPC methods the client consumes."""

from __future__ import annotations

from typing import Any, Protocol


class NodeRpc(Protocol):
    """Casper node JSON-RPC surface used by the event log and the submitter."""

    async def call(self, method: str, params: Any = None) -> Any:
        ...

    async def get_state_root_hash(self) -> str:
        ...

    async def get_item(self, state_root_hash: str, key: str, path: list[str] | None = None) -> dict:
        ...

    async def get_dictionary_item(self, state_root_hash: str, dictionary_identifier: dict) -> dict:
        ...

    async def put_deploy(self, deploy: dict) -> str:
        """Submit a signed deploy. Returns its hash."""
        ...

    async def get_deploy(self, deploy_hash: str) -> dict:
        ...
