"""Signer protocol - the wallet capability the client signs deploys with."""

from __future__ import annotations

from typing import Protocol

from sampled_client.models.records import SignatureResponse


class Signer(Protocol):
    """External signer (browser wallet, key file, hardware device).

    Key storage and signature internals stay on the signer's side.
    """

    async def is_connected(self) -> bool:
        ...

    async def request_connection(self) -> bool:
        ...

    async def get_active_public_key(self) -> str:
        """Tagged public key hex of the active account."""
        ...

    async def sign(self, deploy_json: str, public_key_hex: str) -> SignatureResponse:
        """Sign a deploy. ``cancelled`` is set when the user declines."""
        ...
