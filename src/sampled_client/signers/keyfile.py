"""Local Ed25519 key-file signer for the CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from sampled_client.casper.keys import ED25519_TAG
from sampled_client.errors import ConfigurationError
from sampled_client.models.records import SignatureResponse

log = logging.getLogger(__name__)


class KeyFileSigner:
    """Signs deploy hashes with an Ed25519 secret key read from a PEM file.

    ``confirm`` is called with the deploy JSON before signing; returning
    False reports the signature as cancelled, the way a wallet popup would.
    """

    def __init__(
        self,
        private_key: Ed25519PrivateKey,
        confirm: Callable[[dict], bool] | None = None,
    ) -> None:
        self._key = private_key
        self._confirm = confirm
        raw = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self._public_key_hex = ED25519_TAG + raw.hex()

    @classmethod
    def from_pem_file(
        cls, path: str | Path, confirm: Callable[[dict], bool] | None = None,
    ) -> KeyFileSigner:
        p = Path(path).expanduser()
        if not p.is_file():
            raise ConfigurationError(f"Secret key file not found: {p}")
        key = serialization.load_pem_private_key(p.read_bytes(), password=None)
        if not isinstance(key, Ed25519PrivateKey):
            raise ConfigurationError(f"{p} is not an Ed25519 secret key")
        log.debug("Loaded secret key from %s", p)
        return cls(key, confirm)

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    async def is_connected(self) -> bool:
        return True

    async def request_connection(self) -> bool:
        return True

    async def get_active_public_key(self) -> str:
        return self._public_key_hex

    async def sign(self, deploy_json: str, public_key_hex: str) -> SignatureResponse:
        if public_key_hex.lower() != self._public_key_hex:
            raise ValueError(
                f"Key file holds {self._public_key_hex[:10]}..., asked to sign for {public_key_hex[:10]}..."
            )
        deploy = json.loads(deploy_json)["deploy"]
        if self._confirm is not None and not self._confirm(deploy):
            log.info("Signing of deploy %s declined", deploy["hash"])
            return SignatureResponse(cancelled=True)
        signature = self._key.sign(bytes.fromhex(deploy["hash"]))
        return SignatureResponse(cancelled=False, signature_hex=signature.hex())
