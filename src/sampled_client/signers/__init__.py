"""Signer implementations."""

from sampled_client.signers.keyfile import KeyFileSigner

__all__ = ["KeyFileSigner"]
