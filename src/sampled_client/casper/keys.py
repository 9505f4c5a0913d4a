"""Public key and account-hash helpers."""

from __future__ import annotations

from pycspr.crypto import get_account_hash
from pycspr.types.crypto import KeyAlgorithm, PublicKey

ED25519_TAG = "01"
SECP256K1_TAG = "02"

# tag -> (algorithm, raw key length)
_ALGORITHMS = {
    ED25519_TAG: (KeyAlgorithm.ED25519, 32),
    SECP256K1_TAG: (KeyAlgorithm.SECP256K1, 33),
}

ACCOUNT_HASH_PREFIX = "account-hash-"


def is_public_key(value: str) -> bool:
    """True for tagged public key hex (01 + 32 bytes or 02 + 33 bytes)."""
    value = value.strip().lower()
    algo = _ALGORITHMS.get(value[:2])
    if algo is None or len(value) != 2 + algo[1] * 2:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


def public_key_from_hex(public_key_hex: str) -> PublicKey:
    value = public_key_hex.strip().lower()
    if not is_public_key(value):
        raise ValueError(f"not a Casper public key: {public_key_hex[:16]}...")
    algo, _ = _ALGORITHMS[value[:2]]
    return PublicKey(algo=algo, pbk=bytes.fromhex(value[2:]))


def account_hash_from_public_key(public_key_hex: str) -> str:
    """Derive the 32-byte account hash (lowercase hex) of a tagged public key."""
    value = public_key_hex.strip().lower()
    if not is_public_key(value):
        raise ValueError(f"not a Casper public key: {public_key_hex[:16]}...")
    return get_account_hash(bytes.fromhex(value)).hex()


def normalize_account(value: str) -> str:
    """Normalize an account reference to lowercase account-hash hex.

    Accepts a tagged public key, ``account-hash-<hex>`` or bare 64-char hex.
    """
    v = value.strip().lower()
    if v.startswith(ACCOUNT_HASH_PREFIX):
        v = v[len(ACCOUNT_HASH_PREFIX):]
    if is_public_key(v):
        return account_hash_from_public_key(v)
    if len(v) == 64:
        try:
            bytes.fromhex(v)
        except ValueError:
            pass
        else:
            return v
    raise ValueError(f"not an account reference: {value[:20]}...")


def signature_with_tag(public_key_hex: str, signature_hex: str) -> bytes:
    """Prefix a raw signature with the key's algorithm tag, as approvals expect."""
    sig = signature_hex.lower().removeprefix("0x")
    # ed25519 and secp256k1 signatures are both 64 bytes untagged
    if len(sig) == 128:
        sig = public_key_hex[:2].lower() + sig
    return bytes.fromhex(sig)


def shorten(value: str, prefix: int = 6, suffix: int = 4) -> str:
    if len(value) <= prefix + suffix:
        return value
    return f"{value[:prefix]}...{value[-suffix:]}"
