"""Byte-level reader and writer for the contract's event records.

Events are stored as opaque byte buffers in the ``__events`` dictionary,
so they are read field by field here rather than as typed CLValues.
"""

from __future__ import annotations

from sampled_client.errors import DecodeError

ACCOUNT_TAG = 0  # Address::Account


class ByteReader:
    """Sequential reader over a byte buffer. Raises DecodeError past the end."""

    def __init__(self, data: bytes, legacy_u64: bool = False) -> None:
        self._data = data
        self._pos = 0
        self._legacy_u64 = legacy_u64

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read(self, n: int) -> bytes:
        if n < 0 or self._pos + n > len(self._data):
            raise DecodeError(
                f"need {n} bytes at offset {self._pos}, have {self.remaining}"
            )
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def u8(self) -> int:
        return self.read(1)[0]

    def u32(self) -> int:
        return int.from_bytes(self.read(4), "little")

    def u64(self) -> int:
        raw = self.read(8)
        if self._legacy_u64:
            # Older log readers folded only the low 4 bytes into the value.
            return int.from_bytes(raw[:4], "little")
        return int.from_bytes(raw, "little")

    def u512(self) -> int:
        n = self.u8()
        if n == 0:
            return 0
        return int.from_bytes(self.read(n), "little")

    def string(self) -> str:
        n = self.u32()
        # Single-byte characters; the event format has no multi-byte text.
        return self.read(n).decode("latin-1")

    def account(self) -> str:
        self.u8()  # account / contract tag
        return self.read(32).hex()


class ByteWriter:
    """Accumulates bytesrepr-encoded values."""

    def __init__(self) -> None:
        self._parts: list[bytes] = []

    def raw(self, data: bytes) -> ByteWriter:
        self._parts.append(bytes(data))
        return self

    def u8(self, value: int) -> ByteWriter:
        return self.raw(int(value).to_bytes(1, "little"))

    def u32(self, value: int) -> ByteWriter:
        return self.raw(int(value).to_bytes(4, "little"))

    def u64(self, value: int) -> ByteWriter:
        return self.raw(int(value).to_bytes(8, "little"))

    def u512(self, value: int) -> ByteWriter:
        return self.raw(encode_u512(value))

    def string(self, value: str, encoding: str = "utf-8") -> ByteWriter:
        data = value.encode(encoding)
        return self.u32(len(data)).raw(data)

    def account(self, account_hex: str, tag: int = ACCOUNT_TAG) -> ByteWriter:
        data = bytes.fromhex(account_hex)
        if len(data) != 32:
            raise ValueError(f"account reference must be 32 bytes, got {len(data)}")
        return self.u8(tag).raw(data)

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


def encode_u512(value: int) -> bytes:
    """Length-prefixed little-endian magnitude, minimal width."""
    value = int(value)
    if value < 0:
        raise ValueError("U512 cannot be negative")
    if value >= 1 << 512:
        raise ValueError("value exceeds U512")
    if value == 0:
        return b"\x00"
    body = value.to_bytes((value.bit_length() + 7) // 8, "little")
    return bytes([len(body)]) + body
