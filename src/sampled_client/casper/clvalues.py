"""Typed deploy arguments on top of pycspr's CLValue types."""

from __future__ import annotations

from typing import Mapping

from pycspr import serializer
from pycspr.types.cl import (
    CLV_ByteArray,
    CLV_List,
    CLV_String,
    CLV_U8,
    CLV_U32,
    CLV_U64,
    CLV_U512,
    CLV_Value,
)
from pycspr.types.node.rpc import DeployArgument

RuntimeArgs = Mapping[str, CLV_Value]


def u8(value: int) -> CLV_U8:
    return CLV_U8(int(value))


def u64(value: int) -> CLV_U64:
    return CLV_U64(int(value))


def u512(value: int) -> CLV_U512:
    value = int(value)
    if value < 0:
        raise ValueError("U512 cannot be negative")
    return CLV_U512(value)


def string(value: str) -> CLV_String:
    return CLV_String(value)


def byte_array(data: bytes) -> CLV_ByteArray:
    return CLV_ByteArray(bytes(data))


def byte_list(data: bytes) -> CLV_List:
    """Variable-length ``Bytes`` (List<U8>)."""
    if not data:
        raise ValueError("byte list cannot be empty")
    return CLV_List([CLV_U8(b) for b in data])


def deploy_arguments(args: RuntimeArgs) -> list[DeployArgument]:
    """Named arguments in insertion order."""
    return [DeployArgument(name, value) for name, value in args.items()]


def encode_args(args: RuntimeArgs) -> bytes:
    """Serialized RuntimeArgs, as a proxied call forwards them."""
    encoded = [serializer.to_bytes(arg) for arg in deploy_arguments(args)]
    return serializer.to_bytes(CLV_U32(len(encoded))) + b"".join(encoded)
