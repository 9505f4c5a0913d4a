"""Deploy construction: direct contract calls and value-carrying proxied calls."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import time
from pathlib import Path
from typing import Callable

import httpx
import pycspr
from pycspr import serializer
from pycspr.types.node.rpc import (
    Deploy,
    DeployApproval,
    DeployOfModuleBytes,
    DeployOfStoredContractByHash,
)

from sampled_client.casper import clvalues as cl
from sampled_client.casper.clvalues import RuntimeArgs
from sampled_client.casper.keys import public_key_from_hex, signature_with_tag
from sampled_client.errors import ConfigurationError
from sampled_client.models.config import GasBudgets

log = logging.getLogger(__name__)

DEFAULT_TTL_MS = 1_800_000  # 30 minutes
GAS_PRICE = 1

# Payable entry points cannot take attached value from a stored-contract
# session, so they go through the proxy caller session wasm.
PROXIED_ENTRY_POINTS = frozenset({"purchase_sample", "purchase_license"})


class ProxyWasmLoader:
    """Loads the proxy caller wasm once and keeps it for the process lifetime.

    ``source`` is a local path or an http(s) URL.
    """

    def __init__(self, source: str, timeout: float = 30.0) -> None:
        self._source = source
        self._timeout = timeout
        self._cached: bytes | None = None
        self._lock = asyncio.Lock()

    @property
    def source(self) -> str:
        return self._source

    @property
    def loaded(self) -> bool:
        return self._cached is not None

    async def load(self) -> bytes:
        if self._cached is not None:
            return self._cached
        if not self._source:
            raise ConfigurationError("Proxy wasm path not configured")
        async with self._lock:
            if self._cached is None:
                self._cached = await self._fetch()
                log.info("Loaded proxy wasm (%d bytes) from %s", len(self._cached), self._source)
        return self._cached

    async def _fetch(self) -> bytes:
        if self._source.startswith(("http://", "https://")):
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                resp = await client.get(self._source)
                resp.raise_for_status()
                data = resp.content
        else:
            path = Path(self._source).expanduser()
            if not path.is_file():
                raise ConfigurationError(f"Proxy wasm not found: {path}")
            data = path.read_bytes()
        if not data:
            raise ConfigurationError(f"Proxy wasm is empty: {self._source}")
        return data


def _format_ttl(ms: int) -> str:
    if ms % 3_600_000 == 0:
        return f"{ms // 3_600_000}h"
    if ms % 60_000 == 0:
        return f"{ms // 60_000}m"
    if ms % 1000 == 0:
        return f"{ms // 1000}s"
    return f"{ms}ms"


def _hash_hex(value: str, what: str) -> bytes:
    raw = value.strip().lower()
    for prefix in ("hash-", "contract-package-", "package-", "contract-"):
        raw = raw.removeprefix(prefix)
    try:
        data = bytes.fromhex(raw)
    except ValueError:
        raise ConfigurationError(f"{what} is not hex: {value!r}") from None
    if len(data) != 32:
        raise ConfigurationError(f"{what} must be 32 bytes, got {len(data)}")
    return data


class DeployBuilder:
    """Assembles unsigned deploys for the marketplace contract.

    Direct calls target the stored contract by hash. Entry points in
    PROXIED_ENTRY_POINTS are wrapped in the proxy caller wasm together with
    the attached value. Missing configuration fails before any I/O.
    """

    def __init__(
        self,
        chain_name: str,
        contract_hash: str,
        contract_package_hash: str = "",
        gas: GasBudgets | None = None,
        proxy_loader: ProxyWasmLoader | None = None,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._chain_name = chain_name
        self._contract_hash = contract_hash
        self._contract_package_hash = contract_package_hash
        self._gas = gas or GasBudgets()
        self._proxy_loader = proxy_loader
        self._ttl_ms = ttl_ms
        self._clock = clock

    @staticmethod
    def is_proxied(entry_point: str) -> bool:
        return entry_point in PROXIED_ENTRY_POINTS

    def check_config(self, entry_point: str) -> None:
        """Raise if ``entry_point`` cannot be built with the current settings.

        Pure check with no I/O, so callers can run it before any lookups.
        """
        self._gas.for_entry_point(entry_point)
        if self.is_proxied(entry_point):
            if not self._contract_package_hash:
                raise ConfigurationError("Contract package hash not configured")
            if self._proxy_loader is None or not self._proxy_loader.source:
                raise ConfigurationError("Proxy wasm path not configured")
            _hash_hex(self._contract_package_hash, "contract package hash")
        else:
            if not self._contract_hash:
                raise ConfigurationError("Contract hash not configured")
            _hash_hex(self._contract_hash, "contract hash")

    async def build(
        self,
        entry_point: str,
        args: RuntimeArgs,
        public_key_hex: str,
        attached_value: int | None = None,
    ) -> Deploy:
        """Build the right deploy shape for ``entry_point``."""
        if self.is_proxied(entry_point):
            if attached_value is None:
                raise ValueError(f"{entry_point} requires an attached value")
            return await self.build_proxied(entry_point, args, public_key_hex, attached_value)
        return self.build_direct(entry_point, args, public_key_hex)

    def build_direct(self, entry_point: str, args: RuntimeArgs, public_key_hex: str) -> Deploy:
        self.check_config(entry_point)
        session = DeployOfStoredContractByHash(
            args=cl.deploy_arguments(args),
            entry_point=entry_point,
            hash=_hash_hex(self._contract_hash, "contract hash"),
        )
        return self._assemble(entry_point, public_key_hex, session)

    async def build_proxied(
        self,
        entry_point: str,
        args: RuntimeArgs,
        public_key_hex: str,
        attached_value: int,
    ) -> Deploy:
        self.check_config(entry_point)
        if attached_value < 0:
            raise ValueError("attached value must be non-negative")
        package = _hash_hex(self._contract_package_hash, "contract package hash")
        public_key_from_hex(public_key_hex)

        wasm = await self._proxy_loader.load()
        proxy_args = {
            "contract_package_hash": cl.byte_array(package),
            "entry_point": cl.string(entry_point),
            "args": cl.byte_list(cl.encode_args(args)),
            "attached_value": cl.u512(attached_value),
            "amount": cl.u512(attached_value),
        }
        session = DeployOfModuleBytes(args=cl.deploy_arguments(proxy_args), module_bytes=wasm)
        return self._assemble(entry_point, public_key_hex, session)

    def _assemble(self, entry_point: str, public_key_hex: str, session) -> Deploy:
        account = public_key_from_hex(public_key_hex)
        params = pycspr.create_deploy_parameters(
            account=account,
            chain_name=self._chain_name,
            gas_price=GAS_PRICE,
            timestamp=self._clock(),
            ttl=_format_ttl(self._ttl_ms),
        )
        payment = pycspr.create_standard_payment(self._gas.for_entry_point(entry_point))
        deploy = pycspr.create_deploy(params, payment, session)
        log.debug("Built %s deploy %s", entry_point, deploy.hash.hex()[:16])
        return deploy


def deploy_as_dict(deploy: Deploy) -> dict:
    """Node JSON form of a deploy, as ``account_put_deploy`` takes it."""
    return serializer.to_json(deploy)


def deploy_to_json(deploy: Deploy) -> str:
    """JSON document handed to signers: ``{"deploy": {...}}``."""
    return json.dumps({"deploy": deploy_as_dict(deploy)})


def attach_approval(deploy: Deploy, public_key_hex: str, signature_hex: str) -> Deploy:
    """Return a copy of ``deploy`` with the signer's approval appended."""
    approval = DeployApproval(
        signer=public_key_from_hex(public_key_hex),
        signature=signature_with_tag(public_key_hex, signature_hex),
    )
    return dataclasses.replace(deploy, approvals=[*deploy.approvals, approval])
