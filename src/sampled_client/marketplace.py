"""Marketplace facade - wires queries, deploy building, signing and tracking."""

from __future__ import annotations

import asyncio
import logging

from sampled_client.casper import clvalues as cl
from sampled_client.casper.clvalues import RuntimeArgs
from sampled_client.casper.deploys import (
    DeployBuilder,
    ProxyWasmLoader,
    attach_approval,
    deploy_to_json,
)
from sampled_client.casper.event_log import ContractEventLog, StateRootCache
from sampled_client.casper.queries import MarketplaceQueries
from sampled_client.casper.rpc import CasperRpcClient
from sampled_client.casper.submitter import CasperDeploySubmitter
from sampled_client.errors import (
    DeployTimeout,
    ExecutionFailure,
    SigningCancelled,
    WalletNotConnected,
    WatchCancelled,
)
from sampled_client.interfaces.rpc import NodeRpc
from sampled_client.interfaces.signer import Signer
from sampled_client.interfaces.submitter import DeploySubmitter
from sampled_client.models.config import ClientConfig
from sampled_client.models.events import LicenseType
from sampled_client.models.records import ExecutionStatus, LicensePricing, TxReceipt

log = logging.getLogger(__name__)

# Contract-side field limits, checked before anything is built.
MAX_TITLE_LENGTH = 100
MAX_IPFS_LINK_LENGTH = 256
MAX_GENRE_LENGTH = 30
MAX_COVER_IMAGE_LENGTH = 256
MAX_VIDEO_LINK_LENGTH = 256


def validate_upload(
    *,
    price: int,
    ipfs_link: str,
    title: str,
    genre: str = "",
    cover_image: str = "",
    video_preview_link: str = "",
) -> None:
    """Raise ValueError for an upload the contract would revert."""
    if price <= 0:
        raise ValueError("price must be greater than zero")
    if not title:
        raise ValueError("title is required")
    if not ipfs_link:
        raise ValueError("ipfs_link is required")
    for name, value, limit in (
        ("title", title, MAX_TITLE_LENGTH),
        ("ipfs_link", ipfs_link, MAX_IPFS_LINK_LENGTH),
        ("genre", genre, MAX_GENRE_LENGTH),
        ("cover_image", cover_image, MAX_COVER_IMAGE_LENGTH),
        ("video_preview_link", video_preview_link, MAX_VIDEO_LINK_LENGTH),
    ):
        if len(value) > limit:
            raise ValueError(f"{name} exceeds {limit} characters")


class SampledMarketplace:
    """Client-side entry point for marketplace mutations.

    Every mutation runs connect -> build -> sign -> submit -> wait and hands
    back a TxReceipt. A reverted deploy raises ExecutionFailure. An
    unresolved one raises DeployTimeout, or WatchCancelled when the caller
    stops watching. Reads go through ``queries``.
    """

    def __init__(
        self,
        cfg: ClientConfig,
        rpc: NodeRpc,
        signer: Signer,
        queries: MarketplaceQueries | None = None,
        builder: DeployBuilder | None = None,
        submitter: DeploySubmitter | None = None,
    ) -> None:
        self._cfg = cfg
        self._rpc = rpc
        self._signer = signer

        if queries is None:
            state_roots = StateRootCache(rpc, ttl=cfg.state_root_ttl)
            event_log = ContractEventLog(
                rpc, cfg.contract_hash, state_roots, events_uref=cfg.events_uref,
            )
            queries = MarketplaceQueries(event_log)
        self.queries = queries

        self.builder = builder or DeployBuilder(
            chain_name=cfg.chain_name,
            contract_hash=cfg.contract_hash,
            contract_package_hash=cfg.contract_package_hash,
            gas=cfg.gas,
            proxy_loader=ProxyWasmLoader(cfg.proxy_wasm_path, cfg.rpc_timeout),
            ttl_ms=cfg.deploy_ttl_ms,
        )
        self.submitter = submitter or CasperDeploySubmitter(
            rpc, poll_interval=cfg.poll_interval, timeout=cfg.deploy_timeout,
        )
        self._public_key: str | None = None

    @classmethod
    def from_config(cls, cfg: ClientConfig, signer: Signer) -> SampledMarketplace:
        """Build a marketplace with a live node client from ``cfg``."""
        rpc = CasperRpcClient(cfg.rpc_url, cfg.access_token, cfg.rpc_timeout)
        return cls(cfg, rpc, signer)

    @property
    def public_key(self) -> str | None:
        return self._public_key

    async def close(self) -> None:
        close = getattr(self._rpc, "close", None)
        if close is not None:
            await close()

    async def connect(self) -> str:
        """Ask the signer for access and remember the active public key."""
        if not await self._signer.is_connected():
            if not await self._signer.request_connection():
                raise WalletNotConnected("Wallet connection was refused")
        public_key = await self._signer.get_active_public_key()
        if not public_key:
            raise WalletNotConnected("Wallet has no active account")
        self._public_key = public_key.lower()
        log.info("Connected as %s", self._public_key)
        return self._public_key

    async def _ensure_connected(self) -> str:
        if self._public_key is None:
            return await self.connect()
        return self._public_key

    # ── Mutations ──────────────────────────────────────────

    async def upload_sample(
        self,
        *,
        price: int,
        ipfs_link: str,
        title: str,
        bpm: int = 0,
        genre: str = "",
        cover_image: str = "",
        video_preview_link: str = "",
        cancel: asyncio.Event | None = None,
    ) -> TxReceipt:
        validate_upload(
            price=price, ipfs_link=ipfs_link, title=title, genre=genre,
            cover_image=cover_image, video_preview_link=video_preview_link,
        )
        args = {
            "price": cl.u512(price),
            "ipfs_link": cl.string(ipfs_link),
            "title": cl.string(title),
            "bpm": cl.u64(bpm),
            "genre": cl.string(genre),
            "cover_image": cl.string(cover_image),
            "video_preview_link": cl.string(video_preview_link),
        }
        return await self._execute("upload_sample", args, cancel=cancel)

    async def purchase_sample(
        self,
        sample_id: int,
        price: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> TxReceipt:
        """Buy a sample. ``price`` defaults to the catalog price."""
        self.builder.check_config("purchase_sample")
        if price is None:
            sample = await self.queries.get_sample(sample_id)
            if sample is None:
                raise ValueError(f"Sample {sample_id} not found")
            if not sample.is_active:
                raise ValueError(f"Sample {sample_id} is no longer for sale")
            price = sample.price
        return await self._execute(
            "purchase_sample", {"sample_id": cl.u64(sample_id)},
            attached_value=price, cancel=cancel,
        )

    async def purchase_license(
        self,
        sample_id: int,
        license_type: LicenseType | int,
        price: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> TxReceipt:
        """Buy a license. ``price`` defaults to the sample's current license price."""
        lt = LicenseType(license_type)
        self.builder.check_config("purchase_license")
        if price is None:
            prices = await self.queries.get_license_prices(sample_id)
            if prices is None:
                raise ValueError(f"Sample {sample_id} not found")
            price = prices.as_dict()[lt]
        receipt = await self._execute(
            "purchase_license",
            {"sample_id": cl.u64(sample_id), "license_type": cl.u8(int(lt))},
            attached_value=price, cancel=cancel,
        )
        receipt.extra["license_type"] = lt.label
        return receipt

    async def update_price(
        self, sample_id: int, new_price: int, cancel: asyncio.Event | None = None,
    ) -> TxReceipt:
        if new_price <= 0:
            raise ValueError("price must be greater than zero")
        args = {"sample_id": cl.u64(sample_id), "new_price": cl.u512(new_price)}
        return await self._execute("update_price", args, cancel=cancel)

    async def deactivate_sample(
        self, sample_id: int, cancel: asyncio.Event | None = None,
    ) -> TxReceipt:
        return await self._execute(
            "deactivate_sample", {"sample_id": cl.u64(sample_id)}, cancel=cancel,
        )

    async def withdraw_earnings(self, cancel: asyncio.Event | None = None) -> TxReceipt:
        return await self._execute("withdraw_earnings", {}, cancel=cancel)

    async def set_license_pricing(
        self,
        sample_id: int,
        pricing: LicensePricing,
        cancel: asyncio.Event | None = None,
    ) -> TxReceipt:
        args = {
            "sample_id": cl.u64(sample_id),
            "personal_multiplier": cl.u64(pricing.personal_multiplier),
            "commercial_multiplier": cl.u64(pricing.commercial_multiplier),
            "broadcast_multiplier": cl.u64(pricing.broadcast_multiplier),
            "exclusive_multiplier": cl.u64(pricing.exclusive_multiplier),
        }
        return await self._execute("set_license_pricing", args, cancel=cancel)

    # ── Pipeline ───────────────────────────────────────────

    async def _execute(
        self,
        entry_point: str,
        args: RuntimeArgs,
        attached_value: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> TxReceipt:
        self.builder.check_config(entry_point)
        public_key = await self._ensure_connected()

        deploy = await self.builder.build(entry_point, args, public_key, attached_value)
        response = await self._signer.sign(deploy_to_json(deploy), public_key)
        if response.cancelled or not response.signature_hex:
            raise SigningCancelled(f"Signing of {entry_point} was cancelled")
        signed = attach_approval(deploy, public_key, response.signature_hex)

        pending = await self.submitter.submit(signed)
        outcome = await self.submitter.wait_for_completion(pending.hash, cancel)

        if outcome.status is ExecutionStatus.FAILED:
            raise ExecutionFailure(outcome.error_message or "execution failed", outcome.deploy_hash)
        if outcome.status is ExecutionStatus.TIMED_OUT:
            raise DeployTimeout(outcome.deploy_hash, outcome.elapsed)
        if outcome.status is ExecutionStatus.CANCELLED:
            raise WatchCancelled(outcome.deploy_hash, outcome.elapsed)

        log.info("%s finished: %s (%s)", entry_point, outcome.deploy_hash, outcome.status.value)
        return TxReceipt(
            entry_point=entry_point,
            deploy_hash=outcome.deploy_hash,
            outcome=outcome,
            attached_value=attached_value,
        )
