"""Marketplace views rebuilt by replaying the contract's event log."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from sampled_client.casper.codec import EventDecoder
from sampled_client.casper.keys import normalize_account
from sampled_client.interfaces.event_log import EventLog
from sampled_client.models.events import (
    LicenseMinted,
    LicenseType,
    PriceUpdated,
    SampleDeactivated,
    SamplePurchased,
    SampleUploaded,
    UnknownEvent,
)
from sampled_client.models.records import (
    AllLicensePrices,
    LicensePricing,
    LicenseRecord,
    MarketplaceStats,
    PurchaseRecord,
    SampleRecord,
)
from sampled_client.pricing import all_license_prices, pricing_from_parsed

log = logging.getLogger(__name__)

LICENSE_PRICING_DICTIONARY = "license_pricing"


@dataclass
class LogSnapshot:
    """Everything one full replay of the event log produced."""

    event_count: int = 0
    samples: dict[int, SampleRecord] = field(default_factory=dict)
    purchases: list[PurchaseRecord] = field(default_factory=list)
    licenses: list[LicenseRecord] = field(default_factory=list)
    skipped: int = 0
    unknown: int = 0

    def catalog(self) -> list[SampleRecord]:
        return sorted(self.samples.values(), key=lambda s: s.sample_id, reverse=True)


def _license_type(raw: int) -> LicenseType | int:
    try:
        return LicenseType(raw)
    except ValueError:
        return raw


def _safe_account(value: str) -> str | None:
    try:
        return normalize_account(value)
    except (ValueError, AttributeError):
        log.warning("Ignoring invalid account reference %r", value)
        return None


class MarketplaceQueries:
    """Read-only marketplace views derived from the event log.

    Every call replays the whole log; there is no index or cursor. Views
    never raise: failures are logged and an empty result is returned.
    """

    def __init__(self, event_log: EventLog, decoder: EventDecoder | None = None) -> None:
        self._log = event_log
        self._decoder = decoder or EventDecoder()

    async def scan(self) -> LogSnapshot:
        """Replay the full log once and fold it into a snapshot."""
        snap = LogSnapshot()
        sales: dict[int, int] = {}

        async for raw in self._log.iter_events():
            snap.event_count += 1
            event = self._decoder.decode(raw.data)

            if event is None:
                snap.skipped += 1
                log.debug("Skipping undecodable event %d", raw.index)
            elif isinstance(event, SampleUploaded):
                if event.sample_id in snap.samples:
                    log.debug("Duplicate upload for sample %d at event %d", event.sample_id, raw.index)
                    continue
                snap.samples[event.sample_id] = SampleRecord(
                    sample_id=event.sample_id,
                    seller=event.seller.lower(),
                    price=event.price,
                    ipfs_link=event.ipfs_link,
                    title=event.title,
                    cover_image=event.cover_image,
                    created_at=event.timestamp,
                    event_index=raw.index,
                )
            elif isinstance(event, SamplePurchased):
                snap.purchases.append(PurchaseRecord(
                    sample_id=event.sample_id,
                    buyer=event.buyer.lower(),
                    seller=event.seller.lower(),
                    price=event.price,
                    platform_fee=event.platform_fee,
                    timestamp=event.timestamp,
                    event_index=raw.index,
                ))
                sales[event.sample_id] = sales.get(event.sample_id, 0) + 1
            elif isinstance(event, LicenseMinted):
                snap.licenses.append(LicenseRecord(
                    license_id=event.license_id,
                    sample_id=event.sample_id,
                    license_type=_license_type(event.license_type),
                    buyer=event.buyer.lower(),
                    creator=event.creator.lower(),
                    price=event.price,
                    timestamp=event.timestamp,
                    event_index=raw.index,
                ))
            elif isinstance(event, PriceUpdated):
                sample = snap.samples.get(event.sample_id)
                if sample is not None:
                    sample.price = event.new_price
            elif isinstance(event, SampleDeactivated):
                sample = snap.samples.get(event.sample_id)
                if sample is not None:
                    sample.is_active = False
            elif isinstance(event, UnknownEvent):
                snap.unknown += 1

        for sample_id, count in sales.items():
            if sample_id in snap.samples:
                snap.samples[sample_id].total_sales = count

        if snap.skipped:
            log.info("Replayed %d events (%d undecodable)", snap.event_count, snap.skipped)
        return snap

    async def _safe_scan(self, view: str) -> LogSnapshot | None:
        try:
            return await self.scan()
        except Exception as exc:
            log.warning("%s: event log replay failed: %s", view, exc)
            return None

    # ── Catalog ────────────────────────────────────────────

    async def get_all_samples(self, active_only: bool = False) -> list[SampleRecord]:
        """Catalog, newest sample id first."""
        snap = await self._safe_scan("get_all_samples")
        if snap is None:
            return []
        catalog = snap.catalog()
        if active_only:
            catalog = [s for s in catalog if s.is_active]
        return catalog

    async def get_sample(self, sample_id: int) -> SampleRecord | None:
        snap = await self._safe_scan("get_sample")
        if snap is None:
            return None
        return snap.samples.get(int(sample_id))

    async def get_user_samples(self, account: str) -> list[SampleRecord]:
        """Samples uploaded by ``account``."""
        who = _safe_account(account)
        snap = await self._safe_scan("get_user_samples")
        if who is None or snap is None:
            return []
        return [s for s in snap.catalog() if s.seller == who]

    async def get_user_purchases(self, account: str) -> list[SampleRecord]:
        """Catalog entries ``account`` bought at least once."""
        who = _safe_account(account)
        snap = await self._safe_scan("get_user_purchases")
        if who is None or snap is None:
            return []
        bought = {p.sample_id for p in snap.purchases if p.buyer == who}
        return [s for s in snap.catalog() if s.sample_id in bought]

    async def has_purchased(self, account: str, sample_id: int) -> bool:
        who = _safe_account(account)
        snap = await self._safe_scan("has_purchased")
        if who is None or snap is None:
            return False
        sid = int(sample_id)
        return any(p.buyer == who and p.sample_id == sid for p in snap.purchases)

    # ── Licenses ───────────────────────────────────────────

    async def get_user_licenses(self, account: str) -> list[LicenseRecord]:
        """Licenses minted to ``account``, newest license id first."""
        who = _safe_account(account)
        snap = await self._safe_scan("get_user_licenses")
        if who is None or snap is None:
            return []
        owned = [
            replace(lic, sample=snap.samples.get(lic.sample_id))
            for lic in snap.licenses
            if lic.buyer == who
        ]
        owned.sort(key=lambda lic: lic.license_id, reverse=True)
        return owned

    async def get_license_pricing(self, sample_id: int) -> LicensePricing:
        """Seller-set multipliers for a sample, defaults when none are stored."""
        try:
            parsed = await self._log.get_dictionary_value(
                LICENSE_PRICING_DICTIONARY, str(int(sample_id)),
            )
        except Exception as exc:
            log.warning("get_license_pricing(%s) failed: %s", sample_id, exc)
            parsed = None
        return pricing_from_parsed(parsed) or LicensePricing()

    async def get_license_prices(self, sample_id: int) -> AllLicensePrices | None:
        """All four license prices for a sample, or None if it is unknown."""
        sample = await self.get_sample(sample_id)
        if sample is None:
            return None
        pricing = await self.get_license_pricing(sample_id)
        return all_license_prices(sample.price, pricing)

    # ── Aggregates ─────────────────────────────────────────

    async def get_stats(self) -> MarketplaceStats:
        snap = await self._safe_scan("get_stats")
        if snap is None:
            return MarketplaceStats()
        return MarketplaceStats(
            sample_count=len(snap.samples),
            purchase_count=len(snap.purchases),
            total_volume=sum(p.price for p in snap.purchases),
            platform_fee_collected=sum(p.platform_fee for p in snap.purchases),
        )

    async def get_user_earnings(self, account: str) -> int:
        """Lifetime net sales of ``account`` as seller: sum of price - fee."""
        who = _safe_account(account)
        snap = await self._safe_scan("get_user_earnings")
        if who is None or snap is None:
            return 0
        return sum(p.seller_amount for p in snap.purchases if p.seller == who)
