"""Marketplace views rebuilt from the event log."""

from __future__ import annotations

from sampled_client.casper.codec import encode_event
from sampled_client.models.events import LicenseType
from sampled_client.models.records import AllLicensePrices, LicensePricing, MarketplaceStats

from tests.factories import (
    ALICE,
    ALICE_PK,
    BOB,
    BOB_PK,
    CAROL,
    CSPR,
    encode,
    make_deactivation,
    make_license,
    make_price_update,
    make_purchase,
    make_upload,
    unknown_event_bytes,
)


# ── Catalog ─────────────────────────────────────────────────────────


async def test_catalog_newest_first(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1), make_upload(sample_id=3), make_upload(sample_id=2),
    )
    samples = await queries.get_all_samples()
    assert [s.sample_id for s in samples] == [3, 2, 1]


async def test_first_upload_wins(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1, title="Original"),
        make_upload(sample_id=1, title="Impostor", seller=CAROL),
    )
    sample = await queries.get_sample(1)
    assert sample.title == "Original"
    assert sample.seller == ALICE
    assert sample.event_index == 0


async def test_total_sales_counts_repeat_buyers(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1),
        make_purchase(sample_id=1, buyer=BOB),
        make_purchase(sample_id=1, buyer=BOB),
        make_purchase(sample_id=1, buyer=CAROL),
    )
    sample = await queries.get_sample(1)
    assert sample.total_sales == 3


async def test_purchase_for_unknown_sample_ignored_in_catalog(event_log, queries):
    event_log.events = encode(make_purchase(sample_id=99))
    assert await queries.get_all_samples() == []
    stats = await queries.get_stats()
    assert stats.purchase_count == 1


async def test_undecodable_and_unknown_events_skipped(event_log, queries):
    upload = encode_event(make_upload(sample_id=1))
    event_log.events = [b"\x00\x00", upload, unknown_event_bytes(), None, upload[:-1]]

    snap = await queries.scan()

    assert list(snap.samples) == [1]
    assert snap.unknown == 1
    assert snap.skipped == 2


async def test_price_update_and_deactivation_folded(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1, price=100 * CSPR),
        make_upload(sample_id=2),
        make_price_update(sample_id=1, new_price=150 * CSPR),
        make_deactivation(sample_id=2),
    )
    one = await queries.get_sample(1)
    assert one.price == 150 * CSPR
    assert one.is_active

    assert [s.sample_id for s in await queries.get_all_samples()] == [2, 1]
    assert [s.sample_id for s in await queries.get_all_samples(active_only=True)] == [1]


async def test_missing_sample(queries):
    assert await queries.get_sample(7) is None


async def test_views_empty_on_log_failure(event_log, queries):
    event_log.events = encode(make_upload())
    event_log.fail = True
    assert await queries.get_all_samples() == []
    assert await queries.get_sample(1) is None
    assert await queries.get_stats() == MarketplaceStats()
    assert await queries.get_user_earnings(ALICE) == 0


# ── Per-user views ───────────────────────────────────────────────────


async def test_user_samples_accepts_public_key(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1, seller=ALICE),
        make_upload(sample_id=2, seller=BOB),
        make_upload(sample_id=3, seller=ALICE),
    )
    by_key = await queries.get_user_samples(ALICE_PK)
    by_hash = await queries.get_user_samples(f"account-hash-{ALICE.upper()}")
    assert [s.sample_id for s in by_key] == [3, 1]
    assert by_key == by_hash


async def test_user_purchases_deduplicated(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1),
        make_upload(sample_id=2),
        make_purchase(sample_id=1, buyer=BOB),
        make_purchase(sample_id=1, buyer=BOB),
        make_purchase(sample_id=2, buyer=CAROL),
    )
    bought = await queries.get_user_purchases(BOB_PK)
    assert [s.sample_id for s in bought] == [1]
    assert await queries.has_purchased(BOB, 1)
    assert await queries.has_purchased(f"account-hash-{BOB.upper()}", 1)
    assert await queries.has_purchased(BOB_PK.upper(), 1)
    assert not await queries.has_purchased(BOB, 2)


async def test_invalid_account_gives_empty(event_log, queries):
    event_log.events = encode(make_upload())
    assert await queries.get_user_samples("not-an-account") == []
    assert await queries.has_purchased("zz", 1) is False


async def test_user_licenses_joined_and_sorted(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1, title="Kick Pack"),
        make_license(license_id=1, sample_id=1, license_type=1, buyer=BOB),
        make_license(license_id=2, sample_id=5, license_type=7, buyer=BOB),
        make_license(license_id=3, sample_id=1, license_type=0, buyer=CAROL),
    )
    owned = await queries.get_user_licenses(BOB)

    assert [lic.license_id for lic in owned] == [2, 1]
    assert owned[0].sample is None
    assert owned[0].license_type == 7
    assert owned[1].sample.title == "Kick Pack"
    assert owned[1].license_type is LicenseType.COMMERCIAL


# ── Aggregates ──────────────────────────────────────────────────────


async def test_stats(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1),
        make_upload(sample_id=2),
        make_purchase(sample_id=1, price=100 * CSPR, platform_fee=10 * CSPR),
        make_purchase(sample_id=2, price=50 * CSPR, platform_fee=5 * CSPR),
    )
    stats = await queries.get_stats()
    assert stats == MarketplaceStats(
        sample_count=2,
        purchase_count=2,
        total_volume=150 * CSPR,
        platform_fee_collected=15 * CSPR,
    )


async def test_user_earnings_net_of_fee(event_log, queries):
    event_log.events = encode(
        make_upload(sample_id=1, seller=ALICE),
        make_purchase(sample_id=1, seller=ALICE, price=100 * CSPR, platform_fee=10 * CSPR),
        make_purchase(sample_id=1, seller=ALICE, price=100 * CSPR, platform_fee=10 * CSPR),
        make_purchase(sample_id=2, seller=CAROL, price=40 * CSPR, platform_fee=4 * CSPR),
    )
    assert await queries.get_user_earnings(ALICE_PK) == 180 * CSPR
    assert await queries.get_user_earnings(BOB) == 0


async def test_large_amounts_stay_exact(event_log, queries):
    huge = 10**40 + 1
    event_log.events = encode(
        make_upload(sample_id=1, price=huge),
        make_purchase(sample_id=1, price=huge, platform_fee=huge // 10),
    )
    stats = await queries.get_stats()
    assert stats.total_volume == huge
    assert await queries.get_user_earnings(ALICE) == huge - huge // 10


# ── License pricing ─────────────────────────────────────────────────


async def test_license_prices_default_multipliers(event_log, queries):
    event_log.events = encode(make_upload(sample_id=1, price=100 * CSPR))
    prices = await queries.get_license_prices(1)
    assert prices == AllLicensePrices(
        personal=100 * CSPR, commercial=250 * CSPR, broadcast=500 * CSPR, exclusive=2000 * CSPR,
    )


async def test_license_pricing_override(event_log, queries):
    event_log.events = encode(make_upload(sample_id=4, price=10 * CSPR))
    event_log.dictionaries[("license_pricing", "4")] = [
        ["personal_multiplier", 100],
        ["commercial_multiplier", 300],
        ["broadcast_multiplier", 600],
        ["exclusive_multiplier", 5000],
    ]
    pricing = await queries.get_license_pricing(4)
    assert pricing == LicensePricing(100, 300, 600, 5000)

    prices = await queries.get_license_prices(4)
    assert prices.exclusive == 500 * CSPR


async def test_license_prices_unknown_sample(queries):
    assert await queries.get_license_prices(1) is None
    assert await queries.get_license_pricing(1) == LicensePricing()


async def test_empty_log_views(queries):
    assert await queries.get_all_samples() == []
    assert await queries.get_user_samples(ALICE) == []
    assert await queries.get_user_purchases(BOB) == []
    assert await queries.get_user_licenses(BOB) == []
    assert await queries.has_purchased(BOB, 1) is False
    assert await queries.get_stats() == MarketplaceStats()
    assert await queries.get_user_earnings(ALICE) == 0
