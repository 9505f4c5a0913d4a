"""Marketplace mutations: connect, build, sign, submit, wait."""

from __future__ import annotations

import asyncio
import json

import pytest
from pycspr import serializer

from sampled_client.casper import clvalues as cl
from sampled_client.errors import (
    ConfigurationError,
    DeployTimeout,
    ExecutionFailure,
    SigningCancelled,
    WalletNotConnected,
    WatchCancelled,
)
from sampled_client.marketplace import SampledMarketplace, validate_upload
from sampled_client.models.events import LicenseType
from sampled_client.models.records import ExecutionStatus, LicensePricing

from tests.conftest import make_test_config
from tests.factories import (
    ALICE_PK,
    BOB_PK,
    CSPR,
    encode,
    make_deactivation,
    make_upload,
    v1_result,
    v2_result,
)
from tests.mocks import MockRpc, MockSigner


def _session_args(deploy: dict) -> dict:
    session = deploy["session"]
    body = session.get("StoredContractByHash") or session.get("ModuleBytes")
    return dict(body["args"])


def _arg_hex(value) -> str:
    return serializer.to_bytes(value).hex()


# ── Connection ──────────────────────────────────────────────────────


async def test_connect_requests_access(market, signer):
    signer.connected = False
    assert await market.connect() == BOB_PK
    assert signer.connect_calls == 1
    assert market.public_key == BOB_PK


async def test_connect_refused(market, signer, mock_rpc):
    signer.connected = False
    signer.allow_connect = False
    with pytest.raises(WalletNotConnected):
        await market.withdraw_earnings()
    assert mock_rpc.put_calls == []


# ── Mutations ───────────────────────────────────────────────────────


async def test_withdraw_earnings(market, mock_rpc, signer):
    receipt = await market.withdraw_earnings()

    assert receipt.entry_point == "withdraw_earnings"
    assert receipt.outcome.status is ExecutionStatus.SUCCEEDED
    assert receipt.outcome.cost == 100

    sent = mock_rpc.put_calls[0]
    assert receipt.deploy_hash == sent["hash"]
    assert len(sent["approvals"]) == 1
    assert sent["approvals"][0]["signer"] == BOB_PK
    assert sent["approvals"][0]["signature"] == "01" + "ee" * 64

    deploy_json, pk = signer.sign_calls[0]
    assert pk == BOB_PK
    assert json.loads(deploy_json)["deploy"]["hash"] == sent["hash"]


async def test_upload_sample_args(market, mock_rpc):
    await market.upload_sample(
        price=25 * CSPR, ipfs_link="ipfs://QmNew", title="Snare Roll", bpm=128, genre="house",
    )
    args = _session_args(mock_rpc.put_calls[0])
    assert list(args) == [
        "price", "ipfs_link", "title", "bpm", "genre", "cover_image", "video_preview_link",
    ]
    assert args["price"]["bytes"] == _arg_hex(cl.u512(25 * CSPR))
    assert args["bpm"]["cl_type"] == "U64"
    assert args["bpm"]["bytes"] == (128).to_bytes(8, "little").hex()


@pytest.mark.parametrize("overrides", [
    {"price": 0},
    {"title": "x" * 101},
    {"ipfs_link": "q" * 257},
    {"genre": "g" * 31},
    {"cover_image": "c" * 257},
    {"video_preview_link": "v" * 257},
    {"title": ""},
])
async def test_upload_validation(market, mock_rpc, overrides):
    fields = dict(price=CSPR, ipfs_link="ipfs://Qm", title="ok")
    fields.update(overrides)
    with pytest.raises(ValueError):
        await market.upload_sample(**fields)
    assert mock_rpc.put_calls == []


def test_validate_upload_limits_inclusive():
    validate_upload(
        price=1, ipfs_link="q" * 256, title="t" * 100, genre="g" * 30,
        cover_image="c" * 256, video_preview_link="v" * 256,
    )


async def test_purchase_uses_catalog_price(market, event_log, mock_rpc):
    event_log.events = encode(make_upload(sample_id=5, price=42 * CSPR))

    receipt = await market.purchase_sample(5)

    assert receipt.attached_value == 42 * CSPR
    args = _session_args(mock_rpc.put_calls[0])
    assert args["attached_value"]["bytes"] == _arg_hex(cl.u512(42 * CSPR))
    assert args["entry_point"]["bytes"] == _arg_hex(cl.string("purchase_sample"))


async def test_purchase_explicit_price_skips_catalog(market, event_log):
    receipt = await market.purchase_sample(8, price=3 * CSPR)
    assert receipt.attached_value == 3 * CSPR


async def test_purchase_unknown_or_inactive_sample(market, event_log, mock_rpc):
    with pytest.raises(ValueError):
        await market.purchase_sample(1)
    event_log.events = encode(make_upload(sample_id=1), make_deactivation(sample_id=1))
    with pytest.raises(ValueError):
        await market.purchase_sample(1)
    assert mock_rpc.put_calls == []


async def test_purchase_license_price(market, event_log, mock_rpc):
    event_log.events = encode(make_upload(sample_id=2, price=10 * CSPR))

    receipt = await market.purchase_license(2, LicenseType.BROADCAST)

    assert receipt.attached_value == 50 * CSPR
    assert receipt.extra["license_type"] == "Broadcast"
    args = _session_args(mock_rpc.put_calls[0])
    assert args["entry_point"]["bytes"] == _arg_hex(cl.string("purchase_license"))


async def test_purchase_license_bad_type(market):
    with pytest.raises(ValueError):
        await market.purchase_license(2, 7)


async def test_set_license_pricing_args(market, mock_rpc):
    await market.set_license_pricing(3, LicensePricing(100, 200, 400, 1000))
    args = _session_args(mock_rpc.put_calls[0])
    assert args["exclusive_multiplier"]["bytes"] == (1000).to_bytes(8, "little").hex()
    assert args["sample_id"]["bytes"] == (3).to_bytes(8, "little").hex()


async def test_update_price_and_deactivate(market, mock_rpc):
    await market.update_price(1, 2 * CSPR)
    await market.deactivate_sample(1)
    entry_points = [d["session"]["StoredContractByHash"]["entry_point"] for d in mock_rpc.put_calls]
    assert entry_points == ["update_price", "deactivate_sample"]

    with pytest.raises(ValueError):
        await market.update_price(1, 0)


# ── Outcomes ────────────────────────────────────────────────────────


async def test_signing_cancelled(market, signer, mock_rpc):
    signer.cancel = True
    with pytest.raises(SigningCancelled):
        await market.withdraw_earnings()
    assert mock_rpc.put_calls == []


async def test_execution_failure_raised(market, mock_rpc):
    mock_rpc.deploy_results = [v1_result(False, error_message="User error: 3")]
    with pytest.raises(ExecutionFailure) as exc_info:
        await market.withdraw_earnings()
    assert exc_info.value.message == "User error: 3"
    assert exc_info.value.deploy_hash == mock_rpc.put_calls[0]["hash"]


async def test_timeout_raised(market, mock_rpc):
    mock_rpc.deploy_results = [v2_result()]
    with pytest.raises(DeployTimeout) as exc_info:
        await market.withdraw_earnings()
    assert exc_info.value.deploy_hash == mock_rpc.put_calls[0]["hash"]


async def test_cancelled_wait_raises(market, mock_rpc):
    mock_rpc.deploy_results = [v2_result()]
    cancel = asyncio.Event()
    cancel.set()
    with pytest.raises(WatchCancelled) as exc_info:
        await market.withdraw_earnings(cancel=cancel)
    assert exc_info.value.deploy_hash == mock_rpc.put_calls[0]["hash"]
    assert mock_rpc.get_deploy_calls == 0


async def test_signer_key_used_as_deploy_account(test_config, mock_rpc, queries, builder, submitter):
    mock_rpc.deploy_results = [v2_result(None)]
    market = SampledMarketplace(
        test_config, mock_rpc, MockSigner(ALICE_PK.upper()),
        queries=queries, builder=builder, submitter=submitter,
    )
    await market.withdraw_earnings()
    assert mock_rpc.put_calls[0]["header"]["account"] == ALICE_PK


def test_default_wiring(test_config, mock_rpc, signer):
    market = SampledMarketplace(test_config, mock_rpc, signer)
    assert market.queries is not None
    assert market.builder.is_proxied("purchase_license")
    assert not market.builder.is_proxied("upload_sample")


async def test_missing_proxy_config_fails_before_node_calls(signer):
    rpc = MockRpc(encode(make_upload(sample_id=5)))
    market = SampledMarketplace(make_test_config(proxy_wasm_path=""), rpc, signer)

    with pytest.raises(ConfigurationError):
        await market.purchase_sample(5)
    with pytest.raises(ConfigurationError):
        await market.purchase_license(5, LicenseType.PERSONAL)

    assert rpc.state_root_calls == 0
    assert rpc.item_calls == []
    assert rpc.dictionary_calls == []
    assert rpc.put_calls == []
