"""Shared fixtures for sampled_client tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from sampled_client.casper.deploys import DeployBuilder, ProxyWasmLoader, attach_approval
from sampled_client.casper.queries import MarketplaceQueries
from sampled_client.casper.submitter import CasperDeploySubmitter
from sampled_client.marketplace import SampledMarketplace
from sampled_client.models.config import ClientConfig

from tests.factories import BOB_PK
from tests.mocks import FakeClock, MockEventLog, MockRpc, MockSigner

CONTRACT_HASH = "3c" * 32
PACKAGE_HASH = "7d" * 32
CHAIN_NAME = "casper-test"


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add network info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Casper Testnet (mocked)"
    meta["Marketplace Contract"] = CONTRACT_HASH
    meta["Contract Package"] = PACKAGE_HASH


def pytest_html_results_summary(prefix, summary, postfix):
    """Show the mocked contract identifiers at the top of the HTML report."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Sampled Marketplace (mocked node)</strong><br/>"
        f"Chain: {CHAIN_NAME}<br/>"
        f"Contract: hash-{CONTRACT_HASH}<br/>"
        f"Package: hash-{PACKAGE_HASH}"
        "</div>"
    )


def make_test_config(**overrides) -> ClientConfig:
    """Build a ClientConfig suitable for testing."""
    defaults = dict(
        network="testnet",
        rpc_url="http://127.0.0.1:7777/rpc",
        chain_name=CHAIN_NAME,
        contract_hash=CONTRACT_HASH,
        contract_package_hash=PACKAGE_HASH,
        proxy_wasm_path="",
        poll_interval=2.0,
        deploy_timeout=120.0,
    )
    defaults.update(overrides)
    return ClientConfig(**defaults)


@pytest.fixture
def test_config():
    """Default ClientConfig for tests."""
    return make_test_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_rpc():
    return MockRpc()


@pytest.fixture
def event_log():
    return MockEventLog()


@pytest.fixture
def queries(event_log):
    return MarketplaceQueries(event_log)


@pytest.fixture
def proxy_wasm(tmp_path):
    """A stand-in proxy caller module on disk."""
    path = tmp_path / "proxy_caller.wasm"
    path.write_bytes(b"\x00asm\x01\x00\x00\x00")
    return path


@pytest.fixture
def builder(proxy_wasm):
    return DeployBuilder(
        chain_name=CHAIN_NAME,
        contract_hash=CONTRACT_HASH,
        contract_package_hash=PACKAGE_HASH,
        proxy_loader=ProxyWasmLoader(str(proxy_wasm)),
        clock=lambda: 1_700_000_000.0,
    )


@pytest.fixture
def submitter(mock_rpc, clock):
    return CasperDeploySubmitter(mock_rpc, clock=clock, sleep=clock.sleep)


@pytest.fixture
def signer():
    return MockSigner(BOB_PK)


@pytest.fixture
def market(test_config, mock_rpc, signer, queries, builder, submitter):
    """SampledMarketplace wired to mocks; node answers 'succeeded' by default."""
    mock_rpc.deploy_results = [{
        "execution_info": {"execution_result": {"Version2": {"error_message": None, "cost": "100"}}},
    }]
    return SampledMarketplace(
        test_config, mock_rpc, signer, queries=queries, builder=builder, submitter=submitter,
    )


@pytest.fixture
def signed_deploy(builder):
    """A withdraw_earnings deploy carrying one approval."""
    deploy = builder.build_direct("withdraw_earnings", {}, BOB_PK)
    return attach_approval(deploy, BOB_PK, "ee" * 64)
