"""Configuration models for the marketplace client."""

from __future__ import annotations

from dataclasses import dataclass, field

MOTES_PER_CSPR = 1_000_000_000

# network -> (rpc_url, chain_name)
NETWORKS = {
    "testnet": ("https://node.testnet.casper.network/rpc", "casper-test"),
    "mainnet": ("https://rpc.mainnet.casperlabs.io/rpc", "casper"),
}


@dataclass
class GasBudgets:
    """Payment amount (motes) attached to each entry point's deploy."""

    upload_sample: int = 10 * MOTES_PER_CSPR
    update_price: int = 3 * MOTES_PER_CSPR
    deactivate_sample: int = 3 * MOTES_PER_CSPR
    withdraw_earnings: int = 5 * MOTES_PER_CSPR
    set_license_pricing: int = 5 * MOTES_PER_CSPR
    purchase_sample: int = 20 * MOTES_PER_CSPR
    purchase_license: int = 50 * MOTES_PER_CSPR

    def for_entry_point(self, entry_point: str) -> int:
        try:
            return int(getattr(self, entry_point))
        except AttributeError:
            raise KeyError(f"No gas budget for entry point {entry_point!r}") from None


@dataclass
class ClientConfig:
    """Complete client configuration."""

    # Node
    network: str = "testnet"
    rpc_url: str = NETWORKS["testnet"][0]
    chain_name: str = NETWORKS["testnet"][1]
    access_token: str = ""  # hosted nodes (cspr.cloud) want an Authorization header
    rpc_timeout: float = 30.0

    # Contract
    contract_hash: str = ""  # stored contract, direct calls
    contract_package_hash: str = ""  # versioned package, proxied calls
    events_uref: str = ""  # seed URef of the __events dictionary (optional)
    proxy_wasm_path: str = ""  # proxy_caller.wasm, file path or http(s) URL

    # Timing
    state_root_ttl: float = 30.0  # seconds
    poll_interval: float = 2.0  # seconds
    deploy_timeout: float = 120.0  # seconds
    deploy_ttl_ms: int = 1_800_000  # 30 minutes

    # Signer (CLI only)
    secret_key_path: str = ""

    log_level: str = "info"

    gas: GasBudgets = field(default_factory=GasBudgets)
