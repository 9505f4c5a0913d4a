"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from sampled_client.errors import ConfigurationError
from sampled_client.models.config import NETWORKS, ClientConfig, GasBudgets


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "SAMPLED_",
) -> ClientConfig:
    """Load client configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (SAMPLED_RPC_URL, etc.)
        2. TOML config file
        3. Network preset defaults (testnet / mainnet)
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = ClientConfig()

    # ── Node section ───────────────────────────────────────
    node = raw.get("node", {})
    network = os.environ.get(f"{env_prefix}NETWORK") or node.get("network")
    if network:
        _apply_network(cfg, str(network))
    if v := node.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := node.get("chain_name"):
        cfg.chain_name = str(v)
    if v := node.get("access_token"):
        cfg.access_token = str(v)
    if v := node.get("timeout"):
        cfg.rpc_timeout = float(v)
    if v := node.get("state_root_ttl"):
        cfg.state_root_ttl = float(v)
    if v := node.get("poll_interval"):
        cfg.poll_interval = float(v)
    if v := node.get("deploy_timeout"):
        cfg.deploy_timeout = float(v)
    if v := node.get("deploy_ttl_ms"):
        cfg.deploy_ttl_ms = int(v)
    if v := node.get("log_level"):
        cfg.log_level = str(v)

    # ── Contract section ───────────────────────────────────
    contract = raw.get("contract", {})
    if v := contract.get("contract_hash"):
        cfg.contract_hash = str(v)
    if v := contract.get("contract_package_hash"):
        cfg.contract_package_hash = str(v)
    if v := contract.get("events_uref"):
        cfg.events_uref = str(v)
    if v := contract.get("proxy_wasm"):
        cfg.proxy_wasm_path = str(v)

    # ── Gas section ────────────────────────────────────────
    gas_raw = raw.get("gas", {})
    defaults = GasBudgets()
    cfg.gas = GasBudgets(**{
        name: int(gas_raw.get(name, getattr(defaults, name)))
        for name in defaults.__dataclass_fields__
    })

    # ── Signer section ─────────────────────────────────────
    signer = raw.get("signer", {})
    if v := signer.get("secret_key_path"):
        cfg.secret_key_path = str(v)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if chain := os.environ.get(f"{env_prefix}CHAIN_NAME"):
        cfg.chain_name = chain
    if h := os.environ.get(f"{env_prefix}CONTRACT_HASH"):
        cfg.contract_hash = h
    if h := os.environ.get(f"{env_prefix}CONTRACT_PACKAGE_HASH"):
        cfg.contract_package_hash = h
    if uref := os.environ.get(f"{env_prefix}EVENTS_UREF"):
        cfg.events_uref = uref
    if wasm := os.environ.get(f"{env_prefix}PROXY_WASM"):
        cfg.proxy_wasm_path = wasm
    if token := os.environ.get(f"{env_prefix}ACCESS_TOKEN"):
        cfg.access_token = token
    if key := os.environ.get(f"{env_prefix}SECRET_KEY"):
        cfg.secret_key_path = key

    # Expand ~ in local paths
    if cfg.secret_key_path:
        cfg.secret_key_path = str(Path(cfg.secret_key_path).expanduser())
    if cfg.proxy_wasm_path and not cfg.proxy_wasm_path.startswith(("http://", "https://")):
        cfg.proxy_wasm_path = str(Path(cfg.proxy_wasm_path).expanduser())

    return cfg


def _apply_network(cfg: ClientConfig, network: str) -> None:
    """Reset RPC URL and chain name to a known network's defaults."""
    try:
        rpc_url, chain_name = NETWORKS[network]
    except KeyError:
        raise ConfigurationError(
            f"Unknown network {network!r} (expected one of: {', '.join(NETWORKS)})"
        ) from None
    cfg.network = network
    cfg.rpc_url = rpc_url
    cfg.chain_name = chain_name
