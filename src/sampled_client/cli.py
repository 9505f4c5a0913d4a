"""CLI entry point for the Sampled marketplace client."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from sampled_client.casper.event_log import ContractEventLog, StateRootCache
from sampled_client.casper.keys import shorten
from sampled_client.casper.queries import MarketplaceQueries
from sampled_client.casper.rpc import CasperRpcClient
from sampled_client.casper.submitter import CasperDeploySubmitter
from sampled_client.config import load_config
from sampled_client.errors import (
    ConfigurationError,
    DeployTimeout,
    ExecutionFailure,
    SampledError,
    SigningCancelled,
)
from sampled_client.marketplace import SampledMarketplace
from sampled_client.models.config import ClientConfig
from sampled_client.models.events import LicenseType
from sampled_client.models.records import ExecutionStatus, SampleRecord, TxReceipt
from sampled_client.pricing import cspr_to_motes, motes_to_cspr_str
from sampled_client.signers.keyfile import KeyFileSigner


def _cspr(motes: int) -> str:
    return motes_to_cspr_str(motes)


def _require_contract(cfg: ClientConfig) -> None:
    """Exit with error if no contract hash is configured."""
    if not cfg.contract_hash:
        click.echo("Error: No contract hash configured.", err=True)
        click.echo("Set SAMPLED_CONTRACT_HASH or contract_hash in [contract].", err=True)
        sys.exit(1)


def _require_secret(cfg: ClientConfig) -> None:
    """Exit with error if no secret key file is configured."""
    if not cfg.secret_key_path:
        click.echo("Error: No secret key configured.", err=True)
        click.echo("Set SAMPLED_SECRET_KEY or secret_key_path in [signer].", err=True)
        sys.exit(1)


def _queries(cfg: ClientConfig, rpc: CasperRpcClient) -> MarketplaceQueries:
    state_roots = StateRootCache(rpc, ttl=cfg.state_root_ttl)
    event_log = ContractEventLog(rpc, cfg.contract_hash, state_roots, events_uref=cfg.events_uref)
    return MarketplaceQueries(event_log)


def _rpc(cfg: ClientConfig) -> CasperRpcClient:
    return CasperRpcClient(cfg.rpc_url, cfg.access_token, cfg.rpc_timeout)


def _print_sample(sample: SampleRecord) -> None:
    state = "" if sample.is_active else "  [inactive]"
    click.echo(
        f"#{sample.sample_id:<5} {sample.title[:40]:<40} {_cspr(sample.price):>18}"
        f"  sales={sample.total_sales}  seller={shorten(sample.seller)}{state}"
    )


def _run_query(cfg: ClientConfig, body) -> None:
    """Run ``body(queries)`` against a fresh node client."""
    _require_contract(cfg)

    async def _go():
        async with _rpc(cfg) as rpc:
            await body(_queries(cfg, rpc))

    asyncio.run(_go())


def _run_mutation(cfg: ClientConfig, yes: bool, body) -> None:
    """Run ``body(market)`` with the key-file signer; report the receipt."""
    _require_contract(cfg)
    _require_secret(cfg)

    def _confirm(deploy: dict) -> bool:
        if yes:
            return True
        click.echo(f"  Deploy:   {deploy['hash']}")
        click.echo(f"  Account:  {deploy['header']['account']}")
        click.echo(f"  Chain:    {deploy['header']['chain_name']}")
        return click.confirm("Sign and submit?", default=False)

    async def _go():
        signer = KeyFileSigner.from_pem_file(cfg.secret_key_path, confirm=_confirm)
        market = SampledMarketplace.from_config(cfg, signer)
        try:
            await market.connect()
            receipt: TxReceipt = await body(market)
            click.echo(f"{receipt.entry_point} succeeded")
            click.echo(f"  Deploy:   {receipt.deploy_hash}")
            if receipt.attached_value is not None:
                click.echo(f"  Paid:     {_cspr(receipt.attached_value)}")
            if receipt.outcome.cost is not None:
                click.echo(f"  Gas cost: {_cspr(receipt.outcome.cost)}")
        finally:
            await market.close()

    try:
        asyncio.run(_go())
    except SigningCancelled:
        click.echo("Cancelled.", err=True)
        sys.exit(1)
    except ExecutionFailure as exc:
        click.echo(f"Deploy {exc.deploy_hash} failed: {exc.message}", err=True)
        sys.exit(1)
    except DeployTimeout as exc:
        click.echo(f"{exc}. Check later with 'sampled watch {exc.deploy_hash}'.", err=True)
        sys.exit(2)
    except (ValueError, SampledError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """sampled - browse and trade on the Sampled marketplace."""
    ctx.ensure_object(dict)
    try:
        cfg = load_config(config_path)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from None
    ctx.obj["cfg"] = cfg

    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show client configuration."""
    cfg: ClientConfig = ctx.obj["cfg"]
    click.echo(f"Network:    {cfg.network}")
    click.echo(f"RPC URL:    {cfg.rpc_url}")
    click.echo(f"Chain:      {cfg.chain_name}")
    click.echo(f"Contract:   {cfg.contract_hash or '(not set)'}")
    click.echo(f"Package:    {cfg.contract_package_hash or '(not set)'}")
    click.echo(f"Proxy wasm: {cfg.proxy_wasm_path or '(not set)'}")
    click.echo(f"Token:      {'***configured***' if cfg.access_token else '(not set)'}")
    click.echo(f"Secret key: {cfg.secret_key_path or '(not set)'}")


@cli.command()
@click.option("--active", "active_only", is_flag=True, help="Hide deactivated samples")
@click.pass_context
def catalog(ctx: click.Context, active_only: bool) -> None:
    """List every sample, newest first."""

    async def _catalog(queries: MarketplaceQueries):
        samples = await queries.get_all_samples(active_only=active_only)
        if not samples:
            click.echo("No samples.")
            return
        for sample in samples:
            _print_sample(sample)

    _run_query(ctx.obj["cfg"], _catalog)


@cli.command()
@click.argument("sample_id", type=int)
@click.pass_context
def sample(ctx: click.Context, sample_id: int) -> None:
    """Show one sample."""

    async def _sample(queries: MarketplaceQueries):
        s = await queries.get_sample(sample_id)
        if s is None:
            raise click.ClickException(f"Sample {sample_id} not found.")
        click.echo(f"Sample #{s.sample_id}")
        click.echo(f"  Title:    {s.title}")
        click.echo(f"  Seller:   {s.seller}")
        click.echo(f"  Price:    {s.price} motes ({_cspr(s.price)})")
        click.echo(f"  IPFS:     {s.ipfs_link}")
        click.echo(f"  Cover:    {s.cover_image or '-'}")
        click.echo(f"  Sales:    {s.total_sales}")
        click.echo(f"  Active:   {s.is_active}")
        click.echo(f"  Created:  {s.created_at}")

    _run_query(ctx.obj["cfg"], _sample)


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Marketplace-wide totals."""

    async def _stats(queries: MarketplaceQueries):
        st = await queries.get_stats()
        click.echo(f"Samples:      {st.sample_count}")
        click.echo(f"Purchases:    {st.purchase_count}")
        click.echo(f"Volume:       {_cspr(st.total_volume)}")
        click.echo(f"Platform fee: {_cspr(st.platform_fee_collected)}")

    _run_query(ctx.obj["cfg"], _stats)


@cli.command()
@click.argument("account")
@click.pass_context
def uploads(ctx: click.Context, account: str) -> None:
    """Samples uploaded by ACCOUNT (public key or account hash)."""

    async def _uploads(queries: MarketplaceQueries):
        samples = await queries.get_user_samples(account)
        if not samples:
            click.echo("No uploads.")
        for s in samples:
            _print_sample(s)

    _run_query(ctx.obj["cfg"], _uploads)


@cli.command()
@click.argument("account")
@click.pass_context
def purchases(ctx: click.Context, account: str) -> None:
    """Samples bought by ACCOUNT."""

    async def _purchases(queries: MarketplaceQueries):
        samples = await queries.get_user_purchases(account)
        if not samples:
            click.echo("No purchases.")
        for s in samples:
            _print_sample(s)

    _run_query(ctx.obj["cfg"], _purchases)


@cli.command()
@click.argument("account")
@click.pass_context
def licenses(ctx: click.Context, account: str) -> None:
    """Licenses held by ACCOUNT."""

    async def _licenses(queries: MarketplaceQueries):
        owned = await queries.get_user_licenses(account)
        if not owned:
            click.echo("No licenses.")
        for lic in owned:
            kind = lic.license_type.label if isinstance(lic.license_type, LicenseType) else f"type {lic.license_type}"
            title = lic.sample.title if lic.sample else "(unknown sample)"
            click.echo(
                f"License #{lic.license_id:<5} {kind:<10} sample #{lic.sample_id} {title}"
                f"  {_cspr(lic.price)}"
            )

    _run_query(ctx.obj["cfg"], _licenses)


@cli.command()
@click.argument("account")
@click.pass_context
def earnings(ctx: click.Context, account: str) -> None:
    """Lifetime seller earnings of ACCOUNT (sales minus platform fee)."""

    async def _earnings(queries: MarketplaceQueries):
        total = await queries.get_user_earnings(account)
        click.echo(f"Earnings: {total} motes ({_cspr(total)})")

    _run_query(ctx.obj["cfg"], _earnings)


@cli.command()
@click.argument("sample_id", type=int)
@click.pass_context
def prices(ctx: click.Context, sample_id: int) -> None:
    """License prices for a sample."""

    async def _prices(queries: MarketplaceQueries):
        all_prices = await queries.get_license_prices(sample_id)
        if all_prices is None:
            raise click.ClickException(f"Sample {sample_id} not found.")
        for lt, price in all_prices.as_dict().items():
            click.echo(f"{lt.label:<11} {price:>22} motes  ({_cspr(price)})")

    _run_query(ctx.obj["cfg"], _prices)


@cli.command()
@click.argument("public_key")
@click.pass_context
def balance(ctx: click.Context, public_key: str) -> None:
    """Main purse balance of PUBLIC_KEY."""
    cfg: ClientConfig = ctx.obj["cfg"]

    async def _balance():
        async with _rpc(cfg) as rpc:
            motes = await rpc.query_balance(public_key)
        click.echo(f"Balance: {motes} motes ({_cspr(motes)})")

    try:
        asyncio.run(_balance())
    except SampledError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("deploy_hash")
@click.option("--timeout", type=float, default=None, help="Seconds to wait (default from config)")
@click.pass_context
def watch(ctx: click.Context, deploy_hash: str, timeout: float | None) -> None:
    """Poll a submitted deploy until it executes."""
    cfg: ClientConfig = ctx.obj["cfg"]

    async def _watch():
        async with _rpc(cfg) as rpc:
            submitter = CasperDeploySubmitter(
                rpc, poll_interval=cfg.poll_interval,
                timeout=timeout if timeout is not None else cfg.deploy_timeout,
            )
            return await submitter.wait_for_completion(deploy_hash)

    outcome = asyncio.run(_watch())
    click.echo(f"Deploy:  {outcome.deploy_hash}")
    click.echo(f"Status:  {outcome.status.value}")
    if outcome.error_message:
        click.echo(f"Error:   {outcome.error_message}")
    if outcome.cost is not None:
        click.echo(f"Cost:    {_cspr(outcome.cost)}")
    click.echo(f"Polls:   {outcome.polls} ({outcome.elapsed:.0f}s)")
    if outcome.status is not ExecutionStatus.SUCCEEDED:
        sys.exit(1)


# ── Mutations ──────────────────────────────────────────


@cli.command()
@click.option("--title", required=True)
@click.option("--ipfs", "ipfs_link", required=True, help="IPFS link of the audio file")
@click.option("--price", required=True, help="Price in CSPR (e.g. 12.5)")
@click.option("--bpm", type=int, default=0)
@click.option("--genre", default="")
@click.option("--cover", "cover_image", default="", help="Cover image link")
@click.option("--video", "video_preview_link", default="", help="Video preview link")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def upload(
    ctx: click.Context,
    title: str,
    ipfs_link: str,
    price: str,
    bpm: int,
    genre: str,
    cover_image: str,
    video_preview_link: str,
    yes: bool,
) -> None:
    """Upload a new sample."""
    motes = _parse_cspr(price)

    async def _upload(market: SampledMarketplace):
        return await market.upload_sample(
            price=motes, ipfs_link=ipfs_link, title=title, bpm=bpm, genre=genre,
            cover_image=cover_image, video_preview_link=video_preview_link,
        )

    _run_mutation(ctx.obj["cfg"], yes, _upload)


@cli.command()
@click.argument("sample_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def buy(ctx: click.Context, sample_id: int, yes: bool) -> None:
    """Purchase a sample at its catalog price."""

    async def _buy(market: SampledMarketplace):
        return await market.purchase_sample(sample_id)

    _run_mutation(ctx.obj["cfg"], yes, _buy)


@cli.command("license")
@click.argument("sample_id", type=int)
@click.argument(
    "license_type",
    type=click.Choice([lt.name.lower() for lt in LicenseType], case_sensitive=False),
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def license_(ctx: click.Context, sample_id: int, license_type: str, yes: bool) -> None:
    """Purchase a license for a sample."""
    lt = LicenseType[license_type.upper()]

    async def _license(market: SampledMarketplace):
        return await market.purchase_license(sample_id, lt)

    _run_mutation(ctx.obj["cfg"], yes, _license)


@cli.command("update-price")
@click.argument("sample_id", type=int)
@click.argument("price")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def update_price(ctx: click.Context, sample_id: int, price: str, yes: bool) -> None:
    """Set a new price (CSPR) for one of your samples."""
    motes = _parse_cspr(price)

    async def _update(market: SampledMarketplace):
        return await market.update_price(sample_id, motes)

    _run_mutation(ctx.obj["cfg"], yes, _update)


@cli.command()
@click.argument("sample_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def deactivate(ctx: click.Context, sample_id: int, yes: bool) -> None:
    """Take one of your samples off sale."""

    async def _deactivate(market: SampledMarketplace):
        return await market.deactivate_sample(sample_id)

    _run_mutation(ctx.obj["cfg"], yes, _deactivate)


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def withdraw(ctx: click.Context, yes: bool) -> None:
    """Withdraw accumulated seller earnings."""

    async def _withdraw(market: SampledMarketplace):
        return await market.withdraw_earnings()

    _run_mutation(ctx.obj["cfg"], yes, _withdraw)


def _parse_cspr(value: str) -> int:
    try:
        return cspr_to_motes(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from None


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
