"""CLI entry point for the dobi_fleet service."""

from __future__ import annotations

import asyncio
import logging

import click

from dobi_fleet.chain.wallets import generate_wallet
from dobi_fleet.config import load_config
from dobi_fleet.daemon import FleetDaemon, run_daemon
from dobi_fleet.storage.sqlite import SQLiteLedgerStore


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """dobi_fleet - simulated EV-charger wallet fleet."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Service ────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the scheduler and HTTP API."""
    cfg = load_config(ctx.obj["config_path"])
    if ctx.obj["verbose"]:
        cfg.log_level = "debug"
    mode = "on-chain" if cfg.send_onchain else "simulated"
    click.echo(f"Starting dobi_fleet on {cfg.host}:{cfg.port} ({mode})")
    asyncio.run(run_daemon(cfg))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show service configuration."""
    cfg = load_config(ctx.obj["config_path"])
    sched = cfg.schedule
    click.echo(f"Listen:      {cfg.host}:{cfg.port}")
    click.echo(f"RPC URL:     {cfg.rpc_url}")
    click.echo(f"On-chain:    {'enabled' if cfg.send_onchain else 'simulated'}")
    click.echo(f"Master key:  {'***configured***' if cfg.master_private_key else '(not set)'}")
    click.echo(f"Window:      {sched.window_start}:00-{sched.window_end}:00")
    click.echo(f"Deposits:    {sched.min_tx_eth}-{sched.max_tx_eth} ETH")
    click.echo(f"Daily cap:   {sched.max_daily_charges}")
    click.echo(f"DB path:     {cfg.db_path}")
    click.echo(f"Seed file:   {cfg.seed_path or '(none)'}")
    click.echo(f"Tickets:     {cfg.ticket_url or '(simulated)'}")


@cli.command()
@click.option("--status", "filter_status", type=click.Choice(["active", "inactive"]), default=None)
@click.pass_context
def chargers(ctx: click.Context, filter_status: str | None) -> None:
    """List chargers and their totals from the ledger."""
    cfg = load_config(ctx.obj["config_path"])

    async def _chargers():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            rows = await store.list_chargers(filter_status)
            if not rows:
                click.echo("No chargers.")
                return
            for c in rows:
                click.echo(
                    f"  {c.id_charger:<16} {c.status.value:<9} tx={c.transactions:<5} "
                    f"income={c.income_generated} cost={c.cost_generated} "
                    f"balance={c.balance_total}  wallet={c.wallet_address}"
                )
        finally:
            await store.close()

    asyncio.run(_chargers())


@cli.command()
@click.option("--charger", "charger_id", default=None, help="Only this charger's entries")
@click.option("-n", "--limit", type=int, default=20, help="Number of entries to show")
@click.pass_context
def logs(ctx: click.Context, charger_id: str | None, limit: int) -> None:
    """Show the most recent ledger log entries."""
    cfg = load_config(ctx.obj["config_path"])

    async def _logs():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            entries = await store.get_logs(charger_id, limit=limit)
            if not entries:
                click.echo("No log entries.")
                return
            for e in entries:
                click.echo(
                    f"  [{e.timestamp[:19]}] {e.charger_id}: {e.message} "
                    f"(tx={e.transactions}, balance={e.balance_total})"
                )
        finally:
            await store.close()

    asyncio.run(_logs())


# ── Maintenance ────────────────────────────────────────


@cli.command()
@click.argument("path", required=False)
@click.pass_context
def seed(ctx: click.Context, path: str | None) -> None:
    """Load chargers from a JSON seed file into the ledger."""
    cfg = load_config(ctx.obj["config_path"])
    seed_path = path or cfg.seed_path
    if not seed_path:
        raise click.UsageError("No seed file given and none configured.")

    async def _seed():
        daemon = FleetDaemon(cfg)
        await daemon.store.initialize()
        try:
            added = await daemon.registry.seed_from_file(seed_path)
        finally:
            await daemon.chain.close()
            await daemon.store.close()
        click.echo(f"Added {len(added)} chargers from {seed_path}")
        for charger_id in added:
            click.echo(f"  {charger_id}")

    asyncio.run(_seed())


@cli.command("new-wallet")
def new_wallet() -> None:
    """Generate a wallet keypair (e.g. for the master wallet)."""
    wallet = generate_wallet()
    click.echo(f"Address:     {wallet.address}")
    click.echo(f"Private key: {wallet.private_key}")
