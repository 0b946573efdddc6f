"""Fleet daemon - wires all components together and runs the sweeps."""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import Awaitable, Callable

import uvicorn

from dobi_fleet.actions.executor import ActionExecutor
from dobi_fleet.api.app import create_app
from dobi_fleet.api.data_api import FleetDataAggregator
from dobi_fleet.chain.gateway import Web3ChainGateway
from dobi_fleet.economics.engine import EconomicsEngine
from dobi_fleet.interfaces.chain import ChainGateway
from dobi_fleet.interfaces.clock import Clock
from dobi_fleet.interfaces.store import LedgerStore
from dobi_fleet.models.config import FleetConfig
from dobi_fleet.registry import ChargerRegistry
from dobi_fleet.scheduler.clock import LoopClock
from dobi_fleet.scheduler.daily import DepositScheduler
from dobi_fleet.scheduler.locks import ChargerLocks
from dobi_fleet.storage.sqlite import SQLiteLedgerStore

log = logging.getLogger(__name__)


class FleetDaemon:
    """Simulated EV-charger fleet.

    Owns the ledger store, chain gateway, scheduler and action executor,
    plus two background loops: the daily reset and the random status sweep.
    """

    def __init__(
        self,
        cfg: FleetConfig,
        store: LedgerStore | None = None,
        chain: ChainGateway | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._cfg = cfg
        self._running = False
        self._tasks: list[asyncio.Task] = []

        # Core components
        self.store: LedgerStore = store or SQLiteLedgerStore(cfg.db_path)
        self.chain: ChainGateway = chain or Web3ChainGateway(
            cfg.rpc_url,
            master_private_key=cfg.master_private_key,
            confirmation_timeout=cfg.confirmation_timeout,
            history_blocks=cfg.history_blocks,
            history_limit=cfg.history_limit,
        )
        self.locks = ChargerLocks()
        self.engine = EconomicsEngine(self.store, self.chain, cfg.send_onchain)
        self.scheduler = DepositScheduler(
            self.store,
            self.engine,
            self.locks,
            cfg.schedule,
            clock=clock or LoopClock(),
            rng=rng,
        )
        self.executor = ActionExecutor(
            self.store, self.scheduler, self.engine, self.chain, self.locks, cfg,
        )
        self.registry = ChargerRegistry(self.store, self.scheduler)
        self.data_api = FleetDataAggregator(self.store, self.scheduler, self.chain, cfg)

    @property
    def config(self) -> FleetConfig:
        return self._cfg

    @property
    def running(self) -> bool:
        return self._running

    async def prepare(self) -> None:
        """Open the ledger, seed it and plan today. No background loops."""
        await self.store.initialize()
        if self._cfg.seed_path:
            await self.registry.seed_from_file(Path(self._cfg.seed_path))
        await self.scheduler.initialize()
        plans = await self.scheduler.plan_day()
        log.info(
            "Planned %d active chargers, %d timers armed",
            len(plans), self.scheduler.armed_count,
        )

    async def start(self) -> None:
        """Prepare components and start the background sweeps."""
        log.info("Starting dobi_fleet daemon")
        log.info("  RPC: %s", self._cfg.rpc_url)
        log.info("  On-chain sending: %s", "enabled" if self._cfg.send_onchain else "simulated")
        log.info("  DB: %s", self._cfg.db_path)

        await self.prepare()
        self._running = True
        sched = self._cfg.schedule
        self._tasks.append(asyncio.create_task(
            self._sweep_loop("daily reset", sched.daily_reset_interval, self.scheduler.reset_day)
        ))
        if sched.status_sweep_enabled:
            self._tasks.append(asyncio.create_task(
                self._sweep_loop(
                    "status sweep",
                    sched.status_sweep_interval,
                    self.scheduler.random_status_sweep,
                )
            ))

    async def stop(self) -> None:
        """Cancel loops and timers, then release the store and chain."""
        log.info("Stop requested")
        self._running = False
        for task in self._tasks:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()

        cancelled = self.scheduler.cancel_all()
        self.executor.cancel_restarts()
        await self.chain.close()
        await self.store.close()
        log.info("Daemon shut down cleanly (%d timers cancelled)", cancelled)

    async def _sweep_loop(
        self, name: str, interval: float, sweep: Callable[[], Awaitable[object]]
    ) -> None:
        """Run ``sweep`` every ``interval`` seconds, starting one interval in."""
        while self._running:
            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break
            try:
                await sweep()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                log.error("%s error: %s", name, exc, exc_info=True)


async def run_daemon(cfg: FleetConfig) -> None:
    """Entry point: serve the HTTP API with the daemon in its lifespan."""
    daemon = FleetDaemon(cfg)
    app = create_app(daemon)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
    ))
    await server.serve()
