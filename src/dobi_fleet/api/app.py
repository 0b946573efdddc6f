"""FastAPI application exposing charger creation, actions and fleet views."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from dobi_fleet import __version__
from dobi_fleet.errors import FleetError
from dobi_fleet.models.snapshots import to_dict

if TYPE_CHECKING:
    from dobi_fleet.daemon import FleetDaemon

log = logging.getLogger(__name__)


class CreateChargerRequest(BaseModel):
    id_charger: str | None = None
    owner_address: str | None = None
    status: str | None = None


class ActionRequest(BaseModel):
    """An action name plus any action-specific parameters."""

    model_config = ConfigDict(extra="allow")

    action: str | None = None


class SimulateRequest(BaseModel):
    amount_eth: Any = None


def create_app(daemon: FleetDaemon) -> FastAPI:
    """Build the HTTP surface around a daemon.

    The lifespan hook starts the daemon's components and background sweeps
    and stops them on shutdown. Every error response is ``{"error": msg}``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await daemon.start()
        try:
            yield
        finally:
            await daemon.stop()

    app = FastAPI(title="dobi_fleet", version=__version__, lifespan=lifespan)

    @app.exception_handler(FleetError)
    async def _fleet_error(request: Request, exc: FleetError) -> JSONResponse:
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse({"error": message}, status_code=400)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        log.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse({"error": str(exc) or "Internal server error"}, status_code=500)

    # ── Health ─────────────────────────────────────────────

    @app.get("/", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # ── Chargers ───────────────────────────────────────────

    @app.post("/chargers", status_code=201, tags=["chargers"])
    async def create_charger(body: CreateChargerRequest) -> dict[str, str]:
        charger = await daemon.registry.create_charger(
            body.id_charger, body.owner_address, body.status,
        )
        return {
            "message": "Charger created",
            "id_charger": charger.id_charger,
            "wallet": charger.wallet_address,
            "status": charger.status.value,
        }

    @app.post("/chargers/{charger_id}/action", tags=["chargers"])
    async def perform_action(charger_id: str, body: ActionRequest) -> dict[str, Any]:
        params = dict(body.model_extra or {})
        result = await daemon.executor.perform_action(
            charger_id, body.action or "", params,
        )
        return {"message": result.message, "success": result.success}

    @app.post("/chargers/{charger_id}/simulate_transaction", tags=["chargers"])
    async def simulate_transaction(
        charger_id: str, body: SimulateRequest | None = None,
    ) -> dict[str, Any]:
        amount = body.amount_eth if body else None
        result = await daemon.executor.simulate_transaction(charger_id, amount)
        return {"message": result.message, "tx_hash": result.tx_ref}

    @app.get("/chargers/detailed", tags=["chargers"])
    async def detailed() -> dict[str, Any]:
        return to_dict(await daemon.data_api.get_detailed())

    # ── Logs ───────────────────────────────────────────────

    @app.get("/logs", tags=["logs"])
    async def logs(
        include_blockchain: str | None = None, charger_id: str | None = None,
    ) -> dict[str, Any]:
        merge = (include_blockchain or "").lower() == "true"
        snapshot = await daemon.data_api.get_logs(merge, charger_id or None)
        return to_dict(snapshot)

    return app
