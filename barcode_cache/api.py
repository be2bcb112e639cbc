"""
REST API using FastAPI. No secrets, no auth.

Routes:
  GET /                          echo
  GET /api/v1/                   echo
  GET /api/v1/barcode/{barcode}  record JSON, or 404
  GET /health                    status, version, storage dialect, remote source
                                 (+ remote_health: counters and breaker state)

The barcode route is a plain def so requests run concurrently on the worker
thread pool; the coordinator and backends are safe for that.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from . import __version__
from .coordinator import CacheCoordinator

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/"


def _echo(request: Request) -> str:
    client = request.client
    remote = f"{client.host}:{client.port}" if client else "unknown"
    txt = f"Echo: ({request.url.path}) -> ({remote})"
    logger.info(txt)
    return txt + "\n"


def create_app(
    coordinator: Optional[CacheCoordinator] = None,
    *,
    cfg: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    """
    Build the API app. With no coordinator, one is built from config at
    startup and shut down with the app; an injected coordinator is left to
    its owner.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = coordinator is None
        if owned:
            from .config import get_config
            from .wiring import create_coordinator

            app.state.coordinator = create_coordinator(cfg or get_config())
        else:
            app.state.coordinator = coordinator
        try:
            yield
        finally:
            if owned:
                from .wiring import shutdown_coordinator

                shutdown_coordinator(app.state.coordinator)

    app = FastAPI(title="Barcode Cache API", version=__version__, lifespan=lifespan)
    app.state.coordinator = coordinator

    def _coordinator(request: Request) -> CacheCoordinator:
        coord = getattr(request.app.state, "coordinator", None)
        if coord is None:
            raise HTTPException(503, detail="Cache not initialized")
        return coord

    @app.get("/", response_class=PlainTextResponse)
    def echo_root(request: Request) -> PlainTextResponse:
        return PlainTextResponse(_echo(request))

    @app.get(API_PREFIX, response_class=PlainTextResponse)
    def echo_api(request: Request) -> PlainTextResponse:
        return PlainTextResponse(_echo(request))

    @app.get(API_PREFIX + "barcode/{barcode}")
    def barcode_lookup(barcode: str, request: Request) -> Dict[str, str]:
        client = request.client
        logger.info(
            "Incoming on %s : barcode \"%s\" (from %s)",
            request.url.path, barcode, client.host if client else "unknown",
        )
        result = _coordinator(request).lookup(barcode)
        if result is None:
            raise HTTPException(404, detail=f"Barcode {barcode} not found")
        logger.info("Result: %s", result)
        return result.to_dict()

    @app.get("/health")
    def health(request: Request) -> Dict[str, Any]:
        coord = _coordinator(request)
        body: Dict[str, Any] = {
            "status": "ok",
            "version": __version__,
            "dialect": coord.local.source_name if coord.local is not None else None,
            "remote": coord.remote.source_name if coord.remote is not None else None,
        }
        # Only remotes that track health (Alma) report it.
        get_health = getattr(coord.remote, "get_health", None)
        if callable(get_health):
            body["remote_health"] = get_health()
        return body

    return app


app = create_app()
