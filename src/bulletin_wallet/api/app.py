"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from bulletin_wallet import __version__
from bulletin_wallet.api.v1 import v1_router
from bulletin_wallet.config.settings import AppConfig
from bulletin_wallet.engine.client import WalletEngine
from bulletin_wallet.errors.wallet_errors import WalletError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialise the engine on startup and shut it down on exit."""
    config: AppConfig = app.state.config
    engine = WalletEngine(config)

    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("Bulletin wallet engine initialized")
        yield
    finally:
        await engine.close()
        logger.info("Bulletin wallet engine shut down")


def create_app(*, config: AppConfig | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
    """
    if config is None:
        config = AppConfig()

    app = FastAPI(
        title="bulletin-wallet",
        version=__version__,
        description="Post bulletins to a BSV-style UTXO ledger",
        lifespan=_lifespan,
    )
    app.state.config = config

    # -- Error handler --
    @app.exception_handler(WalletError)
    async def _wallet_error_handler(request: Request, exc: WalletError) -> JSONResponse:
        content = {"code": exc.code, "message": exc.message}
        details = exc.details()
        if details is not None:
            content["details"] = details
        return JSONResponse(status_code=exc.status_code, content=content)

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health(request: Request, response: Response) -> dict[str, str]:
        engine: WalletEngine | None = getattr(request.app.state, "engine", None)
        checks = await engine.health_check() if engine is not None else {"engine": "not_running"}
        healthy = all(value == "ok" for value in checks.values())
        if not healthy:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "ok" if healthy else "degraded", **checks}

    # -- Mount v1 API --
    app.include_router(v1_router)

    return app
