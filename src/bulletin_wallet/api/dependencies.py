"""FastAPI dependency injection helpers.

Usage in a route::

    @router.post("/bulletins")
    async def send_bulletin(
        engine: Annotated[WalletEngine, Depends(get_engine)],
    ) -> ...:
        ...
"""

from __future__ import annotations

from fastapi import Request

from bulletin_wallet.engine.client import WalletEngine  # noqa: TC001
from bulletin_wallet.errors.wallet_errors import WalletError


def get_engine(request: Request) -> WalletEngine:
    """Retrieve the engine from ``app.state``.

    The engine is stored on ``app.state.engine`` during lifespan startup.

    Raises:
        WalletError: If the engine is not initialized.
    """
    engine: WalletEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        msg = "wallet engine is not running"
        raise WalletError(msg, status_code=503)
    return engine
