"""V1 REST API routes.

Combines all sub-routers under the ``/api/v1`` prefix.
"""

from fastapi import APIRouter

from bulletin_wallet.api.v1.bulletins import router as bulletins_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(bulletins_router)

__all__ = ["v1_router"]
