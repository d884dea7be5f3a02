"""V1 API request/response Pydantic schemas.

These are the *API-layer* schemas; endpoint code maps between store
records and these schemas.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error body ``{"code": "...", "message": "..."}``."""

    code: str
    message: str
    details: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Bulletins
# ---------------------------------------------------------------------------


class SendBulletinRequest(BaseModel):
    """POST /api/v1/bulletins — post a message from an owned address."""

    address: str = Field(..., min_length=1)
    board: str = ""
    message: str


class SendBulletinResponse(BaseModel):
    transaction_id: str


class BulletinTransactionResponse(BaseModel):
    """A recorded bulletin transaction."""

    id: str
    hex: str
    fee: int
    total_burn: int
    num_inputs: int
    num_outputs: int
    author_address: str
    board: str


# ---------------------------------------------------------------------------
# Credits
# ---------------------------------------------------------------------------


class SyncCreditsResponse(BaseModel):
    imported: int


class BalanceResponse(BaseModel):
    satoshis: int
