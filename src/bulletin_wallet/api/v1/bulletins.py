"""V1 bulletin and credit endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from bulletin_wallet.api.dependencies import get_engine
from bulletin_wallet.api.v1.schemas import (
    BalanceResponse,
    BulletinTransactionResponse,
    ErrorResponse,
    SendBulletinRequest,
    SendBulletinResponse,
    SyncCreditsResponse,
)
from bulletin_wallet.engine.client import WalletEngine  # noqa: TC001
from bulletin_wallet.errors.wallet_errors import TransactionNotFoundError

router = APIRouter(tags=["bulletins"])


@router.post(
    "/bulletins",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def send_bulletin(
    body: SendBulletinRequest,
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> SendBulletinResponse:
    """Build, sign and broadcast a bulletin transaction."""
    txid = await engine.bulletin_service.send_bulletin(body.address, body.board, body.message)
    return SendBulletinResponse(transaction_id=txid)


@router.get("/bulletins/{txid}")
async def get_bulletin(
    txid: str,
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> BulletinTransactionResponse:
    """Look up a bulletin transaction sent by this wallet."""
    record = await engine.tx_store.get_transaction(txid)
    if record is None:
        raise TransactionNotFoundError(txid)
    return BulletinTransactionResponse(
        id=record.id,
        hex=record.hex_body,
        fee=record.fee,
        total_burn=record.total_burn,
        num_inputs=record.num_inputs,
        num_outputs=record.num_outputs,
        author_address=record.author_address,
        board=record.board,
    )


@router.post("/credits/sync")
async def sync_credits(
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> SyncCreditsResponse:
    """Import unspent outputs of the wallet's addresses."""
    return SyncCreditsResponse(imported=await engine.sync_credits())


@router.get("/balance")
async def get_balance(
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> BalanceResponse:
    """Sum of the wallet's unspent credits."""
    return BalanceResponse(satoshis=await engine.tx_store.balance())
