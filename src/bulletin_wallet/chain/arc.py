"""ARC HTTP client — transaction broadcast.

- POST /v1/tx — Broadcast a raw transaction
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from bulletin_wallet.errors.chain_errors import ARCError

if TYPE_CHECKING:
    from bulletin_wallet.config.settings import ARCConfig

logger = logging.getLogger(__name__)


class TXStatus(enum.StrEnum):
    """ARC transaction status codes."""

    UNKNOWN = "UNKNOWN"
    QUEUED = "QUEUED"
    RECEIVED = "RECEIVED"
    STORED = "STORED"
    ANNOUNCED_TO_NETWORK = "ANNOUNCED_TO_NETWORK"
    REQUESTED_BY_NETWORK = "REQUESTED_BY_NETWORK"
    SENT_TO_NETWORK = "SENT_TO_NETWORK"
    ACCEPTED_BY_NETWORK = "ACCEPTED_BY_NETWORK"
    SEEN_ON_NETWORK = "SEEN_ON_NETWORK"
    MINED = "MINED"
    REJECTED = "REJECTED"
    DOUBLE_SPEND_ATTEMPTED = "DOUBLE_SPEND_ATTEMPTED"

    @classmethod
    def from_string(cls, value: str) -> TXStatus:
        """Parse a status string, returning UNKNOWN for unrecognised values."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class TXInfo:
    """ARC broadcast response.

    Attributes:
        txid: Transaction ID (hex).
        tx_status: Status string (maps to TXStatus).
        extra_info: Additional info from ARC.
        competing_txs: Conflicting transaction IDs, if any.
    """

    txid: str = ""
    tx_status: str = ""
    extra_info: str = ""
    competing_txs: list[str] = field(default_factory=list)

    @property
    def status(self) -> TXStatus:
        return TXStatus.from_string(self.tx_status)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TXInfo:
        return cls(
            txid=data.get("txid", ""),
            tx_status=data.get("txStatus", ""),
            extra_info=data.get("extraInfo", "") or "",
            competing_txs=data.get("competingTxs") or [],
        )


# ARC-specific status codes
_ERROR_MAP = {
    401: "ARC authentication failed",
    409: "Transaction already exists (conflict)",
    460: "Transaction is not in extended format",
    461: "Transaction is malformed",
    465: "Fee too low",
    473: "Cumulative fee validation failed",
}


class ARCClient:
    """Async HTTP client for the ARC transaction broadcasting API.

    Usage::

        arc = ARCClient(config)
        await arc.connect()
        try:
            info = await arc.broadcast("raw_hex_here")
        finally:
            await arc.close()
    """

    def __init__(self, config: ARCConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        headers: dict[str, str] = {
            "Content-Type": "application/json",
        }
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        if self._config.deployment_id:
            headers["XDeployment-ID"] = self._config.deployment_id

        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers=headers,
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def broadcast(self, raw_tx: str) -> TXInfo:
        """Broadcast a transaction.

        Args:
            raw_tx: Raw transaction hex.

        Returns:
            TXInfo with the broadcast result.

        Raises:
            ARCError: On HTTP errors, API errors or a rejected transaction.
        """
        client = self._ensure_connected()

        try:
            response = await client.post(
                "/v1/tx",
                json={"rawTx": raw_tx},
                headers={"X-WaitFor": self._config.wait_for.value},
            )
        except httpx.HTTPError as exc:
            raise ARCError(f"ARC broadcast failed: {exc}") from exc

        if response.status_code not in (200, 201):
            self._raise_for_status(response)

        info = TXInfo.from_dict(response.json())
        if info.status in (TXStatus.REJECTED, TXStatus.DOUBLE_SPEND_ATTEMPTED):
            raise ARCError(f"ARC rejected {info.txid}: {info.tx_status} {info.extra_info}".strip())
        logger.debug("ARC accepted %s (%s)", info.txid, info.tx_status)
        return info

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "ARC client not connected. Call connect() first."
            raise ARCError(msg, status_code=500)
        return self._client

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        try:
            body = response.json()
            detail = body.get("detail", body.get("title", response.text))
        except (ValueError, AttributeError):
            detail = response.text

        message = _ERROR_MAP.get(status, f"ARC broadcast failed ({status}): {detail}")
        raise ARCError(message, arc_status=status)
