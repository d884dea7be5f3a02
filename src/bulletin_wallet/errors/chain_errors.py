"""ARC & WhatsOnChain errors."""

from __future__ import annotations

from typing import Any

from bulletin_wallet.errors.wallet_errors import BroadcastFailedError, ChainError


class ARCError(BroadcastFailedError):
    """Error from the ARC transaction broadcaster.

    ``arc_status`` carries ARC's own HTTP status (e.g. 465 "Fee too low");
    ``status_code`` stays a gateway error for callers of this wallet.
    """

    def __init__(
        self, message: str, *, status_code: int = 502, arc_status: int | None = None
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.arc_status = arc_status

    def details(self) -> dict[str, Any] | None:
        if self.arc_status is None:
            return None
        return {"arc_status": self.arc_status}


class WoCError(ChainError):
    """Error from the WhatsOnChain REST API."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code)
