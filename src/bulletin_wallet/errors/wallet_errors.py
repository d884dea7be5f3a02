"""WalletError — base exception and the closed set of wallet error kinds.

Each failure of a bulletin build maps to exactly one :class:`ErrorKind`, so
callers match on ``err.code`` (or the class) instead of message text.
"""

from __future__ import annotations

import enum
from typing import Any, ClassVar


class ErrorKind(enum.StrEnum):
    """Machine-readable error codes."""

    WALLET = "wallet-error"
    ADDRESS_DECODE = "address-decode"
    ADDRESS_NOT_OWNED = "address-not-owned"
    NO_ELIGIBLE_CREDIT = "no-eligible-credit"
    INSUFFICIENT_FUNDS = "insufficient-funds"
    BULLETIN_ENCODE = "bulletin-encode"
    SIGN_FAILED = "sign-failed"
    VALIDATION_FAILED = "validation-failed"
    INTERNAL = "internal-error"
    BROADCAST_FAILED = "broadcast-failed"
    CHAIN = "chain-error"
    NOT_FOUND = "not-found"


class WalletError(Exception):
    """Base error for all wallet operations.

    Attributes:
        message: Human-readable error description.
        status_code: Suggested HTTP status code.
        code: Machine-readable error code string.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.WALLET
    default_status: ClassVar[int] = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        self.code = self.kind.value

    def details(self) -> dict[str, Any] | None:
        """Structured fields for the caller, or None."""
        return None


class AddressDecodeError(WalletError):
    """The address string could not be decoded for the active network."""

    kind = ErrorKind.ADDRESS_DECODE
    default_status = 400


class AddressNotOwnedError(WalletError):
    """The address is valid but the keystore holds no key for it."""

    kind = ErrorKind.ADDRESS_NOT_OWNED
    default_status = 422

    def __init__(self, address: str) -> None:
        super().__init__(f"address {address} is not owned by this wallet")
        self.address = address

    def details(self) -> dict[str, Any]:
        return {"address": self.address}


class NoEligibleCreditError(WalletError):
    """No spendable P2PKH output pays the authoring address."""

    kind = ErrorKind.NO_ELIGIBLE_CREDIT
    default_status = 422

    def __init__(self, address: str) -> None:
        super().__init__(f"no unspent outputs for address {address}")
        self.address = address


class InsufficientFundsError(WalletError):
    """The eligible pool ran out before the burn (and fee) were covered.

    ``required_fee`` is 0 when funding the burn failed, otherwise the fee
    estimate in force when the pool was exhausted.
    """

    kind = ErrorKind.INSUFFICIENT_FUNDS
    default_status = 422

    def __init__(self, collected: int, required_burn: int, required_fee: int) -> None:
        super().__init__(
            f"insufficient funds: collected {collected}, "
            f"need {required_burn} burn + {required_fee} fee"
        )
        self.collected = collected
        self.required_burn = required_burn
        self.required_fee = required_fee

    @property
    def shortfall(self) -> int:
        return self.required_burn + self.required_fee - self.collected

    def details(self) -> dict[str, Any]:
        return {
            "collected": self.collected,
            "required_burn": self.required_burn,
            "required_fee": self.required_fee,
        }


class BulletinEncodeError(WalletError):
    """The bulletin failed validation or could not be encoded."""

    kind = ErrorKind.BULLETIN_ENCODE
    default_status = 400


class SignFailedError(WalletError):
    kind = ErrorKind.SIGN_FAILED


class ValidationFailedError(WalletError):
    kind = ErrorKind.VALIDATION_FAILED


class StoreInsertError(WalletError):
    """Ledger-store bookkeeping failed.

    Callers only see "internal error"; the cause is logged where the
    failure happens.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self) -> None:
        super().__init__("internal error")


class BroadcastFailedError(WalletError):
    kind = ErrorKind.BROADCAST_FAILED
    default_status = 502


class ChainError(WalletError):
    """The chain data source (tip height, UTXO lookup) failed."""

    kind = ErrorKind.CHAIN
    default_status = 502


class TransactionNotFoundError(WalletError):
    kind = ErrorKind.NOT_FOUND
    default_status = 404

    def __init__(self, txid: str) -> None:
        super().__init__(f"transaction {txid} not found")
