"""Store models — credits and recorded transactions."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""


class TimestampMixin:
    """Created / updated timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class CreditRecord(Base, TimestampMixin):
    """An output owned by the wallet, spent or unspent.

    Identified by its ``(transaction_id, output_index)`` pair.
    """

    __tablename__ = "credits"

    id: Mapped[str] = mapped_column(
        String(128), primary_key=True, comment="txid:vout composite key"
    )
    transaction_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True, comment="Transaction ID (txid)"
    )
    output_index: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Output index (vout)"
    )
    satoshis: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Value in satoshis")
    script_pub_key: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Hex-encoded locking script"
    )
    block_height: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=-1, comment="Mined height, -1 if unconfirmed"
    )
    is_coinbase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    spending_tx_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
        index=True,
        comment="Transaction ID that spent this credit (empty if unspent)",
    )

    @property
    def is_spent(self) -> bool:
        return bool(self.spending_tx_id)

    def __repr__(self) -> str:
        return f"<Credit {self.transaction_id[:16]}:{self.output_index} sats={self.satoshis}>"


class TransactionRecord(Base, TimestampMixin):
    """A bulletin transaction sent by the wallet."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, comment="Transaction ID (txid hex)"
    )
    hex_body: Mapped[str] = mapped_column(Text, nullable=False, comment="Raw transaction hex")
    fee: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, comment="Transaction fee in satoshis"
    )
    total_burn: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, comment="Satoshis burned by bulletin outputs"
    )
    num_inputs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    num_outputs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    author_address: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)
    board: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Transaction id={self.id[:16]}... board={self.board!r}>"
