from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: txn_ledger
# ---------------------------


class LedgerTransaction(Base):
    """One categorized transaction.

    ``occurred_at`` is stored in UTC. Some backends (SQLite) drop the offset,
    so readers re-attach UTC to naive values. ``signed_amount`` is kept next to
    ``amount`` so the windowed duplicate query can compare it without knowing
    the direction rules.
    """

    __tablename__ = "txn_ledger"

    # SQLite only autoincrements INTEGER primary keys.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"), primary_key=True, autoincrement=True
    )
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    signed_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    direction: Mapped[str] = mapped_column(String(16), nullable=False)
    currency_code: Mapped[str] = mapped_column(CHAR(3), nullable=False, default="INR")
    merchant_raw: Mapped[str] = mapped_column(Text, nullable=False, default="")
    merchant_clean: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source_label: Mapped[str] = mapped_column(String, nullable=False)
    origin: Mapped[str] = mapped_column(String, nullable=False, default="")
    reference: Mapped[str | None] = mapped_column(String, nullable=True)
    account_last4: Mapped[str | None] = mapped_column(String(4), nullable=True)
    is_card: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    balance: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String, nullable=True)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    category_source: Mapped[str] = mapped_column(String(32), nullable=False)
    fingerprint_sha256: Mapped[str | None] = mapped_column(CHAR(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_txn_ledger_amount_positive"),
        CheckConstraint(
            "confidence >= 0 AND confidence <= 1", name="ck_txn_ledger_confidence_range"
        ),
        Index("ix_txn_ledger_occurred_at", "occurred_at"),
    )


__all__ = ["Base", "LedgerTransaction"]
