"""Ledger table for pending transaction locks."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from skyfox.common.db import Base


class PendingTransaction(Base):
    """Lock row for one in-flight attempt; at most one per card fingerprint."""

    __tablename__ = "pending_transactions"

    transaction_id: Mapped[str] = mapped_column(String, primary_key=True)
    # Unique index is what makes the conditional insert atomic.
    card_fingerprint: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    created_at: Mapped[int] = mapped_column(BigInteger)
    expires_at: Mapped[int] = mapped_column(BigInteger)
