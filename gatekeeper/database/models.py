"""
gatekeeper.database.models — SQLAlchemy 2.0 Data Models
========================================================

Tables:
- balances — One row per credited user (Discord snowflake as text PK)

A user with no row has a balance of zero.  Rows appear on the first
verify/unverify that touches the user and are never deleted.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Fixed-point: six fractional digits keeps repeated ±0.2 exact.
BALANCE_TYPE = Numeric(18, 6)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Gatekeeper ORM models."""


# ---------------------------------------------------------------------------
# Balances — one row per credited Discord user
# ---------------------------------------------------------------------------
class Balance(Base):
    __tablename__ = "balances"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    balance: Mapped[Decimal] = mapped_column(
        BALANCE_TYPE, nullable=False, default=Decimal("0"), server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Balance user_id={self.user_id!r} balance={self.balance}>"
