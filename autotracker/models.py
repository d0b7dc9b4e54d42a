"""SQLAlchemy models for pending hour records."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from autotracker.db import Base

HOURS_PRECISION = 6
HOURS_SCALE = 2
MAX_HOURS = Decimal(10) ** (HOURS_PRECISION - HOURS_SCALE) - Decimal(1).scaleb(-HOURS_SCALE)


class PendingHours(Base):
    """One row per calendar day holding the pending or confirmed hour count."""

    __tablename__ = "pending_hours"

    pk: Mapped[str] = mapped_column(String(64), primary_key=True)
    sk: Mapped[str] = mapped_column(String(16), primary_key=True, default="void")
    hours: Mapped[Decimal] = mapped_column(Numeric(HOURS_PRECISION, HOURS_SCALE), nullable=False)
    ttl: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
