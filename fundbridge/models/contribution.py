# fundbridge/models/contribution.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from fundbridge.db.base import Base, BigIntId
from fundbridge.models.enums import ContributionStatus


class Contribution(Base):
    """
    One submitted payment, keyed by transaction hash.

    - tx_hash is UNIQUE: concurrent submissions collapse into one row
      through INSERT ... ON CONFLICT, never a check-then-write.
    - status only moves PENDING -> CONFIRMED.
    - never deleted; not owned by the project (no cascade).

    Amounts are stored as integer/decimal strings so uint256 values and
    18-place decimals survive every backend unchanged.
    """

    __tablename__ = "contributions"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    project_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("projects.id", ondelete="RESTRICT"),
        nullable=False,
    )
    purpose_id: Mapped[Optional[int]] = mapped_column(
        BigIntId,
        ForeignKey("purposes.id", ondelete="SET NULL"),
        nullable=True,
    )

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)

    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False, unique=True)

    from_address: Mapped[str] = mapped_column(String(42), nullable=False)
    to_address: Mapped[str] = mapped_column(String(42), nullable=False)

    amount_raw: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    decimals: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # canonical "123.450000000000000000" (18 places) of the submitted human amount
    amount_decimal: Mapped[str] = mapped_column(String(80), nullable=False)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ContributionStatus.PENDING.value
    )
    block_number: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_contributions_project_status", "project_id", "status", "currency"),
        Index("ix_contributions_purpose", "purpose_id"),
    )
