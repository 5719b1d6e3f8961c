from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fundbridge.db.base import Base, BigIntId
from fundbridge.models.enums import Currency


class Goal(Base):
    """
    One per project.

    achieved_at is stamped exactly once (conditional UPDATE ... WHERE
    achieved_at IS NULL); after that the goal is read-only.
    """

    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    project_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # whole currency units
    target_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default=Currency.JPYC.value)

    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    achieved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    project = relationship("Project", back_populates="goal")
