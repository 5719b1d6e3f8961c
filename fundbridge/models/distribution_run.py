from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, Index, JSON, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fundbridge.db.base import Base, BigIntId


class DistributionRun(Base):
    """
    Append-only log of post-bridge payout actions.
      PLAN_ONLY: a saved plan document (latest wins)
      LOG_ONLY:  executed payouts, with the tx hashes that carried them
    """

    __tablename__ = "distribution_runs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    project_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    chain_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    plan_json: Mapped[Any] = mapped_column(JSON, nullable=False)
    tx_hashes: Mapped[Any] = mapped_column(JSON, nullable=False, default=list)

    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    project = relationship("Project", back_populates="distribution_runs")

    __table_args__ = (
        Index("ix_distribution_runs_project_mode", "project_id", "mode", "created_at"),
    )
