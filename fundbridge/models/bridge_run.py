#fundbridge/models/bridge_run.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    Text,
    Integer,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fundbridge.db.base import Base, BigIntId


class BridgeRun(Base):
    """
    One attempt to move the confirmed total from the funding chain to the
    settlement chain.

    Sub-states:
      created (no destination_tx_hash) -> hash attached -> confirmed.

    Immutability rule:
      - once confirmed_at is set the row is never UPDATEd again.
      - snapshot_amount_decimal is fixed at prepare time.
    """

    __tablename__ = "bridge_runs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    project_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    mode: Mapped[str] = mapped_column(String(32), nullable=False)  # BridgeProvider
    currency: Mapped[str] = mapped_column(String(8), nullable=False)

    # source
    source_chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    source_address: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)
    vault_address: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)

    # destination
    destination_chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    recipient_address: Mapped[str] = mapped_column(String(42), nullable=False)
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)

    snapshot_amount_decimal: Mapped[str] = mapped_column(String(80), nullable=False)
    # destination-token balance of the recipient at prepare time (strict mode only)
    recipient_baseline_balance_raw: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    destination_tx_hash: Mapped[Optional[str]] = mapped_column(String(66), nullable=True)
    destination_block_number: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    confirm_reason: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    force: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    project = relationship("Project", back_populates="bridge_runs")

    __table_args__ = (
        Index("ix_bridge_runs_project_created", "project_id", "created_at"),
    )
