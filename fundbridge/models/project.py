# /fundbridge/models/project.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, Integer, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fundbridge.db.base import Base, BigIntId
from fundbridge.models.enums import ProjectStatus


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # sole authorization principal for bridge / distribution actions
    owner_address: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProjectStatus.DRAFT.value
    )

    # ─────────── funding (source) side ───────────
    funding_chain_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    funding_source_address: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)
    vault_address: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)

    # ─────────── settlement (destination) side ───────────
    settlement_chain_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    settlement_recipient_address: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)
    settlement_token_address: Mapped[Optional[str]] = mapped_column(String(42), nullable=True)

    bridged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    goal = relationship(
        "Goal",
        back_populates="project",
        uselist=False,
        cascade="all, delete-orphan",
    )

    purposes = relationship(
        "Purpose",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Purpose.order_index",
    )

    bridge_runs = relationship(
        "BridgeRun",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    distribution_runs = relationship(
        "DistributionRun",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_projects_status", "status"),)
