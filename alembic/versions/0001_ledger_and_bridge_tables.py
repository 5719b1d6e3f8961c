"""ledger and bridge tables

Revision ID: 0001_ledger_and_bridge
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_ledger_and_bridge"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigIntId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "projects",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner_address", sa.String(length=42), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("funding_chain_id", sa.Integer(), nullable=True),
        sa.Column("funding_source_address", sa.String(length=42), nullable=True),
        sa.Column("vault_address", sa.String(length=42), nullable=True),
        sa.Column("settlement_chain_id", sa.Integer(), nullable=True),
        sa.Column("settlement_recipient_address", sa.String(length=42), nullable=True),
        sa.Column("settlement_token_address", sa.String(length=42), nullable=True),
        sa.Column("bridged_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_status", "projects", ["status"])

    op.create_table(
        "goals",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column(
            "project_id",
            BigIntId,
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("target_amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("achieved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "purposes",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("project_id", BigIntId, sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("label", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_amount", sa.Integer(), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("project_id", "code", name="uq_purposes_project_code"),
    )
    op.create_index("ix_purposes_project_id", "purposes", ["project_id"])

    op.create_table(
        "contributions",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("project_id", BigIntId, sa.ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("purpose_id", BigIntId, sa.ForeignKey("purposes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("chain_id", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("tx_hash", sa.String(length=66), nullable=False, unique=True),
        sa.Column("from_address", sa.String(length=42), nullable=False),
        sa.Column("to_address", sa.String(length=42), nullable=False),
        sa.Column("amount_raw", sa.String(length=80), nullable=False, server_default="0"),
        sa.Column("decimals", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("amount_decimal", sa.String(length=80), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_contributions_project_status", "contributions", ["project_id", "status", "currency"]
    )
    op.create_index("ix_contributions_purpose", "contributions", ["purpose_id"])

    op.create_table(
        "bridge_runs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("project_id", BigIntId, sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("mode", sa.String(length=32), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("source_chain_id", sa.Integer(), nullable=False),
        sa.Column("source_address", sa.String(length=42), nullable=True),
        sa.Column("vault_address", sa.String(length=42), nullable=True),
        sa.Column("destination_chain_id", sa.Integer(), nullable=False),
        sa.Column("recipient_address", sa.String(length=42), nullable=False),
        sa.Column("token_address", sa.String(length=42), nullable=False),
        sa.Column("snapshot_amount_decimal", sa.String(length=80), nullable=False),
        sa.Column("recipient_baseline_balance_raw", sa.String(length=80), nullable=True),
        sa.Column("destination_tx_hash", sa.String(length=66), nullable=True),
        sa.Column("destination_block_number", sa.BigInteger(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirm_reason", sa.String(length=64), nullable=True),
        sa.Column("dry_run", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("force", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_bridge_runs_project_created", "bridge_runs", ["project_id", "created_at"])

    op.create_table(
        "distribution_runs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("project_id", BigIntId, sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("chain_id", sa.Integer(), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("plan_json", sa.JSON(), nullable=False),
        sa.Column("tx_hashes", sa.JSON(), nullable=False),
        sa.Column("dry_run", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_distribution_runs_project_mode", "distribution_runs", ["project_id", "mode", "created_at"]
    )


def downgrade():
    op.drop_index("ix_distribution_runs_project_mode", table_name="distribution_runs")
    op.drop_table("distribution_runs")
    op.drop_index("ix_bridge_runs_project_created", table_name="bridge_runs")
    op.drop_table("bridge_runs")
    op.drop_index("ix_contributions_purpose", table_name="contributions")
    op.drop_index("ix_contributions_project_status", table_name="contributions")
    op.drop_table("contributions")
    op.drop_index("ix_purposes_project_id", table_name="purposes")
    op.drop_table("purposes")
    op.drop_table("goals")
    op.drop_index("ix_projects_status", table_name="projects")
    op.drop_table("projects")
