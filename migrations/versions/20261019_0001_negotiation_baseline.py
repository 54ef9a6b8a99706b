"""baseline negotiation schema with step ordering and single-pending constraints

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "contract_negotiations",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("business_id", sa.String(length=64), nullable=False),
        sa.Column("agency_id", sa.String(length=64), nullable=False),
        sa.Column("initiator_role", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_contract_negotiations_business_status", "contract_negotiations", ["business_id", "status"]
    )
    op.create_index("idx_contract_negotiations_agency_status", "contract_negotiations", ["agency_id", "status"])

    op.create_table(
        "negotiation_steps",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("contract_id", sa.String(length=32), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("step_type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("responder_role", sa.String(length=16), nullable=False),
        sa.Column("response_type", sa.String(length=16), nullable=True),
        sa.Column("round_number", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["contract_id"], ["contract_negotiations.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contract_id", "step_number", name="uq_negotiation_steps_contract_number"),
    )
    op.create_index("ix_negotiation_steps_contract_id", "negotiation_steps", ["contract_id"])
    op.create_index(
        "uq_negotiation_steps_one_pending",
        "negotiation_steps",
        ["contract_id"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index("uq_negotiation_steps_one_pending", table_name="negotiation_steps")
    op.drop_index("ix_negotiation_steps_contract_id", table_name="negotiation_steps")
    op.drop_table("negotiation_steps")
    op.drop_index("idx_contract_negotiations_agency_status", table_name="contract_negotiations")
    op.drop_index("idx_contract_negotiations_business_status", table_name="contract_negotiations")
    op.drop_table("contract_negotiations")
