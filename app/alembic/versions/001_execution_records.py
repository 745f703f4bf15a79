"""execution records

Revision ID: 001_execution_records
Revises:
Create Date: 2026-03-02 10:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_execution_records"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "execution_records",
        sa.Column("execution_id", sa.String(length=255), nullable=False),
        sa.Column("order_number", sa.String(length=255), nullable=True),
        sa.Column("workflow_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stopped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("mode", sa.String(length=50), nullable=True),
        sa.PrimaryKeyConstraint("execution_id"),
    )
    op.create_index(
        "idx_execution_records_order_number", "execution_records", ["order_number"]
    )
    op.create_index(
        "idx_execution_records_started_at", "execution_records", ["started_at"]
    )


def downgrade():
    op.drop_index("idx_execution_records_started_at", table_name="execution_records")
    op.drop_index(
        "idx_execution_records_order_number", table_name="execution_records"
    )
    op.drop_table("execution_records")
