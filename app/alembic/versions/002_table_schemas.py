"""table schema cache

Revision ID: 002_table_schemas
Revises: 001_execution_records
Create Date: 2026-03-09 14:30:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "002_table_schemas"
down_revision = "001_execution_records"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "table_schemas",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("primary_field_id", sa.String(length=255), nullable=True),
        sa.Column("default_view_id", sa.String(length=255), nullable=True),
        sa.Column(
            "synced_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Fields go with their table
    op.create_table(
        "field_schemas",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("table_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("required", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("readonly", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "allow_multiple_entries",
            sa.Boolean(),
            nullable=False,
            server_default="false",
        ),
        sa.Column("default_value", sa.Text(), nullable=True),
        sa.Column("options", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["table_id"], ["table_schemas.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("table_id", "id"),
    )
    op.create_index("idx_field_schemas_table", "field_schemas", ["table_id"])


def downgrade():
    op.drop_index("idx_field_schemas_table", table_name="field_schemas")
    op.drop_table("field_schemas")
    op.drop_table("table_schemas")
