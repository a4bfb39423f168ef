"""fridge lending inventory and item returns

Revision ID: 20261019_fridge_lending
Revises: 20261001_checkouts_items
Create Date: 2026-10-19 00:00:00.000000

- fridges: lendable mini fridges with available/checked_out/maintenance status
- items.returned_at: closes a fridge loan item
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_fridge_lending"
down_revision = "20261001_checkouts_items"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "fridges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("fridge_number", sa.String(16), nullable=False),
        sa.Column("has_freezer", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("size", sa.String(64), nullable=True),
        sa.Column("color", sa.String(64), nullable=True),
        sa.Column("brand", sa.String(128), nullable=True),
        sa.Column("model", sa.String(128), nullable=True),
        sa.Column("condition", sa.String(64), nullable=False, server_default="Good"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="available"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint(
            "status IN ('available', 'checked_out', 'maintenance')",
            name="ck_fridges_fridge_status_valid",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_fridges"),
        sa.UniqueConstraint("fridge_number", name="uq_fridges_fridge_number"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("fridges", schema=None) as batch_op:
        batch_op.create_index("ix_fridges_status", ["status"], unique=False)

    with op.batch_alter_table("items", schema=None) as batch_op:
        batch_op.add_column(sa.Column("returned_at", sa.DateTime(timezone=True), nullable=True))


def downgrade():
    with op.batch_alter_table("items", schema=None) as batch_op:
        batch_op.drop_column("returned_at")

    with op.batch_alter_table("fridges", schema=None) as batch_op:
        batch_op.drop_index("ix_fridges_status")
    op.drop_table("fridges")
