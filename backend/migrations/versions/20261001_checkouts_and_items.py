"""checkouts and items with per-item verification

Revision ID: 20261001_checkouts_items
Revises:
Create Date: 2026-10-01 00:00:00.000000

Creates the donation tracking schema:
- checkouts: one row per donation/checkout session (needs_approval marks
  sessions created by the donation form)
- items: donated objects with verification_status, the mirrored flagged
  boolean and verification stamps

Session status is derived from items at read time and has no column.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_checkouts_items"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "checkouts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("year_range", sa.String(16), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("owner_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("housing_assignment", sa.String(255), nullable=True),
        sa.Column("graduation_year", sa.String(16), nullable=True),
        sa.Column("needs_approval", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_checkouts"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("checkouts", schema=None) as batch_op:
        batch_op.create_index("ix_checkouts_year_range", ["year_range"], unique=False)
        batch_op.create_index("ix_checkouts_email", ["email"], unique=False)
        batch_op.create_index("ix_checkouts_date_id", ["date", "id"], unique=False)
        batch_op.create_index("ix_checkouts_approval_year", ["needs_approval", "year_range"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("checkout_id", sa.Integer(), nullable=False),
        sa.Column("year_range", sa.String(16), nullable=True),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("item_quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(1024), nullable=True),
        sa.Column("verification_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("flagged", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", sa.String(255), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("item_quantity >= 1", name="ck_items_item_quantity_positive"),
        sa.CheckConstraint(
            "verification_status IN ('pending', 'approved', 'flagged')",
            name="ck_items_verification_status_valid",
        ),
        sa.ForeignKeyConstraint(
            ["checkout_id"], ["checkouts.id"],
            name="fk_items_checkout_id_checkouts",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_items"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("items", schema=None) as batch_op:
        batch_op.create_index("ix_items_checkout_id", ["checkout_id"], unique=False)
        batch_op.create_index("ix_items_year_range", ["year_range"], unique=False)
        batch_op.create_index("ix_items_verification_status", ["verification_status"], unique=False)
        batch_op.create_index("ix_items_checkout_status", ["checkout_id", "verification_status"], unique=False)
        batch_op.create_index("ix_items_status_verified", ["verification_status", "verified_at"], unique=False)


def downgrade():
    with op.batch_alter_table("items", schema=None) as batch_op:
        batch_op.drop_index("ix_items_status_verified")
        batch_op.drop_index("ix_items_checkout_status")
        batch_op.drop_index("ix_items_verification_status")
        batch_op.drop_index("ix_items_year_range")
        batch_op.drop_index("ix_items_checkout_id")
    op.drop_table("items")

    with op.batch_alter_table("checkouts", schema=None) as batch_op:
        batch_op.drop_index("ix_checkouts_approval_year")
        batch_op.drop_index("ix_checkouts_date_id")
        batch_op.drop_index("ix_checkouts_email")
        batch_op.drop_index("ix_checkouts_year_range")
    op.drop_table("checkouts")
