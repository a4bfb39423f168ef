from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


VERIFICATION_STATUSES = ("pending", "approved", "flagged")


class Checkout(db.Model):
    """
    One donation/checkout session grouping the items a donor brought in.

    Session status is NOT a column. It is derived from the item rows on every
    read (see services.status_service.derive_session_status).

    needs_approval is True only for sessions created by the donation form.
    Bulk-imported historical sessions leave it False and never enter the
    verification queue.
    """
    __tablename__ = "checkouts"
    __table_args__ = (
        db.Index("ix_checkouts_date_id", "date", "id"),
        db.Index("ix_checkouts_approval_year", "needs_approval", "year_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Academic year label, e.g. "2025-2026"
    year_range = db.Column(db.String(16), nullable=False, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    owner_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    housing_assignment = db.Column(db.String(255), nullable=True)
    graduation_year = db.Column(db.String(16), nullable=True)

    needs_approval = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "Item",
        back_populates="checkout",
        order_by="Item.id",
        cascade="all, delete-orphan",
        lazy="select",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Checkout id={self.id} owner={self.owner_name!r} year_range={self.year_range!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "year_range": self.year_range,
            "date": to_utc_z(self.date),
            "owner_name": self.owner_name,
            "email": self.email,
            "housing_assignment": self.housing_assignment,
            "graduation_year": self.graduation_year,
            "needs_approval": self.needs_approval,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class Item(db.Model):
    """
    A donated object (with quantity) inside exactly one checkout session.

    `flagged` mirrors verification_status == "flagged". Only
    status_service.apply_status writes the pair, so they cannot drift.
    verified_at is stamped on transitions to approved/flagged.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.CheckConstraint("item_quantity >= 1", name="item_quantity_positive"),
        db.CheckConstraint(
            "verification_status IN ('pending', 'approved', 'flagged')",
            name="verification_status_valid",
        ),
        db.Index("ix_items_checkout_status", "checkout_id", "verification_status"),
        db.Index("ix_items_status_verified", "verification_status", "verified_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    checkout_id = db.Column(
        db.Integer,
        db.ForeignKey("checkouts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    year_range = db.Column(db.String(16), nullable=True, index=True)
    item_name = db.Column(db.String(255), nullable=False)
    item_quantity = db.Column(db.Integer, nullable=False, default=1, server_default=db.text("1"))
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    # pending, approved, flagged
    verification_status = db.Column(
        db.String(16),
        nullable=False,
        default="pending",
        server_default="pending",
        index=True,
    )
    flagged = db.Column(db.Boolean, nullable=False, default=False, server_default=db.text("0"))
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    verified_by = db.Column(db.String(255), nullable=True)

    # Loaned items (fridges) only: set when the item comes back
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    checkout = db.relationship("Checkout", back_populates="items")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Item id={self.id} checkout_id={self.checkout_id} status={self.verification_status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "checkout_id": self.checkout_id,
            "year_range": self.year_range,
            "item_name": self.item_name,
            "item_quantity": self.item_quantity,
            "description": self.description,
            "image_url": self.image_url,
            "verification_status": self.verification_status,
            "flagged": bool(self.flagged),
            "verified_at": to_utc_z(self.verified_at) if self.verified_at else None,
            "verified_by": self.verified_by,
            "returned_at": to_utc_z(self.returned_at) if self.returned_at else None,
            "created_at": to_utc_z(self.created_at),
        }
