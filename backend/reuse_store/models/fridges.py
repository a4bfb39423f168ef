from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


FRIDGE_STATUSES = ("available", "checked_out", "maintenance")

# Conditions that take a fridge out of circulation
MAINTENANCE_CONDITIONS = ("Needs Repair", "Damaged", "Poor")


class Fridge(db.Model):
    """
    A mini fridge lent to students for the academic year.

    The loan itself is a regular checkout session (needs_approval=False)
    holding one item named "Fridge #<fridge_number>"; this row only tracks
    whether the fridge is on the shelf, out, or being repaired.
    """
    __tablename__ = "fridges"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('available', 'checked_out', 'maintenance')",
            name="fridge_status_valid",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Sequential label painted on the fridge ("1", "2", ...)
    fridge_number = db.Column(db.String(16), nullable=False, unique=True)
    has_freezer = db.Column(db.Boolean, nullable=False, default=False)
    size = db.Column(db.String(64), nullable=True)
    color = db.Column(db.String(64), nullable=True)
    brand = db.Column(db.String(128), nullable=True)
    model = db.Column(db.String(128), nullable=True)
    condition = db.Column(db.String(64), nullable=False, default="Good")
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="available", index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def item_name(self) -> str:
        """Name of the checkout item that represents this fridge on loan."""
        return f"Fridge #{self.fridge_number}"

    def __repr__(self) -> str:
        return f"<Fridge id={self.id} number={self.fridge_number!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fridge_number": self.fridge_number,
            "has_freezer": bool(self.has_freezer),
            "size": self.size,
            "color": self.color,
            "brand": self.brand,
            "model": self.model,
            "condition": self.condition,
            "notes": self.notes,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
