# backend/reuse_store/services/donation_service.py
"""
Donation logging from the product form.

Each submission creates one checkout session flagged needs_approval=True
with exactly one pending item, so it lands in the verification queue.
Bulk-imported history and fridge loans are written elsewhere with
needs_approval=False.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from ..extensions import db
from ..models import Checkout, Item
from ..time_utils import normalize_utc, to_zone, utcnow
from ..validation import ValidationError, clean_text, validate_email
from .concurrency import run_in_transaction


# Academic year rolls over on August 1st, campus local time
ACADEMIC_YEAR_START_MONTH = 8
DEFAULT_ACADEMIC_TIMEZONE = "America/New_York"

MAX_DESCRIPTION_LENGTH = 500

_GRAD_YEAR_RE = re.compile(r"^\d{4}$")


def academic_year_range(now: datetime, tz_name: str = DEFAULT_ACADEMIC_TIMEZONE) -> str:
    """
    '2025-2026' from August 2025 through July 2026.

    `now` is UTC; the month is read in `tz_name` so an evening donation on
    July 31 stays in the year that is ending.
    """
    local = to_zone(now, tz_name)
    if local.month >= ACADEMIC_YEAR_START_MONTH:
        return f"{local.year}-{local.year + 1}"
    return f"{local.year - 1}-{local.year}"


@dataclass(frozen=True)
class DonationSubmission:
    owner_name: str
    email: str
    category_name: str
    description: str | None = None
    photo_url: str | None = None
    housing: str | None = None
    grad_year: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> "DonationSubmission":
        """Build from the donation form body (camelCase keys)."""
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        return cls(
            owner_name=clean_text(payload.get("donorName"), "donorName", max_length=255),
            email=clean_text(payload.get("email"), "email", max_length=255),
            category_name=clean_text(payload.get("categoryName"), "categoryName", max_length=255),
            description=clean_text(payload.get("description"), "description", max_length=MAX_DESCRIPTION_LENGTH),
            photo_url=clean_text(payload.get("photoUrl"), "photoUrl", max_length=1024),
            housing=clean_text(payload.get("housing"), "housing", max_length=255),
            grad_year=clean_text(payload.get("gradYear"), "gradYear", max_length=16),
        )

    def validate(self) -> None:
        if not self.owner_name:
            raise ValidationError("donorName is required", field="donorName")
        if not self.email:
            raise ValidationError("email is required", field="email")
        if not self.category_name:
            raise ValidationError("categoryName is required", field="categoryName")

        validate_email(self.email)
        if self.grad_year and not _GRAD_YEAR_RE.match(self.grad_year):
            raise ValidationError("gradYear must be a four-digit year", field="gradYear")
        if self.description and len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"description exceeds max length {MAX_DESCRIPTION_LENGTH}", field="description"
            )


@dataclass(frozen=True)
class DonationReceipt:
    checkout_id: int
    item_id: int
    year_range: str

    def to_dict(self) -> dict:
        return {
            "success": True,
            "checkoutId": self.checkout_id,
            "itemId": self.item_id,
            "yearRange": self.year_range,
            "message": "Product logged successfully",
        }


def log_donation(
    submission: DonationSubmission,
    *,
    now: datetime | None = None,
    tz_name: str = DEFAULT_ACADEMIC_TIMEZONE,
) -> DonationReceipt:
    """
    Create a checkout session needing approval with one pending item.

    Args:
        submission: validated form values
        now: creation time; also picks the academic year (defaults to utcnow)
        tz_name: campus time zone used for the academic year boundary

    Returns:
        DonationReceipt: new checkout and item IDs

    Raises:
        ValidationError: missing or malformed fields (nothing is written)
        StoreError: the insert failed and was rolled back
    """
    submission.validate()
    created_at = normalize_utc(now) if now else utcnow()
    year_range = academic_year_range(created_at, tz_name)

    def _op():
        checkout = Checkout(
            year_range=year_range,
            date=created_at,
            owner_name=submission.owner_name,
            email=submission.email,
            housing_assignment=submission.housing,
            graduation_year=submission.grad_year,
            needs_approval=True,
        )
        db.session.add(checkout)
        db.session.flush()  # Get ID

        # verification_status comes from the column default (pending)
        item = Item(
            checkout_id=checkout.id,
            year_range=year_range,
            item_name=submission.category_name,
            item_quantity=1,
            image_url=submission.photo_url,
            description=submission.description,
        )
        db.session.add(item)
        db.session.flush()

        return DonationReceipt(checkout_id=checkout.id, item_id=item.id, year_range=year_range)

    return run_in_transaction(_op)
