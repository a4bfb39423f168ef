# backend/reuse_store/services/fridge_service.py
"""
Fridge lending: inventory, loans and returns.

WHY: Mini fridges are lent, not donated. A loan is recorded as an ordinary
checkout session so it shows up in donor history and reporting, but the
session is created with needs_approval=False and therefore never enters
the photo verification queue.

LIFECYCLE (per fridge):
1. available: checked in to inventory (or returned in good shape)
2. checked_out: on loan; exactly one open "Fridge #N" item exists
3. maintenance: returned/marked in a condition that needs repair

The loan item stays verification_status=pending; returned_at closes it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Integer, String, cast, func, literal

from ..extensions import db
from ..models import Checkout, Fridge, FRIDGE_STATUSES, Item, MAINTENANCE_CONDITIONS
from ..time_utils import normalize_utc, to_utc_z, utcnow
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    clean_text,
    validate_email,
    validate_payload,
)
from .concurrency import lock_for_update, run_in_transaction
from .donation_service import DEFAULT_ACADEMIC_TIMEZONE, academic_year_range


STATUS_AVAILABLE = "available"
STATUS_CHECKED_OUT = "checked_out"
STATUS_MAINTENANCE = "maintenance"

FRIDGE_CHECKIN_POLICY = ModelValidationPolicy(
    writable_fields={"has_freezer", "size", "color", "brand", "model", "condition", "notes"},
    required_on_create=frozenset({"has_freezer"}),
)

FRIDGE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"size", "color", "brand", "model", "condition", "notes", "status"},
)

# Form keys sent by the check-in screen
_CHECKIN_ALIASES = {"hasFreezer": "has_freezer"}


def _fridge_number_order():
    return cast(Fridge.fridge_number, Integer)


def _loan_item_name():
    return literal("Fridge #", type_=String).concat(Fridge.fridge_number)


def _validate_fridge_status(status) -> str:
    if not isinstance(status, str) or status.strip() not in FRIDGE_STATUSES:
        raise ValidationError(
            f"Invalid status: {status!r} (expected one of: {', '.join(FRIDGE_STATUSES)})",
            field="status",
        )
    return status.strip()


def _status_after_condition(condition: str | None) -> str:
    return STATUS_MAINTENANCE if condition in MAINTENANCE_CONDITIONS else STATUS_AVAILABLE


@dataclass(frozen=True)
class FridgeCheckoutRequest:
    """Body of POST /fridges/checkout."""
    fridge_id: int
    student_name: str
    student_email: str
    housing_assignment: str | None = None
    graduation_year: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> "FridgeCheckoutRequest":
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        fridge_id = payload.get("fridgeId")
        if isinstance(fridge_id, bool) or not isinstance(fridge_id, int) or fridge_id < 1:
            raise ValidationError("fridgeId must be a positive integer", field="fridgeId")

        name = clean_text(payload.get("studentName"), "studentName", max_length=255)
        if not name:
            raise ValidationError("studentName is required", field="studentName")
        email = validate_email(
            clean_text(payload.get("studentEmail"), "studentEmail", max_length=255),
            field="studentEmail",
        )

        return cls(
            fridge_id=fridge_id,
            student_name=name,
            student_email=email,
            housing_assignment=clean_text(payload.get("housingAssignment"), "housingAssignment", max_length=255),
            graduation_year=clean_text(payload.get("graduationYear"), "graduationYear", max_length=16),
        )


@dataclass(frozen=True)
class FridgeReturnRequest:
    """Body of POST /fridges/return."""
    fridge_id: int
    student_email: str
    condition: str | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> "FridgeReturnRequest":
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        fridge_id = payload.get("fridgeId")
        if isinstance(fridge_id, bool) or not isinstance(fridge_id, int) or fridge_id < 1:
            raise ValidationError("fridgeId must be a positive integer", field="fridgeId")
        email = clean_text(payload.get("studentEmail"), "studentEmail", max_length=255)
        if not email:
            raise ValidationError("studentEmail is required", field="studentEmail")

        return cls(
            fridge_id=fridge_id,
            student_email=email,
            condition=clean_text(payload.get("condition"), "condition", max_length=64),
            notes=clean_text(payload.get("notes"), "notes", max_length=2000),
        )


@dataclass(frozen=True)
class FridgeLoan:
    checkout_id: int
    item_id: int
    fridge_id: int
    fridge_number: str

    def to_dict(self) -> dict:
        return {
            "success": True,
            "checkoutId": self.checkout_id,
            "itemId": self.item_id,
            "fridgeId": self.fridge_id,
            "fridgeNumber": self.fridge_number,
        }


def list_fridges(status: str | None = None) -> list[Fridge]:
    query = db.session.query(Fridge)
    if status:
        query = query.filter(Fridge.status == _validate_fridge_status(status))
    return query.order_by(_fridge_number_order()).all()


def available_fridges(has_freezer: bool | None = None) -> list[Fridge]:
    query = db.session.query(Fridge).filter(Fridge.status == STATUS_AVAILABLE)
    if has_freezer is not None:
        query = query.filter(Fridge.has_freezer.is_(has_freezer))
    return query.order_by(_fridge_number_order()).all()


def get_fridge_by_number(fridge_number: str) -> Fridge:
    fridge = db.session.query(Fridge).filter_by(fridge_number=str(fridge_number).strip()).first()
    if fridge is None:
        raise NotFoundError(f"Fridge #{fridge_number} not found")
    return fridge


def fridge_stats() -> dict:
    rows = (
        db.session.query(Fridge.status.label("status"), func.count(Fridge.id))
        .group_by("status")
        .all()
    )
    counts = {status: count for status, count in rows}
    return {
        "total": sum(counts.values()),
        "available": counts.get(STATUS_AVAILABLE, 0),
        "checkedOut": counts.get(STATUS_CHECKED_OUT, 0),
        "maintenance": counts.get(STATUS_MAINTENANCE, 0),
    }


def check_in_fridge(payload: dict | None) -> Fridge:
    """
    Add a new fridge to inventory with the next sequential number.

    Raises:
        ValidationError: has_freezer missing or a field is invalid
        StoreError: the insert failed (e.g. a concurrent check-in took the number)
    """
    if isinstance(payload, dict):
        payload = {_CHECKIN_ALIASES.get(k, k): v for k, v in payload.items()}
    values = validate_payload(
        model=Fridge,
        payload=payload,
        policy=FRIDGE_CHECKIN_POLICY,
        partial=False,
    )
    if not values.get("condition"):
        values["condition"] = "Good"

    def _op():
        highest = db.session.query(func.max(_fridge_number_order())).scalar() or 0
        fridge = Fridge(fridge_number=str(highest + 1), status=STATUS_AVAILABLE, **values)
        db.session.add(fridge)
        db.session.flush()
        return fridge

    return run_in_transaction(_op)


def update_fridge(fridge_id: int, payload: dict | None) -> Fridge:
    """
    Correct fridge details or move it in/out of maintenance.

    A condition that needs repair sends a fridge on the shelf to
    maintenance. Loans are only opened and closed by checkout/return.
    """
    patch = validate_payload(
        model=Fridge,
        payload=payload,
        policy=FRIDGE_UPDATE_POLICY,
        partial=True,
    )
    if not patch:
        raise ValidationError("No fields to update")
    if "status" in patch:
        patch["status"] = _validate_fridge_status(patch["status"])
        if patch["status"] == STATUS_CHECKED_OUT:
            raise ValidationError("Use the fridge checkout to lend a fridge", field="status")

    def _op():
        fridge = lock_for_update(db.session.query(Fridge).filter_by(id=fridge_id)).first()
        if fridge is None:
            raise NotFoundError(f"Fridge {fridge_id} not found")
        if fridge.status == STATUS_CHECKED_OUT and "status" in patch:
            raise ConflictError(f"{fridge.item_name} is on loan; return it first")

        for key, value in patch.items():
            setattr(fridge, key, value)
        if fridge.status != STATUS_CHECKED_OUT and patch.get("condition") in MAINTENANCE_CONDITIONS:
            fridge.status = STATUS_MAINTENANCE

        db.session.flush()
        return fridge

    return run_in_transaction(_op)


def checkout_fridge(
    request: FridgeCheckoutRequest,
    *,
    now: datetime | None = None,
    tz_name: str = DEFAULT_ACADEMIC_TIMEZONE,
) -> FridgeLoan:
    """
    Lend an available fridge to a student.

    Creates the loan session (needs_approval=False) with one "Fridge #N"
    item and marks the fridge checked_out, all in one transaction.

    Raises:
        NotFoundError: fridge does not exist
        ConflictError: fridge is not available
        StoreError: the write failed and was rolled back
    """
    created_at = normalize_utc(now) if now else utcnow()
    year_range = academic_year_range(created_at, tz_name)

    def _op():
        fridge = lock_for_update(db.session.query(Fridge).filter_by(id=request.fridge_id)).first()
        if fridge is None:
            raise NotFoundError(f"Fridge {request.fridge_id} not found")
        if fridge.status != STATUS_AVAILABLE:
            raise ConflictError(f"{fridge.item_name} is not available ({fridge.status})")

        checkout = Checkout(
            year_range=year_range,
            date=created_at,
            owner_name=request.student_name,
            email=request.student_email,
            housing_assignment=request.housing_assignment,
            graduation_year=request.graduation_year,
            needs_approval=False,
        )
        checkout.items.append(Item(
            year_range=year_range,
            item_name=fridge.item_name,
            item_quantity=1,
        ))
        db.session.add(checkout)
        fridge.status = STATUS_CHECKED_OUT
        db.session.flush()

        return FridgeLoan(
            checkout_id=checkout.id,
            item_id=checkout.items[0].id,
            fridge_id=fridge.id,
            fridge_number=fridge.fridge_number,
        )

    return run_in_transaction(_op)


def return_fridge(request: FridgeReturnRequest, *, now: datetime | None = None) -> dict:
    """
    Close the student's open loan of a fridge and put it back in circulation.

    The fridge goes to maintenance instead of available when it comes back
    in a condition that needs repair.

    Raises:
        NotFoundError: fridge missing, or no open loan for this student
        StoreError: the write failed and was rolled back
    """
    returned_at = normalize_utc(now) if now else utcnow()

    def _op():
        fridge = lock_for_update(db.session.query(Fridge).filter_by(id=request.fridge_id)).first()
        if fridge is None:
            raise NotFoundError(f"Fridge {request.fridge_id} not found")

        item = (
            lock_for_update(
                db.session.query(Item)
                .join(Checkout, Item.checkout_id == Checkout.id)
                .filter(
                    Checkout.needs_approval.is_(False),
                    func.lower(Checkout.email) == request.student_email.lower(),
                    Item.item_name == fridge.item_name,
                    Item.returned_at.is_(None),
                )
            )
            .order_by(Checkout.date.desc(), Item.id.desc())
            .first()
        )
        if item is None:
            raise NotFoundError(f"No open loan of {fridge.item_name} for {request.student_email}")

        item.returned_at = returned_at
        if request.condition:
            fridge.condition = request.condition
        if request.notes:
            fridge.notes = request.notes
        fridge.status = _status_after_condition(request.condition)
        db.session.flush()

        return {
            "success": True,
            "fridgeId": fridge.id,
            "checkoutId": item.checkout_id,
            "status": fridge.status,
        }

    return run_in_transaction(_op)


def active_loans(student_email: str | None = None) -> list[dict]:
    """Open fridge loans, newest first, optionally for one student."""
    query = (
        db.session.query(Checkout, Item, Fridge)
        .join(Item, Item.checkout_id == Checkout.id)
        .join(Fridge, Item.item_name == _loan_item_name())
        .filter(Checkout.needs_approval.is_(False), Item.returned_at.is_(None))
    )
    if student_email:
        query = query.filter(func.lower(Checkout.email) == student_email.strip().lower())

    rows = query.order_by(Checkout.date.desc(), Checkout.id.desc()).all()
    return [
        {
            "checkoutId": checkout.id,
            "itemId": item.id,
            "fridgeId": fridge.id,
            "fridgeNumber": fridge.fridge_number,
            "brand": fridge.brand,
            "size": fridge.size,
            "color": fridge.color,
            "condition": fridge.condition,
            "hasFreezer": bool(fridge.has_freezer),
            "studentName": checkout.owner_name,
            "studentEmail": checkout.email,
            "housingAssignment": checkout.housing_assignment,
            "checkoutDate": to_utc_z(checkout.date),
        }
        for checkout, item, fridge in rows
    ]
