# Overview: Admin corrections and lookups over checkout sessions and their items.

from __future__ import annotations

import math

from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Checkout, Item
from ..time_utils import to_utc_z
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_item,
    validate_payload,
)
from .concurrency import lock_for_update, run_in_transaction
from .verification_service import session_payload


CHECKOUT_CONTACT_POLICY = ModelValidationPolicy(
    writable_fields={"owner_name", "email", "housing_assignment", "graduation_year", "notes"},
)

ITEM_DETAILS_POLICY = ModelValidationPolicy(
    writable_fields={"item_name", "description", "item_quantity"},
)

DONOR_SEARCH_LIMIT = 50


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def list_checkouts(
    *,
    year_range: str | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> dict:
    """All sessions (imported or logged), newest first, with items attached."""
    query = db.session.query(Checkout)

    if year_range:
        query = query.filter(Checkout.year_range == year_range)

    if search and search.strip():
        pattern = _like(search.strip())
        query = query.filter(or_(
            Checkout.owner_name.ilike(pattern, escape="\\"),
            Checkout.email.ilike(pattern, escape="\\"),
        ))

    total = query.count()
    checkouts = (
        query.options(selectinload(Checkout.items))
        .order_by(Checkout.date.desc(), Checkout.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return {
        "checkouts": [session_payload(c) for c in checkouts],
        "pagination": {
            "page": page,
            "limit": page_size,
            "total": total,
            "total_pages": math.ceil(total / page_size) if total else 0,
        },
    }


def get_checkout(checkout_id: int) -> dict:
    checkout = db.session.get(Checkout, checkout_id)
    if checkout is None:
        raise NotFoundError(f"Checkout {checkout_id} not found")
    return session_payload(checkout)


def update_checkout_contact(checkout_id: int, payload: dict | None) -> Checkout:
    """
    Admin correction of owner/contact details.

    Verification fields live on items and cannot be changed here.
    """
    patch = validate_payload(
        model=Checkout,
        payload=payload,
        policy=CHECKOUT_CONTACT_POLICY,
        partial=True,
    )
    if not patch:
        raise ValidationError("No fields to update")

    def _op():
        checkout = lock_for_update(db.session.query(Checkout).filter_by(id=checkout_id)).first()
        if checkout is None:
            raise NotFoundError(f"Checkout {checkout_id} not found")
        for key, value in patch.items():
            setattr(checkout, key, value)
        db.session.flush()
        return checkout

    return run_in_transaction(_op)


def update_item_details(item_id: int, payload: dict | None) -> Item:
    """Content correction (name, description, quantity); status is untouched."""
    patch = validate_payload(
        model=Item,
        payload=payload,
        policy=ITEM_DETAILS_POLICY,
        partial=True,
    )
    if not patch:
        raise ValidationError("No fields to update")
    enforce_rules_item(patch)

    def _op():
        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        for key, value in patch.items():
            setattr(item, key, value)
        db.session.flush()
        return item

    return run_in_transaction(_op)


def search_items(query: str | None, *, year_range: str | None = None, limit: int = 20) -> list[dict]:
    if not query or not query.strip():
        raise ValidationError("query is required", field="query")

    q = (
        db.session.query(Item, Checkout)
        .join(Checkout, Item.checkout_id == Checkout.id)
        .filter(Item.item_name.ilike(_like(query.strip()), escape="\\"))
    )
    if year_range:
        q = q.filter(Item.year_range == year_range)

    rows = q.order_by(Item.created_at.desc(), Item.id.desc()).limit(limit).all()
    return [
        {
            **item.to_dict(),
            "owner_name": checkout.owner_name,
            "email": checkout.email,
            "date": to_utc_z(checkout.date),
        }
        for item, checkout in rows
    ]


def search_donors(q: str | None) -> list[dict]:
    """
    Donor autocomplete: latest contact details per distinct email.

    Emails are compared case-insensitively; the most recent session wins.
    """
    latest_ids = (
        db.session.query(func.max(Checkout.id))
        .group_by(func.lower(Checkout.email))
        .scalar_subquery()
    )
    query = db.session.query(Checkout).filter(Checkout.id.in_(latest_ids))

    term = (q or "").strip()
    if term:
        pattern = _like(term)
        query = query.filter(or_(
            Checkout.owner_name.ilike(pattern, escape="\\"),
            Checkout.email.ilike(pattern, escape="\\"),
        ))

    donors = query.order_by(Checkout.owner_name).limit(DONOR_SEARCH_LIMIT).all()
    return [
        {
            "name": c.owner_name,
            "email": c.email,
            "housing": c.housing_assignment,
            "gradYear": c.graduation_year,
        }
        for c in donors
    ]
