# Overview: Service-layer operations for reporting; read-only aggregates over checkouts and items.

from __future__ import annotations

from sqlalchemy import case, func

from ..extensions import db
from ..models import Checkout, Item
from .status_service import STATUS_APPROVED, STATUS_FLAGGED, STATUS_PENDING


def list_year_ranges() -> list[str]:
    rows = (
        db.session.query(Checkout.year_range)
        .distinct()
        .order_by(Checkout.year_range)
        .all()
    )
    return [row.year_range for row in rows]


def get_statistics(year_range: str | None = None) -> dict:
    """Session and item totals, optionally for one academic year."""
    checkout_query = db.session.query(func.count(Checkout.id))
    if year_range:
        checkout_query = checkout_query.filter(Checkout.year_range == year_range)

    item_query = db.session.query(
        func.count(Item.id).label("total_items"),
        func.coalesce(func.sum(Item.item_quantity), 0).label("total_quantity"),
        func.coalesce(func.sum(case((Item.verification_status == STATUS_PENDING, 1), else_=0)), 0).label("pending"),
        func.coalesce(func.sum(case((Item.verification_status == STATUS_APPROVED, 1), else_=0)), 0).label("approved"),
        func.coalesce(func.sum(case((Item.verification_status == STATUS_FLAGGED, 1), else_=0)), 0).label("flagged"),
        func.coalesce(func.sum(case((Item.flagged.is_(True), 1), else_=0)), 0).label("flagged_mirror"),
    )
    if year_range:
        item_query = item_query.join(Checkout, Item.checkout_id == Checkout.id).filter(
            Checkout.year_range == year_range
        )
    row = item_query.one()

    return {
        "year_range": year_range,
        "total_checkouts": checkout_query.scalar() or 0,
        "total_items": row.total_items,
        "total_quantity": int(row.total_quantity),
        "pending_items": int(row.pending),
        "approved_items": int(row.approved),
        "flagged_items": int(row.flagged),
        "flagged_mirror_items": int(row.flagged_mirror),
    }


def top_items(year_range: str | None = None, limit: int = 10) -> list[dict]:
    """Most donated item names, grouped case-insensitively."""
    name_key = func.lower(Item.item_name)
    query = db.session.query(
        func.min(Item.item_name).label("item_name"),
        func.sum(Item.item_quantity).label("total_quantity"),
        func.count(Item.id).label("checkout_count"),
    )
    if year_range:
        query = query.join(Checkout, Item.checkout_id == Checkout.id).filter(
            Checkout.year_range == year_range
        )

    rows = (
        query.group_by(name_key)
        .order_by(func.sum(Item.item_quantity).desc(), name_key)
        .limit(limit)
        .all()
    )
    return [
        {
            "item_name": row.item_name,
            "total_quantity": int(row.total_quantity or 0),
            "checkout_count": row.checkout_count,
        }
        for row in rows
    ]
