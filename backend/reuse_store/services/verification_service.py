# backend/reuse_store/services/verification_service.py
"""
Verification queue: reviewers approve or flag donated items.

WHY: Donations logged through the product form arrive as checkout sessions
with needs_approval=True and every item pending. Reviewers work the queue
one session at a time, so listings group items by session and the session
tab is chosen by the derived status (status_service), never by a raw
per-item match. A session therefore appears under exactly one tab.

LIFECYCLE (per item):
1. pending: created by donation logging
2. approved: reviewer confirmed the photo/description
3. flagged: reviewer needs a closer look (flagged -> approved reconfirms)

Bulk updates write every item of a session in one transaction; readers
never see a session with a mix of old and new statuses.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, func, or_
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Checkout, Item, VERIFICATION_STATUSES
from ..time_utils import normalize_utc, to_utc_z, utcnow, window_start
from ..validation import MAX_PAGE_SIZE, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_in_transaction
from .status_service import (
    REVIEW_STATUSES,
    STATUS_APPROVED,
    STATUS_FLAGGED,
    STATUS_PENDING,
    apply_status,
    derive_session_status,
    normalize_status,
    session_status_expression,
)


DEFAULT_APPROVED_WINDOW_DAYS = 30
DEFAULT_SESSION_PAGE_SIZE = 50
DEFAULT_ITEM_PAGE_SIZE = 100

_UNSET = object()


@dataclass(frozen=True)
class SessionStatusUpdate:
    """Body of PATCH /verification/checkouts/<id>."""
    status: str
    actor: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> "SessionStatusUpdate":
        payload = _require_dict(payload)
        status = normalize_status(payload.get("status"), allowed=REVIEW_STATUSES)
        actor = payload.get("verifiedBy", payload.get("verified_by"))
        return cls(status=status, actor=_clean_actor(actor))


@dataclass(frozen=True)
class ItemStatusUpdate:
    """
    Body of PATCH /verification/items/<id>.

    image_url uses a sentinel so an explicit null (clear the photo) is
    distinguishable from "not supplied".
    """
    status: str | None = None
    flagged: bool | None = None
    verified_by: str | None = None
    image_url: object = _UNSET
    stamp_verified_at: bool = False

    @property
    def has_image_url(self) -> bool:
        return self.image_url is not _UNSET

    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.flagged is None
            and self.verified_by is None
            and not self.has_image_url
            and not self.stamp_verified_at
        )

    @classmethod
    def from_payload(cls, payload: dict | None) -> "ItemStatusUpdate":
        payload = _require_dict(payload)

        # Both keys are accepted; older clients send verification_status
        raw_status = payload.get("status")
        if raw_status is None:
            raw_status = payload.get("verification_status")
        status = None
        if raw_status is not None:
            status = normalize_status(raw_status, allowed=REVIEW_STATUSES)

        flagged = payload.get("flagged")
        if flagged is not None:
            if isinstance(flagged, bool):
                pass
            elif flagged in (0, 1):
                flagged = bool(flagged)
            else:
                raise ValidationError("flagged must be a boolean", field="flagged")

        image_url = _UNSET
        if "image_url" in payload:
            image_url = payload["image_url"]
            if image_url is not None:
                if not isinstance(image_url, str):
                    raise ValidationError("image_url must be a string", field="image_url")
                image_url = image_url.strip() or None
                if image_url and len(image_url) > 1024:
                    raise ValidationError("image_url exceeds max length 1024", field="image_url")

        return cls(
            status=status,
            flagged=flagged,
            verified_by=_clean_actor(payload.get("verified_by", payload.get("verifiedBy"))),
            image_url=image_url,
            stamp_verified_at=bool(payload.get("verifiedAt")),
        )


@dataclass(frozen=True)
class SessionStatusResult:
    checkout_id: int
    status: str
    items_updated: int

    @property
    def is_empty(self) -> bool:
        """True when the session exists but has no items to update."""
        return self.items_updated == 0

    def to_dict(self) -> dict:
        return {
            "success": True,
            "checkoutId": self.checkout_id,
            "status": self.status,
            "itemsUpdated": self.items_updated,
            "empty": self.is_empty,
        }


def _require_dict(payload) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _clean_actor(actor) -> str | None:
    if actor is None:
        return None
    if not isinstance(actor, str):
        raise ValidationError("verified_by must be a string", field="verified_by")
    actor = actor.strip()
    if len(actor) > 255:
        raise ValidationError("verified_by exceeds max length 255", field="verified_by")
    return actor or None


def _validate_listing(status, page, page_size, approved_window_days) -> str:
    status = normalize_status(status, allowed=VERIFICATION_STATUSES)

    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValidationError("page must be an integer >= 1", field="page")
    if isinstance(page_size, bool) or not isinstance(page_size, int) or not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
    _validate_window(approved_window_days)
    return status


def _validate_window(approved_window_days) -> None:
    if approved_window_days is None:
        return
    if isinstance(approved_window_days, bool) or not isinstance(approved_window_days, int) or approved_window_days < 0:
        raise ValidationError("windowDays must be a non-negative integer", field="windowDays")


def _approved_cutoff(now: datetime | None, approved_window_days: int | None) -> datetime | None:
    if approved_window_days is None:
        return None
    return window_start(now or utcnow(), approved_window_days)


def _pagination(page: int, page_size: int, total: int) -> dict:
    return {
        "page": page,
        "limit": page_size,
        "total": total,
        "total_pages": math.ceil(total / page_size) if total else 0,
    }


def _item_counts_subquery():
    """Per-session item counts feeding session_status_expression."""
    approved = Item.verification_status == STATUS_APPROVED
    return (
        db.session.query(
            Item.checkout_id.label("checkout_id"),
            func.count(Item.id).label("total"),
            func.sum(case((Item.verification_status == STATUS_FLAGGED, 1), else_=0)).label("flagged_count"),
            func.sum(case((approved, 1), else_=0)).label("approved_count"),
            func.max(case((approved, Item.verified_at), else_=None)).label("last_approved_at"),
        )
        .group_by(Item.checkout_id)
        .subquery()
    )


def _derived_status(counts):
    return session_status_expression(counts.c.total, counts.c.flagged_count, counts.c.approved_count)


def session_payload(checkout: Checkout) -> dict:
    """Checkout columns plus its items (id ascending), item count and derived status."""
    items = sorted(checkout.items, key=lambda i: i.id)
    return {
        **checkout.to_dict(),
        "status": derive_session_status(items),
        "items": [item.to_dict() for item in items],
        "total_items": len(items),
    }


def session_stats(
    *,
    approved_window_days: int | None = DEFAULT_APPROVED_WINDOW_DAYS,
    now: datetime | None = None,
) -> dict:
    """
    Count sessions needing approval by derived status (all years).

    Approved sessions only count while inside the approved window.
    """
    _validate_window(approved_window_days)
    counts = _item_counts_subquery()
    derived = _derived_status(counts)
    cutoff = _approved_cutoff(now, approved_window_days)

    query = (
        db.session.query(derived.label("status"), func.count(Checkout.id))
        .join(counts, counts.c.checkout_id == Checkout.id)
        .filter(Checkout.needs_approval.is_(True))
    )
    if cutoff is not None:
        query = query.filter(or_(derived != STATUS_APPROVED, counts.c.last_approved_at >= cutoff))

    stats = {STATUS_PENDING: 0, STATUS_APPROVED: 0, STATUS_FLAGGED: 0}
    for status, count in query.group_by("status").all():
        stats[status] = count
    return stats


def list_sessions_by_status(
    status: str,
    *,
    year_range: str | None = None,
    approved_window_days: int | None = DEFAULT_APPROVED_WINDOW_DAYS,
    page: int = 1,
    page_size: int = DEFAULT_SESSION_PAGE_SIZE,
    now: datetime | None = None,
) -> dict:
    """
    List sessions needing approval whose derived status equals `status`.

    Args:
        status: pending, approved or flagged
        year_range: optional exact academic-year filter
        approved_window_days: rolling window for approved (None disables it);
            ignored for the other statuses
        page / page_size: offset pagination, newest session first
        now: reference time for the window (defaults to utcnow)

    Returns:
        dict with "checkouts", "stats" and "pagination"

    Raises:
        ValidationError: bad status or pagination arguments
    """
    status = _validate_listing(status, page, page_size, approved_window_days)
    now = normalize_utc(now) if now else utcnow()

    counts = _item_counts_subquery()
    derived = _derived_status(counts)

    # Inner join drops sessions without items; every remaining session with
    # this derived status has at least one item in that status.
    query = (
        db.session.query(Checkout)
        .join(counts, counts.c.checkout_id == Checkout.id)
        .filter(Checkout.needs_approval.is_(True))
        .filter(derived == status)
    )
    if year_range:
        query = query.filter(Checkout.year_range == year_range)

    if status == STATUS_APPROVED:
        cutoff = _approved_cutoff(now, approved_window_days)
        if cutoff is not None:
            query = query.filter(counts.c.last_approved_at >= cutoff)

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
        "stats": session_stats(approved_window_days=approved_window_days, now=now),
        "pagination": _pagination(page, page_size, total),
    }


def list_items_by_status(
    status: str,
    *,
    year_range: str | None = None,
    approved_window_days: int | None = DEFAULT_APPROVED_WINDOW_DAYS,
    page: int = 1,
    page_size: int = DEFAULT_ITEM_PAGE_SIZE,
    now: datetime | None = None,
) -> dict:
    """
    Item-granularity listing kept for older review screens.

    Uses the same population as the session listing (sessions needing
    approval) so item counts and session counts describe the same queue.
    """
    status = _validate_listing(status, page, page_size, approved_window_days)
    now = normalize_utc(now) if now else utcnow()
    cutoff = _approved_cutoff(now, approved_window_days)

    base = (
        db.session.query(Item, Checkout)
        .join(Checkout, Item.checkout_id == Checkout.id)
        .filter(Checkout.needs_approval.is_(True))
    )
    if year_range:
        base = base.filter(Checkout.year_range == year_range)

    query = base.filter(Item.verification_status == status)
    if status == STATUS_APPROVED and cutoff is not None:
        query = query.filter(Item.verified_at >= cutoff)

    total = query.count()
    rows = (
        query.order_by(Item.created_at.desc(), Item.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    items = []
    for item, checkout in rows:
        items.append({
            **item.to_dict(),
            "owner_name": checkout.owner_name,
            "email": checkout.email,
            "date": to_utc_z(checkout.date),
            "housing_assignment": checkout.housing_assignment,
            "graduation_year": checkout.graduation_year,
        })

    stat_query = (
        db.session.query(Item.verification_status, func.count(Item.id))
        .join(Checkout, Item.checkout_id == Checkout.id)
        .filter(Checkout.needs_approval.is_(True))
    )
    if cutoff is not None:
        stat_query = stat_query.filter(
            or_(Item.verification_status != STATUS_APPROVED, Item.verified_at >= cutoff)
        )
    item_stats = {STATUS_PENDING: 0, STATUS_APPROVED: 0, STATUS_FLAGGED: 0}
    for item_status, count in stat_query.group_by(Item.verification_status).all():
        item_stats[item_status] = count

    return {
        "items": items,
        "stats": item_stats,
        "session_stats": session_stats(approved_window_days=approved_window_days, now=now),
        "pagination": _pagination(page, page_size, total),
    }


def set_session_status(
    checkout_id: int,
    update: SessionStatusUpdate,
    *,
    now: datetime | None = None,
) -> SessionStatusResult:
    """
    Move every item of a session to approved or flagged in one transaction.

    Args:
        checkout_id: Checkout session ID
        update: target status and optional reviewer identity
        now: timestamp written to verified_at (defaults to utcnow)

    Returns:
        SessionStatusResult: items_updated == 0 means the session has no items

    Raises:
        ValidationError: status is not approved/flagged
        NotFoundError: session does not exist
        StoreError: the write failed and was rolled back
    """
    status = normalize_status(update.status, allowed=REVIEW_STATUSES)
    stamp = normalize_utc(now) if now else utcnow()

    def _op():
        checkout = lock_for_update(db.session.query(Checkout).filter_by(id=checkout_id)).first()
        if checkout is None:
            raise NotFoundError(f"Checkout {checkout_id} not found")

        items = (
            lock_for_update(db.session.query(Item).filter_by(checkout_id=checkout_id))
            .order_by(Item.id)
            .all()
        )
        for item in items:
            apply_status(item, status, now=stamp, actor=update.actor)

        db.session.flush()
        return SessionStatusResult(checkout_id=checkout.id, status=status, items_updated=len(items))

    return run_in_transaction(_op)


def set_item_status(
    item_id: int,
    update: ItemStatusUpdate,
    *,
    now: datetime | None = None,
) -> Item:
    """
    Update the verification fields of a single item.

    Sibling items are not touched, so the session's derived status may
    change as a side effect; callers must re-derive it.

    Raises:
        ValidationError: empty update or invalid status
        NotFoundError: item does not exist
        StoreError: the write failed and was rolled back
    """
    if update.is_empty():
        raise ValidationError("No fields to update")
    status = None
    if update.status is not None:
        status = normalize_status(update.status, allowed=REVIEW_STATUSES)
    stamp = normalize_utc(now) if now else utcnow()

    def _op():
        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")

        apply_status(
            item,
            status,
            now=stamp,
            actor=update.verified_by,
            flagged=update.flagged,
            stamp_verified_at=update.stamp_verified_at,
        )
        if update.has_image_url:
            item.image_url = update.image_url

        db.session.flush()
        return item

    return run_in_transaction(_op)
