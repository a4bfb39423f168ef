# backend/reuse_store/services/status_service.py
"""
Session status aggregation and the single write path for item status.

A checkout session has no status column. Its status is derived from the
statuses of its items every time it is read:

1. any item flagged            -> flagged
2. non-empty and all approved  -> approved
3. anything else (incl. empty) -> pending

derive_session_status() is the pure form used on loaded items.
session_status_expression() is the same rule as a SQL CASE over per-session
item counts so list queries can filter and paginate in the database.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import and_, case

from ..models import VERIFICATION_STATUSES
from ..validation import ValidationError


STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_FLAGGED = "flagged"

# Reviewer actions only move items forward (pending is creation-only)
REVIEW_STATUSES = (STATUS_APPROVED, STATUS_FLAGGED)


def _status_of(item) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return item.get("verification_status") or STATUS_PENDING
    return item.verification_status or STATUS_PENDING


def derive_session_status(items: Iterable) -> str:
    """
    Derive the session-level status from item objects, dicts or raw status strings.
    """
    statuses = [_status_of(item) for item in items]

    if STATUS_FLAGGED in statuses:
        return STATUS_FLAGGED
    if statuses and all(s == STATUS_APPROVED for s in statuses):
        return STATUS_APPROVED
    return STATUS_PENDING


def session_status_expression(total, flagged_count, approved_count):
    """SQL CASE equivalent of derive_session_status over aggregated item counts."""
    return case(
        (flagged_count > 0, STATUS_FLAGGED),
        (and_(total > 0, approved_count == total), STATUS_APPROVED),
        else_=STATUS_PENDING,
    )


def flagged_for_status(status: str) -> bool:
    return status == STATUS_FLAGGED


def normalize_status(value, *, allowed: Iterable[str] = VERIFICATION_STATUSES, field: str = "status") -> str:
    """Lower-case/strip a status value and reject anything outside `allowed`."""
    allowed = tuple(allowed)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required", field=field)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)

    status = value.strip().lower()
    if status == STATUS_PENDING and STATUS_PENDING not in allowed:
        raise ValidationError(
            "Reverting to pending is not supported; items start pending and only move to approved or flagged",
            field=field,
        )
    if status not in allowed:
        raise ValidationError(
            f"Invalid {field}: {value!r} (expected one of: {', '.join(allowed)})",
            field=field,
        )
    return status


def apply_status(
    item,
    status: str | None,
    *,
    now: datetime,
    actor: str | None = None,
    flagged: bool | None = None,
    stamp_verified_at: bool = False,
) -> None:
    """
    Write verification fields on one item.

    - status (if given) sets verification_status and the flagged mirror
    - flagged (if given) is an explicit override of the mirror
    - verified_at is stamped on approved/flagged or when requested
    - verified_by is set only when an actor is supplied
    """
    if status is not None:
        item.verification_status = status
        item.flagged = flagged_for_status(status)

    if flagged is not None:
        item.flagged = bool(flagged)

    if status in REVIEW_STATUSES or stamp_verified_at:
        item.verified_at = now

    if actor:
        item.verified_by = actor
