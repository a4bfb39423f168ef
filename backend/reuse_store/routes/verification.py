# Overview: Flask API routes for the photo verification queue; parses input and returns JSON responses.

# backend/reuse_store/routes/verification.py
"""Verification queue API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import handle_service_errors
from ..services import verification_service
from ..services.verification_service import ItemStatusUpdate, SessionStatusUpdate
from ..validation import MAX_PAGE_SIZE, parse_bool_flag, parse_positive_int, parse_window_days


verification_bp = Blueprint("verification", __name__, url_prefix="/api/verification")


def _listing_args(default_page_size: int) -> dict:
    """
    Shared query-string parsing for the session and item listings.

    lastMonthOnly=false disables the approved window; windowDays overrides
    its length (default APPROVED_WINDOW_DAYS).
    """
    args = request.args
    window = parse_window_days(
        args.get("windowDays"),
        default=current_app.config["APPROVED_WINDOW_DAYS"],
    )
    if not parse_bool_flag(args.get("lastMonthOnly"), field="lastMonthOnly", default=True):
        window = None

    return {
        "status": args.get("status", "pending"),
        "year_range": args.get("year") or None,
        "approved_window_days": window,
        "page": parse_positive_int(args.get("page"), field="page", default=1),
        "page_size": parse_positive_int(
            args.get("limit"), field="limit", default=default_page_size, maximum=MAX_PAGE_SIZE
        ),
    }


@verification_bp.get("/checkouts")
@handle_service_errors("fetch verification checkouts")
def list_checkouts_route():
    """
    List checkout sessions in one verification tab.

    Query parameters:
        status: pending (default), approved, flagged
        year: academic year filter, e.g. 2025-2026
        page, limit: pagination (limit <= 100)
        lastMonthOnly: "false" shows every approved session
        windowDays: length of the approved window

    Returns:
        200: {"checkouts": [...], "stats": {...}, "pagination": {...}}
        400: Invalid status or pagination
    """
    kwargs = _listing_args(current_app.config["VERIFICATION_PAGE_SIZE"])
    result = verification_service.list_sessions_by_status(kwargs.pop("status"), **kwargs)
    return jsonify(result), 200


@verification_bp.patch("/checkouts/<int:checkout_id>")
@handle_service_errors("update checkout")
def update_checkout_status_route(checkout_id: int):
    """
    Approve or flag every item in a checkout session.

    Request body:
    {
        "status": "approved" | "flagged",
        "verifiedBy": str (optional)
    }

    Returns:
        200: {"success", "checkoutId", "status", "itemsUpdated", "empty"}
        400: Invalid status
        404: Checkout not found
    """
    update = SessionStatusUpdate.from_payload(request.get_json(silent=True))
    result = verification_service.set_session_status(checkout_id, update)

    if result.is_empty:
        current_app.logger.warning("Checkout %s has no items; nothing marked %s", checkout_id, result.status)
    else:
        current_app.logger.info(
            "Checkout %s marked %s (%s items)", checkout_id, result.status, result.items_updated
        )

    body = result.to_dict()
    body["message"] = (
        f"Checkout {checkout_id} has no items to update"
        if result.is_empty
        else f"Checkout {checkout_id} and all its items updated to {result.status}"
    )
    return jsonify(body), 200


@verification_bp.get("/items")
@handle_service_errors("fetch verification items")
def list_items_route():
    """
    Item-granularity verification listing (older review screens).

    Same query parameters as /checkouts.
    """
    kwargs = _listing_args(current_app.config["ITEM_PAGE_SIZE"])
    result = verification_service.list_items_by_status(kwargs.pop("status"), **kwargs)
    return jsonify(result), 200


@verification_bp.patch("/items/<int:item_id>")
@handle_service_errors("update item")
def update_item_status_route(item_id: int):
    """
    Update verification fields of a single item.

    Request body (all optional, at least one required):
    {
        "status" | "verification_status": "approved" | "flagged",
        "flagged": bool,
        "verified_by": str,
        "image_url": str | null,
        "verifiedAt": truthy to re-stamp verified_at
    }

    Returns:
        200: Updated item
        400: Invalid or empty update
        404: Item not found
    """
    update = ItemStatusUpdate.from_payload(request.get_json(silent=True))
    item = verification_service.set_item_status(item_id, update)

    if update.status:
        current_app.logger.info("Item %s marked %s", item_id, update.status)

    return jsonify(item.to_dict()), 200
