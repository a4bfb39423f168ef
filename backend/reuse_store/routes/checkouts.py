# Overview: Flask API routes for browsing and correcting checkout sessions.

from flask import Blueprint, request, jsonify

from ..decorators import handle_service_errors
from ..services import checkout_service
from ..services.verification_service import session_payload
from ..validation import MAX_PAGE_SIZE, parse_positive_int


checkouts_bp = Blueprint("checkouts", __name__, url_prefix="/api")


@checkouts_bp.get("/checkouts")
@handle_service_errors("fetch checkouts")
def list_checkouts_route():
    """
    List all checkout sessions, newest first.

    Query parameters:
        year: academic year filter
        search: substring of owner name or email
        page, limit: pagination (default limit 20)
    """
    result = checkout_service.list_checkouts(
        year_range=request.args.get("year") or None,
        search=request.args.get("search"),
        page=parse_positive_int(request.args.get("page"), field="page", default=1),
        page_size=parse_positive_int(request.args.get("limit"), field="limit", default=20, maximum=MAX_PAGE_SIZE),
    )
    return jsonify(result), 200


@checkouts_bp.get("/checkouts/<int:checkout_id>")
@handle_service_errors("fetch checkout")
def get_checkout_route(checkout_id: int):
    """Checkout with its items and derived verification status."""
    return jsonify(checkout_service.get_checkout(checkout_id)), 200


@checkouts_bp.patch("/checkouts/<int:checkout_id>")
@handle_service_errors("update checkout")
def update_checkout_route(checkout_id: int):
    """
    Correct owner/contact details of a checkout.

    Request body (any of): owner_name, email, housing_assignment,
    graduation_year, notes

    Returns:
        200: Updated checkout with items
        400: Unknown field or invalid value
        404: Checkout not found
    """
    checkout = checkout_service.update_checkout_contact(checkout_id, request.get_json(silent=True))
    return jsonify(session_payload(checkout)), 200


@checkouts_bp.get("/donors/search")
@handle_service_errors("search donors")
def search_donors_route():
    """Donor autocomplete for the product form (latest details per email)."""
    return jsonify(checkout_service.search_donors(request.args.get("q", ""))), 200
