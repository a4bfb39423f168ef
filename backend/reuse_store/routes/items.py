# Overview: Flask API routes for item search and content corrections.

from flask import Blueprint, request, jsonify

from ..decorators import handle_service_errors
from ..services import checkout_service
from ..validation import MAX_PAGE_SIZE, parse_positive_int


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("/search")
@handle_service_errors("search items")
def search_items_route():
    """
    Search items by name.

    Query parameters:
        query: required substring of item_name
        year: academic year filter
        limit: max results (default 20)
    """
    results = checkout_service.search_items(
        request.args.get("query"),
        year_range=request.args.get("year") or None,
        limit=parse_positive_int(request.args.get("limit"), field="limit", default=20, maximum=MAX_PAGE_SIZE),
    )
    return jsonify(results), 200


@items_bp.patch("/<int:item_id>")
@handle_service_errors("update item")
def update_item_route(item_id: int):
    """
    Correct item name, description or quantity.

    Verification fields are changed through /api/verification/items/<id>.
    """
    item = checkout_service.update_item_details(item_id, request.get_json(silent=True))
    return jsonify(item.to_dict()), 200
