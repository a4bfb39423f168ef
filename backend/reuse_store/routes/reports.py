# Overview: Flask API routes for reporting; read-only statistics over donations.

from flask import Blueprint, request, jsonify

from ..decorators import handle_service_errors
from ..services import reporting_service
from ..validation import MAX_PAGE_SIZE, parse_positive_int


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


@reports_bp.get("/years")
@handle_service_errors("fetch years")
def list_years_route():
    """Distinct academic years present in the data."""
    return jsonify([{"year_range": y} for y in reporting_service.list_year_ranges()]), 200


@reports_bp.get("/statistics")
@handle_service_errors("fetch statistics")
def statistics_route():
    return jsonify(reporting_service.get_statistics(request.args.get("year") or None)), 200


@reports_bp.get("/analytics/top-items")
@handle_service_errors("fetch top items")
def top_items_route():
    rows = reporting_service.top_items(
        request.args.get("year") or None,
        limit=parse_positive_int(request.args.get("limit"), field="limit", default=10, maximum=MAX_PAGE_SIZE),
    )
    return jsonify(rows), 200
