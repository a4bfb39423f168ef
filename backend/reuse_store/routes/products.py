# Overview: Flask API route for logging a donation from the product form.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import handle_service_errors
from ..services import donation_service
from ..services.donation_service import DonationSubmission


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("")
@handle_service_errors("submit product")
def log_donation_route():
    """
    Log a donated product: creates a checkout needing approval and one pending item.

    Request body:
    {
        "donorName": str,
        "email": str,
        "categoryName": str,
        "housing": str (optional),
        "gradYear": str (optional, four digits),
        "description": str (optional, <= 500 chars),
        "photoUrl": str (optional)
    }

    Returns:
        201: {"success", "checkoutId", "itemId", "yearRange", "message"}
        400: Missing or invalid fields (with "field")
    """
    submission = DonationSubmission.from_payload(request.get_json(silent=True))
    receipt = donation_service.log_donation(
        submission, tz_name=current_app.config["ACADEMIC_TIMEZONE"]
    )

    current_app.logger.info(
        "Donation logged: checkout %s item %s (%s)",
        receipt.checkout_id, receipt.item_id, receipt.year_range,
    )
    return jsonify(receipt.to_dict()), 201
