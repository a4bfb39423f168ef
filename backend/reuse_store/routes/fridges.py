# Overview: Flask API routes for fridge lending; inventory, loans and returns.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import handle_service_errors
from ..services import fridge_service
from ..services.fridge_service import FridgeCheckoutRequest, FridgeReturnRequest
from ..validation import parse_bool_flag


fridges_bp = Blueprint("fridges", __name__, url_prefix="/api/fridges")


@fridges_bp.get("")
@handle_service_errors("fetch fridges")
def list_fridges_route():
    """All fridges ordered by number; ?status= filters one state."""
    fridges = fridge_service.list_fridges(request.args.get("status") or None)
    return jsonify({"fridges": [f.to_dict() for f in fridges]}), 200


@fridges_bp.get("/stats")
@handle_service_errors("fetch fridge stats")
def fridge_stats_route():
    return jsonify(fridge_service.fridge_stats()), 200


@fridges_bp.get("/available")
@handle_service_errors("fetch available fridges")
def available_fridges_route():
    """Fridges on the shelf; ?has_freezer=true|false narrows the type."""
    has_freezer = parse_bool_flag(request.args.get("has_freezer"), field="has_freezer", default=None)
    return jsonify([f.to_dict() for f in fridge_service.available_fridges(has_freezer)]), 200


@fridges_bp.get("/checkouts/active")
@handle_service_errors("fetch fridge loans")
def active_loans_route():
    return jsonify({"checkouts": fridge_service.active_loans()}), 200


@fridges_bp.get("/checkouts/<path:student_email>")
@handle_service_errors("fetch fridge loans")
def student_loans_route(student_email: str):
    return jsonify(fridge_service.active_loans(student_email)), 200


@fridges_bp.post("/checkout")
@handle_service_errors("checkout fridge")
def checkout_fridge_route():
    """
    Lend an available fridge to a student.

    Request body:
    {
        "fridgeId": int,
        "studentName": str,
        "studentEmail": str,
        "housingAssignment": str (optional),
        "graduationYear": str (optional)
    }

    Returns:
        201: {"success", "checkoutId", "itemId", "fridgeId", "fridgeNumber"}
        400: Invalid body
        404: Fridge not found
        409: Fridge is not available
    """
    loan_request = FridgeCheckoutRequest.from_payload(request.get_json(silent=True))
    loan = fridge_service.checkout_fridge(
        loan_request, tz_name=current_app.config["ACADEMIC_TIMEZONE"]
    )

    current_app.logger.info(
        "Fridge #%s lent to %s (checkout %s)", loan.fridge_number, loan_request.student_email, loan.checkout_id
    )
    return jsonify(loan.to_dict()), 201


@fridges_bp.post("/return")
@handle_service_errors("return fridge")
def return_fridge_route():
    """
    Close a student's open loan.

    Request body:
    {
        "fridgeId": int,
        "studentEmail": str,
        "condition": str (optional; Needs Repair/Damaged/Poor -> maintenance),
        "notes": str (optional)
    }

    Returns:
        200: {"success", "fridgeId", "checkoutId", "status"}
        404: Fridge or open loan not found
    """
    result = fridge_service.return_fridge(FridgeReturnRequest.from_payload(request.get_json(silent=True)))
    current_app.logger.info("Fridge %s returned; now %s", result["fridgeId"], result["status"])
    return jsonify(result), 200


@fridges_bp.post("/checkin")
@handle_service_errors("check in fridge")
def check_in_fridge_route():
    """
    Add a fridge to inventory.

    Request body: hasFreezer (required bool), size, color, brand, model,
    condition (default "Good"), notes
    """
    fridge = fridge_service.check_in_fridge(request.get_json(silent=True))
    current_app.logger.info("Fridge #%s checked in", fridge.fridge_number)
    return jsonify({"success": True, "fridgeId": fridge.id, "fridgeNumber": fridge.fridge_number}), 201


@fridges_bp.get("/<fridge_number>")
@handle_service_errors("fetch fridge")
def get_fridge_route(fridge_number: str):
    return jsonify(fridge_service.get_fridge_by_number(fridge_number).to_dict()), 200


@fridges_bp.patch("/<int:fridge_id>")
@handle_service_errors("update fridge")
def update_fridge_route(fridge_id: int):
    """
    Correct fridge details or mark maintenance.

    Returns:
        200: Updated fridge
        400: Unknown field, invalid status, or status=checked_out
        404: Fridge not found
        409: Status change on a fridge that is on loan
    """
    fridge = fridge_service.update_fridge(fridge_id, request.get_json(silent=True))
    return jsonify(fridge.to_dict()), 200
