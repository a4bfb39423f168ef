# Overview: Route decorators mapping service errors to JSON responses.

from functools import wraps
from flask import jsonify, current_app

from .extensions import db
from .validation import ConflictError, NotFoundError, StoreError, ValidationError


def handle_service_errors(action: str):
    """
    Translate service exceptions into the API's error contract.

    - ValidationError -> 400 {"error", "field"}
    - NotFoundError   -> 404 {"error"}
    - ConflictError   -> 409 {"error"}
    - StoreError / anything else -> 500, logged with the failing action

    The session is rolled back before responding so a failed request never
    leaves pending writes behind.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ValidationError as e:
                db.session.rollback()
                body = {"error": str(e)}
                if e.field:
                    body["field"] = e.field
                return jsonify(body), 400
            except NotFoundError as e:
                db.session.rollback()
                return jsonify({"error": str(e)}), 404
            except ConflictError as e:
                db.session.rollback()
                return jsonify({"error": str(e)}), 409
            except StoreError:
                db.session.rollback()
                current_app.logger.exception("Failed to %s (store error)", action)
                return jsonify({"error": f"Failed to {action}"}), 500
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function
    return decorator
