# backend/backoffice/routes/responses.py
"""
Shared error shaping for the API blueprints.

Every handler follows the same pattern:

    try:
        ...service call...
    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to ...")
"""
from flask import current_app, jsonify, request

from ..extensions import db
from ..validation import LedgerError, ValidationError


def error_response(exc: LedgerError):
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


def stale_response():
    db.session.rollback()
    return jsonify({
        "error": "Record was modified by another request; reload and retry",
        "code": "ConflictError",
    }), 409


def unexpected_response(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def restaurant_id_arg() -> int:
    """restaurant_id query parameter, required on list endpoints."""
    value = request.args.get("restaurant_id", type=int)
    if value is None:
        raise ValidationError("restaurant_id query parameter is required")
    return value
