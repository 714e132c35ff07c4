# backend/backoffice/routes/reconciliation.py
"""
Stock reconciliation API routes.
"""
from flask import Blueprint, request, jsonify
from sqlalchemy.orm.exc import StaleDataError

from ..decorators import require_actor, require_role, actor_kwargs, MANAGER_ROLES
from ..services import reconciliation_service
from ..validation import LedgerError, require_fields
from .responses import error_response, stale_response, unexpected_response, json_body, restaurant_id_arg


reconciliation_bp = Blueprint("reconciliation", __name__, url_prefix="/api/reconciliation")


@reconciliation_bp.get("")
@require_actor
def list_reconciliations():
    """Query params: restaurant_id (required), status"""
    try:
        recons = reconciliation_service.list_reconciliations(
            restaurant_id_arg(),
            status=request.args.get("status"),
        )
        return jsonify({"reconciliations": [r.to_dict() for r in recons]}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list reconciliations")


@reconciliation_bp.post("")
@require_actor
def create_reconciliation():
    """
    Submit a physical count.

    Request body:
    {
        "restaurant_id": int,
        "items": [{"item_id": int, "physical_count": number}, ...],
        "notes": str (optional)
    }

    Returns:
        201: Reconciliation created (Pending) with its lines
        400: Invalid request
        404: Items not found in restaurant
    """
    try:
        data = require_fields(json_body(), "restaurant_id", "items")
        recon = reconciliation_service.create_reconciliation(
            data["restaurant_id"],
            data["items"],
            notes=data.get("notes"),
            **actor_kwargs(),
        )
        return jsonify(reconciliation_service.get_reconciliation_summary(recon.id)), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to create reconciliation")


@reconciliation_bp.get("/<int:reconciliation_id>")
@require_actor
def get_reconciliation(reconciliation_id: int):
    try:
        return jsonify(reconciliation_service.get_reconciliation_summary(reconciliation_id)), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load reconciliation")


@reconciliation_bp.post("/<int:reconciliation_id>/approve")
@require_actor
@require_role(*MANAGER_ROLES)
def approve_reconciliation(reconciliation_id: int):
    """
    Returns:
        200: Approved, variances posted
        404: Not found
        409: Already approved / rejected
    """
    try:
        recon = reconciliation_service.approve_reconciliation(reconciliation_id, **actor_kwargs())
        return jsonify(reconciliation_service.get_reconciliation_summary(recon.id)), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to approve reconciliation")


@reconciliation_bp.post("/<int:reconciliation_id>/reject")
@require_actor
@require_role(*MANAGER_ROLES)
def reject_reconciliation(reconciliation_id: int):
    try:
        recon = reconciliation_service.reject_reconciliation(reconciliation_id, **actor_kwargs())
        return jsonify(recon.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to reject reconciliation")
