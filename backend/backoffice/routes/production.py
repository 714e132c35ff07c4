# backend/backoffice/routes/production.py
"""
Production logging API routes.
"""
from flask import Blueprint, request, jsonify
from sqlalchemy.orm.exc import StaleDataError

from ..decorators import require_actor, require_role, actor_kwargs, MANAGER_ROLES
from ..services import production_service, inventory_service
from ..validation import LedgerError, require_fields, require_quantity, require_bool
from .responses import error_response, stale_response, unexpected_response, json_body, restaurant_id_arg


production_bp = Blueprint("production", __name__, url_prefix="/api/production")


@production_bp.get("")
@require_actor
def list_logs():
    """
    Query params: restaurant_id (required), limit (default 50)
    """
    try:
        logs = production_service.list_production_logs(
            restaurant_id_arg(),
            limit=request.args.get("limit", 50, type=int),
        )
        return jsonify({"production_logs": [log.to_dict() for log in logs]}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list production logs")


@production_bp.post("")
@require_actor
def log_production():
    """
    Request body:
    {
        "restaurant_id": int,
        "product_name": str,
        "quantity": number,
        "ingredients": [{"item_id": int, "quantity": number}, ...],
        "deduct_stock": bool (optional, default true),
        "preparation_status": str (optional),
        "date", "notes": str (optional)
    }

    Returns:
        201: Production logged
        400: Invalid request / insufficient stock
        404: Restaurant or ingredient not found
    """
    try:
        data = require_fields(json_body(), "restaurant_id", "product_name", "quantity", "ingredients")
        log = production_service.log_production(
            data["restaurant_id"],
            data["product_name"],
            data["quantity"],
            data["ingredients"],
            date=data.get("date"),
            deduct_stock=require_bool(data.get("deduct_stock"), "deduct_stock", True),
            preparation_status=data.get("preparation_status", production_service.PRODUCTION_STATUS_PLANNING),
            notes=data.get("notes"),
            **actor_kwargs(),
        )
        return jsonify(log.to_dict()), 201

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to log production")


@production_bp.post("/check-availability")
@require_actor
def check_availability():
    """
    Request body:
    {
        "restaurant_id": int,
        "ingredients": [{"item_id": int, "quantity": number}, ...],
        "multiplier": number (optional)
    }
    """
    try:
        data = require_fields(json_body(), "restaurant_id", "ingredients")
        result = inventory_service.check_availability(
            data["restaurant_id"],
            data["ingredients"],
            multiplier=require_quantity(data.get("multiplier", 1), "multiplier"),
        )
        return jsonify(result), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to check ingredient availability")


@production_bp.get("/<int:log_id>")
@require_actor
def get_log(log_id: int):
    try:
        return jsonify(production_service.get_production_log(log_id).to_dict()), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load production log")


@production_bp.patch("/<int:log_id>")
@require_actor
def update_status(log_id: int):
    """Request body: {"preparation_status": str}"""
    try:
        data = require_fields(json_body(), "preparation_status")
        log = production_service.update_production_status(
            log_id,
            data["preparation_status"],
            **actor_kwargs(),
        )
        return jsonify(log.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to update production status")


@production_bp.delete("/<int:log_id>")
@require_actor
@require_role(*MANAGER_ROLES)
def delete_log(log_id: int):
    """Delete a production log and restore the stock it consumed."""
    try:
        result = production_service.delete_production_log(log_id)
        return jsonify(result), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to delete production log")
