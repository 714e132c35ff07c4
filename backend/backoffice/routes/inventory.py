# backend/backoffice/routes/inventory.py
"""
Stock ledger API routes: manual adjustments and inter-restaurant transfers.
"""
from flask import Blueprint, jsonify
from sqlalchemy.orm.exc import StaleDataError

from ..decorators import require_actor, actor_kwargs
from ..services import inventory_service, transfer_service
from ..validation import LedgerError, require_fields
from .responses import error_response, stale_response, unexpected_response, json_body, restaurant_id_arg


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/<int:item_id>/adjust")
@require_actor
def adjust_stock(item_id: int):
    """
    Request body:
    {
        "type": "Purchase" | "Usage" | "Waste" | "Adjustment",
        "quantity": number,
        "reason": str (optional),
        "unit_cost": int (optional, Purchase only updates item cost)
    }

    Returns:
        201: {"movement", "item", "stock_status"}
        400: Invalid request / insufficient stock
        404: Item not found
    """
    try:
        data = require_fields(json_body(), "type", "quantity")
        movement, item, status = inventory_service.adjust_stock(
            item_id,
            data["type"],
            data["quantity"],
            reason=data.get("reason"),
            unit_cost=data.get("unit_cost"),
            **actor_kwargs(),
        )
        return jsonify({
            "movement": movement.to_dict(),
            "item": item.to_dict(),
            "stock_status": status,
        }), 201

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to adjust stock")


@inventory_bp.get("/transfer")
@require_actor
def list_transfers():
    """Query params: restaurant_id (required)"""
    try:
        transfers = transfer_service.list_transfers(restaurant_id_arg())
        return jsonify({"transfers": [t.to_dict() for t in transfers]}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list transfers")


@inventory_bp.post("/transfer")
@require_actor
def create_transfer():
    """
    Request body:
    {
        "source_item_id": int,
        "target_restaurant_id": int,
        "quantity": number,
        "source_restaurant_id": int (optional),
        "target_item_id": int (optional),
        "reason": str (optional)
    }

    Returns:
        201: Transfer recorded
        400: Same restaurant / insufficient stock / invalid quantity
        404: Item or restaurant not found
    """
    try:
        data = require_fields(json_body(), "source_item_id", "target_restaurant_id", "quantity")
        transfer = transfer_service.transfer_stock(
            data["source_item_id"],
            data["target_restaurant_id"],
            data["quantity"],
            source_restaurant_id=data.get("source_restaurant_id"),
            target_item_id=data.get("target_item_id"),
            reason=data.get("reason"),
            **actor_kwargs(),
        )
        return jsonify(transfer.to_dict()), 201

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to transfer stock")
