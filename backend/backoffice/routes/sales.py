# backend/backoffice/routes/sales.py
"""
Sale approval API routes.
"""
from flask import Blueprint, jsonify
from sqlalchemy.orm.exc import StaleDataError

from ..decorators import require_actor, require_role, actor_kwargs, MANAGER_ROLES
from ..services import sales_service, bank_service
from ..validation import LedgerError
from .responses import error_response, stale_response, unexpected_response, json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/<int:sale_id>/approve")
@require_actor
@require_role(*MANAGER_ROLES)
def approve_sale(sale_id: int):
    """
    Approve a Pending sale; its cash takings become a Pending deposit.

    Request body (optional): {"method": "Cash" | "OrangeMoney" | "Card"}

    Returns:
        200: {"sale": {...}, "bank_transaction": {...} | null}
        404: Sale not found
        409: Sale already processed, or already banked
    """
    try:
        data = json_body()
        sale, txn = sales_service.approve_sale(
            sale_id,
            method=data.get("method", bank_service.METHOD_CASH),
            **actor_kwargs(),
        )
        return jsonify({
            "sale": sale.to_dict(),
            "bank_transaction": txn.to_dict() if txn else None,
        }), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to approve sale")


@sales_bp.post("/<int:sale_id>/reject")
@require_actor
@require_role(*MANAGER_ROLES)
def reject_sale(sale_id: int):
    try:
        data = json_body()
        sale = sales_service.reject_sale(sale_id, reason=data.get("reason"), **actor_kwargs())
        return jsonify(sale.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to reject sale")
