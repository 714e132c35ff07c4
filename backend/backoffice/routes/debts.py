# backend/backoffice/routes/debts.py
"""
Customer debt ledger API routes.
"""
from flask import Blueprint, request, jsonify
from sqlalchemy.orm.exc import StaleDataError

from ..decorators import require_actor, require_role, actor_kwargs, MANAGER_ROLES
from ..services import debt_service
from ..validation import LedgerError, require_fields, require_bool
from .responses import error_response, stale_response, unexpected_response, json_body, restaurant_id_arg


debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


@debts_bp.get("")
@require_actor
def list_debts():
    """
    Query params: restaurant_id (required), customer_id, status, overdue=true
    """
    try:
        debts = debt_service.list_debts(
            restaurant_id_arg(),
            customer_id=request.args.get("customer_id", type=int),
            status=request.args.get("status"),
            overdue=request.args.get("overdue", "").lower() == "true",
        )
        return jsonify({"debts": [d.to_dict() for d in debts]}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list debts")


@debts_bp.post("")
@require_actor
def create_debt():
    """
    Request body:
    {
        "restaurant_id": int,
        "customer_id": int,
        "principal_amount": int,
        "due_date": str (optional),
        "sale_id": int (optional),
        "description", "notes": str (optional)
    }

    Returns:
        201: Debt created
        400: Invalid request or credit limit exceeded
        404: Customer / sale not found
    """
    try:
        data = require_fields(json_body(), "restaurant_id", "customer_id", "principal_amount")
        debt = debt_service.create_debt(
            data["restaurant_id"],
            data["customer_id"],
            data["principal_amount"],
            due_date=data.get("due_date"),
            sale_id=data.get("sale_id"),
            description=data.get("description"),
            notes=data.get("notes"),
            **actor_kwargs(),
        )
        return jsonify(debt.to_dict()), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to create debt")


@debts_bp.patch("/<int:debt_id>")
@require_actor
@require_role(*MANAGER_ROLES)
def update_principal(debt_id: int):
    """Request body: {"principal_amount": int}"""
    try:
        data = require_fields(json_body(), "principal_amount")
        debt = debt_service.update_principal(debt_id, data["principal_amount"])
        return jsonify(debt.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to update debt principal")


@debts_bp.delete("/<int:debt_id>")
@require_actor
@require_role(*MANAGER_ROLES)
def delete_debt(debt_id: int):
    try:
        debt_service.delete_debt(debt_id)
        return jsonify({"deleted": True, "id": debt_id}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to delete debt")


@debts_bp.get("/<int:debt_id>/payments")
@require_actor
def list_payments(debt_id: int):
    try:
        payments = debt_service.list_payments(debt_id)
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list debt payments")


@debts_bp.post("/<int:debt_id>/payments")
@require_actor
def record_payment(debt_id: int):
    """
    Record a payment; also stages a Pending DebtCollection deposit unless
    "record_deposit" is false.

    Request body:
    {
        "amount": int,
        "payment_method": "Cash" | "OrangeMoney" | "Card",
        "payment_date": str (optional),
        "receipt_number", "notes": str (optional),
        "record_deposit": bool (optional, default true)
    }

    Returns:
        201: {"payment", "debt", "bank_transaction"}
        400: Invalid amount / exceeds remaining
        404: Debt not found
        409: Debt written off
    """
    try:
        data = require_fields(json_body(), "amount", "payment_method")
        payment, debt, txn = debt_service.record_payment(
            debt_id,
            data["amount"],
            data["payment_method"],
            payment_date=data.get("payment_date"),
            receipt_number=data.get("receipt_number"),
            notes=data.get("notes"),
            record_deposit=require_bool(data.get("record_deposit"), "record_deposit", True),
            **actor_kwargs(),
        )
        return jsonify({
            "payment": payment.to_dict(),
            "debt": debt.to_dict(),
            "bank_transaction": txn.to_dict() if txn else None,
        }), 201

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to record debt payment")


@debts_bp.delete("/<int:debt_id>/payments/<int:payment_id>")
@require_actor
@require_role(*MANAGER_ROLES)
def delete_payment(debt_id: int, payment_id: int):
    try:
        debt = debt_service.delete_payment(debt_id, payment_id)
        return jsonify(debt.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to delete debt payment")


@debts_bp.post("/<int:debt_id>/write-off")
@require_actor
@require_role(*MANAGER_ROLES)
def write_off(debt_id: int):
    """Request body (optional): {"reason": str}"""
    try:
        data = json_body()
        debt = debt_service.write_off_debt(debt_id, reason=data.get("reason"))
        return jsonify(debt.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to write off debt")
