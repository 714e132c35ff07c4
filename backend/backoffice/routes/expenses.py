# backend/backoffice/routes/expenses.py
"""
Expense approval and payment API routes.
"""
from flask import Blueprint, jsonify
from sqlalchemy.orm.exc import StaleDataError

from ..decorators import require_actor, require_role, actor_kwargs, MANAGER_ROLES
from ..services import expense_service
from ..validation import LedgerError, require_fields
from .responses import error_response, stale_response, unexpected_response, json_body


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.post("/<int:expense_id>/approve")
@require_actor
@require_role(*MANAGER_ROLES)
def approve_expense(expense_id: int):
    try:
        expense = expense_service.approve_expense(expense_id, **actor_kwargs())
        return jsonify(expense.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to approve expense")


@expenses_bp.post("/<int:expense_id>/reject")
@require_actor
@require_role(*MANAGER_ROLES)
def reject_expense(expense_id: int):
    try:
        expense = expense_service.reject_expense(expense_id, **actor_kwargs())
        return jsonify(expense.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to reject expense")


@expenses_bp.get("/<int:expense_id>/payments")
@require_actor
def list_payments(expense_id: int):
    """Payments made against an expense plus a running summary."""
    try:
        payments = expense_service.list_expense_payments(expense_id)
        return jsonify({
            "payments": [p.to_dict() for p in payments],
            "summary": expense_service.payment_summary(expense_id),
        }), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list expense payments")


@expenses_bp.post("/<int:expense_id>/payments")
@require_actor
@require_role(*MANAGER_ROLES)
def record_payment(expense_id: int):
    """
    Request body:
    {
        "amount": int,
        "payment_method": "Cash" | "OrangeMoney" | "Card",
        "notes": str (optional)
    }

    Returns:
        201: {"payment", "expense"}
        400: Invalid amount / exceeds remaining
        404: Expense not found
        409: Expense not approved or already paid
    """
    try:
        data = require_fields(json_body(), "amount", "payment_method")
        payment, expense = expense_service.record_expense_payment(
            expense_id,
            data["amount"],
            data["payment_method"],
            notes=data.get("notes"),
            **actor_kwargs(),
        )
        return jsonify({"payment": payment.to_dict(), "expense": expense.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to record expense payment")
