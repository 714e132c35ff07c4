# backend/backoffice/routes/bank.py
"""
Bank transaction ledger and balance analytics API routes.
"""
from flask import Blueprint, request, jsonify, g
from sqlalchemy.orm.exc import StaleDataError

from ..decorators import require_actor, require_role, actor_kwargs, MANAGER_ROLES
from ..services import bank_service, balance_service
from ..validation import LedgerError, ValidationError, require_fields, parse_date_param
from .responses import error_response, stale_response, unexpected_response, json_body, restaurant_id_arg


bank_bp = Blueprint("bank", __name__, url_prefix="/api/bank")


@bank_bp.get("/transactions")
@require_actor
def list_transactions():
    """
    List a restaurant's transactions with totals.

    Query params: restaurant_id (required), type, method, status, reason,
    start, end (ISO-8601)
    """
    try:
        restaurant_id = restaurant_id_arg()
        transactions = bank_service.list_transactions(
            restaurant_id,
            type=request.args.get("type"),
            method=request.args.get("method"),
            status=request.args.get("status"),
            reason=request.args.get("reason"),
            start=parse_date_param(request.args.get("start"), "start"),
            end=parse_date_param(request.args.get("end"), "end"),
        )
        return jsonify({
            "transactions": [t.to_dict() for t in transactions],
            "summary": bank_service.summarize_transactions(transactions),
        }), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to list bank transactions")


@bank_bp.post("/transactions")
@require_actor
def record_transaction():
    """
    Record a Pending transaction.

    Request body:
    {
        "restaurant_id": int,
        "type": "Deposit" | "Withdrawal",
        "method": "Cash" | "OrangeMoney" | "Card",
        "reason": str,
        "amount": int,
        "date": str (optional),
        "sale_id" | "debt_payment_id": int (optional, at most one),
        "description", "bank_ref", "comments": str (optional)
    }

    Returns:
        201: Transaction recorded
        400: Invalid request
        404: Linked sale / debt payment not found
        409: Sale / debt payment already banked
    """
    try:
        data = require_fields(json_body(), "restaurant_id", "type", "method", "reason", "amount")
        txn = bank_service.record_transaction(
            data["restaurant_id"],
            type=data["type"],
            method=data["method"],
            reason=data["reason"],
            amount=data["amount"],
            date=data.get("date"),
            sale_id=data.get("sale_id"),
            debt_payment_id=data.get("debt_payment_id"),
            description=data.get("description"),
            bank_ref=data.get("bank_ref"),
            comments=data.get("comments"),
            **actor_kwargs(),
        )
        return jsonify(txn.to_dict()), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to record bank transaction")


@bank_bp.get("/transactions/<int:transaction_id>")
@require_actor
def get_transaction(transaction_id: int):
    try:
        return jsonify(bank_service.get_transaction(transaction_id).to_dict()), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to load bank transaction")


@bank_bp.post("/transactions/<int:transaction_id>/confirm")
@require_actor
@require_role(*MANAGER_ROLES)
def confirm_transaction(transaction_id: int):
    """
    Confirm a Pending transaction against the bank statement.

    Request body (optional): {"bank_ref": str}

    Returns:
        200: Confirmed
        404: Not found
        409: Already confirmed
    """
    try:
        data = json_body()
        txn = bank_service.confirm_transaction(
            transaction_id,
            user_id=g.user_id,
            bank_ref=data.get("bank_ref"),
        )
        return jsonify(txn.to_dict()), 200

    except LedgerError as e:
        return error_response(e)
    except StaleDataError:
        return stale_response()
    except Exception:
        return unexpected_response("Failed to confirm bank transaction")


@bank_bp.get("/analytics")
@require_actor
def analytics():
    """
    Cash flow, breakdowns and balance history.

    Query params: restaurant_id (required), days or start/end
    """
    try:
        restaurant_id = restaurant_id_arg()
        days = request.args.get("days")
        if days is not None:
            try:
                days = int(days)
            except ValueError:
                raise ValidationError("days must be a positive integer")

        result = balance_service.get_analytics(
            restaurant_id,
            days=days,
            start=parse_date_param(request.args.get("start"), "start"),
            end=parse_date_param(request.args.get("end"), "end"),
        )
        return jsonify(result), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to build bank analytics")


@bank_bp.get("/balances")
@require_actor
def balances():
    try:
        return jsonify(balance_service.current_balances(restaurant_id_arg())), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return unexpected_response("Failed to compute balances")
