# backend/backoffice/services/expense_service.py
"""
Expense liability tracker.

WHY: An expense is approved first and paid later, often in several
instalments. Each instalment is a real withdrawal, so paying an expense
writes the bank transaction, the payment row and the expense totals in one
transaction.

LIFECYCLE:
- approval: Pending -> Approved | Rejected (terminal)
- payment:  Unpaid -> PartiallyPaid -> Paid (derived from total_paid_amount)
"""
from __future__ import annotations

from flask import current_app

from backoffice.extensions import db
from backoffice.models import Expense, ExpensePayment
from backoffice.validation import (
    NotFoundError,
    AlreadyProcessedError,
    AmountExceedsRemainingError,
    NotApprovedError,
    AlreadyPaidError,
    require_positive_amount,
    require_choice,
)
from backoffice.time_utils import utcnow, to_utc_z
from backoffice.services.concurrency import lock_for_update, run_atomically
from backoffice.services import bank_service


# Approval status constants
EXPENSE_STATUS_PENDING = "Pending"
EXPENSE_STATUS_APPROVED = "Approved"
EXPENSE_STATUS_REJECTED = "Rejected"

# Payment status constants
PAYMENT_STATUS_UNPAID = "Unpaid"
PAYMENT_STATUS_PARTIALLY_PAID = "PartiallyPaid"
PAYMENT_STATUS_PAID = "Paid"


def derive_payment_status(amount_gnf: int, total_paid_amount: int) -> str:
    if total_paid_amount >= amount_gnf:
        return PAYMENT_STATUS_PAID
    if total_paid_amount > 0:
        return PAYMENT_STATUS_PARTIALLY_PAID
    return PAYMENT_STATUS_UNPAID


def _get_expense_locked(expense_id: int) -> Expense:
    expense = lock_for_update(db.session.query(Expense).filter_by(id=expense_id)).first()
    if not expense:
        raise NotFoundError(f"Expense {expense_id} not found")
    return expense


def _decide(expense_id: int, status: str, user_id: str | None, user_name: str | None) -> Expense:
    def _op():
        expense = _get_expense_locked(expense_id)
        if expense.status != EXPENSE_STATUS_PENDING:
            raise AlreadyProcessedError(f"Expense already {expense.status.lower()}")

        expense.status = status
        expense.approved_by = user_id
        expense.approved_by_name = user_name
        expense.approved_at = utcnow()
        return expense

    return run_atomically(_op)


def approve_expense(expense_id: int, *, user_id: str | None = None, user_name: str | None = None) -> Expense:
    return _decide(expense_id, EXPENSE_STATUS_APPROVED, user_id, user_name)


def reject_expense(expense_id: int, *, user_id: str | None = None, user_name: str | None = None) -> Expense:
    return _decide(expense_id, EXPENSE_STATUS_REJECTED, user_id, user_name)


def record_expense_payment(
    expense_id: int,
    amount: int,
    payment_method: str,
    *,
    notes: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> tuple[ExpensePayment, Expense]:
    """
    Pay (part of) an approved expense.

    All-or-nothing:
    1. Confirmed Withdrawal bank transaction (reason ExpensePayment)
    2. ExpensePayment linked to that transaction
    3. Expense total_paid_amount / payment_status / fully_paid_at

    Raises:
        ValidationError: amount <= 0 or unknown payment method
        NotFoundError: unknown expense
        NotApprovedError: expense approval status is not Approved
        AlreadyPaidError: expense is already Paid
        AmountExceedsRemainingError: amount > amount_gnf - total_paid_amount
    """
    amount = require_positive_amount(amount)
    require_choice(payment_method, bank_service.VALID_METHODS, "payment_method")

    def _op():
        expense = _get_expense_locked(expense_id)

        if expense.status != EXPENSE_STATUS_APPROVED:
            raise NotApprovedError("Expense must be approved before recording payments")
        if expense.payment_status == PAYMENT_STATUS_PAID:
            raise AlreadyPaidError("Expense is already fully paid")

        remaining = expense.amount_gnf - expense.total_paid_amount
        if amount > remaining:
            raise AmountExceedsRemainingError(
                f"Payment amount ({amount} GNF) exceeds remaining amount ({remaining} GNF)",
                remaining_amount=remaining,
            )

        description = f"Payment for expense: {expense.category_name}"
        if expense.description:
            description = f"{description} - {expense.description}"

        txn = bank_service.generate_from_expense_payment(
            restaurant_id=expense.restaurant_id,
            amount=amount,
            method=payment_method,
            description=description,
            user_id=user_id,
            user_name=user_name,
        )

        payment = ExpensePayment(
            expense_id=expense.id,
            amount=amount,
            payment_method=payment_method,
            bank_transaction_id=txn.id,
            notes=(notes or "").strip() or None,
            paid_by=user_id,
            paid_by_name=user_name,
            paid_at=utcnow(),
        )
        db.session.add(payment)
        db.session.flush()

        expense.total_paid_amount = expense.total_paid_amount + amount
        expense.payment_status = derive_payment_status(expense.amount_gnf, expense.total_paid_amount)
        expense.fully_paid_at = utcnow() if expense.payment_status == PAYMENT_STATUS_PAID else None

        return payment, expense

    payment, expense = run_atomically(_op)
    current_app.logger.info(
        "Expense %s paid %s GNF via %s (status %s)",
        expense.id, payment.amount, payment.payment_method, expense.payment_status,
    )
    return payment, expense


def get_expense(expense_id: int) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if not expense:
        raise NotFoundError(f"Expense {expense_id} not found")
    return expense


def list_expense_payments(expense_id: int) -> list[ExpensePayment]:
    get_expense(expense_id)
    return (
        db.session.query(ExpensePayment)
        .filter_by(expense_id=expense_id)
        .order_by(ExpensePayment.paid_at.desc(), ExpensePayment.id.desc())
        .all()
    )


def payment_summary(expense_id: int) -> dict:
    expense = get_expense(expense_id)
    payments = list_expense_payments(expense_id)
    return {
        "expense_id": expense.id,
        "total_amount": expense.amount_gnf,
        "total_paid": expense.total_paid_amount,
        "remaining_amount": expense.remaining_amount,
        "payment_count": len(payments),
        "payment_status": expense.payment_status,
        "fully_paid_at": to_utc_z(expense.fully_paid_at) if expense.fully_paid_at else None,
    }
