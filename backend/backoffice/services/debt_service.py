# backend/backoffice/services/debt_service.py
"""
Customer debt ledger.

WHY: Customers buy on credit and settle in instalments. Each payment must
move paid/remaining amounts and the derived status together, and must land
in the bank ledger as a Pending DebtCollection deposit, or not at all.

STATUS DERIVATION (never caller-supplied):
- FullyPaid:     remaining == 0
- Overdue:       paid > 0, remaining > 0 and due_date < now
- PartiallyPaid: paid > 0 and not overdue
- Outstanding:   paid == 0 (even past the due date)
- WrittenOff:    set only by write_off_debt; sticky
"""
from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from backoffice.extensions import db
from backoffice.models import Customer, Debt, DebtPayment, Sale, BankTransaction
from backoffice.validation import (
    ValidationError,
    NotFoundError,
    InvalidStateError,
    AmountExceedsRemainingError,
    CreditLimitExceededError,
    HasPaymentsError,
    InvalidPrincipalError,
    require_positive_amount,
    require_choice,
)
from backoffice.time_utils import utcnow, normalize_datetime
from backoffice.services.concurrency import lock_for_update, run_atomically
from backoffice.services import bank_service


# Debt status constants
DEBT_STATUS_OUTSTANDING = "Outstanding"
DEBT_STATUS_PARTIALLY_PAID = "PartiallyPaid"
DEBT_STATUS_FULLY_PAID = "FullyPaid"
DEBT_STATUS_OVERDUE = "Overdue"
DEBT_STATUS_WRITTEN_OFF = "WrittenOff"

# Statuses that still count against a customer's credit limit
OPEN_DEBT_STATUSES = [
    DEBT_STATUS_OUTSTANDING,
    DEBT_STATUS_PARTIALLY_PAID,
    DEBT_STATUS_OVERDUE,
]


def derive_debt_status(
    principal_amount: int,
    paid_amount: int,
    due_date: datetime | None,
    now: datetime | None = None,
    current_status: str | None = None,
) -> str:
    """Pure status rule; see module docstring."""
    if current_status == DEBT_STATUS_WRITTEN_OFF:
        return DEBT_STATUS_WRITTEN_OFF

    remaining = principal_amount - paid_amount
    if remaining == 0:
        return DEBT_STATUS_FULLY_PAID

    if paid_amount > 0:
        now = now or utcnow()
        if due_date is not None and due_date < now:
            return DEBT_STATUS_OVERDUE
        return DEBT_STATUS_PARTIALLY_PAID

    return DEBT_STATUS_OUTSTANDING


def _get_debt_locked(debt_id: int) -> Debt:
    debt = lock_for_update(db.session.query(Debt).filter_by(id=debt_id)).first()
    if not debt:
        raise NotFoundError(f"Debt {debt_id} not found")
    return debt


def _open_balance(customer_id: int) -> int:
    total = db.session.query(func.coalesce(func.sum(Debt.remaining_amount), 0)).filter(
        Debt.customer_id == customer_id,
        Debt.status.in_(OPEN_DEBT_STATUSES),
    ).scalar()
    return int(total or 0)


# =============================================================================
# DEBT CREATION / EDITS
# =============================================================================

def create_debt(
    restaurant_id: int,
    customer_id: int,
    principal_amount: int,
    *,
    due_date: datetime | str | None = None,
    sale_id: int | None = None,
    description: str | None = None,
    notes: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> Debt:
    """
    Create an Outstanding debt for a customer.

    Raises:
        ValidationError: principal <= 0, customer or sale from another restaurant
        NotFoundError: unknown customer or sale
        CreditLimitExceededError: open balance + principal > customer.credit_limit
    """
    principal_amount = require_positive_amount(principal_amount, "principal_amount")
    try:
        due_dt = normalize_datetime(due_date)
    except ValueError:
        raise ValidationError("due_date must be an ISO-8601 date or datetime")

    def _op():
        # Lock the customer so two concurrent debts cannot both pass the limit check
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        if customer.restaurant_id != restaurant_id:
            raise ValidationError("Customer does not belong to this restaurant")

        if customer.credit_limit is not None:
            current_outstanding = _open_balance(customer_id)
            new_total = current_outstanding + principal_amount
            if new_total > customer.credit_limit:
                raise CreditLimitExceededError(
                    f"Credit limit exceeded. Customer limit: {customer.credit_limit} GNF, "
                    f"current outstanding: {current_outstanding} GNF, "
                    f"new total would be: {new_total} GNF",
                    credit_limit=customer.credit_limit,
                    current_outstanding=current_outstanding,
                )

        if sale_id is not None:
            sale = db.session.query(Sale).filter_by(id=sale_id).first()
            if not sale:
                raise NotFoundError(f"Sale {sale_id} not found")
            if sale.restaurant_id != restaurant_id:
                raise ValidationError("Sale does not belong to this restaurant")

        debt = Debt(
            restaurant_id=restaurant_id,
            customer_id=customer_id,
            sale_id=sale_id,
            principal_amount=principal_amount,
            paid_amount=0,
            remaining_amount=principal_amount,
            due_date=due_dt,
            status=DEBT_STATUS_OUTSTANDING,
            description=(description or "").strip() or None,
            notes=(notes or "").strip() or None,
            created_by=user_id,
            created_by_name=user_name,
        )
        db.session.add(debt)
        db.session.flush()
        return debt

    return run_atomically(_op)


def update_principal(debt_id: int, new_principal: int, *, now: datetime | None = None) -> Debt:
    """
    Change a debt's principal.

    The new principal may not drop below what was already paid. Status is
    re-derived from the new numbers so that, for example, raising the
    principal of a FullyPaid debt reopens it.
    """
    new_principal = require_positive_amount(new_principal, "principal_amount")

    def _op():
        debt = _get_debt_locked(debt_id)

        if new_principal < debt.paid_amount:
            raise InvalidPrincipalError(
                f"Cannot set principal amount ({new_principal} GNF) lower than "
                f"already paid amount ({debt.paid_amount} GNF)"
            )

        debt.principal_amount = new_principal
        debt.remaining_amount = new_principal - debt.paid_amount
        debt.status = derive_debt_status(
            debt.principal_amount, debt.paid_amount, debt.due_date, now, debt.status
        )
        return debt

    return run_atomically(_op)


def delete_debt(debt_id: int) -> None:
    """Delete a debt that never received a payment."""
    def _op():
        debt = _get_debt_locked(debt_id)

        payment_count = db.session.query(DebtPayment).filter_by(debt_id=debt_id).count()
        if payment_count > 0:
            raise HasPaymentsError(
                f"Cannot delete debt with {payment_count} payment(s). "
                f"Delete the payments first or write the debt off.",
                payment_count=payment_count,
            )

        db.session.delete(debt)

    run_atomically(_op)


def write_off_debt(debt_id: int, *, reason: str | None = None) -> Debt:
    def _op():
        debt = _get_debt_locked(debt_id)

        if debt.status == DEBT_STATUS_FULLY_PAID:
            raise InvalidStateError("Cannot write off a fully paid debt")
        if debt.status == DEBT_STATUS_WRITTEN_OFF:
            raise InvalidStateError("Debt is already written off")

        debt.status = DEBT_STATUS_WRITTEN_OFF
        if reason and reason.strip():
            prefix = f"{debt.notes}\n\n" if debt.notes else ""
            debt.notes = f"{prefix}Write-off reason: {reason.strip()}"
        return debt

    debt = run_atomically(_op)
    current_app.logger.info("Debt %s written off with %s GNF remaining", debt.id, debt.remaining_amount)
    return debt


# =============================================================================
# PAYMENTS
# =============================================================================

def _apply_payment_to_debt(debt: Debt, amount: int, now: datetime | None = None) -> Debt:
    """Move paid/remaining by `amount` (may be negative on payment removal) and re-derive status."""
    debt.paid_amount = debt.paid_amount + amount
    debt.remaining_amount = debt.principal_amount - debt.paid_amount
    debt.status = derive_debt_status(
        debt.principal_amount, debt.paid_amount, debt.due_date, now, debt.status
    )
    db.session.flush()
    return debt


def record_payment(
    debt_id: int,
    amount: int,
    payment_method: str,
    *,
    payment_date: datetime | str | None = None,
    receipt_number: str | None = None,
    notes: str | None = None,
    record_deposit: bool = True,
    now: datetime | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> tuple[DebtPayment, Debt, BankTransaction | None]:
    """
    Record a payment against a debt (atomic).

    Writes the DebtPayment, moves the debt's paid/remaining amounts and
    status, and (by default) stages a Pending DebtCollection deposit linked
    to the payment. Either all of it commits or none of it does.

    Raises:
        ValidationError: amount <= 0 or unknown payment method
        NotFoundError: unknown debt
        AmountExceedsRemainingError: amount > debt.remaining_amount
        InvalidStateError: debt is written off
    """
    amount = require_positive_amount(amount)
    require_choice(payment_method, bank_service.VALID_METHODS, "payment_method")
    try:
        paid_on = normalize_datetime(payment_date) or utcnow()
    except ValueError:
        raise ValidationError("payment_date must be an ISO-8601 date or datetime")

    def _op():
        # Re-read the debt inside the transaction; never trust a stale remaining amount
        debt = _get_debt_locked(debt_id)

        if amount > debt.remaining_amount:
            raise AmountExceedsRemainingError(
                f"Payment amount ({amount} GNF) exceeds remaining debt ({debt.remaining_amount} GNF)",
                remaining_amount=debt.remaining_amount,
            )

        if debt.status == DEBT_STATUS_WRITTEN_OFF:
            raise InvalidStateError("Cannot record payment for a written-off debt")

        payment = DebtPayment(
            restaurant_id=debt.restaurant_id,
            debt_id=debt.id,
            customer_id=debt.customer_id,
            amount=amount,
            payment_method=payment_method,
            payment_date=paid_on,
            receipt_number=(receipt_number or "").strip() or None,
            notes=(notes or "").strip() or None,
            received_by=user_id,
            received_by_name=user_name,
        )
        db.session.add(payment)
        db.session.flush()

        _apply_payment_to_debt(debt, amount, now)

        txn = None
        if record_deposit:
            txn = bank_service.add_transaction(
                restaurant_id=debt.restaurant_id,
                type=bank_service.TYPE_DEPOSIT,
                method=payment_method,
                reason=bank_service.REASON_DEBT_COLLECTION,
                amount=amount,
                date=paid_on,
                debt_payment_id=payment.id,
                description=f"Debt collection for debt {debt.id}",
                user_id=user_id,
                user_name=user_name,
            )

        return payment, debt, txn

    return run_atomically(_op)


def delete_payment(debt_id: int, payment_id: int, *, now: datetime | None = None) -> Debt:
    """
    Remove a mistaken payment and roll the debt back (atomic).

    A payment whose deposit is already Confirmed cannot be removed: the bank
    ledger is never rewritten. A Pending deposit is detached from the payment
    and left for the owner to offset.
    """
    def _op():
        debt = _get_debt_locked(debt_id)

        payment = db.session.query(DebtPayment).filter_by(id=payment_id).first()
        if not payment:
            raise NotFoundError(f"Payment {payment_id} not found")
        if payment.debt_id != debt.id:
            raise ValidationError("Payment does not belong to this debt")

        txn = db.session.query(BankTransaction).filter_by(debt_payment_id=payment.id).first()
        if txn is not None:
            if txn.status == bank_service.STATUS_CONFIRMED:
                raise InvalidStateError(
                    "Payment is already banked in a confirmed transaction and cannot be removed",
                    transaction_id=txn.id,
                )
            txn.debt_payment_id = None
            txn.comments = f"Detached from deleted debt payment {payment.id}"

        amount = payment.amount
        db.session.delete(payment)
        db.session.flush()

        _apply_payment_to_debt(debt, -amount, now)
        return debt

    return run_atomically(_op)


# =============================================================================
# MAINTENANCE / QUERIES
# =============================================================================

def refresh_statuses(restaurant_id: int, *, now: datetime | None = None) -> int:
    """
    Re-derive status for every live debt of a restaurant.

    Time passing is the one input that changes without a write; this turns
    PartiallyPaid debts past their due date into Overdue. Returns the number
    of debts whose status changed.
    """
    now = now or utcnow()

    def _op():
        debts = lock_for_update(
            db.session.query(Debt).filter(
                Debt.restaurant_id == restaurant_id,
                Debt.status != DEBT_STATUS_WRITTEN_OFF,
            )
        ).all()

        changed = 0
        for debt in debts:
            status = derive_debt_status(debt.principal_amount, debt.paid_amount, debt.due_date, now, debt.status)
            if status != debt.status:
                debt.status = status
                changed += 1
        return changed

    return run_atomically(_op)


def customer_exposure(customer_id: int) -> dict:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")

    outstanding = _open_balance(customer_id)
    available = None
    if customer.credit_limit is not None:
        available = max(customer.credit_limit - outstanding, 0)

    return {
        "customer_id": customer.id,
        "credit_limit": customer.credit_limit,
        "outstanding": outstanding,
        "available_credit": available,
    }


def get_debt(debt_id: int) -> Debt:
    debt = db.session.get(Debt, debt_id)
    if not debt:
        raise NotFoundError(f"Debt {debt_id} not found")
    return debt


def list_debts(
    restaurant_id: int,
    *,
    customer_id: int | None = None,
    status: str | None = None,
    overdue: bool = False,
) -> list[Debt]:
    query = db.session.query(Debt).filter(Debt.restaurant_id == restaurant_id)

    if customer_id is not None:
        query = query.filter(Debt.customer_id == customer_id)
    if status:
        query = query.filter(Debt.status == status)
    if overdue:
        query = query.filter(Debt.status == DEBT_STATUS_OVERDUE, Debt.due_date < utcnow())

    return query.order_by(Debt.status.asc(), Debt.due_date.asc(), Debt.created_at.desc()).all()


def list_payments(debt_id: int) -> list[DebtPayment]:
    get_debt(debt_id)
    return (
        db.session.query(DebtPayment)
        .filter_by(debt_id=debt_id)
        .order_by(DebtPayment.payment_date.desc(), DebtPayment.id.desc())
        .all()
    )
