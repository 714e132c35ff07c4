# Overview: Service-layer operations for the bank transaction ledger.

"""
Bank Transaction Ledger

WHY: Every money movement of a restaurant (cash, Orange Money, card) is
journaled here. Sale approvals and debt collections create Pending deposits
that an owner confirms against the real deposit slip; expense payments
create withdrawals that are Confirmed immediately because the liability was
already approved.

DESIGN PRINCIPLES:
- amount is always positive; direction lives in `type`
- Pending -> Confirmed is the only transition; nothing is ever deleted
- corrections are new offsetting transactions, never edits of history
- a sale or a debt payment is banked at most once (1:1 link)
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import BankTransaction, Sale, DebtPayment
from ..validation import (
    ValidationError,
    ConflictError,
    NotFoundError,
    InvalidStateError,
    require_positive_amount,
    require_choice,
)
from backoffice.time_utils import utcnow, normalize_datetime
from .concurrency import lock_for_update, run_atomically


# =============================================================================
# TRANSACTION TYPES / METHODS / REASONS (CONSTANTS)
# =============================================================================

TYPE_DEPOSIT = "Deposit"
TYPE_WITHDRAWAL = "Withdrawal"

VALID_TYPES = [TYPE_DEPOSIT, TYPE_WITHDRAWAL]

METHOD_CASH = "Cash"
METHOD_ORANGE_MONEY = "OrangeMoney"
METHOD_CARD = "Card"

VALID_METHODS = [METHOD_CASH, METHOD_ORANGE_MONEY, METHOD_CARD]

REASON_SALES_DEPOSIT = "SalesDeposit"
REASON_DEBT_COLLECTION = "DebtCollection"
REASON_EXPENSE_PAYMENT = "ExpensePayment"
REASON_OWNER_WITHDRAWAL = "OwnerWithdrawal"
REASON_CAPITAL_INJECTION = "CapitalInjection"
REASON_OTHER = "Other"

VALID_REASONS = [
    REASON_SALES_DEPOSIT,
    REASON_DEBT_COLLECTION,
    REASON_EXPENSE_PAYMENT,
    REASON_OWNER_WITHDRAWAL,
    REASON_CAPITAL_INJECTION,
    REASON_OTHER,
]

DEPOSIT_REASONS = [
    REASON_SALES_DEPOSIT,
    REASON_DEBT_COLLECTION,
    REASON_CAPITAL_INJECTION,
    REASON_OTHER,
]

WITHDRAWAL_REASONS = [
    REASON_EXPENSE_PAYMENT,
    REASON_OWNER_WITHDRAWAL,
    REASON_OTHER,
]


# =============================================================================
# TRANSACTION STATUS (CONSTANTS)
# =============================================================================

STATUS_PENDING = "Pending"
STATUS_CONFIRMED = "Confirmed"

VALID_STATUSES = [STATUS_PENDING, STATUS_CONFIRMED]


# =============================================================================
# RECORDING
# =============================================================================

def _validate_movement(type: str, method: str, reason: str, amount) -> int:
    require_choice(type, VALID_TYPES, "type")
    require_choice(method, VALID_METHODS, "method")
    require_choice(reason, VALID_REASONS, "reason")

    allowed = DEPOSIT_REASONS if type == TYPE_DEPOSIT else WITHDRAWAL_REASONS
    if reason not in allowed:
        raise ValidationError(f"Reason {reason} is not valid for a {type}", allowed=allowed)

    return require_positive_amount(amount)


def _check_links(restaurant_id: int, sale_id: int | None, debt_payment_id: int | None) -> None:
    """Validate the optional 1:1 link before anything is written."""
    if sale_id is not None and debt_payment_id is not None:
        raise ValidationError("A transaction may be linked to a sale or a debt payment, not both")

    if sale_id is not None:
        sale = db.session.query(Sale).filter_by(id=sale_id).first()
        if not sale:
            raise NotFoundError(f"Sale {sale_id} not found")
        if sale.restaurant_id != restaurant_id:
            raise ValidationError("Sale does not belong to this restaurant")

        existing = db.session.query(BankTransaction).filter_by(sale_id=sale_id).first()
        if existing:
            raise ConflictError(
                f"Sale {sale_id} is already linked to transaction {existing.id}",
                transaction_id=existing.id,
            )

    if debt_payment_id is not None:
        payment = db.session.query(DebtPayment).filter_by(id=debt_payment_id).first()
        if not payment:
            raise NotFoundError(f"Debt payment {debt_payment_id} not found")
        if payment.restaurant_id != restaurant_id:
            raise ValidationError("Debt payment does not belong to this restaurant")

        existing = db.session.query(BankTransaction).filter_by(debt_payment_id=debt_payment_id).first()
        if existing:
            raise ConflictError(
                f"Debt payment {debt_payment_id} is already linked to transaction {existing.id}",
                transaction_id=existing.id,
            )


def add_transaction(
    *,
    restaurant_id: int,
    type: str,
    method: str,
    reason: str,
    amount: int,
    date: datetime | str | None = None,
    sale_id: int | None = None,
    debt_payment_id: int | None = None,
    description: str | None = None,
    bank_ref: str | None = None,
    comments: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> BankTransaction:
    """
    Validate and stage a Pending transaction in the current DB transaction.

    Does not commit: sale approval and debt payment call this inside their
    own atomic operation so the deposit lands with the event that caused it.
    """
    amount = _validate_movement(type, method, reason, amount)
    _check_links(restaurant_id, sale_id, debt_payment_id)

    try:
        txn_date = normalize_datetime(date) or utcnow()
    except ValueError:
        raise ValidationError("date must be an ISO-8601 date or datetime")

    txn = BankTransaction(
        restaurant_id=restaurant_id,
        date=txn_date,
        amount=amount,
        type=type,
        method=method,
        reason=reason,
        status=STATUS_PENDING,
        description=(description or "").strip() or None,
        bank_ref=(bank_ref or "").strip() or None,
        comments=(comments or "").strip() or None,
        sale_id=sale_id,
        debt_payment_id=debt_payment_id,
        created_by=user_id,
        created_by_name=user_name,
    )
    db.session.add(txn)
    db.session.flush()  # Get transaction ID; unique links are enforced here too
    return txn


def record_transaction(restaurant_id: int, **fields) -> BankTransaction:
    """
    Record a Pending bank transaction.

    Args:
        restaurant_id: Owning restaurant
        **fields: type, method, reason, amount and optional date, sale_id,
            debt_payment_id, description, bank_ref, comments, user_id, user_name

    Raises:
        ValidationError: amount <= 0 or an enum value out of range
        ConflictError: the sale / debt payment is already banked
        NotFoundError: the linked sale / debt payment does not exist
    """
    def _op():
        return add_transaction(restaurant_id=restaurant_id, **fields)

    return run_atomically(_op)


def generate_from_expense_payment(
    *,
    restaurant_id: int,
    amount: int,
    method: str,
    description: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> BankTransaction:
    """
    Stage the Confirmed withdrawal that pays an approved expense.

    The only path that skips the Pending state: the liability was already
    authorized when the expense was approved. Does not commit.
    """
    amount = _validate_movement(TYPE_WITHDRAWAL, method, REASON_EXPENSE_PAYMENT, amount)
    now = utcnow()

    txn = BankTransaction(
        restaurant_id=restaurant_id,
        date=now,
        amount=amount,
        type=TYPE_WITHDRAWAL,
        method=method,
        reason=REASON_EXPENSE_PAYMENT,
        status=STATUS_CONFIRMED,
        confirmed_at=now,
        confirmed_by=user_id,
        description=description,
        created_by=user_id,
        created_by_name=user_name,
    )
    db.session.add(txn)
    db.session.flush()
    return txn


# =============================================================================
# CONFIRMATION
# =============================================================================

def confirm_transaction(
    transaction_id: int,
    *,
    user_id: str | None = None,
    bank_ref: str | None = None,
) -> BankTransaction:
    """
    Move a Pending transaction to Confirmed and stamp confirmed_at.

    Raises:
        NotFoundError: unknown transaction
        InvalidStateError: already Confirmed (terminal)
    """
    def _op():
        txn = lock_for_update(
            db.session.query(BankTransaction).filter_by(id=transaction_id)
        ).first()
        if not txn:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        if txn.status != STATUS_PENDING:
            raise InvalidStateError(f"Transaction {transaction_id} is already {txn.status}")

        txn.status = STATUS_CONFIRMED
        txn.confirmed_at = utcnow()
        txn.confirmed_by = user_id
        if bank_ref:
            txn.bank_ref = bank_ref.strip()

        return txn

    return run_atomically(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_transaction(transaction_id: int) -> BankTransaction:
    txn = db.session.get(BankTransaction, transaction_id)
    if not txn:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return txn


def list_transactions(
    restaurant_id: int,
    *,
    type: str | None = None,
    method: str | None = None,
    status: str | None = None,
    reason: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[BankTransaction]:
    """List a restaurant's transactions, newest first. Unknown filter values are ignored."""
    query = db.session.query(BankTransaction).filter(BankTransaction.restaurant_id == restaurant_id)

    if type in VALID_TYPES:
        query = query.filter(BankTransaction.type == type)
    if method in VALID_METHODS:
        query = query.filter(BankTransaction.method == method)
    if status in VALID_STATUSES:
        query = query.filter(BankTransaction.status == status)
    if reason in VALID_REASONS:
        query = query.filter(BankTransaction.reason == reason)
    if start is not None:
        query = query.filter(BankTransaction.date >= start)
    if end is not None:
        query = query.filter(BankTransaction.date <= end)

    return query.order_by(BankTransaction.date.desc(), BankTransaction.id.desc()).all()


def summarize_transactions(transactions) -> dict:
    """Totals for a list of transactions, overall and per method."""
    def _total(type_: str, method: str | None = None) -> int:
        return sum(
            t.amount for t in transactions
            if t.type == type_ and (method is None or t.method == method)
        )

    return {
        "total_deposits": _total(TYPE_DEPOSIT),
        "total_withdrawals": _total(TYPE_WITHDRAWAL),
        "pending_count": sum(1 for t in transactions if t.status == STATUS_PENDING),
        "confirmed_count": sum(1 for t in transactions if t.status == STATUS_CONFIRMED),
        "by_method": {
            method: {
                "deposits": _total(TYPE_DEPOSIT, method),
                "withdrawals": _total(TYPE_WITHDRAWAL, method),
            }
            for method in VALID_METHODS
        },
    }
