# Overview: Pytest coverage for expense approval and payments.

"""
Expense Payment Tests

Verifies:
1. Payments are accepted only after approval and never beyond the amount
2. Each payment writes exactly one Confirmed withdrawal
3. payment_status / fully_paid_at follow total_paid_amount
4. A failure while paying leaves neither payment nor withdrawal behind
"""

import pytest
from backoffice.models import BankTransaction, ExpensePayment, Expense
from backoffice.services import expense_service, bank_service
from backoffice.validation import (
    ValidationError,
    NotFoundError,
    AlreadyProcessedError,
    AmountExceedsRemainingError,
    NotApprovedError,
    AlreadyPaidError,
)


@pytest.fixture
def approved_expense(db_session, expense):
    return expense_service.approve_expense(expense.id, user_id="m1", user_name="Mariama")


class TestApproval:

    def test_approve(self, db_session, approved_expense):
        assert approved_expense.status == expense_service.EXPENSE_STATUS_APPROVED
        assert approved_expense.approved_by == "m1"
        assert approved_expense.approved_at is not None
        assert approved_expense.payment_status == expense_service.PAYMENT_STATUS_UNPAID

    def test_approval_is_terminal(self, db_session, approved_expense):
        with pytest.raises(AlreadyProcessedError):
            expense_service.reject_expense(approved_expense.id)

    def test_reject(self, db_session, expense):
        rejected = expense_service.reject_expense(expense.id)
        assert rejected.status == expense_service.EXPENSE_STATUS_REJECTED

    def test_unknown_expense(self, db_session):
        with pytest.raises(NotFoundError):
            expense_service.approve_expense(99999)


class TestRecordExpensePayment:

    def test_full_payment_in_one_go(self, db_session, approved_expense):
        payment, paid = expense_service.record_expense_payment(approved_expense.id, 50_000, "Cash")

        assert paid.payment_status == expense_service.PAYMENT_STATUS_PAID
        assert paid.total_paid_amount == 50_000
        assert paid.fully_paid_at is not None

        withdrawals = db_session.query(BankTransaction).filter_by(type="Withdrawal").all()
        assert len(withdrawals) == 1
        txn = withdrawals[0]
        assert txn.amount == 50_000
        assert txn.status == bank_service.STATUS_CONFIRMED
        assert txn.confirmed_at is not None
        assert txn.reason == bank_service.REASON_EXPENSE_PAYMENT
        assert txn.description == "Payment for expense: Utilities - Electricity March"
        assert payment.bank_transaction_id == txn.id

    def test_instalments(self, db_session, approved_expense):
        _, partly = expense_service.record_expense_payment(approved_expense.id, 20_000, "OrangeMoney")
        assert partly.payment_status == expense_service.PAYMENT_STATUS_PARTIALLY_PAID
        assert partly.fully_paid_at is None
        assert partly.remaining_amount == 30_000

        _, paid = expense_service.record_expense_payment(approved_expense.id, 30_000, "Cash")
        assert paid.payment_status == expense_service.PAYMENT_STATUS_PAID
        assert db_session.query(ExpensePayment).count() == 2
        assert db_session.query(BankTransaction).count() == 2

    def test_pending_expense_cannot_be_paid(self, db_session, expense):
        with pytest.raises(NotApprovedError):
            expense_service.record_expense_payment(expense.id, 1_000, "Cash")
        assert db_session.query(BankTransaction).count() == 0

    def test_rejected_expense_cannot_be_paid(self, db_session, expense):
        expense_service.reject_expense(expense.id)
        with pytest.raises(NotApprovedError):
            expense_service.record_expense_payment(expense.id, 1_000, "Cash")

    def test_over_remaining(self, db_session, approved_expense):
        expense_service.record_expense_payment(approved_expense.id, 40_000, "Cash")
        with pytest.raises(AmountExceedsRemainingError) as exc:
            expense_service.record_expense_payment(approved_expense.id, 10_001, "Cash")
        assert exc.value.details["remaining_amount"] == 10_000

    def test_paid_expense_rejects_further_payments(self, db_session, approved_expense):
        expense_service.record_expense_payment(approved_expense.id, 50_000, "Cash")
        with pytest.raises(AlreadyPaidError):
            expense_service.record_expense_payment(approved_expense.id, 1, "Cash")

    @pytest.mark.parametrize("amount", [0, -5, "1.5"])
    def test_invalid_amount(self, db_session, approved_expense, amount):
        with pytest.raises(ValidationError):
            expense_service.record_expense_payment(approved_expense.id, amount, "Cash")

    def test_failure_leaves_nothing_behind(self, db_session, approved_expense, monkeypatch):
        expense_id = approved_expense.id

        def boom(amount_gnf, total_paid_amount):
            raise RuntimeError("simulated crash after withdrawal")

        monkeypatch.setattr(expense_service, "derive_payment_status", boom)

        with pytest.raises(RuntimeError):
            expense_service.record_expense_payment(expense_id, 10_000, "Cash")

        assert db_session.query(BankTransaction).count() == 0
        assert db_session.query(ExpensePayment).count() == 0
        assert db_session.get(Expense, expense_id).total_paid_amount == 0


class TestPaymentSummary:

    def test_summary(self, db_session, approved_expense):
        expense_service.record_expense_payment(approved_expense.id, 15_000, "Cash")
        expense_service.record_expense_payment(approved_expense.id, 5_000, "Card")

        summary = expense_service.payment_summary(approved_expense.id)

        assert summary["total_amount"] == 50_000
        assert summary["total_paid"] == 20_000
        assert summary["remaining_amount"] == 30_000
        assert summary["payment_count"] == 2
        assert summary["payment_status"] == expense_service.PAYMENT_STATUS_PARTIALLY_PAID
        assert summary["fully_paid_at"] is None
