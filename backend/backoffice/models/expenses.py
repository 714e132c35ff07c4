from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Expense(db.Model):
    """
    Approval-gated liability.

    `status` is the approval state (Pending, Approved, Rejected);
    `payment_status` (Unpaid, PartiallyPaid, Paid) is derived from
    total_paid_amount against amount_gnf. Payments are accepted only once
    approved and never beyond amount_gnf.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_restaurant_status", "restaurant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    category_name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    amount_gnf = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)
    approved_by = db.Column(db.String(64), nullable=True)
    approved_by_name = db.Column(db.String(255), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    total_paid_amount = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="Unpaid")
    fully_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    restaurant = db.relationship("Restaurant", backref=db.backref("expenses", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_amount(self) -> int:
        return self.amount_gnf - self.total_paid_amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "date": to_utc_z(self.date),
            "category_name": self.category_name,
            "description": self.description,
            "amount_gnf": self.amount_gnf,
            "status": self.status,
            "approved_by": self.approved_by,
            "approved_by_name": self.approved_by_name,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "total_paid_amount": self.total_paid_amount,
            "remaining_amount": self.remaining_amount,
            "payment_status": self.payment_status,
            "fully_paid_at": to_utc_z(self.fully_paid_at) if self.fully_paid_at else None,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class ExpensePayment(db.Model):
    """One payment against an expense, 1:1 with its Confirmed withdrawal."""
    __tablename__ = "expense_payments"
    __table_args__ = (
        db.UniqueConstraint("bank_transaction_id", name="uq_expense_payments_bank_tx"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    bank_transaction_id = db.Column(db.Integer, db.ForeignKey("bank_transactions.id"), nullable=False)

    notes = db.Column(db.Text, nullable=True)
    paid_by = db.Column(db.String(64), nullable=True)
    paid_by_name = db.Column(db.String(255), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    expense = db.relationship(
        "Expense",
        backref=db.backref("payments", lazy=True, order_by="ExpensePayment.paid_at.desc()"),
    )
    bank_transaction = db.relationship(
        "BankTransaction",
        backref=db.backref("expense_payment", uselist=False),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "expense_id": self.expense_id,
            "amount": self.amount,
            "payment_method": self.payment_method,
            "bank_transaction_id": self.bank_transaction_id,
            "notes": self.notes,
            "paid_by": self.paid_by,
            "paid_by_name": self.paid_by_name,
            "paid_at": to_utc_z(self.paid_at),
        }
