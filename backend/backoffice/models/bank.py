from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class BankTransaction(db.Model):
    """
    One money movement (deposit or withdrawal) for a payment method.

    INVARIANTS:
    - amount > 0; direction is carried by `type`, never by sign
    - at most one transaction per sale_id and per debt_payment_id (1:1)
    - created Pending, moved to Confirmed exactly once, never deleted

    Expense payments point at their transaction from the other side
    (ExpensePayment.bank_transaction_id), exposed here as `expense_payment`.
    """
    __tablename__ = "bank_transactions"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_bank_transactions_sale"),
        db.UniqueConstraint("debt_payment_id", name="uq_bank_transactions_debt_payment"),
        db.Index("ix_bank_tx_restaurant_status_date", "restaurant_id", "status", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)

    # Business date of the movement (deposit slip date)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)

    type = db.Column(db.String(16), nullable=False)  # Deposit | Withdrawal
    method = db.Column(db.String(16), nullable=False)  # Cash | OrangeMoney | Card
    reason = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)

    description = db.Column(db.String(255), nullable=True)
    bank_ref = db.Column(db.String(64), nullable=True)
    comments = db.Column(db.Text, nullable=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)
    debt_payment_id = db.Column(db.Integer, db.ForeignKey("debt_payments.id"), nullable=True)

    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    confirmed_by = db.Column(db.String(64), nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_by_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    restaurant = db.relationship("Restaurant", backref=db.backref("bank_transactions", lazy=True))
    sale = db.relationship("Sale", backref=db.backref("bank_transaction", uselist=False))
    debt_payment = db.relationship("DebtPayment", backref=db.backref("bank_transaction", uselist=False))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type == "Deposit" else -self.amount

    def __repr__(self) -> str:
        return f"<BankTransaction id={self.id} {self.type} {self.method} {self.amount} {self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "date": to_utc_z(self.date),
            "amount": self.amount,
            "type": self.type,
            "method": self.method,
            "reason": self.reason,
            "status": self.status,
            "description": self.description,
            "bank_ref": self.bank_ref,
            "comments": self.comments,
            "sale_id": self.sale_id,
            "debt_payment_id": self.debt_payment_id,
            "expense_payment_id": self.expense_payment.id if self.expense_payment else None,
            "confirmed_at": to_utc_z(self.confirmed_at) if self.confirmed_at else None,
            "confirmed_by": self.confirmed_by,
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
