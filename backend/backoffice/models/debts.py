from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Debt(db.Model):
    """
    Customer receivable.

    INVARIANTS:
    - paid_amount + remaining_amount == principal_amount
    - remaining_amount >= 0, principal_amount >= paid_amount
    - status is derived from the numeric fields on every write path
      (see debt_service.derive_debt_status); WrittenOff is the only status
      set by an explicit action.
    """
    __tablename__ = "debts"
    __table_args__ = (
        db.Index("ix_debts_restaurant_status", "restaurant_id", "status"),
        db.Index("ix_debts_customer_status", "customer_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    principal_amount = db.Column(db.Integer, nullable=False)
    paid_amount = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount = db.Column(db.Integer, nullable=False)

    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Outstanding")

    description = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_by_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("debts", lazy=True))
    sale = db.relationship("Sale", backref=db.backref("debts", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<Debt id={self.id} principal={self.principal_amount} "
            f"paid={self.paid_amount} status={self.status}>"
        )

    def to_dict(self, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "principal_amount": self.principal_amount,
            "paid_amount": self.paid_amount,
            "remaining_amount": self.remaining_amount,
            "due_date": to_utc_z(self.due_date) if self.due_date else None,
            "status": self.status,
            "description": self.description,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class DebtPayment(db.Model):
    """
    One payment against a debt. Written in the same DB transaction as the
    debt update it causes; immutable afterwards.
    """
    __tablename__ = "debt_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    debt_id = db.Column(db.Integer, db.ForeignKey("debts.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)

    amount = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    receipt_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    received_by = db.Column(db.String(64), nullable=True)
    received_by_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    debt = db.relationship(
        "Debt",
        backref=db.backref("payments", lazy=True, order_by="DebtPayment.payment_date.desc()"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "debt_id": self.debt_id,
            "customer_id": self.customer_id,
            "amount": self.amount,
            "payment_method": self.payment_method,
            "payment_date": to_utc_z(self.payment_date),
            "receipt_number": self.receipt_number,
            "notes": self.notes,
            "received_by": self.received_by,
            "received_by_name": self.received_by_name,
            "bank_transaction_id": self.bank_transaction.id if self.bank_transaction else None,
            "created_at": to_utc_z(self.created_at),
        }
