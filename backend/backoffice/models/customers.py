from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer who may buy on credit.

    credit_limit is optional; when set, the sum of a customer's open debts
    (remaining amounts) plus any new principal may not exceed it.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_restaurant_name", "restaurant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    credit_limit = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    restaurant = db.relationship("Restaurant", backref=db.backref("customers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "name": self.name,
            "phone": self.phone,
            "credit_limit": self.credit_limit,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
