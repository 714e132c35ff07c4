from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Sale(db.Model):
    """
    Daily sales declaration.

    Only the fields the money ledger needs are modelled here: the split of
    takings by payment method and the approval state. Approval is what
    triggers the pending cash deposit.

    LIFECYCLE:
    1. Pending: submitted by staff
    2. Approved: manager approved, cash deposit recorded
    3. Rejected: manager rejected
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_restaurant_date", "restaurant_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    total_gnf = db.Column(db.Integer, nullable=False, default=0)
    cash_gnf = db.Column(db.Integer, nullable=False, default=0)
    orange_money_gnf = db.Column(db.Integer, nullable=False, default=0)
    card_gnf = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)
    comments = db.Column(db.Text, nullable=True)

    approved_by = db.Column(db.String(64), nullable=True)
    approved_by_name = db.Column(db.String(255), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    restaurant = db.relationship("Restaurant", backref=db.backref("sales", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "date": to_utc_z(self.date),
            "total_gnf": self.total_gnf,
            "cash_gnf": self.cash_gnf,
            "orange_money_gnf": self.orange_money_gnf,
            "card_gnf": self.card_gnf,
            "status": self.status,
            "comments": self.comments,
            "approved_by": self.approved_by,
            "approved_by_name": self.approved_by_name,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "created_at": to_utc_z(self.created_at),
        }
