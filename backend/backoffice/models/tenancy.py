from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Restaurant(db.Model):
    """
    Tenant root: every ledger row belongs to exactly one restaurant.

    The three opening balances seed the balance reconstruction; they are
    the money on hand per method before the first recorded transaction.
    """
    __tablename__ = "restaurants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    # Opening balances in GNF
    initial_cash_balance = db.Column(db.Integer, nullable=False, default=0)
    initial_orange_balance = db.Column(db.Integer, nullable=False, default=0)
    initial_card_balance = db.Column(db.Integer, nullable=False, default=0)

    # "immediate" | "deferred"
    stock_deduction_mode = db.Column(db.String(16), nullable=False, default="immediate")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Restaurant id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "initial_cash_balance": self.initial_cash_balance,
            "initial_orange_balance": self.initial_orange_balance,
            "initial_card_balance": self.initial_card_balance,
            "stock_deduction_mode": self.stock_deduction_mode,
            "created_at": to_utc_z(self.created_at),
        }
