from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class InventoryItem(db.Model):
    """
    Ingredient or supply held by a restaurant.

    current_stock is a cached running total of the item's StockMovement
    rows. It is only ever changed in the same DB transaction that appends
    the movement explaining the change; the single exception is an approved
    reconciliation, which sets it to the physical count directly.

    Quantities are floats (kg, litres, units); money is whole GNF.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_restaurant_name", "restaurant_id", "name"),
        db.Index("ix_inventory_items_restaurant_active", "restaurant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(16), nullable=False)

    current_stock = db.Column(db.Float, nullable=False, default=0)
    min_stock = db.Column(db.Float, nullable=False, default=0)
    reorder_point = db.Column(db.Float, nullable=False, default=0)
    unit_cost_gnf = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    restaurant = db.relationship("Restaurant", backref=db.backref("inventory_items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "current_stock": self.current_stock,
            "min_stock": self.min_stock,
            "reorder_point": self.reorder_point,
            "unit_cost_gnf": self.unit_cost_gnf,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger row. quantity is signed (negative = decrease).

    Rows are never updated. They are deleted only when the production log
    they belong to is deleted and its deductions are reversed.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_item_created", "item_id", "created_at"),
        db.Index("ix_stock_movements_restaurant_type", "restaurant_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit_cost = db.Column(db.Integer, nullable=True)
    reason = db.Column(db.String(255), nullable=True)

    production_log_id = db.Column(db.Integer, db.ForeignKey("production_logs.id"), nullable=True, index=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_by_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("InventoryItem", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "item_id": self.item_id,
            "type": self.type,
            "quantity": self.quantity,
            "unit_cost": self.unit_cost,
            "reason": self.reason,
            "production_log_id": self.production_log_id,
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": to_utc_z(self.created_at),
        }


class ProductionLog(db.Model):
    """
    A batch of product baked from inventory ingredients.

    ingredient_details is a JSON list of {"item_id", "quantity",
    "unit_cost_gnf"}. Whether the ingredients are deducted when the log is
    created or when it is marked Complete depends on the restaurant's
    stock_deduction_mode; stock_deducted records which happened.
    """
    __tablename__ = "production_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    ingredient_details = db.Column(db.JSON, nullable=False, default=list)
    estimated_cost_gnf = db.Column(db.Integer, nullable=False, default=0)

    preparation_status = db.Column(db.String(16), nullable=False, default="Planning")
    stock_deducted = db.Column(db.Boolean, nullable=False, default=False)
    stock_deducted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_by_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    stock_movements = db.relationship("StockMovement", backref="production_log", lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "date": to_utc_z(self.date),
            "product_name": self.product_name,
            "quantity": self.quantity,
            "ingredient_details": self.ingredient_details or [],
            "estimated_cost_gnf": self.estimated_cost_gnf,
            "preparation_status": self.preparation_status,
            "stock_deducted": self.stock_deducted,
            "stock_deducted_at": to_utc_z(self.stock_deducted_at) if self.stock_deducted_at else None,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": to_utc_z(self.created_at),
            "stock_movements": [m.to_dict() for m in self.stock_movements],
        }
