from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class StockReconciliation(db.Model):
    """
    Physical stock count document.

    LIFECYCLE:
    1. Pending: created with a snapshot of system stock per counted item
    2. Approved: variances posted as Adjustment movements, stock set to the count
    3. Rejected: closed with no stock mutation

    Approved and Rejected are terminal.
    """
    __tablename__ = "stock_reconciliations"
    __table_args__ = (
        db.Index("ix_stock_recon_restaurant_status_created", "restaurant_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)
    notes = db.Column(db.Text, nullable=True)

    submitted_by = db.Column(db.String(64), nullable=True)
    submitted_by_name = db.Column(db.String(255), nullable=True)
    approved_by = db.Column(db.String(64), nullable=True)
    approved_by_name = db.Column(db.String(255), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    restaurant = db.relationship("Restaurant", backref=db.backref("stock_reconciliations", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "status": self.status,
            "notes": self.notes,
            "submitted_by": self.submitted_by,
            "submitted_by_name": self.submitted_by_name,
            "approved_by": self.approved_by,
            "approved_by_name": self.approved_by_name,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class ReconciliationItem(db.Model):
    """One counted item: system snapshot vs physical count."""
    __tablename__ = "reconciliation_items"
    __table_args__ = (
        db.UniqueConstraint("reconciliation_id", "inventory_item_id", name="uq_recon_items_recon_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reconciliation_id = db.Column(db.Integer, db.ForeignKey("stock_reconciliations.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False)

    system_stock = db.Column(db.Float, nullable=False)
    physical_count = db.Column(db.Float, nullable=False)
    variance = db.Column(db.Float, nullable=False)  # physical_count - system_stock
    adjustment_applied = db.Column(db.Boolean, nullable=False, default=False)

    reconciliation = db.relationship(
        "StockReconciliation",
        backref=db.backref("items", lazy=True, order_by="ReconciliationItem.id"),
    )
    inventory_item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reconciliation_id": self.reconciliation_id,
            "inventory_item_id": self.inventory_item_id,
            "item_name": self.inventory_item.name if self.inventory_item else None,
            "unit": self.inventory_item.unit if self.inventory_item else None,
            "system_stock": self.system_stock,
            "physical_count": self.physical_count,
            "variance": self.variance,
            "adjustment_applied": self.adjustment_applied,
        }


class InventoryTransfer(db.Model):
    """
    Immutable audit record of stock moved between two restaurants.

    Paired with exactly one TransferOut movement on the source item and one
    TransferIn movement on the target item, written in the same transaction.
    """
    __tablename__ = "inventory_transfers"
    __table_args__ = (
        db.Index("ix_inventory_transfers_source", "source_restaurant_id", "created_at"),
        db.Index("ix_inventory_transfers_target", "target_restaurant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    source_restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False)
    target_restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False)
    source_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False)
    target_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False)

    quantity = db.Column(db.Float, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_by_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    source_restaurant = db.relationship("Restaurant", foreign_keys=[source_restaurant_id])
    target_restaurant = db.relationship("Restaurant", foreign_keys=[target_restaurant_id])
    source_item = db.relationship("InventoryItem", foreign_keys=[source_item_id])
    target_item = db.relationship("InventoryItem", foreign_keys=[target_item_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_restaurant_id": self.source_restaurant_id,
            "target_restaurant_id": self.target_restaurant_id,
            "source_item_id": self.source_item_id,
            "target_item_id": self.target_item_id,
            "quantity": self.quantity,
            "reason": self.reason,
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": to_utc_z(self.created_at),
        }
