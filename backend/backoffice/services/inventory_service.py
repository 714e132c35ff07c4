# backend/backoffice/services/inventory_service.py
"""
Stock ledger.

Inventory model:
- Every change to an item's stock is an append-only StockMovement with a
  signed quantity (negative = decrease).
- InventoryItem.current_stock is a cached running total of those movements,
  written in the same DB transaction as the movement that explains it.
- The one sanctioned override is an approved reconciliation, which sets
  current_stock to the physical count (and writes the variance movement).

Ownership of the non-negative rule:
- apply_movement() is a raw primitive and does NOT refuse to go negative.
- Every default path (adjust_stock, production, transfer) calls
  ensure_available() first and raises InsufficientStockError instead.
"""
from __future__ import annotations

from sqlalchemy import func
from flask import current_app

from backoffice.extensions import db
from backoffice.models import InventoryItem, StockMovement
from backoffice.validation import (
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    require_quantity,
    require_choice,
)
from backoffice.services.concurrency import lock_for_update, run_atomically


# Movement type constants
MOVEMENT_PURCHASE = "Purchase"
MOVEMENT_USAGE = "Usage"
MOVEMENT_WASTE = "Waste"
MOVEMENT_ADJUSTMENT = "Adjustment"
MOVEMENT_TRANSFER_IN = "TransferIn"
MOVEMENT_TRANSFER_OUT = "TransferOut"

VALID_MOVEMENT_TYPES = [
    MOVEMENT_PURCHASE,
    MOVEMENT_USAGE,
    MOVEMENT_WASTE,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_OUT,
]

# Types a user may post by hand; transfers go through transfer_service
MANUAL_MOVEMENT_TYPES = [
    MOVEMENT_PURCHASE,
    MOVEMENT_USAGE,
    MOVEMENT_WASTE,
    MOVEMENT_ADJUSTMENT,
]

# Stock status constants
STOCK_STATUS_OK = "ok"
STOCK_STATUS_LOW = "low"
STOCK_STATUS_CRITICAL = "critical"
STOCK_STATUS_INSUFFICIENT = "insufficient"

# Float drift tolerated when comparing cached stock against the movement sum
STOCK_EPSILON = 1e-6


def get_item(
    item_id: int,
    *,
    restaurant_id: int | None = None,
    require_active: bool = False,
    lock: bool = False,
) -> InventoryItem:
    query = db.session.query(InventoryItem).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise NotFoundError(f"Inventory item {item_id} not found")
    if restaurant_id is not None and item.restaurant_id != restaurant_id:
        raise NotFoundError(f"Inventory item {item_id} not found in restaurant {restaurant_id}")
    if require_active and not item.is_active:
        raise ValidationError(f"Inventory item {item.name} is inactive")
    return item


def get_movement_total(item_id: int) -> float:
    """Sum of all signed movement quantities for an item."""
    total = db.session.query(
        func.coalesce(func.sum(StockMovement.quantity), 0.0)
    ).filter(StockMovement.item_id == item_id).scalar()
    return float(total or 0.0)


# =============================================================================
# PRIMITIVE
# =============================================================================

def apply_movement(
    item: InventoryItem,
    type: str,
    quantity: float,
    *,
    unit_cost: int | None = None,
    reason: str | None = None,
    production_log_id: int | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> StockMovement:
    """
    Append one movement and move the item's cached stock by the same amount.

    `quantity` is already signed. No availability check and no commit: the
    caller owns both.
    """
    require_choice(type, VALID_MOVEMENT_TYPES, "type")

    movement = StockMovement(
        restaurant_id=item.restaurant_id,
        item_id=item.id,
        type=type,
        quantity=quantity,
        unit_cost=unit_cost,
        reason=reason,
        production_log_id=production_log_id,
        created_by=user_id,
        created_by_name=user_name,
    )
    db.session.add(movement)

    item.current_stock = (item.current_stock or 0) + quantity
    db.session.flush()
    return movement


def ensure_available(item: InventoryItem, required: float) -> None:
    if (item.current_stock or 0) < required:
        raise InsufficientStockError(
            f"Insufficient stock for {item.name}. Available: {item.current_stock} {item.unit}, "
            f"required: {required} {item.unit}",
            item_id=item.id,
            available=item.current_stock,
            required=required,
        )


def stock_status(item: InventoryItem, critical_ratio: float | None = None) -> str:
    """critical at or below zero (or a fraction of min_stock), low below min_stock, else ok."""
    if critical_ratio is None:
        critical_ratio = current_app.config.get("LOW_STOCK_CRITICAL_RATIO", 0.1)

    stock = item.current_stock or 0
    min_stock = item.min_stock or 0

    if stock <= 0 or (min_stock > 0 and stock <= min_stock * critical_ratio):
        return STOCK_STATUS_CRITICAL
    if stock < min_stock:
        return STOCK_STATUS_LOW
    return STOCK_STATUS_OK


# =============================================================================
# MANUAL ADJUSTMENTS
# =============================================================================

def adjust_stock(
    item_id: int,
    type: str,
    quantity,
    *,
    reason: str | None = None,
    unit_cost: int | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> tuple[StockMovement, InventoryItem, str]:
    """
    Post a manual Purchase / Usage / Waste / Adjustment.

    Sign is normalised by type: Purchase adds |q|, Usage and Waste remove
    |q|, Adjustment is taken as given. A Purchase with a unit cost also
    updates the item's unit_cost_gnf.

    Returns:
        (movement, item, stock status after the movement)
    """
    require_choice(type, MANUAL_MOVEMENT_TYPES, "type")
    qty = require_quantity(quantity, allow_negative=(type == MOVEMENT_ADJUSTMENT))
    if unit_cost is not None:
        if isinstance(unit_cost, bool) or not isinstance(unit_cost, int) or unit_cost < 0:
            raise ValidationError("unit_cost must be a non-negative integer")

    if type == MOVEMENT_PURCHASE:
        signed = abs(qty)
    elif type in (MOVEMENT_USAGE, MOVEMENT_WASTE):
        signed = -abs(qty)
    else:
        signed = qty

    def _op():
        item = get_item(item_id, require_active=True, lock=True)

        if signed < 0:
            ensure_available(item, abs(signed))

        if type == MOVEMENT_PURCHASE and unit_cost is not None:
            item.unit_cost_gnf = unit_cost

        movement = apply_movement(
            item,
            type,
            signed,
            unit_cost=unit_cost if unit_cost is not None else item.unit_cost_gnf,
            reason=(reason or "").strip() or None,
            user_id=user_id,
            user_name=user_name,
        )
        return movement, item

    movement, item = run_atomically(_op)
    return movement, item, stock_status(item)


# =============================================================================
# AVAILABILITY
# =============================================================================

def normalize_ingredients(ingredients) -> list[dict]:
    """
    Validate an ingredient list of {"item_id", "quantity"} and merge repeats.

    Order of first appearance is kept.
    """
    if not isinstance(ingredients, list) or not ingredients:
        raise ValidationError("ingredients must be a non-empty list")

    merged: dict[int, float] = {}
    for entry in ingredients:
        if not isinstance(entry, dict) or entry.get("item_id") is None:
            raise ValidationError("each ingredient needs an item_id and a quantity")
        try:
            item_id = int(entry["item_id"])
        except (TypeError, ValueError):
            raise ValidationError("item_id must be an integer")
        qty = require_quantity(entry.get("quantity"))
        merged[item_id] = merged.get(item_id, 0.0) + qty

    return [{"item_id": item_id, "quantity": qty} for item_id, qty in merged.items()]


def check_availability(restaurant_id: int, ingredients, *, multiplier: float = 1.0) -> dict:
    """
    Dry-run a production: would the restaurant's stock cover these ingredients?

    Per ingredient: after = current_stock - required; insufficient if after
    < 0, low if after < min_stock, otherwise ok.
    """
    lines = normalize_ingredients(ingredients)

    results = []
    estimated_cost = 0
    for line in lines:
        item = get_item(line["item_id"], restaurant_id=restaurant_id)
        required = line["quantity"] * multiplier
        after = (item.current_stock or 0) - required

        if after < 0:
            status = STOCK_STATUS_INSUFFICIENT
        elif after < (item.min_stock or 0):
            status = STOCK_STATUS_LOW
        else:
            status = STOCK_STATUS_OK

        cost = int(round(required * (item.unit_cost_gnf or 0)))
        estimated_cost += cost
        results.append({
            "item_id": item.id,
            "item_name": item.name,
            "unit": item.unit,
            "required": required,
            "available": item.current_stock,
            "after_production": after,
            "status": status,
            "cost_gnf": cost,
        })

    return {
        "available": all(r["status"] != STOCK_STATUS_INSUFFICIENT for r in results),
        "ingredients": results,
        "estimated_cost_gnf": estimated_cost,
    }


# =============================================================================
# AUDIT
# =============================================================================

def verify_stock_ledger(restaurant_id: int) -> list[dict]:
    """
    Items whose cached current_stock disagrees with the sum of their movements.

    A reconciled item shows up here when its stock moved between the count
    and the approval; that drift is expected.
    """
    sums = dict(
        db.session.query(StockMovement.item_id, func.sum(StockMovement.quantity))
        .filter(StockMovement.restaurant_id == restaurant_id)
        .group_by(StockMovement.item_id)
        .all()
    )

    items = (
        db.session.query(InventoryItem)
        .filter(InventoryItem.restaurant_id == restaurant_id)
        .order_by(InventoryItem.name.asc())
        .all()
    )

    mismatches = []
    for item in items:
        ledger_total = float(sums.get(item.id) or 0.0)
        if abs((item.current_stock or 0) - ledger_total) > STOCK_EPSILON:
            mismatches.append({
                "item_id": item.id,
                "name": item.name,
                "current_stock": item.current_stock,
                "movement_total": ledger_total,
                "drift": (item.current_stock or 0) - ledger_total,
            })
    return mismatches


def list_movements(item_id: int, *, limit: int = 100) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter(StockMovement.item_id == item_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
