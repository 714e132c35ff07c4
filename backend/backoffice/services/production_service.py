# backend/backoffice/services/production_service.py
"""
Production logging.

WHY: Baking a batch consumes ingredients. Depending on the restaurant's
stock_deduction_mode the Usage movements are written when the batch is
logged ("immediate") or when it is marked Complete ("deferred").

LIFECYCLE:
Planning -> InProgress -> Ready -> Complete

Deleting a log reverses whatever it deducted: stock is given back and the
log's movements are removed together with the log, in one transaction.
"""
from __future__ import annotations

from flask import current_app

from backoffice.extensions import db
from backoffice.models import ProductionLog, Restaurant, StockMovement
from backoffice.validation import (
    ValidationError,
    NotFoundError,
    require_quantity,
    require_choice,
)
from backoffice.time_utils import utcnow, normalize_datetime
from backoffice.services.concurrency import lock_for_update, run_atomically
from backoffice.services import inventory_service


# Preparation status constants
PRODUCTION_STATUS_PLANNING = "Planning"
PRODUCTION_STATUS_IN_PROGRESS = "InProgress"
PRODUCTION_STATUS_READY = "Ready"
PRODUCTION_STATUS_COMPLETE = "Complete"

VALID_PRODUCTION_STATUSES = [
    PRODUCTION_STATUS_PLANNING,
    PRODUCTION_STATUS_IN_PROGRESS,
    PRODUCTION_STATUS_READY,
    PRODUCTION_STATUS_COMPLETE,
]

# Restaurant stock deduction modes
DEDUCTION_MODE_IMMEDIATE = "immediate"
DEDUCTION_MODE_DEFERRED = "deferred"

VALID_DEDUCTION_MODES = [DEDUCTION_MODE_IMMEDIATE, DEDUCTION_MODE_DEFERRED]


def _deduction_mode(restaurant: Restaurant) -> str:
    mode = restaurant.stock_deduction_mode or current_app.config.get(
        "DEFAULT_STOCK_DEDUCTION_MODE", DEDUCTION_MODE_IMMEDIATE
    )
    return mode if mode in VALID_DEDUCTION_MODES else DEDUCTION_MODE_IMMEDIATE


def _deduct_ingredients(log: ProductionLog, *, user_id: str | None, user_name: str | None) -> None:
    """
    Lock every ingredient, verify all of them cover the batch, then write
    one Usage movement per ingredient. Nothing is written if any is short.
    """
    items = []
    for detail in log.ingredient_details or []:
        item = inventory_service.get_item(detail["item_id"], restaurant_id=log.restaurant_id, lock=True)
        inventory_service.ensure_available(item, detail["quantity"])
        items.append((item, detail))

    for item, detail in items:
        inventory_service.apply_movement(
            item,
            inventory_service.MOVEMENT_USAGE,
            -detail["quantity"],
            unit_cost=detail.get("unit_cost_gnf", item.unit_cost_gnf),
            reason=f"Production: {log.product_name} (qty: {log.quantity:g})",
            production_log_id=log.id,
            user_id=user_id,
            user_name=user_name,
        )

    log.stock_deducted = True
    log.stock_deducted_at = utcnow()


def log_production(
    restaurant_id: int,
    product_name: str,
    quantity,
    ingredients,
    *,
    date=None,
    deduct_stock: bool = True,
    preparation_status: str = PRODUCTION_STATUS_PLANNING,
    notes: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> ProductionLog:
    """
    Record a production batch.

    Ingredients are deducted now only when deduct_stock is set and the
    restaurant runs in immediate mode; otherwise the log waits for Complete.

    Raises:
        ValidationError: bad product name, quantity, ingredients or status
        NotFoundError: unknown restaurant or ingredient
        InsufficientStockError: an ingredient cannot cover the batch
    """
    product_name = (product_name or "").strip()
    if not product_name:
        raise ValidationError("product_name is required")
    qty = require_quantity(quantity)
    lines = inventory_service.normalize_ingredients(ingredients)
    require_choice(preparation_status, VALID_PRODUCTION_STATUSES, "preparation_status")
    try:
        produced_on = normalize_datetime(date) or utcnow()
    except ValueError:
        raise ValidationError("date must be an ISO-8601 date or datetime")

    def _op():
        restaurant = db.session.get(Restaurant, restaurant_id)
        if not restaurant:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")

        details = []
        estimated_cost = 0
        for line in lines:
            item = inventory_service.get_item(line["item_id"], restaurant_id=restaurant_id, require_active=True)
            details.append({
                "item_id": item.id,
                "quantity": line["quantity"],
                "unit_cost_gnf": item.unit_cost_gnf,
            })
            estimated_cost += int(round(line["quantity"] * (item.unit_cost_gnf or 0)))

        log = ProductionLog(
            restaurant_id=restaurant_id,
            date=produced_on,
            product_name=product_name,
            quantity=qty,
            ingredient_details=details,
            estimated_cost_gnf=estimated_cost,
            preparation_status=preparation_status,
            stock_deducted=False,
            notes=(notes or "").strip() or None,
            created_by=user_id,
            created_by_name=user_name,
        )
        db.session.add(log)
        db.session.flush()

        if deduct_stock and _deduction_mode(restaurant) == DEDUCTION_MODE_IMMEDIATE:
            _deduct_ingredients(log, user_id=user_id, user_name=user_name)

        return log

    return run_atomically(_op)


def update_production_status(
    log_id: int,
    preparation_status: str,
    *,
    user_id: str | None = None,
    user_name: str | None = None,
) -> ProductionLog:
    """Move a log between preparation states; Complete triggers a pending deduction."""
    require_choice(preparation_status, VALID_PRODUCTION_STATUSES, "preparation_status")

    def _op():
        log = lock_for_update(db.session.query(ProductionLog).filter_by(id=log_id)).first()
        if not log:
            raise NotFoundError(f"Production log {log_id} not found")

        if preparation_status == PRODUCTION_STATUS_COMPLETE and not log.stock_deducted:
            _deduct_ingredients(log, user_id=user_id, user_name=user_name)

        log.preparation_status = preparation_status
        return log

    return run_atomically(_op)


def delete_production_log(log_id: int) -> dict:
    """
    Delete a log and give back every ingredient it consumed.

    For each negative movement tied to the log the item's stock is increased
    by the movement's absolute quantity; the movements and the log are then
    deleted. All of it commits together or not at all.
    """
    def _op():
        log = lock_for_update(db.session.query(ProductionLog).filter_by(id=log_id)).first()
        if not log:
            raise NotFoundError(f"Production log {log_id} not found")

        movements = db.session.query(StockMovement).filter_by(production_log_id=log.id).all()

        restored = []
        for movement in movements:
            if movement.quantity < 0:
                item = inventory_service.get_item(movement.item_id, lock=True)
                item.current_stock = (item.current_stock or 0) + abs(movement.quantity)
                restored.append({"item_id": item.id, "quantity": abs(movement.quantity)})
            db.session.delete(movement)
        db.session.flush()

        db.session.delete(log)
        db.session.flush()
        return {"production_log_id": log_id, "restored": restored}

    result = run_atomically(_op)
    current_app.logger.info(
        "Production log %s deleted, %s ingredient deduction(s) reversed",
        log_id, len(result["restored"]),
    )
    return result


def get_production_log(log_id: int) -> ProductionLog:
    log = db.session.get(ProductionLog, log_id)
    if not log:
        raise NotFoundError(f"Production log {log_id} not found")
    return log


def list_production_logs(restaurant_id: int, *, limit: int = 50) -> list[ProductionLog]:
    return (
        db.session.query(ProductionLog)
        .filter(ProductionLog.restaurant_id == restaurant_id)
        .order_by(ProductionLog.date.desc(), ProductionLog.id.desc())
        .limit(limit)
        .all()
    )
