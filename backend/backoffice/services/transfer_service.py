# backend/backoffice/services/transfer_service.py
"""
Inter-restaurant stock transfer.

WHY: Restaurants of the same owner lend each other ingredients. A transfer
is a single atomic step (no shipping / receiving workflow): one TransferOut
movement on the source item, one TransferIn movement on the target item and
one immutable InventoryTransfer record, all in the same DB transaction.

Target item resolution:
1. explicit target_item_id (must live in the target restaurant)
2. active item with the same name and category in the target restaurant
3. otherwise a new item with zero stock, copying unit, thresholds and cost
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from backoffice.extensions import db
from backoffice.models import InventoryItem, InventoryTransfer, Restaurant
from backoffice.validation import (
    ValidationError,
    NotFoundError,
    InvalidTransferError,
    require_quantity,
)
from backoffice.services.concurrency import lock_for_update, run_atomically
from backoffice.services import inventory_service


def _resolve_target_item(
    source_item: InventoryItem,
    target_restaurant_id: int,
    target_item_id: int | None,
) -> InventoryItem:
    if target_item_id is not None:
        return inventory_service.get_item(target_item_id, restaurant_id=target_restaurant_id, lock=True)

    query = db.session.query(InventoryItem).filter(
        InventoryItem.restaurant_id == target_restaurant_id,
        InventoryItem.name == source_item.name,
        InventoryItem.is_active.is_(True),
    )
    if source_item.category is None:
        query = query.filter(InventoryItem.category.is_(None))
    else:
        query = query.filter(InventoryItem.category == source_item.category)

    target = lock_for_update(query.order_by(InventoryItem.id.asc())).first()
    if target:
        return target

    target = InventoryItem(
        restaurant_id=target_restaurant_id,
        name=source_item.name,
        category=source_item.category,
        unit=source_item.unit,
        current_stock=0,
        min_stock=source_item.min_stock,
        reorder_point=source_item.reorder_point,
        unit_cost_gnf=source_item.unit_cost_gnf,
        is_active=True,
    )
    db.session.add(target)
    db.session.flush()
    return target


def transfer_stock(
    source_item_id: int,
    target_restaurant_id: int,
    quantity,
    *,
    source_restaurant_id: int | None = None,
    target_item_id: int | None = None,
    reason: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> InventoryTransfer:
    """
    Move stock of one item to another restaurant.

    Raises:
        ValidationError: quantity <= 0
        NotFoundError: unknown item or restaurant
        InvalidTransferError: source and target restaurant are the same
        InsufficientStockError: source stock below quantity
    """
    qty = require_quantity(quantity)

    def _op():
        source_item = inventory_service.get_item(
            source_item_id, restaurant_id=source_restaurant_id, require_active=True, lock=True
        )
        source_restaurant = db.session.get(Restaurant, source_item.restaurant_id)

        if source_item.restaurant_id == target_restaurant_id:
            raise InvalidTransferError("Cannot transfer to the same restaurant")

        target_restaurant = db.session.get(Restaurant, target_restaurant_id)
        if not target_restaurant:
            raise NotFoundError(f"Restaurant {target_restaurant_id} not found")

        inventory_service.ensure_available(source_item, qty)

        target_item = _resolve_target_item(source_item, target_restaurant_id, target_item_id)
        if target_item.unit != source_item.unit:
            raise ValidationError(
                f"Unit mismatch: {source_item.name} is counted in {source_item.unit}, "
                f"target item in {target_item.unit}"
            )

        note = (reason or "").strip() or "Transfer"

        inventory_service.apply_movement(
            source_item,
            inventory_service.MOVEMENT_TRANSFER_OUT,
            -qty,
            unit_cost=source_item.unit_cost_gnf,
            reason=f"→ {target_restaurant.name}: {note}",
            user_id=user_id,
            user_name=user_name,
        )
        inventory_service.apply_movement(
            target_item,
            inventory_service.MOVEMENT_TRANSFER_IN,
            qty,
            unit_cost=source_item.unit_cost_gnf,
            reason=f"← {source_restaurant.name}: {note}",
            user_id=user_id,
            user_name=user_name,
        )

        transfer = InventoryTransfer(
            source_restaurant_id=source_item.restaurant_id,
            target_restaurant_id=target_restaurant_id,
            source_item_id=source_item.id,
            target_item_id=target_item.id,
            quantity=qty,
            reason=(reason or "").strip() or None,
            created_by=user_id,
            created_by_name=user_name,
        )
        db.session.add(transfer)
        db.session.flush()
        return transfer

    transfer = run_atomically(_op)
    current_app.logger.info(
        "Transferred %s of item %s from restaurant %s to restaurant %s (item %s)",
        transfer.quantity, transfer.source_item_id, transfer.source_restaurant_id,
        transfer.target_restaurant_id, transfer.target_item_id,
    )
    return transfer


def list_transfers(restaurant_id: int, *, limit: int = 50) -> list[InventoryTransfer]:
    """Transfers in or out of a restaurant, newest first."""
    return (
        db.session.query(InventoryTransfer)
        .filter(or_(
            InventoryTransfer.source_restaurant_id == restaurant_id,
            InventoryTransfer.target_restaurant_id == restaurant_id,
        ))
        .order_by(InventoryTransfer.created_at.desc(), InventoryTransfer.id.desc())
        .limit(limit)
        .all()
    )
