# backend/backoffice/services/reconciliation_service.py
"""
Physical stock reconciliation.

WHY: Counted stock drifts from the ledger (spillage, theft, miscounts). A
reconciliation snapshots system stock when the count is submitted and, on
approval, posts each variance as an Adjustment movement and sets the item's
stock to what was physically counted.

LIFECYCLE:
1. Pending: submitted with a system_stock snapshot per counted item
2. Approved: variances posted, current_stock = physical_count (terminal)
3. Rejected: closed, no stock touched (terminal)
"""
from __future__ import annotations

from flask import current_app

from backoffice.extensions import db
from backoffice.models import InventoryItem, StockReconciliation, ReconciliationItem
from backoffice.validation import (
    ValidationError,
    NotFoundError,
    AlreadyProcessedError,
    require_quantity,
)
from backoffice.time_utils import utcnow
from backoffice.services.concurrency import lock_for_update, run_atomically
from backoffice.services import inventory_service


# Reconciliation status constants
RECON_STATUS_PENDING = "Pending"
RECON_STATUS_APPROVED = "Approved"
RECON_STATUS_REJECTED = "Rejected"

VALID_RECON_STATUSES = [RECON_STATUS_PENDING, RECON_STATUS_APPROVED, RECON_STATUS_REJECTED]


def _normalize_counts(items) -> list[tuple[int, float]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one counted item is required")

    counts = []
    seen = set()
    for entry in items:
        if not isinstance(entry, dict) or entry.get("item_id") is None:
            raise ValidationError("each counted item needs an item_id and a physical_count")
        try:
            item_id = int(entry["item_id"])
        except (TypeError, ValueError):
            raise ValidationError("item_id must be an integer")
        if item_id in seen:
            raise ValidationError(f"Item {item_id} is counted more than once")
        seen.add(item_id)

        physical = require_quantity(entry.get("physical_count"), "physical_count", allow_zero=True)
        counts.append((item_id, physical))
    return counts


def _get_reconciliation_locked(reconciliation_id: int) -> StockReconciliation:
    recon = lock_for_update(
        db.session.query(StockReconciliation).filter_by(id=reconciliation_id)
    ).first()
    if not recon:
        raise NotFoundError(f"Reconciliation {reconciliation_id} not found")
    if recon.status != RECON_STATUS_PENDING:
        raise AlreadyProcessedError(f"Reconciliation already {recon.status.lower()}")
    return recon


def create_reconciliation(
    restaurant_id: int,
    items,
    *,
    notes: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> StockReconciliation:
    """
    Submit a physical count (status: Pending).

    Args:
        restaurant_id: Restaurant whose stock was counted
        items: [{"item_id": int, "physical_count": number}, ...]

    Raises:
        ValidationError: empty list, duplicate item, negative count
        NotFoundError: any item not active in the restaurant (all ids listed)
    """
    counts = _normalize_counts(items)

    def _op():
        ids = [item_id for item_id, _ in counts]
        found = {
            item.id: item
            for item in db.session.query(InventoryItem).filter(
                InventoryItem.id.in_(ids),
                InventoryItem.restaurant_id == restaurant_id,
                InventoryItem.is_active.is_(True),
            )
        }
        missing = [item_id for item_id in ids if item_id not in found]
        if missing:
            raise NotFoundError(
                f"Inventory items not found: {', '.join(str(i) for i in missing)}",
                missing_ids=missing,
            )

        recon = StockReconciliation(
            restaurant_id=restaurant_id,
            status=RECON_STATUS_PENDING,
            notes=(notes or "").strip() or None,
            submitted_by=user_id,
            submitted_by_name=user_name,
        )
        db.session.add(recon)
        db.session.flush()

        for item_id, physical in counts:
            system_stock = found[item_id].current_stock or 0
            db.session.add(ReconciliationItem(
                reconciliation_id=recon.id,
                inventory_item_id=item_id,
                system_stock=system_stock,
                physical_count=physical,
                variance=physical - system_stock,
                adjustment_applied=False,
            ))
        db.session.flush()

        return recon

    return run_atomically(_op)


def approve_reconciliation(
    reconciliation_id: int,
    *,
    user_id: str | None = None,
    user_name: str | None = None,
) -> StockReconciliation:
    """
    Approve a Pending reconciliation and post its variances.

    For each line with a non-zero variance an Adjustment movement of
    `variance` is written; every counted item's stock is then set to the
    physical count, so drift since the snapshot is absorbed as well.
    """
    def _op():
        recon = _get_reconciliation_locked(reconciliation_id)

        adjusted = 0
        for line in recon.items:
            item = inventory_service.get_item(line.inventory_item_id, lock=True)

            if line.variance != 0:
                inventory_service.apply_movement(
                    item,
                    inventory_service.MOVEMENT_ADJUSTMENT,
                    line.variance,
                    unit_cost=item.unit_cost_gnf,
                    reason=(
                        f"Reconciliation: physical count {line.physical_count:g}, "
                        f"system had {line.system_stock:g}"
                    ),
                    user_id=user_id,
                    user_name=user_name,
                )
                adjusted += 1

            # Set, not increment
            item.current_stock = line.physical_count
            line.adjustment_applied = True

        recon.status = RECON_STATUS_APPROVED
        recon.approved_by = user_id
        recon.approved_by_name = user_name
        recon.approved_at = utcnow()
        db.session.flush()

        return recon, adjusted

    recon, adjusted = run_atomically(_op)
    current_app.logger.info(
        "Reconciliation %s approved: %s adjustment(s) posted", recon.id, adjusted,
    )
    return recon


def reject_reconciliation(
    reconciliation_id: int,
    *,
    user_id: str | None = None,
    user_name: str | None = None,
) -> StockReconciliation:
    def _op():
        recon = _get_reconciliation_locked(reconciliation_id)

        recon.status = RECON_STATUS_REJECTED
        recon.approved_by = user_id
        recon.approved_by_name = user_name
        recon.approved_at = utcnow()

        return recon

    return run_atomically(_op)


def get_reconciliation_summary(reconciliation_id: int) -> dict:
    recon = db.session.get(StockReconciliation, reconciliation_id)
    if not recon:
        raise NotFoundError(f"Reconciliation {reconciliation_id} not found")

    return {
        **recon.to_dict(),
        "items": [line.to_dict() for line in recon.items],
        "total_variance": sum(line.variance for line in recon.items),
    }


def list_reconciliations(
    restaurant_id: int,
    *,
    status: str | None = None,
    limit: int = 50,
) -> list[StockReconciliation]:
    query = db.session.query(StockReconciliation).filter(
        StockReconciliation.restaurant_id == restaurant_id
    )
    if status in VALID_RECON_STATUSES:
        query = query.filter(StockReconciliation.status == status)
    return (
        query.order_by(StockReconciliation.created_at.desc(), StockReconciliation.id.desc())
        .limit(limit)
        .all()
    )
