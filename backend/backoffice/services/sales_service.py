# Overview: Service-layer operations for sale approval; records the cash deposit a sale produces.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Sale
from ..validation import NotFoundError, AlreadyProcessedError, require_choice
from backoffice.time_utils import utcnow
from .concurrency import lock_for_update, run_atomically
from . import bank_service


SALE_STATUS_PENDING = "Pending"
SALE_STATUS_APPROVED = "Approved"
SALE_STATUS_REJECTED = "Rejected"


def _get_pending_sale_locked(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")
    if sale.status != SALE_STATUS_PENDING:
        raise AlreadyProcessedError(f"Sale already {sale.status.lower()}")
    return sale


def approve_sale(
    sale_id: int,
    *,
    method: str = bank_service.METHOD_CASH,
    user_id: str | None = None,
    user_name: str | None = None,
) -> tuple[Sale, object]:
    """
    Approve a sale and record its cash takings as a Pending deposit.

    The deposit is only staged when the sale carries cash; a sale settled
    entirely by card or Orange Money has nothing to walk to the bank.

    Returns:
        (sale, bank_transaction or None)
    """
    require_choice(method, bank_service.VALID_METHODS, "method")

    def _op():
        sale = _get_pending_sale_locked(sale_id)

        sale.status = SALE_STATUS_APPROVED
        sale.approved_by = user_id
        sale.approved_by_name = user_name
        sale.approved_at = utcnow()

        txn = None
        if sale.cash_gnf > 0:
            txn = bank_service.add_transaction(
                restaurant_id=sale.restaurant_id,
                type=bank_service.TYPE_DEPOSIT,
                method=method,
                reason=bank_service.REASON_SALES_DEPOSIT,
                amount=sale.cash_gnf,
                date=sale.date,
                sale_id=sale.id,
                description=f"Sales deposit for {sale.date.date().isoformat()}",
                user_id=user_id,
                user_name=user_name,
            )

        return sale, txn

    sale, txn = run_atomically(_op)
    current_app.logger.info("Sale %s approved (deposit transaction %s)", sale.id, txn.id if txn else None)
    return sale, txn


def reject_sale(
    sale_id: int,
    *,
    reason: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> Sale:
    def _op():
        sale = _get_pending_sale_locked(sale_id)

        sale.status = SALE_STATUS_REJECTED
        sale.approved_by = user_id
        sale.approved_by_name = user_name
        sale.approved_at = utcnow()
        if reason:
            prefix = f"{sale.comments}\n" if sale.comments else ""
            sale.comments = f"{prefix}[Rejected: {reason.strip()}]"

        return sale

    return run_atomically(_op)
