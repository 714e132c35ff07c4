# backend/backoffice/services/balance_service.py
"""
Balance reconstruction.

Nothing here is persisted. Balances are folds over the ordered sequence of
Confirmed bank transactions, seeded with the restaurant's opening balances:

- daily_cash_flow():        deposits / withdrawals per method per day
- build_balance_snapshots(): running balance per method after each day
- balance_history():        per-day balances over [start, end], gap-filled
- breakdown():              window totals by reason and by method

The fold functions take plain sequences of LedgerEntry so they can be
exercised without a database; get_analytics() and current_balances() only
load rows and call them.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

from flask import current_app

from backoffice.extensions import db
from backoffice.models import BankTransaction, Restaurant
from backoffice.validation import ValidationError, NotFoundError
from backoffice.time_utils import utcnow, day_key, iter_days
from backoffice.services import bank_service


# Balance keys per payment method
METHOD_KEYS = {
    bank_service.METHOD_CASH: "cash",
    bank_service.METHOD_ORANGE_MONEY: "orange_money",
    bank_service.METHOD_CARD: "card",
}


@dataclass(frozen=True)
class LedgerEntry:
    date: datetime
    type: str
    method: str
    amount: int
    reason: str | None = None

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type == bank_service.TYPE_DEPOSIT else -self.amount

    @classmethod
    def from_transaction(cls, txn: BankTransaction) -> "LedgerEntry":
        return cls(date=txn.date, type=txn.type, method=txn.method, amount=txn.amount, reason=txn.reason)


def _empty_balances() -> dict[str, int]:
    return {key: 0 for key in METHOD_KEYS.values()}


def _with_total(balances: dict[str, int]) -> dict[str, int]:
    return {**balances, "total": sum(balances[key] for key in METHOD_KEYS.values())}


def opening_balances(restaurant: Restaurant) -> dict[str, int]:
    return {
        "cash": restaurant.initial_cash_balance or 0,
        "orange_money": restaurant.initial_orange_balance or 0,
        "card": restaurant.initial_card_balance or 0,
    }


def _in_window(entries: Iterable[LedgerEntry], start: date, end: date) -> list[LedgerEntry]:
    return [e for e in entries if start <= e.date.date() <= end]


# =============================================================================
# PURE FOLDS
# =============================================================================

def daily_cash_flow(entries: Iterable[LedgerEntry], start: date, end: date) -> list[dict]:
    """One row per calendar day in [start, end], zeros on quiet days."""
    days = {
        day_key(d): {
            key: {"deposits": 0, "withdrawals": 0} for key in METHOD_KEYS.values()
        }
        for d in iter_days(start, end)
    }

    for entry in _in_window(entries, start, end):
        bucket = days[day_key(entry.date)][METHOD_KEYS[entry.method]]
        if entry.type == bank_service.TYPE_DEPOSIT:
            bucket["deposits"] += entry.amount
        else:
            bucket["withdrawals"] += entry.amount

    rows = []
    for day, by_method in days.items():
        deposits = sum(m["deposits"] for m in by_method.values())
        withdrawals = sum(m["withdrawals"] for m in by_method.values())
        rows.append({
            "date": day,
            "by_method": by_method,
            "deposits": deposits,
            "withdrawals": withdrawals,
            "net": deposits - withdrawals,
        })
    return rows


def build_balance_snapshots(
    entries: Iterable[LedgerEntry],
    opening: dict[str, int],
) -> dict[str, dict[str, int]]:
    """
    Walk every entry in ascending date order and record the running
    balances at the end of each day that had activity.

    Returns {day_key: balances}, keys in ascending order.
    """
    running = {**_empty_balances(), **opening}
    snapshots: dict[str, dict[str, int]] = {}

    # sorted() is stable: same-instant entries keep their load order
    for entry in sorted(entries, key=lambda e: e.date):
        running[METHOD_KEYS[entry.method]] += entry.signed_amount
        snapshots[day_key(entry.date)] = dict(running)

    return snapshots


def balance_history(
    entries: Iterable[LedgerEntry],
    opening: dict[str, int],
    start: date,
    end: date,
) -> list[dict]:
    """
    Closing balances for every day in [start, end].

    The seed is the latest snapshot strictly before `start` (or the opening
    balances); a day without activity repeats the previous day's balances.
    """
    snapshots = build_balance_snapshots(entries, opening)

    start_key = day_key(start)
    current = {**_empty_balances(), **opening}
    for key, balances in snapshots.items():
        if key >= start_key:
            break
        current = balances

    history = []
    for d in iter_days(start, end):
        key = day_key(d)
        if key in snapshots:
            current = snapshots[key]
        history.append({"date": key, **_with_total(current)})
    return history


def breakdown(entries: Iterable[LedgerEntry]) -> dict:
    """Window totals grouped by reason (with share of total) and by method."""
    entries = list(entries)
    window_total = sum(e.amount for e in entries)

    by_reason: dict[str, int] = {}
    for entry in entries:
        reason = entry.reason or bank_service.REASON_OTHER
        by_reason[reason] = by_reason.get(reason, 0) + entry.amount

    reasons = [
        {
            "reason": reason,
            "amount": amount,
            "percentage": round(amount * 100 / window_total) if window_total else 0,
        }
        for reason, amount in sorted(by_reason.items(), key=lambda kv: kv[1], reverse=True)
    ]

    methods = {}
    for method, key in METHOD_KEYS.items():
        deposits = sum(e.amount for e in entries if e.method == method and e.type == bank_service.TYPE_DEPOSIT)
        withdrawals = sum(e.amount for e in entries if e.method == method and e.type == bank_service.TYPE_WITHDRAWAL)
        methods[key] = {"deposits": deposits, "withdrawals": withdrawals, "net": deposits - withdrawals}

    return {"by_reason": reasons, "by_method": methods}


def summarize(entries: Iterable[LedgerEntry]) -> dict:
    entries = list(entries)
    deposits = sum(e.amount for e in entries if e.type == bank_service.TYPE_DEPOSIT)
    withdrawals = sum(e.amount for e in entries if e.type == bank_service.TYPE_WITHDRAWAL)
    return {
        "transaction_count": len(entries),
        "total_deposits": deposits,
        "total_withdrawals": withdrawals,
        "net_cash_flow": deposits - withdrawals,
    }


# =============================================================================
# DB ENTRY POINTS
# =============================================================================

def _get_restaurant(restaurant_id: int) -> Restaurant:
    restaurant = db.session.get(Restaurant, restaurant_id)
    if not restaurant:
        raise NotFoundError(f"Restaurant {restaurant_id} not found")
    return restaurant


def load_confirmed_entries(restaurant_id: int) -> list[LedgerEntry]:
    rows = (
        db.session.query(BankTransaction)
        .filter(
            BankTransaction.restaurant_id == restaurant_id,
            BankTransaction.status == bank_service.STATUS_CONFIRMED,
        )
        .order_by(BankTransaction.date.asc(), BankTransaction.id.asc())
        .all()
    )
    return [LedgerEntry.from_transaction(txn) for txn in rows]


def resolve_window(
    *,
    days: int | None = None,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
    today: date | None = None,
) -> tuple[date, date]:
    """
    Explicit start/end win; otherwise the last `days` calendar days ending
    today (BALANCE_HISTORY_DEFAULT_DAYS when days is not given).
    """
    today = today or utcnow().date()
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()

    if start is not None or end is not None:
        end = end or today
        start = start or end
    else:
        if days is None:
            days = current_app.config.get("BALANCE_HISTORY_DEFAULT_DAYS", 30)
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError("days must be a positive integer")
        end = today
        start = today - timedelta(days=days - 1)

    if start > end:
        raise ValidationError("start must not be after end")
    return start, end


def get_analytics(
    restaurant_id: int,
    *,
    days: int | None = None,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
) -> dict:
    """Cash flow, breakdowns, balance history and totals over a window."""
    restaurant = _get_restaurant(restaurant_id)
    start, end = resolve_window(days=days, start=start, end=end)

    entries = load_confirmed_entries(restaurant_id)
    window = _in_window(entries, start, end)

    return {
        "restaurant_id": restaurant_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "cash_flow": daily_cash_flow(window, start, end),
        "balance_history": balance_history(entries, opening_balances(restaurant), start, end),
        **breakdown(window),
        "summary": summarize(window),
    }


def current_balances(restaurant_id: int) -> dict:
    """Opening balances plus every Confirmed transaction to date."""
    restaurant = _get_restaurant(restaurant_id)

    balances = {**_empty_balances(), **opening_balances(restaurant)}
    for entry in load_confirmed_entries(restaurant_id):
        balances[METHOD_KEYS[entry.method]] += entry.signed_amount

    return {"restaurant_id": restaurant_id, **_with_total(balances)}
