# Overview: Pytest coverage for balance reconstruction and analytics.

"""
Balance Reconstruction Tests

The fold functions are exercised on plain LedgerEntry sequences; the DB
entry points are checked for which transactions they include.
"""

from datetime import date, datetime

import pytest
from backoffice.services import balance_service, bank_service
from backoffice.services.balance_service import LedgerEntry
from backoffice.validation import ValidationError, NotFoundError


OPENING = {"cash": 100_000, "orange_money": 0, "card": 0}


def entry(day, amount, type="Deposit", method="Cash", reason="SalesDeposit", hour=12):
    return LedgerEntry(
        date=datetime(2026, 3, day, hour, 0),
        type=type,
        method=method,
        amount=amount,
        reason=reason,
    )


class TestBalanceHistory:

    def test_gap_filled_running_balance(self):
        entries = [entry(2, 10_000), entry(5, 10_000)]

        history = balance_service.balance_history(entries, OPENING, date(2026, 3, 1), date(2026, 3, 7))

        assert [row["date"] for row in history] == [f"2026-03-0{d}" for d in range(1, 8)]
        assert [row["cash"] for row in history] == [
            100_000, 110_000, 110_000, 110_000, 120_000, 120_000, 120_000,
        ]
        assert all(row["total"] == row["cash"] for row in history)

    def test_seeded_from_activity_before_window(self):
        entries = [entry(1, 5_000), entry(2, 2_000, type="Withdrawal", reason="OwnerWithdrawal")]

        history = balance_service.balance_history(entries, OPENING, date(2026, 3, 4), date(2026, 3, 5))

        assert [row["cash"] for row in history] == [103_000, 103_000]

    def test_methods_tracked_separately(self):
        entries = [entry(2, 7_000, method="OrangeMoney"), entry(2, 1_000, type="Withdrawal", method="Card", reason="Other")]

        history = balance_service.balance_history(entries, OPENING, date(2026, 3, 2), date(2026, 3, 2))

        row = history[0]
        assert (row["cash"], row["orange_money"], row["card"]) == (100_000, 7_000, -1_000)
        assert row["total"] == 106_000

    def test_unsorted_input(self):
        entries = [entry(5, 10_000), entry(2, 10_000)]
        snapshots = balance_service.build_balance_snapshots(entries, OPENING)

        assert list(snapshots) == ["2026-03-02", "2026-03-05"]
        assert snapshots["2026-03-05"]["cash"] == 120_000


class TestCashFlowAndBreakdown:

    def test_daily_cash_flow_has_every_day(self):
        entries = [
            entry(2, 10_000),
            entry(2, 3_000, type="Withdrawal", reason="ExpensePayment"),
            entry(4, 6_000, method="Card"),
        ]

        rows = balance_service.daily_cash_flow(entries, date(2026, 3, 1), date(2026, 3, 4))

        assert [r["date"] for r in rows] == ["2026-03-01", "2026-03-02", "2026-03-03", "2026-03-04"]
        assert rows[0]["net"] == 0
        assert (rows[1]["deposits"], rows[1]["withdrawals"], rows[1]["net"]) == (10_000, 3_000, 7_000)
        assert rows[3]["by_method"]["card"]["deposits"] == 6_000

    def test_breakdown_by_reason_and_method(self):
        entries = [
            entry(2, 30_000),
            entry(3, 10_000, reason="DebtCollection", method="OrangeMoney"),
            entry(3, 10_000, type="Withdrawal", reason="ExpensePayment"),
        ]

        result = balance_service.breakdown(entries)

        assert result["by_reason"][0] == {"reason": "SalesDeposit", "amount": 30_000, "percentage": 60}
        assert {r["reason"]: r["percentage"] for r in result["by_reason"]} == {
            "SalesDeposit": 60, "DebtCollection": 20, "ExpensePayment": 20,
        }
        assert result["by_method"]["cash"] == {"deposits": 30_000, "withdrawals": 10_000, "net": 20_000}

    def test_empty_breakdown(self):
        result = balance_service.breakdown([])
        assert result["by_reason"] == []
        assert result["by_method"]["cash"]["net"] == 0

    def test_summarize(self):
        summary = balance_service.summarize([entry(2, 10_000), entry(3, 4_000, type="Withdrawal", reason="Other")])
        assert summary == {
            "transaction_count": 2,
            "total_deposits": 10_000,
            "total_withdrawals": 4_000,
            "net_cash_flow": 6_000,
        }


class TestResolveWindow:

    def test_days_is_inclusive_of_today(self):
        start, end = balance_service.resolve_window(days=7, today=date(2026, 3, 10))
        assert (start, end) == (date(2026, 3, 4), date(2026, 3, 10))

    def test_explicit_range_wins(self):
        start, end = balance_service.resolve_window(
            days=7, start=datetime(2026, 1, 1, 9), end=date(2026, 1, 3), today=date(2026, 3, 10),
        )
        assert (start, end) == (date(2026, 1, 1), date(2026, 1, 3))

    @pytest.mark.parametrize("days", [0, -1])
    def test_invalid_days(self, days):
        with pytest.raises(ValidationError):
            balance_service.resolve_window(days=days, today=date(2026, 3, 10))

    def test_start_after_end(self):
        with pytest.raises(ValidationError):
            balance_service.resolve_window(start=date(2026, 3, 5), end=date(2026, 3, 1))


class TestAnalyticsFromLedger:

    def _deposit(self, restaurant_id, day, amount, confirm=True):
        txn = bank_service.record_transaction(
            restaurant_id, type="Deposit", method="Cash", reason="SalesDeposit",
            amount=amount, date=f"2026-03-0{day}T10:00:00",
        )
        if confirm:
            bank_service.confirm_transaction(txn.id)
        return txn

    def test_only_confirmed_transactions_count(self, db_session, restaurant):
        self._deposit(restaurant.id, 2, 10_000)
        self._deposit(restaurant.id, 5, 10_000)
        self._deposit(restaurant.id, 6, 99_000, confirm=False)

        result = balance_service.get_analytics(
            restaurant.id, start=date(2026, 3, 1), end=date(2026, 3, 7),
        )

        assert [row["cash"] for row in result["balance_history"]] == [
            100_000, 110_000, 110_000, 110_000, 120_000, 120_000, 120_000,
        ]
        assert result["summary"]["total_deposits"] == 20_000
        assert len(result["cash_flow"]) == 7
        assert result["start"] == "2026-03-01"

    def test_current_balances(self, db_session, restaurant):
        self._deposit(restaurant.id, 2, 10_000)
        self._deposit(restaurant.id, 3, 5_000, confirm=False)

        balances = balance_service.current_balances(restaurant.id)

        assert balances["cash"] == 110_000
        assert balances["orange_money"] == 20_000
        assert balances["total"] == 130_000

    def test_unknown_restaurant(self, db_session):
        with pytest.raises(NotFoundError):
            balance_service.current_balances(99999)
