# Overview: Pytest coverage for the Flask CLI command groups.

from datetime import datetime

import pytest
from backoffice.models import Restaurant, Debt
from backoffice.services import debt_service

from conftest import make_item


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestRestaurantCommands:

    def test_create_and_list(self, runner, db_session):
        result = runner.invoke(args=["restaurants", "create", "--name", "Dixinn", "--cash", "5000", "--mode", "deferred"])
        assert "PASS Created restaurant: Dixinn" in result.output

        created = db_session.query(Restaurant).filter_by(name="Dixinn").one()
        assert created.initial_cash_balance == 5000
        assert created.stock_deduction_mode == "deferred"

        result = runner.invoke(args=["restaurants", "list"])
        assert "Dixinn" in result.output

    def test_duplicate_name(self, runner, db_session, restaurant):
        result = runner.invoke(args=["restaurants", "create", "--name", "Kaloum"])
        assert "FAIL" in result.output
        assert db_session.query(Restaurant).filter_by(name="Kaloum").count() == 1


class TestLedgerCommands:

    def test_verify_stock_consistent(self, runner, db_session, restaurant, flour):
        result = runner.invoke(args=["ledger", "verify-stock", "--restaurant-id", str(restaurant.id)])
        assert "PASS" in result.output

    def test_verify_stock_reports_drift(self, runner, db_session, restaurant):
        item = make_item(db_session, restaurant, "Yeast", stock=3)
        item.current_stock = 1
        db_session.commit()

        result = runner.invoke(args=["ledger", "verify-stock", "--restaurant-id", str(restaurant.id)])
        assert "1 item(s) drift" in result.output
        assert "Yeast" in result.output

    def test_balances(self, runner, db_session, restaurant):
        result = runner.invoke(args=["ledger", "balances", "--restaurant-id", str(restaurant.id)])
        assert "100,000" in result.output

    def test_balances_unknown_restaurant(self, runner, db_session):
        result = runner.invoke(args=["ledger", "balances", "--restaurant-id", "99999"])
        assert "FAIL" in result.output


class TestDebtCommands:

    def test_refresh_statuses(self, runner, db_session, restaurant, customer):
        debt = debt_service.create_debt(restaurant.id, customer.id, 1_000)
        debt_service.record_payment(debt.id, 100, "Cash")
        debt_id = debt.id

        # Due date in the past, set after the payment
        stored = db_session.get(Debt, debt_id)
        stored.due_date = datetime(2020, 1, 31)
        db_session.commit()

        result = runner.invoke(args=["debts", "refresh-statuses", "--restaurant-id", str(restaurant.id)])

        assert "1 debt(s) changed" in result.output
        assert db_session.get(Debt, debt_id).status == "Overdue"
