"""
HTTP API tests.

Verifies:
- Requests without an actor return 401
- Non-manager roles are denied approvals and confirmations (403)
- Ledger errors map to their status codes with a typed error body
- Happy paths return the documented payloads
"""

import pytest
from backoffice.models import InventoryItem
from backoffice.services import bank_service, debt_service, production_service


# =============================================================================
# ACTOR / ROLE CHECKS
# =============================================================================


class TestActorHeaders:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/bank/transactions?restaurant_id=1"),
            ("POST", "/api/bank/transactions"),
            ("GET", "/api/bank/analytics?restaurant_id=1"),
            ("GET", "/api/debts?restaurant_id=1"),
            ("POST", "/api/debts/1/payments"),
            ("POST", "/api/inventory/1/adjust"),
            ("POST", "/api/inventory/transfer"),
            ("POST", "/api/production"),
            ("GET", "/api/reconciliation?restaurant_id=1"),
        ],
    )
    def test_missing_actor_is_401(self, client, db_session, method, path):
        response = client.open(path, method=method, json={})
        assert response.status_code == 401

    @pytest.mark.parametrize(
        "path",
        [
            "/api/bank/transactions/1/confirm",
            "/api/sales/1/approve",
            "/api/expenses/1/approve",
            "/api/expenses/1/payments",
            "/api/debts/1/write-off",
            "/api/reconciliation/1/approve",
        ],
    )
    def test_staff_denied_manager_actions(self, client, db_session, staff_headers, path):
        response = client.post(path, json={}, headers=staff_headers)
        assert response.status_code == 403
        assert "Manager" in response.get_json()["required_roles"]


class TestHealth:

    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"


# =============================================================================
# BANK
# =============================================================================


class TestBankRoutes:

    def test_record_and_confirm(self, client, db_session, restaurant, staff_headers, manager_headers):
        restaurant_id = restaurant.id

        response = client.post("/api/bank/transactions", headers=staff_headers, json={
            "restaurant_id": restaurant_id,
            "type": "Deposit",
            "method": "Cash",
            "reason": "CapitalInjection",
            "amount": 25_000,
        })
        assert response.status_code == 201
        txn = response.get_json()
        assert txn["status"] == "Pending"
        assert txn["created_by"] == "u-staff"

        response = client.post(
            f"/api/bank/transactions/{txn['id']}/confirm",
            headers=manager_headers,
            json={"bank_ref": "SLIP-9"},
        )
        assert response.status_code == 200
        assert response.get_json()["status"] == "Confirmed"

        response = client.post(f"/api/bank/transactions/{txn['id']}/confirm", headers=manager_headers)
        assert response.status_code == 409
        assert response.get_json()["code"] == "InvalidStateError"

        response = client.get(f"/api/bank/balances?restaurant_id={restaurant_id}", headers=staff_headers)
        assert response.get_json()["cash"] == 125_000

    def test_invalid_amount_is_400(self, client, db_session, restaurant, staff_headers):
        response = client.post("/api/bank/transactions", headers=staff_headers, json={
            "restaurant_id": restaurant.id,
            "type": "Deposit",
            "method": "Cash",
            "reason": "Other",
            "amount": -5,
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "ValidationError"

    def test_malformed_amount_is_400(self, client, db_session, restaurant, staff_headers):
        response = client.post("/api/bank/transactions", headers=staff_headers, json={
            "restaurant_id": restaurant.id,
            "type": "Deposit",
            "method": "Cash",
            "reason": "Other",
            "amount": "--5",
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "ValidationError"

    def test_get_transaction(self, client, db_session, restaurant, staff_headers):
        txn = bank_service.record_transaction(
            restaurant.id, type="Deposit", method="Card", reason="Other", amount=7_000,
        )

        response = client.get(f"/api/bank/transactions/{txn.id}", headers=staff_headers)
        assert response.status_code == 200
        assert response.get_json()["amount"] == 7_000

        response = client.get("/api/bank/transactions/99999", headers=staff_headers)
        assert response.status_code == 404

    def test_missing_fields(self, client, db_session, staff_headers):
        response = client.post("/api/bank/transactions", headers=staff_headers, json={"amount": 5})
        assert response.status_code == 400
        assert "restaurant_id" in response.get_json()["details"]["missing"]

    def test_body_must_be_object(self, client, db_session, staff_headers):
        response = client.post("/api/bank/transactions", headers=staff_headers, json=[1, 2])
        assert response.status_code == 400

    def test_list_requires_restaurant(self, client, db_session, staff_headers):
        response = client.get("/api/bank/transactions", headers=staff_headers)
        assert response.status_code == 400

    def test_analytics_days_must_be_integer(self, client, db_session, restaurant, staff_headers):
        response = client.get(
            f"/api/bank/analytics?restaurant_id={restaurant.id}&days=week", headers=staff_headers,
        )
        assert response.status_code == 400

    def test_analytics_window(self, client, db_session, restaurant, staff_headers):
        response = client.get(
            f"/api/bank/analytics?restaurant_id={restaurant.id}&days=7", headers=staff_headers,
        )
        assert response.status_code == 200
        body = response.get_json()
        assert len(body["balance_history"]) == 7
        assert body["balance_history"][-1]["cash"] == 100_000


# =============================================================================
# SALES / DEBTS / EXPENSES
# =============================================================================


class TestSaleRoutes:

    def test_approve_returns_deposit(self, client, db_session, sale, manager_headers):
        response = client.post(f"/api/sales/{sale.id}/approve", headers=manager_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body["sale"]["status"] == "Approved"
        assert body["bank_transaction"]["amount"] == 50_000

        response = client.post(f"/api/sales/{sale.id}/approve", headers=manager_headers)
        assert response.status_code == 409
        assert response.get_json()["code"] == "AlreadyProcessedError"

    def test_unknown_sale_is_404(self, client, db_session, manager_headers):
        response = client.post("/api/sales/99999/approve", headers=manager_headers)
        assert response.status_code == 404


class TestDebtRoutes:

    def test_create_and_pay(self, client, db_session, restaurant, customer, staff_headers):
        response = client.post("/api/debts", headers=staff_headers, json={
            "restaurant_id": restaurant.id,
            "customer_id": customer.id,
            "principal_amount": 10_000,
            "due_date": "2030-01-31",
        })
        assert response.status_code == 201
        debt_id = response.get_json()["id"]

        response = client.post(f"/api/debts/{debt_id}/payments", headers=staff_headers, json={
            "amount": 4_000,
            "payment_method": "Cash",
        })
        assert response.status_code == 201
        body = response.get_json()
        assert body["debt"]["status"] == "PartiallyPaid"
        assert body["debt"]["remaining_amount"] == 6_000
        assert body["bank_transaction"]["reason"] == "DebtCollection"
        assert body["bank_transaction"]["debt_payment_id"] == body["payment"]["id"]

        response = client.post(f"/api/debts/{debt_id}/payments", headers=staff_headers, json={
            "amount": 6_001,
            "payment_method": "Cash",
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "AmountExceedsRemainingError"

        response = client.get(f"/api/debts/{debt_id}/payments", headers=staff_headers)
        assert len(response.get_json()["payments"]) == 1

    def test_record_deposit_must_be_boolean(self, client, db_session, restaurant, customer, staff_headers):
        debt = debt_service.create_debt(restaurant.id, customer.id, 5_000)

        response = client.post(f"/api/debts/{debt.id}/payments", headers=staff_headers, json={
            "amount": 1_000,
            "payment_method": "Cash",
            "record_deposit": "false",
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "ValidationError"

        response = client.post(f"/api/debts/{debt.id}/payments", headers=staff_headers, json={
            "amount": 1_000,
            "payment_method": "Cash",
            "record_deposit": False,
        })
        assert response.status_code == 201
        assert response.get_json()["bank_transaction"] is None

    def test_delete_with_payments_is_409(self, client, db_session, restaurant, customer, manager_headers):
        debt = debt_service.create_debt(restaurant.id, customer.id, 5_000)
        debt_service.record_payment(debt.id, 1_000, "Cash")

        response = client.delete(f"/api/debts/{debt.id}", headers=manager_headers)
        assert response.status_code == 409
        assert response.get_json()["code"] == "HasPaymentsError"

    def test_write_off(self, client, db_session, restaurant, customer, manager_headers):
        debt = debt_service.create_debt(restaurant.id, customer.id, 5_000)

        response = client.post(
            f"/api/debts/{debt.id}/write-off", headers=manager_headers, json={"reason": "Left town"},
        )
        assert response.status_code == 200
        assert response.get_json()["status"] == "WrittenOff"


class TestExpenseRoutes:

    def test_pay_unapproved_is_409(self, client, db_session, expense, manager_headers):
        response = client.post(f"/api/expenses/{expense.id}/payments", headers=manager_headers, json={
            "amount": 1_000,
            "payment_method": "Cash",
        })
        assert response.status_code == 409
        assert response.get_json()["code"] == "NotApprovedError"

    def test_approve_and_pay(self, client, db_session, expense, manager_headers):
        expense_id = expense.id
        assert client.post(f"/api/expenses/{expense_id}/approve", headers=manager_headers).status_code == 200

        response = client.post(f"/api/expenses/{expense_id}/payments", headers=manager_headers, json={
            "amount": 50_000,
            "payment_method": "Cash",
        })
        assert response.status_code == 201
        assert response.get_json()["expense"]["payment_status"] == "Paid"

        response = client.get(f"/api/expenses/{expense_id}/payments", headers=manager_headers)
        summary = response.get_json()["summary"]
        assert summary["remaining_amount"] == 0
        assert summary["fully_paid_at"].endswith("Z")


# =============================================================================
# STOCK
# =============================================================================


class TestStockRoutes:

    def test_adjust_insufficient_is_400(self, client, db_session, flour, staff_headers):
        response = client.post(f"/api/inventory/{flour.id}/adjust", headers=staff_headers, json={
            "type": "Usage",
            "quantity": 50,
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "InsufficientStockError"

    def test_transfer(self, client, db_session, restaurant_b, flour, staff_headers):
        response = client.post("/api/inventory/transfer", headers=staff_headers, json={
            "source_item_id": flour.id,
            "target_restaurant_id": restaurant_b.id,
            "quantity": 5,
        })
        assert response.status_code == 201
        assert response.get_json()["quantity"] == 5

    def test_production_check_and_log(self, client, db_session, restaurant, flour, staff_headers):
        ingredients = [{"item_id": flour.id, "quantity": 2}]

        response = client.post("/api/production/check-availability", headers=staff_headers, json={
            "restaurant_id": restaurant.id,
            "ingredients": ingredients,
            "multiplier": 10,
        })
        assert response.status_code == 200
        assert response.get_json()["available"] is False

        response = client.post("/api/production", headers=staff_headers, json={
            "restaurant_id": restaurant.id,
            "product_name": "Baguette",
            "quantity": 30,
            "ingredients": ingredients,
        })
        assert response.status_code == 201
        assert response.get_json()["stock_deducted"] is True

    def test_deduct_stock_must_be_boolean(self, client, db_session, restaurant, flour, staff_headers):
        response = client.post("/api/production", headers=staff_headers, json={
            "restaurant_id": restaurant.id,
            "product_name": "Baguette",
            "quantity": 30,
            "ingredients": [{"item_id": flour.id, "quantity": 2}],
            "deduct_stock": "false",
        })
        assert response.status_code == 400
        assert db_session.get(InventoryItem, flour.id).current_stock == 10

    def test_production_log_lookup(self, client, db_session, restaurant, flour, staff_headers):
        log = production_service.log_production(
            restaurant.id, "Baguette", 30, [{"item_id": flour.id, "quantity": 2}], deduct_stock=False,
        )

        response = client.get(f"/api/production/{log.id}", headers=staff_headers)
        assert response.status_code == 200
        assert response.get_json()["product_name"] == "Baguette"

        response = client.get(f"/api/production?restaurant_id={restaurant.id}", headers=staff_headers)
        assert [row["id"] for row in response.get_json()["production_logs"]] == [log.id]

        response = client.get("/api/production/99999", headers=staff_headers)
        assert response.status_code == 404

    def test_reconciliation_flow(self, client, db_session, restaurant, flour, staff_headers, manager_headers):
        response = client.post("/api/reconciliation", headers=staff_headers, json={
            "restaurant_id": restaurant.id,
            "items": [{"item_id": flour.id, "physical_count": 7}],
        })
        assert response.status_code == 201
        recon = response.get_json()
        assert recon["total_variance"] == -3

        response = client.post(f"/api/reconciliation/{recon['id']}/approve", headers=manager_headers)
        assert response.status_code == 200
        assert response.get_json()["items"][0]["adjustment_applied"] is True


class TestCors:

    def test_allowed_origin_echoed(self, client, db_session):
        response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_unknown_origin_ignored(self, client, db_session):
        response = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in response.headers
