# Overview: Pytest coverage for physical stock reconciliation.

"""
Reconciliation Tests

Verifies:
1. Submission snapshots system stock and computes variance per line
2. Approval posts each non-zero variance as an Adjustment and sets stock
   to the physical count
3. Approved / Rejected are terminal
"""

import pytest
from backoffice.models import InventoryItem, StockMovement, ReconciliationItem
from backoffice.services import reconciliation_service, inventory_service
from backoffice.validation import ValidationError, NotFoundError, AlreadyProcessedError

from conftest import make_item


@pytest.fixture
def sugar(db_session, restaurant):
    return make_item(db_session, restaurant, "Sugar", stock=20)


def adjustments(db_session, item_id):
    return db_session.query(StockMovement).filter_by(item_id=item_id, type="Adjustment").all()


class TestCreateReconciliation:

    def test_snapshot_and_variance(self, db_session, restaurant, sugar, flour):
        recon = reconciliation_service.create_reconciliation(
            restaurant.id,
            [{"item_id": sugar.id, "physical_count": 15}, {"item_id": flour.id, "physical_count": 10}],
            notes="Monthly count",
            user_id="u1",
        )

        assert recon.status == reconciliation_service.RECON_STATUS_PENDING
        lines = {line.inventory_item_id: line for line in recon.items}
        assert lines[sugar.id].system_stock == 20
        assert lines[sugar.id].variance == -5
        assert lines[flour.id].variance == 0
        assert not any(line.adjustment_applied for line in recon.items)

        # Submitting does not touch stock
        assert db_session.get(InventoryItem, sugar.id).current_stock == 20

    def test_missing_items_listed(self, db_session, restaurant, restaurant_b, sugar):
        foreign = make_item(db_session, restaurant_b, "Salt")

        with pytest.raises(NotFoundError) as exc:
            reconciliation_service.create_reconciliation(restaurant.id, [
                {"item_id": sugar.id, "physical_count": 1},
                {"item_id": foreign.id, "physical_count": 1},
                {"item_id": 99999, "physical_count": 1},
            ])

        assert exc.value.details["missing_ids"] == [foreign.id, 99999]
        assert db_session.query(ReconciliationItem).count() == 0

    def test_duplicate_item_rejected(self, db_session, restaurant, sugar):
        with pytest.raises(ValidationError):
            reconciliation_service.create_reconciliation(restaurant.id, [
                {"item_id": sugar.id, "physical_count": 1},
                {"item_id": sugar.id, "physical_count": 2},
            ])

    def test_negative_count_rejected(self, db_session, restaurant, sugar):
        with pytest.raises(ValidationError):
            reconciliation_service.create_reconciliation(
                restaurant.id, [{"item_id": sugar.id, "physical_count": -1}],
            )

    def test_empty_count_rejected(self, db_session, restaurant):
        with pytest.raises(ValidationError):
            reconciliation_service.create_reconciliation(restaurant.id, [])

    def test_zero_count_allowed(self, db_session, restaurant, sugar):
        recon = reconciliation_service.create_reconciliation(
            restaurant.id, [{"item_id": sugar.id, "physical_count": 0}],
        )
        assert recon.items[0].variance == -20


class TestApproveReconciliation:

    def test_variance_posted_and_stock_set(self, db_session, restaurant, sugar):
        recon = reconciliation_service.create_reconciliation(
            restaurant.id, [{"item_id": sugar.id, "physical_count": 15}],
        )

        approved = reconciliation_service.approve_reconciliation(recon.id, user_id="m1", user_name="Mariama")

        assert approved.status == reconciliation_service.RECON_STATUS_APPROVED
        assert approved.approved_by == "m1"
        assert approved.approved_at is not None
        assert all(line.adjustment_applied for line in approved.items)

        moves = adjustments(db_session, sugar.id)
        assert [m.quantity for m in moves] == [-5]
        assert moves[0].reason == "Reconciliation: physical count 15, system had 20"
        assert db_session.get(InventoryItem, sugar.id).current_stock == 15

    def test_stock_is_set_not_incremented(self, db_session, restaurant, sugar):
        recon = reconciliation_service.create_reconciliation(
            restaurant.id, [{"item_id": sugar.id, "physical_count": 15}],
        )
        # Stock moves between the count and the approval
        inventory_service.adjust_stock(sugar.id, "Usage", 2)

        reconciliation_service.approve_reconciliation(recon.id)

        assert db_session.get(InventoryItem, sugar.id).current_stock == 15
        assert [m.quantity for m in adjustments(db_session, sugar.id)] == [-5]

        drift = inventory_service.verify_stock_ledger(restaurant.id)
        assert [(row["item_id"], row["drift"]) for row in drift] == [(sugar.id, 2)]

    def test_zero_variance_writes_no_movement(self, db_session, restaurant, flour):
        recon = reconciliation_service.create_reconciliation(
            restaurant.id, [{"item_id": flour.id, "physical_count": 10}],
        )
        approved = reconciliation_service.approve_reconciliation(recon.id)

        assert adjustments(db_session, flour.id) == []
        assert approved.items[0].adjustment_applied is True

    def test_approve_twice(self, db_session, restaurant, sugar):
        recon = reconciliation_service.create_reconciliation(
            restaurant.id, [{"item_id": sugar.id, "physical_count": 15}],
        )
        reconciliation_service.approve_reconciliation(recon.id)

        with pytest.raises(AlreadyProcessedError):
            reconciliation_service.approve_reconciliation(recon.id)
        assert len(adjustments(db_session, sugar.id)) == 1

    def test_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            reconciliation_service.approve_reconciliation(99999)



class TestApprovalAtomicity:
    """Approval posts every line or none of them."""

    def test_failure_on_second_line_rolls_back_first(self, db_session, restaurant, sugar, flour, monkeypatch):
        sugar_id, flour_id = sugar.id, flour.id
        recon = reconciliation_service.create_reconciliation(restaurant.id, [
            {"item_id": sugar_id, "physical_count": 15},
            {"item_id": flour_id, "physical_count": 7},
        ])
        recon_id = recon.id

        real_apply = inventory_service.apply_movement
        calls = []

        def fail_on_second(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError("simulated crash on the second count line")
            return real_apply(*args, **kwargs)

        monkeypatch.setattr(inventory_service, "apply_movement", fail_on_second)

        with pytest.raises(RuntimeError):
            reconciliation_service.approve_reconciliation(recon_id, user_id="m1")

        assert len(calls) == 2
        assert adjustments(db_session, sugar_id) == []
        assert adjustments(db_session, flour_id) == []
        assert db_session.get(InventoryItem, sugar_id).current_stock == 20
        assert db_session.get(InventoryItem, flour_id).current_stock == 10

        reloaded = reconciliation_service.get_reconciliation_summary(recon_id)
        assert reloaded["status"] == reconciliation_service.RECON_STATUS_PENDING
        assert not any(line["adjustment_applied"] for line in reloaded["items"])

        # Still Pending, so a clean retry goes through
        monkeypatch.setattr(inventory_service, "apply_movement", real_apply)
        reconciliation_service.approve_reconciliation(recon_id)
        assert db_session.get(InventoryItem, flour_id).current_stock == 7

class TestRejectReconciliation:

    def test_reject_leaves_stock_alone(self, db_session, restaurant, sugar):
        recon = reconciliation_service.create_reconciliation(
            restaurant.id, [{"item_id": sugar.id, "physical_count": 15}],
        )

        rejected = reconciliation_service.reject_reconciliation(recon.id)

        assert rejected.status == reconciliation_service.RECON_STATUS_REJECTED
        assert db_session.get(InventoryItem, sugar.id).current_stock == 20
        assert adjustments(db_session, sugar.id) == []

        with pytest.raises(AlreadyProcessedError):
            reconciliation_service.approve_reconciliation(recon.id)


class TestSummary:

    def test_summary_and_listing(self, db_session, restaurant, sugar, flour):
        recon = reconciliation_service.create_reconciliation(restaurant.id, [
            {"item_id": sugar.id, "physical_count": 18},
            {"item_id": flour.id, "physical_count": 11},
        ])

        summary = reconciliation_service.get_reconciliation_summary(recon.id)
        assert summary["total_variance"] == -1
        assert {line["item_name"] for line in summary["items"]} == {"Sugar", "Flour"}

        pending = reconciliation_service.list_reconciliations(restaurant.id, status="Pending")
        assert [r.id for r in pending] == [recon.id]
        assert reconciliation_service.list_reconciliations(restaurant.id, status="Approved") == []
