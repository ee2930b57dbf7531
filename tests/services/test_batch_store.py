"""
Tests for BatchStore: receipt, adjustment, status changes, reservations.

Every quantity change must move the batch, the product's cached stock and
the ledger together.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.domain.batch_status import BatchStatus, MovementType
from inventory_kernel.exceptions import (
    BatchNotFoundError,
    InsufficientStockError,
    InvalidArgumentError,
    InvalidOperationError,
    InvalidStatusTransitionError,
    NegativeQuantityError,
    ProductNotFoundError,
)


class TestCreateBatch:
    def test_receipt_updates_batch_product_and_ledger(self, receive, product, ledger, actor_id):
        batch = receive(quantity=10)

        assert batch.initial_quantity == 10
        assert batch.current_quantity == 10
        assert batch.reserved_quantity == 0
        assert batch.batch_status == BatchStatus.ACTIVE
        assert product.current_stock == 10

        [entry] = ledger.history_for_product(product.id)
        assert entry.movement_type == MovementType.PURCHASE.value
        assert entry.quantity == 10
        assert entry.previous_stock == 0
        assert entry.new_stock == 10
        assert entry.batch_id == batch.id
        assert entry.reference_number == f"BATCH-{batch.batch_number}"
        assert entry.total_cost == Decimal("80.00")
        assert entry.actor_id == actor_id

    def test_batch_numbers_follow_daily_sequence(self, receive, today):
        first = receive()
        second = receive()
        prefix = f"BATCH{today:%y%m%d}"
        assert first.batch_number == f"{prefix}001"
        assert second.batch_number == f"{prefix}002"
        assert second.receipt_sequence > first.receipt_sequence

    def test_latest_batch_overwrites_product_prices(self, receive, product):
        receive(cost_price="8.00", selling_price="10.00")
        receive(cost_price="9.00", selling_price="12.00")
        assert product.cost_price == Decimal("9.00")
        assert product.selling_price == Decimal("12.00")

    def test_purchase_order_reference_recorded(self, receive, product, ledger):
        receive(purchase_order_ref="PO-77", supplier_ref="SUP-1")
        [entry] = ledger.history_for_product(product.id)
        assert entry.reference_type == "purchase_order"
        assert entry.reference_id == "PO-77"

    def test_unknown_product(self, store):
        with pytest.raises(ProductNotFoundError):
            store.create_batch(uuid4(), 5, Decimal("1"), Decimal("2"))

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity(self, store, product, quantity):
        with pytest.raises(InvalidArgumentError):
            store.create_batch(product.id, quantity, Decimal("1"), Decimal("2"))

    def test_negative_cost(self, store, product):
        with pytest.raises(InvalidArgumentError):
            store.create_batch(product.id, 5, Decimal("-1"), Decimal("2"))

    def test_selling_above_explicit_mrp(self, store, product):
        with pytest.raises(InvalidArgumentError) as exc_info:
            store.create_batch(
                product.id, 5, Decimal("1"), Decimal("20"), mrp=Decimal("19.99")
            )
        assert exc_info.value.field == "selling_price"

    def test_selling_above_product_mrp(self, store, product):
        # product fixture carries MRP 50.00
        with pytest.raises(InvalidArgumentError):
            store.create_batch(product.id, 5, Decimal("1"), Decimal("50.01"))

    def test_manufacture_after_expiry(self, store, product, today):
        with pytest.raises(InvalidArgumentError):
            store.create_batch(
                product.id,
                5,
                Decimal("1"),
                Decimal("2"),
                manufacture_date=today,
                expiry_date=today - timedelta(days=1),
            )

    def test_naive_purchase_date_refused(self, store, product):
        with pytest.raises(InvalidArgumentError) as exc_info:
            store.create_batch(
                product.id,
                5,
                Decimal("1"),
                Decimal("2"),
                purchase_date=datetime(2024, 1, 1, 9, 0),
            )
        assert exc_info.value.field == "purchase_date"
        assert product.current_stock == 0

    def test_refused_receipt_writes_nothing(self, store, product, ledger):
        with pytest.raises(InvalidArgumentError):
            store.create_batch(product.id, 0, Decimal("1"), Decimal("2"))
        assert product.current_stock == 0
        assert ledger.history_for_product(product.id) == []

    def test_selling_below_cost_is_logged(self, receive, captured_logs):
        receive(cost_price="10.00", selling_price="9.00")
        messages = [r["message"] for r in captured_logs()]
        assert "batch_selling_below_cost" in messages
        assert "batch_created" in messages


class TestAdjustQuantity:
    def test_negative_adjustment(self, receive, store, product, ledger):
        batch = receive(quantity=10)
        store.adjust_quantity(batch.id, -3, "Shelf count")

        assert batch.current_quantity == 7
        assert product.current_stock == 7
        entry = ledger.history_for_batch(batch.id)[-1]
        assert entry.movement_type == MovementType.ADJUSTMENT.value
        assert entry.quantity == -3
        assert (entry.previous_stock, entry.new_stock) == (10, 7)
        assert entry.reference_number == f"ADJ-{batch.batch_number}"
        assert entry.reason == "Shelf count"

    def test_adjust_to_zero_depletes(self, receive, store):
        batch = receive(quantity=4)
        store.adjust_quantity(batch.id, -4, "Lost")
        assert batch.batch_status == BatchStatus.DEPLETED

    def test_restock_reactivates_depleted(self, receive, store, product):
        batch = receive(quantity=4)
        store.adjust_quantity(batch.id, -4, "Lost")
        store.adjust_quantity(batch.id, 2, "Found")
        assert batch.batch_status == BatchStatus.ACTIVE
        assert batch.current_quantity == 2
        assert product.current_stock == 2

    def test_below_zero_refused(self, receive, store, product):
        batch = receive(quantity=4)
        with pytest.raises(NegativeQuantityError) as exc_info:
            store.adjust_quantity(batch.id, -5, "Oops")
        assert exc_info.value.current_quantity == 4
        assert batch.current_quantity == 4
        assert product.current_stock == 4

    def test_below_reserved_refused(self, receive, store):
        batch = receive(quantity=5)
        store.reserve_quantity(batch.id, 3)
        with pytest.raises(InvalidOperationError):
            store.adjust_quantity(batch.id, -3, "Count")

    @pytest.mark.parametrize("delta", [0, 1.5, True])
    def test_invalid_delta(self, receive, store, delta):
        batch = receive()
        with pytest.raises(InvalidArgumentError):
            store.adjust_quantity(batch.id, delta, "Count")

    def test_expired_batch_not_adjustable(self, receive, store):
        batch = receive()
        store.set_status(batch.id, BatchStatus.EXPIRED, "Expired")
        with pytest.raises(InvalidOperationError):
            store.adjust_quantity(batch.id, 1, "Count")

    def test_unknown_batch(self, store):
        with pytest.raises(BatchNotFoundError):
            store.adjust_quantity(uuid4(), 1, "Count")


class TestSetStatus:
    def test_damage_writes_off_remaining(self, receive, store, product, ledger):
        batch = receive(quantity=6, cost_price="2.50")
        store.set_status(batch.id, "damaged", "Crushed pallet")

        assert batch.batch_status == BatchStatus.DAMAGED
        assert batch.current_quantity == 0
        assert product.current_stock == 0
        entry = ledger.history_for_batch(batch.id)[-1]
        assert entry.movement_type == MovementType.DAMAGE.value
        assert entry.quantity == -6
        assert entry.total_cost == Decimal("15.00")
        assert entry.reference_number == f"DAMAGED-{batch.batch_number}"

    def test_expire_writes_off_and_clears_reservations(self, receive, store, ledger):
        batch = receive(quantity=6)
        store.reserve_quantity(batch.id, 2)
        store.set_status(batch.id, BatchStatus.EXPIRED, "Expired")

        assert batch.reserved_quantity == 0
        assert batch.current_quantity == 0
        entry = ledger.history_for_batch(batch.id)[-1]
        assert entry.movement_type == MovementType.EXPIRED.value
        assert entry.quantity == -6

    def test_returned_is_metadata_only(self, receive, store, product, ledger):
        batch = receive(quantity=6)
        store.set_status(batch.id, BatchStatus.RETURNED, "Supplier recall")

        assert batch.batch_status == BatchStatus.RETURNED
        assert batch.current_quantity == 6
        assert product.current_stock == 6
        assert len(ledger.history_for_batch(batch.id)) == 1

    def test_damaged_can_be_reactivated_at_zero(self, receive, store, product):
        batch = receive(quantity=3)
        store.set_status(batch.id, BatchStatus.DAMAGED, "Dropped")
        store.set_status(batch.id, BatchStatus.ACTIVE, "Mistake")
        assert batch.batch_status == BatchStatus.ACTIVE
        assert batch.current_quantity == 0
        assert product.current_stock == 0

    def test_expired_is_terminal(self, receive, store):
        batch = receive()
        store.set_status(batch.id, BatchStatus.EXPIRED, "Expired")
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            store.set_status(batch.id, BatchStatus.ACTIVE, "Undo")
        assert exc_info.value.from_status == "expired"
        assert exc_info.value.to_status == "active"

    def test_depleted_cannot_be_requested(self, receive, store):
        batch = receive()
        with pytest.raises(InvalidArgumentError):
            store.set_status(batch.id, BatchStatus.DEPLETED, "Manual")

    def test_unknown_status(self, receive, store):
        batch = receive()
        with pytest.raises(InvalidArgumentError):
            store.set_status(batch.id, "spoiled", "Manual")

    def test_status_change_logged(self, receive, store, captured_logs):
        batch = receive()
        store.set_status(batch.id, BatchStatus.RETURNED, "Recall")
        [record] = [r for r in captured_logs() if r["message"] == "batch_status_changed"]
        assert record["from_status"] == "active"
        assert record["to_status"] == "returned"
        assert record["quantity_removed"] == 0


class TestReservations:
    def test_reserve_and_release(self, receive, store, product):
        batch = receive(quantity=5)
        store.reserve_quantity(batch.id, 3)
        assert batch.reserved_quantity == 3
        assert batch.available_quantity == 2
        assert product.current_stock == 5

        store.release_reserved_quantity(batch.id, 2)
        assert batch.reserved_quantity == 1

    def test_reserve_more_than_available(self, receive, store):
        batch = receive(quantity=5)
        store.reserve_quantity(batch.id, 4)
        with pytest.raises(InsufficientStockError) as exc_info:
            store.reserve_quantity(batch.id, 2)
        assert exc_info.value.available == 1

    def test_release_more_than_reserved(self, receive, store):
        batch = receive(quantity=5)
        store.reserve_quantity(batch.id, 1)
        with pytest.raises(InvalidOperationError):
            store.release_reserved_quantity(batch.id, 2)

    def test_reserve_requires_active(self, receive, store):
        batch = receive(quantity=5)
        store.set_status(batch.id, BatchStatus.RETURNED, "Recall")
        with pytest.raises(InvalidOperationError):
            store.reserve_quantity(batch.id, 1)
