"""
Tests for FifoConsumptionEngine.

Covers oldest-first ordering, blended cost, all-or-nothing refusal, and the
batches FIFO must skip (expired, expiring today, reserved, non-active).
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from inventory_kernel.domain.batch_status import BatchStatus, MovementType
from inventory_kernel.exceptions import InsufficientStockError, InvalidArgumentError


class TestOrdering:
    def test_splits_across_batches_oldest_first(self, receive, fifo, product, ledger):
        b1 = receive(quantity=5, cost_price="10.00", selling_price="15.00")
        b2 = receive(quantity=5, cost_price="12.00", selling_price="18.00")

        result = fifo.consume(product.id, 7)

        assert [(u.batch_id, u.quantity) for u in result.batches_used] == [
            (b1.id, 5),
            (b2.id, 2),
        ]
        assert result.total_cost == Decimal("74.00")
        assert result.total_revenue == Decimal("111.00")
        assert b1.current_quantity == 0
        assert b1.batch_status == BatchStatus.DEPLETED
        assert b2.current_quantity == 3
        assert b2.batch_status == BatchStatus.ACTIVE
        assert product.current_stock == 3

    def test_earlier_purchase_date_wins_over_receipt_order(self, receive, fifo, product, clock):
        late = receive(quantity=3, purchase_date=clock.now())
        early = receive(quantity=3, purchase_date=clock.now() - timedelta(days=2))

        result = fifo.consume(product.id, 2)

        assert result.batches_used[0].batch_id == early.id
        assert late.current_quantity == 3

    def test_same_purchase_time_falls_back_to_receipt_order(self, receive, fifo, product):
        stamp = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        first = receive(quantity=2, purchase_date=stamp)
        receive(quantity=2, purchase_date=stamp)

        result = fifo.consume(product.id, 1)

        assert result.batches_used[0].batch_id == first.id

    def test_purchase_times_compared_as_instants(self, receive, fifo, product, session):
        ist = timezone(timedelta(hours=5, minutes=30))
        utc_morning = receive(
            quantity=3, purchase_date=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        )
        # 12:00 IST is 06:30 UTC, earlier than the first receipt
        older = receive(quantity=3, purchase_date=datetime(2024, 1, 1, 12, 0, tzinfo=ist))

        assert older.purchase_date == datetime(2024, 1, 1, 6, 30, tzinfo=timezone.utc)
        session.expire_all()
        result = fifo.consume(product.id, 4)

        assert [(u.batch_id, u.quantity) for u in result.batches_used] == [
            (older.id, 3),
            (utc_morning.id, 1),
        ]


class TestLedger:
    def test_one_sale_entry_per_batch_chaining_stock(self, receive, fifo, product, ledger, actor_id):
        receive(quantity=5)
        receive(quantity=5)

        result = fifo.consume(product.id, 7, actor_id=actor_id)

        sales = [m for m in ledger.history_for_product(product.id)
                 if m.movement_type == MovementType.SALE.value]
        assert [(m.quantity, m.previous_stock, m.new_stock) for m in sales] == [
            (-5, 10, 5),
            (-2, 5, 3),
        ]
        assert {m.reference_number for m in sales} == {result.reference_number}
        assert result.reference_number.startswith("SALE-")

    def test_caller_reference_number_kept(self, receive, fifo, product):
        receive(quantity=5)
        result = fifo.consume(product.id, 1, reference_number="POS-0001")
        assert result.reference_number == "POS-0001"


class TestRefusals:
    def test_insufficient_stock_changes_nothing(self, receive, fifo, product, ledger):
        b1 = receive(quantity=3)
        b2 = receive(quantity=2)

        with pytest.raises(InsufficientStockError) as exc_info:
            fifo.consume(product.id, 6)

        assert exc_info.value.requested == 6
        assert exc_info.value.available == 5
        assert (b1.current_quantity, b2.current_quantity) == (3, 2)
        assert product.current_stock == 5
        assert len(ledger.history_for_product(product.id)) == 2

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_request(self, receive, fifo, product, quantity):
        receive(quantity=3)
        with pytest.raises(InvalidArgumentError):
            fifo.consume(product.id, quantity)


class TestEligibility:
    def test_expiring_today_is_not_sellable(self, receive, fifo, product):
        receive(quantity=5, expiry_in_days=0)
        with pytest.raises(InsufficientStockError) as exc_info:
            fifo.consume(product.id, 1)
        assert exc_info.value.available == 0

    def test_past_expiry_skipped_for_later_batch(self, receive, fifo, product):
        stale = receive(quantity=5, expiry_in_days=-1)
        fresh = receive(quantity=5, expiry_in_days=10)

        result = fifo.consume(product.id, 3)

        assert [u.batch_id for u in result.batches_used] == [fresh.id]
        assert stale.current_quantity == 5

    def test_no_expiry_is_always_sellable(self, receive, fifo, product):
        batch = receive(quantity=2, expiry_in_days=None)
        result = fifo.consume(product.id, 2)
        assert result.batches_used[0].batch_id == batch.id

    def test_reserved_quantity_is_skipped(self, receive, store, fifo, product):
        b1 = receive(quantity=5)
        b2 = receive(quantity=5)
        store.reserve_quantity(b1.id, 4)

        result = fifo.consume(product.id, 3)

        assert [(u.batch_id, u.quantity) for u in result.batches_used] == [
            (b1.id, 1),
            (b2.id, 2),
        ]
        assert b1.current_quantity == 4
        assert b1.reserved_quantity == 4

    def test_returned_batch_is_skipped(self, receive, store, fifo, product):
        returned = receive(quantity=5)
        store.set_status(returned.id, BatchStatus.RETURNED, "Recall")
        receive(quantity=5)

        result = fifo.consume(product.id, 5)

        assert returned.id not in {u.batch_id for u in result.batches_used}

    def test_eligible_batches_listing(self, receive, fifo, product):
        receive(quantity=1, expiry_in_days=-3)
        ok = receive(quantity=1, expiry_in_days=3)
        assert [b.id for b in fifo.eligible_batches(product.id)] == [ok.id]

    def test_completion_logged(self, receive, fifo, product, captured_logs):
        receive(quantity=5)
        fifo.consume(product.id, 2)
        [record] = [r for r in captured_logs() if r["message"] == "fifo_consumption_completed"]
        assert record["quantity_sold"] == 2
        assert record["batch_count"] == 1
