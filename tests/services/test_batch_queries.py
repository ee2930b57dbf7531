"""Tests for BatchQueryService (read side)."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.domain.batch_status import BatchStatus
from inventory_kernel.exceptions import (
    BatchNotFoundError,
    InvalidArgumentError,
    ProductNotFoundError,
)
from inventory_kernel.services.batch_queries import BatchQueryService


@pytest.fixture
def queries(session, clock):
    return BatchQueryService(session, clock)


class TestProductBatches:
    def test_active_only_by_default(self, receive, store, product, queries):
        kept = receive(quantity=2)
        gone = receive(quantity=2)
        store.set_status(gone.id, BatchStatus.DAMAGED, "Broken")

        assert [b.id for b in queries.batches_for_product(product.id)] == [kept.id]
        assert len(queries.batches_for_product(product.id, include_inactive=True)) == 2

    def test_unknown_product(self, queries):
        with pytest.raises(ProductNotFoundError):
            queries.batches_for_product(uuid4())

    def test_summary(self, receive, store, product, queries):
        b1 = receive(quantity=4, cost_price="2.00", selling_price="3.00")
        receive(quantity=6, cost_price="2.50", selling_price="4.00")
        store.reserve_quantity(b1.id, 1)

        summary = queries.product_summary(product.id)

        assert summary.total_batches == 2
        assert summary.active_batches == 2
        assert summary.available_quantity == 9
        assert summary.total_cost_value == Decimal("23.00")
        assert summary.min_selling_price == Decimal("3.00")
        assert summary.max_selling_price == Decimal("4.00")

    def test_batch_details(self, receive, store, queries):
        batch = receive(quantity=3)
        store.adjust_quantity(batch.id, -1, "Count")
        found, movements = queries.batch_details(batch.id)
        assert found.id == batch.id
        assert [m.quantity for m in movements] == [3, -1]

    def test_batch_details_unknown(self, queries):
        with pytest.raises(BatchNotFoundError):
            queries.batch_details(uuid4())


class TestExpiryQueries:
    def test_expiring_within_window(self, receive, queries, today):
        receive(quantity=1, expiry_in_days=-1)
        soon = receive(quantity=2, expiry_in_days=3)
        edge = receive(quantity=2, expiry_in_days=7)
        receive(quantity=2, expiry_in_days=8)
        due_today = receive(quantity=2, expiry_in_days=0)

        expiring = queries.expiring_within(7)

        assert [e.batch_id for e in expiring] == [due_today.id, soon.id, edge.id]
        assert expiring[1].days_until_expiry == 3
        assert expiring[1].value_at_risk == Decimal("16.00")

    def test_negative_window_refused(self, queries):
        with pytest.raises(InvalidArgumentError):
            queries.expiring_within(-1)

    def test_check_batch_expiry(self, receive, queries):
        stale = receive(quantity=1, expiry_in_days=-2)
        check = queries.check_batch_expiry(stale.id)
        assert check.is_expired
        assert check.needs_update
        assert check.days_until_expiry == -2

    def test_check_fresh_batch(self, receive, queries):
        fresh = receive(quantity=1, expiry_in_days=0)
        check = queries.check_batch_expiry(fresh.id)
        assert not check.is_expired
        assert not check.needs_update
        assert check.days_until_expiry == 0
