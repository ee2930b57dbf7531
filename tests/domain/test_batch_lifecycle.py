"""Tests for the batch status machine and batch number format (pure domain)."""

from datetime import date
from uuid import UUID

import pytest

from inventory_kernel.domain.batch_number import batch_sequence_name, format_batch_number
from inventory_kernel.domain.batch_status import (
    ADJUSTABLE_STATUSES,
    SETTABLE_STATUSES,
    VALID_TRANSITIONS,
    WRITE_OFF_STATUSES,
    BatchStatus,
    MovementType,
    can_transition,
    status_after_quantity_change,
)


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (BatchStatus.ACTIVE, BatchStatus.DEPLETED),
            (BatchStatus.ACTIVE, BatchStatus.EXPIRED),
            (BatchStatus.ACTIVE, BatchStatus.DAMAGED),
            (BatchStatus.ACTIVE, BatchStatus.RETURNED),
            (BatchStatus.DEPLETED, BatchStatus.ACTIVE),
            (BatchStatus.DEPLETED, BatchStatus.EXPIRED),
            (BatchStatus.RETURNED, BatchStatus.ACTIVE),
            (BatchStatus.DAMAGED, BatchStatus.ACTIVE),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (BatchStatus.EXPIRED, BatchStatus.ACTIVE),
            (BatchStatus.EXPIRED, BatchStatus.DAMAGED),
            (BatchStatus.DAMAGED, BatchStatus.EXPIRED),
            (BatchStatus.DEPLETED, BatchStatus.RETURNED),
            (BatchStatus.ACTIVE, BatchStatus.ACTIVE),
        ],
    )
    def test_refused(self, current, target):
        assert not can_transition(current, target)

    def test_expired_is_terminal(self):
        assert VALID_TRANSITIONS[BatchStatus.EXPIRED] == frozenset()

    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(BatchStatus)

    def test_depleted_is_not_settable(self):
        assert BatchStatus.DEPLETED not in SETTABLE_STATUSES

    def test_write_off_movement_types(self):
        assert WRITE_OFF_STATUSES == {
            BatchStatus.EXPIRED: MovementType.EXPIRED,
            BatchStatus.DAMAGED: MovementType.DAMAGE,
        }

    def test_only_active_and_depleted_adjustable(self):
        assert ADJUSTABLE_STATUSES == {BatchStatus.ACTIVE, BatchStatus.DEPLETED}

    def test_string_values_compare_equal(self):
        assert BatchStatus("active") is BatchStatus.ACTIVE
        assert BatchStatus.EXPIRED.value == "expired"


class TestQuantityDrivenStatus:
    def test_active_to_depleted_at_zero(self):
        assert status_after_quantity_change(BatchStatus.ACTIVE, 0) == BatchStatus.DEPLETED

    def test_active_stays_active_above_zero(self):
        assert status_after_quantity_change(BatchStatus.ACTIVE, 3) == BatchStatus.ACTIVE

    def test_depleted_reactivates_when_restocked(self):
        assert status_after_quantity_change(BatchStatus.DEPLETED, 1) == BatchStatus.ACTIVE

    def test_depleted_stays_depleted_at_zero(self):
        assert status_after_quantity_change(BatchStatus.DEPLETED, 0) == BatchStatus.DEPLETED

    @pytest.mark.parametrize("status", [BatchStatus.EXPIRED, BatchStatus.DAMAGED, BatchStatus.RETURNED])
    def test_other_statuses_untouched(self, status):
        assert status_after_quantity_change(status, 0) == status
        assert status_after_quantity_change(status, 5) == status


class TestBatchNumber:
    def test_format(self):
        assert format_batch_number(date(2024, 3, 7), 1) == "BATCH240307001"

    def test_three_digit_padding_grows_past_999(self):
        assert format_batch_number(date(2024, 3, 7), 1000) == "BATCH2403071000"

    def test_non_positive_sequence_rejected(self):
        with pytest.raises(ValueError):
            format_batch_number(date(2024, 3, 7), 0)

    def test_sequence_name_is_per_product_per_day(self):
        pid = UUID("00000000-0000-0000-0000-000000000001")
        assert batch_sequence_name(pid, date(2024, 3, 7)) == f"batch:{pid}:240307"
        assert batch_sequence_name(pid, date(2024, 3, 8)) != batch_sequence_name(
            pid, date(2024, 3, 7)
        )
