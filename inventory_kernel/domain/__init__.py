"""
Pure domain layer.

Value objects, enumerations and the batch status machine, with NO
dependencies on the ORM, the database or I/O (except SystemClock).
"""

from inventory_kernel.domain.batch_number import format_batch_number
from inventory_kernel.domain.batch_status import (
    VALID_TRANSITIONS,
    BatchStatus,
    MovementType,
    can_transition,
)
from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.values import (
    AdjustmentLine,
    BatchExpiryCheck,
    BatchSnapshot,
    ConsumedBatch,
    ConsumptionResult,
    ExpiredBatch,
    ExpiringBatch,
    ProductBatchSummary,
    ReceiptLine,
    SaleLine,
    SweepFailure,
    SweepReport,
)

__all__ = [
    "AdjustmentLine",
    "BatchExpiryCheck",
    "BatchSnapshot",
    "BatchStatus",
    "Clock",
    "ConsumedBatch",
    "ConsumptionResult",
    "DeterministicClock",
    "ExpiredBatch",
    "ExpiringBatch",
    "MovementType",
    "ProductBatchSummary",
    "ReceiptLine",
    "SaleLine",
    "SweepFailure",
    "SweepReport",
    "SystemClock",
    "VALID_TRANSITIONS",
    "can_transition",
    "format_batch_number",
]
