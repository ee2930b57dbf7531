"""
BatchNumberAllocator -- per-product batch number allocation.

Responsibility:
    Hands out batch numbers of the form ``BATCH{yy}{mm}{dd}{seq:03}`` where
    ``seq`` counts the product's batches received that day.  Backed by the
    locked counters of SequenceService, so two concurrent receipts for the
    same product never draw the same number.

Architecture position:
    Kernel > Services.  Injected into BatchStore.  Allocation runs in the
    batch creation transaction: if creation aborts, the number is returned.

Failure modes:
    - Any exception from the sequence service aborts batch creation.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.batch_number import batch_sequence_name, format_batch_number
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.services.sequence_service import SequenceService


class BatchIdAllocator(Protocol):
    """Anything that can hand out the next batch number for a product."""

    def next_batch_number(self, product_id: UUID) -> str: ...


class BatchNumberAllocator:
    """Default allocator: per-product, per-day locked counter."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._clock = clock or SystemClock()
        self._sequences = sequence_service or SequenceService(session)

    def next_batch_number(self, product_id: UUID) -> str:
        today = self._clock.today()
        seq = self._sequences.next_value(batch_sequence_name(product_id, today))
        return format_batch_number(today, seq)
