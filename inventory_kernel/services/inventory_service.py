"""
InventoryService -- public entry point for inventory mutations.

Responsibility:
    Runs batch receipt, FIFO consumption, adjustment, status change and
    reservation through the TransactionCoordinator and returns typed
    ``InventoryResult`` values.  Bills, goods receipts and stock counts
    run all of their lines in a single unit of work.  Expected,
    user-actionable refusals (not found, invalid argument, invalid
    operation, insufficient stock) come back as results; retryable
    infrastructure failures propagate.

Architecture position:
    Kernel > Services -- orchestration.  Request handlers call this; it
    builds BatchStore / FifoConsumptionEngine per unit of work.

Invariants enforced:
    - Every mutation runs in exactly one unit of work.  A refused operation
      has been rolled back before its result is returned.
    - Results carry detached snapshots, never live ORM objects.
    - Multi-line operations lock every product they touch, in ascending ID
      order, before any batch row.

Failure modes:
    - ConflictError / StoreUnavailableError / TransactionTimeoutError are
      raised, not wrapped, so callers can apply their retry policy.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from inventory_kernel.domain.batch_status import BatchStatus
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import (
    AdjustmentLine,
    BatchSnapshot,
    ConsumptionResult,
    ReceiptLine,
    SaleLine,
)
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidArgumentError,
    InvalidOperationError,
    InventoryError,
    NotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.inventory_batch import InventoryBatch
from inventory_kernel.services.batch_number_allocator import BatchIdAllocator
from inventory_kernel.services.batch_store import BatchStore
from inventory_kernel.services.fifo_consumption import FifoConsumptionEngine
from inventory_kernel.services.product_repository import ProductRepository
from inventory_kernel.services.transaction_coordinator import TransactionCoordinator

logger = get_logger("services.inventory")


class InventoryResultStatus(str, Enum):
    """Outcome of an inventory operation."""

    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_OPERATION = "invalid_operation"
    INSUFFICIENT_STOCK = "insufficient_stock"


# Checked in order; subclasses precede their bases.
_REFUSALS: tuple[tuple[type[InventoryError], InventoryResultStatus], ...] = (
    (NotFoundError, InventoryResultStatus.NOT_FOUND),
    (InvalidArgumentError, InventoryResultStatus.INVALID_ARGUMENT),
    (InsufficientStockError, InventoryResultStatus.INSUFFICIENT_STOCK),
    (InvalidOperationError, InventoryResultStatus.INVALID_OPERATION),
)


@dataclass(frozen=True)
class InventoryResult:
    """Result of an inventory operation."""

    status: InventoryResultStatus
    value: Any = None
    error: InventoryError | None = None

    @property
    def is_success(self) -> bool:
        return self.status == InventoryResultStatus.OK

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None


def _require_lines(lines: tuple) -> None:
    if not lines:
        raise InvalidArgumentError("lines", lines, "at least one line is required")


def snapshot(batch: InventoryBatch) -> BatchSnapshot:
    return BatchSnapshot(
        batch_id=batch.id,
        product_id=batch.product_id,
        batch_number=batch.batch_number,
        status=batch.status,
        initial_quantity=batch.initial_quantity,
        current_quantity=batch.current_quantity,
        reserved_quantity=batch.reserved_quantity,
        cost_price=batch.cost_price,
        selling_price=batch.selling_price,
        mrp=batch.mrp,
        expiry_date=batch.expiry_date,
    )


class InventoryService:
    """
    Orchestrates inventory mutations under the unit-of-work discipline.

    Contract:
        Each public method opens one unit of work, performs the operation
        and returns an ``InventoryResult``.  ``value`` is a BatchSnapshot
        for batch operations and a ConsumptionResult for ``consume``.

    Guarantees:
        - Commit on success, rollback on any failure (TransactionCoordinator).
        - Refusals are returned with ``error`` set to the typed exception.

    Non-goals:
        - Does NOT retry Conflict or StoreUnavailable.
        - Does NOT serve read queries; see BatchQueryService and StockLedger.
    """

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        clock: Clock | None = None,
        allocator_factory: Callable[[Session], BatchIdAllocator] | None = None,
    ):
        self._coordinator = coordinator
        self._clock = clock or SystemClock()
        self._allocator_factory = allocator_factory

    def _store(self, session: Session) -> BatchStore:
        allocator = self._allocator_factory(session) if self._allocator_factory else None
        return BatchStore(session, self._clock, allocator=allocator)

    def create_batch(
        self,
        product_id: UUID,
        quantity: int,
        cost_price: Decimal,
        selling_price: Decimal,
        *,
        mrp: Decimal | None = None,
        expiry_date: date | None = None,
        manufacture_date: date | None = None,
        purchase_date: datetime | None = None,
        purchase_order_ref: str | None = None,
        supplier_ref: str | None = None,
        location: str | None = None,
        notes: str | None = None,
        actor_id: UUID | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        def op(session: Session) -> BatchSnapshot:
            return snapshot(
                self._store(session).create_batch(
                    product_id,
                    quantity,
                    cost_price,
                    selling_price,
                    mrp=mrp,
                    expiry_date=expiry_date,
                    manufacture_date=manufacture_date,
                    purchase_date=purchase_date,
                    purchase_order_ref=purchase_order_ref,
                    supplier_ref=supplier_ref,
                    location=location,
                    notes=notes,
                    actor_id=actor_id,
                )
            )

        return self._execute(
            "create_batch", op, actor_id=actor_id, product_id=product_id,
            timeout_seconds=timeout_seconds,
        )

    def consume(
        self,
        product_id: UUID,
        quantity: int,
        *,
        actor_id: UUID | None = None,
        reference_id: str | None = None,
        reference_number: str | None = None,
        notes: str | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        def op(session: Session) -> ConsumptionResult:
            return FifoConsumptionEngine(session, self._clock).consume(
                product_id,
                quantity,
                actor_id=actor_id,
                reference_id=reference_id,
                reference_number=reference_number,
                notes=notes,
            )

        return self._execute(
            "consume", op, actor_id=actor_id, product_id=product_id,
            timeout_seconds=timeout_seconds,
        )

    def adjust_quantity(
        self,
        batch_id: UUID,
        delta: int,
        reason: str,
        *,
        notes: str | None = None,
        actor_id: UUID | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        def op(session: Session) -> BatchSnapshot:
            return snapshot(
                self._store(session).adjust_quantity(
                    batch_id, delta, reason, notes=notes, actor_id=actor_id
                )
            )

        return self._execute(
            "adjust_quantity", op, actor_id=actor_id, batch_id=batch_id,
            timeout_seconds=timeout_seconds,
        )

    def set_status(
        self,
        batch_id: UUID,
        new_status: BatchStatus | str,
        reason: str,
        *,
        actor_id: UUID | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        def op(session: Session) -> BatchSnapshot:
            return snapshot(
                self._store(session).set_status(
                    batch_id, new_status, reason, actor_id=actor_id
                )
            )

        return self._execute(
            "set_status", op, actor_id=actor_id, batch_id=batch_id,
            timeout_seconds=timeout_seconds,
        )

    def reserve_quantity(
        self,
        batch_id: UUID,
        quantity: int,
        *,
        actor_id: UUID | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        def op(session: Session) -> BatchSnapshot:
            return snapshot(self._store(session).reserve_quantity(batch_id, quantity))

        return self._execute(
            "reserve_quantity", op, actor_id=actor_id, batch_id=batch_id,
            timeout_seconds=timeout_seconds,
        )

    def release_reserved_quantity(
        self,
        batch_id: UUID,
        quantity: int,
        *,
        actor_id: UUID | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        def op(session: Session) -> BatchSnapshot:
            return snapshot(
                self._store(session).release_reserved_quantity(batch_id, quantity)
            )

        return self._execute(
            "release_reserved_quantity", op, actor_id=actor_id, batch_id=batch_id,
            timeout_seconds=timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Multi-line operations (bills, goods receipts, stock counts)
    # ------------------------------------------------------------------

    def consume_lines(
        self,
        lines: Sequence[SaleLine],
        *,
        actor_id: UUID | None = None,
        reference_id: str | None = None,
        reference_number: str | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        """
        Sell every line of a bill in one unit of work.

        Every product on the bill is locked first, in ascending ID order.
        One short line refuses the whole bill with INSUFFICIENT_STOCK and
        no line is applied.  ``value`` is a tuple of ConsumptionResult in
        line order; all share one reference number.
        """
        bill = tuple(lines)
        if reference_number is None:
            reference_number = f"SALE-{int(self._clock.now().timestamp() * 1000)}"

        def op(session: Session) -> tuple[ConsumptionResult, ...]:
            _require_lines(bill)
            ProductRepository(session, self._clock).lock_many(
                line.product_id for line in bill
            )
            engine = FifoConsumptionEngine(session, self._clock)
            return tuple(
                engine.consume(
                    line.product_id,
                    line.quantity,
                    actor_id=actor_id,
                    reference_id=reference_id,
                    reference_number=reference_number,
                    notes=line.notes,
                )
                for line in bill
            )

        return self._execute(
            "consume_lines", op, actor_id=actor_id, timeout_seconds=timeout_seconds
        )

    def receive_lines(
        self,
        lines: Sequence[ReceiptLine],
        *,
        purchase_order_ref: str | None = None,
        supplier_ref: str | None = None,
        actor_id: UUID | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        """
        Receive a goods receipt: one new batch per line, all or nothing.

        ``value`` is a tuple of BatchSnapshot in line order.
        """
        receipt = tuple(lines)

        def op(session: Session) -> tuple[BatchSnapshot, ...]:
            _require_lines(receipt)
            ProductRepository(session, self._clock).lock_many(
                line.product_id for line in receipt
            )
            store = self._store(session)
            return tuple(
                snapshot(
                    store.create_batch(
                        line.product_id,
                        line.quantity,
                        line.cost_price,
                        line.selling_price,
                        mrp=line.mrp,
                        expiry_date=line.expiry_date,
                        manufacture_date=line.manufacture_date,
                        purchase_order_ref=purchase_order_ref,
                        supplier_ref=supplier_ref,
                        location=line.location,
                        notes=line.notes,
                        actor_id=actor_id,
                    )
                )
                for line in receipt
            )

        return self._execute(
            "receive_lines", op, actor_id=actor_id, timeout_seconds=timeout_seconds
        )

    def adjust_lines(
        self,
        lines: Sequence[AdjustmentLine],
        reason: str,
        *,
        actor_id: UUID | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        """Apply a stock count's batch corrections together, or none of them."""
        count = tuple(lines)

        def op(session: Session) -> tuple[BatchSnapshot, ...]:
            _require_lines(count)
            store = self._store(session)
            ProductRepository(session, self._clock).lock_many(
                store.get(line.batch_id).product_id for line in count
            )
            return tuple(
                snapshot(
                    store.adjust_quantity(
                        line.batch_id, line.delta, reason,
                        notes=line.notes, actor_id=actor_id,
                    )
                )
                for line in count
            )

        return self._execute(
            "adjust_lines", op, actor_id=actor_id, timeout_seconds=timeout_seconds
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _execute(
        self,
        name: str,
        operation: Callable[[Session], Any],
        *,
        actor_id: UUID | None = None,
        product_id: UUID | None = None,
        batch_id: UUID | None = None,
        timeout_seconds: float | None = None,
    ) -> InventoryResult:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            operation=name,
            actor_id=str(actor_id) if actor_id else None,
            product_id=str(product_id) if product_id else None,
            batch_id=str(batch_id) if batch_id else None,
        ):
            t0 = time.monotonic()
            logger.info("inventory_operation_started", extra={"op": name})
            try:
                value = self._coordinator.run(name, operation, timeout_seconds)
            except (NotFoundError, InvalidArgumentError, InvalidOperationError,
                    InsufficientStockError) as exc:
                status = next(s for cls, s in _REFUSALS if isinstance(exc, cls))
                logger.info(
                    "inventory_operation_refused",
                    extra={
                        "op": name,
                        "status": status.value,
                        "error_code": exc.code,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                return InventoryResult(status=status, error=exc)

            logger.info(
                "inventory_operation_completed",
                extra={
                    "op": name,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return InventoryResult(status=InventoryResultStatus.OK, value=value)
