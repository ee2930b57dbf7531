"""
BatchStore -- creation and mutation of inventory batches.

Responsibility:
    Owns every batch quantity and status change outside FIFO consumption:
    receipt (create_batch), manual adjustment, explicit status changes and
    reservations.  Each quantity change is mirrored onto the product's
    cached stock and documented by one ledger entry, all in the caller's
    session.

Architecture position:
    Kernel > Services.  Depends on ProductRepository, StockLedger, the batch
    number allocator and SequenceService.  Runs inside a unit of work opened
    by the TransactionCoordinator; never commits.

Invariants enforced:
    - product.current_stock moves by exactly the batch quantity delta, in the
      same flush set as the batch row and the ledger entry.
    - Status changes follow domain.batch_status.VALID_TRANSITIONS.
    - 0 <= reserved_quantity <= current_quantity.
    - Lock order: product row first, then batch row.

Failure modes:
    - ProductNotFoundError / BatchNotFoundError for unknown IDs.
    - InvalidArgumentError for non-positive quantity, negative price,
      selling price above MRP or an unknown/unsettable status.
    - NegativeQuantityError, InvalidStatusTransitionError,
      InvalidOperationError for state-dependent refusals.
    - InsufficientStockError when reserving more than is available.

Audit relevance:
    Every quantity change produces exactly one StockMovement.  Metadata-only
    status changes produce none.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.batch_status import (
    ADJUSTABLE_STATUSES,
    SETTABLE_STATUSES,
    WRITE_OFF_STATUSES,
    BatchStatus,
    MovementType,
    can_transition,
    status_after_quantity_change,
)
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import non_negative_price, positive_quantity
from inventory_kernel.exceptions import (
    BatchNotFoundError,
    InsufficientStockError,
    InvalidArgumentError,
    InvalidOperationError,
    InvalidStatusTransitionError,
    NegativeQuantityError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_batch import InventoryBatch
from inventory_kernel.services.batch_number_allocator import (
    BatchIdAllocator,
    BatchNumberAllocator,
)
from inventory_kernel.services.product_repository import ProductRepository
from inventory_kernel.services.sequence_service import SequenceService
from inventory_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.batch_store")


class BatchStore:
    """
    Batch receipt, adjustment, status change and reservation.

    Contract:
        Every public method either completes all of its batch, product and
        ledger writes in the session or raises before the caller commits.

    Guarantees:
        - create_batch overwrites the product's default prices with the new
          batch's prices (latest batch wins).
        - adjust_quantity flips ``active <-> depleted`` at zero.
        - Entering ``expired``/``damaged`` writes the remaining quantity off.

    Non-goals:
        - Does NOT select batches for sale; see FifoConsumptionEngine.
        - Does NOT commit or roll back.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        products: ProductRepository | None = None,
        ledger: StockLedger | None = None,
        allocator: BatchIdAllocator | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = sequence_service or SequenceService(session)
        self._products = products or ProductRepository(session, self._clock)
        self._ledger = ledger or StockLedger(session, self._clock, self._sequences)
        self._allocator = allocator or BatchNumberAllocator(
            session, self._clock, self._sequences
        )

    # ------------------------------------------------------------------
    # Lookup and locking
    # ------------------------------------------------------------------

    def get(self, batch_id: UUID) -> InventoryBatch:
        batch = self._session.get(InventoryBatch, batch_id)
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        return batch

    def lock(self, batch_id: UUID) -> InventoryBatch:
        """Lock the batch's product row, then the batch row itself."""
        batch = self.get(batch_id)
        self._products.get_for_update(batch.product_id)
        return self._session.execute(
            select(InventoryBatch)
            .where(InventoryBatch.id == batch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

    # ------------------------------------------------------------------
    # Receipt
    # ------------------------------------------------------------------

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
    ) -> InventoryBatch:
        """
        Receive a new batch of a product.

        Preconditions:
            - ``quantity > 0``; ``cost_price, selling_price >= 0``.
            - ``selling_price <= mrp`` when an MRP applies (the given one or
              the product's).
            - The product exists.
            - ``purchase_date``, when given, is timezone-aware.  It is stored
              in UTC so FIFO order follows the instant, not the wall clock.

        Postconditions:
            - A batch with ``initial = current = quantity`` in status active.
            - product.current_stock increased by ``quantity``; product default
              prices replaced by this batch's prices.
            - One ``purchase`` ledger entry with delta ``+quantity``.
        """
        quantity = positive_quantity("quantity", quantity)
        cost = non_negative_price("cost_price", cost_price)
        selling = non_negative_price("selling_price", selling_price)
        ceiling = non_negative_price("mrp", mrp) if mrp is not None else None
        if manufacture_date and expiry_date and manufacture_date > expiry_date:
            raise InvalidArgumentError(
                "manufacture_date", manufacture_date, "must not be after expiry_date"
            )
        if purchase_date is not None:
            if purchase_date.tzinfo is None or purchase_date.utcoffset() is None:
                raise InvalidArgumentError(
                    "purchase_date", purchase_date, "must be timezone-aware"
                )
            purchase_date = purchase_date.astimezone(timezone.utc)

        product = self._products.get_for_update(product_id)
        if ceiling is None:
            ceiling = product.mrp
        if ceiling is not None and selling > ceiling:
            raise InvalidArgumentError(
                "selling_price", selling, f"exceeds MRP {ceiling}"
            )

        batch_number = self._allocator.next_batch_number(product_id)
        now = self._clock.now()
        batch = InventoryBatch(
            product_id=product_id,
            batch_number=batch_number,
            receipt_sequence=self._sequences.next_value(SequenceService.BATCH_RECEIPT),
            cost_price=cost,
            selling_price=selling,
            mrp=ceiling,
            initial_quantity=quantity,
            current_quantity=quantity,
            reserved_quantity=0,
            purchase_date=purchase_date or self._clock.now_utc(),
            expiry_date=expiry_date,
            manufacture_date=manufacture_date,
            status=BatchStatus.ACTIVE.value,
            purchase_order_ref=purchase_order_ref,
            supplier_ref=supplier_ref,
            location=location,
            notes=notes,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        self._session.add(batch)
        self._session.flush()

        previous, new = self._products.increment_stock(product_id, quantity)
        self._products.overwrite_default_prices(product, cost, selling)

        self._ledger.record(
            product_id=product_id,
            movement_type=MovementType.PURCHASE,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new,
            batch_id=batch.id,
            batch_number=batch_number,
            unit_cost=cost,
            reference_type="purchase_order" if purchase_order_ref else "batch",
            reference_id=purchase_order_ref,
            reference_number=f"BATCH-{batch_number}",
            reason="Batch received",
            expiry_date=expiry_date,
            actor_id=actor_id,
        )

        if selling < cost:
            logger.warning(
                "batch_selling_below_cost",
                extra={
                    "batch_number": batch_number,
                    "cost_price": cost,
                    "selling_price": selling,
                },
            )
        logger.info(
            "batch_created",
            extra={
                "batch_id": str(batch.id),
                "batch_number": batch_number,
                "product_id": str(product_id),
                "quantity": quantity,
                "new_stock": new,
            },
        )
        return batch

    # ------------------------------------------------------------------
    # Adjustment
    # ------------------------------------------------------------------

    def adjust_quantity(
        self,
        batch_id: UUID,
        delta: int,
        reason: str,
        *,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> InventoryBatch:
        """
        Apply a signed manual correction to a batch.

        Preconditions:
            - ``delta`` is a non-zero integer.
            - The batch is active or depleted.
            - ``current_quantity + delta >= max(0, reserved_quantity)``.

        Postconditions:
            - Batch quantity and product stock both move by ``delta``.
            - Status flips ``active <-> depleted`` at the zero boundary.
            - One ``adjustment`` ledger entry.
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidArgumentError("delta", delta, "must be a non-zero integer")

        batch = self.lock(batch_id)
        status = batch.batch_status
        if status not in ADJUSTABLE_STATUSES:
            raise InvalidOperationError(
                str(batch_id), f"cannot adjust a batch in status {status.value}"
            )

        new_quantity = batch.current_quantity + delta
        if new_quantity < 0:
            raise NegativeQuantityError(str(batch_id), batch.current_quantity, delta)
        if new_quantity < batch.reserved_quantity:
            raise InvalidOperationError(
                str(batch_id),
                f"adjustment would leave {new_quantity} below reserved "
                f"{batch.reserved_quantity}",
            )

        batch.current_quantity = new_quantity
        batch.status = status_after_quantity_change(status, new_quantity).value
        batch.updated_at = self._clock.now()
        self._session.flush()

        previous, new = self._products.increment_stock(batch.product_id, delta)
        self._ledger.record(
            product_id=batch.product_id,
            movement_type=MovementType.ADJUSTMENT,
            quantity=delta,
            previous_stock=previous,
            new_stock=new,
            batch_id=batch.id,
            batch_number=batch.batch_number,
            unit_cost=batch.cost_price,
            reference_type="adjustment",
            reference_number=f"ADJ-{batch.batch_number}",
            reason=reason,
            notes=notes,
            actor_id=actor_id,
        )
        logger.info(
            "batch_quantity_adjusted",
            extra={
                "batch_id": str(batch.id),
                "delta": delta,
                "current_quantity": new_quantity,
                "status": batch.status,
            },
        )
        return batch

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def set_status(
        self,
        batch_id: UUID,
        new_status: BatchStatus | str,
        reason: str,
        *,
        actor_id: UUID | None = None,
    ) -> InventoryBatch:
        """
        Move a batch to ``active``, ``expired``, ``damaged`` or ``returned``.

        Entering ``expired`` or ``damaged`` with stock on hand zeroes the
        batch (and its reservations), decrements the product stock by the
        removed quantity and appends a matching ledger entry.  Any other
        permitted change only updates the status.
        """
        try:
            target = BatchStatus(new_status)
        except ValueError:
            raise InvalidArgumentError("status", new_status, "unknown batch status") from None
        if target not in SETTABLE_STATUSES:
            raise InvalidArgumentError(
                "status", target.value, "only reachable through quantity changes"
            )

        batch = self.lock(batch_id)
        current = batch.batch_status
        if not can_transition(current, target):
            raise InvalidStatusTransitionError(str(batch_id), current.value, target.value)

        removed = 0
        if target in WRITE_OFF_STATUSES and batch.current_quantity > 0:
            removed = batch.current_quantity
            batch.reserved_quantity = 0
            batch.current_quantity = 0

        batch.status = target.value
        batch.updated_at = self._clock.now()
        self._session.flush()

        if removed:
            previous, new = self._products.increment_stock(batch.product_id, -removed)
            self._ledger.record(
                product_id=batch.product_id,
                movement_type=WRITE_OFF_STATUSES[target],
                quantity=-removed,
                previous_stock=previous,
                new_stock=new,
                batch_id=batch.id,
                batch_number=batch.batch_number,
                unit_cost=batch.cost_price,
                reference_type="status_change",
                reference_number=f"{target.value.upper()}-{batch.batch_number}",
                reason=reason,
                expiry_date=batch.expiry_date,
                actor_id=actor_id,
            )

        logger.info(
            "batch_status_changed",
            extra={
                "batch_id": str(batch.id),
                "from_status": current.value,
                "to_status": target.value,
                "quantity_removed": removed,
            },
        )
        return batch

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def reserve_quantity(self, batch_id: UUID, quantity: int) -> InventoryBatch:
        """Hold stock on an active batch; held stock is skipped by FIFO."""
        quantity = positive_quantity("quantity", quantity)
        batch = self.lock(batch_id)
        if batch.batch_status != BatchStatus.ACTIVE:
            raise InvalidOperationError(
                str(batch_id), f"cannot reserve on a batch in status {batch.status}"
            )
        if quantity > batch.available_quantity:
            raise InsufficientStockError(
                str(batch.product_id), quantity, batch.available_quantity
            )
        batch.reserved_quantity += quantity
        batch.updated_at = self._clock.now()
        self._session.flush()
        logger.info(
            "batch_quantity_reserved",
            extra={"batch_id": str(batch.id), "reserved_quantity": batch.reserved_quantity},
        )
        return batch

    def release_reserved_quantity(self, batch_id: UUID, quantity: int) -> InventoryBatch:
        quantity = positive_quantity("quantity", quantity)
        batch = self.lock(batch_id)
        if quantity > batch.reserved_quantity:
            raise InvalidOperationError(
                str(batch_id),
                f"cannot release {quantity}, only {batch.reserved_quantity} reserved",
            )
        batch.reserved_quantity -= quantity
        batch.updated_at = self._clock.now()
        self._session.flush()
        logger.info(
            "batch_reservation_released",
            extra={"batch_id": str(batch.id), "reserved_quantity": batch.reserved_quantity},
        )
        return batch
