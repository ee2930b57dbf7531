"""
FifoConsumptionEngine -- oldest-first stock consumption.

Responsibility:
    Satisfies a requested quantity of a product from its eligible batches in
    strict FIFO order, reporting blended cost and revenue.

Architecture position:
    Kernel > Services.  Depends on ProductRepository and StockLedger; runs in
    a unit of work opened by the TransactionCoordinator.

Invariants enforced:
    - Candidates: status active, current - reserved > 0, and no expiry or an
      expiry date strictly after today.  Ordered by purchase_date, then
      receipt_sequence.
    - All-or-nothing: availability is checked in full before the first
      batch is touched.  A shortfall raises InsufficientStockError and
      nothing is flushed.
    - No batch ends with current_quantity < reserved_quantity.
    - One ``sale`` ledger entry per batch touched; the product stock is
      decremented once, by the total.
    - The product row, then the candidate batch rows, are locked
      (``FOR UPDATE``) for the read-decide-write sequence.

Failure modes:
    - ProductNotFoundError for an unknown product.
    - InvalidArgumentError for a non-positive quantity.
    - InsufficientStockError when eligible availability < requested.

Audit relevance:
    ``previous_stock``/``new_stock`` on each sale entry walk the product
    aggregate down batch by batch, so the entries chain exactly.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from inventory_kernel.domain.batch_status import (
    BatchStatus,
    MovementType,
    status_after_quantity_change,
)
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import (
    ConsumedBatch,
    ConsumptionResult,
    positive_quantity,
)
from inventory_kernel.exceptions import InsufficientStockError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_batch import InventoryBatch
from inventory_kernel.services.product_repository import ProductRepository
from inventory_kernel.services.sequence_service import SequenceService
from inventory_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.fifo_consumption")


class FifoConsumptionEngine:
    """
    Consumes stock oldest batch first.

    Contract:
        ``consume`` either applies every batch, ledger and product change of
        the sale or raises before any of them is flushed.

    Non-goals:
        - Does NOT commit; the enclosing unit of work does.
        - Does NOT price the sale; each batch contributes its own prices.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        products: ProductRepository | None = None,
        ledger: StockLedger | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._products = products or ProductRepository(session, self._clock)
        self._ledger = ledger or StockLedger(
            session, self._clock, SequenceService(session)
        )

    def eligible_batches(self, product_id: UUID, lock: bool = False) -> list[InventoryBatch]:
        """Batches that may be sold today, in consumption order."""
        today = self._clock.today()
        stmt = (
            select(InventoryBatch)
            .where(
                InventoryBatch.product_id == product_id,
                InventoryBatch.status == BatchStatus.ACTIVE.value,
                InventoryBatch.current_quantity > InventoryBatch.reserved_quantity,
                or_(
                    InventoryBatch.expiry_date.is_(None),
                    InventoryBatch.expiry_date > today,
                ),
            )
            .order_by(InventoryBatch.purchase_date, InventoryBatch.receipt_sequence)
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return list(self._session.execute(stmt).scalars())

    def consume(
        self,
        product_id: UUID,
        requested_quantity: int,
        *,
        actor_id: UUID | None = None,
        reference_type: str = "sale",
        reference_id: str | None = None,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> ConsumptionResult:
        """
        Consume ``requested_quantity`` units oldest batch first.

        Preconditions:
            - ``requested_quantity > 0``.
            - The product exists.

        Postconditions:
            - Each touched batch is reduced by its share and flips to
              ``depleted`` at zero.
            - product.current_stock is reduced by ``requested_quantity``.
            - One ``sale`` ledger entry per touched batch.

        Raises:
            InsufficientStockError: eligible availability < requested.
        """
        requested = positive_quantity("quantity", requested_quantity)

        product = self._products.get_for_update(product_id)
        candidates = self.eligible_batches(product_id, lock=True)
        available = sum(b.available_quantity for b in candidates)
        if available < requested:
            logger.warning(
                "fifo_insufficient_stock",
                extra={
                    "product_id": str(product_id),
                    "requested": requested,
                    "available": available,
                    "candidate_batches": len(candidates),
                },
            )
            raise InsufficientStockError(str(product_id), requested, available)

        if reference_number is None:
            reference_number = f"SALE-{int(self._clock.now().timestamp() * 1000)}"

        running_stock = product.current_stock
        remaining = requested
        used: list[ConsumedBatch] = []

        for batch in candidates:
            if remaining == 0:
                break
            take = min(remaining, batch.available_quantity)

            batch.current_quantity -= take
            batch.status = status_after_quantity_change(
                batch.batch_status, batch.current_quantity
            ).value
            batch.updated_at = self._clock.now()

            self._ledger.record(
                product_id=product_id,
                movement_type=MovementType.SALE,
                quantity=-take,
                previous_stock=running_stock,
                new_stock=running_stock - take,
                batch_id=batch.id,
                batch_number=batch.batch_number,
                unit_cost=batch.cost_price,
                reference_type=reference_type,
                reference_id=reference_id,
                reference_number=reference_number,
                reason="FIFO sale",
                notes=notes,
                actor_id=actor_id,
            )
            running_stock -= take
            remaining -= take
            used.append(
                ConsumedBatch(
                    batch_id=batch.id,
                    batch_number=batch.batch_number,
                    quantity=take,
                    cost_price=batch.cost_price,
                    selling_price=batch.selling_price,
                )
            )

        _, new_stock = self._products.increment_stock(product_id, -requested)

        result = ConsumptionResult(
            product_id=product_id,
            quantity_sold=requested,
            batches_used=tuple(used),
            reference_number=reference_number,
        )
        logger.info(
            "fifo_consumption_completed",
            extra={
                "product_id": str(product_id),
                "quantity_sold": requested,
                "batch_count": result.batch_count,
                "total_cost": result.total_cost,
                "total_revenue": result.total_revenue,
                "new_stock": new_stock,
            },
        )
        return result
