"""
StockLedger -- append-only record of stock changes.

Responsibility:
    Writes one StockMovement per stock-changing event and serves the plain
    indexed history queries (by product, by batch, by date range).

Architecture position:
    Kernel > Services -- leaf.  ``record`` is only called from inside another
    component's unit of work; it has no consistency guarantee of its own
    beyond structural validity.

Invariants enforced:
    - new_stock - previous_stock == quantity; both snapshots >= 0.
    - Ledger order comes from the "stock_movement" sequence, never from
      timestamps.

Failure modes:
    - InvalidArgumentError for a structurally invalid entry (zero delta,
      inconsistent snapshot).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.batch_status import MovementType
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import InvalidArgumentError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock_movement import StockMovement
from inventory_kernel.services.sequence_service import SequenceService

logger = get_logger("services.stock_ledger")


class StockLedger:
    """
    Append-only stock ledger.

    Contract:
        ``record`` inserts exactly one row and flushes it; it never commits.

    Non-goals:
        - Does NOT touch batches or product stock.
        - Does NOT offer update or delete.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = sequence_service or SequenceService(session)

    def record(
        self,
        *,
        product_id: UUID,
        movement_type: MovementType,
        quantity: int,
        previous_stock: int,
        new_stock: int,
        batch_id: UUID | None = None,
        batch_number: str | None = None,
        unit_cost: Decimal | None = None,
        reference_type: str | None = None,
        reference_id: str | None = None,
        reference_number: str | None = None,
        reason: str | None = None,
        notes: str | None = None,
        expiry_date: date | None = None,
        actor_id: UUID | None = None,
    ) -> StockMovement:
        """
        Append one ledger entry.

        Preconditions:
            - ``quantity`` is the non-zero signed delta.
            - ``new_stock - previous_stock == quantity``; both >= 0.

        Postconditions:
            - The entry is flushed with the next ledger sequence number.
        """
        if quantity == 0:
            raise InvalidArgumentError("quantity", quantity, "ledger delta must be non-zero")
        if previous_stock < 0 or new_stock < 0:
            raise InvalidArgumentError(
                "new_stock", new_stock, "stock snapshots must not be negative"
            )
        if new_stock - previous_stock != quantity:
            raise InvalidArgumentError(
                "quantity",
                quantity,
                f"does not match snapshot {previous_stock} -> {new_stock}",
            )

        movement = StockMovement(
            sequence=self._sequences.next_value(SequenceService.STOCK_MOVEMENT),
            product_id=product_id,
            batch_id=batch_id,
            batch_number=batch_number,
            movement_type=MovementType(movement_type).value,
            quantity=quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            unit_cost=unit_cost,
            total_cost=unit_cost * abs(quantity) if unit_cost is not None else None,
            reference_type=reference_type,
            reference_id=reference_id,
            reference_number=reference_number,
            reason=reason,
            notes=notes,
            expiry_date=expiry_date,
            actor_id=actor_id,
            created_at=self._clock.now(),
        )
        self._session.add(movement)
        self._session.flush()

        logger.info(
            "stock_movement_recorded",
            extra={
                "movement_id": str(movement.id),
                "sequence": movement.sequence,
                "movement_type": movement.movement_type,
                "product_id": str(product_id),
                "batch_number": batch_number,
                "quantity": quantity,
                "previous_stock": previous_stock,
                "new_stock": new_stock,
            },
        )
        return movement

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def history_for_product(
        self,
        product_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[StockMovement]:
        stmt = select(StockMovement).where(StockMovement.product_id == product_id)
        stmt = self._bounded(stmt, start, end)
        return list(self._session.execute(stmt.order_by(StockMovement.sequence)).scalars())

    def history_for_batch(self, batch_id: UUID) -> list[StockMovement]:
        stmt = (
            select(StockMovement)
            .where(StockMovement.batch_id == batch_id)
            .order_by(StockMovement.sequence)
        )
        return list(self._session.execute(stmt).scalars())

    def history_between(self, start: datetime, end: datetime) -> list[StockMovement]:
        """All entries with ``start <= created_at < end``, in ledger order."""
        stmt = self._bounded(select(StockMovement), start, end)
        return list(self._session.execute(stmt.order_by(StockMovement.sequence)).scalars())

    @staticmethod
    def _bounded(stmt, start: datetime | None, end: datetime | None):
        if start is not None:
            stmt = stmt.where(StockMovement.created_at >= start)
        if end is not None:
            stmt = stmt.where(StockMovement.created_at < end)
        return stmt
