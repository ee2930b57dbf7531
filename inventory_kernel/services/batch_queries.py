"""
BatchQueryService -- read-side queries over batches.

Responsibility:
    Plain indexed queries used by request handlers and the expiry CLI: a
    product's batches and their summary, batch details with ledger history,
    batches expiring within a window, and a single-batch expiry check.

Architecture position:
    Kernel > Services (read side).  Never mutates; safe in any session.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.batch_status import BatchStatus
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import (
    BatchExpiryCheck,
    ExpiringBatch,
    ProductBatchSummary,
)
from inventory_kernel.exceptions import BatchNotFoundError, InvalidArgumentError
from inventory_kernel.models.inventory_batch import InventoryBatch
from inventory_kernel.models.stock_movement import StockMovement
from inventory_kernel.services.product_repository import ProductRepository
from inventory_kernel.services.stock_ledger import StockLedger


class BatchQueryService:
    """Read-only batch lookups."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def batches_for_product(
        self,
        product_id: UUID,
        include_inactive: bool = False,
    ) -> list[InventoryBatch]:
        """Batches of a product in FIFO order, active ones only by default."""
        ProductRepository(self._session, self._clock).get(product_id)
        stmt = select(InventoryBatch).where(InventoryBatch.product_id == product_id)
        if not include_inactive:
            stmt = stmt.where(InventoryBatch.status == BatchStatus.ACTIVE.value)
        stmt = stmt.order_by(InventoryBatch.purchase_date, InventoryBatch.receipt_sequence)
        return list(self._session.execute(stmt).scalars())

    def product_summary(self, product_id: UUID) -> ProductBatchSummary:
        batches = self.batches_for_product(product_id, include_inactive=True)
        active = [b for b in batches if b.batch_status == BatchStatus.ACTIVE]
        prices = [b.selling_price for b in active]
        return ProductBatchSummary(
            product_id=product_id,
            total_batches=len(batches),
            active_batches=len(active),
            available_quantity=sum(b.available_quantity for b in active),
            total_cost_value=sum((b.batch_value for b in active), Decimal("0")),
            min_selling_price=min(prices) if prices else None,
            max_selling_price=max(prices) if prices else None,
        )

    def batch_details(self, batch_id: UUID) -> tuple[InventoryBatch, list[StockMovement]]:
        batch = self._session.get(InventoryBatch, batch_id)
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        movements = StockLedger(self._session, self._clock).history_for_batch(batch_id)
        return batch, movements

    def expiring_within(
        self,
        days_ahead: int = 7,
        as_of: date | None = None,
    ) -> list[ExpiringBatch]:
        """
        Active stock expiring between ``as_of`` (default today) and
        ``as_of + days_ahead`` inclusive, soonest first.
        """
        if days_ahead < 0:
            raise InvalidArgumentError("days_ahead", days_ahead, "must not be negative")
        today = as_of or self._clock.today()
        horizon = today + timedelta(days=days_ahead)
        batches = self._session.execute(
            select(InventoryBatch)
            .where(
                InventoryBatch.status == BatchStatus.ACTIVE.value,
                InventoryBatch.current_quantity > 0,
                InventoryBatch.expiry_date >= today,
                InventoryBatch.expiry_date <= horizon,
            )
            .order_by(InventoryBatch.expiry_date, InventoryBatch.receipt_sequence)
        ).scalars()
        return [
            ExpiringBatch(
                batch_id=b.id,
                batch_number=b.batch_number,
                product_id=b.product_id,
                expiry_date=b.expiry_date,
                days_until_expiry=b.days_until_expiry(today),
                current_quantity=b.current_quantity,
                value_at_risk=b.batch_value,
            )
            for b in batches
        ]

    def check_batch_expiry(self, batch_id: UUID) -> BatchExpiryCheck:
        batch = self._session.get(InventoryBatch, batch_id)
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        today = self._clock.today()
        expired = batch.is_expired_on(today)
        return BatchExpiryCheck(
            batch_id=batch.id,
            batch_number=batch.batch_number,
            status=batch.status,
            expiry_date=batch.expiry_date,
            is_expired=expired,
            days_until_expiry=batch.days_until_expiry(today),
            needs_update=expired and batch.batch_status == BatchStatus.ACTIVE,
        )
