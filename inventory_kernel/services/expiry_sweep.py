"""
ExpirySweep -- write off active batches whose expiry date has passed.

Responsibility:
    Selects every active batch with stock on hand and ``expiry_date < as_of``
    and moves each to ``expired`` exactly as ``BatchStore.set_status`` does:
    quantity zeroed, product stock reduced, one ``expired`` ledger entry.

Architecture position:
    Kernel > Services.  Uses the TransactionCoordinator directly: one short
    read transaction to select candidates, then one transaction per batch.
    No transaction is held open across the whole sweep.

Invariants enforced:
    - Date-only comparison at start-of-day: a batch expiring on ``as_of`` is
      not swept until the following day.
    - Each batch is re-checked under lock inside its own transaction, so a
      batch changed since selection is skipped rather than double-counted.
    - Idempotent: an immediate re-run finds no candidates.

Failure modes:
    - Per-batch failures are logged and collected in SweepReport.errors;
      they never abort the rest of the sweep.
    - Failure of the candidate selection itself propagates.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.batch_status import BatchStatus
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import ExpiredBatch, SweepFailure, SweepReport
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_batch import InventoryBatch
from inventory_kernel.services.batch_store import BatchStore
from inventory_kernel.services.transaction_coordinator import TransactionCoordinator

logger = get_logger("services.expiry_sweep")


class ExpirySweep:
    """
    Batch expiry write-off with partial-success semantics.

    Contract:
        ``sweep(as_of)`` returns a report of every batch expired and every
        batch that failed; it raises only if candidate selection fails.

    Non-goals:
        - Does NOT schedule itself; see inventory_batch.scheduler.
        - Does NOT touch batches that are not active.
    """

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
    ):
        self._coordinator = coordinator
        self._clock = clock or SystemClock()
        self._actor_id = actor_id

    def find_candidates(self, session: Session, as_of: date) -> list[tuple[UUID, str]]:
        rows = session.execute(
            select(InventoryBatch.id, InventoryBatch.batch_number)
            .where(
                InventoryBatch.status == BatchStatus.ACTIVE.value,
                InventoryBatch.current_quantity > 0,
                InventoryBatch.expiry_date.is_not(None),
                InventoryBatch.expiry_date < as_of,
            )
            .order_by(InventoryBatch.expiry_date, InventoryBatch.receipt_sequence)
        ).all()
        return [(row.id, row.batch_number) for row in rows]

    def sweep(self, as_of: date | None = None) -> SweepReport:
        """
        Expire every eligible batch as of ``as_of`` (default: clock today).

        Postconditions:
            - Every batch in ``updated`` is ``expired`` with zero quantity and
              has exactly one new ``expired`` ledger entry.
            - Batches listed in ``errors`` are unchanged.
        """
        as_of = as_of or self._clock.today()
        started_at = self._clock.now()

        def _select(session: Session) -> list[tuple[UUID, str]]:
            return self.find_candidates(session, as_of)

        candidates = self._coordinator.run("expiry_sweep.select", _select)
        logger.info(
            "expiry_sweep_started",
            extra={"as_of": as_of, "candidate_count": len(candidates)},
        )

        updated: list[ExpiredBatch] = []
        errors: list[SweepFailure] = []
        for batch_id, batch_number in candidates:
            try:
                expired = self._coordinator.run(
                    "expiry_sweep.expire_batch",
                    _ExpireOne(self._clock, batch_id, as_of, self._actor_id),
                )
            except Exception as exc:
                logger.exception(
                    "expiry_sweep_batch_failed",
                    extra={"batch_id": str(batch_id), "batch_number": batch_number},
                )
                errors.append(
                    SweepFailure(
                        batch_id=batch_id,
                        batch_number=batch_number,
                        error_code=getattr(exc, "code", type(exc).__name__),
                        message=str(exc),
                    )
                )
                continue
            if expired is not None:
                updated.append(expired)

        report = SweepReport(
            as_of=as_of,
            started_at=started_at,
            total_checked=len(candidates),
            updated=tuple(updated),
            errors=tuple(errors),
        )
        logger.info(
            "expiry_sweep_completed",
            extra={
                "as_of": as_of,
                "total_checked": report.total_checked,
                "batches_expired": len(report.updated),
                "quantity_removed": report.quantity_removed,
                "error_count": len(report.errors),
            },
        )
        return report


class _ExpireOne:
    """Single-batch sweep step, run inside its own unit of work."""

    def __init__(self, clock: Clock, batch_id: UUID, as_of: date, actor_id: UUID | None):
        self._clock = clock
        self._batch_id = batch_id
        self._as_of = as_of
        self._actor_id = actor_id

    def __call__(self, session: Session) -> ExpiredBatch | None:
        store = BatchStore(session, self._clock)
        batch = store.lock(self._batch_id)
        if (
            batch.batch_status != BatchStatus.ACTIVE
            or batch.current_quantity <= 0
            or not batch.is_expired_on(self._as_of)
        ):
            logger.info(
                "expiry_sweep_batch_skipped",
                extra={"batch_id": str(batch.id), "status": batch.status},
            )
            return None

        quantity = batch.current_quantity
        store.set_status(
            batch.id,
            BatchStatus.EXPIRED,
            reason=f"Expired on {batch.expiry_date.isoformat()}",
            actor_id=self._actor_id,
        )
        return ExpiredBatch(
            batch_id=batch.id,
            batch_number=batch.batch_number,
            product_id=batch.product_id,
            quantity_removed=quantity,
            expiry_date=batch.expiry_date,
        )
