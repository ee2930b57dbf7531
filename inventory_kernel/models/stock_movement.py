"""
Module: inventory_kernel.models.stock_movement
Responsibility: ORM persistence for the append-only stock ledger.  One row per
    stock-changing event: receipt, sale line, adjustment or write-off.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: rows are never updated or deleted (db/immutability.py).
    - new_stock - previous_stock == quantity on every row (CHECK constraint).
    - previous_stock >= 0 and new_stock >= 0.
    - sequence is strictly monotonic across the whole ledger.

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE through the ORM.
    - IntegrityError on CHECK violation or duplicate sequence.

Audit relevance:
    The ledger is the sole mechanism for reconstructing stock history.
    Replaying ``quantity`` per product in ``sequence`` order reproduces the
    product's cached stock at every step.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UUIDString


class StockMovement(Base):
    """
    Immutable stock ledger entry.

    Contract:
        Written only by StockLedger.record(), inside the unit of work that
        performs the aggregate change the entry documents.

    Guarantees:
        - ``quantity`` is the signed delta applied to the product's stock.
        - ``previous_stock``/``new_stock`` snapshot the product aggregate at
          the moment this entry applied.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("previous_stock >= 0", name="ck_movement_previous_non_negative"),
        CheckConstraint("new_stock >= 0", name="ck_movement_new_non_negative"),
        CheckConstraint(
            "new_stock - previous_stock = quantity",
            name="ck_movement_delta_matches_snapshot",
        ),
        # Query: history by product in ledger order
        Index("idx_movement_product_sequence", "product_id", "sequence"),
        # Query: history by batch
        Index("idx_movement_batch", "batch_id"),
        # Query: history by date range
        Index("idx_movement_created_at", "created_at"),
    )

    sequence: Mapped[int] = mapped_column(nullable=False, unique=True)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    batch_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_batches.id"),
        nullable=True,
    )

    batch_number: Mapped[str | None] = mapped_column(String(32), nullable=True)

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Signed delta
    quantity: Mapped[int] = mapped_column(nullable=False)

    previous_stock: Mapped[int] = mapped_column(nullable=False)
    new_stock: Mapped[int] = mapped_column(nullable=False)

    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<StockMovement #{self.sequence} {self.movement_type} "
            f"{self.quantity:+d} ({self.previous_stock}->{self.new_stock})>"
        )
