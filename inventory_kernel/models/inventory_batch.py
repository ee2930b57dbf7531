"""
Module: inventory_kernel.models.inventory_batch
Responsibility: ORM persistence for inventory batches (lots).  Each batch is
    one inbound receipt of a product at a specific cost and selling price,
    consumed oldest-first by the FIFO engine.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - initial_quantity > 0 and never changes after creation.
    - 0 <= reserved_quantity <= current_quantity (CHECK constraints).
    - (product_id, batch_number) is unique.
    - (product_id, status, purchase_date, receipt_sequence) index supports
      FIFO candidate selection in a single ordered scan.
    - version_id is bumped on every UPDATE (optimistic lost-update guard).

Failure modes:
    - IntegrityError on CHECK/UNIQUE violation.
    - StaleDataError on lost update.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UUIDString
from inventory_kernel.domain.batch_status import BatchStatus

_ZERO = Decimal("0")


class InventoryBatch(Base):
    """
    Persistent storage for one inventory batch.

    Contract:
        Quantity fields are mutated only by the batch store, the FIFO engine
        and the expiry sweep, always in the same unit of work as the product
        stock change and the ledger entry that document them.

    Guarantees:
        - ``available_quantity`` never goes below zero.
        - ``receipt_sequence`` is globally monotonic, so batches received at
          the same ``purchase_date`` still have a total FIFO order.

    Non-goals:
        - Does NOT validate status transitions; see domain.batch_status.
    """

    __tablename__ = "inventory_batches"

    __table_args__ = (
        UniqueConstraint("product_id", "batch_number", name="uq_batch_product_number"),
        CheckConstraint("initial_quantity > 0", name="ck_batch_initial_positive"),
        CheckConstraint("current_quantity >= 0", name="ck_batch_current_non_negative"),
        CheckConstraint("reserved_quantity >= 0", name="ck_batch_reserved_non_negative"),
        CheckConstraint(
            "reserved_quantity <= current_quantity",
            name="ck_batch_reserved_within_current",
        ),
        # Query: FIFO candidates for a product
        Index(
            "idx_batch_fifo",
            "product_id", "status", "purchase_date", "receipt_sequence",
        ),
        # Query: expiry sweep and expiring-soon listings
        Index("idx_batch_status_expiry", "status", "expiry_date"),
        Index("idx_batch_number", "batch_number"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    batch_number: Mapped[str] = mapped_column(String(32), nullable=False)

    receipt_sequence: Mapped[int] = mapped_column(nullable=False)

    # Economics
    cost_price: Mapped[Decimal] = mapped_column(nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(nullable=False)
    mrp: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Quantities
    initial_quantity: Mapped[int] = mapped_column(nullable=False)
    current_quantity: Mapped[int] = mapped_column(nullable=False)
    reserved_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    # FIFO ordering
    purchase_date: Mapped[datetime] = mapped_column(nullable=False)

    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manufacture_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BatchStatus.ACTIVE.value,
    )

    # Provenance (informational)
    purchase_order_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    supplier_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def batch_status(self) -> BatchStatus:
        return BatchStatus(self.status)

    @property
    def available_quantity(self) -> int:
        return max(0, self.current_quantity - self.reserved_quantity)

    @property
    def batch_value(self) -> Decimal:
        return self.cost_price * self.current_quantity

    @property
    def potential_revenue(self) -> Decimal:
        return self.selling_price * self.current_quantity

    @property
    def profit_margin(self) -> Decimal:
        """Margin as a percentage of selling price."""
        if not self.selling_price:
            return _ZERO
        return (self.selling_price - self.cost_price) / self.selling_price * 100

    def days_until_expiry(self, today: date) -> int | None:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - today).days

    def is_expired_on(self, today: date) -> bool:
        """Expired once the expiry date is strictly before ``today``."""
        return self.expiry_date is not None and self.expiry_date < today

    def is_sellable_on(self, today: date) -> bool:
        """Sellable until the day before its expiry date."""
        return self.expiry_date is None or self.expiry_date > today

    def __repr__(self) -> str:
        return (
            f"<InventoryBatch {self.batch_number}: product={self.product_id} "
            f"qty={self.current_quantity}/{self.initial_quantity} {self.status}>"
        )
