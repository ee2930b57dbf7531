"""
Module: inventory_kernel.models.product
Responsibility: ORM persistence for sellable products and their cached
    on-hand stock.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - current_stock == sum(batch.current_quantity) over the product's batches
      whenever no transaction is in flight.  Maintained by the batch store,
      the FIFO engine and the expiry sweep; never recomputed lazily.
    - current_stock >= 0 (CHECK constraint).
    - version_id is bumped on every UPDATE; a concurrent writer that read a
      stale version fails its flush with StaleDataError.

Failure modes:
    - IntegrityError on duplicate sku or negative current_stock.
    - StaleDataError on lost update (mapped to ConflictError by the
      transaction coordinator).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class Product(Base):
    """
    A product whose stock is tracked in batches.

    Contract:
        The product catalog is owned elsewhere; this kernel reads products,
        mutates ``current_stock`` and overwrites the default prices with the
        latest received batch's prices.

    Non-goals:
        - Does NOT hold categories, barcodes, tax or display data.
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_product_stock_non_negative"),
    )

    sku: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Denormalized sum of batch quantities
    current_stock: Mapped[int] = mapped_column(nullable=False, default=0)

    # Latest-batch-wins defaults
    cost_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    selling_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    mrp: Mapped[Decimal | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product {self.sku}: stock={self.current_stock}>"
