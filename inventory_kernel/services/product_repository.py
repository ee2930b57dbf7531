"""
ProductRepository -- lookup and stock-cache mutation for products.

Responsibility:
    The product surface this kernel needs: fetch a product (optionally
    row-locked), apply a signed delta to its cached stock, and overwrite its
    default prices.  Every call runs in the caller-supplied session.

Architecture position:
    Kernel > Services.  Used by BatchStore, FifoConsumptionEngine and
    ExpirySweep.

Invariants enforced:
    - current_stock never goes negative through ``increment_stock``.
    - The product row is locked (``FOR UPDATE``) before its stock changes,
      and always before any of its batch rows, giving one lock order for
      every writer.

Failure modes:
    - ProductNotFoundError for an unknown product ID.
    - InvalidOperationError if a delta would drive stock below zero.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import non_negative_price
from inventory_kernel.exceptions import (
    InvalidArgumentError,
    InvalidOperationError,
    ProductNotFoundError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.product import Product

logger = get_logger("services.product_repository")


class ProductRepository:
    """
    Product lookup and stock-cache updates within a session.

    Non-goals:
        - Does NOT commit; callers own transaction boundaries.
        - Does NOT manage catalog data beyond stock and default prices.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def create(
        self,
        sku: str,
        name: str,
        cost_price: Decimal = Decimal("0"),
        selling_price: Decimal = Decimal("0"),
        mrp: Decimal | None = None,
    ) -> Product:
        """Register a product with zero stock."""
        if not sku or not sku.strip():
            raise InvalidArgumentError("sku", sku, "must be non-empty")
        product = Product(
            sku=sku.strip(),
            name=name,
            current_stock=0,
            cost_price=non_negative_price("cost_price", cost_price),
            selling_price=non_negative_price("selling_price", selling_price),
            mrp=non_negative_price("mrp", mrp) if mrp is not None else None,
            created_at=self._clock.now(),
        )
        self._session.add(product)
        self._session.flush()
        logger.info("product_created", extra={"product_id": str(product.id), "sku": product.sku})
        return product

    def get(self, product_id: UUID) -> Product:
        product = self._session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def get_for_update(self, product_id: UUID) -> Product:
        """Fetch the product with its row locked for the rest of the transaction."""
        product = self._session.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def lock_many(self, product_ids: Iterable[UUID]) -> dict[UUID, Product]:
        """
        Lock several products in ascending ID order.

        Multi-line operations take every product lock up front, in this one
        global order, before any batch row is locked.
        """
        return {
            product_id: self.get_for_update(product_id)
            for product_id in sorted(set(product_ids), key=str)
        }

    def increment_stock(self, product_id: UUID, delta: int) -> tuple[int, int]:
        """
        Apply a signed delta to the product's cached stock.

        Preconditions:
            - The caller's unit of work also writes the batch and ledger
              changes this delta mirrors.

        Returns:
            ``(previous_stock, new_stock)``.

        Raises:
            ProductNotFoundError: unknown product.
            InvalidOperationError: the result would be negative.
        """
        product = self.get_for_update(product_id)
        previous = product.current_stock
        new = previous + delta
        if new < 0:
            raise InvalidOperationError(
                str(product_id),
                f"stock change of {delta} would drive stock negative (current {previous})",
            )
        product.current_stock = new
        self._session.flush()
        logger.debug(
            "product_stock_changed",
            extra={
                "product_id": str(product_id),
                "delta": delta,
                "previous_stock": previous,
                "new_stock": new,
            },
        )
        return previous, new

    def overwrite_default_prices(
        self,
        product: Product,
        cost_price: Decimal,
        selling_price: Decimal,
    ) -> None:
        """Latest batch wins: replace the product's default prices."""
        product.cost_price = cost_price
        product.selling_price = selling_price
