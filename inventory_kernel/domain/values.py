"""
Values -- Immutable result and report objects for the inventory kernel.

Responsibility:
    Frozen value types returned by the write side (consumption results,
    sweep reports) and the read side (expiry listings, batch summaries),
    plus argument coercion helpers shared by the services.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Monetary figures are Decimal, never float.
    - ConsumptionResult totals are the exact sums of their batch lines.

Failure modes:
    - InvalidArgumentError from the coercion helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from inventory_kernel.exceptions import InvalidArgumentError

_ZERO = Decimal("0")
_CENT = Decimal("0.01")


def to_decimal(field: str, value: object) -> Decimal:
    """Coerce a price argument to Decimal, rejecting floats and garbage."""
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, str)):
        raise InvalidArgumentError(field, value, "must be Decimal, int or str")
    try:
        result = Decimal(value)
    except ArithmeticError:
        raise InvalidArgumentError(field, value, "not a decimal number") from None
    if not result.is_finite():
        raise InvalidArgumentError(field, value, "must be finite")
    return result


def non_negative_price(field: str, value: object) -> Decimal:
    price = to_decimal(field, value)
    if price < 0:
        raise InvalidArgumentError(field, value, "must not be negative")
    return price


def positive_quantity(field: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(field, value, "must be an integer")
    if value <= 0:
        raise InvalidArgumentError(field, value, "must be greater than zero")
    return value


@dataclass(frozen=True, slots=True)
class ConsumedBatch:
    """One batch's share of a FIFO consumption."""

    batch_id: UUID
    batch_number: str
    quantity: int
    cost_price: Decimal
    selling_price: Decimal

    @property
    def total_cost(self) -> Decimal:
        return self.cost_price * self.quantity

    @property
    def total_revenue(self) -> Decimal:
        return self.selling_price * self.quantity


@dataclass(frozen=True, slots=True)
class ConsumptionResult:
    """
    Result of consuming stock oldest-batch-first.

    Contract:
        ``batches_used`` is in consumption order (oldest first) and its
        quantities sum to ``quantity_sold``.

    Guarantees:
        - ``average_cost_price`` is the quantity-weighted blend across
          batches, not any single batch's price.
        - ``profit_margin`` is a percentage of revenue rounded to 2 places
          (0 when revenue is 0).
    """

    product_id: UUID
    quantity_sold: int
    batches_used: tuple[ConsumedBatch, ...]
    reference_number: str

    @property
    def total_cost(self) -> Decimal:
        return sum((b.total_cost for b in self.batches_used), _ZERO)

    @property
    def total_revenue(self) -> Decimal:
        return sum((b.total_revenue for b in self.batches_used), _ZERO)

    @property
    def profit(self) -> Decimal:
        return self.total_revenue - self.total_cost

    @property
    def profit_margin(self) -> Decimal:
        revenue = self.total_revenue
        if revenue == 0:
            return _ZERO
        return (self.profit / revenue * 100).quantize(_CENT, rounding=ROUND_HALF_UP)

    @property
    def average_cost_price(self) -> Decimal:
        if self.quantity_sold == 0:
            return _ZERO
        return self.total_cost / self.quantity_sold

    @property
    def average_selling_price(self) -> Decimal:
        if self.quantity_sold == 0:
            return _ZERO
        return self.total_revenue / self.quantity_sold

    @property
    def batch_count(self) -> int:
        return len(self.batches_used)


@dataclass(frozen=True, slots=True)
class ExpiredBatch:
    """A batch the expiry sweep wrote off."""

    batch_id: UUID
    batch_number: str
    product_id: UUID
    quantity_removed: int
    expiry_date: date


@dataclass(frozen=True, slots=True)
class SweepFailure:
    """A batch the expiry sweep could not transition."""

    batch_id: UUID
    batch_number: str
    error_code: str
    message: str


@dataclass(frozen=True, slots=True)
class SweepReport:
    """
    Outcome of one expiry sweep.

    ``total_checked`` counts candidates selected at the start of the sweep;
    a candidate that stopped being eligible before its own transaction ran
    appears in neither ``updated`` nor ``errors``.
    """

    as_of: date
    started_at: datetime
    total_checked: int
    updated: tuple[ExpiredBatch, ...] = ()
    errors: tuple[SweepFailure, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.errors

    @property
    def quantity_removed(self) -> int:
        return sum(b.quantity_removed for b in self.updated)


@dataclass(frozen=True, slots=True)
class ExpiringBatch:
    """Active stock that will expire within a look-ahead window."""

    batch_id: UUID
    batch_number: str
    product_id: UUID
    expiry_date: date
    days_until_expiry: int
    current_quantity: int
    value_at_risk: Decimal


@dataclass(frozen=True, slots=True)
class BatchExpiryCheck:
    batch_id: UUID
    batch_number: str
    status: str
    expiry_date: date | None
    is_expired: bool
    days_until_expiry: int | None
    needs_update: bool


@dataclass(frozen=True, slots=True)
class ProductBatchSummary:
    """Per-product roll-up of its batches."""

    product_id: UUID
    total_batches: int
    active_batches: int
    available_quantity: int
    total_cost_value: Decimal
    min_selling_price: Decimal | None
    max_selling_price: Decimal | None


@dataclass(frozen=True, slots=True)
class BatchSnapshot:
    """Detached copy of a batch's state, safe to use after the session closes."""

    batch_id: UUID
    product_id: UUID
    batch_number: str
    status: str
    initial_quantity: int
    current_quantity: int
    reserved_quantity: int
    cost_price: Decimal
    selling_price: Decimal
    mrp: Decimal | None
    expiry_date: date | None

    @property
    def available_quantity(self) -> int:
        return max(0, self.current_quantity - self.reserved_quantity)


# Multi-line operation inputs


@dataclass(frozen=True, slots=True)
class SaleLine:
    """One product line of a bill."""

    product_id: UUID
    quantity: int
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class ReceiptLine:
    """One product line of a goods receipt; becomes one batch."""

    product_id: UUID
    quantity: int
    cost_price: Decimal
    selling_price: Decimal
    mrp: Decimal | None = None
    expiry_date: date | None = None
    manufacture_date: date | None = None
    location: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class AdjustmentLine:
    batch_id: UUID
    delta: int
    notes: str | None = None
