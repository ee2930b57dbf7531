"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (request handlers, the sweep, the CLI) must react to failures by
category: a shortfall of stock is shown to the cashier, a conflict is
retried, an outage is alerted on.  Parsing message strings for that is
fragile, so every failure raised by this package:

  1. Has its own exception CLASS (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Stores its context as structured ATTRIBUTES (not only a message)

Example:
    try:
        engine.consume(product_id, 12, actor_id=cashier_id)
    except InsufficientStockError as e:
        api_response(code=e.code, requested=e.requested, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryError (base)
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- BatchNotFoundError
    |
    +-- InvalidArgumentError
    |
    +-- InvalidOperationError
    |   +-- NegativeQuantityError
    |   +-- InvalidStatusTransitionError
    |
    +-- InsufficientStockError
    |
    +-- ConcurrencyError
    |   +-- ConflictError
    |
    +-- StoreUnavailableError
    |   +-- TransactionTimeoutError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | PRODUCT_NOT_FOUND           | Product ID doesn't exist
                | BATCH_NOT_FOUND             | Batch ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Argument        | INVALID_ARGUMENT            | Non-positive quantity, negative price,
                |                             | selling price above MRP, bad status
----------------|-----------------------------|-----------------------------------------
Operation       | INVALID_OPERATION           | Operation not allowed in current state
                | NEGATIVE_QUANTITY           | Adjustment would drive quantity < 0
                | INVALID_STATUS_TRANSITION   | Transition missing from status table
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | FIFO cannot satisfy requested quantity
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONFLICT                    | Concurrent mutation prevented commit
----------------|-----------------------------|-----------------------------------------
Store           | STORE_UNAVAILABLE           | Session/driver infrastructure failure
                | TRANSACTION_TIMEOUT         | Caller deadline exceeded, rolled back
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Update/delete of a stock ledger entry

===============================================================================
RETRY POLICY
===============================================================================

``retryable`` is a class attribute.  Only ConcurrencyError and
StoreUnavailableError subclasses set it; the kernel itself never retries.
"""


class InventoryError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "INVENTORY_ERROR"
    retryable: bool = False


# Lookup failures


class NotFoundError(InventoryError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class BatchNotFoundError(NotFoundError):
    """Inventory batch with given ID was not found."""

    code: str = "BATCH_NOT_FOUND"

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__(f"Batch not found: {batch_id}")


# Argument validation


class InvalidArgumentError(InventoryError):
    """A caller-supplied value is structurally invalid."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


# State-dependent refusals


class InvalidOperationError(InventoryError):
    """The operation is not permitted in the entity's current state."""

    code: str = "INVALID_OPERATION"

    def __init__(self, entity_id: str, reason: str):
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Invalid operation on {entity_id}: {reason}")


class NegativeQuantityError(InvalidOperationError):
    """An adjustment would drive a batch quantity below zero."""

    code: str = "NEGATIVE_QUANTITY"

    def __init__(self, batch_id: str, current_quantity: int, delta: int):
        self.current_quantity = current_quantity
        self.delta = delta
        super().__init__(
            batch_id,
            f"adjustment of {delta} would go negative "
            f"(current quantity {current_quantity})",
        )


class InvalidStatusTransitionError(InvalidOperationError):
    """Requested status change is not in the batch transition table."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, batch_id: str, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            batch_id,
            f"status transition {from_status} -> {to_status} is not permitted",
        )


# Stock shortfall


class InsufficientStockError(InventoryError):
    """
    FIFO consumption cannot be satisfied from eligible batches.

    Raised before any mutation is flushed; the enclosing unit of work
    rolls back so batches, product stock and the ledger are unchanged.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


# Concurrency


class ConcurrencyError(InventoryError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"
    retryable: bool = True


class ConflictError(ConcurrencyError):
    """The transaction could not commit because of a concurrent mutation."""

    code: str = "CONFLICT"

    def __init__(self, entity_type: str, entity_id: str | None, detail: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.detail = detail
        target = f"{entity_type} {entity_id}" if entity_id else entity_type
        super().__init__(f"Conflict on {target}: {detail}")


# Store infrastructure


class StoreUnavailableError(InventoryError):
    """The session or driver layer failed; nothing was committed."""

    code: str = "STORE_UNAVAILABLE"
    retryable: bool = True

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Store unavailable: {detail}")


class TransactionTimeoutError(StoreUnavailableError):
    """The caller-supplied deadline elapsed; the unit of work was aborted."""

    code: str = "TRANSACTION_TIMEOUT"

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"{operation} exceeded timeout of {timeout_seconds}s and was rolled back"
        )


# Immutability


class ImmutabilityError(InventoryError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Stock ledger entries are append-only from the moment they are written.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )

