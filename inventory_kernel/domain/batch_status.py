"""
Batch status machine and ledger movement types.

Responsibility:
    Closed enumerations for batch lifecycle status and stock movement type,
    plus the explicit transition table every status change is checked
    against.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Status changes are only those listed in ``VALID_TRANSITIONS``.
    - ``DEPLETED`` is entered and left only through quantity changes.
    - ``EXPIRED`` is terminal.
"""

from enum import Enum


class BatchStatus(str, Enum):
    """Lifecycle status of an inventory batch."""

    ACTIVE = "active"
    DEPLETED = "depleted"
    EXPIRED = "expired"
    DAMAGED = "damaged"
    RETURNED = "returned"


class MovementType(str, Enum):
    """Kind of stock change recorded in the ledger."""

    PURCHASE = "purchase"
    SALE = "sale"
    ADJUSTMENT = "adjustment"
    EXPIRED = "expired"
    DAMAGE = "damage"


VALID_TRANSITIONS: dict[BatchStatus, frozenset[BatchStatus]] = {
    BatchStatus.ACTIVE: frozenset({
        BatchStatus.DEPLETED,
        BatchStatus.EXPIRED,
        BatchStatus.DAMAGED,
        BatchStatus.RETURNED,
    }),
    BatchStatus.DEPLETED: frozenset({
        BatchStatus.ACTIVE,
        BatchStatus.EXPIRED,
        BatchStatus.DAMAGED,
    }),
    BatchStatus.RETURNED: frozenset({
        BatchStatus.ACTIVE,
        BatchStatus.EXPIRED,
        BatchStatus.DAMAGED,
    }),
    BatchStatus.DAMAGED: frozenset({BatchStatus.ACTIVE}),
    BatchStatus.EXPIRED: frozenset(),
}

# Statuses callers may request through set_status.
SETTABLE_STATUSES: frozenset[BatchStatus] = frozenset({
    BatchStatus.ACTIVE,
    BatchStatus.EXPIRED,
    BatchStatus.DAMAGED,
    BatchStatus.RETURNED,
})

# Entering one of these writes the remaining quantity off.
WRITE_OFF_STATUSES: dict[BatchStatus, MovementType] = {
    BatchStatus.EXPIRED: MovementType.EXPIRED,
    BatchStatus.DAMAGED: MovementType.DAMAGE,
}

# Statuses whose quantity may be adjusted.
ADJUSTABLE_STATUSES: frozenset[BatchStatus] = frozenset({
    BatchStatus.ACTIVE,
    BatchStatus.DEPLETED,
})


def can_transition(current: BatchStatus, target: BatchStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


def status_after_quantity_change(current: BatchStatus, new_quantity: int) -> BatchStatus:
    """Flip ``active <-> depleted`` at the zero boundary; leave others alone."""
    if current == BatchStatus.ACTIVE and new_quantity == 0:
        return BatchStatus.DEPLETED
    if current == BatchStatus.DEPLETED and new_quantity > 0:
        return BatchStatus.ACTIVE
    return current
