"""
ORM-Level Immutability Enforcement for the stock ledger.

===============================================================================
WHY THIS EXISTS
===============================================================================

The stock ledger is the audit trail of every change to on-hand quantity.
History is reconstructed from it, so an entry must never be edited or
removed once written.  Corrections are new entries (an adjustment), never
rewrites.

SQLAlchemy fires mapper events before UPDATE/DELETE statements are emitted:

    session.flush()
         |
         v
    [before_update] --> _check_stock_movement_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_stock_movement_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

If a check fails the flush is aborted and the enclosing unit of work rolls
back.  Bulk ``UPDATE``/``DELETE`` statements issued outside the ORM are not
intercepted.

===============================================================================
USAGE
===============================================================================

Called once at application startup:

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StockMovement",
            "entity_id": str(target.id),
            "statement": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockMovement",
        entity_id=str(target.id),
        reason=reason,
    )


def _check_stock_movement_immutability(mapper, connection, target):
    """Prevent any updates to StockMovement records."""
    _block(target, "UPDATE", "Stock ledger entries are immutable and cannot be modified")


def _check_stock_movement_delete(mapper, connection, target):
    """Prevent deletion of StockMovement records."""
    _block(target, "DELETE", "Stock ledger entries cannot be deleted")


def register_immutability_listeners():
    """
    Register the ledger immutability listeners.

    Idempotent: listeners already registered are left in place.
    """
    from inventory_kernel.models.stock_movement import StockMovement

    for event_name, fn in (
        ("before_update", _check_stock_movement_immutability),
        ("before_delete", _check_stock_movement_delete),
    ):
        if not event.contains(StockMovement, event_name, fn):
            event.listen(StockMovement, event_name, fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the ledger immutability listeners.

    WARNING: Only use this in tests that intentionally violate immutability.
    """
    from inventory_kernel.models.stock_movement import StockMovement

    _safe_remove_listener(StockMovement, "before_update", _check_stock_movement_immutability)
    _safe_remove_listener(StockMovement, "before_delete", _check_stock_movement_delete)
