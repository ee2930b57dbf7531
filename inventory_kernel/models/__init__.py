"""ORM models for the inventory kernel."""

from inventory_kernel.models.inventory_batch import InventoryBatch
from inventory_kernel.models.product import Product
from inventory_kernel.models.sequence_counter import SequenceCounter
from inventory_kernel.models.stock_movement import StockMovement

__all__ = [
    "InventoryBatch",
    "Product",
    "SequenceCounter",
    "StockMovement",
]
