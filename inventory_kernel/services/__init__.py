"""Services for the inventory kernel (write side and plain read queries)."""

from inventory_kernel.services.batch_number_allocator import (
    BatchIdAllocator,
    BatchNumberAllocator,
)
from inventory_kernel.services.batch_queries import BatchQueryService
from inventory_kernel.services.batch_store import BatchStore
from inventory_kernel.services.expiry_sweep import ExpirySweep
from inventory_kernel.services.fifo_consumption import FifoConsumptionEngine
from inventory_kernel.services.inventory_service import (
    InventoryResult,
    InventoryResultStatus,
    InventoryService,
)
from inventory_kernel.services.product_repository import ProductRepository
from inventory_kernel.services.sequence_service import SequenceService
from inventory_kernel.services.stock_ledger import StockLedger
from inventory_kernel.services.transaction_coordinator import TransactionCoordinator

__all__ = [
    "BatchIdAllocator",
    "BatchNumberAllocator",
    "BatchQueryService",
    "BatchStore",
    "ExpirySweep",
    "FifoConsumptionEngine",
    "InventoryResult",
    "InventoryResultStatus",
    "InventoryService",
    "ProductRepository",
    "SequenceService",
    "StockLedger",
    "TransactionCoordinator",
]
