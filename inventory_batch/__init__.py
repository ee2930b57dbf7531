"""
inventory_batch -- Recurring background jobs for the inventory kernel.

Provides an in-process scheduler that runs the expiry sweep on a fixed
interval.  Nothing in inventory_kernel imports from inventory_batch.
"""

from inventory_batch.scheduler import ExpirySweepScheduler

__all__ = ["ExpirySweepScheduler"]
