"""
Inventory Kernel - batch-tracked FIFO stock ledger

A transactional inventory core with:
- Batch (lot) receipt with sequence-allocated batch numbers
- Strict oldest-first consumption with blended cost reporting
- Append-only stock ledger
- Expiry sweeps with per-batch isolation
- A product stock cache kept equal to the sum of its batches
"""

__version__ = "0.1.0"
