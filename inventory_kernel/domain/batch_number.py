"""Batch number format: ``BATCH{yy}{mm}{dd}{seq:03}``."""

from datetime import date
from uuid import UUID

BATCH_NUMBER_PREFIX = "BATCH"


def batch_sequence_name(product_id: UUID, on: date) -> str:
    """Counter name for a product's batches received on one day."""
    return f"batch:{product_id}:{on:%y%m%d}"


def format_batch_number(on: date, sequence: int) -> str:
    if sequence <= 0:
        raise ValueError(f"Batch sequence must be positive, got {sequence}")
    return f"{BATCH_NUMBER_PREFIX}{on:%y%m%d}{sequence:03d}"
