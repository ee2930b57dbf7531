"""Database layer - engine, declarative base, and immutability listeners."""

from inventory_kernel.db.base import Base, UUIDString
from inventory_kernel.db.engine import create_tables, get_engine, get_session

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "UUIDString",
]
