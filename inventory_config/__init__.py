"""
inventory_config -- runtime settings for the inventory kernel.

Responsibility:
    The only place that reads settings files or environment variables.
    ``load_settings()`` returns a frozen ``InventorySettings``.

Architecture position:
    Configuration -- sits beside ``inventory_kernel``; the kernel never
    imports from here.  Entry points (scripts, the scheduler host) load
    settings and pass plain values into the kernel.
"""

from inventory_config.loader import DATABASE_URL_ENV, load_settings, parse_settings
from inventory_config.schema import InventorySettings

__all__ = [
    "DATABASE_URL_ENV",
    "InventorySettings",
    "load_settings",
    "parse_settings",
]
