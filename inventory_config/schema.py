"""
InventorySettings schema.

Typed, frozen runtime settings for the inventory kernel.  YAML files are
parsed into this type by ``inventory_config.loader``; nothing else reads
configuration files or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class InventorySettings:
    """Runtime settings for the inventory kernel and its sweep job."""

    database_url: str
    echo_sql: bool = False
    pool_size: int = 20
    expiry_alert_days: int = 7
    sweep_interval_seconds: int = 86400
    transaction_timeout_seconds: float | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.pool_size <= 0:
            raise ValueError(f"pool_size must be positive, got {self.pool_size}")
        if self.expiry_alert_days < 0:
            raise ValueError(
                f"expiry_alert_days must not be negative, got {self.expiry_alert_days}"
            )
        if self.sweep_interval_seconds <= 0:
            raise ValueError(
                f"sweep_interval_seconds must be positive, got {self.sweep_interval_seconds}"
            )
        if (
            self.transaction_timeout_seconds is not None
            and self.transaction_timeout_seconds <= 0
        ):
            raise ValueError("transaction_timeout_seconds must be positive when set")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level {self.log_level!r}")
