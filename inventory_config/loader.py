"""
Settings loader (``inventory_config.loader``).

Responsibility
--------------
Reads the packaged ``defaults.yaml``, overlays an optional settings file,
applies the ``INVENTORY_DATABASE_URL`` environment override and returns a
frozen ``InventorySettings``.

Failure modes
-------------
* Missing override file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from inventory_config.schema import InventorySettings

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
DATABASE_URL_ENV = "INVENTORY_DATABASE_URL"

_KNOWN_KEYS = frozenset(f.name for f in fields(InventorySettings))


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    return data


def parse_settings(data: Mapping[str, Any]) -> InventorySettings:
    """Build InventorySettings from a parsed mapping, rejecting unknown keys."""
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    timeout = data.get("transaction_timeout_seconds")
    return InventorySettings(
        database_url=str(data["database_url"]),
        echo_sql=bool(data.get("echo_sql", False)),
        pool_size=int(data.get("pool_size", 20)),
        expiry_alert_days=int(data.get("expiry_alert_days", 7)),
        sweep_interval_seconds=int(data.get("sweep_interval_seconds", 86400)),
        transaction_timeout_seconds=float(timeout) if timeout is not None else None,
        log_level=str(data.get("log_level", "INFO")).upper(),
    )


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> InventorySettings:
    """
    Load settings: packaged defaults, then ``path``, then the environment.

    Args:
        path: Optional YAML file whose keys override the defaults.
        environ: Environment mapping (defaults to ``os.environ``).
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if path is not None:
        data.update(load_yaml_file(Path(path)))

    env = os.environ if environ is None else environ
    if env.get(DATABASE_URL_ENV):
        data["database_url"] = env[DATABASE_URL_ENV]

    return parse_settings(data)
