"""
Configuration Loader (``billing_config.loader``).

Responsibility
--------------
Loads a configuration set's ``root.yaml`` and parses it into a
``BillingSettings``.  This is internal tooling; the single public entry
point for runtime config is ``billing_config.get_active_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values  -> ``ValueError`` from ``BillingSettings``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import BillingSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization (sorted keys)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: dict[str, Any]) -> BillingSettings:
    """
    Parse ``BillingSettings`` from a root.yaml mapping.

    ``config_id`` and ``version`` are required; the ``billing``,
    ``database`` and ``logging`` sections are optional.
    """
    billing = data.get("billing") or {}
    database = data.get("database") or {}
    logging_section = data.get("logging") or {}

    defaults = BillingSettings.__dataclass_fields__
    return BillingSettings(
        config_id=data["config_id"],
        version=data["version"],
        currency=billing.get("currency", defaults["currency"].default),
        default_tax_mode=billing.get(
            "default_tax_mode", defaults["default_tax_mode"].default,
        ),
        absent_amount_marker=str(
            billing.get("absent_amount_marker", defaults["absent_amount_marker"].default)
        ),
        database_url=database.get("url", defaults["database_url"].default),
        log_level=logging_section.get("level", defaults["log_level"].default),
        checksum=compute_checksum(data),
    )


def load_settings(config_set_dir: Path) -> BillingSettings:
    """Load and parse ``<config_set_dir>/root.yaml``."""
    return parse_settings(load_yaml_file(config_set_dir / "root.yaml"))
