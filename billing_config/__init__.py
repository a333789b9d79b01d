"""
billing_config — single public entrypoint for billing configuration.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component may read configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``billing_kernel`` and beside
    ``billing_engines``.  The kernel and the engines MUST NEVER import
    from ``billing_config``; services pass the relevant settings values
    in as parameters.

Invariants enforced:
    - Single entrypoint: all runtime settings flow through
      ``get_active_settings()``.
    - Checksum pinning: when an APPROVED_FINGERPRINT file exists, the
      settings checksum must match the pinned value.

Failure modes:
    - ``FileNotFoundError`` -- unknown configuration set.
    - ``ValueError`` -- invalid settings values.
    - ``ConfigIntegrityError`` -- checksum mismatch against a pin file.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``BILLING_CONFIG_TRACE`` log entry with config_id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from billing_config.integrity import ConfigIntegrityError, verify_fingerprint_pin
from billing_config.loader import load_settings
from billing_config.schema import BillingSettings

_logger = logging.getLogger("billing_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_SET = "default"


def get_active_settings(
    config_set: str = DEFAULT_CONFIG_SET,
    config_dir: Path | None = None,
) -> BillingSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_set: Name of the set directory under ``config_dir``.
        config_dir: Override path to the configuration sets directory.
            Defaults to billing_config/sets/.

    Returns:
        Frozen BillingSettings.

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        ValueError: If a settings value is invalid.
        ConfigIntegrityError: If APPROVED_FINGERPRINT exists and does
            not match the settings checksum.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    set_dir = sets_dir / config_set
    if not (set_dir / "root.yaml").is_file():
        raise FileNotFoundError(
            f"No configuration set '{config_set}' found in {sets_dir}"
        )

    settings = load_settings(set_dir)

    _logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "trace_type": "BILLING_CONFIG_TRACE",
            "config_set_id": settings.config_id,
            "config_set_version": settings.version,
            "checksum": settings.checksum,
            "currency": settings.currency,
            "default_tax_mode": settings.default_tax_mode.value,
        },
    )

    verify_fingerprint_pin(
        config_id=settings.config_id,
        checksum=settings.checksum,
        config_dir=set_dir,
    )

    return settings


__all__ = [
    "BillingSettings",
    "ConfigIntegrityError",
    "DEFAULT_CONFIG_SET",
    "get_active_settings",
]
