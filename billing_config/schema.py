"""
BillingSettings schema.

The typed, frozen form of a billing configuration set.  YAML is parsed
into this by the loader; everything else receives the dataclass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from billing_kernel.domain.facility import TaxBehavior
from billing_kernel.domain.values import DEFAULT_CURRENCY

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class BillingSettings:
    """Runtime billing settings for one configuration set."""

    config_id: str
    version: int
    currency: str = DEFAULT_CURRENCY
    default_tax_mode: TaxBehavior = TaxBehavior.PRE_TAX
    absent_amount_marker: str = "—"
    database_url: str = "sqlite://"
    log_level: str = "INFO"
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.config_id:
            raise ValueError("config_id is required")
        if isinstance(self.version, bool) or not isinstance(self.version, int) or self.version < 1:
            raise ValueError(f"version must be a positive integer, got {self.version!r}")
        code = self.currency.upper() if isinstance(self.currency, str) else ""
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "currency", code)
        mode = TaxBehavior(self.default_tax_mode)
        if mode is TaxBehavior.INHERIT_CLIENT:
            raise ValueError("default_tax_mode must be pre-tax or tax-included")
        object.__setattr__(self, "default_tax_mode", mode)
        level = str(self.log_level).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level!r}")
        object.__setattr__(self, "log_level", level)

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level)
