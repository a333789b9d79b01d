"""
Tax Calculator -- Per-line tax under the three facility tax modes.

Pure functions with no I/O - the client's tax rate and default mode are
provided as parameters.

Modes:
    pre-tax:        tax = rate * r, added on top; total = rate + tax.
    tax-included:   the rate already contains tax; the tax portion is
                    rate - rate / (1 + r), disclosed only; total = rate.
    inherit-client: resolved to the client's default mode first.

Usage:
    from billing_engines.tax import TaxCalculator

    calculator = TaxCalculator(client_tax_rate=Decimal("0.0825"))
    line = calculator.calculate(Money.of("100.00"), TaxBehavior.PRE_TAX)
    line.line_item_tax      # Money('8.25', 'USD')
    line.line_item_total    # Money('108.25', 'USD')
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from billing_kernel.domain.facility import TaxBehavior
from billing_kernel.domain.values import Money
from billing_kernel.exceptions import InvalidTaxModeError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.tax")


@dataclass(frozen=True)
class LineTax:
    """
    Calculated tax for a single line item.

    ``tax_mode`` is always a concrete mode (never INHERIT_CLIENT).
    """

    tax_mode: TaxBehavior
    line_rate: Money
    line_item_tax: Money
    line_item_total: Money

    @property
    def adds_to_total(self) -> bool:
        """True if tax is charged on top of the rate."""
        return self.tax_mode is TaxBehavior.PRE_TAX

    @property
    def net_amount(self) -> Money:
        """Rate excluding tax."""
        return self.line_item_total - self.line_item_tax


def resolve_tax_mode(
    tax_behavior: TaxBehavior,
    client_default_mode: TaxBehavior,
) -> TaxBehavior:
    """
    Concrete tax mode for a facility.

    Raises:
        InvalidTaxModeError: If the facility inherits and the client
            default is itself INHERIT_CLIENT.
    """
    tax_behavior = TaxBehavior(tax_behavior)
    if tax_behavior is not TaxBehavior.INHERIT_CLIENT:
        return tax_behavior
    client_default_mode = TaxBehavior(client_default_mode)
    if client_default_mode is TaxBehavior.INHERIT_CLIENT:
        raise InvalidTaxModeError(
            client_default_mode.value,
            "client default tax mode cannot itself inherit",
        )
    return client_default_mode


class TaxCalculator:
    """
    Calculate line-item tax for one client.

    Pure - no I/O, no database access.  One instance is built per
    preview from the client's effective rate and default mode.
    """

    def __init__(
        self,
        client_tax_rate: Decimal,
        client_default_mode: TaxBehavior = TaxBehavior.PRE_TAX,
    ):
        if not isinstance(client_tax_rate, Decimal):
            raise TypeError(
                f"client_tax_rate must be Decimal, got {type(client_tax_rate).__name__}"
            )
        if client_tax_rate < Decimal("0"):
            raise ValueError("Tax rate cannot be negative")
        self.client_tax_rate = client_tax_rate
        self.client_default_mode = TaxBehavior(client_default_mode)
        if self.client_default_mode is TaxBehavior.INHERIT_CLIENT:
            raise InvalidTaxModeError(
                self.client_default_mode.value,
                "client default tax mode cannot itself inherit",
            )

    def resolve_mode(self, tax_behavior: TaxBehavior) -> TaxBehavior:
        return resolve_tax_mode(tax_behavior, self.client_default_mode)

    def calculate(self, line_rate: Money, tax_behavior: TaxBehavior) -> LineTax:
        """
        Tax and total for one included line.

        Args:
            line_rate: Effective (pro-rated) rate of the line.
            tax_behavior: Facility tax behavior, possibly INHERIT_CLIENT.

        Returns:
            LineTax with tax and total in the line's currency.
        """
        mode = self.resolve_mode(tax_behavior)

        if mode is TaxBehavior.PRE_TAX:
            tax = line_rate.multiply(self.client_tax_rate)
            total = line_rate + tax
        else:
            net = line_rate.divide(Decimal("1") + self.client_tax_rate)
            tax = line_rate - net
            total = line_rate

        logger.debug("line_tax_calculated", extra={
            "tax_mode": mode.value,
            "line_rate": str(line_rate.amount),
            "tax_rate": str(self.client_tax_rate),
            "line_item_tax": str(tax.amount),
            "line_item_total": str(total.amount),
        })
        return LineTax(
            tax_mode=mode,
            line_rate=line_rate,
            line_item_tax=tax,
            line_item_total=total,
        )

    def excluded(self, line_rate: Money, tax_behavior: TaxBehavior) -> LineTax:
        """Zero tax and total for a line that does not count toward the bill."""
        zero = Money.zero(line_rate.currency)
        return LineTax(
            tax_mode=self.resolve_mode(tax_behavior),
            line_rate=line_rate,
            line_item_tax=zero,
            line_item_total=zero,
        )


def calculate_line_tax(
    line_rate: Money,
    tax_behavior: TaxBehavior,
    client_tax_rate: Decimal,
    client_default_mode: TaxBehavior = TaxBehavior.PRE_TAX,
) -> LineTax:
    """Convenience function for a single line."""
    return TaxCalculator(client_tax_rate, client_default_mode).calculate(
        line_rate, tax_behavior
    )
