"""Money, hours and percentage helpers using Decimal with HALF_UP rounding."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

MONEY_PRECISION = Decimal("0.01")
HOURS_PRECISION = Decimal("0.01")
ONE_HUNDRED = Decimal("100")
ZERO = Decimal("0.00")
# Largest values that fit Numeric(12, 2) and Numeric(10, 2) columns.
MAX_MONEY = Decimal("9999999999.99")
MAX_HOURS = Decimal("99999999.99")


def quantize_money(value: Decimal) -> Decimal:
    """Return value rounded to two decimal places with HALF_UP strategy."""

    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def quantize_hours(value: Decimal) -> Decimal:
    """Return hours rounded to two decimal places with HALF_UP strategy."""

    return value.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


def parse_money(value: str) -> Decimal:
    """Parse and normalize input money string into Decimal."""

    return quantize_money(Decimal(value))


def format_money(value: Decimal) -> str:
    """Render money as string with exactly two decimal places."""

    return f"{quantize_money(value):.2f}"


def format_hours(value: Decimal) -> str:
    """Render hours as string with exactly two decimal places."""

    return f"{quantize_hours(value):.2f}"


def sum_money(values: Iterable[Decimal]) -> Decimal:
    """Sum already-rounded amounts and keep the two-decimal scale."""

    return quantize_money(sum(values, ZERO))


@dataclass(frozen=True, slots=True)
class BillingAmounts:
    """Gross, tax and net amounts derived from hours and closure settings."""

    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal


def compute_billing_amounts(
    total_hours: Decimal,
    hourly_rate: Decimal,
    tax_percentage: Decimal,
) -> BillingAmounts:
    """Derive gross, tax and net rounding at each step.

    Gross is rounded before tax is taken from it. Net is the exact
    difference of the two rounded values.
    """

    gross_amount = quantize_money(total_hours * hourly_rate)
    tax_amount = quantize_money(gross_amount * tax_percentage / ONE_HUNDRED)
    return BillingAmounts(
        gross_amount=gross_amount,
        tax_amount=tax_amount,
        net_amount=gross_amount - tax_amount,
    )
