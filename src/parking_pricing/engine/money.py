"""
Money helpers.

All amounts are Decimal values in major currency units (e.g. 12.50 EUR).
Rounding to the currency's minor unit happens only through round_money().
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union


DEFAULT_MINOR_DIGITS = 2

# ISO 4217 currencies whose minor unit is not 1/100
MINOR_DIGITS = {
    'BIF': 0, 'CLP': 0, 'DJF': 0, 'GNF': 0, 'ISK': 0, 'JPY': 0, 'KMF': 0,
    'KRW': 0, 'PYG': 0, 'RWF': 0, 'UGX': 0, 'VND': 0, 'VUV': 0, 'XAF': 0,
    'XOF': 0, 'XPF': 0,
    'BHD': 3, 'IQD': 3, 'JOD': 3, 'KWD': 3, 'LYD': 3, 'OMR': 3, 'TND': 3,
}

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def minor_digits(currency: str) -> int:
    """Number of decimal places in the currency's minor unit."""
    return MINOR_DIGITS.get((currency or '').upper(), DEFAULT_MINOR_DIGITS)


def round_money(amount: Number, currency: str) -> Decimal:
    """Round an amount half-up to the currency's minor unit."""
    quantum = Decimal(1).scaleb(-minor_digits(currency))
    return to_decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)


def format_money(amount: Number, currency: str) -> str:
    """Format an amount for traces, e.g. '12.50 EUR'."""
    return f"{round_money(amount, currency)} {currency}"
