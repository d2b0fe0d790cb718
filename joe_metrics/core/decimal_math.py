"""
Decimal arithmetic helpers.

All monetary and rate math goes through decimal.Decimal evaluated in a
dedicated context, never through floats. Rounding follows ROUND_HALF_UP so
that results match what protocol front-ends display.
"""

from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Union

from .results import UndefinedMetricError

Number = Union[Decimal, int, str]

DECIMAL_CONTEXT = Context(prec=60, rounding=ROUND_HALF_UP)

SECONDS_PER_YEAR = 31_536_000
DAYS_PER_YEAR = 365
WAD = 10 ** 18

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)


def to_decimal(value) -> Decimal:
    """Convert raw contract output (int, numeric string, Decimal) to Decimal."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Refusing to convert bool to Decimal")
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def add(a: Number, b: Number) -> Decimal:
    return DECIMAL_CONTEXT.add(to_decimal(a), to_decimal(b))


def sub(a: Number, b: Number) -> Decimal:
    return DECIMAL_CONTEXT.subtract(to_decimal(a), to_decimal(b))


def mul(a: Number, b: Number) -> Decimal:
    return DECIMAL_CONTEXT.multiply(to_decimal(a), to_decimal(b))


def div(a: Number, b: Number) -> Decimal:
    """Divide, raising UndefinedMetricError instead of producing Infinity/NaN."""
    divisor = to_decimal(b)
    if divisor == 0:
        raise UndefinedMetricError(f"Division of {a} by zero")
    return DECIMAL_CONTEXT.divide(to_decimal(a), divisor)


def pow_int(base: Number, exponent: int) -> Decimal:
    """Raise to a fixed integer power (no fractional exponents)."""
    if isinstance(exponent, bool) or not isinstance(exponent, int):
        raise TypeError(f"Exponent must be an int, got {type(exponent).__name__}")
    return DECIMAL_CONTEXT.power(to_decimal(base), exponent)


def scale_down(raw: Number, decimals: int) -> Decimal:
    """Normalize an on-chain integer amount by 10 ** decimals."""
    return div(raw, pow_int(10, int(decimals)))


def round_places(value: Number, places: int) -> Decimal:
    """Round to a fixed number of decimal places (ROUND_HALF_UP)."""
    quantum = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP, context=DECIMAL_CONTEXT)


def total(values) -> Decimal:
    """Sum an iterable of numbers exactly."""
    result = ZERO
    for value in values:
        result = add(result, value)
    return result


def apr_to_apy(percent_apr: Number, periods: int = DAYS_PER_YEAR) -> Decimal:
    """
    Convert a percentage APR into a percentage APY compounded `periods` times a year.

    APY = ((1 + APR / 100 / periods) ^ periods - 1) * 100
    """
    rate_per_period = div(div(percent_apr, HUNDRED), periods)
    growth = pow_int(add(ONE, rate_per_period), periods)
    return mul(sub(growth, ONE), HUNDRED)
