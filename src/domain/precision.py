from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Context, Decimal, DivisionByZero, InvalidOperation, Overflow
from typing import Iterable

# Significant digits kept by every monetary/quantity operation.
WORKING_PRECISION = 34

CONTEXT = Context(
    prec=WORKING_PRECISION,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)

ZERO = Decimal(0)


def to_decimal(value: Decimal | int | str) -> Decimal:
    """Convert ``value`` into a Decimal rounded to the working precision.

    Floats are rejected: a binary float already carries representation error
    and must be passed as a string instead.
    """
    if isinstance(value, float):
        raise TypeError(f"refusing to convert float {value!r} to Decimal, pass a string")
    return CONTEXT.create_decimal(value)


def add(a: Decimal, b: Decimal) -> Decimal:
    return CONTEXT.add(a, b)


def sub(a: Decimal, b: Decimal) -> Decimal:
    return CONTEXT.subtract(a, b)


def mul(a: Decimal, b: Decimal) -> Decimal:
    return CONTEXT.multiply(a, b)


def div(a: Decimal, b: Decimal) -> Decimal:
    return CONTEXT.divide(a, b)


def total(values: Iterable[Decimal]) -> Decimal:
    result = ZERO
    for value in values:
        result = add(result, value)
    return result
