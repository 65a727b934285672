"""
Fixed-point money helpers.

Amounts are carried as whole minor units (integers) while balances are
computed; equal-split shares stay exact fractions until they are rounded
once per member.
"""

import math
from decimal import Decimal
from fractions import Fraction
from typing import Mapping

from .config import Settings


def to_dec(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize(amount: Decimal, settings: Settings) -> Decimal:
    return to_dec(amount).quantize(settings.rounding_unit, rounding=settings.rounding_mode)


def to_minor_units(amount: Decimal, settings: Settings) -> int:
    units = to_dec(amount) / settings.rounding_unit
    return int(units.quantize(Decimal(1), rounding=settings.rounding_mode))


def from_minor_units(units: int, settings: Settings) -> Decimal:
    return (Decimal(units) * settings.rounding_unit).quantize(settings.rounding_unit)


def round_fraction(value: Fraction, rounding_mode: str) -> int:
    exact = Decimal(value.numerator) / Decimal(value.denominator)
    return int(exact.quantize(Decimal(1), rounding=rounding_mode))


def round_shares(shares: Mapping[str, Fraction], rounding_mode: str) -> dict[str, int]:
    """
    Round exact per-member shares (in minor units) to whole units.

    The total is rounded once; each member gets the floor of their share and
    the leftover units go to the largest fractional remainders. Ties keep the
    mapping's order, so identical input always rounds the same way.
    """
    if not shares:
        return {}

    total = sum(shares.values(), Fraction(0))
    target = round_fraction(total, rounding_mode)

    rounded = {member: math.floor(share) for member, share in shares.items()}
    leftover = target - sum(rounded.values())

    by_remainder = sorted(
        shares,
        key=lambda member: shares[member] - rounded[member],
        reverse=True,
    )
    for member in by_remainder[:max(leftover, 0)]:
        rounded[member] += 1
    return rounded
