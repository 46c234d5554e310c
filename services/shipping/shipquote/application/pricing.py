"""
Pricing engine: pure functions, no I/O.

Dimensions are in centimetres and weights in kilograms. The volumetric
weight is rounded up to the next whole kilogram, so rounding can only
ever increase the billed weight.
"""

from decimal import ROUND_CEILING, Decimal
from typing import Union

Number = Union[Decimal, int, str]

DEFAULT_DIVISOR = 2500


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def volume_weight(length: Number, width: Number, height: Number, divisor: Number = DEFAULT_DIVISOR) -> Decimal:
    volume = _dec(length) * _dec(width) * _dec(height)
    return (volume / _dec(divisor)).to_integral_value(rounding=ROUND_CEILING)


def charged_weight(actual_weight: Number, volumetric_weight: Number) -> Decimal:
    return max(_dec(actual_weight), _dec(volumetric_weight))


def price(price_per_kg: Number, weight: Number) -> Decimal:
    return _dec(price_per_kg) * _dec(weight)
