"""Parse, format and combine human-entered ingredient quantities."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from numbers import Real
from typing import Optional, Tuple, Union

TOLERANCE = Fraction(1, 100)

CANONICAL_FRACTIONS: Tuple[Tuple[Fraction, str], ...] = (
    (Fraction(1, 8), "1/8"),
    (Fraction(1, 4), "1/4"),
    (Fraction(1, 3), "1/3"),
    (Fraction(1, 2), "1/2"),
    (Fraction(2, 3), "2/3"),
    (Fraction(3, 4), "3/4"),
)

_WHOLE = re.compile(r"^(\d+)$")
_FRACTION = re.compile(r"^(\d+)/(\d+)$")
_MIXED = re.compile(r"^(\d+)\s+(\d+)/(\d+)$")
_DECIMAL = re.compile(r"^(\d+\.\d+|\.\d+)$")

QuantityLike = Union["Quantity", Fraction, Real, str, None]


@dataclass(frozen=True, order=True)
class Quantity:
    """A non-negative rational amount with a canonical string form."""

    value: Fraction = Fraction(0)

    @staticmethod
    def parse(text: QuantityLike) -> "Quantity":
        return parse_quantity(text)

    def format(self) -> str:
        return format_quantity(self)

    def scale(self, ratio: Union[Fraction, Real]) -> "Quantity":
        return scale_quantity(self, ratio)

    def is_zero(self) -> bool:
        return self.value == 0

    def is_close(self, other: QuantityLike, tolerance: Fraction = TOLERANCE) -> bool:
        return abs(self.value - parse_quantity(other).value) <= tolerance

    def __add__(self, other: object) -> "Quantity":
        if not isinstance(other, Quantity):
            return NotImplemented
        return Quantity(self.value + other.value)

    def __float__(self) -> float:
        return float(self.value)

    def __str__(self) -> str:
        return format_quantity(self)


ZERO = Quantity()


def _from_number(number: Union[Fraction, Real]) -> Quantity:
    if isinstance(number, Fraction):
        value = number
    elif isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            return ZERO
        value = Fraction(number)
    else:
        value = Fraction(number)
    if value <= 0:
        return ZERO
    return Quantity(value)


def parse_quantity(text: QuantityLike) -> Quantity:
    """Parse ``text`` into a quantity.

    Accepts a whole number (``"2"``), a fraction (``"1/2"``), a mixed number
    (``"1 1/2"``) or a decimal (``"1.5"``). Anything else, including the empty
    string, yields zero instead of raising.
    """

    if text is None:
        return ZERO
    if isinstance(text, Quantity):
        return text
    if isinstance(text, bool):
        return ZERO
    if isinstance(text, (Fraction, Real)):
        return _from_number(text)

    cleaned = str(text).strip()
    if not cleaned:
        return ZERO

    match = _WHOLE.match(cleaned)
    if match:
        return Quantity(Fraction(int(match.group(1))))

    match = _MIXED.match(cleaned)
    if match:
        whole, numerator, denominator = (int(part) for part in match.groups())
        if denominator == 0:
            return ZERO
        return Quantity(whole + Fraction(numerator, denominator))

    match = _FRACTION.match(cleaned)
    if match:
        numerator, denominator = (int(part) for part in match.groups())
        if denominator == 0:
            return ZERO
        return Quantity(Fraction(numerator, denominator))

    if _DECIMAL.match(cleaned):
        return Quantity(Fraction(cleaned))

    return ZERO


def _decimal_string(value: Fraction) -> str:
    exact = Decimal(value.numerator) / Decimal(value.denominator)
    rounded = exact.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = format(rounded, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def format_quantity(quantity: QuantityLike) -> str:
    """Render a quantity, preferring the common culinary fractions."""

    value = parse_quantity(quantity).value
    if value <= 0:
        return "0"

    whole = math.floor(value)
    fractional = value - whole
    if fractional == 0:
        return str(whole)

    for fraction, label in CANONICAL_FRACTIONS:
        if abs(fractional - fraction) < TOLERANCE:
            return label if whole == 0 else f"{whole} {label}"

    return _decimal_string(value)


def scale_quantity(quantity: QuantityLike, ratio: Union[Fraction, Real]) -> Quantity:
    if isinstance(ratio, bool) or ratio <= 0:
        raise ValueError(f"Scaling ratio must be positive, got {ratio!r}")
    factor = ratio if isinstance(ratio, Fraction) else Fraction(ratio)
    return Quantity(parse_quantity(quantity).value * factor)


def add_quantities(*quantities: QuantityLike) -> Quantity:
    total = Fraction(0)
    for quantity in quantities:
        total += parse_quantity(quantity).value
    return Quantity(total)


def servings_ratio(target: Optional[Real], base: Optional[Real]) -> Fraction:
    """Ratio used to scale a recipe authored for ``base`` servings to ``target``.

    The base is floored to one serving; a missing or non-positive target falls
    back to the base so the ratio is always strictly positive.
    """

    base_value = Fraction(base) if base is not None and base > 0 else Fraction(0)
    if base_value < 1:
        base_value = Fraction(1)
    if target is None or target <= 0:
        return Fraction(1)
    return Fraction(target) / base_value
