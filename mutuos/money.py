"""Fixed-precision money value type."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

CENT = Decimal("0.01")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """Convert a numeric input to ``Decimal``.

    Floats are refused so binary drift never reaches an amount; pass
    ``str`` or ``Decimal`` instead.

    Raises
    ------
    TypeError
        If the value is a float, a bool or not a numeric type.
    ValueError
        If a string does not parse or the value is not finite.
    """
    if isinstance(value, Money):
        return value.amount
    if isinstance(value, (bool, float)) or not isinstance(value, (Decimal, int, str)):
        raise TypeError(f"Expected Decimal, int or str, got {type(value).__name__}: {value!r}")

    if isinstance(value, str):
        value = value.strip()
    try:
        result = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric value: {value!r}") from exc

    if not result.is_finite():
        raise ValueError(f"Not a finite value: {value!r}")
    return result


@dataclass(frozen=True, order=True)
class Money:
    """Amount with exactly two decimal places.

    ``Money.round`` is the only rounding primitive (half away from zero).
    Constructing ``Money`` directly from a value with more than two places
    raises ``ValueError`` so nothing gets rounded twice by accident.
    """

    amount: Decimal

    def __post_init__(self) -> None:
        amount = to_decimal(self.amount)
        quantized = amount.quantize(CENT)
        if quantized != amount:
            raise ValueError(f"Money supports at most 2 decimal places, got {amount}")
        object.__setattr__(self, "amount", quantized)

    @classmethod
    def round(cls, value: Decimal | int | str) -> Money:
        """Round ``value`` half away from zero to 2 decimal places."""
        return cls(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))

    @classmethod
    def zero(cls) -> Money:
        return cls(Decimal("0.00"))

    @classmethod
    def sum(cls, values: Iterable[Money]) -> Money:
        """Exact sum of money values (no rounding involved)."""
        total = Decimal("0.00")
        for value in values:
            total += value.amount
        return cls(total)

    @property
    def minor_units(self) -> int:
        """Amount in cents."""
        return int(self.amount * 100)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def multiply(self, rate: Decimal | int | str) -> Money:
        """Multiply by a rate, rounding the product once."""
        return Money.round(self.amount * to_decimal(rate))

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount + other.amount)

    def __radd__(self, other: object) -> Money:
        # sum() starts from int 0
        if other == 0:
            return self
        return NotImplemented

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount - other.amount)

    def __neg__(self) -> Money:
        return Money(-self.amount)

    def __str__(self) -> str:
        return str(self.amount)

    def __repr__(self) -> str:
        return f"Money('{self.amount}')"
