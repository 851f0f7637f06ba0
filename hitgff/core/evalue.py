"""
E-value representation.

E-values reported by BLAST can be far below the smallest representable
float (``1e-500`` is legal output), so they are stored as a two-decimal
coefficient and an integer exponent instead of a float.
"""
import operator
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Tuple, Union

Number = Union[int, float]

_TWO_PLACES = Decimal("0.01")


class EValue:
    """
    Normalised ``coefficient x 10^exponent`` pair with two-decimal precision.

    E-values order against each other and against plain numbers. Equality
    and hashing only hold between EValues, so an EValue never compares equal
    to a number whose hash differs.
    """

    __slots__ = ("coefficient", "exponent")

    def __init__(self, value: Union["EValue", str, Number], exponent: int = 0):
        if isinstance(value, EValue):
            coefficient, exp = value.coefficient, value.exponent + exponent
            self.coefficient, self.exponent = self._normalise(Decimal(repr(coefficient)).scaleb(exp))
            return

        try:
            decimal_value = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid e-value: {value!r}")
        if not decimal_value.is_finite():
            raise ValueError(f"Invalid e-value: {value!r}")

        self.coefficient, self.exponent = self._normalise(decimal_value.scaleb(exponent))

    @staticmethod
    def _normalise(value: Decimal) -> Tuple[float, int]:
        if value.is_zero():
            return 0.0, 0

        exponent = value.adjusted()
        coefficient = value.scaleb(-exponent).quantize(_TWO_PLACES, rounding=ROUND_HALF_EVEN)
        # 9.996 rounds up to 10.00
        if abs(coefficient) >= 10:
            exponent += 1
            coefficient = value.scaleb(-exponent).quantize(_TWO_PLACES, rounding=ROUND_HALF_EVEN)
        return float(coefficient), exponent

    def _key(self) -> Tuple[int, int, float]:
        if self.coefficient == 0:
            return (0, 0, 0.0)
        sign = 1 if self.coefficient > 0 else -1
        return (sign, sign * self.exponent, self.coefficient)

    @staticmethod
    def _coerce(other) -> "EValue":
        if isinstance(other, EValue):
            return other
        if isinstance(other, (int, float, str, Decimal)):
            return EValue(other)
        return NotImplemented

    def __eq__(self, other) -> bool:
        if not isinstance(other, EValue):
            return NotImplemented
        return (self.coefficient, self.exponent) == (other.coefficient, other.exponent)

    def _compare(self, other, op):
        other = self._coerce(other)
        if other is NotImplemented:
            return NotImplemented
        return op(self._key(), other._key())

    def __lt__(self, other) -> bool:
        return self._compare(other, operator.lt)

    def __le__(self, other) -> bool:
        return self._compare(other, operator.le)

    def __gt__(self, other) -> bool:
        return self._compare(other, operator.gt)

    def __ge__(self, other) -> bool:
        return self._compare(other, operator.ge)

    def __hash__(self) -> int:
        return hash((self.coefficient, self.exponent))

    def __mul__(self, factor: Number) -> "EValue":
        if not isinstance(factor, (int, float)):
            return NotImplemented
        product = Decimal(repr(self.coefficient)) * Decimal(repr(factor))
        return EValue(product.scaleb(self.exponent))

    __rmul__ = __mul__

    def __float__(self) -> float:
        return float(Decimal(repr(self.coefficient)).scaleb(self.exponent))

    def __str__(self) -> str:
        return f"{self.coefficient:.2f}e{self.exponent:+03d}"

    def __repr__(self) -> str:
        return f"EValue('{self}')"
