"""18-decimal fixed-point arithmetic for pool math.

Values are unsigned integers scaled by 10^18. Every operation that can lose
precision comes in a rounding-down and a rounding-up flavour so callers can
always round in the pool's favour. The power function is the LogExpMath
algorithm used by on-chain weighted pools: ln/exp via digit extraction and
short Taylor series, with a 36-decimal ln near 1.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

__all__ = [
    "Bfp",
    "FixedPointError",
    "FixedPointUnderflow",
    "LogExpMathError",
    "XOutOfBounds",
    "YOutOfBounds",
    "ProductOutOfBounds",
    "InvalidExponent",
    "pow_raw",
    "exp",
    "ONE_18",
    "ONE_20",
    "ONE_36",
]

ONE_18 = 10**18
ONE_20 = 10**20
ONE_36 = 10**36

MAX_NATURAL_EXPONENT = 130 * ONE_18
MIN_NATURAL_EXPONENT = -41 * ONE_18

# ln() switches to 36-decimal precision inside (0.9, 1.1)
LN_36_LOWER_BOUND = ONE_18 - 10**17
LN_36_UPPER_BOUND = ONE_18 + 10**17

MILD_EXPONENT_BOUND = (1 << 254) // ONE_20

# Powers of two (x) and the matching e^x (a), 18 decimals
X_18 = (128 * ONE_18, 64 * ONE_18)
A_18 = (
    38877084059945950922200000000000000000000000000000000000,  # e^128
    6235149080811616882910000000,  # e^64
)

# Powers of two from 2^5 down to 2^-4 and e^x, 20 decimals
X_20 = (
    32 * ONE_20,
    16 * ONE_20,
    8 * ONE_20,
    4 * ONE_20,
    2 * ONE_20,
    ONE_20,
    ONE_20 // 2,
    ONE_20 // 4,
    ONE_20 // 8,
    ONE_20 // 16,
)
A_20 = (
    7_896_296_018_268_069_516_100_000_000_000_000,  # e^32
    888_611_052_050_787_263_676_000_000,  # e^16
    298_095_798_704_172_827_474_000,  # e^8
    5_459_815_003_314_423_907_810,  # e^4
    738_905_609_893_065_022_723,  # e^2
    271_828_182_845_904_523_536,  # e^1
    164_872_127_070_012_814_685,  # e^0.5
    128_402_541_668_774_148_407,  # e^0.25
    113_314_845_306_682_631_683,  # e^0.125
    106_449_445_891_785_942_956,  # e^0.0625
)


class FixedPointError(ArithmeticError):
    """Base error for fixed-point operations."""


class FixedPointUnderflow(FixedPointError):
    """Subtraction would produce a negative unsigned value."""


class LogExpMathError(FixedPointError):
    """Base error for ln/exp/pow domain violations."""


class XOutOfBounds(LogExpMathError):
    """Power base does not fit the signed 256-bit range."""


class YOutOfBounds(LogExpMathError):
    """Power exponent exceeds MILD_EXPONENT_BOUND."""


class ProductOutOfBounds(LogExpMathError):
    """y * ln(x) falls outside the range exp() accepts."""


class InvalidExponent(LogExpMathError):
    """exp() argument outside [MIN_NATURAL_EXPONENT, MAX_NATURAL_EXPONENT]."""


def _div_trunc(a: int, b: int) -> int:
    """Integer division truncating toward zero.

    Python's ``//`` floors, which differs from EVM division whenever the
    operands have different signs.
    """
    if b == 0:
        raise ZeroDivisionError("division by zero")
    if (a >= 0) == (b >= 0):
        return a // b
    return -(abs(a) // abs(b))


def _ln(a: int) -> int:
    """Natural log of a positive 18-decimal value."""
    if a < ONE_18:
        return -_ln((ONE_18 * ONE_18) // a)

    total = 0
    for x, a_n in zip(X_18, A_18, strict=True):
        if a >= a_n * ONE_18:
            a //= a_n
            total += x

    # Continue with 20 decimals of precision
    total *= 100
    a *= 100

    for x, a_n in zip(X_20, A_20, strict=True):
        if a >= a_n:
            a = (a * ONE_20) // a_n
            total += x

    # ln(a) = 2 * arctanh(z), z = (a - 1) / (a + 1)
    z = ((a - ONE_20) * ONE_20) // (a + ONE_20)
    z_squared = (z * z) // ONE_20
    num = z
    series = num
    for i in range(3, 12, 2):
        num = (num * z_squared) // ONE_20
        series += num // i

    return (total + series * 2) // 100


def _ln_36(x: int) -> int:
    """Natural log with 36 decimals of precision, for x close to 1."""
    x *= ONE_18

    z = _div_trunc((x - ONE_36) * ONE_36, x + ONE_36)
    z_squared = _div_trunc(z * z, ONE_36)
    num = z
    series = num
    for i in range(3, 16, 2):
        num = _div_trunc(num * z_squared, ONE_36)
        series += _div_trunc(num, i)

    return series * 2


def exp(x: int) -> int:
    """e^x for an 18-decimal (possibly negative) exponent."""
    if not (MIN_NATURAL_EXPONENT <= x <= MAX_NATURAL_EXPONENT):
        raise InvalidExponent(f"exponent {x} outside valid range")

    if x < 0:
        return (ONE_18 * ONE_18) // exp(-x)

    if x >= X_18[0]:
        x -= X_18[0]
        first_an = A_18[0]
    elif x >= X_18[1]:
        x -= X_18[1]
        first_an = A_18[1]
    else:
        first_an = 1

    x *= 100

    # The two largest 20-decimal terms cannot apply once x < 2^6
    product = ONE_20
    for x_n, a_n in zip(X_20[:8], A_20[:8], strict=True):
        if x >= x_n:
            x -= x_n
            product = (product * a_n) // ONE_20

    series = ONE_20 + x
    term = x
    for i in range(2, 13):
        term = ((term * x) // ONE_20) // i
        series += term

    return (((product * series) // ONE_20) * first_an) // 100


def pow_raw(x: int, y: int) -> int:
    """x^y for non-negative 18-decimal values, without error compensation."""
    if y == 0:
        return ONE_18
    if x == 0:
        return 0

    if x >= (1 << 255):
        raise XOutOfBounds(f"base {x} too large")
    if y >= MILD_EXPONENT_BOUND:
        raise YOutOfBounds(f"exponent {y} exceeds bound")

    if LN_36_LOWER_BOUND < x < LN_36_UPPER_BOUND:
        ln_36_x = _ln_36(x)
        quotient = _div_trunc(ln_36_x, ONE_18)
        remainder = ln_36_x - quotient * ONE_18
        logx_times_y = quotient * y + _div_trunc(remainder * y, ONE_18)
    else:
        logx_times_y = _ln(x) * y

    logx_times_y = _div_trunc(logx_times_y, ONE_18)

    if not (MIN_NATURAL_EXPONENT <= logx_times_y <= MAX_NATURAL_EXPONENT):
        raise ProductOutOfBounds(f"product {logx_times_y} outside valid range")

    return exp(logx_times_y)


class Bfp:
    """Unsigned 18-decimal fixed-point number.

    1.5 is stored as ``Bfp(1_500_000_000_000_000_000)``. Instances are
    immutable in practice; every operation returns a new value.
    """

    ONE: ClassVar[int] = ONE_18
    # 1e-14 relative error bound of pow_raw
    MAX_POW_RELATIVE_ERROR: ClassVar[int] = 10000

    __slots__ = ("value",)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, value: int) -> None:
        self.value = value

    @classmethod
    def from_wei(cls, wei: int) -> Bfp:
        """Wrap an amount that is already scaled to 18 decimals."""
        return cls(wei)

    @classmethod
    def from_int(cls, i: int) -> Bfp:
        return cls(i * cls.ONE)

    @classmethod
    def from_decimal(cls, d: Decimal) -> Bfp:
        """Scale a non-negative decimal fraction, rounding half up."""
        if d < 0:
            raise ValueError(f"Bfp.from_decimal requires non-negative input, got {d}")
        scaled = (d * cls.ONE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(int(scaled))

    def to_decimal(self) -> Decimal:
        return Decimal(self.value) / Decimal(self.ONE)

    def add(self, other: Bfp) -> Bfp:
        return Bfp(self.value + other.value)

    def sub(self, other: Bfp) -> Bfp:
        """Subtract, raising FixedPointUnderflow if other > self."""
        if other.value > self.value:
            raise FixedPointUnderflow(f"{self.value} - {other.value} underflows")
        return Bfp(self.value - other.value)

    def mul_down(self, other: Bfp) -> Bfp:
        return Bfp((self.value * other.value) // self.ONE)

    def mul_up(self, other: Bfp) -> Bfp:
        product = self.value * other.value
        if product == 0:
            return Bfp(0)
        return Bfp((product - 1) // self.ONE + 1)

    def div_down(self, other: Bfp) -> Bfp:
        if other.value == 0:
            raise ZeroDivisionError("Bfp division by zero")
        return Bfp((self.value * self.ONE) // other.value)

    def div_up(self, other: Bfp) -> Bfp:
        if other.value == 0:
            raise ZeroDivisionError("Bfp division by zero")
        numerator = self.value * self.ONE
        if numerator == 0:
            return Bfp(0)
        return Bfp((numerator - 1) // other.value + 1)

    def complement(self) -> Bfp:
        """1 - self, clamped at zero."""
        return Bfp(max(0, self.ONE - self.value))

    def _max_pow_error(self, raw: int) -> int:
        return Bfp(raw).mul_up(Bfp(self.MAX_POW_RELATIVE_ERROR)).value + 1

    def pow_down(self, exponent: Bfp) -> Bfp:
        """self^exponent, rounded down by the pow_raw error bound.

        Exponents of exactly 1, 2 and 4 are computed by multiplication.
        """
        if exponent.value == self.ONE:
            return self
        if exponent.value == 2 * self.ONE:
            return self.mul_down(self)
        if exponent.value == 4 * self.ONE:
            square = self.mul_down(self)
            return square.mul_down(square)
        raw = pow_raw(self.value, exponent.value)
        max_error = self._max_pow_error(raw)
        if raw < max_error:
            return Bfp(0)
        return Bfp(raw - max_error)

    def pow_up(self, exponent: Bfp) -> Bfp:
        """self^exponent, rounded up by the pow_raw error bound."""
        if exponent.value == self.ONE:
            return self
        if exponent.value == 2 * self.ONE:
            return self.mul_up(self)
        if exponent.value == 4 * self.ONE:
            square = self.mul_up(self)
            return square.mul_up(square)
        raw = pow_raw(self.value, exponent.value)
        return Bfp(raw + self._max_pow_error(raw))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value <= other.value

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value > other.value

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value >= other.value

    def __repr__(self) -> str:
        return f"Bfp({self.value})"

    def __str__(self) -> str:
        return str(self.to_decimal())


ONE = Bfp(ONE_18)
ZERO = Bfp(0)
