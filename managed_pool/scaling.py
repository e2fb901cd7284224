"""Decimal scaling and swap fee helpers.

Raw token amounts are converted to 18-decimal fixed point before any math and
converted back afterwards. Amounts entering the pool round up, amounts leaving
it round down.
"""

from managed_pool.errors import (
    InvalidFeeError,
    InvalidScalingFactorError,
    TokenDecimalsTooLargeError,
)
from managed_pool.math.fixed_point import Bfp

MAX_TOKEN_DECIMALS = 18


def compute_scaling_factor(decimals: int) -> int:
    """Return 10^(18 - decimals), the multiplier that normalizes a token.

    Raises:
        TokenDecimalsTooLargeError: If decimals is negative or above 18
    """
    if not 0 <= decimals <= MAX_TOKEN_DECIMALS:
        raise TokenDecimalsTooLargeError(f"Token decimals must be in [0, 18], got {decimals}")
    return 10 ** (MAX_TOKEN_DECIMALS - decimals)


def _check_scaling_factor(scaling_factor: int) -> None:
    if scaling_factor <= 0:
        raise InvalidScalingFactorError(f"Scaling factor must be positive, got {scaling_factor}")


def scale_up(amount: int, scaling_factor: int) -> Bfp:
    """Scale a raw token amount to 18 decimals.

    Args:
        amount: Amount in token's native decimals
        scaling_factor: Factor to scale by (e.g., 10^12 for 6-decimal tokens)

    Returns:
        Amount as Bfp (18-decimal fixed-point)

    Raises:
        InvalidScalingFactorError: If scaling_factor <= 0
    """
    _check_scaling_factor(scaling_factor)
    return Bfp.from_wei(amount * scaling_factor)


def scale_down_down(bfp: Bfp, scaling_factor: int) -> int:
    """Scale back to token decimals rounding down (amounts leaving the pool)."""
    _check_scaling_factor(scaling_factor)
    return bfp.value // scaling_factor


def scale_down_up(bfp: Bfp, scaling_factor: int) -> int:
    """Scale back to token decimals rounding up (amounts entering the pool)."""
    _check_scaling_factor(scaling_factor)
    if bfp.value == 0:
        return 0
    return (bfp.value - 1) // scaling_factor + 1


def scale_up_all(amounts: list[int], scaling_factors: list[int]) -> list[Bfp]:
    return [scale_up(a, f) for a, f in zip(amounts, scaling_factors, strict=True)]


def _check_fee(swap_fee: Bfp) -> None:
    if swap_fee.value < 0 or swap_fee.value >= Bfp.ONE:
        raise InvalidFeeError(f"Swap fee must be in range [0, 1), got {swap_fee}")


def subtract_swap_fee_amount(amount: Bfp, swap_fee: Bfp) -> Bfp:
    """Remove the swap fee from an exact input amount.

    The fee is rounded up so the pool never undercharges.

    Raises:
        InvalidFeeError: If swap_fee is not in range [0, 1)
    """
    _check_fee(swap_fee)
    return amount.sub(amount.mul_up(swap_fee))


def add_swap_fee_amount(amount: Bfp, swap_fee: Bfp) -> Bfp:
    """Gross up a computed input amount so that it covers the swap fee.

    Formula: amount_with_fee = amount / (1 - fee)

    Raises:
        InvalidFeeError: If swap_fee is not in range [0, 1)
    """
    _check_fee(swap_fee)
    return amount.div_up(swap_fee.complement())
