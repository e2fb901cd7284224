"""Weighted pool math.

Invariant, swap and join/exit formulas over 18-decimal normalized balances and
normalized weights. Every function rounds in the pool's favour: amounts paid
out round down, amounts paid in and shares burned round up.
"""

from __future__ import annotations

from collections.abc import Sequence

from managed_pool.config import DEFAULT_POOL_LIMITS
from managed_pool.errors import (
    InputLengthMismatchError,
    MaxInRatioError,
    MaxOutBptForTokenInError,
    MaxOutRatioError,
    MinBptInForTokenOutError,
    ZeroBalanceError,
    ZeroInvariantError,
    ZeroWeightError,
)
from managed_pool.math.fixed_point import ONE, ZERO, Bfp

MAX_IN_RATIO = Bfp(DEFAULT_POOL_LIMITS.max_in_ratio)
MAX_OUT_RATIO = Bfp(DEFAULT_POOL_LIMITS.max_out_ratio)
MAX_INVARIANT_RATIO = Bfp(DEFAULT_POOL_LIMITS.max_invariant_ratio)
MIN_INVARIANT_RATIO = Bfp(DEFAULT_POOL_LIMITS.min_invariant_ratio)


def _check_lengths(*sequences: Sequence[object]) -> None:
    if len({len(s) for s in sequences}) != 1:
        raise InputLengthMismatchError("balances, weights and amounts must have equal length")


def _check_pair(balance_in: Bfp, weight_in: Bfp, balance_out: Bfp, weight_out: Bfp) -> None:
    if weight_in.value <= 0:
        raise ZeroWeightError("weight_in must be positive")
    if weight_out.value <= 0:
        raise ZeroWeightError("weight_out must be positive")
    if balance_in.value <= 0:
        raise ZeroBalanceError("balance_in must be positive")
    if balance_out.value <= 0:
        raise ZeroBalanceError("balance_out must be positive")


def calc_invariant(normalized_weights: Sequence[Bfp], balances: Sequence[Bfp]) -> Bfp:
    """Weighted geometric mean of the balances.

    Formula:
        invariant = prod(balance_i ^ weight_i)

    Raises:
        ZeroInvariantError: If the product rounds to zero
    """
    _check_lengths(normalized_weights, balances)
    invariant = ONE
    for weight, balance in zip(normalized_weights, balances, strict=True):
        invariant = invariant.mul_down(balance.pow_down(weight))
    if invariant.value == 0:
        raise ZeroInvariantError("invariant is zero")
    return invariant


def _balance_ratio_power(balance: Bfp, new_balance: Bfp, weight_ratio: Bfp) -> Bfp:
    """(balance / new_balance) ^ weight_ratio, rounded up.

    This is the single kernel behind both swap directions. Holding the
    invariant constant across a swap means
    (b_in / b_in') ^ w_in == (b_out' / b_out) ^ w_out, and each direction
    solves that equality for its unknown side.
    """
    return balance.div_up(new_balance).pow_up(weight_ratio)


def calc_out_given_in(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_in: Bfp,
) -> Bfp:
    """Output amount for an exact input amount.

    The swap fee must already be subtracted from amount_in.

    Formula:
        amount_out = balance_out * (1 - (balance_in / (balance_in + amount_in))^(weight_in / weight_out))

    Raises:
        MaxInRatioError: If amount_in > 30% of balance_in
        ZeroWeightError: If either weight is zero
        ZeroBalanceError: If either balance is zero
    """
    _check_pair(balance_in, weight_in, balance_out, weight_out)

    if amount_in > balance_in.mul_down(MAX_IN_RATIO):
        raise MaxInRatioError(f"Input {amount_in.value} exceeds 30% of balance {balance_in.value}")

    # Exponent rounds down so the power (and the kept share) rounds up
    power = _balance_ratio_power(balance_in, balance_in.add(amount_in), weight_in.div_down(weight_out))
    return balance_out.mul_down(power.complement())


def calc_in_given_out(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_out: Bfp,
) -> Bfp:
    """Input amount (before fees) needed for an exact output amount.

    The swap fee must be added to the result afterwards.

    Formula:
        amount_in = balance_in * ((balance_out / (balance_out - amount_out))^(weight_out / weight_in) - 1)

    Raises:
        MaxOutRatioError: If amount_out > 30% of balance_out
        ZeroWeightError: If either weight is zero
        ZeroBalanceError: If either balance is zero
    """
    _check_pair(balance_in, weight_in, balance_out, weight_out)

    if amount_out > balance_out.mul_down(MAX_OUT_RATIO):
        raise MaxOutRatioError(
            f"Output {amount_out.value} exceeds 30% of balance {balance_out.value}"
        )

    power = _balance_ratio_power(balance_out, balance_out.sub(amount_out), weight_out.div_up(weight_in))
    return balance_in.mul_up(power.sub(ONE))


# =============================================================================
# Joins
# =============================================================================


def calc_bpt_out_given_exact_tokens_in(
    balances: Sequence[Bfp],
    normalized_weights: Sequence[Bfp],
    amounts_in: Sequence[Bfp],
    bpt_total_supply: Bfp,
    swap_fee_percentage: Bfp,
) -> Bfp:
    """Shares minted for an arbitrary (possibly unbalanced) deposit.

    The part of each deposit above the weighted-average balance growth acts
    like a swap into the pool and is charged the swap fee.
    """
    _check_lengths(balances, normalized_weights, amounts_in)

    balance_ratios_with_fee = []
    invariant_ratio_with_fees = ZERO
    for balance, weight, amount in zip(balances, normalized_weights, amounts_in, strict=True):
        ratio = balance.add(amount).div_down(balance)
        balance_ratios_with_fee.append(ratio)
        invariant_ratio_with_fees = invariant_ratio_with_fees.add(ratio.mul_down(weight))

    invariant_ratio = ONE
    for i, (balance, weight, amount) in enumerate(
        zip(balances, normalized_weights, amounts_in, strict=True)
    ):
        if balance_ratios_with_fee[i] > invariant_ratio_with_fees:
            non_taxable = balance.mul_down(invariant_ratio_with_fees.sub(ONE))
            taxable = amount.sub(non_taxable)
            amount_without_fee = non_taxable.add(taxable.mul_down(swap_fee_percentage.complement()))
        else:
            amount_without_fee = amount

        balance_ratio = balance.add(amount_without_fee).div_down(balance)
        invariant_ratio = invariant_ratio.mul_down(balance_ratio.pow_down(weight))

    if invariant_ratio >= ONE:
        return bpt_total_supply.mul_down(invariant_ratio.sub(ONE))
    return ZERO


def calc_token_in_given_exact_bpt_out(
    balance: Bfp,
    normalized_weight: Bfp,
    bpt_amount_out: Bfp,
    bpt_total_supply: Bfp,
    swap_fee_percentage: Bfp,
) -> Bfp:
    """Single-token deposit required to mint exactly bpt_amount_out.

    Raises:
        MaxOutBptForTokenInError: If the invariant would grow more than 3x
    """
    invariant_ratio = bpt_total_supply.add(bpt_amount_out).div_up(bpt_total_supply)
    if invariant_ratio > MAX_INVARIANT_RATIO:
        raise MaxOutBptForTokenInError(f"invariant ratio {invariant_ratio} above maximum")

    balance_ratio = invariant_ratio.pow_up(ONE.div_up(normalized_weight))
    amount_without_fee = balance.mul_up(balance_ratio.sub(ONE))

    # Only the share not matching the token's own weight is a virtual swap
    taxable = amount_without_fee.mul_up(normalized_weight.complement())
    non_taxable = amount_without_fee.sub(taxable)
    return non_taxable.add(taxable.div_up(swap_fee_percentage.complement()))


def calc_all_tokens_in_given_exact_bpt_out(
    balances: Sequence[Bfp],
    bpt_amount_out: Bfp,
    bpt_total_supply: Bfp,
) -> list[Bfp]:
    """Proportional deposit for exactly bpt_amount_out. No fee applies."""
    bpt_ratio = bpt_amount_out.div_up(bpt_total_supply)
    return [balance.mul_up(bpt_ratio) for balance in balances]


# =============================================================================
# Exits
# =============================================================================


def calc_bpt_in_given_exact_tokens_out(
    balances: Sequence[Bfp],
    normalized_weights: Sequence[Bfp],
    amounts_out: Sequence[Bfp],
    bpt_total_supply: Bfp,
    swap_fee_percentage: Bfp,
) -> Bfp:
    """Shares burned for an arbitrary (possibly unbalanced) withdrawal."""
    _check_lengths(balances, normalized_weights, amounts_out)

    balance_ratios_without_fee = []
    invariant_ratio_without_fees = ZERO
    for balance, weight, amount in zip(balances, normalized_weights, amounts_out, strict=True):
        if amount > balance:
            raise ZeroBalanceError(f"amount out {amount.value} exceeds balance {balance.value}")
        ratio = balance.sub(amount).div_up(balance)
        balance_ratios_without_fee.append(ratio)
        invariant_ratio_without_fees = invariant_ratio_without_fees.add(ratio.mul_up(weight))

    invariant_ratio = ONE
    for i, (balance, weight, amount) in enumerate(
        zip(balances, normalized_weights, amounts_out, strict=True)
    ):
        if invariant_ratio_without_fees > balance_ratios_without_fee[i]:
            non_taxable = balance.mul_down(invariant_ratio_without_fees.complement())
            taxable = amount.sub(non_taxable)
            amount_with_fee = non_taxable.add(taxable.div_up(swap_fee_percentage.complement()))
        else:
            amount_with_fee = amount

        if amount_with_fee > balance:
            raise ZeroBalanceError(f"amount out {amount_with_fee.value} exceeds balance {balance.value}")
        balance_ratio = balance.sub(amount_with_fee).div_down(balance)
        invariant_ratio = invariant_ratio.mul_down(balance_ratio.pow_down(weight))

    return bpt_total_supply.mul_up(invariant_ratio.complement())


def calc_token_out_given_exact_bpt_in(
    balance: Bfp,
    normalized_weight: Bfp,
    bpt_amount_in: Bfp,
    bpt_total_supply: Bfp,
    swap_fee_percentage: Bfp,
) -> Bfp:
    """Single-token withdrawal paid for burning exactly bpt_amount_in.

    Raises:
        MinBptInForTokenOutError: If the invariant would shrink below 0.7x
    """
    invariant_ratio = bpt_total_supply.sub(bpt_amount_in).div_up(bpt_total_supply)
    if invariant_ratio < MIN_INVARIANT_RATIO:
        raise MinBptInForTokenOutError(f"invariant ratio {invariant_ratio} below minimum")

    balance_ratio = invariant_ratio.pow_up(ONE.div_down(normalized_weight))
    amount_without_fee = balance.mul_down(balance_ratio.complement())

    taxable = amount_without_fee.mul_up(normalized_weight.complement())
    non_taxable = amount_without_fee.sub(taxable)
    return non_taxable.add(taxable.mul_down(swap_fee_percentage.complement()))


def calc_tokens_out_given_exact_bpt_in(
    balances: Sequence[Bfp],
    bpt_amount_in: Bfp,
    bpt_total_supply: Bfp,
) -> list[Bfp]:
    """Proportional withdrawal for burning exactly bpt_amount_in. No fee applies."""
    bpt_ratio = bpt_amount_in.div_down(bpt_total_supply)
    return [balance.mul_down(bpt_ratio) for balance in balances]
