"""Tests for weighted pool math.

Results are compared against straightforward Decimal evaluations of the same
formulas; the fixed-point versions may only differ by rounding.
"""

from decimal import Decimal, localcontext

import pytest

from managed_pool.errors import (
    MaxInRatioError,
    MaxOutBptForTokenInError,
    MaxOutRatioError,
    MinBptInForTokenOutError,
    ZeroBalanceError,
    ZeroWeightError,
)
from managed_pool.math.fixed_point import Bfp
from managed_pool.weighted_math import (
    calc_all_tokens_in_given_exact_bpt_out,
    calc_bpt_in_given_exact_tokens_out,
    calc_bpt_out_given_exact_tokens_in,
    calc_in_given_out,
    calc_invariant,
    calc_out_given_in,
    calc_token_in_given_exact_bpt_out,
    calc_token_out_given_exact_bpt_in,
    calc_tokens_out_given_exact_bpt_in,
)


def bfp(value: str | int) -> Bfp:
    return Bfp.from_decimal(Decimal(value))


def assert_close(actual: Bfp, expected: Decimal, rel: Decimal = Decimal("1e-9")) -> None:
    value = actual.to_decimal()
    assert abs(value - expected) <= abs(expected) * rel, f"{value} != {expected}"


W80 = bfp("0.8")
W20 = bfp("0.2")
W50 = bfp("0.5")
FEE = bfp("0.02")


class TestInvariant:
    def test_equal_balances(self) -> None:
        """The weighted geometric mean of equal balances is that balance."""
        invariant = calc_invariant([W50, W50], [bfp(100), bfp(100)])
        assert_close(invariant, Decimal(100))

    def test_weighted_balances(self) -> None:
        invariant = calc_invariant([W80, W20], [bfp(800), bfp(200)])
        with localcontext() as ctx:
            ctx.prec = 40
            expected = Decimal(800) ** Decimal("0.8") * Decimal(200) ** Decimal("0.2")
        assert_close(invariant, expected)


class TestOutGivenIn:
    def test_matches_reference(self) -> None:
        """80/20 pool, 10 in (fee already removed)."""
        result = calc_out_given_in(bfp(800), W80, bfp(200), W20, bfp(10))
        with localcontext() as ctx:
            ctx.prec = 40
            expected = Decimal(200) * (1 - (Decimal(800) / Decimal(810)) ** 4)
        assert_close(result, expected)

    def test_rounds_in_pool_favour(self) -> None:
        """Computed output never exceeds the exact value."""
        result = calc_out_given_in(bfp(100), W50, bfp(100), W50, bfp(10))
        with localcontext() as ctx:
            ctx.prec = 40
            expected = Decimal(100) * (1 - Decimal(100) / Decimal(110))
        assert result.to_decimal() <= expected

    def test_max_in_ratio(self) -> None:
        """More than 30% of balance_in is rejected."""
        with pytest.raises(MaxInRatioError) as exc_info:
            calc_out_given_in(bfp(100), W50, bfp(100), W50, bfp(31))
        assert exc_info.value.code == "MAX_IN_RATIO"

    def test_zero_weight(self) -> None:
        with pytest.raises(ZeroWeightError):
            calc_out_given_in(bfp(100), Bfp(0), bfp(100), W50, bfp(1))

    def test_zero_balance(self) -> None:
        with pytest.raises(ZeroBalanceError):
            calc_out_given_in(bfp(100), W50, Bfp(0), W50, bfp(1))


class TestInGivenOut:
    def test_matches_reference(self) -> None:
        """80/20 pool, 10 of the 20% token out."""
        result = calc_in_given_out(bfp(800), W80, bfp(200), W20, bfp(10))
        with localcontext() as ctx:
            ctx.prec = 40
            expected = Decimal(800) * ((Decimal(200) / Decimal(190)) ** Decimal("0.25") - 1)
        assert_close(result, expected)

    def test_rounds_in_pool_favour(self) -> None:
        """Computed input never falls short of the exact value."""
        result = calc_in_given_out(bfp(100), W50, bfp(100), W50, bfp(10))
        with localcontext() as ctx:
            ctx.prec = 40
            expected = Decimal(100) * (Decimal(100) / Decimal(90) - 1)
        assert result.to_decimal() >= expected

    def test_max_out_ratio(self) -> None:
        with pytest.raises(MaxOutRatioError) as exc_info:
            calc_in_given_out(bfp(100), W50, bfp(100), W50, bfp(31))
        assert exc_info.value.code == "MAX_OUT_RATIO"


class TestJoins:
    def test_proportional_exact_tokens_in(self) -> None:
        """A balanced deposit mints shares in proportion, fee free."""
        bpt_out = calc_bpt_out_given_exact_tokens_in(
            [bfp(800), bfp(200)], [W80, W20], [bfp(8), bfp(2)], bfp(1000), FEE
        )
        assert_close(bpt_out, Decimal(10), rel=Decimal("1e-8"))

    def test_single_token_deposit_pays_fee(self) -> None:
        """An unbalanced deposit mints fewer shares with a fee than without."""
        args = ([bfp(800), bfp(200)], [W80, W20], [Bfp(0), bfp(10)], bfp(1000))
        with_fee = calc_bpt_out_given_exact_tokens_in(*args, FEE)
        without_fee = calc_bpt_out_given_exact_tokens_in(*args, Bfp(0))
        assert with_fee < without_fee

    def test_token_in_for_exact_bpt_out_without_fee(self) -> None:
        """Minting 1% more supply with the 50% token needs about 2% more of it."""
        amount = calc_token_in_given_exact_bpt_out(bfp(100), W50, bfp(10), bfp(1000), Bfp(0))
        with localcontext() as ctx:
            ctx.prec = 40
            expected = Decimal(100) * (Decimal("1.01") ** 2 - 1)
        assert_close(amount, expected)

    def test_token_in_for_exact_bpt_out_charges_fee(self) -> None:
        no_fee = calc_token_in_given_exact_bpt_out(bfp(100), W50, bfp(10), bfp(1000), Bfp(0))
        with_fee = calc_token_in_given_exact_bpt_out(bfp(100), W50, bfp(10), bfp(1000), FEE)
        assert with_fee > no_fee

    def test_max_out_bpt_for_token_in(self) -> None:
        """Growing the invariant past 3x is rejected."""
        with pytest.raises(MaxOutBptForTokenInError):
            calc_token_in_given_exact_bpt_out(bfp(100), W50, bfp(3000), bfp(1000), FEE)

    def test_all_tokens_in_rounds_up(self) -> None:
        amounts = calc_all_tokens_in_given_exact_bpt_out([bfp(800), bfp(200)], bfp(100), bfp(1000))
        assert amounts[0] >= bfp(80)
        assert amounts[1] >= bfp(20)
        assert_close(amounts[0], Decimal(80))
        assert_close(amounts[1], Decimal(20))


class TestExits:
    def test_tokens_out_rounds_down(self) -> None:
        amounts = calc_tokens_out_given_exact_bpt_in([bfp(800), bfp(200)], bfp(100), bfp(1000))
        assert amounts == [bfp(80), bfp(20)]

    def test_proportional_exact_tokens_out(self) -> None:
        """A balanced withdrawal burns shares in proportion."""
        bpt_in = calc_bpt_in_given_exact_tokens_out(
            [bfp(800), bfp(200)], [W80, W20], [bfp(8), bfp(2)], bfp(1000), FEE
        )
        assert_close(bpt_in, Decimal(10), rel=Decimal("1e-8"))

    def test_single_token_withdrawal_pays_fee(self) -> None:
        args = ([bfp(800), bfp(200)], [W80, W20], [Bfp(0), bfp(10)], bfp(1000))
        with_fee = calc_bpt_in_given_exact_tokens_out(*args, FEE)
        without_fee = calc_bpt_in_given_exact_tokens_out(*args, Bfp(0))
        assert with_fee > without_fee

    def test_withdrawal_larger_than_balance(self) -> None:
        with pytest.raises(ZeroBalanceError):
            calc_bpt_in_given_exact_tokens_out(
                [bfp(800), bfp(200)], [W80, W20], [Bfp(0), bfp(201)], bfp(1000), FEE
            )

    def test_token_out_for_exact_bpt_in_without_fee(self) -> None:
        amount = calc_token_out_given_exact_bpt_in(bfp(100), W50, bfp(10), bfp(1000), Bfp(0))
        with localcontext() as ctx:
            ctx.prec = 40
            expected = Decimal(100) * (1 - Decimal("0.99") ** 2)
        assert_close(amount, expected)

    def test_min_bpt_in_for_token_out(self) -> None:
        """Shrinking the invariant below 0.7x is rejected."""
        with pytest.raises(MinBptInForTokenOutError):
            calc_token_out_given_exact_bpt_in(bfp(100), W50, bfp(400), bfp(1000), FEE)
