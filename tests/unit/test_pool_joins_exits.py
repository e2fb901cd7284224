"""Tests for joins and exits.

Joins and exits never mint protocol fee shares; while swaps are disabled only
proportional kinds are accepted.
"""

from collections.abc import Callable
from decimal import Decimal

import pytest

from managed_pool.access import ExitKind, JoinKind
from managed_pool.errors import (
    BptInMaxAmountError,
    BptOutMinAmountError,
    ExitBelowMinError,
    InvalidJoinExitKindWhileSwapsDisabledError,
    JoinAboveMaxError,
    NegativeAmountError,
    UninitializedError,
)
from managed_pool.pool import ManagedPool
from tests.helpers import DEFAULT_BALANCES, LP, ONE_TOKEN, OWNER, TOKEN_A, TOKEN_B, make_pool

# Balances after untracked growth of a third
GROWN_BALANCES = [balance * 4 // 3 for balance in DEFAULT_BALANCES]


def assert_close(actual: int, expected: Decimal, rel: Decimal = Decimal("1e-9")) -> None:
    assert abs(Decimal(actual) - expected) <= abs(expected) * rel, f"{actual} != {expected}"


class TestJoins:
    def test_all_tokens_in_for_exact_bpt_out(self, pool: ManagedPool) -> None:
        """Minting 10% more supply takes 10% of every balance, rounded up."""
        supply = pool.total_supply
        bpt_out = supply // 10
        result = pool.join_all_given_out(LP, DEFAULT_BALANCES, bpt_out)

        assert result.kind == JoinKind.ALL_TOKENS_IN_FOR_EXACT_BPT_OUT.value
        assert result.bpt_amount == bpt_out
        for amount, balance in zip(result.amounts, DEFAULT_BALANCES, strict=True):
            assert balance * bpt_out // supply <= amount <= balance // 10 + 10**4
        assert pool.total_supply == supply + bpt_out

    def test_all_tokens_in_above_max(self, pool: ManagedPool) -> None:
        with pytest.raises(JoinAboveMaxError):
            pool.join_all_given_out(LP, DEFAULT_BALANCES, pool.total_supply // 10, [ONE_TOKEN, ONE_TOKEN])

    def test_exact_tokens_in_proportional(self, pool: ManagedPool) -> None:
        """A 1% balanced deposit mints about 1% of supply."""
        supply = pool.total_supply
        amounts_in = [balance // 100 for balance in DEFAULT_BALANCES]
        result = pool.join_given_in(LP, DEFAULT_BALANCES, amounts_in)

        assert_close(result.bpt_amount, Decimal(supply) / 100)
        assert result.amounts == tuple(amounts_in)
        assert pool.total_supply == supply + result.bpt_amount

    def test_exact_tokens_in_min_bpt_out(self, pool: ManagedPool) -> None:
        with pytest.raises(BptOutMinAmountError):
            pool.join_given_in(LP, DEFAULT_BALANCES, [ONE_TOKEN, 0], min_bpt_out=pool.total_supply)

    def test_token_in_for_exact_bpt_out(self, pool: ManagedPool) -> None:
        supply = pool.total_supply
        result = pool.join_given_out(LP, DEFAULT_BALANCES, supply // 100, TOKEN_B)

        assert result.amounts[0] == 0
        assert result.amounts[1] > 0
        assert pool.total_supply == supply + supply // 100

    def test_token_in_above_max(self, pool: ManagedPool) -> None:
        with pytest.raises(JoinAboveMaxError):
            pool.join_given_out(LP, DEFAULT_BALANCES, pool.total_supply // 100, TOKEN_B, max_amount_in=1)

    def test_joins_never_mint_protocol_fees(self, fee_pool: ManagedPool) -> None:
        """Even an unbalanced (fee-paying) join leaves protocol shares untouched."""
        supply = fee_pool.total_supply
        result = fee_pool.join_given_in(LP, DEFAULT_BALANCES, [10 * ONE_TOKEN, 0])

        assert fee_pool.protocol_fee_bpt == 0
        assert fee_pool.total_supply == supply + result.bpt_amount

    def test_join_before_initialize(self) -> None:
        with pytest.raises(UninitializedError):
            make_pool().join_given_in(LP, DEFAULT_BALANCES, [ONE_TOKEN, ONE_TOKEN])


class TestExits:
    def test_exact_bpt_in_for_tokens_out(self, pool: ManagedPool) -> None:
        supply = pool.total_supply
        bpt_in = supply // 10
        result = pool.multi_exit_given_in(LP, DEFAULT_BALANCES, bpt_in)

        assert result.kind == ExitKind.EXACT_BPT_IN_FOR_TOKENS_OUT.value
        for amount, balance in zip(result.amounts, DEFAULT_BALANCES, strict=True):
            assert amount <= balance * bpt_in // supply
            assert_close(amount, Decimal(balance) * bpt_in / supply)
        assert pool.total_supply == supply - bpt_in

    def test_tokens_out_below_min(self, pool: ManagedPool) -> None:
        with pytest.raises(ExitBelowMinError):
            pool.multi_exit_given_in(LP, DEFAULT_BALANCES, pool.total_supply // 10, DEFAULT_BALANCES)

    def test_bpt_in_above_supply(self, pool: ManagedPool) -> None:
        with pytest.raises(BptInMaxAmountError):
            pool.multi_exit_given_in(LP, DEFAULT_BALANCES, pool.total_supply + 1)

    def test_exact_bpt_in_for_one_token_out(self, pool: ManagedPool) -> None:
        supply = pool.total_supply
        result = pool.single_exit_given_in(LP, DEFAULT_BALANCES, supply // 100, TOKEN_A)

        assert result.amounts[0] > 0
        assert result.amounts[1] == 0
        assert pool.total_supply == supply - supply // 100

    def test_one_token_out_below_min(self, pool: ManagedPool) -> None:
        with pytest.raises(ExitBelowMinError):
            pool.single_exit_given_in(
                LP, DEFAULT_BALANCES, pool.total_supply // 100, TOKEN_A, min_amount_out=DEFAULT_BALANCES[0]
            )

    def test_bpt_in_for_exact_tokens_out(self, pool: ManagedPool) -> None:
        supply = pool.total_supply
        amounts_out = [balance // 100 for balance in DEFAULT_BALANCES]
        result = pool.exit_given_out(LP, DEFAULT_BALANCES, amounts_out)

        assert_close(result.bpt_amount, Decimal(supply) / 100)
        assert result.bpt_amount >= supply // 100
        assert pool.total_supply == supply - result.bpt_amount

    def test_exact_tokens_out_above_max_bpt(self, pool: ManagedPool) -> None:
        with pytest.raises(BptInMaxAmountError):
            pool.exit_given_out(LP, DEFAULT_BALANCES, [ONE_TOKEN, 0], max_bpt_in=1)

    def test_exits_ignore_allowlist(self) -> None:
        """An LP removed from the allowlist can still withdraw."""
        pool = make_pool(must_allowlist_lps=True)
        pool.add_allowed_address(OWNER, LP)
        pool.initialize(LP, DEFAULT_BALANCES)
        pool.remove_allowed_address(OWNER, LP)

        result = pool.multi_exit_given_in(LP, DEFAULT_BALANCES, pool.total_supply // 10)
        assert result.bpt_amount > 0


class TestSwapsDisabledGating:
    """With swaps disabled only proportional joins and exits are accepted."""

    @pytest.fixture
    def paused(self, pool: ManagedPool) -> ManagedPool:
        pool.set_swap_enabled(OWNER, False)
        return pool

    def test_proportional_join_allowed(self, paused: ManagedPool) -> None:
        result = paused.join_all_given_out(LP, DEFAULT_BALANCES, paused.total_supply // 10)
        assert result.bpt_amount > 0

    def test_proportional_exit_allowed(self, paused: ManagedPool) -> None:
        result = paused.multi_exit_given_in(LP, DEFAULT_BALANCES, paused.total_supply // 10)
        assert result.bpt_amount > 0

    def test_exact_tokens_in_rejected(self, paused: ManagedPool) -> None:
        with pytest.raises(InvalidJoinExitKindWhileSwapsDisabledError) as exc_info:
            paused.join_given_in(LP, DEFAULT_BALANCES, [ONE_TOKEN, ONE_TOKEN])
        assert exc_info.value.code == "INVALID_JOIN_EXIT_KIND_WHILE_SWAPS_DISABLED"

    def test_token_in_for_exact_bpt_out_rejected(self, paused: ManagedPool) -> None:
        with pytest.raises(InvalidJoinExitKindWhileSwapsDisabledError):
            paused.join_given_out(LP, DEFAULT_BALANCES, paused.total_supply // 100, TOKEN_A)

    def test_single_token_exit_rejected(self, paused: ManagedPool) -> None:
        with pytest.raises(InvalidJoinExitKindWhileSwapsDisabledError):
            paused.single_exit_given_in(LP, DEFAULT_BALANCES, paused.total_supply // 100, TOKEN_A)

    def test_exact_tokens_out_rejected(self, paused: ManagedPool) -> None:
        with pytest.raises(InvalidJoinExitKindWhileSwapsDisabledError):
            paused.exit_given_out(LP, DEFAULT_BALANCES, [ONE_TOKEN, 0])

    def test_rejection_leaves_supply(self, paused: ManagedPool) -> None:
        supply = paused.total_supply
        with pytest.raises(InvalidJoinExitKindWhileSwapsDisabledError):
            paused.join_given_in(LP, DEFAULT_BALANCES, [ONE_TOKEN, ONE_TOKEN])
        assert paused.total_supply == supply


class TestProtocolFeeExemption:
    """Joins and exits mint no protocol shares even after balances have grown."""

    def test_join_given_in(self, fee_pool: ManagedPool) -> None:
        supply = fee_pool.total_supply
        result = fee_pool.join_given_in(LP, GROWN_BALANCES, [10 * ONE_TOKEN, 0])
        assert fee_pool.protocol_fee_bpt == 0
        assert fee_pool.total_supply == supply + result.bpt_amount

    def test_multi_exit_given_in(self, fee_pool: ManagedPool) -> None:
        supply = fee_pool.total_supply
        fee_pool.multi_exit_given_in(LP, GROWN_BALANCES, supply // 10)
        assert fee_pool.protocol_fee_bpt == 0
        assert fee_pool.total_supply == supply - supply // 10

    def test_single_exit_given_in(self, fee_pool: ManagedPool) -> None:
        supply = fee_pool.total_supply
        fee_pool.single_exit_given_in(LP, GROWN_BALANCES, supply // 100, TOKEN_B)
        assert fee_pool.protocol_fee_bpt == 0
        assert fee_pool.total_supply == supply - supply // 100

    def test_exit_given_out(self, fee_pool: ManagedPool) -> None:
        supply = fee_pool.total_supply
        result = fee_pool.exit_given_out(LP, GROWN_BALANCES, [10 * ONE_TOKEN, ONE_TOKEN])
        assert fee_pool.protocol_fee_bpt == 0
        assert fee_pool.total_supply == supply - result.bpt_amount


class TestNegativeAmounts:
    """Negative token or share amounts are rejected before any math runs."""

    @pytest.mark.parametrize(
        "operation",
        [
            lambda pool: pool.join_given_in(LP, DEFAULT_BALANCES, [-ONE_TOKEN, 5 * ONE_TOKEN]),
            lambda pool: pool.join_all_given_out(LP, DEFAULT_BALANCES, -ONE_TOKEN),
            lambda pool: pool.join_given_out(LP, DEFAULT_BALANCES, -ONE_TOKEN, TOKEN_A),
            lambda pool: pool.exit_given_out(LP, DEFAULT_BALANCES, [-ONE_TOKEN, 0]),
            lambda pool: pool.multi_exit_given_in(LP, DEFAULT_BALANCES, -ONE_TOKEN),
            lambda pool: pool.single_exit_given_in(LP, DEFAULT_BALANCES, -ONE_TOKEN, TOKEN_A),
        ],
    )
    def test_rejected(self, pool: ManagedPool, operation: Callable[[ManagedPool], object]) -> None:
        supply = pool.total_supply
        with pytest.raises(NegativeAmountError) as exc_info:
            operation(pool)
        assert exc_info.value.code == "NEGATIVE_AMOUNT"
        assert pool.total_supply == supply
