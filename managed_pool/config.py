"""Limits and tolerances for managed pools."""

from dataclasses import dataclass

from managed_pool.math.fixed_point import ONE_18

# Address that receives the locked initial supply
ZERO_ADDRESS = "0x" + "00" * 20


@dataclass(frozen=True)
class PoolLimits:
    """Centralized bounds applied when creating and operating a pool.

    All fractional values are 18-decimal fixed-point integers.

    Attributes:
        min_tokens: Fewest tokens a pool may hold (default: 2)
        max_tokens: Most tokens a pool may hold (default: 50)
        min_weight: Smallest normalized weight, 1% (default: 0.01)
        weight_sum_tolerance: Absolute slack allowed when checking that
            normalized weights sum to one (default: 1e-9)
        min_swap_fee_percentage: Lower swap fee bound (default: 0.0001%)
        max_swap_fee_percentage: Upper swap fee bound (default: 10%)
        max_management_swap_fee_percentage: Upper bound for the owner's
            share of swap fees (default: 100%)
        max_protocol_swap_fee_percentage: Upper bound for the protocol's
            share of swap fees (default: 50%)
        minimum_bpt: Pool shares locked forever at initialization (default: 1e6)
        max_in_ratio: Largest swap input relative to balance (default: 30%)
        max_out_ratio: Largest swap output relative to balance (default: 30%)
        max_invariant_ratio: Largest invariant growth of a single-token join
        min_invariant_ratio: Smallest invariant ratio of a single-token exit
    """

    min_tokens: int = 2
    max_tokens: int = 50

    min_weight: int = ONE_18 // 100
    weight_sum_tolerance: int = 10**9

    min_swap_fee_percentage: int = 10**12
    max_swap_fee_percentage: int = 10**17
    max_management_swap_fee_percentage: int = ONE_18
    max_protocol_swap_fee_percentage: int = ONE_18 // 2

    minimum_bpt: int = 10**6

    max_in_ratio: int = 3 * 10**17
    max_out_ratio: int = 3 * 10**17
    max_invariant_ratio: int = 3 * ONE_18
    min_invariant_ratio: int = 7 * 10**17


DEFAULT_POOL_LIMITS = PoolLimits()
