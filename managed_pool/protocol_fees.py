"""Swap fee accrual.

Protocol fees are paid in pool shares, sized from the invariant growth a swap
produced. Management fees are paid in the token the swap fee was charged in.
Neither is ever charged on joins or exits.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from managed_pool.math.fixed_point import ZERO, Bfp

logger = structlog.get_logger()


def due_protocol_fee_shares(
    total_supply: Bfp,
    invariant_before: Bfp,
    invariant_after: Bfp,
    protocol_fee_percentage: Bfp,
) -> Bfp:
    """Pool shares owed to the protocol fee recipient for one swap.

    Formula:
        shares = total_supply * protocol_fee_percentage * (1 - invariant_before / invariant_after)

    Returns zero unless the invariant strictly increased.
    """
    if invariant_after <= invariant_before or protocol_fee_percentage.value == 0:
        return ZERO

    # Ratio rounds up so the growth fraction (and the mint) rounds down
    growth_fraction = invariant_before.div_up(invariant_after).complement()
    return total_supply.mul_down(protocol_fee_percentage).mul_down(growth_fraction)


def management_fee_amount(swap_fee_amount: int, management_fee_percentage: Bfp) -> int:
    """Owner's cut, in raw token units, of a swap fee charged in that token."""
    return (swap_fee_amount * management_fee_percentage.value) // Bfp.ONE


@dataclass
class ManagementFeeLedger:
    """Swap fees collected for the pool owner, per token index."""

    collected: list[int] = field(default_factory=list)

    @classmethod
    def for_tokens(cls, num_tokens: int) -> ManagementFeeLedger:
        return cls(collected=[0] * num_tokens)

    def accrue(self, token_index: int, amount: int) -> None:
        if amount:
            self.collected[token_index] += amount

    def withdraw(self) -> list[int]:
        """Return everything collected so far and reset to zero."""
        amounts = list(self.collected)
        self.collected = [0] * len(amounts)
        logger.info("management_fees_withdrawn", amounts=amounts)
        return amounts
