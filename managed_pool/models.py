"""Pool parameters, requests and results.

Creation parameters are pydantic models so a pool can be described in JSON;
per-call requests and results are plain frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field

# Ethereum address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# Fraction in [0, 1] (weights, fee percentages)
Fraction = Annotated[Decimal, Field(ge=0, le=1)]


class TokenConfig(BaseModel):
    """A pool token. Decimals come from token metadata, looked up by the caller."""

    address: Address
    decimals: int = Field(ge=0, le=77)


class ManagedPoolParams(BaseModel):
    """Everything needed to create a managed pool.

    Token count, weight and fee bounds are checked by the pool itself so
    that they surface as pool error codes rather than schema errors.
    """

    tokens: list[TokenConfig]
    weights: list[Fraction]
    owner: Address
    vault: Address
    swap_fee_percentage: Fraction = Field(alias="swapFeePercentage")
    management_swap_fee_percentage: Fraction = Field(
        default=Decimal("0"), alias="managementSwapFeePercentage"
    )
    protocol_swap_fee_percentage: Fraction = Field(
        default=Decimal("0"),
        alias="protocolSwapFeePercentage",
        description="Protocol's share of swap fees, set by the settlement layer.",
    )
    swap_enabled_on_start: bool = Field(default=True, alias="swapEnabledOnStart")
    must_allowlist_lps: bool = Field(default=False, alias="mustAllowlistLPs")

    model_config = {"populate_by_name": True}


class SwapKind(str, Enum):
    """Which side of the swap is exact."""

    GIVEN_IN = "given_in"
    GIVEN_OUT = "given_out"


@dataclass(frozen=True)
class SwapRequest:
    """A single swap as forwarded by the settlement layer.

    Attributes:
        kind: GIVEN_IN (amount is exact input) or GIVEN_OUT (exact output)
        token_in: Address of the token entering the pool
        token_out: Address of the token leaving the pool
        amount: Raw amount of the exact side
        limit: Minimum output (GIVEN_IN) or maximum input (GIVEN_OUT); None for no limit
    """

    kind: SwapKind
    token_in: str
    token_out: str
    amount: int
    limit: int | None = None


@dataclass(frozen=True)
class SwapResult:
    """Raw amounts the settlement layer must move, plus fee accounting.

    Attributes:
        amount_in: Raw amount of token_in paid to the pool, fee included
        amount_out: Raw amount of token_out paid by the pool
        swap_fee_amount: Raw swap fee charged, denominated in token_in
        management_fee_amount: Part of swap_fee_amount owed to the owner
        protocol_fee_bpt: Pool shares minted to the protocol fee recipient
    """

    kind: SwapKind
    token_in_index: int
    token_out_index: int
    amount_in: int
    amount_out: int
    swap_fee_amount: int
    management_fee_amount: int
    protocol_fee_bpt: int


@dataclass(frozen=True)
class JoinExitResult:
    """Outcome of a join or exit.

    Attributes:
        kind: The JoinKind or ExitKind value
        bpt_amount: Shares minted to (join) or burned from (exit) the sender
        amounts: Raw per-token amounts deposited (join) or withdrawn (exit)
    """

    kind: str
    bpt_amount: int
    amounts: tuple[int, ...]


@dataclass(frozen=True)
class PoolEvent:
    """A state change notification recorded by the pool."""

    name: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WeightUpdateParams:
    """Public view of the installed weight schedule."""

    start_time: int
    end_time: int
    end_weights: tuple[Decimal, ...]
