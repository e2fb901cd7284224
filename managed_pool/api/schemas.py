"""Request and response bodies for the pool API."""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field

from managed_pool.access import ExitKind, JoinKind
from managed_pool.models import Address, Fraction, SwapKind

# Raw token or share amount
Amount = Annotated[int, Field(ge=0)]


class _Body(BaseModel):
    model_config = {"populate_by_name": True}


class CreatePoolResponse(_Body):
    pool_id: str = Field(alias="poolId")


class PoolStateResponse(_Body):
    pool_id: str = Field(alias="poolId")
    tokens: list[str]
    owner: str
    scaling_factors: list[int] = Field(alias="scalingFactors")
    normalized_weights: list[Decimal] = Field(alias="normalizedWeights")
    swap_enabled: bool = Field(alias="swapEnabled")
    must_allowlist_lps: bool = Field(alias="mustAllowlistLPs")
    swap_fee_percentage: Decimal = Field(alias="swapFeePercentage")
    management_swap_fee_percentage: Decimal = Field(alias="managementSwapFeePercentage")
    total_supply: int = Field(alias="totalSupply")
    initialized: bool


class WeightsResponse(_Body):
    normalized_weights: list[Decimal] = Field(alias="normalizedWeights")
    start_time: int = Field(alias="startTime")
    end_time: int = Field(alias="endTime")
    end_weights: list[Decimal] = Field(alias="endWeights")


class InitializeRequest(_Body):
    sender: Address
    amounts_in: list[Amount] = Field(alias="amountsIn")


class SwapBody(_Body):
    caller: Address
    kind: SwapKind
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    amount: Amount
    limit: Amount | None = None
    balances: list[Amount]


class SwapResponse(_Body):
    amount_in: int = Field(alias="amountIn")
    amount_out: int = Field(alias="amountOut")
    swap_fee_amount: int = Field(alias="swapFeeAmount")
    management_fee_amount: int = Field(alias="managementFeeAmount")
    protocol_fee_bpt: int = Field(alias="protocolFeeBpt")


class JoinBody(_Body):
    """A join of any kind; which optional fields are required depends on kind."""

    sender: Address
    kind: JoinKind
    balances: list[Amount]
    amounts_in: list[Amount] | None = Field(default=None, alias="amountsIn")
    bpt_out: Amount | None = Field(default=None, alias="bptOut")
    token: Address | None = None
    min_bpt_out: Amount = Field(default=0, alias="minBptOut")
    max_amounts_in: list[Amount] | None = Field(default=None, alias="maxAmountsIn")
    max_amount_in: Amount | None = Field(default=None, alias="maxAmountIn")


class ExitBody(_Body):
    """An exit of any kind; which optional fields are required depends on kind."""

    sender: Address
    kind: ExitKind
    balances: list[Amount]
    bpt_in: Amount | None = Field(default=None, alias="bptIn")
    amounts_out: list[Amount] | None = Field(default=None, alias="amountsOut")
    token: Address | None = None
    min_amounts_out: list[Amount] | None = Field(default=None, alias="minAmountsOut")
    min_amount_out: Amount = Field(default=0, alias="minAmountOut")
    max_bpt_in: Amount | None = Field(default=None, alias="maxBptIn")


class JoinExitResponse(_Body):
    kind: str
    bpt_amount: int = Field(alias="bptAmount")
    amounts: list[int]


class GradualUpdateBody(_Body):
    caller: Address
    start_time: int = Field(alias="startTime", ge=0)
    end_time: int = Field(alias="endTime", ge=0)
    end_weights: list[Fraction] = Field(alias="endWeights")


class FlagBody(_Body):
    caller: Address
    enabled: bool


class CallerBody(_Body):
    caller: Address


class FeeBody(_Body):
    caller: Address
    percentage: Fraction
