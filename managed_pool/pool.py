"""Managed weighted pool.

ManagedPool composes the weight scheduler, the access gate and the fee
settings around the weighted math. The settlement layer (the vault) owns the
token balances: it passes current raw balances and the caller identity into
every call and applies the amounts and share deltas it gets back.

Each public method:
- runs under the pool's lock,
- reads the clock at most once,
- performs every check before touching state.
"""

from __future__ import annotations

import functools
import threading
import time
from collections.abc import Callable, Sequence
from decimal import Decimal
from typing import Any, TypeVar

import structlog

from managed_pool.access import AccessGate, ExitKind, JoinKind, normalize_address
from managed_pool.config import DEFAULT_POOL_LIMITS, ZERO_ADDRESS, PoolLimits
from managed_pool.errors import (
    AlreadyInitializedError,
    BptInMaxAmountError,
    BptOutMinAmountError,
    CallerNotVaultError,
    CannotSwapSameTokenError,
    ExitBelowMinError,
    InputLengthMismatchError,
    InvalidFeeError,
    JoinAboveMaxError,
    MaxManagementSwapFeePercentageError,
    MaxProtocolSwapFeePercentageError,
    MaxSwapFeePercentageError,
    MaxTokensError,
    MinimumBptError,
    MinSwapFeePercentageError,
    MinTokensError,
    NegativeAmountError,
    SenderNotAllowedError,
    SwapLimitError,
    TokenNotInPoolError,
    UninitializedError,
    ZeroBalanceError,
)
from managed_pool.math.fixed_point import Bfp
from managed_pool.models import (
    JoinExitResult,
    ManagedPoolParams,
    PoolEvent,
    SwapKind,
    SwapRequest,
    SwapResult,
    WeightUpdateParams,
)
from managed_pool.protocol_fees import (
    ManagementFeeLedger,
    due_protocol_fee_shares,
    management_fee_amount,
)
from managed_pool.scaling import (
    add_swap_fee_amount,
    compute_scaling_factor,
    scale_down_down,
    scale_down_up,
    scale_up,
    scale_up_all,
    subtract_swap_fee_amount,
)
from managed_pool.scheduler import WeightScheduler
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

logger = structlog.get_logger()

Clock = Callable[[], int]
F = TypeVar("F", bound=Callable[..., Any])


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def as_bfp(value: Decimal | Bfp) -> Bfp:
    return value if isinstance(value, Bfp) else Bfp.from_decimal(value)


def as_percentage(value: Decimal | Bfp) -> Bfp:
    if not isinstance(value, Bfp) and value < 0:
        raise InvalidFeeError(f"Fee percentage {value} is negative")
    return as_bfp(value)


def synchronized(method: F) -> F:
    """Run a pool method under the pool's lock."""

    @functools.wraps(method)
    def wrapper(self: ManagedPool, *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class ManagedPool:
    """A weighted pool with owner-controlled weights, fees and LP access.

    Args:
        tokens: Token addresses, in pool order
        decimals: Decimals of each token (same order)
        weights: Initial normalized weights, summing to one
        owner: Address allowed to perform management actions
        vault: Address of the settlement layer; the only allowed swap caller
        swap_fee_percentage: Fee charged on swaps and non-proportional joins/exits
        management_swap_fee_percentage: Owner's share of swap fees
        protocol_swap_fee_percentage: Protocol's share of swap fees (as shares)
        swap_enabled: Whether swaps are allowed on start
        must_allowlist_lps: Whether joins require allowlist membership on start
        clock: Source of the current time in seconds
        limits: Bounds to enforce

    Raises:
        MinTokensError, MaxTokensError, InputLengthMismatchError: Bad token set
        MinWeightError, NormalizedWeightInvariantError: Bad initial weights
        InvalidFeeError: A fee percentage is negative
        MinSwapFeePercentageError, MaxSwapFeePercentageError,
        MaxManagementSwapFeePercentageError,
        MaxProtocolSwapFeePercentageError: Fee out of bounds
        TokenDecimalsTooLargeError: A token has more than 18 decimals
    """

    def __init__(
        self,
        *,
        tokens: Sequence[str],
        decimals: Sequence[int],
        weights: Sequence[Decimal | Bfp],
        owner: str,
        vault: str,
        swap_fee_percentage: Decimal | Bfp,
        management_swap_fee_percentage: Decimal | Bfp = Decimal("0"),
        protocol_swap_fee_percentage: Decimal | Bfp = Decimal("0"),
        swap_enabled: bool = True,
        must_allowlist_lps: bool = False,
        clock: Clock = system_clock,
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
    ) -> None:
        num_tokens = len(tokens)
        if num_tokens < limits.min_tokens:
            raise MinTokensError(f"Pool needs at least {limits.min_tokens} tokens, got {num_tokens}")
        if num_tokens > limits.max_tokens:
            raise MaxTokensError(f"Pool allows at most {limits.max_tokens} tokens, got {num_tokens}")
        if len(weights) != num_tokens or len(decimals) != num_tokens:
            raise InputLengthMismatchError(
                f"{num_tokens} tokens, {len(weights)} weights, {len(decimals)} decimals"
            )

        self._limits = limits
        self._clock = clock
        self._lock = threading.RLock()

        self._tokens = tuple(normalize_address(t) for t in tokens)
        self._token_indices = {token: i for i, token in enumerate(self._tokens)}
        self._scaling_factors = tuple(compute_scaling_factor(d) for d in decimals)

        self._swap_fee_percentage = self._validate_swap_fee(as_percentage(swap_fee_percentage))
        self._management_swap_fee_percentage = self._validate_management_fee(
            as_percentage(management_swap_fee_percentage)
        )
        self._protocol_swap_fee_percentage = self._validate_protocol_fee(
            as_percentage(protocol_swap_fee_percentage)
        )

        self._scheduler = WeightScheduler([as_bfp(w) for w in weights], clock(), limits)
        self._gate = AccessGate(swap_enabled=swap_enabled, must_allowlist_lps=must_allowlist_lps)

        self.owner = normalize_address(owner)
        self.vault = normalize_address(vault)

        self._management_fees = ManagementFeeLedger.for_tokens(num_tokens)
        self._total_supply = 0
        self._protocol_fee_bpt = 0
        self._initialized = False
        self._events: list[PoolEvent] = []

        logger.info(
            "managed_pool_created",
            tokens=list(self._tokens),
            owner=self.owner,
            swap_enabled=swap_enabled,
            must_allowlist_lps=must_allowlist_lps,
        )

    @classmethod
    def create(
        cls,
        params: ManagedPoolParams | dict[str, Any],
        *,
        clock: Clock = system_clock,
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
    ) -> ManagedPool:
        """Create a pool from a parameter model or its JSON-like dict."""
        if not isinstance(params, ManagedPoolParams):
            params = ManagedPoolParams.model_validate(params)
        return cls(
            tokens=[t.address for t in params.tokens],
            decimals=[t.decimals for t in params.tokens],
            weights=params.weights,
            owner=params.owner,
            vault=params.vault,
            swap_fee_percentage=params.swap_fee_percentage,
            management_swap_fee_percentage=params.management_swap_fee_percentage,
            protocol_swap_fee_percentage=params.protocol_swap_fee_percentage,
            swap_enabled=params.swap_enabled_on_start,
            must_allowlist_lps=params.must_allowlist_lps,
            clock=clock,
            limits=limits,
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _validate_swap_fee(self, fee: Bfp) -> Bfp:
        if fee.value < self._limits.min_swap_fee_percentage:
            raise MinSwapFeePercentageError(f"Swap fee {fee} below minimum")
        if fee.value > self._limits.max_swap_fee_percentage:
            raise MaxSwapFeePercentageError(f"Swap fee {fee} above maximum")
        return fee

    def _validate_management_fee(self, fee: Bfp) -> Bfp:
        if fee.value > self._limits.max_management_swap_fee_percentage:
            raise MaxManagementSwapFeePercentageError(f"Management fee {fee} above maximum")
        return fee

    def _validate_protocol_fee(self, fee: Bfp) -> Bfp:
        if fee.value > self._limits.max_protocol_swap_fee_percentage:
            raise MaxProtocolSwapFeePercentageError(f"Protocol fee {fee} above maximum")
        return fee

    def _require_owner(self, caller: str) -> None:
        if normalize_address(caller) != self.owner:
            logger.debug("sender_not_allowed", caller=caller)
            raise SenderNotAllowedError(f"{caller} is not the pool owner")

    def _require_vault(self, caller: str) -> None:
        if normalize_address(caller) != self.vault:
            raise CallerNotVaultError(f"{caller} is not the vault")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise UninitializedError("Pool has not been initialized")

    def _index_of(self, token: str) -> int:
        index = self._token_indices.get(normalize_address(token))
        if index is None:
            raise TokenNotInPoolError(f"{token} is not a pool token")
        return index

    def _check_length(self, values: Sequence[object], what: str) -> None:
        if len(values) != len(self._tokens):
            raise InputLengthMismatchError(f"Expected {len(self._tokens)} {what}, got {len(values)}")

    @staticmethod
    def _check_non_negative(values: Sequence[int], what: str) -> None:
        if any(v < 0 for v in values):
            raise NegativeAmountError(f"Negative {what}: {list(values)}")

    def _net_balances(self, balances: Sequence[int]) -> list[int]:
        """Vault balances minus management fees not yet withdrawn."""
        self._check_length(balances, "balances")
        net = []
        for balance, collected in zip(balances, self._management_fees.collected, strict=True):
            if balance <= collected:
                raise ZeroBalanceError(f"Balance {balance} does not cover collected fees {collected}")
            net.append(balance - collected)
        return net

    def _upscale(self, amounts: Sequence[int]) -> list[Bfp]:
        return scale_up_all(list(amounts), list(self._scaling_factors))

    def _emit(self, name: str, **data: Any) -> None:
        self._events.append(PoolEvent(name=name, data=data))
        logger.info("pool_event", name=name, **data)

    # =========================================================================
    # Initialization
    # =========================================================================

    @synchronized
    def initialize(self, sender: str, amounts_in: Sequence[int]) -> JoinExitResult:
        """First deposit, minting shares from the weighted geometric mean of balances.

        ``invariant * N`` shares are created; ``minimum_bpt`` of them are
        locked and the rest go to the sender.

        Raises:
            AlreadyInitializedError: If the pool was already initialized
            AddressNotAllowlistedError: If the allowlist is on and sender is not on it
            NegativeAmountError: If any deposit is negative
        """
        if self._initialized:
            raise AlreadyInitializedError("Pool is already initialized")
        self._gate.check_join(sender, JoinKind.INIT)
        self._check_length(amounts_in, "amounts")
        self._check_non_negative(amounts_in, "amounts")

        weights = self._scheduler.get_normalized_weights(self._clock())
        invariant = calc_invariant(weights, self._upscale(amounts_in))
        bpt_out = invariant.value * len(self._tokens)
        if bpt_out < self._limits.minimum_bpt:
            raise MinimumBptError(f"Initial supply {bpt_out} below {self._limits.minimum_bpt}")

        self._initialized = True
        self._total_supply = bpt_out
        logger.info(
            "pool_initialized",
            sender=sender,
            bpt_out=bpt_out,
            locked_bpt=self._limits.minimum_bpt,
            locked_to=ZERO_ADDRESS,
        )
        return JoinExitResult(
            kind=JoinKind.INIT.value,
            bpt_amount=bpt_out - self._limits.minimum_bpt,
            amounts=tuple(amounts_in),
        )

    # =========================================================================
    # Swaps
    # =========================================================================

    @synchronized
    def on_swap(self, caller: str, request: SwapRequest, balances: Sequence[int]) -> SwapResult:
        """Price a swap, mint protocol fee shares and accrue the management fee.

        Raises:
            CallerNotVaultError: If caller is not the vault
            SwapsDisabledError: If swaps are disabled
            SwapLimitError: If the computed amount violates request.limit
        """
        self._require_vault(caller)
        self._require_initialized()
        self._gate.check_swap()

        i_in = self._index_of(request.token_in)
        i_out = self._index_of(request.token_out)
        if i_in == i_out:
            raise CannotSwapSameTokenError("token_in and token_out are the same")
        self._check_non_negative([request.amount], "swap amount")

        net = self._net_balances(balances)
        scaled = self._upscale(net)
        sf_in, sf_out = self._scaling_factors[i_in], self._scaling_factors[i_out]

        # One clock read: invariant before and after use the same weights
        weights = self._scheduler.get_normalized_weights(self._clock())
        fee = self._swap_fee_percentage

        if request.kind is SwapKind.GIVEN_IN:
            amount_in_scaled = scale_up(request.amount, sf_in)
            amount_in_after_fee = subtract_swap_fee_amount(amount_in_scaled, fee)
            amount_out_scaled = calc_out_given_in(
                scaled[i_in], weights[i_in], scaled[i_out], weights[i_out], amount_in_after_fee
            )
            amount_in = request.amount
            amount_out = scale_down_down(amount_out_scaled, sf_out)
            if request.limit is not None and amount_out < request.limit:
                raise SwapLimitError(f"Output {amount_out} below limit {request.limit}")
            fee_scaled = amount_in_scaled.sub(amount_in_after_fee)
        else:
            amount_out_scaled = scale_up(request.amount, sf_out)
            amount_in_before_fee = calc_in_given_out(
                scaled[i_in], weights[i_in], scaled[i_out], weights[i_out], amount_out_scaled
            )
            amount_in_with_fee = add_swap_fee_amount(amount_in_before_fee, fee)
            amount_in = scale_down_up(amount_in_with_fee, sf_in)
            amount_out = request.amount
            if request.limit is not None and amount_in > request.limit:
                raise SwapLimitError(f"Input {amount_in} above limit {request.limit}")
            fee_scaled = amount_in_with_fee.sub(amount_in_before_fee)

        swap_fee_amount = scale_down_down(fee_scaled, sf_in)
        management_fee = management_fee_amount(swap_fee_amount, self._management_swap_fee_percentage)

        post = list(net)
        post[i_in] += amount_in - management_fee
        post[i_out] -= amount_out
        invariant_before = calc_invariant(weights, scaled)
        invariant_after = calc_invariant(weights, self._upscale(post))
        protocol_fee_bpt = due_protocol_fee_shares(
            Bfp(self._total_supply),
            invariant_before,
            invariant_after,
            self._protocol_swap_fee_percentage,
        ).value

        self._total_supply += protocol_fee_bpt
        self._protocol_fee_bpt += protocol_fee_bpt
        self._management_fees.accrue(i_in, management_fee)

        logger.debug(
            "swap_executed",
            kind=request.kind.value,
            token_in=self._tokens[i_in],
            token_out=self._tokens[i_out],
            amount_in=amount_in,
            amount_out=amount_out,
            protocol_fee_bpt=protocol_fee_bpt,
        )
        return SwapResult(
            kind=request.kind,
            token_in_index=i_in,
            token_out_index=i_out,
            amount_in=amount_in,
            amount_out=amount_out,
            swap_fee_amount=swap_fee_amount,
            management_fee_amount=management_fee,
            protocol_fee_bpt=protocol_fee_bpt,
        )

    def swap_given_in(
        self,
        caller: str,
        token_in: str,
        token_out: str,
        amount_in: int,
        balances: Sequence[int],
        min_amount_out: int | None = None,
    ) -> SwapResult:
        request = SwapRequest(SwapKind.GIVEN_IN, token_in, token_out, amount_in, min_amount_out)
        return self.on_swap(caller, request, balances)

    def swap_given_out(
        self,
        caller: str,
        token_in: str,
        token_out: str,
        amount_out: int,
        balances: Sequence[int],
        max_amount_in: int | None = None,
    ) -> SwapResult:
        request = SwapRequest(SwapKind.GIVEN_OUT, token_in, token_out, amount_out, max_amount_in)
        return self.on_swap(caller, request, balances)

    # =========================================================================
    # Joins
    # =========================================================================

    def _commit_join(self, kind: JoinKind, sender: str, bpt_out: int, amounts: Sequence[int]) -> JoinExitResult:
        self._total_supply += bpt_out
        logger.info("pool_joined", sender=sender, kind=kind.value, bpt_out=bpt_out)
        return JoinExitResult(kind=kind.value, bpt_amount=bpt_out, amounts=tuple(amounts))

    @synchronized
    def join_all_given_out(
        self,
        sender: str,
        balances: Sequence[int],
        bpt_out: int,
        max_amounts_in: Sequence[int] | None = None,
    ) -> JoinExitResult:
        """Proportional deposit of every token for exactly bpt_out shares."""
        self._require_initialized()
        self._gate.check_join(sender, JoinKind.ALL_TOKENS_IN_FOR_EXACT_BPT_OUT)
        self._check_non_negative([bpt_out], "shares out")
        scaled = self._upscale(self._net_balances(balances))

        amounts_scaled = calc_all_tokens_in_given_exact_bpt_out(
            scaled, Bfp(bpt_out), Bfp(self._total_supply)
        )
        amounts_in = [scale_down_up(a, f) for a, f in zip(amounts_scaled, self._scaling_factors, strict=True)]
        if max_amounts_in is not None:
            self._check_length(max_amounts_in, "maximum amounts")
            if any(a > m for a, m in zip(amounts_in, max_amounts_in, strict=True)):
                raise JoinAboveMaxError(f"Amounts in {amounts_in} exceed {list(max_amounts_in)}")

        return self._commit_join(JoinKind.ALL_TOKENS_IN_FOR_EXACT_BPT_OUT, sender, bpt_out, amounts_in)

    @synchronized
    def join_given_in(
        self,
        sender: str,
        balances: Sequence[int],
        amounts_in: Sequence[int],
        min_bpt_out: int = 0,
    ) -> JoinExitResult:
        """Deposit exact (possibly unbalanced) amounts for as many shares as they buy."""
        self._require_initialized()
        self._gate.check_join(sender, JoinKind.EXACT_TOKENS_IN_FOR_BPT_OUT)
        self._check_length(amounts_in, "amounts")
        self._check_non_negative(amounts_in, "amounts")
        scaled = self._upscale(self._net_balances(balances))
        weights = self._scheduler.get_normalized_weights(self._clock())

        bpt_out = calc_bpt_out_given_exact_tokens_in(
            scaled,
            weights,
            self._upscale(amounts_in),
            Bfp(self._total_supply),
            self._swap_fee_percentage,
        ).value
        if bpt_out < min_bpt_out:
            raise BptOutMinAmountError(f"Shares out {bpt_out} below minimum {min_bpt_out}")

        return self._commit_join(JoinKind.EXACT_TOKENS_IN_FOR_BPT_OUT, sender, bpt_out, amounts_in)

    @synchronized
    def join_given_out(
        self,
        sender: str,
        balances: Sequence[int],
        bpt_out: int,
        token: str,
        max_amount_in: int | None = None,
    ) -> JoinExitResult:
        """Deposit a single token for exactly bpt_out shares."""
        self._require_initialized()
        self._gate.check_join(sender, JoinKind.TOKEN_IN_FOR_EXACT_BPT_OUT)
        self._check_non_negative([bpt_out], "shares out")
        index = self._index_of(token)
        scaled = self._upscale(self._net_balances(balances))
        weights = self._scheduler.get_normalized_weights(self._clock())

        amount_scaled = calc_token_in_given_exact_bpt_out(
            scaled[index],
            weights[index],
            Bfp(bpt_out),
            Bfp(self._total_supply),
            self._swap_fee_percentage,
        )
        amount_in = scale_down_up(amount_scaled, self._scaling_factors[index])
        if max_amount_in is not None and amount_in > max_amount_in:
            raise JoinAboveMaxError(f"Amount in {amount_in} exceeds {max_amount_in}")

        amounts_in = [0] * len(self._tokens)
        amounts_in[index] = amount_in
        return self._commit_join(JoinKind.TOKEN_IN_FOR_EXACT_BPT_OUT, sender, bpt_out, amounts_in)

    # =========================================================================
    # Exits
    # =========================================================================

    def _check_bpt_in(self, bpt_in: int) -> None:
        self._check_non_negative([bpt_in], "shares in")
        if bpt_in > self._total_supply:
            raise BptInMaxAmountError(f"Shares in {bpt_in} exceed total supply {self._total_supply}")

    def _commit_exit(self, kind: ExitKind, sender: str, bpt_in: int, amounts: Sequence[int]) -> JoinExitResult:
        self._total_supply -= bpt_in
        logger.info("pool_exited", sender=sender, kind=kind.value, bpt_in=bpt_in)
        return JoinExitResult(kind=kind.value, bpt_amount=bpt_in, amounts=tuple(amounts))

    @synchronized
    def multi_exit_given_in(
        self,
        sender: str,
        balances: Sequence[int],
        bpt_in: int,
        min_amounts_out: Sequence[int] | None = None,
    ) -> JoinExitResult:
        """Burn exactly bpt_in shares for a proportional share of every token."""
        self._require_initialized()
        self._gate.check_exit(ExitKind.EXACT_BPT_IN_FOR_TOKENS_OUT)
        self._check_bpt_in(bpt_in)
        scaled = self._upscale(self._net_balances(balances))

        amounts_scaled = calc_tokens_out_given_exact_bpt_in(scaled, Bfp(bpt_in), Bfp(self._total_supply))
        amounts_out = [
            scale_down_down(a, f) for a, f in zip(amounts_scaled, self._scaling_factors, strict=True)
        ]
        if min_amounts_out is not None:
            self._check_length(min_amounts_out, "minimum amounts")
            if any(a < m for a, m in zip(amounts_out, min_amounts_out, strict=True)):
                raise ExitBelowMinError(f"Amounts out {amounts_out} below {list(min_amounts_out)}")

        return self._commit_exit(ExitKind.EXACT_BPT_IN_FOR_TOKENS_OUT, sender, bpt_in, amounts_out)

    @synchronized
    def single_exit_given_in(
        self,
        sender: str,
        balances: Sequence[int],
        bpt_in: int,
        token: str,
        min_amount_out: int = 0,
    ) -> JoinExitResult:
        """Burn exactly bpt_in shares for a single token."""
        self._require_initialized()
        self._gate.check_exit(ExitKind.EXACT_BPT_IN_FOR_ONE_TOKEN_OUT)
        self._check_bpt_in(bpt_in)
        index = self._index_of(token)
        scaled = self._upscale(self._net_balances(balances))
        weights = self._scheduler.get_normalized_weights(self._clock())

        amount_scaled = calc_token_out_given_exact_bpt_in(
            scaled[index],
            weights[index],
            Bfp(bpt_in),
            Bfp(self._total_supply),
            self._swap_fee_percentage,
        )
        amount_out = scale_down_down(amount_scaled, self._scaling_factors[index])
        if amount_out < min_amount_out:
            raise ExitBelowMinError(f"Amount out {amount_out} below {min_amount_out}")

        amounts_out = [0] * len(self._tokens)
        amounts_out[index] = amount_out
        return self._commit_exit(ExitKind.EXACT_BPT_IN_FOR_ONE_TOKEN_OUT, sender, bpt_in, amounts_out)

    @synchronized
    def exit_given_out(
        self,
        sender: str,
        balances: Sequence[int],
        amounts_out: Sequence[int],
        max_bpt_in: int | None = None,
    ) -> JoinExitResult:
        """Withdraw exact (possibly unbalanced) amounts, burning the shares they cost."""
        self._require_initialized()
        self._gate.check_exit(ExitKind.BPT_IN_FOR_EXACT_TOKENS_OUT)
        self._check_length(amounts_out, "amounts")
        self._check_non_negative(amounts_out, "amounts")
        scaled = self._upscale(self._net_balances(balances))
        weights = self._scheduler.get_normalized_weights(self._clock())

        bpt_in = calc_bpt_in_given_exact_tokens_out(
            scaled,
            weights,
            self._upscale(amounts_out),
            Bfp(self._total_supply),
            self._swap_fee_percentage,
        ).value
        if max_bpt_in is not None and bpt_in > max_bpt_in:
            raise BptInMaxAmountError(f"Shares in {bpt_in} above maximum {max_bpt_in}")
        self._check_bpt_in(bpt_in)

        return self._commit_exit(ExitKind.BPT_IN_FOR_EXACT_TOKENS_OUT, sender, bpt_in, amounts_out)

    # =========================================================================
    # Owner actions
    # =========================================================================

    @synchronized
    def update_weights_gradually(
        self,
        caller: str,
        start_time: int,
        end_time: int,
        end_weights: Sequence[Decimal | Bfp],
    ) -> WeightUpdateParams:
        """Schedule a linear move from the current weights to end_weights.

        Raises:
            SenderNotAllowedError: If caller is not the owner
            InputLengthMismatchError: If the weight count is wrong
            GradualUpdateTimeTravelError: If start is after end
            MinWeightError: If an end weight is below 1%
            NormalizedWeightInvariantError: If end weights do not sum to one
        """
        self._require_owner(caller)
        update = self._scheduler.prepare_update(
            self._clock(), start_time, end_time, [as_bfp(w) for w in end_weights]
        )
        self._scheduler.install(update)
        self._emit(
            "GradualWeightUpdateScheduled",
            start_time=update.start_time,
            end_time=update.end_time,
            start_weights=[w.to_decimal() for w in update.start_weights],
            end_weights=[w.to_decimal() for w in update.end_weights],
        )
        return self.get_gradual_weight_update_params()

    @synchronized
    def set_swap_enabled(self, caller: str, swap_enabled: bool) -> None:
        self._require_owner(caller)
        self._gate.swap_enabled = swap_enabled
        self._emit("SwapEnabledSet", swap_enabled=swap_enabled)

    @synchronized
    def set_must_allowlist_lps(self, caller: str, must_allowlist_lps: bool) -> None:
        """Turn the LP allowlist gate on or off. Membership is left untouched."""
        self._require_owner(caller)
        self._gate.must_allowlist_lps = must_allowlist_lps
        self._emit("MustAllowlistLPsSet", must_allowlist_lps=must_allowlist_lps)

    @synchronized
    def add_allowed_address(self, caller: str, member: str) -> None:
        """Raises UnauthorizedOperationError while the allowlist gate is off."""
        self._require_owner(caller)
        self._gate.add(member)
        self._emit("AllowlistAddressAdded", member=normalize_address(member))

    @synchronized
    def remove_allowed_address(self, caller: str, member: str) -> None:
        self._require_owner(caller)
        self._gate.remove(member)
        self._emit("AllowlistAddressRemoved", member=normalize_address(member))

    @synchronized
    def set_management_swap_fee_percentage(self, caller: str, value: Decimal | Bfp) -> None:
        self._require_owner(caller)
        fee = self._validate_management_fee(as_percentage(value))
        self._management_swap_fee_percentage = fee
        self._emit("ManagementFeePercentageChanged", management_fee_percentage=fee.to_decimal())

    @synchronized
    def set_swap_fee_percentage(self, caller: str, value: Decimal | Bfp) -> None:
        self._require_owner(caller)
        fee = self._validate_swap_fee(as_percentage(value))
        self._swap_fee_percentage = fee
        self._emit("SwapFeePercentageChanged", swap_fee_percentage=fee.to_decimal())

    @synchronized
    def withdraw_collected_management_fees(self, caller: str) -> list[int]:
        """Hand the accrued management fees to the owner.

        Returns the raw per-token amounts the vault must transfer to the owner.
        """
        self._require_owner(caller)
        amounts = self._management_fees.withdraw()
        self._emit("ManagementFeesCollected", amounts=amounts)
        return amounts

    @synchronized
    def update_protocol_swap_fee_percentage(self, caller: str, value: Decimal | Bfp) -> None:
        """Refresh the protocol's fee share. Only the vault knows the current value."""
        self._require_vault(caller)
        self._protocol_swap_fee_percentage = self._validate_protocol_fee(as_percentage(value))
        self._emit(
            "ProtocolSwapFeePercentageCacheUpdated",
            protocol_swap_fee_percentage=self._protocol_swap_fee_percentage.to_decimal(),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    @synchronized
    def get_normalized_weights(self) -> list[Decimal]:
        """Weights at the current time."""
        return [w.to_decimal() for w in self._scheduler.get_normalized_weights(self._clock())]

    @synchronized
    def get_gradual_weight_update_params(self) -> WeightUpdateParams:
        start_time, end_time, end_weights = self._scheduler.get_gradual_weight_update_params()
        return WeightUpdateParams(
            start_time=start_time,
            end_time=end_time,
            end_weights=tuple(w.to_decimal() for w in end_weights),
        )

    @synchronized
    def get_invariant(self, balances: Sequence[int]) -> Decimal:
        weights = self._scheduler.get_normalized_weights(self._clock())
        return calc_invariant(weights, self._upscale(self._net_balances(balances))).to_decimal()

    def get_scaling_factors(self) -> list[int]:
        return list(self._scaling_factors)

    def get_swap_enabled(self) -> bool:
        return self._gate.swap_enabled

    def get_must_allowlist_lps(self) -> bool:
        return self._gate.must_allowlist_lps

    def is_allowed_address(self, member: str) -> bool:
        return self._gate.is_allowed_address(member)

    def get_management_swap_fee_percentage(self) -> Decimal:
        return self._management_swap_fee_percentage.to_decimal()

    def get_swap_fee_percentage(self) -> Decimal:
        return self._swap_fee_percentage.to_decimal()

    def get_protocol_swap_fee_percentage(self) -> Decimal:
        return self._protocol_swap_fee_percentage.to_decimal()

    @synchronized
    def get_collected_management_fees(self) -> list[int]:
        return list(self._management_fees.collected)

    @property
    def tokens(self) -> tuple[str, ...]:
        return self._tokens

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def protocol_fee_bpt(self) -> int:
        """Shares minted to the protocol fee recipient so far."""
        return self._protocol_fee_bpt

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def events(self) -> tuple[PoolEvent, ...]:
        return tuple(self._events)
