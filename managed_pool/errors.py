"""Pool error classes.

Every rejection carries a stable ``code`` string. Errors are raised before any
pool state is touched, so a caught PoolError means nothing changed.
"""


class PoolError(Exception):
    """Base error for managed pool operations."""

    code: str = "POOL_ERROR"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)


# =============================================================================
# Categories
# =============================================================================


class ValidationError(PoolError):
    """Malformed or out-of-range input."""


class AuthorizationError(PoolError):
    """Caller is not permitted to perform the operation."""


class AllowlistError(PoolError):
    """Allowlist membership precondition failed."""


class OperationalModeError(PoolError):
    """Operation not permitted in the pool's current mode."""


class PoolStateError(PoolError):
    """Pool lifecycle precondition failed."""


class MathError(PoolError):
    """Amounts fall outside what the weighted formulas accept."""


# =============================================================================
# Validation
# =============================================================================


class MinTokensError(ValidationError):
    code = "MIN_TOKENS"


class MaxTokensError(ValidationError):
    code = "MAX_TOKENS"


class InputLengthMismatchError(ValidationError):
    code = "INPUT_LENGTH_MISMATCH"


class MinWeightError(ValidationError):
    code = "MIN_WEIGHT"


class NormalizedWeightInvariantError(ValidationError):
    code = "NORMALIZED_WEIGHT_INVARIANT"


class GradualUpdateTimeTravelError(ValidationError):
    code = "GRADUAL_UPDATE_TIME_TRAVEL"


class MinSwapFeePercentageError(ValidationError):
    code = "MIN_SWAP_FEE_PERCENTAGE"


class MaxSwapFeePercentageError(ValidationError):
    code = "MAX_SWAP_FEE_PERCENTAGE"


class MaxManagementSwapFeePercentageError(ValidationError):
    code = "MAX_MANAGEMENT_SWAP_FEE_PERCENTAGE"


class MaxProtocolSwapFeePercentageError(ValidationError):
    code = "MAX_PROTOCOL_SWAP_FEE_PERCENTAGE"


class TokenDecimalsTooLargeError(ValidationError):
    code = "TOKEN_DECIMALS_TOO_LARGE"


class TokenNotInPoolError(ValidationError):
    code = "TOKEN_NOT_IN_POOL"


class InvalidFeeError(ValidationError):
    """Fee must be in range [0, 1)."""

    code = "INVALID_FEE"


class InvalidScalingFactorError(ValidationError):
    """Scaling factor must be positive."""

    code = "INVALID_SCALING_FACTOR"


class CannotSwapSameTokenError(ValidationError):
    code = "CANNOT_SWAP_SAME_TOKEN"


class NegativeAmountError(ValidationError):
    """Token or share amounts must be non-negative."""

    code = "NEGATIVE_AMOUNT"


# =============================================================================
# Authorization
# =============================================================================


class SenderNotAllowedError(AuthorizationError):
    """Non-owner attempted an owner-only action."""

    code = "SENDER_NOT_ALLOWED"


class UnauthorizedOperationError(AuthorizationError):
    """Allowlist mutation attempted while the allowlist gate is off."""

    code = "UNAUTHORIZED_OPERATION"


class CallerNotVaultError(AuthorizationError):
    code = "CALLER_NOT_VAULT"


# =============================================================================
# Allowlist state
# =============================================================================


class AddressAlreadyAllowlistedError(AllowlistError):
    code = "ADDRESS_ALREADY_ALLOWLISTED"


class AddressNotAllowlistedError(AllowlistError):
    code = "ADDRESS_NOT_ALLOWLISTED"


# =============================================================================
# Operational mode
# =============================================================================


class SwapsDisabledError(OperationalModeError):
    code = "SWAPS_DISABLED"


class InvalidJoinExitKindWhileSwapsDisabledError(OperationalModeError):
    code = "INVALID_JOIN_EXIT_KIND_WHILE_SWAPS_DISABLED"


# =============================================================================
# Pool lifecycle
# =============================================================================


class AlreadyInitializedError(PoolStateError):
    code = "ALREADY_INITIALIZED"


class UninitializedError(PoolStateError):
    code = "UNINITIALIZED"


class MinimumBptError(PoolStateError):
    """Initial invariant too small to cover the locked minimum supply."""

    code = "MINIMUM_BPT"


# =============================================================================
# Math limits
# =============================================================================


class MaxInRatioError(MathError):
    """Input amount exceeds 30% of balance_in."""

    code = "MAX_IN_RATIO"


class MaxOutRatioError(MathError):
    """Output amount exceeds 30% of balance_out."""

    code = "MAX_OUT_RATIO"


class ZeroInvariantError(MathError):
    code = "ZERO_INVARIANT"


class ZeroWeightError(MathError):
    code = "ZERO_WEIGHT"


class ZeroBalanceError(MathError):
    code = "ZERO_BALANCE"


class MaxOutBptForTokenInError(MathError):
    """Single-token join would grow the invariant more than 3x."""

    code = "MAX_OUT_BPT_FOR_TOKEN_IN"


class MinBptInForTokenOutError(MathError):
    """Single-token exit would shrink the invariant below 0.7x."""

    code = "MIN_BPT_IN_FOR_TOKEN_OUT"


class BptOutMinAmountError(MathError):
    code = "BPT_OUT_MIN_AMOUNT"


class BptInMaxAmountError(MathError):
    code = "BPT_IN_MAX_AMOUNT"


class SwapLimitError(MathError):
    code = "SWAP_LIMIT"


class JoinAboveMaxError(MathError):
    """Required deposit exceeds the caller's maximum."""

    code = "JOIN_ABOVE_MAX"


class ExitBelowMinError(MathError):
    """Withdrawal falls short of the caller's minimum."""

    code = "EXIT_BELOW_MIN"
