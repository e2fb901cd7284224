"""LP allowlist and swap-mode gates.

The pool asks AccessGate before every join, exit and swap. Ownership checks
live in the pool; the gate only knows about membership and modes.
"""

from __future__ import annotations

from enum import Enum

import structlog

from managed_pool.errors import (
    AddressAlreadyAllowlistedError,
    AddressNotAllowlistedError,
    InvalidJoinExitKindWhileSwapsDisabledError,
    SwapsDisabledError,
    UnauthorizedOperationError,
)

logger = structlog.get_logger()


class JoinKind(str, Enum):
    """Shape of a deposit."""

    INIT = "init"
    EXACT_TOKENS_IN_FOR_BPT_OUT = "exact_tokens_in_for_bpt_out"
    TOKEN_IN_FOR_EXACT_BPT_OUT = "token_in_for_exact_bpt_out"
    ALL_TOKENS_IN_FOR_EXACT_BPT_OUT = "all_tokens_in_for_exact_bpt_out"


class ExitKind(str, Enum):
    """Shape of a withdrawal."""

    EXACT_BPT_IN_FOR_ONE_TOKEN_OUT = "exact_bpt_in_for_one_token_out"
    EXACT_BPT_IN_FOR_TOKENS_OUT = "exact_bpt_in_for_tokens_out"
    BPT_IN_FOR_EXACT_TOKENS_OUT = "bpt_in_for_exact_tokens_out"


# Kinds that leave every balance ratio unchanged, and so cannot act as a swap
PROPORTIONAL_JOIN_KINDS = frozenset({JoinKind.INIT, JoinKind.ALL_TOKENS_IN_FOR_EXACT_BPT_OUT})
PROPORTIONAL_EXIT_KINDS = frozenset({ExitKind.EXACT_BPT_IN_FOR_TOKENS_OUT})


def normalize_address(address: str) -> str:
    """Lowercase an address for comparison."""
    return address.lower()


class AccessGate:
    """Allowlist membership plus the swap-enabled flag."""

    def __init__(self, *, swap_enabled: bool = True, must_allowlist_lps: bool = False) -> None:
        self.swap_enabled = swap_enabled
        self.must_allowlist_lps = must_allowlist_lps
        self._allowlist: set[str] = set()

    # -- allowlist ------------------------------------------------------------

    def is_allowed_address(self, address: str) -> bool:
        """Membership, independent of whether the gate is active."""
        return normalize_address(address) in self._allowlist

    def check_add(self, address: str) -> None:
        if not self.must_allowlist_lps:
            raise UnauthorizedOperationError("Allowlist is not enabled")
        if self.is_allowed_address(address):
            raise AddressAlreadyAllowlistedError(f"{address} is already allowlisted")

    def add(self, address: str) -> None:
        self.check_add(address)
        self._allowlist.add(normalize_address(address))

    def check_remove(self, address: str) -> None:
        if not self.is_allowed_address(address):
            raise AddressNotAllowlistedError(f"{address} is not allowlisted")

    def remove(self, address: str) -> None:
        self.check_remove(address)
        self._allowlist.discard(normalize_address(address))

    @property
    def allowlist(self) -> frozenset[str]:
        return frozenset(self._allowlist)

    # -- gates ----------------------------------------------------------------

    def check_join(self, sender: str, kind: JoinKind) -> None:
        """Raise unless sender may deposit with this kind right now."""
        if self.must_allowlist_lps and not self.is_allowed_address(sender):
            logger.debug("join_rejected_not_allowlisted", sender=sender)
            raise AddressNotAllowlistedError(f"{sender} is not allowlisted")
        if not self.swap_enabled and kind not in PROPORTIONAL_JOIN_KINDS:
            logger.debug("join_rejected_swaps_disabled", sender=sender, kind=kind.value)
            raise InvalidJoinExitKindWhileSwapsDisabledError(f"{kind.value} join while swaps disabled")

    def check_exit(self, kind: ExitKind) -> None:
        """Raise unless this withdrawal kind is allowed. Exits ignore the allowlist."""
        if not self.swap_enabled and kind not in PROPORTIONAL_EXIT_KINDS:
            logger.debug("exit_rejected_swaps_disabled", kind=kind.value)
            raise InvalidJoinExitKindWhileSwapsDisabledError(f"{kind.value} exit while swaps disabled")

    def check_swap(self) -> None:
        if not self.swap_enabled:
            raise SwapsDisabledError("Swaps are disabled")
