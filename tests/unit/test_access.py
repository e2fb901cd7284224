"""Tests for the allowlist and swap-mode gates."""

import pytest

from managed_pool.access import PROPORTIONAL_EXIT_KINDS, PROPORTIONAL_JOIN_KINDS, AccessGate, ExitKind, JoinKind
from managed_pool.errors import (
    AddressAlreadyAllowlistedError,
    AddressNotAllowlistedError,
    InvalidJoinExitKindWhileSwapsDisabledError,
    SwapsDisabledError,
    UnauthorizedOperationError,
)
from tests.helpers import LP, OTHER


class TestAllowlist:
    def test_add_requires_gate_on(self) -> None:
        gate = AccessGate(must_allowlist_lps=False)
        with pytest.raises(UnauthorizedOperationError) as exc_info:
            gate.add(LP)
        assert exc_info.value.code == "UNAUTHORIZED_OPERATION"

    def test_add_and_remove(self) -> None:
        gate = AccessGate(must_allowlist_lps=True)
        gate.add(LP)
        assert gate.is_allowed_address(LP)
        gate.remove(LP)
        assert not gate.is_allowed_address(LP)

    def test_membership_ignores_case(self) -> None:
        gate = AccessGate(must_allowlist_lps=True)
        gate.add(LP.upper().replace("0X", "0x"))
        assert gate.is_allowed_address(LP)

    def test_add_twice(self) -> None:
        gate = AccessGate(must_allowlist_lps=True)
        gate.add(LP)
        with pytest.raises(AddressAlreadyAllowlistedError):
            gate.add(LP)

    def test_remove_non_member(self) -> None:
        gate = AccessGate(must_allowlist_lps=True)
        with pytest.raises(AddressNotAllowlistedError):
            gate.remove(LP)

    def test_remove_while_gate_off(self) -> None:
        """Members can be removed after the gate is turned off."""
        gate = AccessGate(must_allowlist_lps=True)
        gate.add(LP)
        gate.must_allowlist_lps = False
        gate.remove(LP)
        assert gate.allowlist == frozenset()


class TestJoinGate:
    def test_open_pool_accepts_anyone(self) -> None:
        AccessGate().check_join(OTHER, JoinKind.EXACT_TOKENS_IN_FOR_BPT_OUT)

    def test_allowlisted_join(self) -> None:
        gate = AccessGate(must_allowlist_lps=True)
        gate.add(LP)
        gate.check_join(LP, JoinKind.INIT)
        with pytest.raises(AddressNotAllowlistedError):
            gate.check_join(OTHER, JoinKind.INIT)

    @pytest.mark.parametrize("kind", list(JoinKind))
    def test_join_kinds_while_swaps_disabled(self, kind: JoinKind) -> None:
        gate = AccessGate(swap_enabled=False)
        if kind in PROPORTIONAL_JOIN_KINDS:
            gate.check_join(LP, kind)
        else:
            with pytest.raises(InvalidJoinExitKindWhileSwapsDisabledError):
                gate.check_join(LP, kind)

    def test_allowlist_checked_before_kind(self) -> None:
        gate = AccessGate(swap_enabled=False, must_allowlist_lps=True)
        with pytest.raises(AddressNotAllowlistedError):
            gate.check_join(OTHER, JoinKind.EXACT_TOKENS_IN_FOR_BPT_OUT)


class TestExitAndSwapGates:
    @pytest.mark.parametrize("kind", list(ExitKind))
    def test_exit_kinds_while_swaps_disabled(self, kind: ExitKind) -> None:
        gate = AccessGate(swap_enabled=False)
        if kind in PROPORTIONAL_EXIT_KINDS:
            gate.check_exit(kind)
        else:
            with pytest.raises(InvalidJoinExitKindWhileSwapsDisabledError):
                gate.check_exit(kind)

    def test_every_exit_allowed_while_swaps_enabled(self) -> None:
        gate = AccessGate(must_allowlist_lps=True)
        for kind in ExitKind:
            gate.check_exit(kind)

    def test_swap_gate(self) -> None:
        AccessGate().check_swap()
        with pytest.raises(SwapsDisabledError) as exc_info:
            AccessGate(swap_enabled=False).check_swap()
        assert exc_info.value.code == "SWAPS_DISABLED"
