"""Pytest configuration and fixtures."""

from decimal import Decimal

import pytest

from managed_pool.pool import ManagedPool
from tests.helpers import FakeClock, make_initialized_pool


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at START_TIME until advanced."""
    return FakeClock()


@pytest.fixture
def pool(clock: FakeClock) -> ManagedPool:
    """Initialized 80/20 pool with a 2% swap fee and no fee shares."""
    return make_initialized_pool(clock=clock)


@pytest.fixture
def fee_pool(clock: FakeClock) -> ManagedPool:
    """Initialized 80/20 pool whose swaps mint 50% of fees to the protocol."""
    return make_initialized_pool(clock=clock, protocol_swap_fee_percentage=Decimal("0.5"))
