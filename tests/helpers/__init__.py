"""Test helpers module for shared test utilities.

- constants: Actor and token addresses, default pool settings
- factories: Pool factories and a controllable clock
"""

from tests.helpers.constants import (
    DEFAULT_BALANCES,
    DEFAULT_SWAP_FEE,
    DEFAULT_WEIGHTS,
    LP,
    ONE_TOKEN,
    OTHER,
    OWNER,
    START_TIME,
    TOKEN_A,
    TOKEN_B,
    TOKEN_C,
    VAULT,
)
from tests.helpers.factories import FakeClock, make_initialized_pool, make_pool

__all__ = [
    # Constants
    "OWNER",
    "VAULT",
    "LP",
    "OTHER",
    "TOKEN_A",
    "TOKEN_B",
    "TOKEN_C",
    "ONE_TOKEN",
    "DEFAULT_WEIGHTS",
    "DEFAULT_BALANCES",
    "DEFAULT_SWAP_FEE",
    "START_TIME",
    # Factories
    "FakeClock",
    "make_pool",
    "make_initialized_pool",
]
