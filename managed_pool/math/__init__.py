"""Fixed-point math primitives for pool calculations.

- Bfp: 18-decimal fixed-point arithmetic with directional rounding
"""

from managed_pool.math.fixed_point import ONE, ONE_18, ZERO, Bfp, FixedPointError

__all__ = ["Bfp", "FixedPointError", "ONE", "ONE_18", "ZERO"]
