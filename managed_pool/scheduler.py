"""Gradual weight updates.

A pool always carries exactly one schedule: a start and end time with the
weights at each end. Weights at any instant are derived from the schedule and
the query time; there is no stored phase. Installing a schedule replaces the
previous one wholesale.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

import structlog

from managed_pool.config import DEFAULT_POOL_LIMITS, PoolLimits
from managed_pool.errors import (
    GradualUpdateTimeTravelError,
    InputLengthMismatchError,
    MinWeightError,
    NormalizedWeightInvariantError,
)
from managed_pool.math.fixed_point import ONE, Bfp

logger = structlog.get_logger()


class UpdatePhase(str, Enum):
    """Where the query time falls relative to the schedule window."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def validate_normalized_weights(
    weights: Sequence[Bfp],
    num_tokens: int,
    limits: PoolLimits = DEFAULT_POOL_LIMITS,
) -> None:
    """Check a weight vector: one entry per token, each >= MIN_WEIGHT, summing to one.

    Raises:
        InputLengthMismatchError: If len(weights) != num_tokens
        MinWeightError: If any weight is below the minimum
        NormalizedWeightInvariantError: If the weights do not sum to one
    """
    if len(weights) != num_tokens:
        raise InputLengthMismatchError(f"Expected {num_tokens} weights, got {len(weights)}")

    total = 0
    for weight in weights:
        if weight.value < limits.min_weight:
            raise MinWeightError(f"Weight {weight} below minimum")
        total += weight.value

    if abs(total - ONE.value) > limits.weight_sum_tolerance:
        raise NormalizedWeightInvariantError(f"Weights sum to {Bfp(total)}, expected 1")


@dataclass(frozen=True)
class GradualWeightUpdate:
    """An installed weight schedule.

    Attributes:
        start_time: Time the interpolation begins (never before install time)
        end_time: Time the end weights are reached
        start_weights: Weights returned before start_time
        end_weights: Weights returned from end_time on
    """

    start_time: int
    end_time: int
    start_weights: tuple[Bfp, ...]
    end_weights: tuple[Bfp, ...]

    def phase(self, now: int) -> UpdatePhase:
        if now < self.start_time:
            return UpdatePhase.NOT_STARTED
        if now < self.end_time:
            return UpdatePhase.IN_PROGRESS
        return UpdatePhase.COMPLETED

    def progress(self, now: int) -> Bfp:
        """Fraction of the window elapsed at now, clamped to [0, 1]."""
        if now >= self.end_time or self.start_time == self.end_time:
            return ONE
        if now <= self.start_time:
            return Bfp(0)
        elapsed = Bfp.from_int(now - self.start_time)
        return elapsed.div_down(Bfp.from_int(self.end_time - self.start_time))

    def weights_at(self, now: int) -> list[Bfp]:
        phase = self.phase(now)
        if phase is UpdatePhase.NOT_STARTED:
            return list(self.start_weights)
        if phase is UpdatePhase.COMPLETED:
            return list(self.end_weights)

        pct = self.progress(now)
        weights = []
        for start, end in zip(self.start_weights, self.end_weights, strict=True):
            # Two branches keep every intermediate value unsigned
            if end >= start:
                weights.append(start.add(end.sub(start).mul_down(pct)))
            else:
                weights.append(start.sub(start.sub(end).mul_down(pct)))
        return weights


class WeightScheduler:
    """Owns a pool's weight schedule and answers current-weight queries.

    Callers pass ``now`` explicitly so that every read inside one pool
    operation sees the same instant.
    """

    def __init__(
        self,
        initial_weights: Sequence[Bfp],
        now: int,
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
    ) -> None:
        validate_normalized_weights(initial_weights, len(initial_weights), limits)
        self._limits = limits
        weights = tuple(initial_weights)
        # Initial weights are stored as a zero-duration update
        self._update = GradualWeightUpdate(now, now, weights, weights)

    @property
    def num_tokens(self) -> int:
        return len(self._update.end_weights)

    @property
    def current_update(self) -> GradualWeightUpdate:
        return self._update

    def get_normalized_weights(self, now: int) -> list[Bfp]:
        return self._update.weights_at(now)

    def get_gradual_weight_update_params(self) -> tuple[int, int, list[Bfp]]:
        """Return (start_time, end_time, end_weights) of the installed schedule."""
        update = self._update
        return update.start_time, update.end_time, list(update.end_weights)

    def prepare_update(
        self,
        now: int,
        start_time: int,
        end_time: int,
        end_weights: Sequence[Bfp],
    ) -> GradualWeightUpdate:
        """Validate a new schedule and build it without installing it.

        A start time in the past is fast-forwarded to now; end_time is kept,
        so the effective window may shrink.

        Raises:
            InputLengthMismatchError: If the weight count differs from the pool's
            GradualUpdateTimeTravelError: If the (clamped) start is after end
            MinWeightError: If an end weight is below the minimum
            NormalizedWeightInvariantError: If end weights do not sum to one
        """
        if len(end_weights) != self.num_tokens:
            raise InputLengthMismatchError(
                f"Expected {self.num_tokens} weights, got {len(end_weights)}"
            )

        start_time = max(start_time, now)
        if start_time > end_time:
            raise GradualUpdateTimeTravelError(f"start {start_time} is after end {end_time}")

        validate_normalized_weights(end_weights, self.num_tokens, self._limits)

        return GradualWeightUpdate(
            start_time=start_time,
            end_time=end_time,
            start_weights=tuple(self.get_normalized_weights(now)),
            end_weights=tuple(end_weights),
        )

    def install(self, update: GradualWeightUpdate) -> None:
        self._update = update
        logger.info(
            "gradual_weight_update_scheduled",
            start_time=update.start_time,
            end_time=update.end_time,
            end_weights=[str(w) for w in update.end_weights],
        )

    def update_weights_gradually(
        self,
        now: int,
        start_time: int,
        end_time: int,
        end_weights: Sequence[Bfp],
    ) -> GradualWeightUpdate:
        """Validate and install a new schedule, returning it."""
        update = self.prepare_update(now, start_time, end_time, end_weights)
        self.install(update)
        return update
