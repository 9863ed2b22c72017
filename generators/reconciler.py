"""
Two-phase target reconciliation.

Phase 1 generators produce magnitudes that are only roughly right. The
``Reconciler`` nudges their sum into ``[lower, upper] * target``:

- below target: the deficit plus a random overage is spread over the
  existing items until the running sum reaches the ideal ceiling
- above ``upper * target``: every magnitude is scaled towards
  ``scale_to * target``; items pinned at ``floor`` leave their share
  to the rest
- in between: nothing changes

The routine is magnitude-agnostic; callers pass ``get_value``/``set_value`` closures.
"""

from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

import numpy as np
import structlog

from generators.sampling import uniform

T = TypeVar("T")

logger = structlog.get_logger("reconciler")

_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ReconcileBand:
    lower: float = 1.0
    ideal: tuple[float, float] = (1.10, 1.15)
    upper: float = 1.2
    scale_to: float = 1.15

    def __post_init__(self):
        low, high = self.ideal
        if not self.lower <= low <= high <= self.upper:
            raise ValueError("band must satisfy lower <= ideal <= upper")
        if not self.lower <= self.scale_to <= self.upper:
            raise ValueError("scale_to must sit inside the band")


@dataclass(frozen=True)
class ReconcileOutcome:
    target: float
    before: float
    after: float
    action: str  # none | boosted | scaled | shortfall
    in_band: bool

    @property
    def ratio(self) -> float:
        return self.after / self.target if self.target else 0.0


class Reconciler:
    def __init__(
        self,
        rng: np.random.Generator,
        band: ReconcileBand = ReconcileBand(),
        boost_spread: tuple[float, float] = (0.8, 1.5),
        floor: float = 0.0,
    ):
        self.rng = rng
        self.band = band
        self.boost_spread = boost_spread
        self.floor = floor

    def reconcile(
        self,
        items: Sequence[T],
        target: float,
        get_value: Callable[[T], float],
        set_value: Callable[[T, float], None],
    ) -> ReconcileOutcome:
        before = float(sum(get_value(item) for item in items))

        if target <= 0:
            return self._outcome(target, before, before, "none")

        if not items:
            logger.warning("reconcile_shortfall", target=target, reason="no_items")
            return self._outcome(target, before, before, "shortfall")

        if before < target * self.band.lower:
            after = self._boost(items, target, before, get_value, set_value)
            action = "boosted"
        elif before > target * self.band.upper:
            after = self._scale(items, target, before, get_value, set_value)
            action = "scaled"
        else:
            return self._outcome(target, before, before, "none")

        outcome = self._outcome(target, before, after, action)
        logger.debug(
            "reconciled",
            action=action,
            target=target,
            before=before,
            after=after,
            in_band=outcome.in_band,
        )
        return outcome

    def _boost(self, items, target, current, get_value, set_value) -> float:
        ceiling = target * uniform(self.rng, *self.band.ideal)
        deficit = target - current
        ideal_extra = ceiling - target
        even_share = (deficit + ideal_extra) / len(items)

        # Repeat passes until the ceiling is reached; each pass adds at least
        # spread_low * (deficit + ideal_extra) unless it reaches the ceiling.
        while current < ceiling:
            for item in items:
                room = ceiling - current
                if room <= 0:
                    break
                share = min(uniform(self.rng, *self.boost_spread) * even_share, room)
                set_value(item, get_value(item) + share)
                current += share
        return float(sum(get_value(item) for item in items))

    def _scale(self, items, target, current, get_value, set_value) -> float:
        """
        Scale towards ``scale_to * target``.

        Items that would drop below ``floor`` are pinned there and the
        remaining budget is shared by the others, repeated until no new
        item hits the floor.
        """
        goal = self.band.scale_to * target
        values = [get_value(item) for item in items]
        pinned = [False] * len(values)
        factor = 0.0

        while True:
            free = sum(v for v, p in zip(values, pinned) if not p)
            if free <= 0:
                break
            budget = goal - self.floor * sum(pinned)
            factor = max(budget, 0.0) / free
            newly_pinned = [
                i for i, (v, p) in enumerate(zip(values, pinned)) if not p and v * factor < self.floor
            ]
            if not newly_pinned:
                break
            for i in newly_pinned:
                pinned[i] = True

        for item, value, is_pinned in zip(items, values, pinned):
            set_value(item, self.floor if is_pinned else value * factor)
        return float(sum(get_value(item) for item in items))

    def _outcome(self, target, before, after, action) -> ReconcileOutcome:
        slack = _TOLERANCE * max(target, 1.0)
        in_band = (
            target * self.band.lower - slack <= after <= target * self.band.upper + slack
        )
        return ReconcileOutcome(
            target=target, before=before, after=after, action=action, in_band=in_band
        )
