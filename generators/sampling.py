"""
Random sampling helpers driven by an injected numpy Generator.

Every draw goes through the ``rng`` passed in, so a seeded run replays
exactly.
"""

import math
import string
import uuid
from datetime import datetime
from typing import Mapping, Sequence, TypeVar

import numpy as np
import structlog

T = TypeVar("T")

logger = structlog.get_logger("sampling")

# Absorbs float error in weight normalisation (0.3 * 45 -> 13.499999...)
_ROUNDING_EPSILON = 1e-9


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5 + _ROUNDING_EPSILON))


class RegionQuota:
    """
    Exact per-region signup quotas.

    Each pick rolls a uniform value over the remaining total and walks the
    buckets in declared order, decrementing the bucket it lands in. After
    ``sum(initial)`` picks every bucket is exactly zero.
    """

    def __init__(self, counts: Mapping[str, int]):
        if any(n < 0 for n in counts.values()):
            raise ValueError("quota counts must not be negative")
        if not counts:
            raise ValueError("at least one quota bucket is required")
        self.initial = dict(counts)
        self.remaining = dict(counts)

    @classmethod
    def from_weights(cls, weights: Mapping[str, float], total: int) -> "RegionQuota":
        """
        Split ``total`` across ``weights`` (fractions or raw counts).

        Every bucket but the last gets its rounded share, capped at what is
        left; the last bucket takes the exact remainder.
        """
        weight_sum = float(sum(weights.values()))
        if weight_sum <= 0:
            raise ValueError("weights must have a positive sum")

        labels = list(weights)
        counts: dict[str, int] = {}
        left = total
        for i, label in enumerate(labels):
            if i == len(labels) - 1:
                share = left
            else:
                share = min(round_half_up(weights[label] / weight_sum * total), left)
            counts[label] = share
            left -= share
        return cls(counts)

    @property
    def total_remaining(self) -> int:
        return sum(self.remaining.values())

    def pick(self, rng: np.random.Generator) -> str:
        total = self.total_remaining
        if total <= 0:
            fallback = list(self.remaining)[-1]
            logger.warning("quota_exhausted", fallback=fallback, initial=self.initial)
            return fallback

        roll = rng.random() * total
        for label, left in self.remaining.items():
            if roll < left:
                self.remaining[label] -= 1
                return label
            roll -= left

        # roll landed on the upper edge through float error
        for label in reversed(list(self.remaining)):
            if self.remaining[label] > 0:
                self.remaining[label] -= 1
                return label
        raise AssertionError("unreachable: remaining total was positive")


def weighted_choice(rng: np.random.Generator, items: Sequence[T], weights: Sequence[float]) -> T:
    """Draw one item by cumulative weight; nothing is decremented."""
    if len(items) != len(weights):
        raise ValueError("items and weights must have the same length")
    p = np.asarray(weights, dtype=float)
    p = p / p.sum()
    return items[int(rng.choice(len(items), p=p))]


def weighted_key(rng: np.random.Generator, weights: Mapping[str, float]) -> str:
    keys = list(weights)
    return weighted_choice(rng, keys, [weights[k] for k in keys])


def uniform_choice(rng: np.random.Generator, items: Sequence[T]) -> T:
    return items[int(rng.integers(0, len(items)))]


def sample_without_replacement(rng: np.random.Generator, items: Sequence[T], k: int) -> list[T]:
    """``min(k, len(items))`` distinct items, uniformly."""
    k = min(k, len(items))
    if k <= 0:
        return []
    indices = rng.choice(len(items), size=k, replace=False)
    return [items[int(i)] for i in indices]


def uniform(rng: np.random.Generator, low: float, high: float) -> float:
    return float(rng.uniform(low, high))


def random_instant(rng: np.random.Generator, start: datetime, end: datetime) -> datetime:
    """Uniform instant in ``[start, end]``."""
    if end <= start:
        return start
    return start + (end - start) * float(rng.random())


def random_uuid(rng: np.random.Generator) -> str:
    return str(uuid.UUID(bytes=rng.bytes(16), version=4))


_ALPHANUMERIC = string.ascii_uppercase + string.digits


def random_code(rng: np.random.Generator, length: int = 8) -> str:
    indices = rng.integers(0, len(_ALPHANUMERIC), size=length)
    return "".join(_ALPHANUMERIC[int(i)] for i in indices)
