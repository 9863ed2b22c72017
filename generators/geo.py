from typing import Optional

import numpy as np
import structlog

from generators.models import GeoPoint

logger = structlog.get_logger("geo")


class GeoExhaustedError(RuntimeError):
    """No under-capacity coordinate was found within the retry bound."""

    def __init__(self, base_lat: float, base_lon: float, attempts: int):
        super().__init__(
            f"No free coordinate near ({base_lat}, {base_lon}) after {attempts} attempts"
        )
        self.base_lat = base_lat
        self.base_lon = base_lon
        self.attempts = attempts


class GeoDedupCache:
    """
    Caps how many users share one rounded (lat, lon) pair.

    Each assignment jitters the base coordinate independently on both axes,
    rounds to ``precision`` decimals and accepts the pair only while fewer
    than ``max_per_point`` users hold it. Shared by every period of a run.
    """

    def __init__(
        self,
        rng: np.random.Generator,
        jitter: float = 0.02,
        precision: int = 3,
        max_per_point: int = 3,
        max_attempts: int = 10_000,
    ):
        self.rng = rng
        self.jitter = jitter
        self.precision = precision
        self.max_per_point = max_per_point
        self.max_attempts = max_attempts
        self._usage: dict[tuple[float, float], int] = {}

    def assign(self, base_lat: float, base_lon: float) -> GeoPoint:
        for attempt in range(1, self.max_attempts + 1):
            lat = round(base_lat + float(self.rng.uniform(-self.jitter, self.jitter)), self.precision)
            lon = round(base_lon + float(self.rng.uniform(-self.jitter, self.jitter)), self.precision)
            key = (lat, lon)
            used = self._usage.get(key, 0)
            if used < self.max_per_point:
                self._usage[key] = used + 1
                if attempt > 1:
                    logger.debug("geo_rerolled", lat=lat, lon=lon, attempts=attempt)
                return GeoPoint(latitude=lat, longitude=lon)

        logger.error("geo_exhausted", base_lat=base_lat, base_lon=base_lon, attempts=self.max_attempts)
        raise GeoExhaustedError(base_lat, base_lon, self.max_attempts)

    def usage(self, point: GeoPoint) -> int:
        return self._usage.get((point.latitude, point.longitude), 0)

    def max_usage(self) -> Optional[int]:
        return max(self._usage.values()) if self._usage else None

    def __len__(self) -> int:
        return len(self._usage)
