"""
Score standardization: raw score -> z-score against its country-year cohort.

An invalid cohort yields None ("cannot standardize"), which callers render
as a gap. It is never turned into 0, which would read as "at average".
"""

from __future__ import annotations

import math
from typing import Optional

from .types import CohortStats, StandardizationMode


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


class ScoreStandardizer:
    """Stateless apart from the minimum cohort size."""

    def __init__(self, min_count: int = 2):
        self.min_count = min_count

    def standardize(
        self,
        raw: Optional[float],
        mean: Optional[float],
        std_dev: Optional[float],
        count: Optional[int] = None,
    ) -> Optional[float]:
        """
        (raw - mean) / std_dev, or None when the cohort cannot be used.

        Example:
            >>> ScoreStandardizer().standardize(30, 20, 8.165)  # doctest: +ELLIPSIS
            1.2247...
        """
        if not (_finite(raw) and _finite(mean) and _finite(std_dev)):
            return None
        if std_dev <= 0:
            return None
        if count is not None and count < self.min_count:
            return None
        return (raw - mean) / std_dev

    def standardize_with_stats(
        self,
        raw: Optional[float],
        stats: Optional[CohortStats],
    ) -> Optional[float]:
        if stats is None or not stats.is_valid:
            return None
        return self.standardize(raw, stats.mean, stats.std_dev, stats.count)

    def apply(
        self,
        raw: Optional[float],
        stats: Optional[CohortStats],
        mode: StandardizationMode,
    ) -> Optional[float]:
        """Value to emit for one point in the given mode."""
        if mode == StandardizationMode.RAW:
            return raw
        return self.standardize_with_stats(raw, stats)
