"""
Cohort Statistics

Per (country, year) descriptive statistics over the WHOLE market, never the
user's brand selection: the cohort is every brand scored in that
country-year.

- null, zero and NaN scores do not contribute
- countries canonicalized to one code, so "Sweden" and "SE" share a cohort
- one record per (normalized brand, year) within a country (highest score)
- mean and population standard deviation (ddof=0)
- a cohort with fewer than min_count brands is kept but flagged invalid
- std_dev below epsilon is clamped to the fallback (1.0)
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .countries import CountryDirectory
from .name_normalizer import NameNormalizer
from .types import CohortStats, ScoreRecord

StatsTable = Dict[str, Dict[int, CohortStats]]


class CohortStatisticsCalculator:
    """Computes CohortStats for every country-year found in a record set."""

    def __init__(
        self,
        normalizer: Optional[NameNormalizer] = None,
        countries: Optional[CountryDirectory] = None,
        min_count: int = 2,
        epsilon: float = 0.001,
        std_dev_fallback: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.normalizer = normalizer or NameNormalizer()
        self.countries = countries or CountryDirectory()
        self.min_count = min_count
        self.epsilon = epsilon
        self.std_dev_fallback = std_dev_fallback
        self.logger = logger or logging.getLogger(__name__)

    def _cohort_scores(self, records: Iterable[ScoreRecord]) -> Dict[Tuple[str, int], List[float]]:
        """(country, year) -> one score per normalized brand."""
        best: Dict[Tuple[str, int, str], float] = {}

        for record in records:
            if not record.has_score():
                continue
            key = self.normalizer.normalize(record.brand)
            if not key:
                continue
            country = self.countries.canonicalize(record.country)
            if not country:
                continue
            slot = (country, record.year, key)
            if slot not in best or record.score > best[slot]:
                best[slot] = record.score

        cohorts: Dict[Tuple[str, int], List[float]] = {}
        for (country, year, _), score in best.items():
            cohorts.setdefault((country, year), []).append(score)
        return cohorts

    def compute_one(self, country: str, year: int, scores: List[float]) -> CohortStats:
        values = np.asarray(scores, dtype=float)
        mean = float(np.mean(values))
        std_dev = float(np.std(values, ddof=0))

        if std_dev < self.epsilon:
            std_dev = self.std_dev_fallback

        return CohortStats(
            country=country,
            year=year,
            mean=mean,
            std_dev=std_dev,
            count=int(values.size),
            min_count=self.min_count,
        )

    def compute_stats(self, records: Optional[Iterable[ScoreRecord]]) -> StatsTable:
        """
        Statistics for every country-year present in the records.

        Args:
            records: Full market records (all brands)

        Returns:
            country -> year -> CohortStats
        """
        stats: StatsTable = {}
        if not records:
            return stats

        cohorts = self._cohort_scores(records)
        for (country, year), scores in sorted(cohorts.items()):
            cohort = self.compute_one(country, year, scores)
            stats.setdefault(country, {})[year] = cohort

            if not cohort.is_valid:
                self.logger.debug(
                    f"[CohortStats] {country}/{year}: only {cohort.count} scored brand(s), "
                    f"cohort flagged invalid"
                )

        self.logger.debug(
            f"[CohortStats] {sum(len(y) for y in stats.values())} cohorts "
            f"over {len(stats)} countries"
        )
        return stats

    @staticmethod
    def lookup(stats: StatsTable, country: str, year: int) -> Optional[CohortStats]:
        return stats.get(country, {}).get(year)

    @staticmethod
    def market_averages(stats: StatsTable) -> Dict[str, Dict[int, float]]:
        """country -> year -> cohort mean, valid cohorts only ("Market Average" line)."""
        averages: Dict[str, Dict[int, float]] = {}
        for country, by_year in stats.items():
            valid = {year: cohort.mean for year, cohort in sorted(by_year.items()) if cohort.is_valid}
            if valid:
                averages[country] = valid
        return averages
