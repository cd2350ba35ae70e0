"""
Comparative Series Assembly

Turns resolved matches and cohort statistics into chart-ready series:
- TrendSeries per (brand, country): one point per year
- SnapshotSeries per (brand, year): one value per country

A missing record, a null score or a failed standardization is emitted as
None. Points are never interpolated and never replaced by 0, so a renderer
shows a broken line instead of a fake trend.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .cohort_stats import CohortStatisticsCalculator, StatsTable
from .standardizer import ScoreStandardizer
from .types import (
    CrossMarketMatch,
    ScoreRecord,
    SnapshotSeries,
    StandardizationMode,
    TrendSeries,
)

logger = logging.getLogger(__name__)

MARKET_AVERAGE_KEY = "marketaverage"
MARKET_AVERAGE_LABEL = "Market Average"


def _raw_value(record: Optional[ScoreRecord]) -> Optional[float]:
    """Score to plot, None for absent records and null/zero scores."""
    if record is None or not record.has_score():
        return None
    return record.score


class ComparativeSeriesAssembler:
    """Builds trend and snapshot series with explicit gaps."""

    def __init__(self, standardizer: Optional[ScoreStandardizer] = None):
        self.standardizer = standardizer or ScoreStandardizer()

    @staticmethod
    def _years(matches: Iterable[CrossMarketMatch]) -> List[int]:
        found = set()
        for match in matches:
            found.update(match.years())
        return sorted(found)

    def assemble(
        self,
        matches: Iterable[CrossMarketMatch],
        cohort_stats: StatsTable,
        mode: StandardizationMode,
        years: Optional[Iterable[int]] = None,
    ) -> List[TrendSeries]:
        """
        One TrendSeries per (brand, requested country).

        Args:
            matches: Resolved cross-market matches
            cohort_stats: country -> year -> CohortStats (whole market)
            mode: RAW or STANDARDIZED
            years: Years to emit; defaults to every year present in the matches
        """
        matches = list(matches)
        years = sorted(set(years)) if years is not None else self._years(matches)

        result: List[TrendSeries] = []
        for match in matches:
            for country in match.records:
                by_year = match.yearly.get(country, {})
                points: Dict[int, Optional[float]] = {}
                raw_points: Dict[int, Optional[float]] = {}
                projected: List[int] = []

                for year in years:
                    record = by_year.get(year)
                    raw = _raw_value(record)
                    raw_points[year] = raw
                    stats = CohortStatisticsCalculator.lookup(cohort_stats, country, year)
                    points[year] = self.standardizer.apply(raw, stats, mode)
                    if record is not None and record.is_projected:
                        projected.append(year)

                series = TrendSeries(
                    brand_key=match.brand_key,
                    display_name=match.display_name,
                    country=country,
                    mode=mode,
                    points=points,
                    raw_points=raw_points,
                    projected_years=projected,
                )
                result.append(series)

                gaps = series.gaps()
                if gaps and mode == StandardizationMode.STANDARDIZED:
                    logger.debug(
                        f"[Series] {series.key}: {len(gaps)} gap(s) ({', '.join(map(str, gaps))})"
                    )

        return result

    def assemble_snapshot(
        self,
        matches: Iterable[CrossMarketMatch],
        cohort_stats: StatsTable,
        mode: StandardizationMode,
        year: Optional[int] = None,
    ) -> List[SnapshotSeries]:
        """One SnapshotSeries per brand for a single year (latest year by default)."""
        matches = list(matches)
        if year is None:
            years = self._years(matches)
            if not years:
                return []
            year = years[-1]

        result: List[SnapshotSeries] = []
        for match in matches:
            values: Dict[str, Optional[float]] = {}
            raw_values: Dict[str, Optional[float]] = {}
            for country in match.records:
                raw = _raw_value(match.yearly.get(country, {}).get(year))
                raw_values[country] = raw
                stats = CohortStatisticsCalculator.lookup(cohort_stats, country, year)
                values[country] = self.standardizer.apply(raw, stats, mode)

            result.append(SnapshotSeries(
                brand_key=match.brand_key,
                display_name=match.display_name,
                year=year,
                mode=mode,
                values=values,
                raw_values=raw_values,
            ))
        return result

    @staticmethod
    def market_average_series(
        cohort_stats: StatsTable,
        countries: Iterable[str],
        years: Optional[Iterable[int]] = None,
    ) -> List[TrendSeries]:
        """
        "Market Average" line per country: cohort mean of each year.

        Invalid cohorts are gaps. Always raw scores: a standardized market
        average is 0 by construction.
        """
        averages = CohortStatisticsCalculator.market_averages(cohort_stats)
        countries = list(countries)
        if years is None:
            found = set()
            for country in countries:
                found.update(cohort_stats.get(country, {}).keys())
            years = sorted(found)
        else:
            years = sorted(set(years))

        result: List[TrendSeries] = []
        for country in countries:
            by_year = averages.get(country, {})
            points = {year: by_year.get(year) for year in years}
            result.append(TrendSeries(
                brand_key=MARKET_AVERAGE_KEY,
                display_name=MARKET_AVERAGE_LABEL,
                country=country,
                mode=StandardizationMode.RAW,
                points=points,
                raw_points=dict(points),
            ))
        return result

    @staticmethod
    def growth_rates(series: TrendSeries) -> Dict[int, Optional[float]]:
        """
        Year-over-year change of the raw scores, in percent.

        The first year has no entry. A gap on either side, or a previous
        value of 0, gives None.
        """
        years = sorted(series.raw_points)
        rates: Dict[int, Optional[float]] = {}
        for previous, current in zip(years, years[1:]):
            before = series.raw_points[previous]
            after = series.raw_points[current]
            if before is None or after is None or before == 0:
                rates[current] = None
            else:
                rates[current] = (after - before) / before * 100
        return rates
