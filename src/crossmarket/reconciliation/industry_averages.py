"""
Industry Averages

Per (year, industry) average score computed over the FULL dataset. The
benchmark never depends on which brands or countries the user selected:
adding or removing a brand from a comparison view must not move it.

Before averaging, one score is kept per (normalized brand, year, normalized
industry), the highest, so a brand repeated in the raw feed does not skew
the mean.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from crossmarket.utils.normalize import normalize_industry_name

from .name_normalizer import NameNormalizer
from .types import BrandPerformance, ScoreRecord

logger = logging.getLogger(__name__)

IndustryAverageTable = Dict[int, Dict[str, float]]


def performance_delta(score: Optional[float], average: Optional[float]) -> Optional[float]:
    """score - average; positive means the brand outperforms its industry."""
    if score is None or average is None:
        return None
    return score - average


def performance_percentage(score: Optional[float], average: Optional[float]) -> Optional[float]:
    """Relative gap to the industry average in percent; None when the average is 0."""
    if score is None or average is None or average == 0:
        return None
    return (score - average) / average * 100


class IndustryAverageCalculator:
    """Industry benchmarks over the whole dataset."""

    performance_delta = staticmethod(performance_delta)
    performance_percentage = staticmethod(performance_percentage)

    def __init__(self, normalizer: Optional[NameNormalizer] = None):
        self.normalizer = normalizer or NameNormalizer()

    def _unique_scores(self, records: Iterable[ScoreRecord]) -> Dict[Tuple[str, int, str], float]:
        unique: Dict[Tuple[str, int, str], float] = {}
        for record in records:
            if record.score is None:
                continue
            industry = normalize_industry_name(record.industry)
            if not industry:
                continue
            brand_key = self.normalizer.normalize(record.brand)
            if not brand_key:
                continue
            slot = (brand_key, record.year, industry)
            if slot not in unique or record.score > unique[slot]:
                unique[slot] = record.score
        return unique

    def compute_industry_averages(self, all_records: Optional[Iterable[ScoreRecord]]) -> IndustryAverageTable:
        """
        year -> normalized industry -> average score.

        Args:
            all_records: The complete dataset (never a selection)
        """
        if not all_records:
            return {}

        grouped: Dict[int, Dict[str, List[float]]] = {}
        for (_, year, industry), score in self._unique_scores(all_records).items():
            grouped.setdefault(year, {}).setdefault(industry, []).append(score)

        table: IndustryAverageTable = {}
        for year in sorted(grouped):
            table[year] = {
                industry: float(np.mean(scores))
                for industry, scores in sorted(grouped[year].items())
            }

        logger.debug(
            f"[IndustryAverages] {sum(len(v) for v in table.values())} industry-year averages "
            f"over {len(table)} years"
        )
        return table

    def industry_trend(self, records: Iterable[ScoreRecord], industry: str) -> Dict[int, float]:
        """year -> average score for one industry."""
        target = normalize_industry_name(industry)
        if not target:
            return {}
        table = self.compute_industry_averages(
            [r for r in records if normalize_industry_name(r.industry) == target]
        )
        return {year: by_industry[target] for year, by_industry in table.items() if target in by_industry}

    def brand_industry(self, records: Iterable[ScoreRecord], brand: str) -> Optional[str]:
        """Normalized industry of a brand (most recent year wins), None when unknown."""
        key = self.normalizer.normalize(brand)
        if not key:
            return None

        found: Optional[Tuple[int, str]] = None
        for record in records:
            industry = normalize_industry_name(record.industry)
            if not industry or self.normalizer.normalize(record.brand) != key:
                continue
            if found is None or record.year > found[0]:
                found = (record.year, industry)
        return found[1] if found else None

    def rank_against_industry(
        self,
        records: Iterable[ScoreRecord],
        brands: Iterable[str],
        year: int,
        averages: Optional[IndustryAverageTable] = None,
    ) -> List[BrandPerformance]:
        """
        Scores of the given brands in one year, best relative performance first.

        Brands without a score that year are left out. A brand whose
        percentage cannot be computed sorts as 0.
        """
        records = list(records)
        if averages is None:
            averages = self.compute_industry_averages(records)
        year_averages = averages.get(year, {})

        best: Dict[str, ScoreRecord] = {}
        for record in records:
            if record.year != year or record.score is None:
                continue
            key = self.normalizer.normalize(record.brand)
            if key and (key not in best or record.score > best[key].score):
                best[key] = record

        ranking: List[BrandPerformance] = []
        seen = set()
        for brand in brands:
            key = self.normalizer.normalize(brand)
            if not key or key in seen or key not in best:
                continue
            seen.add(key)
            record = best[key]
            industry = normalize_industry_name(record.industry) or None
            average = year_averages.get(industry) if industry else None
            ranking.append(BrandPerformance(
                brand_key=key,
                brand=record.brand,
                year=year,
                score=record.score,
                industry=industry,
                industry_average=average,
                delta=performance_delta(record.score, average),
                percentage=performance_percentage(record.score, average),
            ))

        # sort() is stable: equal percentages keep input order
        ranking.sort(key=lambda p: p.percentage if p.percentage is not None else 0.0, reverse=True)
        return ranking


class IndustryAverageCache:
    """Industry average tables memoized by dataset version."""

    def __init__(self, calculator: Optional[IndustryAverageCalculator] = None, max_entries: int = 4):
        self.calculator = calculator or IndustryAverageCalculator()
        self.max_entries = max_entries
        self._tables: Dict[str, IndustryAverageTable] = {}

    def get(self, dataset_version: str, all_records: Iterable[ScoreRecord]) -> IndustryAverageTable:
        if dataset_version in self._tables:
            return self._tables[dataset_version]

        table = self.calculator.compute_industry_averages(list(all_records))
        if len(self._tables) >= self.max_entries:
            oldest = next(iter(self._tables))
            del self._tables[oldest]
        self._tables[dataset_version] = table
        logger.debug(f"[IndustryAverages] Cached table for dataset {dataset_version[:12]}")
        return table

    def clear(self) -> None:
        self._tables.clear()

    def __len__(self) -> int:
        return len(self._tables)
