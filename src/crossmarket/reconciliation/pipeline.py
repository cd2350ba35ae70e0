"""
Cross-Market Comparison Engine

Main orchestrator of the reconciliation workflow.

Pipeline Flow:
1. Ingestion -> validated ScoreRecords (from rows or a record source)
2. CohortStatisticsCalculator -> stats over the whole market
3. CrossMarketBrandResolver -> comparable brands + representatives
4. Standardization policy -> effective mode for the chart kind
5. ComparativeSeriesAssembler -> trend, snapshot and market average series
6. IndustryAverageCache -> industry benchmarks for the dataset version

Everything downstream of ingestion is a pure function of (records,
selection), so results are memoized by (dataset version, selection).
Duplicate tie-breaks and policy overrides go to the reconciliation audit
log.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from crossmarket.common.logging import get_logger
from crossmarket.config.feature_flags import FeatureFlags
from crossmarket.config.settings import Settings

from .cohort_stats import CohortStatisticsCalculator, StatsTable
from .config import (
    get_fallback_threshold,
    load_countries,
    load_fallback_brands,
    load_name_overrides,
    resolve_standardization_mode,
)
from .countries import CountryDirectory
from .industry_averages import IndustryAverageCache, IndustryAverageCalculator, IndustryAverageTable
from .ingestion import RecordSource, fetch_records, parse_records
from .name_normalizer import NameNormalizer
from .preferred_name import PreferredNameSelector
from .resolver import CrossMarketBrandResolver
from .series import ComparativeSeriesAssembler
from .standardizer import ScoreStandardizer
from .types import (
    BrandResolution,
    ChartKind,
    IngestionResult,
    MatchMode,
    ScoreRecord,
    SnapshotSeries,
    StandardizationMode,
    TrendSeries,
)

logger = logging.getLogger(__name__)

MAX_MEMOIZED_RESULTS = 32


class ComparisonResult:
    """Everything a comparison chart needs for one selection."""

    def __init__(
        self,
        countries: List[str],
        chart_kind: ChartKind,
        requested_standardized: bool,
        mode: StandardizationMode,
        dataset_version: str,
    ):
        self.start_time = datetime.utcnow()
        self.end_time: Optional[datetime] = None
        self.duration_ms: float = 0

        self.countries = countries
        self.chart_kind = chart_kind
        self.requested_standardized = requested_standardized
        self.mode = mode
        self.dataset_version = dataset_version

        self.resolution = BrandResolution()
        self.cohort_stats: StatsTable = {}
        self.trend_series: List[TrendSeries] = []
        self.snapshot: List[SnapshotSeries] = []
        self.market_averages: List[TrendSeries] = []
        self.industry_averages: IndustryAverageTable = {}

    @property
    def is_empty(self) -> bool:
        return self.resolution.is_empty

    @property
    def standardization_overridden(self) -> bool:
        """True when a standardization request was refused by the chart policy."""
        return self.requested_standardized and self.mode == StandardizationMode.RAW

    def finalize(self) -> None:
        self.end_time = datetime.utcnow()
        self.duration_ms = (self.end_time - self.start_time).total_seconds() * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "countries": self.countries,
            "chart_kind": self.chart_kind.value,
            "mode": self.mode.value,
            "standardization_overridden": self.standardization_overridden,
            "dataset_version": self.dataset_version,
            "brands": self.resolution.brand_keys,
            "fallback_added": self.resolution.fallback_added,
            "duplicates": len(self.resolution.duplicates),
            "trend_series": len(self.trend_series),
            "snapshot_series": len(self.snapshot),
            "duration_ms": self.duration_ms,
        }


class ComparisonEngine:
    """
    Orchestrates reconciliation, statistics and series assembly.

    Components are built from the settings (YAML override files, thresholds)
    unless injected.
    """

    def __init__(
        self,
        records: Optional[Iterable[ScoreRecord]] = None,
        settings: Optional[Settings] = None,
        normalizer: Optional[NameNormalizer] = None,
        countries: Optional[CountryDirectory] = None,
        fallback_brands: Optional[Iterable[str]] = None,
        flags: Optional[FeatureFlags] = None,
        audit_logger: Optional[logging.Logger] = None,
    ):
        if settings is None:
            from crossmarket.config.settings import get_settings
            settings = get_settings()
        self.settings = settings
        self.flags = flags or FeatureFlags()

        overrides = load_name_overrides(self.settings.name_overrides_file)
        self.normalizer = normalizer or NameNormalizer(overrides["special_cases"])
        self.selector = PreferredNameSelector(
            normalizer=self.normalizer,
            display_names=overrides["display_names"],
            corporate_suffixes=overrides["corporate_suffixes"],
        )
        self.countries = countries or CountryDirectory(load_countries(self.settings.countries_file))

        if audit_logger is None and self.settings.enable_audit_log:
            audit_logger = get_logger(self.settings.audit_log_file, self.settings.logs_dir)
        self.audit_logger = audit_logger

        self.resolver = CrossMarketBrandResolver(
            normalizer=self.normalizer,
            selector=self.selector,
            countries=self.countries,
            fallback_brands=(
                load_fallback_brands(self.settings.fallback_brands_file)
                if fallback_brands is None else fallback_brands
            ),
            fallback_threshold=self.settings.fallback_threshold,
            audit_logger=self.audit_logger,
        )
        self.stats_calculator = CohortStatisticsCalculator(
            normalizer=self.normalizer,
            countries=self.countries,
            min_count=self.settings.min_cohort_size,
            epsilon=self.settings.std_dev_epsilon,
            std_dev_fallback=self.settings.std_dev_fallback,
        )
        self.assembler = ComparativeSeriesAssembler(ScoreStandardizer(self.settings.min_cohort_size))
        self.industry_cache = IndustryAverageCache(IndustryAverageCalculator(self.normalizer))

        self._records: List[ScoreRecord] = []
        self._version: Optional[str] = None
        self._stats_cache: Dict[str, StatsTable] = {}
        self._results: Dict[Tuple, ComparisonResult] = {}

        if records is not None:
            self.set_records(records)

    # ------------------------------------------------------------------
    # Dataset
    # ------------------------------------------------------------------

    @property
    def records(self) -> List[ScoreRecord]:
        return list(self._records)

    def set_records(self, records: Iterable[ScoreRecord]) -> None:
        self._records = list(records)
        self._version = None
        logger.info(f"[ComparisonEngine] Dataset loaded: {len(self._records)} records")

    def load_rows(self, rows: Optional[Iterable[Mapping[str, Any]]], strict: bool = False) -> IngestionResult:
        """Parse upstream rows and make them the current dataset."""
        result = parse_records(
            rows,
            self.countries,
            strict=strict,
            score_min=self.settings.score_min,
            score_max=self.settings.score_max,
        )
        self._log_rejected(result)
        self.set_records(result.records)
        return result

    def load_from_source(self, source: RecordSource, **filters: Any) -> IngestionResult:
        """Fetch from the record source; a failing source leaves an empty dataset."""
        result = fetch_records(
            source,
            self.countries,
            score_min=self.settings.score_min,
            score_max=self.settings.score_max,
            **filters,
        )
        self._log_rejected(result)
        self.set_records(result.records)
        return result

    def _log_rejected(self, result: IngestionResult) -> None:
        if self.audit_logger is None:
            return
        for rejected in result.rejected:
            self.audit_logger.info(f"[Ingestion] Rejected row {rejected.row}: {rejected.reason}")

    @property
    def dataset_version(self) -> str:
        """sha256 fingerprint of the current records."""
        if self._version is None:
            digest = hashlib.sha256()
            for record in self._records:
                digest.update(record.model_dump_json().encode("utf-8"))
                digest.update(b"\n")
            self._version = digest.hexdigest()
        return self._version

    # ------------------------------------------------------------------
    # Dataset-wide views
    # ------------------------------------------------------------------

    def brand_catalog(self, countries: Optional[Iterable[str]] = None) -> Dict[str, str]:
        """normalized key -> display name, optionally limited to some countries."""
        records = self._records
        if countries is not None:
            codes = set(self.countries.canonicalize_all(countries))
            records = [r for r in records if self.countries.canonicalize(r.country) in codes]
        grouped = self.normalizer.group_variants(r.brand for r in records)
        return self.selector.select_all(grouped)

    def cohort_stats(self) -> StatsTable:
        version = self.dataset_version
        if version not in self._stats_cache:
            self._stats_cache.clear()
            self._stats_cache[version] = self.stats_calculator.compute_stats(self._records)
        return self._stats_cache[version]

    def industry_averages(self) -> IndustryAverageTable:
        return self.industry_cache.get(self.dataset_version, self._records)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def compare(
        self,
        countries: Optional[Iterable[Optional[str]]],
        chart_kind: ChartKind = ChartKind.COUNTRY_COMPARISON,
        standardized: bool = False,
        mode: MatchMode = MatchMode.ALL_COUNTRIES,
        fallback_threshold: Optional[int] = None,
        years: Optional[Iterable[int]] = None,
        brands: Optional[Iterable[str]] = None,
    ) -> ComparisonResult:
        """
        Comparison data for one selection.

        Args:
            countries: Selected countries (codes or names)
            chart_kind: Call site; decides the standardization policy and
                the fallback threshold
            standardized: User toggle, honoured only when the policy allows
            mode: Strict intersection or "at least two countries"
            fallback_threshold: Explicit threshold (overrides the call site one)
            years: Years to emit (default: every year of the matches)
            brands: Restrict the series to these brands (any spelling)

        Returns:
            ComparisonResult (empty when no country is selected)
        """
        codes = self.countries.canonicalize_all(countries)
        effective_mode = resolve_standardization_mode(chart_kind, standardized, self.flags)
        if effective_mode != StandardizationMode.from_flag(standardized) and self.audit_logger is not None:
            self.audit_logger.info(
                f"[ComparisonEngine] Standardization refused for {chart_kind.value}, raw scores emitted"
            )

        threshold = fallback_threshold
        if threshold is None:
            threshold = get_fallback_threshold(chart_kind, self.settings.fallback_threshold, self.flags)
        fallback_enabled = self.flags.fallback_augmentation

        year_key = tuple(sorted(set(years))) if years is not None else None
        brand_keys = None
        if brands is not None:
            brand_keys = tuple(k for k in dict.fromkeys(self.normalizer.normalize(b) for b in brands) if k)

        memo_key = (
            self.dataset_version, tuple(codes), chart_kind, effective_mode,
            mode, threshold, fallback_enabled, year_key, brand_keys,
        )
        if memo_key in self._results:
            logger.debug(f"[ComparisonEngine] Memoized result for {', '.join(codes) or '-'}")
            return self._results[memo_key]

        result = ComparisonResult(
            countries=codes,
            chart_kind=chart_kind,
            requested_standardized=standardized,
            mode=effective_mode,
            dataset_version=self.dataset_version,
        )

        if codes:
            stats = self.cohort_stats()
            resolution = self.resolver.resolve(
                codes, self._records, mode=mode, fallback_threshold=threshold,
                fallback_enabled=fallback_enabled,
            )
            matches = resolution.ordered_matches()
            if brand_keys is not None:
                wanted = set(brand_keys)
                matches = [m for m in matches if m.brand_key in wanted]

            result.resolution = resolution
            result.cohort_stats = {code: stats.get(code, {}) for code in codes}
            result.trend_series = self.assembler.assemble(matches, stats, effective_mode, year_key)
            # Snapshot year stays inside the requested range (latest one)
            if year_key is None or year_key:
                result.snapshot = self.assembler.assemble_snapshot(
                    matches, stats, effective_mode, year=year_key[-1] if year_key else None,
                )
            result.market_averages = self.assembler.market_average_series(stats, codes, year_key)
            result.industry_averages = self.industry_averages()

        result.finalize()
        logger.info(
            f"[ComparisonEngine] {chart_kind.value} over {', '.join(codes) or '-'}: "
            f"{len(result.resolution.brand_keys)} brand(s), mode={effective_mode.value}, "
            f"{result.duration_ms:.1f}ms"
        )

        if len(self._results) >= MAX_MEMOIZED_RESULTS:
            del self._results[next(iter(self._results))]
        self._results[memo_key] = result
        return result


# Singleton
_engine: Optional[ComparisonEngine] = None


def get_comparison_engine() -> ComparisonEngine:
    """Engine built from the current settings, with an empty dataset."""
    global _engine
    if _engine is None:
        _engine = ComparisonEngine()
    return _engine


def reset_comparison_engine() -> None:
    global _engine
    _engine = None
