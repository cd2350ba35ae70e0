"""
Cross-Market Brand Reconciliation

Compares brand sustainability scores across markets whose data spells the
same brand differently.

Components:
- NameNormalizer: brand label -> comparison key
- PreferredNameSelector: one display name per key
- CountryDirectory: country code <-> name lookup
- Ingestion: loose upstream rows -> validated ScoreRecords
- CohortStatisticsCalculator: per country-year mean/std/count
- ScoreStandardizer: raw score -> cohort z-score
- CrossMarketBrandResolver: comparable brands, dedup, verified fallback
- IndustryAverageCalculator: industry benchmarks over the full dataset
- ComparativeSeriesAssembler: chart series with explicit gaps
- ComparisonEngine: memoized orchestration
"""

# Types
from .types import (
    MatchMode,
    StandardizationMode,
    ChartKind,
    ScoreRecord,
    CohortStats,
    DuplicateResolution,
    CrossMarketMatch,
    BrandResolution,
    TrendSeries,
    SnapshotSeries,
    BrandPerformance,
    RejectedRow,
    IngestionResult,
)

# Config
from .config import (
    SPECIAL_CASES,
    DISPLAY_NAMES,
    CORPORATE_SUFFIXES,
    FALLBACK_BRANDS,
    COUNTRIES,
    load_name_overrides,
    load_fallback_brands,
    load_countries,
    resolve_standardization_mode,
    get_fallback_threshold,
)

# Components
from .name_normalizer import NameNormalizer, get_name_normalizer, normalize_brand_name
from .preferred_name import PreferredNameSelector, get_preferred_name_selector
from .countries import CountryDirectory, get_country_directory
from .ingestion import RecordValidationError, RecordSource, parse_record, parse_records, fetch_records
from .cohort_stats import CohortStatisticsCalculator
from .standardizer import ScoreStandardizer
from .resolver import CrossMarketBrandResolver, pick_representative
from .industry_averages import (
    IndustryAverageCalculator,
    IndustryAverageCache,
    performance_delta,
    performance_percentage,
)
from .series import ComparativeSeriesAssembler

# Pipeline
from .pipeline import (
    ComparisonEngine,
    ComparisonResult,
    get_comparison_engine,
    reset_comparison_engine,
)

__all__ = [
    # Types
    "MatchMode",
    "StandardizationMode",
    "ChartKind",
    "ScoreRecord",
    "CohortStats",
    "DuplicateResolution",
    "CrossMarketMatch",
    "BrandResolution",
    "TrendSeries",
    "SnapshotSeries",
    "BrandPerformance",
    "RejectedRow",
    "IngestionResult",
    # Config
    "SPECIAL_CASES",
    "DISPLAY_NAMES",
    "CORPORATE_SUFFIXES",
    "FALLBACK_BRANDS",
    "COUNTRIES",
    "load_name_overrides",
    "load_fallback_brands",
    "load_countries",
    "resolve_standardization_mode",
    "get_fallback_threshold",
    # Components
    "NameNormalizer",
    "get_name_normalizer",
    "normalize_brand_name",
    "PreferredNameSelector",
    "get_preferred_name_selector",
    "CountryDirectory",
    "get_country_directory",
    "RecordValidationError",
    "RecordSource",
    "parse_record",
    "parse_records",
    "fetch_records",
    "CohortStatisticsCalculator",
    "ScoreStandardizer",
    "CrossMarketBrandResolver",
    "pick_representative",
    "IndustryAverageCalculator",
    "IndustryAverageCache",
    "performance_delta",
    "performance_percentage",
    "ComparativeSeriesAssembler",
    # Pipeline
    "ComparisonEngine",
    "ComparisonResult",
    "get_comparison_engine",
    "reset_comparison_engine",
]
