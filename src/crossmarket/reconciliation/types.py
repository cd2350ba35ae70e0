"""
Cross-Market Reconciliation Types

Core data structures shared by the normalization, statistics, resolution
and series components. All of them are values: a computation never
mutates its inputs.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Dict, List, Optional, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchMode(str, Enum):
    """How brands are matched across the selected countries."""
    ALL_COUNTRIES = "all"          # Present in every selected country
    AT_LEAST_TWO = "partial"       # Present in at least 2 selected countries


class StandardizationMode(str, Enum):
    """Score representation emitted in chart series."""
    RAW = "raw"
    STANDARDIZED = "standardized"  # z-score against the country-year cohort

    @classmethod
    def from_flag(cls, standardized: bool) -> "StandardizationMode":
        return cls.STANDARDIZED if standardized else cls.RAW


class ChartKind(str, Enum):
    """Call sites consuming the engine; each has its own standardization policy."""
    BRAND_TREND = "brand_trend"
    BRAND_BAR = "brand_bar"
    COUNTRY_COMPARISON = "country_comparison"


class ScoreRecord(BaseModel):
    """One brand's score in one country in one year."""
    model_config = ConfigDict(frozen=True)

    brand: str
    country: str
    industry: Optional[str] = None
    year: int
    score: Optional[float] = None
    is_projected: bool = False
    row_id: Optional[int] = None

    @field_validator("score")
    @classmethod
    def _finite_score(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not math.isfinite(value):
            return None
        return value

    def has_score(self) -> bool:
        """True when the score can contribute to statistics (non-null, non-zero)."""
        return self.score is not None and self.score != 0


class CohortStats(BaseModel):
    """Descriptive statistics of one country-year cohort."""
    model_config = ConfigDict(frozen=True)

    country: str
    year: int
    mean: float
    std_dev: float = Field(description="Population standard deviation, floored for near-zero spread")
    count: int
    min_count: int = 2

    @property
    def is_valid(self) -> bool:
        """A cohort is usable for standardization only with enough brands."""
        return self.count >= self.min_count and self.std_dev > 0


class DuplicateResolution(BaseModel):
    """Audit trail for a (brand, country, year) that had several raw records."""
    model_config = ConfigDict(frozen=True)

    brand_key: str
    country: str
    year: int
    kept_score: Optional[float]
    kept_brand: str
    discarded_scores: List[Optional[float]] = Field(default_factory=list)


class CrossMarketMatch(BaseModel):
    """A normalized brand and its representative record in each requested country."""
    model_config = ConfigDict(frozen=True)

    brand_key: str
    display_name: str
    records: Dict[str, Optional[ScoreRecord]] = Field(
        description="country -> representative record, None when absent"
    )
    yearly: Dict[str, Dict[int, ScoreRecord]] = Field(
        default_factory=dict,
        description="country -> year -> best record for that year"
    )
    is_fallback: bool = False

    @property
    def present_countries(self) -> List[str]:
        return [country for country, record in self.records.items() if record is not None]

    @property
    def country_count(self) -> int:
        return len(self.present_countries)

    @property
    def is_complete(self) -> bool:
        """Present in every requested country."""
        return all(record is not None for record in self.records.values())

    def years(self) -> List[int]:
        found = set()
        for by_year in self.yearly.values():
            found.update(by_year.keys())
        return sorted(found)


class BrandResolution(BaseModel):
    """Result of a cross-market resolution for one country selection."""
    model_config = ConfigDict(frozen=True)

    countries: List[str] = Field(default_factory=list)
    mode: MatchMode = MatchMode.ALL_COUNTRIES
    brand_keys: List[str] = Field(default_factory=list)
    matches: Dict[str, CrossMarketMatch] = Field(default_factory=dict)
    fallback_added: List[str] = Field(default_factory=list)
    duplicates: List[DuplicateResolution] = Field(default_factory=list)

    def representative(
        self,
        brand_key: str,
        country: str,
        year: Optional[int] = None,
    ) -> Optional[ScoreRecord]:
        """Winning record for (brand, country), or for (brand, country, year)."""
        match = self.matches.get(brand_key)
        if match is None:
            return None
        if year is None:
            return match.records.get(country)
        return match.yearly.get(country, {}).get(year)

    def ordered_matches(self) -> List[CrossMarketMatch]:
        return [self.matches[key] for key in self.brand_keys]

    def display_names(self) -> Dict[str, str]:
        return {key: self.matches[key].display_name for key in self.brand_keys}

    @property
    def is_empty(self) -> bool:
        return not self.brand_keys


class TrendSeries(BaseModel):
    """Series keyed by (brand, country): one value per year, None for gaps."""
    brand_key: str
    display_name: str
    country: str
    mode: StandardizationMode
    points: Dict[int, Optional[float]] = Field(default_factory=dict)
    raw_points: Dict[int, Optional[float]] = Field(default_factory=dict)
    projected_years: List[int] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.brand_key}|{self.country}"

    def gaps(self) -> List[int]:
        return [year for year, value in self.points.items() if value is None]


class SnapshotSeries(BaseModel):
    """Series keyed by (brand, year): one value per country, None for gaps."""
    brand_key: str
    display_name: str
    year: int
    mode: StandardizationMode
    values: Dict[str, Optional[float]] = Field(default_factory=dict)
    raw_values: Dict[str, Optional[float]] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.brand_key}|{self.year}"


class RejectedRow(BaseModel):
    """Upstream row refused at the ingestion boundary."""
    row: Dict[str, Any]
    reason: str


class IngestionResult(BaseModel):
    """Records accepted from an upstream batch, plus the refused rows."""
    records: List[ScoreRecord] = Field(default_factory=list)
    rejected: List[RejectedRow] = Field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.records)


class BrandPerformance(BaseModel):
    """A brand's score in one year against its industry benchmark."""
    model_config = ConfigDict(frozen=True)

    brand_key: str
    brand: str
    year: int
    score: Optional[float]
    industry: Optional[str] = None
    industry_average: Optional[float] = None
    delta: Optional[float] = None
    percentage: Optional[float] = None
