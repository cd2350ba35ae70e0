from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from .paths import (
    CONFIG_DIR,
    COUNTRIES_FILE,
    DATA_DIR,
    FALLBACK_BRANDS_FILE,
    FEATURE_FLAGS_FILE,
    LOGS_DIR,
    NAME_OVERRIDES_FILE,
    PROJECT_ROOT,
    ensure_directories,
)


class Settings(BaseSettings):
    """Central configuration of the cross-market comparison engine."""

    debug_mode: bool = Field(default=False, alias="DEBUG_MODE")

    config_dir: Path = Field(default=CONFIG_DIR, alias="CROSSMARKET_CONFIG_DIR")
    data_dir: Path = Field(default=DATA_DIR, alias="CROSSMARKET_DATA_DIR")
    logs_dir: Path = Field(default=LOGS_DIR, alias="CROSSMARKET_LOGS_DIR")

    # === YAML overrides ===
    name_overrides_file: Path = Field(default=NAME_OVERRIDES_FILE, alias="NAME_OVERRIDES_FILE")
    fallback_brands_file: Path = Field(default=FALLBACK_BRANDS_FILE, alias="FALLBACK_BRANDS_FILE")
    countries_file: Path = Field(default=COUNTRIES_FILE, alias="COUNTRIES_FILE")
    feature_flags_file: Path = Field(default=FEATURE_FLAGS_FILE, alias="FEATURE_FLAGS_FILE")

    # === Cohort statistics ===
    min_cohort_size: int = Field(
        default=2,
        alias="MIN_COHORT_SIZE",
        description="Minimum number of scored brands for a country-year to be usable for standardization.",
    )
    std_dev_epsilon: float = Field(default=0.001, alias="STD_DEV_EPSILON")
    std_dev_fallback: float = Field(default=1.0, alias="STD_DEV_FALLBACK")

    # === Score bounds (SBI index) ===
    score_min: float = Field(default=0.0, alias="SCORE_MIN")
    score_max: float = Field(default=100.0, alias="SCORE_MAX")

    # === Cross-market resolution ===
    fallback_threshold: int = Field(
        default=5,
        alias="FALLBACK_THRESHOLD",
        description="Below this number of naturally matched brands, the curated fallback list is consulted.",
    )

    enable_audit_log: bool = Field(default=True, alias="ENABLE_AUDIT_LOG")
    audit_log_file: str = Field(default="reconciliation_audit.log", alias="AUDIT_LOG_FILE")

    @model_validator(mode="after")
    def check_score_bounds(self) -> "Settings":
        if self.score_min >= self.score_max:
            raise ValueError(
                f"score_min ({self.score_min}) must be lower than score_max ({self.score_max})"
            )
        if self.min_cohort_size < 1:
            raise ValueError("min_cohort_size must be at least 1")
        return self

    class Config:
        env_file = PROJECT_ROOT / ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"

    def configure_runtime(self) -> None:
        """Create the runtime directories."""
        ensure_directories([self.data_dir, self.logs_dir])


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()  # type: ignore[arg-type]
    settings.configure_runtime()
    return settings
