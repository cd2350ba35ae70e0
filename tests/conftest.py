from __future__ import annotations

import importlib
from dataclasses import dataclass
from pathlib import Path
import sys
from types import ModuleType
from typing import Callable, List, Optional

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from crossmarket.reconciliation.types import ScoreRecord  # noqa: E402


@dataclass
class RuntimeEnv:
    """Container providing access to reloaded config modules for tests."""

    data_dir: Path
    config_dir: Path
    paths: ModuleType
    settings_module: ModuleType


@pytest.fixture
def runtime_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RuntimeEnv:
    """Reload configuration modules against isolated data and config directories."""

    data_dir = tmp_path / "data"
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("CROSSMARKET_DATA_DIR", str(data_dir))
    monkeypatch.setenv("CROSSMARKET_LOGS_DIR", str(data_dir / "logs"))
    monkeypatch.setenv("CROSSMARKET_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("NAME_OVERRIDES_FILE", str(config_dir / "brand_overrides.yaml"))
    monkeypatch.setenv("FALLBACK_BRANDS_FILE", str(config_dir / "fallback_brands.yaml"))
    monkeypatch.setenv("COUNTRIES_FILE", str(config_dir / "countries.yaml"))
    monkeypatch.setenv("FEATURE_FLAGS_FILE", str(config_dir / "feature_flags.yaml"))

    paths_module = importlib.import_module("crossmarket.config.paths")
    paths_module = importlib.reload(paths_module)

    settings_module = importlib.import_module("crossmarket.config.settings")
    settings_module = importlib.reload(settings_module)
    settings_module.get_settings.cache_clear()

    from crossmarket.config import feature_flags
    feature_flags.reload_feature_flags(config_dir / "feature_flags.yaml")

    yield RuntimeEnv(
        data_dir=data_dir,
        config_dir=config_dir,
        paths=paths_module,
        settings_module=settings_module,
    )

    settings_module.get_settings.cache_clear()
    feature_flags._feature_flags_cache = None
    feature_flags._feature_flags_path = None


@pytest.fixture(autouse=True)
def default_feature_flags(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch):
    """Built-in feature flag defaults for every test (no YAML file, no environment)."""
    from crossmarket.config import feature_flags

    monkeypatch.delenv("CROSSMARKET_ENV", raising=False)
    missing = tmp_path_factory.mktemp("flags") / "feature_flags.yaml"
    feature_flags.reload_feature_flags(missing)
    yield
    feature_flags._feature_flags_cache = None
    feature_flags._feature_flags_path = None


def make_record(
    brand: str,
    country: str,
    year: int = 2024,
    score: Optional[float] = 50.0,
    industry: Optional[str] = None,
    is_projected: bool = False,
    row_id: Optional[int] = None,
) -> ScoreRecord:
    return ScoreRecord(
        brand=brand,
        country=country,
        year=year,
        score=score,
        industry=industry,
        is_projected=is_projected,
        row_id=row_id,
    )


@pytest.fixture
def record_factory() -> Callable[..., ScoreRecord]:
    return make_record


@pytest.fixture
def nordic_records() -> List[ScoreRecord]:
    """Small two-country dataset: SE and NO over 2023-2024."""
    return [
        make_record("IKEA", "SE", 2023, 70.0, "Retail"),
        make_record("IKEA", "SE", 2024, 72.0, "Retail"),
        make_record("Ikea", "NO", 2023, 65.0, "Retail"),
        make_record("IKEA", "NO", 2024, 68.0, "Retail"),
        make_record("H&M", "SE", 2023, 60.0, "Fashion"),
        make_record("H & M", "SE", 2024, 62.0, "Fashion"),
        make_record("h&m", "NO", 2024, 58.0, "Fashion"),
        make_record("Volvo", "SE", 2023, 66.0, "Automotive"),
        make_record("Volvo", "SE", 2024, 67.0, "Automotive"),
        make_record("Rema 1000", "NO", 2023, 55.0, "Grocery"),
        make_record("Rema 1000", "NO", 2024, 57.0, "Grocery"),
        make_record("ICA", "SE", 2024, 61.0, "Grocery"),
    ]
