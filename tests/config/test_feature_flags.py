from __future__ import annotations

from pathlib import Path

import pytest

from crossmarket.config import feature_flags
from crossmarket.config.feature_flags import (
    FeatureFlags,
    get_feature_config,
    is_feature_enabled,
    reload_feature_flags,
)


def write_flags(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


class TestDefaults:
    """No YAML file: built-in defaults."""

    def test_brand_charts_not_standardized(self):
        assert is_feature_enabled("standardize_brand_charts") is False
        assert FeatureFlags().standardize_brand_charts is False

    def test_country_comparison_standardized(self):
        assert FeatureFlags().standardize_country_comparison is True

    def test_fallback_enabled_with_thresholds(self):
        flags = FeatureFlags()

        assert flags.fallback_augmentation is True
        assert flags.fallback_threshold("brand_trend", 99) == 5
        assert flags.fallback_threshold("country_comparison", 99) == 15
        assert flags.fallback_threshold("unknown_chart", 7) == 7

    def test_unknown_feature_uses_default(self):
        assert is_feature_enabled("does_not_exist") is False
        assert is_feature_enabled("does_not_exist", default=True) is True
        assert get_feature_config("does_not_exist") == {}


class TestYamlOverrides:

    def test_yaml_merged_over_defaults(self, tmp_path):
        path = write_flags(tmp_path / "flags.yaml", """
features:
  standardize_brand_charts: true
  fallback:
    threshold_by_chart:
      country_comparison: 8
""")
        reload_feature_flags(path)

        flags = FeatureFlags()
        assert flags.standardize_brand_charts is True
        assert flags.fallback_threshold("country_comparison", 99) == 8
        # Untouched defaults survive the merge
        assert flags.fallback_threshold("brand_bar", 99) == 5
        assert flags.fallback_augmentation is True

    def test_environment_overrides(self, tmp_path, monkeypatch):
        path = write_flags(tmp_path / "flags.yaml", """
features:
  fallback:
    enabled: true
environments:
  production:
    features:
      fallback:
        enabled: false
""")
        reload_feature_flags(path)

        assert FeatureFlags().fallback_augmentation is True

        monkeypatch.setenv("CROSSMARKET_ENV", "production")
        assert FeatureFlags().fallback_augmentation is False

    def test_invalid_yaml_falls_back_to_defaults(self, tmp_path, caplog):
        path = write_flags(tmp_path / "flags.yaml", "features: [unclosed")

        with caplog.at_level("ERROR", logger="crossmarket.config.feature_flags"):
            flags = reload_feature_flags(path)

        assert flags["features"]["standardize_country_comparison"] is True
        assert any("Error loading config" in r.message for r in caplog.records)

    def test_missing_file_warns(self, tmp_path, caplog):
        with caplog.at_level("WARNING", logger="crossmarket.config.feature_flags"):
            reload_feature_flags(tmp_path / "absent.yaml")

        assert any("not found" in r.message for r in caplog.records)

    def test_configuration_is_cached(self, tmp_path):
        path = write_flags(tmp_path / "flags.yaml", "features:\n  standardize_brand_charts: true\n")
        reload_feature_flags(path)

        first = feature_flags._load_feature_flags()
        assert feature_flags._load_feature_flags() is first


@pytest.mark.parametrize("value,expected", [(True, True), (False, False), ({"enabled": False}, False)])
def test_is_feature_enabled_value_forms(tmp_path, value, expected):
    import yaml

    path = tmp_path / "flags.yaml"
    path.write_text(yaml.safe_dump({"features": {"some_feature": value}}), encoding="utf-8")
    reload_feature_flags(path)

    assert is_feature_enabled("some_feature", default=not expected) is expected
