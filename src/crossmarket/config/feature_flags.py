"""
Feature flags for the comparison engine.

Call sites disagree on standardization: brand-level bar/line charts always
show raw scores while the country comparison bar chart honours the
"standardized" toggle. Both policies are flags here instead of a parameter
that one call site silently ignores.

Usage:
    from crossmarket.config.feature_flags import (
        is_feature_enabled,
        get_feature_config,
        FeatureFlags
    )

    if is_feature_enabled("standardize_country_comparison"):
        ...

    thresholds = get_feature_config("fallback")
"""

from typing import Dict, Any, Optional
from pathlib import Path
import copy
import os
import yaml
import logging

logger = logging.getLogger(__name__)

DEFAULT_FLAGS: Dict[str, Any] = {
    "features": {
        "standardize_brand_charts": False,
        "standardize_country_comparison": True,
        "fallback": {
            "enabled": True,
            "threshold_by_chart": {
                "brand_trend": 5,
                "brand_bar": 5,
                "country_comparison": 15,
            },
        },
    },
    "environments": {},
}

# Cached configuration
_feature_flags_cache: Optional[Dict] = None
_feature_flags_path: Optional[Path] = None


def _default_flags_path() -> Path:
    from crossmarket.config.settings import get_settings
    return get_settings().feature_flags_file


def _load_feature_flags(config_path: Optional[Path] = None) -> Dict:
    """
    Load feature_flags.yaml merged over the built-in defaults.

    Returns:
        Dict with the whole configuration
    """
    global _feature_flags_cache, _feature_flags_path

    if config_path is None:
        config_path = _feature_flags_path or _default_flags_path()
    config_path = Path(config_path)

    if _feature_flags_cache is not None and config_path == _feature_flags_path:
        return _feature_flags_cache

    _feature_flags_path = config_path
    flags = copy.deepcopy(DEFAULT_FLAGS)

    if not config_path.exists():
        logger.warning(
            f"[FeatureFlags] Config file not found: {config_path}. "
            "Using defaults."
        )
        _feature_flags_cache = flags
        return _feature_flags_cache

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        flags = _deep_merge(flags, loaded)
        logger.info(f"[FeatureFlags] Loaded feature flags from {config_path}")

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"[FeatureFlags] Error loading config: {e}")

    _feature_flags_cache = flags
    return _feature_flags_cache


def _get_environment_overrides(flags: Dict) -> Dict:
    """
    Apply the overrides of the current environment (CROSSMARKET_ENV).
    """
    env = os.getenv("CROSSMARKET_ENV", "development")
    environments = flags.get("environments") or {}

    if env in environments:
        overrides = environments[env] or {}
        flags = _deep_merge(flags, overrides)
        logger.debug(f"[FeatureFlags] Applied overrides for env={env}")

    return flags


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Recursive merge of two dicts.

    Args:
        base: Base dict
        override: Overriding dict

    Returns:
        Merged dict
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _current_features() -> Dict[str, Any]:
    flags = _get_environment_overrides(_load_feature_flags())
    return flags.get("features") or {}


def is_feature_enabled(feature_name: str, default: bool = False) -> bool:
    """
    Check whether a feature is enabled.

    Args:
        feature_name: Flag name (e.g. "standardize_brand_charts")
        default: Value returned when the flag is unknown

    Returns:
        True if enabled
    """
    features = _current_features()

    if feature_name not in features:
        return default

    value = features[feature_name]
    if isinstance(value, bool):
        return value
    if isinstance(value, dict):
        return bool(value.get("enabled", default))
    return default


def get_feature_config(config_name: str) -> Dict[str, Any]:
    """
    Detailed configuration of a feature ({} when absent or not a mapping).
    """
    value = _current_features().get(config_name)
    if isinstance(value, dict):
        return value
    return {}


def reload_feature_flags(config_path: Optional[Path] = None) -> Dict:
    """
    Force a reload of the configuration file.
    """
    global _feature_flags_cache
    _feature_flags_cache = None
    flags = _load_feature_flags(config_path)
    logger.info("[FeatureFlags] Configuration reloaded")
    return flags


class FeatureFlags:
    """
    Object-style access to the feature flags.

    Usage:
        flags = FeatureFlags()
        if flags.standardize_country_comparison:
            ...
    """

    @property
    def standardize_brand_charts(self) -> bool:
        return is_feature_enabled("standardize_brand_charts")

    @property
    def standardize_country_comparison(self) -> bool:
        return is_feature_enabled("standardize_country_comparison", default=True)

    @property
    def fallback_augmentation(self) -> bool:
        return is_feature_enabled("fallback", default=True)

    def fallback_threshold(self, chart_kind: str, default: int) -> int:
        """Fallback threshold configured for a chart kind (e.g. "country_comparison")."""
        thresholds = get_feature_config("fallback").get("threshold_by_chart") or {}
        value = thresholds.get(chart_kind)
        return int(value) if value is not None else default
