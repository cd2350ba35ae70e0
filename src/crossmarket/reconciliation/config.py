"""
Cross-Market Reconciliation Configuration

Built-in tables (special-case brand aliases, canonical display names,
corporate suffixes, curated fallback brands, country lookup) and the YAML
loaders that merge user files from the config directory over them.

A missing YAML file is not an error: the built-in tables are used and a
warning is logged.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from crossmarket.config.feature_flags import FeatureFlags

from .types import ChartKind, StandardizationMode

logger = logging.getLogger(__name__)


# =============================================================================
# SPECIAL-CASE BRAND ALIASES (canonical key -> aliases)
# =============================================================================
# Only names the generic rules cannot reconcile belong here: punctuation
# ambiguity (apostrophes, hyphens, ampersands) and long legal names. A
# canonical key is never longer than any of its aliases.

SPECIAL_CASES: Dict[str, List[str]] = {
    "mcdonalds": ["McDonald's", "Mc Donald's", "McDonalds"],
    "hm": ["H&M", "H & M", "H and M", "Hennes & Mauritz", "Hennes and Mauritz"],
    "cocacola": ["Coca-Cola", "Coca Cola", "Coca-Cola Company"],
    "cocacolazero": ["Coca-Cola Zero", "Coca-Cola Zero Sugar", "Coca Cola Zero Sugar"],
    "pepsimax": ["Pepsi-Max", "Pepsi Max"],
    "klm": ["KLM Royal Dutch Airlines"],
    "sas": ["Scandinavian Airlines", "Scandinavian Airlines System"],
    "norwegian": ["Norwegian Air Shuttle", "Norwegian Air"],
    "levis": ["Levi's", "Levi Strauss", "Levi Strauss & Co"],
    "pull&bear": ["Pull and Bear"],
    "lego": ["LEGO Group", "The LEGO Group"],
    "ikea": ["IKEA Group"],
    "kfc": ["Kentucky Fried Chicken"],
    "bmw": ["Bayerische Motoren Werke"],
    "7eleven": ["7-Eleven", "Seven-Eleven"],
    "m&s": ["Marks & Spencer", "Marks and Spencer"],
    "dnb": ["Den Norske Bank"],
    "seb": ["Skandinaviska Enskilda Banken"],
    "nordea": ["Nordea Bank"],
    "telia": ["Telia Company"],
    "telenor": ["Telenor Group"],
}


# =============================================================================
# CANONICAL DISPLAY NAMES (normalized key -> label)
# =============================================================================

DISPLAY_NAMES: Dict[str, str] = {
    "ikea": "IKEA",
    "mcdonalds": "McDonald's",
    "hm": "H&M",
    "cocacola": "Coca-Cola",
    "cocacolazero": "Coca-Cola Zero",
    "pepsimax": "Pepsi Max",
    "klm": "KLM",
    "sas": "SAS",
    "lego": "LEGO",
    "bmw": "BMW",
    "kfc": "KFC",
    "levis": "Levi's",
    "pull&bear": "Pull & Bear",
    "7eleven": "7-Eleven",
    "m&s": "Marks & Spencer",
    "dnb": "DNB",
    "seb": "SEB",
    "ica": "ICA",
    "tui": "TUI",
}


CORPORATE_SUFFIXES: List[str] = [
    " AB", " Inc", " Ltd", " Corp", " Corporation", " AS", " A/S",
    " ASA", " Oy", " GmbH", " LLC", " Group",
]


# =============================================================================
# CURATED FALLBACK BRANDS
# =============================================================================
# Globally recognizable brands offered when too few brands match naturally.
# Each one is still verified against the data of every selected country.

FALLBACK_BRANDS: List[str] = [
    "McDonald's", "Coca-Cola", "Pepsi", "IKEA", "H&M",
    "Spotify", "Volvo", "Nokia", "Adidas", "Nike",
    "Apple", "Samsung", "Netflix", "Google", "Microsoft",
    "BMW", "Audi", "Volkswagen", "Toyota", "SAS",
    "Finnair", "Norwegian", "Telia", "Telenor", "Nordea",
    "Zara", "Mango", "Bershka", "Pull & Bear", "Lidl",
    "Burger King", "Subway", "Starbucks", "Amazon", "LEGO",
]


# =============================================================================
# COUNTRIES (code -> full name + aliases)
# =============================================================================

COUNTRIES: Dict[str, Dict[str, Any]] = {
    "SE": {"name": "Sweden", "aliases": ["Sverige"]},
    "NO": {"name": "Norway", "aliases": ["Norge"]},
    "DK": {"name": "Denmark", "aliases": ["Danmark"]},
    "FI": {"name": "Finland", "aliases": ["Suomi"]},
    "NL": {"name": "Netherlands", "aliases": ["The Netherlands", "Holland"]},
    "DE": {"name": "Germany", "aliases": ["Deutschland"]},
    "FR": {"name": "France", "aliases": []},
    "UK": {"name": "United Kingdom", "aliases": ["GB", "Great Britain"]},
    "ES": {"name": "Spain", "aliases": ["España"]},
    "IT": {"name": "Italy", "aliases": ["Italia"]},
}


# =============================================================================
# STANDARDIZATION POLICY PER CALL SITE
# =============================================================================

STANDARDIZATION_FLAGS: Dict[ChartKind, str] = {
    ChartKind.BRAND_TREND: "standardize_brand_charts",
    ChartKind.BRAND_BAR: "standardize_brand_charts",
    ChartKind.COUNTRY_COMPARISON: "standardize_country_comparison",
}


def _read_yaml(path: Optional[Path]) -> Dict[str, Any]:
    """Read a YAML mapping; {} (and a log line) when missing or unreadable."""
    if path is None:
        return {}

    path = Path(path)
    if not path.exists():
        logger.warning(f"[ReconciliationConfig] Config file not found: {path}. Using defaults.")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"[ReconciliationConfig] Error loading {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"[ReconciliationConfig] {path} must contain a mapping, got {type(data).__name__}")
        return {}

    return data


def load_name_overrides(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Special cases, display names and corporate suffixes, YAML over defaults.

    Expected YAML layout:

        special_cases:
          hm: ["H&M", "Hennes & Mauritz"]
        display_names:
          ikea: IKEA
        corporate_suffixes: [" AB", " Inc"]

    Returns:
        Dict with keys special_cases, display_names, corporate_suffixes
    """
    data = _read_yaml(path)

    special_cases = copy.deepcopy(SPECIAL_CASES)
    for canonical, aliases in (data.get("special_cases") or {}).items():
        merged = special_cases.setdefault(str(canonical), [])
        for alias in aliases or []:
            if alias not in merged:
                merged.append(str(alias))

    display_names = dict(DISPLAY_NAMES)
    display_names.update({str(k): str(v) for k, v in (data.get("display_names") or {}).items()})

    suffixes = data.get("corporate_suffixes")
    corporate_suffixes = [str(s) for s in suffixes] if suffixes else list(CORPORATE_SUFFIXES)

    return {
        "special_cases": special_cases,
        "display_names": display_names,
        "corporate_suffixes": corporate_suffixes,
    }


def load_fallback_brands(path: Optional[Path] = None) -> List[str]:
    """Curated fallback list; the YAML list replaces the built-in one when present."""
    data = _read_yaml(path)
    brands = data.get("fallback_brands")
    if brands:
        return [str(b) for b in brands]
    return list(FALLBACK_BRANDS)


def load_countries(path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """Country table, YAML entries added to (or replacing) the built-in ones."""
    data = _read_yaml(path)
    countries = copy.deepcopy(COUNTRIES)
    for code, entry in (data.get("countries") or {}).items():
        entry = entry or {}
        countries[str(code).upper()] = {
            "name": str(entry.get("name", code)),
            "aliases": [str(a) for a in entry.get("aliases", [])],
        }
    return countries


def resolve_standardization_mode(
    chart_kind: ChartKind,
    requested: bool,
    flags: Optional[FeatureFlags] = None,
) -> StandardizationMode:
    """
    Effective score representation for a call site.

    Brand-level charts are pinned to raw scores by default while the country
    comparison honours the user's toggle. A request that the policy refuses
    is logged, never silently dropped.
    """
    flags = flags or FeatureFlags()
    flag_name = STANDARDIZATION_FLAGS[chart_kind]
    allowed = getattr(flags, flag_name)

    if requested and not allowed:
        logger.info(
            f"[ReconciliationConfig] Standardization requested for {chart_kind.value} "
            f"but disabled by '{flag_name}', using raw scores"
        )
        return StandardizationMode.RAW

    return StandardizationMode.from_flag(requested)


def get_fallback_threshold(
    chart_kind: ChartKind,
    default: int,
    flags: Optional[FeatureFlags] = None,
) -> int:
    """Fallback threshold for a call site (5 for brand charts, 15 for country comparison by default)."""
    flags = flags or FeatureFlags()
    return flags.fallback_threshold(chart_kind.value, default)
