"""
Brand Name Normalizer

Canonicalizes free-text brand labels into comparison keys so that the same
brand spelled differently across markets and years compares equal.

Generic rules:
1. Lowercase + trim, typographic apostrophes/dashes unified
2. Strip everything except letters, digits, spaces, apostrophes, "&" and "-"
3. Collapse whitespace
4. Remove all remaining whitespace

Special cases (e.g. "McDonald's" / "McDonalds", "H&M" / "Hennes & Mauritz")
are looked up before the generic rules and again on the generic key.

Guarantees:
- total: None / "" -> ""
- idempotent: normalize(normalize(x)) == normalize(x)
- never longer than its input

Example:
    >>> normalize_brand_name("  H & M ")
    'hm'
    >>> normalize_brand_name("Burger King")
    'burgerking'
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional

from crossmarket.utils.normalize import collapse_whitespace, unify_punctuation

from .config import SPECIAL_CASES

# Letters (any script), digits, whitespace, apostrophe, ampersand, hyphen
_DISALLOWED_RE = re.compile(r"[^\w\s'&\-]|_")
_ANY_WS_RE = re.compile(r"\s+")


def generic_key(raw: Optional[str]) -> str:
    """Key produced by the generic rules alone (no special cases)."""
    if not raw:
        return ""
    value = unify_punctuation(raw.strip().lower())
    value = _DISALLOWED_RE.sub("", value)
    value = collapse_whitespace(value)
    return _ANY_WS_RE.sub("", value)


class NameNormalizer:
    """
    Brand name -> normalized key.

    The special-case table maps a canonical key to its aliases (same layout
    as the YAML override file). It is inverted once at construction into
    an alias index, looked up in O(1).
    """

    def __init__(
        self,
        special_cases: Optional[Mapping[str, Iterable[str]]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self._alias_index: Dict[str, str] = {}
        self._build_index(SPECIAL_CASES if special_cases is None else special_cases)

    def _build_index(self, special_cases: Mapping[str, Iterable[str]]) -> None:
        for canonical, aliases in special_cases.items():
            if not canonical or generic_key(canonical) != canonical:
                self.logger.warning(
                    f"[NameNormalizer] Ignoring special case '{canonical}': "
                    f"canonical keys must already be normalized"
                )
                continue

            self._alias_index[canonical] = canonical

            for alias in aliases:
                for form in (collapse_whitespace(str(alias).lower()), generic_key(str(alias))):
                    if not form:
                        continue
                    if len(canonical) > len(form):
                        self.logger.warning(
                            f"[NameNormalizer] Ignoring alias '{alias}' -> '{canonical}': "
                            f"key would be longer than the name"
                        )
                        continue
                    existing = self._alias_index.get(form)
                    if existing is not None and existing != canonical:
                        self.logger.warning(
                            f"[NameNormalizer] Alias '{form}' already mapped to '{existing}', "
                            f"ignoring '{canonical}'"
                        )
                        continue
                    self._alias_index[form] = canonical

        self.logger.debug(f"[NameNormalizer] {len(self._alias_index)} special-case aliases indexed")

    @property
    def alias_count(self) -> int:
        return len(self._alias_index)

    def normalize(self, raw: Optional[str]) -> str:
        """Comparison key for a brand label; "" for empty input."""
        if not raw:
            return ""

        raw = str(raw)

        # Special cases first, on the readable form
        special = self._alias_index.get(collapse_whitespace(raw.lower()))
        if special is not None:
            return special

        key = generic_key(raw)
        return self._alias_index.get(key, key)

    def same_brand(self, first: Optional[str], second: Optional[str]) -> bool:
        key = self.normalize(first)
        return bool(key) and key == self.normalize(second)

    def group_variants(self, names: Iterable[Optional[str]]) -> Dict[str, List[str]]:
        """
        Group raw spellings by normalized key.

        Keys and variants keep first-seen order; empty names are skipped.
        """
        grouped: Dict[str, List[str]] = {}
        for name in names:
            if not name:
                continue
            name = str(name)
            key = self.normalize(name)
            if not key:
                continue
            variants = grouped.setdefault(key, [])
            if name not in variants:
                variants.append(name)
        return grouped


# Singleton
_normalizer: Optional[NameNormalizer] = None


def get_name_normalizer() -> NameNormalizer:
    """Normalizer built from the configured override file."""
    global _normalizer
    if _normalizer is None:
        from crossmarket.config.settings import get_settings
        from .config import load_name_overrides

        overrides = load_name_overrides(get_settings().name_overrides_file)
        _normalizer = NameNormalizer(overrides["special_cases"])
    return _normalizer


def reset_name_normalizer() -> None:
    global _normalizer
    _normalizer = None


def normalize_brand_name(raw: Optional[str]) -> str:
    """Module-level shortcut on the configured normalizer."""
    return get_name_normalizer().normalize(raw)
