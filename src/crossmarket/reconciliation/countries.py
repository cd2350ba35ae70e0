"""
Country lookup: code <-> full name, case-insensitive in both directions.

Records arrive with either "SE" or "Sweden" (or "sweden", "Sverige").
Everything downstream works on the canonical code.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import COUNTRIES

logger = logging.getLogger(__name__)


class CountryDirectory:
    """Bidirectional country lookup built from a code -> {name, aliases} table."""

    def __init__(self, countries: Optional[Mapping[str, Mapping[str, Any]]] = None):
        table = COUNTRIES if countries is None else countries
        self._names: Dict[str, str] = {}
        self._lookup: Dict[str, str] = {}

        for code, entry in table.items():
            code = str(code).strip().upper()
            name = str(entry.get("name") or code)
            self._names[code] = name
            self._lookup[code.lower()] = code
            self._lookup[name.lower()] = code
            for alias in entry.get("aliases") or []:
                alias_key = str(alias).strip().lower()
                existing = self._lookup.get(alias_key)
                if existing is not None and existing != code:
                    logger.warning(
                        f"[Countries] Alias '{alias}' already points to {existing}, ignoring for {code}"
                    )
                    continue
                self._lookup[alias_key] = code

    def to_code(self, value: Optional[str]) -> Optional[str]:
        """Canonical code for a code, name or alias; None when unknown."""
        if not value:
            return None
        return self._lookup.get(str(value).strip().lower())

    def to_name(self, value: Optional[str]) -> Optional[str]:
        """Full name for a code, name or alias; None when unknown."""
        code = self.to_code(value)
        return self._names.get(code) if code else None

    def canonicalize(self, value: Optional[str]) -> str:
        """
        Canonical code, or the trimmed upper-cased input for unknown countries.

        Unknown countries still form their own cohort instead of being dropped.
        """
        if not value:
            return ""
        code = self.to_code(value)
        if code is not None:
            return code
        return str(value).strip().upper()

    def canonicalize_all(self, values: Optional[Iterable[Optional[str]]]) -> List[str]:
        """Canonical codes, deduplicated, first-seen order, empties dropped."""
        result: List[str] = []
        for value in values or []:
            code = self.canonicalize(value)
            if code and code not in result:
                result.append(code)
        return result

    def codes(self) -> List[str]:
        return sorted(self._names)

    def __contains__(self, value: object) -> bool:
        return isinstance(value, str) and self.to_code(value) is not None


# Singleton
_directory: Optional[CountryDirectory] = None


def get_country_directory() -> CountryDirectory:
    """Directory built from the configured countries file."""
    global _directory
    if _directory is None:
        from crossmarket.config.settings import get_settings
        from .config import load_countries

        _directory = CountryDirectory(load_countries(get_settings().countries_file))
    return _directory


def reset_country_directory() -> None:
    global _directory
    _directory = None
