"""
Preferred Display Name Selection

Source data mixes casing conventions across countries and years ("IKEA",
"Ikea", "ikea"). One consistent label is shown per normalized brand.

Scoring of each observed spelling:
- +2 first character uppercase
- +1 proper internal spacing (no double spaces)
- +1 contains an apostrophe
- -1 entirely lowercase
- +1 ends with a corporate suffix (" AB", " Inc", " Ltd", ...)
- -1 longer than 20 characters

Highest score wins, ties go to the first spelling seen. A table of
canonical capitalizations ("IKEA", "McDonald's") takes precedence.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from .config import CORPORATE_SUFFIXES, DISPLAY_NAMES
from .name_normalizer import NameNormalizer

logger = logging.getLogger(__name__)

MAX_PREFERRED_LENGTH = 20


class PreferredNameSelector:
    """Picks one display string among the spellings of a normalized brand."""

    def __init__(
        self,
        normalizer: Optional[NameNormalizer] = None,
        display_names: Optional[Mapping[str, str]] = None,
        corporate_suffixes: Optional[Iterable[str]] = None,
    ):
        self.normalizer = normalizer or NameNormalizer()
        self.display_names = dict(DISPLAY_NAMES if display_names is None else display_names)
        self.corporate_suffixes = tuple(
            CORPORATE_SUFFIXES if corporate_suffixes is None else corporate_suffixes
        )

    def score(self, variant: str) -> int:
        """Score of one spelling (see module docstring)."""
        text = variant.strip()
        if not text:
            return -100

        points = 0
        if text[0].isupper():
            points += 2
        if "  " not in text:
            points += 1
        if "'" in text or "’" in text:
            points += 1
        if text == text.lower() and any(c.isalpha() for c in text):
            points -= 1
        if text.endswith(self.corporate_suffixes):
            points += 1
        if len(text) > MAX_PREFERRED_LENGTH:
            points -= 1
        return points

    def select(self, variants: Iterable[Optional[str]], normalized_key: Optional[str] = None) -> str:
        """
        Best display name for a normalized key.

        Args:
            variants: Raw spellings observed (any order, duplicates allowed)
            normalized_key: Key the variants belong to (computed from the
                first variant when omitted)

        Returns:
            The preferred spelling, "" when there is nothing to choose from
        """
        ordered: List[str] = []
        for variant in variants:
            if variant and str(variant).strip() and str(variant) not in ordered:
                ordered.append(str(variant))

        if normalized_key is None and ordered:
            normalized_key = self.normalizer.normalize(ordered[0])

        if normalized_key and normalized_key in self.display_names:
            return self.display_names[normalized_key]

        if not ordered:
            return ""

        candidates = [v for v in ordered if self.normalizer.normalize(v) == normalized_key]
        if not candidates:
            logger.debug(
                f"[PreferredName] No variant normalizes to '{normalized_key}', "
                f"choosing among all {len(ordered)} spellings"
            )
            candidates = ordered

        # max() keeps the first of equal scores
        best = max(candidates, key=self.score)
        return best.strip()

    def select_all(self, grouped: Mapping[str, Iterable[str]]) -> Dict[str, str]:
        """normalized key -> preferred name, for the output of group_variants()."""
        selected: Dict[str, str] = {}
        for key, variants in grouped.items():
            variants = list(variants)
            preferred = self.select(variants, key)
            if preferred:
                selected[key] = preferred
                if len(variants) > 1:
                    logger.debug(
                        f"[PreferredName] {key} -> {preferred} (from: {', '.join(variants)})"
                    )
        return selected


# Singleton
_selector: Optional[PreferredNameSelector] = None


def get_preferred_name_selector() -> PreferredNameSelector:
    """Selector built from the configured override file."""
    global _selector
    if _selector is None:
        from crossmarket.config.settings import get_settings
        from .config import load_name_overrides
        from .name_normalizer import get_name_normalizer

        overrides = load_name_overrides(get_settings().name_overrides_file)
        _selector = PreferredNameSelector(
            normalizer=get_name_normalizer(),
            display_names=overrides["display_names"],
            corporate_suffixes=overrides["corporate_suffixes"],
        )
    return _selector


def reset_preferred_name_selector() -> None:
    global _selector
    _selector = None
