"""
Cross-Market Brand Resolver

Determines which brands can be compared across the selected countries.

Pipeline:
1. Canonicalize and deduplicate the selected countries
2. Group normalized brand keys per country
3. One country: every brand of that country
   Several countries: keys present in all of them (ALL_COUNTRIES) or in at
   least two (AT_LEAST_TWO)
4. Pick a representative record per (brand, country, year) and per
   (brand, country): highest score wins, None loses, ties keep first seen
5. Too few natural matches with 2+ countries: add curated fallback brands,
   but only those found in the data of EVERY selected country
6. Choose one display name per brand

Every duplicate tie-break is kept as a DuplicateResolution and logged.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .countries import CountryDirectory
from .config import FALLBACK_BRANDS
from .name_normalizer import NameNormalizer
from .preferred_name import PreferredNameSelector
from .types import (
    BrandResolution,
    CrossMarketMatch,
    DuplicateResolution,
    MatchMode,
    ScoreRecord,
)

# country -> brand key -> records (input order)
RecordIndex = Dict[str, Dict[str, List[ScoreRecord]]]

MIN_PARTIAL_COUNTRIES = 2


def _rank(record: ScoreRecord) -> float:
    return record.score if record.score is not None else float("-inf")


def pick_representative(records: Sequence[ScoreRecord]) -> Tuple[Optional[ScoreRecord], List[ScoreRecord]]:
    """
    Highest-scoring record and the discarded ones.

    None scores lose against any number; among equal scores the first seen
    record is kept.
    """
    winner: Optional[ScoreRecord] = None
    for record in records:
        if winner is None or _rank(record) > _rank(winner):
            winner = record
    discarded = [r for r in records if r is not winner]
    return winner, discarded


class CrossMarketBrandResolver:
    """
    Cross-country brand matching with deterministic dedup and verified fallback.

    Args:
        normalizer: Brand key function
        selector: Display name selection
        countries: Country lookup used to canonicalize the selection
        fallback_brands: Curated brand list for augmentation (injectable)
        fallback_threshold: Default threshold below which fallback applies
        fallback_enabled: Disable augmentation entirely when False
        logger: Module-level diagnostics
        audit_logger: Receives one info line per duplicate tie-break
    """

    def __init__(
        self,
        normalizer: Optional[NameNormalizer] = None,
        selector: Optional[PreferredNameSelector] = None,
        countries: Optional[CountryDirectory] = None,
        fallback_brands: Optional[Iterable[str]] = None,
        fallback_threshold: int = 5,
        fallback_enabled: bool = True,
        logger: Optional[logging.Logger] = None,
        audit_logger: Optional[logging.Logger] = None,
    ):
        self.normalizer = normalizer or NameNormalizer()
        self.selector = selector or PreferredNameSelector(normalizer=self.normalizer)
        self.countries = countries or CountryDirectory()
        self.fallback_brands = list(FALLBACK_BRANDS if fallback_brands is None else fallback_brands)
        self.fallback_threshold = fallback_threshold
        self.fallback_enabled = fallback_enabled
        self.logger = logger or logging.getLogger(__name__)
        self.audit_logger = audit_logger

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def _index(self, records: Optional[Iterable[ScoreRecord]], codes: Sequence[str]) -> RecordIndex:
        index: RecordIndex = {code: {} for code in codes}
        keys: Dict[str, str] = {}

        for record in records or []:
            country = self.countries.canonicalize(record.country)
            if country not in index:
                continue
            if record.brand not in keys:
                keys[record.brand] = self.normalizer.normalize(record.brand)
            key = keys[record.brand]
            if not key:
                continue
            index[country].setdefault(key, []).append(record)

        return index

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    @staticmethod
    def _natural_keys(index: RecordIndex, codes: Sequence[str], mode: MatchMode) -> List[str]:
        presence: Dict[str, int] = {}
        for code in codes:
            for key in index[code]:
                presence[key] = presence.get(key, 0) + 1

        if len(codes) == 1:
            selected = list(presence)
        elif mode == MatchMode.ALL_COUNTRIES:
            selected = [k for k, n in presence.items() if n == len(codes)]
        else:
            selected = [k for k, n in presence.items() if n >= MIN_PARTIAL_COUNTRIES]

        selected.sort(key=lambda k: (-presence[k], k))
        return selected

    def _build_match(
        self,
        key: str,
        index: RecordIndex,
        codes: Sequence[str],
        is_fallback: bool,
        duplicates: List[DuplicateResolution],
    ) -> CrossMarketMatch:
        records: Dict[str, Optional[ScoreRecord]] = {}
        yearly: Dict[str, Dict[int, ScoreRecord]] = {}
        spellings: List[str] = []

        for code in codes:
            country_records = index[code].get(key, [])
            for record in country_records:
                if record.brand not in spellings:
                    spellings.append(record.brand)

            by_year: Dict[int, List[ScoreRecord]] = {}
            for record in country_records:
                by_year.setdefault(record.year, []).append(record)

            best_by_year: Dict[int, ScoreRecord] = {}
            for year in sorted(by_year):
                winner, discarded = pick_representative(by_year[year])
                best_by_year[year] = winner
                if discarded:
                    duplicates.append(self._record_duplicate(key, code, year, winner, discarded))

            if best_by_year:
                yearly[code] = best_by_year
            records[code] = pick_representative(country_records)[0]

        return CrossMarketMatch(
            brand_key=key,
            display_name=self.selector.select(spellings, key) or key,
            records=records,
            yearly=yearly,
            is_fallback=is_fallback,
        )

    def _record_duplicate(
        self,
        key: str,
        country: str,
        year: int,
        winner: ScoreRecord,
        discarded: List[ScoreRecord],
    ) -> DuplicateResolution:
        entry = DuplicateResolution(
            brand_key=key,
            country=country,
            year=year,
            kept_score=winner.score,
            kept_brand=winner.brand,
            discarded_scores=[r.score for r in discarded],
        )
        message = (
            f"[Resolver] Duplicate {key}/{country}/{year}: kept {winner.score} "
            f"('{winner.brand}'), discarded {entry.discarded_scores}"
        )
        self.logger.debug(message)
        if self.audit_logger is not None:
            self.audit_logger.info(message)
        return entry

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def _fallback_keys(self, index: RecordIndex, codes: Sequence[str], already: Iterable[str]) -> List[str]:
        """Curated brands verified present in every selected country, in list order."""
        added: List[str] = []
        taken = set(already)

        for brand in self.fallback_brands:
            key = self.normalizer.normalize(brand)
            if not key or key in taken:
                continue
            missing = [code for code in codes if key not in index[code]]
            if missing:
                self.logger.debug(
                    f"[Resolver] Fallback brand '{brand}' skipped, no data in {', '.join(missing)}"
                )
                continue
            added.append(key)
            taken.add(key)

        return added

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(
        self,
        countries: Optional[Iterable[Optional[str]]],
        all_records: Optional[Iterable[ScoreRecord]],
        mode: MatchMode = MatchMode.ALL_COUNTRIES,
        fallback_threshold: Optional[int] = None,
        candidate_records: Optional[Iterable[ScoreRecord]] = None,
        fallback_enabled: Optional[bool] = None,
    ) -> BrandResolution:
        """
        Resolve comparable brands for a country selection.

        Args:
            countries: Selected countries (codes or names)
            all_records: Full dataset, used for representatives and to
                verify fallback brands
            mode: Strict intersection or "at least two countries"
            fallback_threshold: Overrides the resolver default
            candidate_records: Records the natural matching is computed on
                (e.g. the brands currently offered by the UI); defaults to
                all_records
            fallback_enabled: Overrides the resolver default for this call

        Returns:
            BrandResolution (empty when no country is selected)
        """
        codes = self.countries.canonicalize_all(countries)
        if not codes:
            return BrandResolution(mode=mode)

        all_records = list(all_records or [])
        full_index = self._index(all_records, codes)
        candidate_index = full_index if candidate_records is None else self._index(candidate_records, codes)

        keys = self._natural_keys(candidate_index, codes, mode)
        self.logger.debug(
            f"[Resolver] {len(keys)} natural match(es) over {', '.join(codes)} (mode={mode.value})"
        )

        threshold = self.fallback_threshold if fallback_threshold is None else fallback_threshold
        fallback_added: List[str] = []
        if fallback_enabled is None:
            fallback_enabled = self.fallback_enabled
        if fallback_enabled and len(codes) >= 2 and len(keys) < threshold:
            fallback_added = self._fallback_keys(full_index, codes, keys)
            if fallback_added:
                self.logger.info(
                    f"[Resolver] Only {len(keys)} natural match(es) (< {threshold}), "
                    f"added {len(fallback_added)} verified fallback brand(s)"
                )
            keys = keys + fallback_added

        duplicates: List[DuplicateResolution] = []
        matches: Dict[str, CrossMarketMatch] = {}
        fallback_set = set(fallback_added)
        for key in keys:
            matches[key] = self._build_match(key, full_index, codes, key in fallback_set, duplicates)

        return BrandResolution(
            countries=codes,
            mode=mode,
            brand_keys=keys,
            matches=matches,
            fallback_added=fallback_added,
            duplicates=duplicates,
        )
