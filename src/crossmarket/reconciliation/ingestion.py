"""
Record ingestion boundary.

Upstream rows are loosely typed: scores and years arrive as numbers or
strings, optional columns are missing, countries are codes or full names.
This module turns them into validated ScoreRecord values so the rest of the
engine never sees that looseness.

Both the original column names ("Brand", "Country", "Year", "Score",
"industry", "Projected", "Row ID") and snake_case names are accepted.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from pydantic import ValidationError

from .countries import CountryDirectory
from .types import IngestionResult, RejectedRow, ScoreRecord

logger = logging.getLogger(__name__)


FIELD_ALIASES: Dict[str, tuple] = {
    "brand": ("Brand", "brand"),
    "country": ("Country", "country"),
    "industry": ("industry", "Industry"),
    "year": ("Year", "year"),
    "score": ("Score", "score"),
    "is_projected": ("Projected", "projected", "is_projected", "isProjected"),
    "row_id": ("Row ID", "row_id", "id"),
}

_TRUE_STRINGS = {"true", "1", "yes", "y", "t"}
_FALSE_STRINGS = {"false", "0", "no", "n", "f", ""}


class RecordValidationError(ValueError):
    """An upstream row cannot be turned into a ScoreRecord."""

    def __init__(self, message: str, row: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.row = dict(row) if row is not None else {}


class RecordSource(Protocol):
    """External collaborator returning score rows filtered by country/brand/industry."""

    def fetch_rows(self, **filters: Any) -> Iterable[Mapping[str, Any]]:
        ...


def _pick(row: Mapping[str, Any], field: str) -> Any:
    for name in FIELD_ALIASES[field]:
        if name in row:
            return row[name]
    return None


def _coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_float(value: Any, field: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise RecordValidationError(f"{field} must be numeric, got a boolean")
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if value == "" or value.lower() in ("nan", "null", "none", "n/a"):
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise RecordValidationError(f"{field} is not a number: {value!r}")
    if not math.isfinite(number):
        return None
    return number


def _coerce_int(value: Any, field: str) -> Optional[int]:
    number = _coerce_float(value, field)
    if number is None:
        return None
    if not number.is_integer():
        raise RecordValidationError(f"{field} must be an integer, got {value!r}")
    return int(number)


def _coerce_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise RecordValidationError(f"Projected flag not understood: {value!r}")


def parse_record(
    row: Mapping[str, Any],
    countries: Optional[CountryDirectory] = None,
    score_min: float = 0.0,
    score_max: float = 100.0,
) -> ScoreRecord:
    """
    Build a ScoreRecord from one upstream row.

    Args:
        row: Mapping with original or snake_case column names
        countries: Country lookup used to canonicalize the country column
        score_min: Lowest accepted score (inclusive)
        score_max: Highest accepted score (inclusive)

    Returns:
        Validated record

    Raises:
        RecordValidationError: missing brand/country/year, non-numeric or
            out-of-range score
    """
    if not isinstance(row, Mapping):
        raise RecordValidationError(f"Row must be a mapping, got {type(row).__name__}")

    countries = countries or CountryDirectory()

    try:
        brand = _coerce_text(_pick(row, "brand"))
        if brand is None:
            raise RecordValidationError("Missing brand", row)

        country = countries.canonicalize(_coerce_text(_pick(row, "country")))
        if not country:
            raise RecordValidationError("Missing country", row)

        year = _coerce_int(_pick(row, "year"), "year")
        if year is None:
            raise RecordValidationError("Missing year", row)

        score = _coerce_float(_pick(row, "score"), "score")
        if score is not None and not (score_min <= score <= score_max):
            raise RecordValidationError(
                f"Score {score} outside [{score_min}, {score_max}]", row
            )

        return ScoreRecord(
            brand=brand,
            country=country,
            industry=_coerce_text(_pick(row, "industry")),
            year=year,
            score=score,
            is_projected=_coerce_bool(_pick(row, "is_projected")),
            row_id=_coerce_int(_pick(row, "row_id"), "row_id"),
        )
    except RecordValidationError as e:
        if not e.row:
            e.row = dict(row)
        raise
    except ValidationError as e:
        raise RecordValidationError(f"Invalid record: {e.errors()[0].get('msg')}", row) from e


def parse_records(
    rows: Optional[Iterable[Mapping[str, Any]]],
    countries: Optional[CountryDirectory] = None,
    strict: bool = False,
    score_min: float = 0.0,
    score_max: float = 100.0,
) -> IngestionResult:
    """
    Parse a batch of upstream rows.

    Malformed rows are collected as RejectedRow entries and parsing goes on;
    with strict=True the first RecordValidationError propagates.
    """
    countries = countries or CountryDirectory()
    records: List[ScoreRecord] = []
    rejected: List[RejectedRow] = []

    for row in rows or []:
        try:
            records.append(parse_record(row, countries, score_min, score_max))
        except RecordValidationError as e:
            if strict:
                raise
            rejected.append(RejectedRow(row=e.row, reason=str(e)))

    if rejected:
        logger.warning(
            f"[Ingestion] {len(rejected)} row(s) rejected, {len(records)} accepted"
        )
    else:
        logger.debug(f"[Ingestion] {len(records)} row(s) accepted")

    return IngestionResult(records=records, rejected=rejected)


def fetch_records(
    source: RecordSource,
    countries: Optional[CountryDirectory] = None,
    score_min: float = 0.0,
    score_max: float = 100.0,
    **filters: Any,
) -> IngestionResult:
    """
    Fetch rows from the record source and parse them.

    A failing source is logged and behaves exactly like an empty dataset.
    """
    try:
        rows = list(source.fetch_rows(**filters) or [])
    except Exception as e:
        logger.error(f"[Ingestion] Record source failed ({type(e).__name__}): {e}")
        return IngestionResult()

    return parse_records(rows, countries, score_min=score_min, score_max=score_max)
