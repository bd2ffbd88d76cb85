"""Type-aware, stable sorting for report rows and group summaries."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from datetime import date
from typing import Any, TypeVar

from app.services.report_normalizer import to_date_key, to_decimal
from app.services.report_types import ZERO, GroupSummary, NormalizedRow, SortDirection

T = TypeVar("T")

NUMERIC_SORT_KEYS = frozenset({"sales", "cost", "profit", "margin", "count"})
DATE_SORT_KEYS = frozenset({"date"})

ROW_SORT_KEYS = frozenset(
    {
        "date",
        "source_kind",
        "rep",
        "customer",
        "job_number",
        "invoice_number",
        "job_type",
        "sales",
        "cost",
        "profit",
        "margin",
    }
)
GROUP_SORT_KEYS = frozenset({"group_key", "sales", "cost", "profit", "margin", "count"})


def sort_value(raw: Any, key: str) -> Any | None:
    """Comparable value for `raw` under `key`, or None when it is missing.

    Numeric keys coerce non-numeric input to 0; date keys compare as dates;
    everything else compares as case-folded text.
    """

    if raw is None:
        return None
    if key in NUMERIC_SORT_KEYS:
        parsed = to_decimal(raw)
        return ZERO if parsed is None else parsed
    if key in DATE_SORT_KEYS:
        date_key = to_date_key(raw)
        return None if date_key is None else date.fromisoformat(date_key)
    if isinstance(raw, enum.Enum):
        raw = raw.value
    text = str(raw).strip()
    return text.casefold() if text else None


def _sorted_by_attribute(items: Iterable[T], key: str, direction: SortDirection) -> list[T]:
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unsupported sort direction: {direction}")

    present: list[tuple[Any, T]] = []
    missing: list[T] = []
    for item in items:
        value = sort_value(getattr(item, key), key)
        if value is None:
            missing.append(item)
        else:
            present.append((value, item))

    # Stable in both directions.
    present.sort(key=lambda pair: pair[0], reverse=direction == "desc")
    # Missing values go last regardless of direction.
    return [item for _, item in present] + missing


def sort_rows(rows: Iterable[NormalizedRow], key: str, direction: SortDirection = "asc") -> list[NormalizedRow]:
    """Return a new, sorted list of rows; the input is left untouched."""

    if key not in ROW_SORT_KEYS:
        raise ValueError(f"Unsupported row sort key: {key}")
    return _sorted_by_attribute(rows, key, direction)


def sort_groups(
    groups: Iterable[GroupSummary],
    key: str,
    direction: SortDirection = "desc",
) -> list[GroupSummary]:
    if key not in GROUP_SORT_KEYS:
        raise ValueError(f"Unsupported group sort key: {key}")
    return _sorted_by_attribute(groups, key, direction)
