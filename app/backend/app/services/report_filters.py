"""
Filter engine for normalized report rows.

All predicates are ANDed. A selection set with no members is a wildcard for
its dimension; that rule lives in `matches_any` only.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from decimal import Decimal
from typing import Any

from app.services.report_normalizer import to_date_key, to_decimal
from app.services.report_types import FilterState, NormalizedRow, NumericRange

logger = logging.getLogger(__name__)

NUMERIC_FILTER_FIELDS = frozenset({"sales", "cost", "profit", "margin"})


def matches_any(selected: Collection[Any], value: Any) -> bool:
    """Return True when nothing is selected or `value` is one of the selections."""

    return not selected or value in selected


def matches_date_range(row_date: str | None, date_from: str | None, date_to: str | None) -> bool:
    """Inclusive calendar-day comparison on `YYYY-MM-DD` strings.

    Rows without a date never match a bounded range.
    """

    if date_from is None and date_to is None:
        return True
    if row_date is None:
        return False
    if date_from is not None and row_date < date_from:
        return False
    if date_to is not None and row_date > date_to:
        return False
    return True


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def matches_numeric_range(row: NormalizedRow, numeric_range: NumericRange) -> bool:
    """Inclusive bound check; a present range is always applied."""

    if numeric_range.field not in NUMERIC_FILTER_FIELDS:
        raise ValueError(f"Unsupported numeric filter field: {numeric_range.field}")

    value: Decimal = getattr(row, numeric_range.field)
    minimum = to_decimal(numeric_range.minimum)
    maximum = to_decimal(numeric_range.maximum)
    # A bound that is given but not a number matches nothing.
    if minimum is None and not _is_blank(numeric_range.minimum):
        return False
    if maximum is None and not _is_blank(numeric_range.maximum):
        return False
    if minimum is not None and value < minimum:
        return False
    if maximum is not None and value > maximum:
        return False
    return True


def matches_substring(value: str | None, term: str) -> bool:
    if not term:
        return True
    if value is None:
        return False
    return term.casefold() in value.casefold()


def row_matches(
    row: NormalizedRow,
    state: FilterState,
    *,
    date_from: str | None,
    date_to: str | None,
) -> bool:
    return (
        matches_date_range(row.date, date_from, date_to)
        and all(matches_numeric_range(row, numeric_range) for numeric_range in state.numeric_ranges)
        and matches_any(state.reps, row.rep)
        and matches_any(state.customers, row.customer)
        and matches_any(state.job_types, row.job_type)
        and matches_any(state.job_numbers, row.job_number)
        and matches_any(state.source_kinds, row.source_kind)
        and matches_substring(row.job_number, state.job_number_query)
    )


def apply_filters(rows: Iterable[NormalizedRow], state: FilterState) -> list[NormalizedRow]:
    """Return the rows matching every active predicate in `state`.

    Malformed ranges (from after to, min above max, unparseable bounds) match
    nothing.
    """

    date_from = to_date_key(state.date_from)
    date_to = to_date_key(state.date_to)
    source_rows = list(rows)
    unparseable_dates = (date_from is None and not _is_blank(state.date_from)) or (
        date_to is None and not _is_blank(state.date_to)
    )
    if unparseable_dates:
        logger.debug("Unparseable date bound %r..%r; no rows match", state.date_from, state.date_to)
        filtered: list[NormalizedRow] = []
    else:
        filtered = [row for row in source_rows if row_matches(row, state, date_from=date_from, date_to=date_to)]
    logger.debug("Filtered %d rows down to %d", len(source_rows), len(filtered))
    return filtered


def filter_options(rows: Iterable[NormalizedRow]) -> dict[str, list[str]]:
    """Distinct values per selectable dimension, for populating multi-selects."""

    reps: set[str] = set()
    customers: set[str] = set()
    job_types: set[str] = set()
    job_numbers: set[str] = set()
    for row in rows:
        reps.add(row.rep)
        customers.add(row.customer)
        job_types.add(row.job_type)
        if row.job_number is not None:
            job_numbers.add(row.job_number)

    return {
        "reps": sorted(reps, key=str.casefold),
        "customers": sorted(customers, key=str.casefold),
        "job_types": sorted(job_types, key=str.casefold),
        "job_numbers": sorted(job_numbers, key=str.casefold),
    }
