"""Group normalized rows into per-key summaries and grand totals."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeAlias

from app.services.report_types import ZERO, GrandTotals, GroupSummary, NormalizedRow

KeyFn: TypeAlias = Callable[[NormalizedRow], str | None]


def key_by_job_type(row: NormalizedRow) -> str | None:
    return row.job_type


def key_by_rep(row: NormalizedRow) -> str | None:
    return row.rep


def key_by_customer(row: NormalizedRow) -> str | None:
    return row.customer


def key_by_source_kind(row: NormalizedRow) -> str | None:
    return row.source_kind.value


def key_by_month(row: NormalizedRow) -> str | None:
    """`YYYY-MM` of the row date."""

    if row.date is None:
        return None
    return row.date[:7]


def fallback_label(dimension: str) -> str:
    return f"Unknown {dimension}"


def aggregate_by(
    rows: Iterable[NormalizedRow],
    key_fn: KeyFn,
    *,
    dimension: str,
    child_key_fn: KeyFn | None = None,
    child_dimension: str = "value",
) -> list[GroupSummary]:
    """Fold rows into one summary per distinct key.

    Rows whose key is missing are bucketed under `Unknown <dimension>` so the
    group sales always add up to the row sales. Groups come back in the order
    their key was first seen. Sums stay at full precision.
    """

    groups: dict[str, GroupSummary] = {}
    for row in rows:
        group_key = key_fn(row) or fallback_label(dimension)
        summary = groups.get(group_key)
        if summary is None:
            summary = GroupSummary(group_key=group_key)
            groups[group_key] = summary

        summary.sales += row.sales
        summary.cost += row.cost
        summary.profit += row.profit
        summary.count += 1

        if child_key_fn is not None:
            child_key = child_key_fn(row) or fallback_label(child_dimension)
            summary.child_breakdown[child_key] = summary.child_breakdown.get(child_key, ZERO) + row.sales

    return list(groups.values())


def grand_totals(groups: Iterable[GroupSummary]) -> GrandTotals:
    sales = ZERO
    cost = ZERO
    profit = ZERO
    count = 0
    for group in groups:
        sales += group.sales
        cost += group.cost
        profit += group.profit
        count += group.count
    return GrandTotals(sales=sales, cost=cost, profit=profit, count=count)


def totals_for_rows(rows: Iterable[NormalizedRow]) -> GrandTotals:
    """Grand totals straight from rows, without grouping."""

    sales = ZERO
    cost = ZERO
    count = 0
    for row in rows:
        sales += row.sales
        cost += row.cost
        count += 1
    return GrandTotals(sales=sales, cost=cost, profit=sales - cost, count=count)
