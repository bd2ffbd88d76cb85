"""
Report assembler for the monthly report.

Combines the filter engine, aggregator and sorter into named report views and
exposes the fixed page sequence of the printable monthly report.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal, localcontext
from typing import Any, TypeAlias

from app.services.report_aggregator import (
    aggregate_by,
    grand_totals,
    key_by_customer,
    key_by_job_type,
    key_by_month,
    key_by_rep,
    totals_for_rows,
)
from app.services.report_filters import apply_filters
from app.services.report_sorter import sort_groups, sort_rows
from app.services.report_types import (
    ZERO,
    FilterState,
    GrandTotals,
    GroupSummary,
    NormalizedRow,
    ReportKind,
    ReportView,
    SortState,
)

logger = logging.getLogger(__name__)

Q2 = Decimal("0.01")
DEFAULT_TOP_REP_COUNT = 9

DEFAULT_DETAIL_SORT = SortState(key="date", direction="desc")
DEFAULT_GROUP_SORT = SortState(key="sales", direction="desc")

REPORT_TITLES: dict[ReportKind, str] = {
    ReportKind.COVER: "Monthly Costing Report",
    ReportKind.DETAILED_ENTRIES: "Detailed Costing Entries",
    ReportKind.SUMMARY_BY_JOB_TYPE: "Summary by Job Type",
    ReportKind.SUMMARY_BY_REP: "Sales by Representative",
    ReportKind.SUMMARY_BY_CUSTOMER: "Summary by Customer",
    ReportKind.REP_BREAKDOWN: "Rep Performance Breakdown",
    ReportKind.PERFORMANCE_COMPARISON: "Performance Comparison",
    ReportKind.MONTHLY_TREND: "Monthly Trend",
}

PAGE_SEQUENCE: tuple[ReportKind, ...] = (
    ReportKind.COVER,
    ReportKind.SUMMARY_BY_JOB_TYPE,
    ReportKind.SUMMARY_BY_REP,
    ReportKind.REP_BREAKDOWN,
    ReportKind.PERFORMANCE_COMPARISON,
)

DEFAULT_CURRENCY_SYMBOL = "R"

_DETAIL_TEXT_HEADERS: list[dict[str, str]] = [
    {"key": "date", "label": "Date"},
    {"key": "source_kind", "label": "Source"},
    {"key": "rep", "label": "Rep"},
    {"key": "customer", "label": "Customer"},
    {"key": "job_number", "label": "Job #"},
    {"key": "invoice_number", "label": "Invoice #"},
    {"key": "job_type", "label": "Job Type"},
]


@dataclass(frozen=True, slots=True)
class ReportOptions:
    top_rep_count: int = DEFAULT_TOP_REP_COUNT
    period_label: str | None = None
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL


Builder: TypeAlias = Callable[[Sequence[NormalizedRow], SortState | None, ReportOptions], ReportView]


# ---------- Presentation helpers ----------
def present(value: Decimal) -> float:
    """Round a full-precision amount to two decimals for rendering."""

    with localcontext() as ctx:
        # Enough digits for the integer part plus two decimals.
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return float(value.quantize(Q2))


def _money_headers(currency_symbol: str) -> list[dict[str, str]]:
    return [
        {"key": "sales", "label": f"Sales ({currency_symbol})"},
        {"key": "cost", "label": f"Cost ({currency_symbol})"},
        {"key": "profit", "label": f"Profit ({currency_symbol})"},
        {"key": "margin", "label": "Profit %"},
    ]


def detail_headers(currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> list[dict[str, str]]:
    return [*_DETAIL_TEXT_HEADERS, *_money_headers(currency_symbol)]


def _summary_headers(group_label: str, currency_symbol: str) -> list[dict[str, str]]:
    return [{"key": "group", "label": group_label}, *_money_headers(currency_symbol), {"key": "count", "label": "Jobs"}]


def _serialize_row(row: NormalizedRow) -> dict[str, Any]:
    return {
        "date": row.date,
        "source_kind": row.source_kind.value,
        "rep": row.rep,
        "customer": row.customer,
        "job_number": row.job_number,
        "invoice_number": row.invoice_number,
        "job_type": row.job_type,
        "sales": present(row.sales),
        "cost": present(row.cost),
        "profit": present(row.profit),
        "margin": present(row.margin),
    }


def _serialize_group(group: GroupSummary) -> dict[str, Any]:
    return {
        "group": group.group_key,
        "sales": present(group.sales),
        "cost": present(group.cost),
        "profit": present(group.profit),
        "margin": present(group.margin),
        "count": group.count,
    }


def _serialize_totals(totals: GrandTotals) -> dict[str, Any]:
    return {
        "sales": present(totals.sales),
        "cost": present(totals.cost),
        "profit": present(totals.profit),
        "margin": present(totals.margin),
        "count": totals.count,
    }


def chart_pairs(values: Iterable[tuple[str, Decimal]]) -> list[dict[str, Any]]:
    """`{name, value}` pairs for pie/bar charts: positive values only, largest first."""

    pairs = [(name, value) for name, value in values if value > ZERO]
    pairs.sort(key=lambda pair: pair[1], reverse=True)
    return [{"name": name, "value": present(value)} for name, value in pairs]


def _group_sort(sort_state: SortState | None) -> SortState:
    if sort_state is None:
        return DEFAULT_GROUP_SORT
    if sort_state.key == "group":
        return replace(sort_state, key="group_key")
    return sort_state


# ---------- Builders ----------
def _build_cover(rows: Sequence[NormalizedRow], sort_state: SortState | None, options: ReportOptions) -> ReportView:
    totals = totals_for_rows(rows)
    serialized = _serialize_totals(totals)
    return ReportView(
        kind=ReportKind.COVER,
        title=REPORT_TITLES[ReportKind.COVER],
        headers=[{"key": "metric", "label": "Metric"}, {"key": "value", "label": "Value"}],
        rows=[
            {"metric": "Total Jobs", "value": totals.count},
            {"metric": "Total Sales", "value": serialized["sales"]},
            {"metric": "Total Cost", "value": serialized["cost"]},
            {"metric": "Total Profit", "value": serialized["profit"]},
            {"metric": "Margin %", "value": serialized["margin"]},
        ],
        totals=serialized,
        extras={"period_label": options.period_label},
        row_count=len(rows),
    )


def _build_detailed_entries(
    rows: Sequence[NormalizedRow],
    sort_state: SortState | None,
    options: ReportOptions,
) -> ReportView:
    state = sort_state or DEFAULT_DETAIL_SORT
    ordered = sort_rows(rows, state.key, state.direction)
    totals = totals_for_rows(ordered)

    # Mean of per-row margins, weighted by row count rather than by sales.
    average_margin = sum((row.margin for row in ordered), ZERO) / len(ordered) if ordered else ZERO

    return ReportView(
        kind=ReportKind.DETAILED_ENTRIES,
        title=REPORT_TITLES[ReportKind.DETAILED_ENTRIES],
        headers=detail_headers(options.currency_symbol),
        rows=[_serialize_row(row) for row in ordered],
        totals={
            "sales": present(totals.sales),
            "cost": present(totals.cost),
            "profit": present(totals.profit),
            "average_margin": present(average_margin),
            "count": totals.count,
        },
        row_count=len(ordered),
    )


def _build_summary(
    kind: ReportKind,
    group_label: str,
    key_fn: Callable[[NormalizedRow], str | None],
) -> Builder:
    def builder(rows: Sequence[NormalizedRow], sort_state: SortState | None, options: ReportOptions) -> ReportView:
        groups = aggregate_by(rows, key_fn, dimension=group_label.lower())
        state = _group_sort(sort_state)
        ordered = sort_groups(groups, state.key, state.direction)
        return ReportView(
            kind=kind,
            title=REPORT_TITLES[kind],
            headers=_summary_headers(group_label, options.currency_symbol),
            rows=[_serialize_group(group) for group in ordered],
            totals=_serialize_totals(grand_totals(groups)),
            chart=chart_pairs((group.group_key, group.sales) for group in groups),
            row_count=len(rows),
        )

    return builder


def _ranked_reps(rows: Sequence[NormalizedRow], *, with_job_types: bool = False) -> list[GroupSummary]:
    groups = aggregate_by(
        rows,
        key_by_rep,
        dimension="rep",
        child_key_fn=key_by_job_type if with_job_types else None,
        child_dimension="job type",
    )
    return sort_groups(groups, "sales", "desc")


def _build_rep_breakdown(
    rows: Sequence[NormalizedRow],
    sort_state: SortState | None,
    options: ReportOptions,
) -> ReportView:
    ranked = _ranked_reps(rows, with_job_types=True)
    top_reps = [group for group in ranked if group.sales > ZERO][: options.top_rep_count]

    return ReportView(
        kind=ReportKind.REP_BREAKDOWN,
        title=REPORT_TITLES[ReportKind.REP_BREAKDOWN],
        headers=_summary_headers("Rep", options.currency_symbol),
        rows=[_serialize_group(group) for group in top_reps],
        totals=_serialize_totals(grand_totals(ranked)),
        chart=chart_pairs((group.group_key, group.sales) for group in top_reps),
        extras={
            "reps": [
                {
                    "name": group.group_key,
                    "sales": present(group.sales),
                    "profit": present(group.profit),
                    "margin": present(group.margin),
                    "job_types": chart_pairs(group.child_breakdown.items()),
                }
                for group in top_reps
            ]
        },
        # Rows behind the listed reps only.
        row_count=sum(group.count for group in top_reps),
    )


def _performer(group: GroupSummary | None) -> dict[str, Any] | None:
    if group is None:
        return None
    return {
        "name": group.group_key,
        "sales": present(group.sales),
        "profit": present(group.profit),
        "margin": present(group.margin),
        "count": group.count,
    }


def _build_performance_comparison(
    rows: Sequence[NormalizedRow],
    sort_state: SortState | None,
    options: ReportOptions,
) -> ReportView:
    ranked = _ranked_reps(rows)
    selling = [group for group in ranked if group.sales > ZERO]

    # Independent reductions; max() keeps the first group on ties.
    top_performer = max(ranked, key=lambda group: group.sales, default=None)
    highest_margin = max(selling, key=lambda group: group.margin, default=None)
    most_jobs = max(ranked, key=lambda group: group.count, default=None)

    return ReportView(
        kind=ReportKind.PERFORMANCE_COMPARISON,
        title=REPORT_TITLES[ReportKind.PERFORMANCE_COMPARISON],
        headers=_summary_headers("Rep", options.currency_symbol),
        rows=[_serialize_group(group) for group in ranked],
        totals=_serialize_totals(grand_totals(ranked)),
        chart=[
            {
                "name": group.group_key,
                "sales": present(group.sales),
                "profit": present(group.profit),
                "margin": present(group.margin),
            }
            for group in ranked
        ],
        extras={
            "top_performer": _performer(top_performer),
            "highest_margin": _performer(highest_margin),
            "most_jobs": _performer(most_jobs),
        },
        row_count=len(rows),
    )


def _build_monthly_trend(
    rows: Sequence[NormalizedRow],
    sort_state: SortState | None,
    options: ReportOptions,
) -> ReportView:
    groups = aggregate_by(rows, key_by_month, dimension="month")
    ordered = sort_groups(groups, "group_key", "asc")
    return ReportView(
        kind=ReportKind.MONTHLY_TREND,
        title=REPORT_TITLES[ReportKind.MONTHLY_TREND],
        headers=_summary_headers("Month", options.currency_symbol),
        rows=[_serialize_group(group) for group in ordered],
        totals=_serialize_totals(grand_totals(groups)),
        chart=[{"name": group.group_key, "value": present(group.sales)} for group in ordered],
        row_count=len(rows),
    )


_BUILDERS: dict[ReportKind, Builder] = {
    ReportKind.COVER: _build_cover,
    ReportKind.DETAILED_ENTRIES: _build_detailed_entries,
    ReportKind.SUMMARY_BY_JOB_TYPE: _build_summary(ReportKind.SUMMARY_BY_JOB_TYPE, "Job Type", key_by_job_type),
    ReportKind.SUMMARY_BY_REP: _build_summary(ReportKind.SUMMARY_BY_REP, "Rep", key_by_rep),
    ReportKind.SUMMARY_BY_CUSTOMER: _build_summary(ReportKind.SUMMARY_BY_CUSTOMER, "Customer", key_by_customer),
    ReportKind.REP_BREAKDOWN: _build_rep_breakdown,
    ReportKind.PERFORMANCE_COMPARISON: _build_performance_comparison,
    ReportKind.MONTHLY_TREND: _build_monthly_trend,
}

_missing_builders = set(ReportKind) - set(_BUILDERS)
if _missing_builders:
    raise RuntimeError(f"Report kinds without a builder: {sorted(kind.value for kind in _missing_builders)}")


def build_report(
    rows: Sequence[NormalizedRow],
    report_kind: ReportKind,
    filter_state: FilterState | None = None,
    sort_state: SortState | None = None,
    *,
    options: ReportOptions | None = None,
) -> ReportView:
    """Filter `rows` and build the view for `report_kind`.

    Pure: identical arguments always produce an equal view.
    """

    filtered = apply_filters(rows, filter_state or FilterState())
    view = _BUILDERS[ReportKind(report_kind)](filtered, sort_state, options or ReportOptions())
    logger.debug("Built %s report from %d of %d rows", view.kind.value, len(filtered), len(rows))
    return view


# ---------- Pagination ----------
@dataclass(frozen=True, slots=True)
class ReportPager:
    """Cursor over a fixed page sequence; moves clamp at both ends."""

    page_count: int
    current: int = 1

    def __post_init__(self) -> None:
        if self.page_count < 1:
            raise ValueError("page_count must be at least 1")
        object.__setattr__(self, "current", min(max(self.current, 1), self.page_count))

    @property
    def has_previous(self) -> bool:
        return self.current > 1

    @property
    def has_next(self) -> bool:
        return self.current < self.page_count

    def go_to(self, page: int) -> ReportPager:
        return ReportPager(page_count=self.page_count, current=page)

    def next(self) -> ReportPager:
        return self.go_to(self.current + 1)

    def previous(self) -> ReportPager:
        return self.go_to(self.current - 1)


@dataclass(frozen=True, slots=True)
class ReportBook:
    """All pages of the monthly report, built once from the same rows."""

    pages: tuple[ReportView, ...]

    def pager(self, page: int = 1) -> ReportPager:
        return ReportPager(page_count=len(self.pages), current=page)

    def page(self, pager: ReportPager) -> ReportView:
        return self.pages[pager.current - 1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_count": len(self.pages),
            "titles": [view.title for view in self.pages],
            "pages": [view.to_dict() for view in self.pages],
        }


def build_report_book(
    rows: Sequence[NormalizedRow],
    filter_state: FilterState | None = None,
    *,
    options: ReportOptions | None = None,
) -> ReportBook:
    return ReportBook(
        pages=tuple(build_report(rows, kind, filter_state, options=options) for kind in PAGE_SEQUENCE)
    )
