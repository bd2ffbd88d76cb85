"""
Type definitions for the monthly reporting pipeline.

Rows, group summaries and filter/sort state are plain frozen dataclasses so
every stage of the pipeline is a pure function of its inputs.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Literal, TypeAlias

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

SortDirection: TypeAlias = Literal["asc", "desc"]
SourceRecord: TypeAlias = Mapping[str, Any]

EMPTY_RESULT_MESSAGE = "No data for selected filters"


class SourceKind(str, enum.Enum):
    COSTING = "Costing"
    RENTAL = "Rental"
    SLA = "SLA"


class ReportKind(str, enum.Enum):
    COVER = "cover"
    DETAILED_ENTRIES = "detailed_entries"
    SUMMARY_BY_JOB_TYPE = "summary_by_job_type"
    SUMMARY_BY_REP = "summary_by_rep"
    SUMMARY_BY_CUSTOMER = "summary_by_customer"
    REP_BREAKDOWN = "rep_breakdown"
    PERFORMANCE_COMPARISON = "performance_comparison"
    MONTHLY_TREND = "monthly_trend"


class SourceFetchError(Exception):
    """Raised when one or more of the three source queries failed.

    `details` maps each source name to its error message, or None when that
    source was fetched successfully.
    """

    def __init__(self, message: str, details: dict[str, str | None]) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


@dataclass(frozen=True, slots=True)
class DataIssue:
    """Recoverable data-quality warning attached to a normalized row."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True, slots=True)
class ReportSources:
    """The three raw source collections for one report window."""

    costing: Sequence[SourceRecord] = ()
    rental: Sequence[SourceRecord] = ()
    sla: Sequence[SourceRecord] = ()

    @property
    def total_records(self) -> int:
        return len(self.costing) + len(self.rental) + len(self.sla)


@dataclass(frozen=True, slots=True)
class NormalizedRow:
    """Reporting record in the common cross-source shape.

    Profit and margin are derived from sales and cost on access and are never
    stored, so `profit == sales - cost` holds for every row.
    """

    date: str | None
    source_kind: SourceKind
    rep: str
    customer: str
    job_number: str | None
    invoice_number: str | None
    job_type: str
    sales: Decimal
    cost: Decimal
    source_index: int = 0
    issues: tuple[DataIssue, ...] = ()

    @property
    def profit(self) -> Decimal:
        return self.sales - self.cost

    @property
    def margin(self) -> Decimal:
        return margin_percent(self.profit, self.sales)


@dataclass(slots=True)
class GroupSummary:
    """Accumulated sales/cost/profit/count for one distinct key value."""

    group_key: str
    sales: Decimal = ZERO
    cost: Decimal = ZERO
    profit: Decimal = ZERO
    count: int = 0
    child_breakdown: dict[str, Decimal] = field(default_factory=dict)

    @property
    def margin(self) -> Decimal:
        return margin_percent(self.profit, self.sales)


@dataclass(frozen=True, slots=True)
class GrandTotals:
    sales: Decimal = ZERO
    cost: Decimal = ZERO
    profit: Decimal = ZERO
    count: int = 0

    @property
    def margin(self) -> Decimal:
        return margin_percent(self.profit, self.sales)


@dataclass(frozen=True, slots=True)
class NumericRange:
    """Inclusive numeric bound on one numeric row field."""

    field: str
    minimum: Decimal | float | int | None = None
    maximum: Decimal | float | int | None = None


@dataclass(frozen=True, slots=True)
class FilterState:
    """Immutable snapshot of all active report filters.

    Empty selection sets are wildcards. The default instance excludes nothing.
    """

    date_from: str | None = None
    date_to: str | None = None
    numeric_ranges: tuple[NumericRange, ...] = ()
    reps: frozenset[str] = frozenset()
    customers: frozenset[str] = frozenset()
    job_types: frozenset[str] = frozenset()
    job_numbers: frozenset[str] = frozenset()
    source_kinds: frozenset[SourceKind] = frozenset()
    job_number_query: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable for the selection sets and ranges.
        for name in ("reps", "customers", "job_types", "job_numbers"):
            object.__setattr__(self, name, frozenset(getattr(self, name) or ()))
        object.__setattr__(
            self,
            "source_kinds",
            frozenset(SourceKind(kind) for kind in (self.source_kinds or ())),
        )
        object.__setattr__(self, "numeric_ranges", tuple(self.numeric_ranges or ()))
        object.__setattr__(self, "job_number_query", (self.job_number_query or "").strip())


@dataclass(frozen=True, slots=True)
class SortState:
    key: str
    direction: SortDirection = "asc"

    def __post_init__(self) -> None:
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort direction: {self.direction}")


@dataclass(slots=True)
class ReportView:
    """Renderer-ready output of one report kind.

    `headers` and `rows` share key names so CSV/XLSX writers and tables can
    consume them without remapping. `chart` holds `{name, value}` pairs.
    """

    kind: ReportKind
    title: str
    headers: list[dict[str, str]]
    rows: list[dict[str, Any]]
    totals: dict[str, Any] = field(default_factory=dict)
    chart: list[dict[str, Any]] = field(default_factory=list)
    extras: dict[str, Any] = field(default_factory=dict)
    row_count: int = 0

    @property
    def empty(self) -> bool:
        return self.row_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "headers": self.headers,
            "rows": self.rows,
            "totals": self.totals,
            "chart": self.chart,
            "extras": self.extras,
            "row_count": self.row_count,
            "empty": self.empty,
            "message": EMPTY_RESULT_MESSAGE if self.empty else None,
        }


def margin_percent(profit: Decimal, sales: Decimal) -> Decimal:
    """Profit as a percentage of sales; zero-sales yields 0 rather than an error."""

    if sales <= ZERO:
        return ZERO
    return profit / sales * HUNDRED
