"""Convert costing, rental and SLA source records into normalized report rows."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from app.services.report_types import (
    ZERO,
    DataIssue,
    NormalizedRow,
    ReportSources,
    SourceKind,
    SourceRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_JOB_TYPE = "Other"
DEFAULT_COSTING_REP = "Unknown"
DEFAULT_INCOME_REP = "SLA/Rental"
DEFAULT_CUSTOMER = "Unknown Customer"
DEFAULT_PROFIT_TOLERANCE = Decimal("0.01")

_DATE_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_MONEY_STRIP_RE = re.compile(r"[\s,]|^R")


def to_date_key(value: Any) -> str | None:
    """Return the calendar day of `value` as `YYYY-MM-DD`, or None.

    Timestamps keep their own calendar day; no timezone conversion is applied.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None

    match = _DATE_KEY_RE.match(value.strip())
    if match is None:
        return None
    try:
        return date(int(match[1]), int(match[2]), int(match[3])).isoformat()
    except ValueError:
        return None


def to_decimal(value: Any) -> Decimal | None:
    """Parse a money-like value leniently; None when it is missing or not numeric."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, float):
        parsed = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = _MONEY_STRIP_RE.sub("", value.strip())
        if cleaned == "":
            return None
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return None
    else:
        return None

    if not parsed.is_finite():
        return None
    return parsed


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _money(record: SourceRecord, field: str, issues: list[DataIssue]) -> Decimal:
    raw = record.get(field)
    parsed = to_decimal(raw)
    if parsed is None:
        code = "missing_value" if raw is None or raw == "" else "invalid_amount"
        issues.append(DataIssue(code=code, message=f"{field} is not a number: {raw!r}; using 0", field=field))
        return ZERO
    return parsed


def _date(record: SourceRecord, issues: list[DataIssue]) -> str | None:
    raw = record.get("date")
    date_key = to_date_key(raw)
    if date_key is None:
        code = "missing_value" if raw is None or raw == "" else "invalid_date"
        issues.append(DataIssue(code=code, message=f"date is missing or unparseable: {raw!r}", field="date"))
    return date_key


def normalize_costing_entry(
    record: SourceRecord,
    *,
    index: int = 0,
    profit_tolerance: Decimal = DEFAULT_PROFIT_TOLERANCE,
) -> NormalizedRow:
    """Normalize one costing entry.

    Profit is always recomputed from sales - cost. A stored profit that drifts
    beyond `profit_tolerance` is reported as a `profit_mismatch` issue.
    """

    issues: list[DataIssue] = []
    row_date = _date(record, issues)
    sales = _money(record, "total_customer", issues)
    cost = _money(record, "total_expenses", issues)

    stored_profit = to_decimal(record.get("profit"))
    if stored_profit is not None and abs(stored_profit - (sales - cost)) > profit_tolerance:
        issues.append(
            DataIssue(
                code="profit_mismatch",
                message=f"Stored profit {stored_profit} differs from sales - cost {sales - cost}",
                field="profit",
            )
        )

    return NormalizedRow(
        date=row_date,
        source_kind=SourceKind.COSTING,
        rep=_text(record.get("rep")) or DEFAULT_COSTING_REP,
        customer=_text(record.get("customer")) or DEFAULT_CUSTOMER,
        job_number=_text(record.get("job_number")),
        invoice_number=_text(record.get("invoice_number")),
        job_type=_text(record.get("job_description")) or DEFAULT_JOB_TYPE,
        sales=sales,
        cost=cost,
        source_index=index,
        issues=tuple(issues),
    )


def normalize_income(record: SourceRecord, *, kind: SourceKind, index: int = 0) -> NormalizedRow:
    """Normalize one rental or SLA income record; these carry no cost component."""

    if kind is SourceKind.COSTING:
        raise ValueError("Costing entries are normalized with normalize_costing_entry")

    issues: list[DataIssue] = []
    row_date = _date(record, issues)
    sales = _money(record, "amount", issues)

    return NormalizedRow(
        date=row_date,
        source_kind=kind,
        rep=_text(record.get("rep")) or DEFAULT_INCOME_REP,
        customer=_text(record.get("customer")) or DEFAULT_CUSTOMER,
        job_number=_text(record.get("job_number")),
        invoice_number=_text(record.get("invoice_number")),
        job_type=kind.value,
        sales=sales,
        cost=ZERO,
        source_index=index,
        issues=tuple(issues),
    )


def _normalize_many(
    records: Sequence[SourceRecord],
    *,
    kind: SourceKind,
    profit_tolerance: Decimal,
) -> list[NormalizedRow]:
    if kind is SourceKind.COSTING:
        return [
            normalize_costing_entry(record, index=index, profit_tolerance=profit_tolerance)
            for index, record in enumerate(records)
        ]
    return [normalize_income(record, kind=kind, index=index) for index, record in enumerate(records)]


def normalize_records(
    sources: ReportSources,
    *,
    profit_tolerance: Decimal = DEFAULT_PROFIT_TOLERANCE,
) -> list[NormalizedRow]:
    """Flatten the three source collections into one normalized row list.

    Costing rows come first, then rental, then SLA, each in source order.
    """

    rows = [
        *_normalize_many(sources.costing, kind=SourceKind.COSTING, profit_tolerance=profit_tolerance),
        *_normalize_many(sources.rental, kind=SourceKind.RENTAL, profit_tolerance=profit_tolerance),
        *_normalize_many(sources.sla, kind=SourceKind.SLA, profit_tolerance=profit_tolerance),
    ]

    rows_with_issues = [row for row in rows if row.issues]
    if rows_with_issues:
        logger.debug(
            "Normalized %d rows, %d with data issues: %s",
            len(rows),
            len(rows_with_issues),
            sorted({issue.code for row in rows_with_issues for issue in row.issues}),
        )
    return rows
