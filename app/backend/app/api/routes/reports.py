"""Monthly report endpoints: raw sources, single views, and the paged report."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.dependencies import get_db_session
from app.services.monthly_report_service import MonthlyReportService
from app.services.report_types import FilterState, NumericRange, SortState, SourceKind

router = APIRouter(prefix="/reports", tags=["reports"])


def _service(db: Session) -> MonthlyReportService:
    return MonthlyReportService(db)


def report_filter_state(
    date_from: date | None = None,
    date_to: date | None = None,
    margin_min: Decimal | None = None,
    margin_max: Decimal | None = None,
    rep: list[str] | None = Query(default=None),
    customer: list[str] | None = Query(default=None),
    job_type: list[str] | None = Query(default=None),
    job_number: list[str] | None = Query(default=None),
    source_kind: list[SourceKind] | None = Query(default=None),
    job_number_query: str = "",
) -> FilterState:
    numeric_ranges: tuple[NumericRange, ...] = ()
    if margin_min is not None or margin_max is not None:
        numeric_ranges = (NumericRange(field="margin", minimum=margin_min, maximum=margin_max),)
    return FilterState(
        date_from=date_from.isoformat() if date_from else None,
        date_to=date_to.isoformat() if date_to else None,
        numeric_ranges=numeric_ranges,
        reps=rep or (),
        customers=customer or (),
        job_types=job_type or (),
        job_numbers=job_number or (),
        source_kinds=source_kind or (),
        job_number_query=job_number_query,
    )


def report_sort_state(
    sort_key: str | None = None,
    sort_direction: Literal["asc", "desc"] = "asc",
) -> SortState | None:
    if sort_key is None:
        return None
    return SortState(key=sort_key, direction=sort_direction)


@router.get("/monthly/sources")
def get_monthly_sources(
    year: int | None = None,
    month: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).source_payload(year=year, month=month, start_date=start_date, end_date=end_date)


@router.get("/monthly/filter-options")
def get_monthly_filter_options(
    year: int | None = None,
    month: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).filter_options(year=year, month=month, start_date=start_date, end_date=end_date)


@router.get("/monthly")
def get_monthly_report_book(
    year: int | None = None,
    month: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = 1,
    filter_state: FilterState = Depends(report_filter_state),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).report_book(
        filter_state=filter_state,
        page=page,
        year=year,
        month=month,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/monthly/{report_kind}")
def get_monthly_report(
    report_kind: str,
    year: int | None = None,
    month: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    filter_state: FilterState = Depends(report_filter_state),
    sort_state: SortState | None = Depends(report_sort_state),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).report(
        report_kind=report_kind,
        filter_state=filter_state,
        sort_state=sort_state,
        year=year,
        month=month,
        start_date=start_date,
        end_date=end_date,
    )
