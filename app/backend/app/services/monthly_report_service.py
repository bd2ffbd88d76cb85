"""Monthly report service: fetch sources, normalize, and assemble report views."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.repositories.report_source_repository import ReportSourceRepository
from app.services.report_assembler import ReportOptions, build_report, build_report_book
from app.services.report_export import ExportFilePayload, export_view
from app.services.report_filters import filter_options
from app.services.report_normalizer import normalize_records
from app.services.report_types import (
    FilterState,
    NormalizedRow,
    ReportKind,
    ReportSources,
    SortState,
    SourceFetchError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReportWindow:
    start: date
    end: date

    @property
    def is_calendar_month(self) -> bool:
        last_day = calendar.monthrange(self.start.year, self.start.month)[1]
        return (
            self.start.day == 1
            and self.end.year == self.start.year
            and self.end.month == self.start.month
            and self.end.day == last_day
        )

    @property
    def label(self) -> str:
        if self.is_calendar_month:
            return f"{calendar.month_name[self.start.month]} {self.start.year}"
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


def resolve_report_window(
    *,
    year: int | None = None,
    month: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    today: date | None = None,
) -> ReportWindow:
    """Resolve the fetch window.

    Explicit start/end dates win; any missing bound falls back to the
    calendar month given by `year`/`month` (default: the current month).
    """

    reference = today or date.today()
    resolved_year = year if year is not None else reference.year
    resolved_month = month if month is not None else reference.month
    if not 1 <= resolved_month <= 12:
        raise ValueError("month must be between 1 and 12.")

    last_day = calendar.monthrange(resolved_year, resolved_month)[1]
    start = start_date or date(resolved_year, resolved_month, 1)
    end = end_date or date(resolved_year, resolved_month, last_day)
    if end < start:
        raise ValueError("end_date must be greater than or equal to start_date.")
    return ReportWindow(start=start, end=end)


def parse_report_kind(value: str) -> ReportKind:
    normalized = value.strip().lower().replace("-", "_")
    try:
        return ReportKind(normalized)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Unknown report kind.",
        ) from None


class MonthlyReportService:
    """Service building monthly report views from the three source tables."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ReportSourceRepository(db)
        self.settings = get_settings()

    # ---------- Window / sources ----------
    @staticmethod
    def _window(
        *,
        year: int | None,
        month: int | None,
        start_date: date | None,
        end_date: date | None,
    ) -> ReportWindow:
        try:
            return resolve_report_window(year=year, month=month, start_date=start_date, end_date=end_date)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from None

    def _fetch(self, window: ReportWindow) -> ReportSources:
        try:
            return self.repo.fetch_sources(window.start, window.end)
        except SourceFetchError as exc:
            # No partial report: one failed source fails the whole request.
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"error": exc.message, "details": exc.details},
            ) from exc

    def _rows(self, window: ReportWindow) -> list[NormalizedRow]:
        sources = self._fetch(window)
        rows = normalize_records(sources, profit_tolerance=self.settings.profit_tolerance)
        logger.debug("Loaded %d source records for %s", sources.total_records, window.label)
        return rows

    def _options(self, window: ReportWindow) -> ReportOptions:
        return ReportOptions(
            top_rep_count=self.settings.report_top_rep_count,
            period_label=window.label,
            currency_symbol=self.settings.currency_symbol,
        )

    @staticmethod
    def _range_payload(window: ReportWindow) -> dict[str, str]:
        return {"start": window.start.isoformat(), "end": window.end.isoformat(), "label": window.label}

    def source_payload(
        self,
        *,
        year: int | None = None,
        month: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[str, object]:
        window = self._window(year=year, month=month, start_date=start_date, end_date=end_date)
        sources = self._fetch(window)
        return {
            "ok": True,
            "range": self._range_payload(window),
            "costing": list(sources.costing),
            "rental": list(sources.rental),
            "sla": list(sources.sla),
        }

    # ---------- Reports ----------
    def report(
        self,
        *,
        report_kind: str,
        filter_state: FilterState,
        sort_state: SortState | None = None,
        year: int | None = None,
        month: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[str, Any]:
        kind = parse_report_kind(report_kind)
        window = self._window(year=year, month=month, start_date=start_date, end_date=end_date)
        rows = self._rows(window)
        try:
            view = build_report(rows, kind, filter_state, sort_state, options=self._options(window))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from None
        return {"range": self._range_payload(window), **view.to_dict()}

    def report_book(
        self,
        *,
        filter_state: FilterState,
        page: int = 1,
        year: int | None = None,
        month: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[str, Any]:
        window = self._window(year=year, month=month, start_date=start_date, end_date=end_date)
        rows = self._rows(window)
        try:
            book = build_report_book(rows, filter_state, options=self._options(window))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from None

        pager = book.pager(page)
        return {
            "range": self._range_payload(window),
            "current_page": pager.current,
            "has_previous": pager.has_previous,
            "has_next": pager.has_next,
            **book.to_dict(),
        }

    def filter_options(
        self,
        *,
        year: int | None = None,
        month: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[str, Any]:
        window = self._window(year=year, month=month, start_date=start_date, end_date=end_date)
        return {"range": self._range_payload(window), **filter_options(self._rows(window))}

    # ---------- Exports ----------
    def export_report(
        self,
        *,
        report_kind: str,
        format_name: str,
        filter_state: FilterState,
        sort_state: SortState | None = None,
        year: int | None = None,
        month: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ExportFilePayload:
        kind = parse_report_kind(report_kind)
        window = self._window(year=year, month=month, start_date=start_date, end_date=end_date)
        rows = self._rows(window)
        base_filename = f"{kind.value}-{window.start.isoformat()}-{window.end.isoformat()}"
        try:
            view = build_report(rows, kind, filter_state, sort_state, options=self._options(window))
            return export_view(view, format_name=format_name, base_filename=base_filename)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from None
