"""Export endpoint for monthly report views."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.api.routes.reports import report_filter_state, report_sort_state
from app.db.dependencies import get_db_session
from app.services.monthly_report_service import MonthlyReportService
from app.services.report_types import FilterState, SortState

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> MonthlyReportService:
    return MonthlyReportService(db)


@router.get("/monthly/{report_kind}")
def export_monthly_report(
    report_kind: str,
    format: str = Query(default="xlsx"),
    year: int | None = Query(default=None),
    month: int | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    filter_state: FilterState = Depends(report_filter_state),
    sort_state: SortState | None = Depends(report_sort_state),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    exported = service.export_report(
        report_kind=report_kind,
        format_name=format,
        filter_state=filter_state,
        sort_state=sort_state,
        year=year,
        month=month,
        start_date=start_date,
        end_date=end_date,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
