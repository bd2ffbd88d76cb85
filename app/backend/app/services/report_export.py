"""CSV and XLSX writers for assembled report views."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from io import BytesIO
from typing import Any

from openpyxl import Workbook

from app.services.report_types import ReportView

EXPORT_FORMATS = frozenset({"csv", "xlsx"})


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def export_table(view: ReportView) -> dict[str, Any]:
    """The `{headers, rows}` shape export writers consume; keys match row keys."""

    return {"headers": view.headers, "rows": view.rows}


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    return value


def to_csv_bytes(view: ReportView) -> bytes:
    sio = io.StringIO()
    writer = csv.writer(sio)
    writer.writerow([header["label"] for header in view.headers])
    for row in view.rows:
        writer.writerow([_cell(row.get(header["key"])) for header in view.headers])
    return sio.getvalue().encode("utf-8")


def to_xlsx_bytes(view: ReportView) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    # Sheet titles are capped at 31 characters.
    sheet.title = view.title[:31]

    sheet.append([header["label"] for header in view.headers])
    for row in view.rows:
        sheet.append([_cell(row.get(header["key"])) for header in view.headers])

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def export_view(view: ReportView, *, format_name: str, base_filename: str) -> ExportFilePayload:
    normalized_format = format_name.strip().lower()
    if normalized_format not in EXPORT_FORMATS:
        raise ValueError("format must be one of: csv, xlsx.")

    if normalized_format == "csv":
        return ExportFilePayload(
            media_type="text/csv; charset=utf-8",
            filename=f"{base_filename}.csv",
            content=to_csv_bytes(view),
        )
    return ExportFilePayload(
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=f"{base_filename}.xlsx",
        content=to_xlsx_bytes(view),
    )
