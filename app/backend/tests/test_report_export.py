from __future__ import annotations

import csv
import io

import pytest
from openpyxl import load_workbook

from app.services.report_assembler import build_report
from app.services.report_export import export_table, export_view, to_csv_bytes
from app.services.report_types import FilterState, NormalizedRow, ReportKind


def test_export_table_headers_match_row_keys(sample_rows: list[NormalizedRow]) -> None:
    table = export_table(build_report(sample_rows, ReportKind.SUMMARY_BY_REP))

    keys = [header["key"] for header in table["headers"]]
    assert keys == ["group", "sales", "cost", "profit", "margin", "count"]
    assert all(list(row) == keys for row in table["rows"])


def test_csv_export_writes_labels_then_rows(sample_rows: list[NormalizedRow]) -> None:
    view = build_report(sample_rows, ReportKind.SUMMARY_BY_REP)

    payload = export_view(view, format_name="csv", base_filename="summary_by_rep-2025-11")
    parsed = list(csv.reader(io.StringIO(payload.content.decode("utf-8"))))

    assert payload.filename == "summary_by_rep-2025-11.csv"
    assert payload.media_type.startswith("text/csv")
    assert parsed[0] == ["Rep", "Sales (R)", "Cost (R)", "Profit (R)", "Profit %", "Jobs"]
    assert parsed[1] == ["Alice", "1000.0", "600.0", "400.0", "40.0", "1"]
    assert len(parsed) == 4


def test_csv_export_leaves_missing_values_blank(sample_rows: list[NormalizedRow]) -> None:
    view = build_report(sample_rows, ReportKind.DETAILED_ENTRIES, FilterState(source_kinds=["Rental"]))

    parsed = list(csv.reader(io.StringIO(to_csv_bytes(view).decode("utf-8"))))

    # Job and invoice numbers do not exist on rental income.
    assert parsed[1][4:6] == ["", ""]
    assert parsed[1][1] == "Rental"


def test_xlsx_export_round_trips_through_openpyxl(sample_rows: list[NormalizedRow]) -> None:
    view = build_report(sample_rows, ReportKind.SUMMARY_BY_JOB_TYPE)

    payload = export_view(view, format_name="XLSX", base_filename="job-types")
    workbook = load_workbook(io.BytesIO(payload.content))
    sheet = workbook.active

    assert payload.filename == "job-types.xlsx"
    assert sheet.title == "Summary by Job Type"
    assert [cell.value for cell in sheet[1]] == ["Job Type", "Sales (R)", "Cost (R)", "Profit (R)", "Profit %", "Jobs"]
    assert [cell.value for cell in sheet[2]] == ["Repair", 1300, 700, 600, 46.15, 2]
    assert sheet.max_row == 5


def test_export_of_empty_view_keeps_header_row(sample_rows: list[NormalizedRow]) -> None:
    view = build_report(sample_rows, ReportKind.SUMMARY_BY_CUSTOMER, FilterState(customers={"Nobody"}))

    parsed = list(csv.reader(io.StringIO(to_csv_bytes(view).decode("utf-8"))))

    assert parsed == [["Customer", "Sales (R)", "Cost (R)", "Profit (R)", "Profit %", "Jobs"]]


def test_unknown_export_format_is_rejected(sample_rows: list[NormalizedRow]) -> None:
    view = build_report(sample_rows, ReportKind.COVER)

    with pytest.raises(ValueError, match="format must be one of"):
        export_view(view, format_name="pdf", base_filename="cover")
