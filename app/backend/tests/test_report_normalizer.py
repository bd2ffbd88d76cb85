from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from app.services.report_normalizer import (
    normalize_costing_entry,
    normalize_income,
    normalize_records,
    to_date_key,
    to_decimal,
)
from app.services.report_types import NormalizedRow, ReportSources, SourceKind


def test_rental_income_has_zero_cost_and_full_margin() -> None:
    rows = normalize_records(ReportSources(rental=[{"date": "2025-11-01", "amount": 500}]))

    assert len(rows) == 1
    row = rows[0]
    assert row.source_kind is SourceKind.RENTAL
    assert row.sales == Decimal("500")
    assert row.cost == Decimal("0")
    assert row.profit == Decimal("500")
    assert row.margin == Decimal("100")
    assert row.job_type == "Rental"
    assert row.rep == "SLA/Rental"


def test_sla_income_job_type_and_rep_defaults() -> None:
    row = normalize_income({"date": "2025-11-02", "amount": "75.50"}, kind=SourceKind.SLA)

    assert row.job_type == "SLA"
    assert row.rep == "SLA/Rental"
    assert row.customer == "Unknown Customer"
    assert row.profit == Decimal("75.50")


def test_income_normalizer_rejects_costing_kind() -> None:
    with pytest.raises(ValueError):
        normalize_income({"amount": 1}, kind=SourceKind.COSTING)


def test_costing_defaults_for_missing_rep_and_job_description() -> None:
    row = normalize_costing_entry({"date": "2025-11-01", "total_customer": 10, "total_expenses": 4})

    assert row.rep == "Unknown"
    assert row.job_type == "Other"
    assert row.profit == Decimal("6")


def test_costing_profit_is_recomputed_and_mismatch_flagged() -> None:
    row = normalize_costing_entry(
        {
            "date": "2025-11-01",
            "total_customer": "100.00",
            "total_expenses": "40.00",
            "profit": "75.00",
            "margin": "75.00",
        }
    )

    assert row.profit == Decimal("60.00")
    assert row.margin == Decimal("60")
    assert [issue.code for issue in row.issues] == ["profit_mismatch"]


def test_costing_profit_within_tolerance_is_not_flagged() -> None:
    row = normalize_costing_entry(
        {"date": "2025-11-01", "total_customer": "100.00", "total_expenses": "40.00", "profit": "60.01"}
    )

    assert row.issues == ()


def test_zero_sales_row_has_zero_margin() -> None:
    row = normalize_costing_entry({"date": "2025-11-01", "total_customer": 0, "total_expenses": 25})

    assert row.margin == Decimal("0")
    assert row.profit == Decimal("-25")


def test_missing_date_is_kept_with_warning() -> None:
    row = normalize_income({"amount": "10"}, kind=SourceKind.RENTAL)

    assert row.date is None
    assert [issue.code for issue in row.issues] == ["missing_value"]


def test_missing_amounts_default_to_zero_with_warnings() -> None:
    row = normalize_costing_entry({"date": "2025-11-01", "total_customer": None, "total_expenses": "abc"})

    assert row.sales == Decimal("0")
    assert row.cost == Decimal("0")
    assert {issue.code for issue in row.issues} == {"missing_value", "invalid_amount"}


def test_sources_concatenate_costing_then_rental_then_sla(sample_rows: list[NormalizedRow]) -> None:
    assert [row.source_kind for row in sample_rows] == [
        SourceKind.COSTING,
        SourceKind.COSTING,
        SourceKind.COSTING,
        SourceKind.RENTAL,
        SourceKind.SLA,
    ]
    assert [row.job_number for row in sample_rows[:3]] == ["J-100", "J-101", "J-102"]
    assert [row.source_index for row in sample_rows] == [0, 1, 2, 0, 0]


def test_profit_invariant_holds_for_every_row(sample_rows: list[NormalizedRow]) -> None:
    for row in sample_rows:
        assert row.profit == row.sales - row.cost


def test_empty_sources_produce_no_rows() -> None:
    assert normalize_records(ReportSources()) == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2025-11-05", "2025-11-05"),
        ("2025-11-05T23:30:00+00:00", "2025-11-05"),
        ("2025-11-05T00:30:00-05:00", "2025-11-05"),
        (date(2025, 1, 2), "2025-01-02"),
        (datetime(2025, 1, 2, 22, 15), "2025-01-02"),
        ("2025-02-30", None),
        ("05/11/2025", None),
        ("", None),
        (None, None),
    ],
)
def test_to_date_key(value: object, expected: str | None) -> None:
    assert to_date_key(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1,234.50", Decimal("1234.50")),
        ("R 99.90", Decimal("99.90")),
        (12, Decimal("12")),
        (0.1, Decimal("0.1")),
        ("NaN", None),
        ("n/a", None),
        (True, None),
        (None, None),
    ],
)
def test_to_decimal(value: object, expected: Decimal | None) -> None:
    assert to_decimal(value) == expected
