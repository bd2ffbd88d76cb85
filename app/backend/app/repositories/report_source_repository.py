"""Repository fetching the three report source collections for a date window."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.entities import CostingEntry, RentalIncome, SlaIncome
from app.services.report_types import ReportSources, SourceFetchError

logger = logging.getLogger(__name__)

SOURCE_NAMES = ("costing", "rental", "sla")


def _amount(value: Any) -> str | None:
    return str(value) if value is not None else None


class ReportSourceRepository:
    """Read-only queries over costing entries, rental incomes and SLA incomes."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Serialization ----------
    @staticmethod
    def serialize_costing_entry(row: CostingEntry) -> dict[str, Any]:
        return {
            "id": row.id,
            "date": row.date.isoformat() if row.date else None,
            "job_number": row.job_number,
            "invoice_number": row.invoice_number,
            "job_description": row.job_description,
            "customer": row.customer,
            "rep": row.rep,
            "total_customer": _amount(row.total_customer),
            "total_expenses": _amount(row.total_expenses),
            "profit": _amount(row.profit),
            "margin": _amount(row.margin),
        }

    @staticmethod
    def serialize_rental_income(row: RentalIncome) -> dict[str, Any]:
        return {
            "id": row.id,
            "date": row.date.isoformat() if row.date else None,
            "amount": _amount(row.amount),
            "rental_equipment_id": row.rental_equipment_id,
            "rental_equipment_name": row.equipment.name if row.equipment else None,
            "customer": row.customer,
        }

    @staticmethod
    def serialize_sla_income(row: SlaIncome) -> dict[str, Any]:
        return {
            "id": row.id,
            "date": row.date.isoformat() if row.date else None,
            "amount": _amount(row.amount),
            "sla_unit_id": row.sla_unit_id,
            "sla_unit_name": row.unit.unit_number if row.unit else None,
            "customer": row.customer,
        }

    # ---------- Queries ----------
    def list_costing_entries(self, start: date, end: date) -> list[dict[str, Any]]:
        rows = self.db.scalars(
            select(CostingEntry)
            .where(CostingEntry.date >= start, CostingEntry.date <= end)
            .order_by(CostingEntry.date.desc(), CostingEntry.id.asc())
        ).all()
        return [self.serialize_costing_entry(row) for row in rows]

    def list_rental_incomes(self, start: date, end: date) -> list[dict[str, Any]]:
        rows = self.db.scalars(
            select(RentalIncome)
            .where(RentalIncome.date >= start, RentalIncome.date <= end)
            .order_by(RentalIncome.date.desc(), RentalIncome.id.asc())
        ).all()
        return [self.serialize_rental_income(row) for row in rows]

    def list_sla_incomes(self, start: date, end: date) -> list[dict[str, Any]]:
        rows = self.db.scalars(
            select(SlaIncome)
            .where(SlaIncome.date >= start, SlaIncome.date <= end)
            .order_by(SlaIncome.date.desc(), SlaIncome.id.asc())
        ).all()
        return [self.serialize_sla_income(row) for row in rows]

    def fetch_sources(self, start: date, end: date) -> ReportSources:
        """Fetch all three collections; any failure fails the whole fetch.

        Every source is attempted so the raised `SourceFetchError` reports the
        outcome of each one.
        """

        loaders: dict[str, Callable[[date, date], list[dict[str, Any]]]] = {
            "costing": self.list_costing_entries,
            "rental": self.list_rental_incomes,
            "sla": self.list_sla_incomes,
        }
        fetched: dict[str, list[dict[str, Any]]] = {}
        errors: dict[str, str | None] = {name: None for name in SOURCE_NAMES}

        for name in SOURCE_NAMES:
            try:
                fetched[name] = loaders[name](start, end)
            except SQLAlchemyError as exc:
                self.db.rollback()
                errors[name] = str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc)
                logger.warning("Fetching %s records for %s..%s failed: %s", name, start, end, errors[name])

        failed = [name for name, error in errors.items() if error is not None]
        if failed:
            raise SourceFetchError(
                f"Failed to fetch monthly report data ({', '.join(failed)})",
                details=errors,
            )

        return ReportSources(costing=fetched["costing"], rental=fetched["rental"], sla=fetched["sla"])
