"""ORM entities for the costing, rental income and SLA income tables."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class CostingEntry(Base):
    __tablename__ = "costing_entries"
    __table_args__ = (
        Index("ix_costing_entries_date", "date"),
        Index("ix_costing_entries_rep", "rep"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    job_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    invoice_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    job_description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rep: Mapped[str | None] = mapped_column(String(128), nullable=True)
    total_customer: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_expenses: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    profit: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    margin: Mapped[Decimal | None] = mapped_column(Numeric(9, 2), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)


class RentalEquipment(Base):
    __tablename__ = "rental_equipment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class RentalIncome(Base):
    __tablename__ = "rental_incomes"
    __table_args__ = (Index("ix_rental_incomes_date", "date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    rental_equipment_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("rental_equipment.id"), nullable=True
    )
    customer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)

    equipment: Mapped[RentalEquipment | None] = relationship(lazy="joined")


class SlaUnit(Base):
    __tablename__ = "sla_units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    unit_number: Mapped[str] = mapped_column(String(64), nullable=False)


class SlaIncome(Base):
    __tablename__ = "sla_incomes"
    __table_args__ = (Index("ix_sla_incomes_date", "date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    sla_unit_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("sla_units.id"), nullable=True)
    customer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)

    unit: Mapped[SlaUnit | None] = relationship(lazy="joined")
