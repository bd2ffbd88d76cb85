from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.dependencies import get_db_session
import app.models.entities  # noqa: F401
from app.main import create_app
from app.services.report_normalizer import normalize_records
from app.services.report_types import NormalizedRow, ReportSources


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _costing_record(**overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "date": "2025-11-03",
        "job_number": "J-100",
        "invoice_number": "INV-100",
        "job_description": "Repair",
        "customer": "Acme",
        "rep": "Alice",
        "total_customer": "1000.00",
        "total_expenses": "600.00",
        "profit": "400.00",
        "margin": "40.00",
    }
    record.update(overrides)
    return record


@pytest.fixture()
def sample_sources() -> ReportSources:
    return ReportSources(
        costing=[
            _costing_record(),
            _costing_record(
                job_number="J-101",
                job_description="Service",
                rep="Bob",
                customer="Globex",
                total_customer="500.00",
                total_expenses="450.00",
                profit="50.00",
                date="2025-11-10",
            ),
            _costing_record(
                job_number="J-102",
                job_description="Repair",
                rep="Bob",
                customer="Acme",
                total_customer="300.00",
                total_expenses="100.00",
                profit="200.00",
                date="2025-11-20",
            ),
        ],
        rental=[{"date": "2025-11-05", "amount": "250.00", "rental_equipment_name": "Forklift", "customer": "Initech"}],
        sla=[{"date": "2025-11-07", "amount": "150.00", "sla_unit_name": "U-7", "customer": "Acme"}],
    )


@pytest.fixture()
def sample_rows(sample_sources: ReportSources) -> list[NormalizedRow]:
    return normalize_records(sample_sources)
