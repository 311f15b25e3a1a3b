from datetime import date

import pytest
from sqlalchemy import create_engine, event, StaticPool
from sqlalchemy.orm import sessionmaker

from app.database import Base, get_db
from app.main import app
from app.models import Driver, DriverType, SafetyCategory, ScorecardMetric, Truck

from fastapi.testclient import TestClient


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory SQLite engine for each test.
    Uses StaticPool so all threads share the same connection."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a session bound to the test engine."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine, db_session):
    """FastAPI test client with overridden DB dependency."""
    def _override_get_db():
        session = sessionmaker(bind=db_engine)()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def fleet(db_session):
    """Two trucks, two drivers of one type, nobody assigned."""
    linehaul = DriverType(driver_type="Linehaul")
    t1 = Truck(unit_number="T-101", year=2021, status="available")
    t2 = Truck(unit_number="T-102", year=2023, status="available")
    db_session.add_all([linehaul, t1, t2])
    db_session.flush()
    d1 = Driver(driver_code="D-001", first_name="Ana", last_name="Silva",
                start_date=date(2022, 3, 1), driver_type_id=linehaul.driver_type_id)
    d2 = Driver(driver_code="D-002", first_name="Ben", last_name="Okafor",
                start_date=date(2023, 7, 15), driver_type_id=linehaul.driver_type_id)
    db_session.add_all([d1, d2])
    db_session.commit()
    return {"type": linehaul, "t1": t1, "t2": t2, "d1": d1, "d2": d2}


@pytest.fixture(scope="function")
def scoring(db_session):
    """One safety category plus one metric per scorecard category."""
    speeding = SafetyCategory(code="SPD", description="Speeding", scoring_system=1, p_i_score=2)
    metrics = {
        "SAFETY": ScorecardMetric(sc_category="SAFETY", sc_description="No incidents"),
        "MAINTENANCE": ScorecardMetric(sc_category="MAINTENANCE", sc_description="Pre-trip done"),
        "DISPATCH": ScorecardMetric(sc_category="DISPATCH", sc_description="On-time"),
    }
    db_session.add(speeding)
    db_session.add_all(metrics.values())
    db_session.commit()
    return {"category": speeding, "metrics": metrics}
