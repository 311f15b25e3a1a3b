from datetime import date
from unittest.mock import patch

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from app.config import _parse_cors_origins
from app.models import SafetyEvent, ScorecardEvent


class TestHealthz:
    def test_ok(self, client):
        resp = client.get("/api/healthz")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert "T" in data["time"]

    def test_database_down_returns_503(self, client):
        with patch("sqlalchemy.orm.Session.execute", side_effect=OperationalError("SELECT 1", {}, Exception("gone"))):
            resp = client.get("/api/healthz")
        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"
        assert "gone" in resp.json()["error"]


class TestBootstrap:
    def test_empty_database(self, client):
        resp = client.get("/api/bootstrap")
        assert resp.status_code == 200
        assert resp.json() == {
            "trucks": [],
            "driverTypes": [],
            "drivers": [],
            "safetyCategories": [],
            "scoreCard": [],
            "safetyEvents": [],
            "scoreCardEvents": [],
        }

    def test_collections_populated(self, client, fleet, scoring):
        data = client.get("/api/bootstrap").json()
        assert [t["unit_number"] for t in data["trucks"]] == ["T-101", "T-102"]
        assert [d["driver_code"] for d in data["drivers"]] == ["D-001", "D-002"]
        assert data["driverTypes"][0]["driver_type"] == "Linehaul"
        assert data["safetyCategories"][0]["code"] == "SPD"
        assert {m["sc_category"] for m in data["scoreCard"]} == {"SAFETY", "MAINTENANCE", "DISPATCH"}

    def test_unreadable_days_are_skipped(self, client, db_session, fleet, scoring):
        d1, d2 = fleet["d1"].driver_id, fleet["d2"].driver_id
        category_id = scoring["category"].category_id
        metric_id = scoring["metrics"]["SAFETY"].sc_category_id
        db_session.add_all([
            SafetyEvent(driver_id=d2, event_date=date(2024, 2, 1), category_id=category_id),
            SafetyEvent(driver_id=d2, event_date=date(2024, 2, 2), category_id=category_id, notes="corrupt"),
            ScorecardEvent(driver_id=d2, event_date=date(2024, 2, 1), sc_category_id=metric_id, sc_score=5),
            ScorecardEvent(driver_id=d2, event_date=date(2024, 2, 2), sc_category_id=metric_id, notes="corrupt"),
        ])
        db_session.commit()
        db_session.execute(text("UPDATE safety_events SET event_date = 'garbage' WHERE notes = 'corrupt'"))
        db_session.execute(text("UPDATE scorecard_events SET event_date = '2024-13-45' WHERE notes = 'corrupt'"))
        db_session.execute(text("UPDATE drivers SET start_date = '2024-99-99' WHERE driver_id = :id"), {"id": d1})
        db_session.commit()

        resp = client.get("/api/bootstrap")
        assert resp.status_code == 200
        data = resp.json()
        assert [d["driver_code"] for d in data["drivers"]] == ["D-002"]
        assert [e["event_date"] for e in data["safetyEvents"]] == ["2024-02-01"]
        assert [e["event_date"] for e in data["scoreCardEvents"]] == ["2024-02-01"]
        assert len(data["trucks"]) == 2


class TestAppSurface:
    def test_swagger_ui_served(self, client):
        resp = client.get("/swagger")
        assert resp.status_code == 200
        assert "swagger" in resp.text.lower()

    def test_cors_preflight(self, client):
        resp = client.options("/api/trucks", headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        })
        assert resp.status_code == 200
        assert "access-control-allow-origin" in resp.headers


class TestCorsOrigins:
    def test_unset_allows_any_origin(self):
        assert _parse_cors_origins(None) == ["*"]
        assert _parse_cors_origins(" , ") == ["*"]

    def test_comma_list(self):
        assert _parse_cors_origins(" https://a.example.com , https://b.example.com ") == [
            "https://a.example.com", "https://b.example.com",
        ]
