from sqlalchemy import text

from app.models import Truck, TruckHistory


class TestTruckCrud:
    def test_create_and_list(self, client):
        resp = client.post("/api/trucks", json={"unit_number": "T-500", "year": 2024, "status": "maintenance"})
        assert resp.status_code == 201
        created = resp.json()
        assert created["truck_id"] > 0
        assert created["status"] == "maintenance"

        listing = client.get("/api/trucks").json()
        assert [t["unit_number"] for t in listing] == ["T-500"]

    def test_create_as_assigned_is_stored_available(self, client, db_session):
        resp = client.post("/api/trucks", json={"unit_number": "T-501", "year": 2020, "status": "assigned"})
        assert resp.status_code == 201
        assert resp.json()["status"] == "available"

    def test_invalid_status_rejected(self, client):
        resp = client.post("/api/trucks", json={"unit_number": "T-502", "year": 2020, "status": "parked"})
        assert resp.status_code == 422

    def test_update(self, client, fleet):
        t1 = fleet["t1"]
        resp = client.put(f"/api/trucks/{t1.truck_id}", json={
            "unit_number": "T-101", "year": 2022, "status": "maintenance",
        })
        assert resp.status_code == 200
        assert resp.json()["year"] == 2022
        assert resp.json()["status"] == "maintenance"

    def test_update_held_truck_stays_assigned(self, client, db_session, fleet):
        t1, d1 = fleet["t1"], fleet["d1"]
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})

        resp = client.put(f"/api/trucks/{t1.truck_id}", json={
            "unit_number": "T-101", "year": 2021, "status": "maintenance",
        })
        assert resp.json()["status"] == "assigned"

    def test_update_unknown_truck_echoes_request(self, client):
        resp = client.put("/api/trucks/4242", json={"unit_number": "GHOST", "year": 2019, "status": "available"})
        assert resp.status_code == 200
        assert resp.json() == {"truck_id": 4242, "unit_number": "GHOST", "year": 2019, "status": "available"}

    def test_duplicate_unit_number_is_server_error(self, client, fleet):
        resp = client.post("/api/trucks", json={"unit_number": "T-101", "year": 2020})
        assert resp.status_code == 500

    def test_delete_unknown_truck_is_noop(self, client):
        assert client.delete("/api/trucks/777").status_code == 204

    def test_unreadable_row_is_skipped(self, client, db_session, fleet):
        db_session.execute(text(
            "INSERT INTO trucks (unit_number, year, status, created_at, updated_at) "
            "VALUES ('BROKEN', 'not-a-year', 'available', '2024-01-01 00:00:00', '2024-01-01 00:00:00')"
        ))
        db_session.commit()

        resp = client.get("/api/trucks")
        assert resp.status_code == 200
        units = [t["unit_number"] for t in resp.json()]
        assert units == ["T-101", "T-102"]


class TestTruckHistory:
    def test_newest_first(self, client, db_session, fleet):
        t1, d1, d2 = fleet["t1"], fleet["d1"], fleet["d2"]
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d2.driver_id})
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": None})

        resp = client.get(f"/api/trucks/{t1.truck_id}/history")
        assert resp.status_code == 200
        rows = resp.json()
        assert [r["type"] for r in rows] == ["status_change", "assignment", "assignment"]
        assert rows[1]["driver_id"] == d2.driver_id
        # local time with seconds and an offset
        assert "T" in rows[0]["date"]
        assert rows[0]["date"][-6] in "+-"

    def test_unknown_truck_has_empty_history(self, client):
        resp = client.get("/api/trucks/31337/history")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_history_not_written_by_plain_edit(self, client, db_session, fleet):
        t1 = fleet["t1"]
        client.put(f"/api/trucks/{t1.truck_id}", json={"unit_number": "T-101", "year": 2021, "status": "maintenance"})
        assert db_session.query(TruckHistory).count() == 0
        db_session.expire_all()
        assert db_session.get(Truck, t1.truck_id).status == "maintenance"
