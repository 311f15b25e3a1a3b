from app.models import Driver, Truck, TruckHistory


def _history(db, truck_id):
    db.expire_all()
    return (
        db.query(TruckHistory)
        .filter(TruckHistory.truck_id == truck_id)
        .order_by(TruckHistory.truck_history_id)
        .all()
    )


class TestAssignDriver:
    """POST /api/trucks/{id}/assign-driver"""

    def test_assign_sets_status_and_writes_history(self, client, db_session, fleet):
        t1, d1 = fleet["t1"], fleet["d1"]
        resp = client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})
        assert resp.status_code == 200
        data = resp.json()
        assert data["truck"]["status"] == "assigned"
        assert data["driver"]["truck_id"] == t1.truck_id

        rows = _history(db_session, t1.truck_id)
        assert len(rows) == 1
        assert rows[0].type == "assignment"
        assert rows[0].driver_id == d1.driver_id
        assert rows[0].notes.startswith(f"Assigned driver ID {d1.driver_id}")

    def test_unassign_with_null_driver(self, client, db_session, fleet):
        t1, d1 = fleet["t1"], fleet["d1"]
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})

        resp = client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": None})
        assert resp.status_code == 200
        assert resp.json()["truck"]["status"] == "available"
        assert resp.json()["driver"] is None

        db_session.expire_all()
        assert db_session.get(Driver, d1.driver_id).truck_id is None
        rows = _history(db_session, t1.truck_id)
        assert [r.type for r in rows] == ["assignment", "status_change"]
        assert rows[-1].notes == "Unassigned driver"
        assert rows[-1].driver_id is None

    def test_reassign_replaces_previous_holder(self, client, db_session, fleet):
        t1, d1, d2 = fleet["t1"], fleet["d1"], fleet["d2"]
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})
        resp = client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d2.driver_id})
        assert resp.status_code == 200

        db_session.expire_all()
        holders = db_session.query(Driver).filter(Driver.truck_id == t1.truck_id).all()
        assert [d.driver_id for d in holders] == [d2.driver_id]
        assert db_session.get(Driver, d1.driver_id).truck_id is None
        assert db_session.get(Truck, t1.truck_id).status == "assigned"

    def test_moving_driver_frees_previous_truck(self, client, db_session, fleet):
        t1, t2, d1 = fleet["t1"], fleet["t2"], fleet["d1"]
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})
        client.post(f"/api/trucks/{t2.truck_id}/assign-driver", json={"driverId": d1.driver_id})

        db_session.expire_all()
        assert db_session.get(Truck, t1.truck_id).status == "available"
        assert db_session.get(Truck, t2.truck_id).status == "assigned"
        assert db_session.get(Driver, d1.driver_id).truck_id == t2.truck_id

        old_rows = _history(db_session, t1.truck_id)
        assert old_rows[-1].type == "status_change"
        assert "T-102" in old_rows[-1].notes

    def test_unknown_truck_404(self, client, fleet):
        resp = client.post("/api/trucks/9999/assign-driver", json={"driverId": fleet["d1"].driver_id})
        assert resp.status_code == 404

    def test_unknown_driver_404_leaves_truck_untouched(self, client, db_session, fleet):
        t1 = fleet["t1"]
        resp = client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": 9999})
        assert resp.status_code == 404
        assert "Driver not found" in resp.json()["detail"]
        assert _history(db_session, t1.truck_id) == []
        assert db_session.get(Truck, t1.truck_id).status == "available"


class TestAssignTruck:
    """POST /api/drivers/{id}/assign-truck"""

    def test_assign_from_driver_side(self, client, db_session, fleet):
        t2, d2 = fleet["t2"], fleet["d2"]
        resp = client.post(f"/api/drivers/{d2.driver_id}/assign-truck", json={"truckId": t2.truck_id})
        assert resp.status_code == 200
        assert resp.json()["truck"]["status"] == "assigned"
        assert resp.json()["driver"]["truck_id"] == t2.truck_id
        assert _history(db_session, t2.truck_id)[0].type == "assignment"

    def test_null_truck_frees_current_one(self, client, db_session, fleet):
        t2, d2 = fleet["t2"], fleet["d2"]
        client.post(f"/api/drivers/{d2.driver_id}/assign-truck", json={"truckId": t2.truck_id})
        resp = client.post(f"/api/drivers/{d2.driver_id}/assign-truck", json={"truckId": None})
        assert resp.status_code == 200
        assert resp.json()["truck"]["status"] == "available"
        assert resp.json()["driver"]["truck_id"] is None

    def test_unknown_driver_404(self, client, fleet):
        resp = client.post("/api/drivers/9999/assign-truck", json={"truckId": fleet["t1"].truck_id})
        assert resp.status_code == 404


class TestDriverUpdateAssignment:
    """Changing truck_id through PUT /api/drivers/{id} behaves like assign-driver."""

    def _body(self, driver, **overrides):
        body = {
            "driver_code": driver.driver_code,
            "first_name": driver.first_name,
            "last_name": driver.last_name,
            "start_date": driver.start_date.isoformat(),
            "driver_type_id": driver.driver_type_id,
        }
        body.update(overrides)
        return body

    def test_update_with_truck_writes_history(self, client, db_session, fleet):
        t1, d1 = fleet["t1"], fleet["d1"]
        resp = client.put(f"/api/drivers/{d1.driver_id}", json=self._body(d1, truck_id=t1.truck_id))
        assert resp.status_code == 200
        assert resp.json()["truck_id"] == t1.truck_id

        db_session.expire_all()
        assert db_session.get(Truck, t1.truck_id).status == "assigned"
        rows = _history(db_session, t1.truck_id)
        assert len(rows) == 1 and rows[0].type == "assignment"

    def test_update_takes_truck_from_other_driver(self, client, db_session, fleet):
        t1, d1, d2 = fleet["t1"], fleet["d1"], fleet["d2"]
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})
        client.put(f"/api/drivers/{d2.driver_id}", json=self._body(d2, truck_id=t1.truck_id))

        db_session.expire_all()
        assert db_session.query(Driver).filter(Driver.truck_id == t1.truck_id).count() == 1
        assert db_session.get(Driver, d2.driver_id).truck_id == t1.truck_id

    def test_clearing_truck_releases_it(self, client, db_session, fleet):
        t1, d1 = fleet["t1"], fleet["d1"]
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})
        client.put(f"/api/drivers/{d1.driver_id}", json=self._body(d1, truck_id=None))

        db_session.expire_all()
        assert db_session.get(Truck, t1.truck_id).status == "available"
        assert _history(db_session, t1.truck_id)[-1].type == "status_change"

    def test_unchanged_truck_writes_no_history(self, client, db_session, fleet):
        t1, d1 = fleet["t1"], fleet["d1"]
        client.post(f"/api/trucks/{t1.truck_id}/assign-driver", json={"driverId": d1.driver_id})
        client.put(f"/api/drivers/{d1.driver_id}", json=self._body(d1, truck_id=t1.truck_id, first_name="Anna"))

        assert len(_history(db_session, t1.truck_id)) == 1
        assert db_session.get(Driver, d1.driver_id).first_name == "Anna"

    def test_update_with_unknown_truck_404(self, client, fleet):
        d1 = fleet["d1"]
        resp = client.put(f"/api/drivers/{d1.driver_id}", json=self._body(d1, truck_id=9999))
        assert resp.status_code == 404


class TestDeletes:
    def test_delete_truck_detaches_driver(self, client, db_session, fleet):
        truck_id, driver_id = fleet["t1"].truck_id, fleet["d1"].driver_id
        client.post(f"/api/trucks/{truck_id}/assign-driver", json={"driverId": driver_id})

        resp = client.delete(f"/api/trucks/{truck_id}")
        assert resp.status_code == 204

        db_session.expunge_all()
        assert db_session.get(Truck, truck_id) is None
        assert db_session.get(Driver, driver_id).truck_id is None
        # history outlives the truck
        assert len(_history(db_session, truck_id)) == 1

    def test_delete_driver_frees_truck(self, client, db_session, fleet):
        truck_id, driver_id = fleet["t1"].truck_id, fleet["d1"].driver_id
        client.post(f"/api/trucks/{truck_id}/assign-driver", json={"driverId": driver_id})

        resp = client.delete(f"/api/drivers/{driver_id}")
        assert resp.status_code == 204

        db_session.expunge_all()
        assert db_session.get(Driver, driver_id) is None
        assert db_session.get(Truck, truck_id).status == "available"
        assert "driver deleted" in _history(db_session, truck_id)[-1].notes
