"""Truck <-> driver pairing.

Every write that can change which driver holds which truck goes through
`AssignmentCoordinator`, so the one-driver-per-truck rule, the derived truck
status and the truck history stay consistent. Each operation:

1. works out the trucks and drivers it will touch,
2. takes the in-process lock for each of them (sorted, so two operations
   never wait on each other in opposite order),
3. re-reads that set under the locks and starts over if it moved,
4. does its work and commits once.

The truck row is also read FOR UPDATE so separate worker processes sharing a
database serialize on the row lock.
"""
import threading
from contextlib import contextmanager
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import Driver, Truck
from app.services.history_service import record_truck_event

logger = get_logger(__name__)

LOCK_ATTEMPTS = 5

DRIVER_FIELDS = ("driver_code", "first_name", "last_name", "start_date", "driver_type_id", "profile_pic")
TRUCK_FIELDS = ("unit_number", "year")


class NotFoundError(LookupError):
    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class AssignmentConflictError(RuntimeError):
    pass


class KeyedLocks:
    """One lock per ("truck" | "driver", id).

    An entry lives only while some thread holds or waits for it, so the table
    does not grow with every id ever touched.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, holders + waiters]
        self._locks: dict[tuple, list] = {}

    def _acquire(self, key: tuple) -> None:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()

    def _release(self, key: tuple) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[0].release()
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def active_keys(self) -> set:
        with self._guard:
            return set(self._locks)

    @contextmanager
    def hold(self, keys: Iterable[tuple]):
        acquired = []
        try:
            for key in sorted(set(keys)):
                self._acquire(key)
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._release(key)


def effective_status(requested: Optional[str], held: bool) -> str:
    """Truck status that keeps "assigned" meaning "a driver holds it"."""
    if held:
        return "assigned"
    if not requested or requested == "assigned":
        return "available"
    return requested


class AssignmentCoordinator:
    def __init__(self, locks: KeyedLocks = None):
        self.locks = locks or KeyedLocks()

    # --- public operations ---

    def assign(self, db: Session, truck_id: int, driver_id: Optional[int] = None):
        """Give `truck_id` to `driver_id`, or free it when driver_id is None.

        Returns (truck, driver); driver is None when unassigning.
        """
        def keys():
            wanted = self._truck_keys(db, truck_id)
            if driver_id is not None:
                wanted |= self._driver_keys(db, driver_id)
            return wanted

        def work():
            truck = self._get_truck(db, truck_id)
            if truck is None:
                raise NotFoundError("Truck", truck_id)
            if driver_id is None:
                self._release(db, truck, "Unassigned driver")
                return truck, None
            driver = db.get(Driver, driver_id)
            if driver is None:
                raise NotFoundError("Driver", driver_id)
            self._attach(db, truck, driver)
            return truck, driver

        return self._locked(db, keys, work)

    def assign_truck_to_driver(self, db: Session, driver_id: int, truck_id: Optional[int]):
        """Driver-side entry point. A None truck frees the driver's current truck."""
        if truck_id is not None:
            if db.get(Driver, driver_id) is None:
                raise NotFoundError("Driver", driver_id)
            return self.assign(db, truck_id, driver_id)

        def work():
            driver = db.get(Driver, driver_id)
            if driver is None:
                raise NotFoundError("Driver", driver_id)
            truck = None
            if driver.truck_id is not None:
                truck = self._get_truck(db, driver.truck_id)
                if truck is not None:
                    self._release(db, truck, "Unassigned driver")
                else:
                    driver.truck_id = None
            return truck, driver

        return self._locked(db, lambda: self._driver_keys(db, driver_id), work)

    def save_driver(self, db: Session, values: dict, driver_id: Optional[int] = None) -> Optional[Driver]:
        """Create (driver_id None) or update a driver.

        A changed truck_id runs the same attach/release steps as `assign`.
        Returns None when updating a driver that does not exist.
        """
        new_truck_id = values.get("truck_id")

        def keys():
            wanted = set()
            if driver_id is not None:
                wanted |= self._driver_keys(db, driver_id)
            if new_truck_id is not None:
                wanted |= self._truck_keys(db, new_truck_id)
            return wanted

        def work():
            if driver_id is None:
                driver = Driver(**{f: values.get(f) for f in DRIVER_FIELDS})
                db.add(driver)
            else:
                driver = db.get(Driver, driver_id)
                if driver is None:
                    return None
                for f in DRIVER_FIELDS:
                    setattr(driver, f, values.get(f))
            db.flush()

            if new_truck_id == driver.truck_id:
                return driver
            if new_truck_id is not None:
                truck = self._get_truck(db, new_truck_id)
                if truck is None:
                    raise NotFoundError("Truck", new_truck_id)
                self._attach(db, truck, driver)
            else:
                old_truck = self._get_truck(db, driver.truck_id)
                if old_truck is not None:
                    self._release(db, old_truck, "Unassigned driver")
                else:
                    driver.truck_id = None
                    db.flush()
            return driver

        return self._locked(db, keys, work)

    def delete_driver(self, db: Session, driver_id: int) -> bool:
        def work():
            driver = db.get(Driver, driver_id)
            if driver is None:
                return False
            if driver.truck_id is not None:
                truck = self._get_truck(db, driver.truck_id)
                if truck is not None:
                    self._release(db, truck, f"Unassigned driver {driver.driver_code} (driver deleted)")
            db.delete(driver)
            db.flush()
            return True

        return self._locked(db, lambda: self._driver_keys(db, driver_id), work)

    def save_truck(self, db: Session, values: dict, truck_id: Optional[int] = None) -> Optional[Truck]:
        """Create or update a truck; status is coerced by `effective_status`."""
        def keys():
            return self._truck_keys(db, truck_id) if truck_id is not None else set()

        def work():
            if truck_id is None:
                truck = Truck(**{f: values.get(f) for f in TRUCK_FIELDS})
                truck.status = effective_status(values.get("status"), held=False)
                db.add(truck)
            else:
                truck = self._get_truck(db, truck_id)
                if truck is None:
                    return None
                for f in TRUCK_FIELDS:
                    setattr(truck, f, values.get(f))
                held = bool(self._holders(db, truck_id))
                truck.status = effective_status(values.get("status"), held)
            db.flush()
            return truck

        return self._locked(db, keys, work)

    def delete_truck(self, db: Session, truck_id: int) -> None:
        def work():
            # Detach unconditionally before removing the row
            for holder in self._holders(db, truck_id):
                holder.truck_id = None
            db.flush()
            db.query(Truck).filter(Truck.truck_id == truck_id).delete(synchronize_session=False)

        self._locked(db, lambda: self._truck_keys(db, truck_id), work)

    # --- steps, run with the locks held ---

    def _attach(self, db: Session, truck: Truck, driver: Driver) -> None:
        for holder in self._holders(db, truck.truck_id):
            if holder.driver_id != driver.driver_id:
                holder.truck_id = None

        previous = driver.truck_id
        if previous is not None and previous != truck.truck_id:
            prior = self._get_truck(db, previous)
            if prior is not None:
                prior.status = "available"
                record_truck_event(
                    db, prior.truck_id, "status_change", driver_id=driver.driver_id,
                    notes=f"Driver {driver.driver_code} moved to truck {truck.unit_number}",
                )

        driver.truck_id = truck.truck_id
        truck.status = "assigned"
        db.flush()
        record_truck_event(
            db, truck.truck_id, "assignment", driver_id=driver.driver_id,
            notes=f"Assigned driver ID {driver.driver_id} ({driver.full_name})",
        )
        logger.info(f"Truck {truck.unit_number} assigned to driver {driver.driver_code}")

    def _release(self, db: Session, truck: Truck, notes: str) -> None:
        for holder in self._holders(db, truck.truck_id):
            holder.truck_id = None
        truck.status = "available"
        db.flush()
        record_truck_event(db, truck.truck_id, "status_change", notes=notes)
        logger.info(f"Truck {truck.unit_number} released: {notes}")

    # --- helpers ---

    def _locked(self, db: Session, keys_fn: Callable[[], set], work: Callable):
        for _ in range(LOCK_ATTEMPTS):
            wanted = keys_fn()
            # End the read transaction so the re-read below sees fresh rows
            db.rollback()
            with self.locks.hold(wanted):
                try:
                    if keys_fn() != wanted:
                        db.rollback()
                        continue
                    result = work()
                    db.commit()
                except Exception:
                    db.rollback()
                    raise
                return result
        raise AssignmentConflictError("Assignment changed concurrently, please retry")

    @staticmethod
    def _get_truck(db: Session, truck_id: Optional[int]) -> Optional[Truck]:
        if truck_id is None:
            return None
        return db.execute(
            select(Truck).where(Truck.truck_id == truck_id).with_for_update()
        ).scalar_one_or_none()

    @staticmethod
    def _holders(db: Session, truck_id: int) -> list[Driver]:
        return db.query(Driver).filter(Driver.truck_id == truck_id).all()

    @staticmethod
    def _truck_keys(db: Session, truck_id: int) -> set:
        holder_ids = db.scalars(select(Driver.driver_id).where(Driver.truck_id == truck_id)).all()
        return {("truck", truck_id)} | {("driver", d) for d in holder_ids}

    @staticmethod
    def _driver_keys(db: Session, driver_id: int) -> set:
        wanted = {("driver", driver_id)}
        truck_id = db.scalar(select(Driver.truck_id).where(Driver.driver_id == driver_id))
        if truck_id is not None:
            wanted.add(("truck", truck_id))
        return wanted


coordinator = AssignmentCoordinator()
