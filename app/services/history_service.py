from sqlalchemy.orm import Session

from app.models import TruckHistory
from app.services.calendar_service import utcnow


def record_truck_event(
    db: Session,
    truck_id: int,
    event_type: str,
    driver_id: int = None,
    notes: str = None,
) -> TruckHistory:
    """Append a truck history entry. Entries are never updated afterwards."""
    entry = TruckHistory(
        truck_id=truck_id,
        driver_id=driver_id,
        type=event_type,
        notes=notes,
        date=utcnow(),
    )
    db.add(entry)
    db.flush()
    return entry


def list_truck_history(db: Session, truck_id: int) -> list[TruckHistory]:
    """Newest first; id breaks ties between entries written in the same instant."""
    return (
        db.query(TruckHistory)
        .filter(TruckHistory.truck_id == truck_id)
        .order_by(TruckHistory.date.desc(), TruckHistory.truck_history_id.desc())
        .all()
    )
