from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.config import API_PREFIX
from app.database import get_db
from app.dependencies import get_calendar
from app.models import Driver, DriverType, ScorecardMetric
from app.schemas import DriverTypeIn, DriverTypeOut
from app.services import mappers
from app.services.calendar_service import LocalCalendar

router = APIRouter(prefix=f"{API_PREFIX}/driver-types", tags=["driver-types"])


@router.get("", response_model=list[DriverTypeOut])
def list_driver_types(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    rows = db.query(DriverType).order_by(DriverType.driver_type_id).all()
    return mappers.map_rows(rows, mappers.driver_type_out, cal)


@router.post("", response_model=DriverTypeOut, status_code=201)
def create_driver_type(
    data: DriverTypeIn,
    db: Session = Depends(get_db),
):
    dt = DriverType(driver_type=data.driver_type)
    db.add(dt)
    db.commit()
    db.refresh(dt)
    return DriverTypeOut(driver_type_id=dt.driver_type_id, driver_type=dt.driver_type)


@router.put("/{driver_type_id}", response_model=DriverTypeOut)
def update_driver_type(
    driver_type_id: int,
    data: DriverTypeIn,
    db: Session = Depends(get_db),
):
    db.query(DriverType).filter(DriverType.driver_type_id == driver_type_id).update(
        {"driver_type": data.driver_type}, synchronize_session=False
    )
    db.commit()
    return DriverTypeOut(driver_type_id=driver_type_id, driver_type=data.driver_type)


@router.delete("/{driver_type_id}", status_code=204)
def delete_driver_type(
    driver_type_id: int,
    db: Session = Depends(get_db),
):
    # Detach drivers and metrics first so no reference is left dangling.
    # A metric scoped to this type becomes global (applies to every driver type).
    db.query(Driver).filter(Driver.driver_type_id == driver_type_id).update(
        {"driver_type_id": None}, synchronize_session=False
    )
    db.query(ScorecardMetric).filter(ScorecardMetric.driver_type_id == driver_type_id).update(
        {"driver_type_id": None}, synchronize_session=False
    )
    db.query(DriverType).filter(DriverType.driver_type_id == driver_type_id).delete(synchronize_session=False)
    db.commit()
    return Response(status_code=204)
