from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from app.config import API_PREFIX
from app.database import get_db
from app.dependencies import get_calendar, get_coordinator
from app.models import Truck
from app.schemas import AssignDriverRequest, AssignmentOut, TruckHistoryOut, TruckIn, TruckOut
from app.services import mappers
from app.services.assignment_service import (
    AssignmentConflictError, AssignmentCoordinator, NotFoundError,
)
from app.services.calendar_service import LocalCalendar
from app.services.history_service import list_truck_history

router = APIRouter(prefix=f"{API_PREFIX}/trucks", tags=["trucks"])


@router.get("", response_model=list[TruckOut])
def list_trucks(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    return mappers.map_rows(db.query(Truck).order_by(Truck.truck_id).all(), mappers.truck_out, cal)


@router.post("", response_model=TruckOut, status_code=201)
def create_truck(
    data: TruckIn,
    db: Session = Depends(get_db),
    coord: AssignmentCoordinator = Depends(get_coordinator),
    cal: LocalCalendar = Depends(get_calendar),
):
    try:
        truck = coord.save_truck(db, data.model_dump())
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return mappers.truck_out(truck, cal)


@router.put("/{truck_id}", response_model=TruckOut)
def update_truck(
    truck_id: int,
    data: TruckIn,
    db: Session = Depends(get_db),
    coord: AssignmentCoordinator = Depends(get_coordinator),
    cal: LocalCalendar = Depends(get_calendar),
):
    try:
        truck = coord.save_truck(db, data.model_dump(), truck_id=truck_id)
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if truck is None:
        return TruckOut(truck_id=truck_id, **data.model_dump())
    return mappers.truck_out(truck, cal)


@router.delete("/{truck_id}", status_code=204)
def delete_truck(
    truck_id: int,
    db: Session = Depends(get_db),
    coord: AssignmentCoordinator = Depends(get_coordinator),
):
    try:
        coord.delete_truck(db, truck_id)
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(status_code=204)


@router.get("/{truck_id}/history", response_model=list[TruckHistoryOut])
def truck_history(
    truck_id: int,
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    return mappers.map_rows(list_truck_history(db, truck_id), mappers.history_out, cal)


@router.post("/{truck_id}/assign-driver", response_model=AssignmentOut)
def assign_driver(
    truck_id: int,
    data: AssignDriverRequest | None = None,
    db: Session = Depends(get_db),
    coord: AssignmentCoordinator = Depends(get_coordinator),
    cal: LocalCalendar = Depends(get_calendar),
):
    """Give the truck to `driverId`, or mark it available when driverId is null."""
    driver_id = data.driver_id if data else None
    try:
        truck, driver = coord.assign(db, truck_id, driver_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return AssignmentOut(
        truck=mappers.truck_out(truck, cal),
        driver=mappers.driver_out(driver, cal) if driver else None,
    )
