from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.config import API_PREFIX
from app.database import get_db
from app.dependencies import get_calendar, get_coordinator
from app.models import Driver
from app.schemas import (
    AssignmentOut, AssignTruckRequest, DriverIn, DriverOut, DriverStatsOut, ScorecardSummaryOut,
)
from app.services import mappers
from app.services.assignment_service import (
    AssignmentConflictError, AssignmentCoordinator, NotFoundError,
)
from app.services.calendar_service import LocalCalendar, parse_month
from app.services.scorecard_service import summarize_month
from app.services.stats_service import driver_stats

router = APIRouter(prefix=f"{API_PREFIX}/drivers", tags=["drivers"])


def _driver_response(driver, driver_id: int, data: DriverIn, cal: LocalCalendar) -> DriverOut:
    if driver is None:
        # Unknown id: echo the request
        return DriverOut(
            driver_id=driver_id,
            **data.model_dump(exclude={"start_date"}),
            start_date=cal.format_day(data.start_date),
        )
    return mappers.driver_out(driver, cal)


@router.get("", response_model=list[DriverOut])
def list_drivers(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    return mappers.map_rows(db.query(Driver).order_by(Driver.driver_id).all(), mappers.driver_out, cal)


@router.post("", response_model=DriverOut, status_code=201)
def create_driver(
    data: DriverIn,
    db: Session = Depends(get_db),
    coord: AssignmentCoordinator = Depends(get_coordinator),
    cal: LocalCalendar = Depends(get_calendar),
):
    try:
        driver = coord.save_driver(db, data.model_dump())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return mappers.driver_out(driver, cal)


@router.put("/{driver_id}", response_model=DriverOut)
def update_driver(
    driver_id: int,
    data: DriverIn,
    db: Session = Depends(get_db),
    coord: AssignmentCoordinator = Depends(get_coordinator),
    cal: LocalCalendar = Depends(get_calendar),
):
    try:
        driver = coord.save_driver(db, data.model_dump(), driver_id=driver_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _driver_response(driver, driver_id, data, cal)


@router.delete("/{driver_id}", status_code=204)
def delete_driver(
    driver_id: int,
    db: Session = Depends(get_db),
    coord: AssignmentCoordinator = Depends(get_coordinator),
):
    try:
        coord.delete_driver(db, driver_id)
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(status_code=204)


@router.get("/{driver_id}/stats", response_model=DriverStatsOut)
def get_driver_stats(
    driver_id: int,
    db: Session = Depends(get_db),
):
    return driver_stats(db, driver_id)


@router.get("/{driver_id}/scorecard-summary", response_model=ScorecardSummaryOut)
def get_scorecard_summary(
    driver_id: int,
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    try:
        parse_month(month)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    driver = db.query(Driver).filter(Driver.driver_id == driver_id).first()
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return ScorecardSummaryOut(
        driver_id=driver_id,
        month=month,
        categories=summarize_month(db, driver, month),
    )


@router.post("/{driver_id}/assign-truck", response_model=AssignmentOut)
def assign_truck(
    driver_id: int,
    data: AssignTruckRequest | None = None,
    db: Session = Depends(get_db),
    coord: AssignmentCoordinator = Depends(get_coordinator),
    cal: LocalCalendar = Depends(get_calendar),
):
    """Move the driver onto `truckId`, or free the driver's truck when truckId is null."""
    truck_id = data.truck_id if data else None
    try:
        truck, driver = coord.assign_truck_to_driver(db, driver_id, truck_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return AssignmentOut(
        truck=mappers.truck_out(truck, cal) if truck else None,
        driver=mappers.driver_out(driver, cal),
    )
