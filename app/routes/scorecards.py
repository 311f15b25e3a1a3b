from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.config import API_PREFIX
from app.database import get_db
from app.dependencies import get_calendar
from app.models import ScorecardEvent, ScorecardMetric
from app.schemas import ScorecardEventIn, ScorecardEventOut, ScorecardMetricIn, ScorecardMetricOut
from app.services import mappers
from app.services.calendar_service import LocalCalendar
from app.services.scorecard_service import delete_events_by_filter

router = APIRouter(prefix=API_PREFIX, tags=["scorecards"])


# --- Scorecard metrics ---

@router.get("/scorecard-metrics", response_model=list[ScorecardMetricOut])
def list_scorecard_metrics(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    rows = db.query(ScorecardMetric).order_by(ScorecardMetric.sc_category_id).all()
    return mappers.map_rows(rows, mappers.scorecard_metric_out, cal)


@router.post("/scorecard-metrics", response_model=ScorecardMetricOut, status_code=201)
def create_scorecard_metric(
    data: ScorecardMetricIn,
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    metric = ScorecardMetric(**data.model_dump())
    db.add(metric)
    db.commit()
    db.refresh(metric)
    return mappers.scorecard_metric_out(metric, cal)


@router.put("/scorecard-metrics/{sc_category_id}", response_model=ScorecardMetricOut)
def update_scorecard_metric(
    sc_category_id: int,
    data: ScorecardMetricIn,
    db: Session = Depends(get_db),
):
    db.query(ScorecardMetric).filter(ScorecardMetric.sc_category_id == sc_category_id).update(
        data.model_dump(), synchronize_session=False
    )
    db.commit()
    return ScorecardMetricOut(sc_category_id=sc_category_id, **data.model_dump())


@router.delete("/scorecard-metrics/{sc_category_id}", status_code=204)
def delete_scorecard_metric(
    sc_category_id: int,
    db: Session = Depends(get_db),
):
    db.query(ScorecardMetric).filter(ScorecardMetric.sc_category_id == sc_category_id).delete(
        synchronize_session=False
    )
    db.commit()
    return Response(status_code=204)


# --- Scorecard events ---

@router.get("/scorecard-events", response_model=list[ScorecardEventOut])
def list_scorecard_events(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    rows = db.query(ScorecardEvent).order_by(ScorecardEvent.event_date, ScorecardEvent.scorecard_event_id).all()
    return mappers.map_rows(rows, mappers.scorecard_event_out, cal)


@router.post("/scorecard-events", response_model=ScorecardEventOut, status_code=201)
def create_scorecard_event(
    data: ScorecardEventIn,
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    event = ScorecardEvent(**data.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    return mappers.scorecard_event_out(event, cal)


@router.put("/scorecard-events/{scorecard_event_id}", response_model=ScorecardEventOut)
def update_scorecard_event(
    scorecard_event_id: int,
    data: ScorecardEventIn,
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    db.query(ScorecardEvent).filter(ScorecardEvent.scorecard_event_id == scorecard_event_id).update(
        data.model_dump(), synchronize_session=False
    )
    db.commit()
    return ScorecardEventOut(
        scorecard_event_id=scorecard_event_id,
        **data.model_dump(exclude={"event_date"}),
        event_date=cal.format_day(data.event_date),
    )


@router.delete("/scorecard-events", status_code=204)
def delete_scorecard_events_by_filter(
    driver_id: Optional[str] = Query(None, alias="driverId"),
    date_prefix: Optional[str] = Query(None, alias="datePrefix"),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Bulk delete: DELETE /scorecard-events?driverId=&datePrefix=YYYY[-MM[-DD]]&category=SAFETY"""
    if not driver_id or not date_prefix or not category:
        raise HTTPException(status_code=400, detail="driverId, datePrefix and category are required")
    try:
        driver_pk = int(driver_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="driverId must be an integer")
    try:
        delete_events_by_filter(db, driver_pk, date_prefix, category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return Response(status_code=204)


@router.delete("/scorecard-events/{scorecard_event_id}", status_code=204)
def delete_scorecard_event(
    scorecard_event_id: int,
    db: Session = Depends(get_db),
):
    db.query(ScorecardEvent).filter(ScorecardEvent.scorecard_event_id == scorecard_event_id).delete(
        synchronize_session=False
    )
    db.commit()
    return Response(status_code=204)
