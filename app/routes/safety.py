from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.config import API_PREFIX
from app.database import get_db
from app.dependencies import get_calendar
from app.models import SafetyCategory, SafetyEvent
from app.schemas import SafetyCategoryIn, SafetyCategoryOut, SafetyEventIn, SafetyEventOut
from app.services import mappers
from app.services.calendar_service import LocalCalendar

router = APIRouter(prefix=API_PREFIX, tags=["safety"])


# --- Safety categories ---

@router.get("/safety-categories", response_model=list[SafetyCategoryOut])
def list_safety_categories(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    rows = db.query(SafetyCategory).order_by(SafetyCategory.category_id).all()
    return mappers.map_rows(rows, mappers.safety_category_out, cal)


@router.post("/safety-categories", response_model=SafetyCategoryOut, status_code=201)
def create_safety_category(
    data: SafetyCategoryIn,
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    sc = SafetyCategory(**data.model_dump())
    db.add(sc)
    db.commit()
    db.refresh(sc)
    return mappers.safety_category_out(sc, cal)


@router.put("/safety-categories/{category_id}", response_model=SafetyCategoryOut)
def update_safety_category(
    category_id: int,
    data: SafetyCategoryIn,
    db: Session = Depends(get_db),
):
    db.query(SafetyCategory).filter(SafetyCategory.category_id == category_id).update(
        data.model_dump(), synchronize_session=False
    )
    db.commit()
    return SafetyCategoryOut(category_id=category_id, **data.model_dump())


@router.delete("/safety-categories/{category_id}", status_code=204)
def delete_safety_category(
    category_id: int,
    db: Session = Depends(get_db),
):
    db.query(SafetyCategory).filter(SafetyCategory.category_id == category_id).delete(synchronize_session=False)
    db.commit()
    return Response(status_code=204)


# --- Safety events ---

@router.get("/safety-events", response_model=list[SafetyEventOut])
def list_safety_events(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    rows = db.query(SafetyEvent).order_by(SafetyEvent.event_date, SafetyEvent.safety_event_id).all()
    return mappers.map_rows(rows, mappers.safety_event_out, cal)


@router.post("/safety-events", response_model=SafetyEventOut, status_code=201)
def create_safety_event(
    data: SafetyEventIn,
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    event = SafetyEvent(**data.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    return mappers.safety_event_out(event, cal)


@router.put("/safety-events/{safety_event_id}", response_model=SafetyEventOut)
def update_safety_event(
    safety_event_id: int,
    data: SafetyEventIn,
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    db.query(SafetyEvent).filter(SafetyEvent.safety_event_id == safety_event_id).update(
        data.model_dump(), synchronize_session=False
    )
    db.commit()
    return SafetyEventOut(
        safety_event_id=safety_event_id,
        **data.model_dump(exclude={"event_date"}),
        event_date=cal.format_day(data.event_date),
    )


@router.delete("/safety-events/{safety_event_id}", status_code=204)
def delete_safety_event(
    safety_event_id: int,
    db: Session = Depends(get_db),
):
    db.query(SafetyEvent).filter(SafetyEvent.safety_event_id == safety_event_id).delete(synchronize_session=False)
    db.commit()
    return Response(status_code=204)
