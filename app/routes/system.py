from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import API_PREFIX
from app.database import get_db
from app.dependencies import get_calendar
from app.logging_config import get_logger
from app.models import (
    Driver, DriverType, SafetyCategory, SafetyEvent, ScorecardEvent, ScorecardMetric, Truck,
)
from app.schemas import BootstrapOut
from app.services import mappers
from app.services.calendar_service import LocalCalendar

logger = get_logger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["system"])


@router.get("/healthz")
def healthz(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    """Liveness plus a round trip to the database."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})
    return {"status": "ok", "time": cal.now().isoformat(timespec="seconds")}


@router.get("/bootstrap", response_model=BootstrapOut)
def bootstrap(
    db: Session = Depends(get_db),
    cal: LocalCalendar = Depends(get_calendar),
):
    """Every collection the client needs on first load, in one round trip."""
    return BootstrapOut(
        trucks=mappers.map_rows(db.query(Truck).order_by(Truck.truck_id), mappers.truck_out, cal),
        driver_types=mappers.map_rows(
            db.query(DriverType).order_by(DriverType.driver_type_id), mappers.driver_type_out, cal
        ),
        drivers=mappers.map_rows(db.query(Driver).order_by(Driver.driver_id), mappers.driver_out, cal),
        safety_categories=mappers.map_rows(
            db.query(SafetyCategory).order_by(SafetyCategory.category_id), mappers.safety_category_out, cal
        ),
        score_card=mappers.map_rows(
            db.query(ScorecardMetric).order_by(ScorecardMetric.sc_category_id), mappers.scorecard_metric_out, cal
        ),
        safety_events=mappers.map_rows(
            db.query(SafetyEvent).order_by(SafetyEvent.safety_event_id), mappers.safety_event_out, cal
        ),
        score_card_events=mappers.map_rows(
            db.query(ScorecardEvent).order_by(ScorecardEvent.scorecard_event_id), mappers.scorecard_event_out, cal
        ),
    )
