from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.config import API_PREFIX
from app.database import get_db
from app.services.export_service import export_safety_events_xlsx, export_scorecards_xlsx

router = APIRouter(prefix=f"{API_PREFIX}/export", tags=["export"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _xlsx_response(data: bytes, filename: str) -> Response:
    return Response(
        content=data,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/scorecards")
def download_scorecards(
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    try:
        data = export_scorecards_xlsx(db, month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _xlsx_response(data, f"scorecards_{month}.xlsx")


@router.get("/safety-events")
def download_safety_events(
    date_from: date = Query(...),
    date_to: date = Query(...),
    db: Session = Depends(get_db),
):
    if date_from > date_to:
        raise HTTPException(status_code=400, detail="date_from must be before or equal to date_to")
    data = export_safety_events_xlsx(db, date_from, date_to)
    return _xlsx_response(data, f"safety_events_{date_from.isoformat()}_{date_to.isoformat()}.xlsx")
