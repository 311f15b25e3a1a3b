from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from app.config import API_PREFIX
from app.database import get_db
from app.schemas import ImportResult
from app.services.import_service import import_drivers, import_trucks

router = APIRouter(prefix=f"{API_PREFIX}/upload", tags=["upload"])

ALLOWED_EXTENSIONS = (".csv", ".xlsx", ".xls")


async def _read_upload(file: UploadFile) -> bytes:
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    if not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(status_code=400, detail=f"File must be one of: {', '.join(ALLOWED_EXTENSIONS)}")
    return await file.read()


@router.post("/trucks", response_model=ImportResult)
async def upload_trucks(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    content = await _read_upload(file)
    try:
        result = import_trucks(db, content, file.filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return result


@router.post("/drivers", response_model=ImportResult)
async def upload_drivers(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    content = await _read_upload(file)
    try:
        result = import_drivers(db, content, file.filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return result
