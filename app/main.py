import asyncio
import time

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.config import CORS_ORIGINS, REQUEST_TIMEOUT_SECONDS
from app.database import Base, RequestDeadlineExceeded, engine, wait_for_database
from app.dependencies import bind_request_deadline
from app.logging_config import get_logger
from app.routes import system, trucks, drivers, driver_types, safety, scorecards, upload, export

logger = get_logger(__name__)

app = FastAPI(
    title="Fleet Safety API",
    version="1.0.0",
    docs_url="/swagger",
    dependencies=[Depends(bind_request_deadline)],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system.router)
app.include_router(trucks.router)
app.include_router(drivers.router)
app.include_router(driver_types.router)
app.include_router(safety.router)
app.include_router(scorecards.router)
app.include_router(upload.router)
app.include_router(export.router)


def _timed_out(request: Request) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} exceeded {REQUEST_TIMEOUT_SECONDS}s")
    return JSONResponse(status_code=504, content={"detail": "Request timed out"})


@app.middleware("http")
async def request_timeout(request: Request, call_next):
    # Read by bind_request_deadline; sessions refuse to commit past it
    request.state.deadline = time.monotonic() + REQUEST_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(call_next(request), timeout=REQUEST_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        return _timed_out(request)


@app.exception_handler(RequestDeadlineExceeded)
async def deadline_handler(request: Request, exc: RequestDeadlineExceeded):
    return _timed_out(request)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.on_event("startup")
def prepare_database():
    """Wait for the database, then create missing tables."""
    wait_for_database()
    Base.metadata.create_all(bind=engine)
    logger.info("Fleet Safety API ready")
