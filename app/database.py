import time

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import (
    DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_RECYCLE, DB_POOL_TIMEOUT,
    DB_CONNECT_ATTEMPTS, DB_CONNECT_RETRY_SECONDS, REQUEST_TIMEOUT_SECONDS,
)
from app.logging_config import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # SQLite manages its own pool; sizing arguments do not apply
        return {"connect_args": {"check_same_thread": False}}
    options = {
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_recycle": DB_POOL_RECYCLE,
        "pool_timeout": DB_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }
    # Statements may not outlive the request that issued them
    timeout_ms = int(REQUEST_TIMEOUT_SECONDS * 1000)
    if url.startswith("postgresql"):
        options["connect_args"] = {"options": f"-c statement_timeout={timeout_ms}"}
    elif url.startswith("mysql"):
        options["connect_args"] = {"init_command": f"SET SESSION MAX_EXECUTION_TIME={timeout_ms}"}
    return options


def enable_sqlite_foreign_keys(engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
if engine.dialect.name == "sqlite":
    enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(bind=engine)

Base = declarative_base()


class RequestDeadlineExceeded(Exception):
    pass


@event.listens_for(Session, "before_commit")
def _refuse_late_commit(session):
    """Sessions tagged with a request deadline never commit after it has passed."""
    deadline = session.info.get("deadline")
    if deadline is not None and time.monotonic() > deadline:
        raise RequestDeadlineExceeded("Request deadline passed before commit")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ping(bind=engine) -> None:
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))


def wait_for_database(
    bind=engine,
    attempts: int = DB_CONNECT_ATTEMPTS,
    delay: float = DB_CONNECT_RETRY_SECONDS,
) -> None:
    """Block until the database answers, retrying a bounded number of times."""
    for attempt in range(1, attempts + 1):
        try:
            ping(bind)
            logger.info("Connected to database successfully")
            return
        except OperationalError as e:
            if attempt == attempts:
                logger.error(f"Giving up on database after {attempts} attempts: {e}")
                raise
            logger.warning(f"DB connection attempt {attempt} failed, retrying...")
            time.sleep(delay)
