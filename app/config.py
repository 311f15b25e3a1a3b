import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
DATA_DIR.mkdir(exist_ok=True)

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite:///{DATA_DIR / 'fleet_safety.db'}"
)

API_PREFIX = "/api"

# Calendar days (start_date, event_date) are interpreted in this zone
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "America/Winnipeg")

# Connection pool
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))  # idle connections kept
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "90"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "180"))  # seconds
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "5"))

# Startup connectivity check
DB_CONNECT_ATTEMPTS = int(os.getenv("DB_CONNECT_ATTEMPTS", "20"))
DB_CONNECT_RETRY_SECONDS = float(os.getenv("DB_CONNECT_RETRY_SECONDS", "2"))

REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _parse_cors_origins(value: str | None) -> list[str]:
    """Comma separated origins; unset or blank allows any origin."""
    origins = [item.strip() for item in (value or "").split(",") if item.strip()]
    return origins or ["*"]


CORS_ORIGINS = _parse_cors_origins(os.getenv("CORS_ORIGINS"))
