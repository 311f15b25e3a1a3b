import re
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import APP_TIMEZONE
from app.logging_config import get_logger

logger = get_logger(__name__)

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
_YEAR_RE = re.compile(r"^\d{4}$")


def parse_day(value: str) -> date:
    """Parse a strict YYYY-MM-DD calendar day."""
    if not isinstance(value, str) or not _DAY_RE.match(value.strip()):
        raise ValueError(f"invalid date {value!r}, expected YYYY-MM-DD")
    return date.fromisoformat(value.strip())


def parse_month(value: str) -> tuple[date, date]:
    """Return the [first day, first day of next month) range for YYYY-MM."""
    if not isinstance(value, str) or not _MONTH_RE.match(value.strip()):
        raise ValueError(f"invalid month {value!r}, expected YYYY-MM")
    start = date.fromisoformat(f"{value.strip()}-01")
    return start, _next_month(start)


def parse_date_prefix(prefix: str) -> tuple[date, date]:
    """Translate a YYYY, YYYY-MM or YYYY-MM-DD prefix into a half-open day range."""
    prefix = (prefix or "").strip()
    if _YEAR_RE.match(prefix):
        start = date(int(prefix), 1, 1)
        return start, date(start.year + 1, 1, 1)
    if _MONTH_RE.match(prefix):
        return parse_month(prefix)
    if _DAY_RE.match(prefix):
        day = date.fromisoformat(prefix)
        return day, day + timedelta(days=1)
    raise ValueError(f"invalid datePrefix {prefix!r}, expected YYYY, YYYY-MM or YYYY-MM-DD")


def _next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for history rows."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LocalCalendar:
    """Formats calendar days and timestamps in one reference timezone."""

    def __init__(self, tz_name: str):
        try:
            self.tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            logger.warning(f"Failed loading timezone {tz_name!r}, falling back to UTC: {e}")
            self.tz = timezone.utc
        self.tz_name = tz_name

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def format_day(self, value) -> str | None:
        if value is None:
            return None
        if isinstance(value, datetime):
            # Some drivers hand DATE columns back as midnight datetimes
            if value.tzinfo is not None:
                value = value.astimezone(self.tz)
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        # Unreadable stored days arrive as raw strings; reject them here
        return parse_day(str(value)).isoformat()

    def format_timestamp(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self.tz).isoformat(timespec="seconds")


calendar = LocalCalendar(APP_TIMEZONE)
