"""Row -> transfer object conversion.

Every list endpoint goes through `map_rows`, which drops rows that cannot be
converted (bad column values, unparseable dates) instead of failing the whole
listing.
"""
from typing import Callable, Iterable, TypeVar

from app.logging_config import get_logger
from app.models import (
    Driver, DriverType, SafetyCategory, SafetyEvent, ScorecardEvent, ScorecardMetric,
    Truck, TruckHistory,
)
from app.schemas import (
    DriverOut, DriverTypeOut, SafetyCategoryOut, SafetyEventOut, ScorecardEventOut,
    ScorecardMetricOut, TruckHistoryOut, TruckOut,
)
from app.services.calendar_service import LocalCalendar

logger = get_logger(__name__)

T = TypeVar("T")


def map_rows(rows: Iterable, mapper: Callable[..., T], cal: LocalCalendar) -> list[T]:
    out = []
    for row in rows:
        try:
            out.append(mapper(row, cal))
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping unreadable row {row!r}: {e}")
    return out


def truck_out(t: Truck, cal: LocalCalendar) -> TruckOut:
    return TruckOut(truck_id=t.truck_id, unit_number=t.unit_number, year=t.year, status=t.status)


def driver_type_out(dt: DriverType, cal: LocalCalendar) -> DriverTypeOut:
    return DriverTypeOut(driver_type_id=dt.driver_type_id, driver_type=dt.driver_type)


def driver_out(d: Driver, cal: LocalCalendar) -> DriverOut:
    return DriverOut(
        driver_id=d.driver_id,
        driver_code=d.driver_code,
        first_name=d.first_name,
        last_name=d.last_name,
        start_date=cal.format_day(d.start_date),
        truck_id=d.truck_id,
        driver_type_id=d.driver_type_id,
        profile_pic=d.profile_pic,
    )


def safety_category_out(sc: SafetyCategory, cal: LocalCalendar) -> SafetyCategoryOut:
    return SafetyCategoryOut(
        category_id=sc.category_id,
        code=sc.code,
        description=sc.description or "",
        scoring_system=sc.scoring_system,
        p_i_score=sc.p_i_score,
    )


def scorecard_metric_out(m: ScorecardMetric, cal: LocalCalendar) -> ScorecardMetricOut:
    return ScorecardMetricOut(
        sc_category_id=m.sc_category_id,
        sc_category=m.sc_category,
        sc_description=m.sc_description or "",
        driver_type_id=m.driver_type_id,
    )


def safety_event_out(e: SafetyEvent, cal: LocalCalendar) -> SafetyEventOut:
    return SafetyEventOut(
        safety_event_id=e.safety_event_id,
        driver_id=e.driver_id,
        event_date=cal.format_day(e.event_date),
        category_id=e.category_id,
        notes=e.notes or "",
        bonus_score=e.bonus_score,
        p_i_score=e.p_i_score,
        bonus_period=e.bonus_period,
    )


def scorecard_event_out(e: ScorecardEvent, cal: LocalCalendar) -> ScorecardEventOut:
    return ScorecardEventOut(
        scorecard_event_id=e.scorecard_event_id,
        driver_id=e.driver_id,
        event_date=cal.format_day(e.event_date),
        sc_category_id=e.sc_category_id,
        sc_score=e.sc_score,
        notes=e.notes or "",
    )


def history_out(h: TruckHistory, cal: LocalCalendar) -> TruckHistoryOut:
    return TruckHistoryOut(
        truck_history_id=h.truck_history_id,
        truck_id=h.truck_id,
        driver_id=h.driver_id,
        date=cal.format_timestamp(h.date),
        type=h.type,
        notes=h.notes,
    )
