from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import SafetyEvent
from app.schemas import DriverStatsOut

# Total bonus score above this flags the driver
WARNING_BONUS_THRESHOLD = 5


def stats_status(total_bonus: int) -> str:
    return "Warning" if total_bonus > WARNING_BONUS_THRESHOLD else "Good"


def driver_stats(db: Session, driver_id: int) -> DriverStatsOut:
    count, total_bonus, total_pi = (
        db.query(
            func.count(SafetyEvent.safety_event_id),
            func.coalesce(func.sum(SafetyEvent.bonus_score), 0),
            func.coalesce(func.sum(SafetyEvent.p_i_score), 0),
        )
        .filter(SafetyEvent.driver_id == driver_id)
        .one()
    )
    return DriverStatsOut(
        event_count=count,
        total_bonus_score=total_bonus,
        total_pi_score=total_pi,
        status=stats_status(total_bonus),
    )
