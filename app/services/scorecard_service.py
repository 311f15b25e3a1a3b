from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import SCORECARD_CATEGORIES, Driver, ScorecardEvent, ScorecardMetric
from app.schemas import CategorySummary
from app.services.calendar_service import parse_date_prefix, parse_month

logger = get_logger(__name__)

# Highest score a single metric can earn in a month
MAX_METRIC_SCORE = 5


def percent_half_up(earned: int, possible: int) -> int:
    """Whole percentage with halves rounded up (1 of 40 is 3%, not 2%)."""
    return int((Decimal(earned * 100) / Decimal(possible)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def metric_ids_for_category(db: Session, category: str) -> list[int]:
    return list(db.scalars(
        select(ScorecardMetric.sc_category_id).where(ScorecardMetric.sc_category == category)
    ).all())


def delete_events_by_filter(db: Session, driver_id: int, date_prefix: str, category: str) -> int:
    """Delete a driver's scorecard events in one category for a year, month or day.

    Raises ValueError for a malformed prefix. Returns the number of rows removed
    (0 when no metric carries the category label). Caller commits.
    """
    start, end = parse_date_prefix(date_prefix)
    metric_ids = metric_ids_for_category(db, category)
    if not metric_ids:
        logger.info(f"No metrics labelled {category!r}; nothing to delete for driver {driver_id}")
        return 0

    result = db.execute(
        delete(ScorecardEvent)
        .where(
            ScorecardEvent.driver_id == driver_id,
            ScorecardEvent.event_date >= start,
            ScorecardEvent.event_date < end,
            ScorecardEvent.sc_category_id.in_(metric_ids),
        )
        .execution_options(synchronize_session=False)
    )
    logger.info(
        f"Deleted {result.rowcount} {category} scorecard events for driver {driver_id} ({date_prefix})"
    )
    return result.rowcount


def applicable_metrics(db: Session, driver: Driver, category: str) -> list[ScorecardMetric]:
    """Metrics in `category` that are global or scoped to the driver's type."""
    scope = ScorecardMetric.driver_type_id.is_(None)
    if driver.driver_type_id is not None:
        scope = or_(scope, ScorecardMetric.driver_type_id == driver.driver_type_id)
    return (
        db.query(ScorecardMetric)
        .filter(ScorecardMetric.sc_category == category, scope)
        .order_by(ScorecardMetric.sc_category_id)
        .all()
    )


def summarize_category(db: Session, driver: Driver, category: str, month: str) -> CategorySummary:
    start, end = parse_month(month)
    metrics = applicable_metrics(db, driver, category)
    event_count, earned = (
        db.query(
            func.count(ScorecardEvent.scorecard_event_id),
            func.coalesce(func.sum(ScorecardEvent.sc_score), 0),
        )
        .join(ScorecardMetric, ScorecardMetric.sc_category_id == ScorecardEvent.sc_category_id)
        .filter(
            ScorecardEvent.driver_id == driver.driver_id,
            ScorecardEvent.event_date >= start,
            ScorecardEvent.event_date < end,
            ScorecardMetric.sc_category == category,
        )
        .one()
    )
    possible = len(metrics) * MAX_METRIC_SCORE

    percentage = None
    if not metrics:
        label = "N/A"
    elif event_count == 0:
        label = "Pending"
    else:
        percentage = percent_half_up(earned, possible)
        label = f"{percentage}%"

    return CategorySummary(
        category=category,
        metric_count=len(metrics),
        event_count=event_count,
        earned=earned,
        possible=possible,
        percentage=percentage,
        label=label,
    )


def summarize_month(db: Session, driver: Driver, month: str) -> list[CategorySummary]:
    return [summarize_category(db, driver, category, month) for category in SCORECARD_CATEGORIES]
