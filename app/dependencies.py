from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.assignment_service import AssignmentCoordinator, coordinator
from app.services.calendar_service import LocalCalendar, calendar


def get_calendar() -> LocalCalendar:
    return calendar


def get_coordinator() -> AssignmentCoordinator:
    return coordinator


def bind_request_deadline(request: Request, db: Session = Depends(get_db)) -> None:
    """Tag the request's session with the deadline set by the timeout middleware."""
    db.info["deadline"] = getattr(request.state, "deadline", None)
