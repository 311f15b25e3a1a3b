from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from app.database import Base

TRUCK_STATUSES = ("available", "maintenance", "assigned")
SCORECARD_CATEGORIES = ("SAFETY", "MAINTENANCE", "DISPATCH")
HISTORY_TYPES = ("assignment", "maintenance", "status_change")


class CalendarDate(TypeDecorator):
    """DATE column that hands unreadable stored values back as raw strings.

    Listings convert rows one by one and drop the ones whose day does not
    parse; failing inside the driver's result processor would abort the whole
    query instead.
    """
    impl = Date
    cache_ok = True

    def result_processor(self, dialect, coltype):
        parse = self.impl_instance.result_processor(dialect, coltype)
        if parse is None:
            return None

        def process(value):
            try:
                return parse(value)
            except ValueError:
                return value

        return process


class Truck(Base):
    __tablename__ = "trucks"

    truck_id = Column(Integer, primary_key=True, autoincrement=True)
    unit_number = Column(String(50), unique=True, nullable=False, index=True)
    year = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="available")  # available, maintenance, assigned
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    drivers = relationship("Driver", back_populates="truck")

    def __repr__(self):
        return f"<Truck {self.unit_number} ({self.status})>"


class DriverType(Base):
    __tablename__ = "driver_type"

    driver_type_id = Column(Integer, primary_key=True, autoincrement=True)
    driver_type = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<DriverType {self.driver_type}>"


class Driver(Base):
    __tablename__ = "drivers"

    driver_id = Column(Integer, primary_key=True, autoincrement=True)
    driver_code = Column(String(50), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    start_date = Column(CalendarDate, nullable=True)
    truck_id = Column(Integer, ForeignKey("trucks.truck_id", ondelete="SET NULL"), nullable=True, index=True)
    driver_type_id = Column(Integer, ForeignKey("driver_type.driver_type_id", ondelete="SET NULL"), nullable=True)
    profile_pic = Column(Text, nullable=True)  # URL or base64 payload
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    truck = relationship("Truck", back_populates="drivers")
    driver_type = relationship("DriverType")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Driver {self.driver_code} - {self.full_name}>"


class SafetyCategory(Base):
    __tablename__ = "safety_categories"

    category_id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False)
    description = Column(String(300), nullable=False, default="")
    scoring_system = Column(Integer, nullable=False, default=0)
    p_i_score = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<SafetyCategory {self.code}>"


class ScorecardMetric(Base):
    __tablename__ = "scorecard_metrics"

    sc_category_id = Column(Integer, primary_key=True, autoincrement=True)
    sc_category = Column(String(20), nullable=False, index=True)  # SAFETY, MAINTENANCE, DISPATCH
    sc_description = Column(String(300), nullable=False, default="")
    # NULL applies the metric to every driver type
    driver_type_id = Column(Integer, ForeignKey("driver_type.driver_type_id", ondelete="SET NULL"), nullable=True)

    def __repr__(self):
        return f"<ScorecardMetric {self.sc_category}: {self.sc_description}>"


class SafetyEvent(Base):
    __tablename__ = "safety_events"
    __table_args__ = (
        Index("ix_safety_events_driver_date", "driver_id", "event_date"),
    )

    safety_event_id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("drivers.driver_id", ondelete="CASCADE"), nullable=False)
    event_date = Column(CalendarDate, nullable=False)
    category_id = Column(Integer, ForeignKey("safety_categories.category_id", ondelete="RESTRICT"), nullable=False)
    notes = Column(Text, nullable=False, default="")
    bonus_score = Column(Integer, nullable=False, default=0)
    p_i_score = Column(Integer, nullable=False, default=0)
    bonus_period = Column(Boolean, nullable=False, default=False)

    driver = relationship("Driver")
    category = relationship("SafetyCategory")

    def __repr__(self):
        return f"<SafetyEvent {self.event_date}: driver={self.driver_id} category={self.category_id}>"


class ScorecardEvent(Base):
    __tablename__ = "scorecard_events"
    __table_args__ = (
        Index("ix_scorecard_events_driver_date", "driver_id", "event_date"),
    )

    scorecard_event_id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("drivers.driver_id", ondelete="CASCADE"), nullable=False)
    event_date = Column(CalendarDate, nullable=False)
    sc_category_id = Column(Integer, ForeignKey("scorecard_metrics.sc_category_id", ondelete="RESTRICT"), nullable=False)
    sc_score = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=False, default="")

    driver = relationship("Driver")
    metric = relationship("ScorecardMetric")

    def __repr__(self):
        return f"<ScorecardEvent {self.event_date}: driver={self.driver_id} metric={self.sc_category_id}>"


class TruckHistory(Base):
    """Append-only audit trail of truck assignment and status changes.

    truck_id and driver_id are plain columns so entries survive deletion of
    the truck or driver they mention.
    """
    __tablename__ = "truck_history"
    __table_args__ = (
        Index("ix_truck_history_truck_date", "truck_id", "date"),
    )

    truck_history_id = Column(Integer, primary_key=True, autoincrement=True)
    truck_id = Column(Integer, nullable=False)
    driver_id = Column(Integer, nullable=True)
    date = Column(DateTime, default=datetime.utcnow, nullable=False)  # UTC
    type = Column(String(20), nullable=False)  # assignment, maintenance, status_change
    notes = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<TruckHistory {self.type} truck={self.truck_id} at {self.date}>"
