from datetime import date
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from app.services.calendar_service import parse_day


def _strict_day(value):
    if isinstance(value, date):
        return value
    return parse_day(value)


def _optional_strict_day(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _strict_day(value)


CalendarDay = Annotated[date, BeforeValidator(_strict_day)]
OptionalCalendarDay = Annotated[Optional[date], BeforeValidator(_optional_strict_day)]

TruckStatus = Literal["available", "maintenance", "assigned"]
ScorecardCategory = Literal["SAFETY", "MAINTENANCE", "DISPATCH"]


# --- Truck ---
class TruckIn(BaseModel):
    unit_number: str
    year: int
    status: TruckStatus = "available"


class TruckOut(BaseModel):
    truck_id: int
    unit_number: str
    year: int
    status: str


class TruckHistoryOut(BaseModel):
    truck_history_id: int
    truck_id: int
    driver_id: Optional[int] = None
    date: str
    type: str
    notes: Optional[str] = None


# --- Driver type ---
class DriverTypeIn(BaseModel):
    driver_type: str


class DriverTypeOut(BaseModel):
    driver_type_id: int
    driver_type: str


# --- Driver ---
class DriverIn(BaseModel):
    driver_code: str
    first_name: str
    last_name: str
    start_date: OptionalCalendarDay = None
    truck_id: Optional[int] = None
    driver_type_id: Optional[int] = None
    profile_pic: Optional[str] = None


class DriverOut(BaseModel):
    driver_id: int
    driver_code: str
    first_name: str
    last_name: str
    start_date: Optional[str] = None
    truck_id: Optional[int] = None
    driver_type_id: Optional[int] = None
    profile_pic: Optional[str] = None


class DriverStatsOut(BaseModel):
    event_count: int = Field(serialization_alias="eventCount")
    total_bonus_score: int = Field(serialization_alias="totalBonusScore")
    total_pi_score: int = Field(serialization_alias="totalPIScore")
    status: str


# --- Assignment ---
class AssignDriverRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    driver_id: Optional[int] = Field(None, alias="driverId")


class AssignTruckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    truck_id: Optional[int] = Field(None, alias="truckId")


class AssignmentOut(BaseModel):
    truck: Optional[TruckOut] = None
    driver: Optional[DriverOut] = None


# --- Safety ---
class SafetyCategoryIn(BaseModel):
    code: str
    description: str = ""
    scoring_system: int = 0
    p_i_score: int = 0


class SafetyCategoryOut(SafetyCategoryIn):
    category_id: int


class SafetyEventIn(BaseModel):
    driver_id: int
    event_date: CalendarDay
    category_id: int
    notes: str = ""
    bonus_score: int = 0
    p_i_score: int = 0
    bonus_period: bool = False


class SafetyEventOut(BaseModel):
    safety_event_id: int
    driver_id: int
    event_date: str
    category_id: int
    notes: str = ""
    bonus_score: int
    p_i_score: int
    bonus_period: bool


# --- Scorecard ---
class ScorecardMetricIn(BaseModel):
    sc_category: ScorecardCategory
    sc_description: str = ""
    driver_type_id: Optional[int] = None


class ScorecardMetricOut(BaseModel):
    sc_category_id: int
    sc_category: str
    sc_description: str
    driver_type_id: Optional[int] = None


class ScorecardEventIn(BaseModel):
    driver_id: int
    event_date: CalendarDay
    sc_category_id: int
    sc_score: int = 0
    notes: str = ""


class ScorecardEventOut(BaseModel):
    scorecard_event_id: int
    driver_id: int
    event_date: str
    sc_category_id: int
    sc_score: int
    notes: str = ""


class CategorySummary(BaseModel):
    category: str
    metric_count: int
    event_count: int
    earned: int
    possible: int
    percentage: Optional[int] = None
    label: str


class ScorecardSummaryOut(BaseModel):
    driver_id: int
    month: str
    categories: list[CategorySummary]


# --- Bootstrap ---
class BootstrapOut(BaseModel):
    trucks: list[TruckOut]
    driver_types: list[DriverTypeOut] = Field(serialization_alias="driverTypes")
    drivers: list[DriverOut]
    safety_categories: list[SafetyCategoryOut] = Field(serialization_alias="safetyCategories")
    score_card: list[ScorecardMetricOut] = Field(serialization_alias="scoreCard")
    safety_events: list[SafetyEventOut] = Field(serialization_alias="safetyEvents")
    score_card_events: list[ScorecardEventOut] = Field(serialization_alias="scoreCardEvents")


# --- Import ---
class ImportResult(BaseModel):
    filename: str
    import_type: str
    records_total: int
    records_imported: int
    records_updated: int
    records_errors: int
    errors: list[str]
