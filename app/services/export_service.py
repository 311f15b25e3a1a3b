import io
from datetime import date

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from sqlalchemy.orm import Session, joinedload

from app.logging_config import get_logger
from app.models import Driver, SafetyEvent
from app.services.calendar_service import parse_month
from app.services.scorecard_service import summarize_month

logger = get_logger(__name__)


HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
HEADER_FILL = PatternFill(start_color="2C3E50", end_color="2C3E50", fill_type="solid")
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

PENDING_FONT = Font(italic=True, color="6C757D")
WARNING_FONT = Font(bold=True, color="DC3545")

# Summaries at or below this percentage are highlighted
LOW_SCORE_PERCENT = 60


def _style_header(ws, row=1):
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT
        cell.border = THIN_BORDER


def _auto_width(ws):
    for col in ws.columns:
        max_len = 0
        col_letter = col[0].column_letter
        for cell in col:
            if cell.value:
                max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_len + 3, 40)


def _to_bytes(wb: Workbook) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


SCORECARD_HEADERS = [
    "Driver Code", "Driver Name", "Driver Type", "Category",
    "Metrics", "Events", "Earned", "Possible", "Score",
]


def export_scorecards_xlsx(db: Session, month: str) -> bytes:
    """One row per driver and scorecard category for the month (YYYY-MM).

    Raises ValueError for a malformed month.
    """
    parse_month(month)
    drivers = (
        db.query(Driver)
        .options(joinedload(Driver.driver_type))
        .order_by(Driver.last_name, Driver.first_name, Driver.driver_id)
        .all()
    )

    wb = Workbook()
    ws = wb.active
    ws.title = f"Scorecards {month}"

    ws.append(SCORECARD_HEADERS)
    _style_header(ws)

    for driver in drivers:
        type_label = driver.driver_type.driver_type if driver.driver_type else ""
        for summary in summarize_month(db, driver, month):
            ws.append([
                driver.driver_code,
                driver.full_name,
                type_label,
                summary.category,
                summary.metric_count,
                summary.event_count,
                summary.earned,
                summary.possible,
                summary.label,
            ])
            score_cell = ws.cell(row=ws.max_row, column=len(SCORECARD_HEADERS))
            if summary.percentage is None:
                score_cell.font = PENDING_FONT
            elif summary.percentage <= LOW_SCORE_PERCENT:
                score_cell.font = WARNING_FONT

    _auto_width(ws)
    return _to_bytes(wb)


SAFETY_HEADERS = [
    "Date", "Driver Code", "Driver Name", "Category", "Description",
    "Bonus Score", "P&I Score", "Bonus Period", "Notes",
]


def export_safety_events_xlsx(db: Session, date_from: date, date_to: date) -> bytes:
    """Safety events between two calendar days, inclusive."""
    events = (
        db.query(SafetyEvent)
        .options(joinedload(SafetyEvent.driver), joinedload(SafetyEvent.category))
        .filter(SafetyEvent.event_date >= date_from, SafetyEvent.event_date <= date_to)
        .order_by(SafetyEvent.event_date, SafetyEvent.safety_event_id)
        .all()
    )

    wb = Workbook()
    ws = wb.active
    ws.title = "Safety Events"

    ws.append(SAFETY_HEADERS)
    _style_header(ws)

    for e in events:
        if not isinstance(e.event_date, date):
            logger.warning(f"Skipping safety event {e.safety_event_id} with unreadable date {e.event_date!r}")
            continue
        ws.append([
            e.event_date.isoformat(),
            e.driver.driver_code if e.driver else "",
            e.driver.full_name if e.driver else "",
            e.category.code if e.category else "",
            (e.category.description or "") if e.category else "",
            e.bonus_score,
            e.p_i_score,
            "Yes" if e.bonus_period else "No",
            e.notes or "",
        ])

    _auto_width(ws)
    return _to_bytes(wb)
