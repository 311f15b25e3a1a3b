import io
import zipfile

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import Driver, DriverType, Truck
from app.schemas import ImportResult
from app.services.assignment_service import effective_status
from app.services.calendar_service import parse_day

logger = get_logger(__name__)

IMPORTABLE_STATUSES = ("available", "maintenance")


def _read_file(content: bytes, filename: str) -> pd.DataFrame:
    """Read CSV or XLSX file into a DataFrame.

    Files that cannot be parsed raise ValueError, like an unsupported format.
    """
    name = filename.lower()
    if not name.endswith((".csv", ".xlsx", ".xls")):
        raise ValueError(f"Unsupported file format: {filename}. Use .csv or .xlsx")
    try:
        if name.endswith(".csv"):
            return pd.read_csv(io.BytesIO(content), dtype=str)
        return pd.read_excel(io.BytesIO(content), dtype=str, engine="openpyxl")
    except (zipfile.BadZipFile, InvalidFileException, KeyError,
            pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise ValueError(f"Could not read {filename}: {e}") from e


def _safe_str(val) -> str | None:
    """Extract a clean string from a pandas cell, return None if empty/nan."""
    if pd.isna(val):
        return None
    s = str(val).strip()
    if not s or s.lower() == "nan":
        return None
    return s


def _normalize_columns(df: pd.DataFrame, required: tuple[str, ...]) -> pd.DataFrame:
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"File must have column(s): {', '.join(missing)}")
    return df


def import_trucks(db: Session, content: bytes, filename: str) -> ImportResult:
    """Import trucks from CSV/XLSX.

    Columns: 'unit_number' (required), 'year', 'status' (available or
    maintenance). Existing unit numbers are updated in place; a truck that a
    driver currently holds keeps status "assigned".
    """
    df = _normalize_columns(_read_file(content, filename), ("unit_number",))

    errors = []
    imported = 0
    updated = 0
    seen = set()

    for idx, row in df.iterrows():
        row_num = idx + 2  # spreadsheet row (1-indexed + header)

        unit = _safe_str(row.get("unit_number"))
        if not unit:
            errors.append(f"Row {row_num}: empty unit_number")
            continue
        if unit in seen:
            errors.append(f"Row {row_num}: duplicate unit_number '{unit}' in file")
            continue
        seen.add(unit)

        raw_year = _safe_str(row.get("year"))
        try:
            year = int(float(raw_year)) if raw_year else None
        except ValueError:
            errors.append(f"Row {row_num}: invalid year '{raw_year}'")
            continue

        status = (_safe_str(row.get("status")) or "").lower() or None
        if status is not None and status not in IMPORTABLE_STATUSES:
            errors.append(f"Row {row_num}: invalid status '{status}'")
            continue

        existing = db.query(Truck).filter(Truck.unit_number == unit).first()
        if existing:
            if year is not None:
                existing.year = year
            if status is not None:
                held = db.query(Driver).filter(Driver.truck_id == existing.truck_id).count() > 0
                existing.status = effective_status(status, held)
            updated += 1
            continue

        if year is None:
            errors.append(f"Row {row_num}: year is required for new truck '{unit}'")
            continue
        db.add(Truck(unit_number=unit, year=year, status=effective_status(status, held=False)))
        imported += 1

    db.flush()
    logger.info(f"Imported trucks from '{filename}': {imported} new, {updated} updated, {len(errors)} errors")

    return ImportResult(
        filename=filename,
        import_type="truck",
        records_total=len(df),
        records_imported=imported,
        records_updated=updated,
        records_errors=len(errors),
        errors=errors,
    )


def import_drivers(db: Session, content: bytes, filename: str) -> ImportResult:
    """Import drivers from CSV/XLSX.

    Columns: 'driver_code', 'first_name', 'last_name' (required),
    'start_date' (YYYY-MM-DD), 'driver_type' (label of an existing type).
    Rows are matched on driver_code. Truck assignments are left untouched.
    """
    df = _normalize_columns(
        _read_file(content, filename), ("driver_code", "first_name", "last_name")
    )

    types_by_label = {
        dt.driver_type.strip().lower(): dt.driver_type_id for dt in db.query(DriverType).all()
    }

    errors = []
    imported = 0
    updated = 0
    seen = set()

    for idx, row in df.iterrows():
        row_num = idx + 2

        code = _safe_str(row.get("driver_code"))
        first_name = _safe_str(row.get("first_name"))
        last_name = _safe_str(row.get("last_name"))
        if not code:
            errors.append(f"Row {row_num}: empty driver_code")
            continue
        if not first_name or not last_name:
            errors.append(f"Row {row_num}: first_name and last_name are required")
            continue
        if code in seen:
            errors.append(f"Row {row_num}: duplicate driver_code '{code}' in file")
            continue
        seen.add(code)

        start_raw = _safe_str(row.get("start_date"))
        try:
            start_date = parse_day(start_raw) if start_raw else None
        except ValueError:
            errors.append(f"Row {row_num}: invalid start_date '{start_raw}' (expected YYYY-MM-DD)")
            continue

        type_label = _safe_str(row.get("driver_type"))
        driver_type_id = None
        if type_label:
            driver_type_id = types_by_label.get(type_label.lower())
            if driver_type_id is None:
                errors.append(f"Row {row_num}: unknown driver_type '{type_label}'")
                continue

        existing = db.query(Driver).filter(Driver.driver_code == code).first()
        if existing:
            existing.first_name = first_name
            existing.last_name = last_name
            if start_date is not None:
                existing.start_date = start_date
            if driver_type_id is not None:
                existing.driver_type_id = driver_type_id
            updated += 1
            continue

        db.add(Driver(
            driver_code=code,
            first_name=first_name,
            last_name=last_name,
            start_date=start_date,
            driver_type_id=driver_type_id,
        ))
        imported += 1

    db.flush()
    logger.info(f"Imported drivers from '{filename}': {imported} new, {updated} updated, {len(errors)} errors")

    return ImportResult(
        filename=filename,
        import_type="driver",
        records_total=len(df),
        records_imported=imported,
        records_updated=updated,
        records_errors=len(errors),
        errors=errors,
    )
