# day_store.py
"""Storage boundary for employee days.

Rows keep the loose representation (three booleans plus a JSON list of
activities); everything leaving this module is a ``DayRecord`` with a single
``DayType`` and normalized activities.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from dateutil.relativedelta import relativedelta
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, ActivityCatalog, Employee, EmployeeDay
from time_accounting import (CATALOG_CATEGORIES, DayRecord, DayType, classify_day, day_flags,
                             normalize_activity, parse_catalog_entry)


# ----------------- Helpers -----------------
def parse_iso_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")


def parse_month(value: str) -> tuple[int, int]:
    try:
        first = datetime.strptime(value, "%Y-%m")
    except (TypeError, ValueError):
        raise ValueError(f"Invalid month '{value}', expected YYYY-MM")
    return first.year, first.month


def month_bounds(year: int, month: int) -> tuple[date, date]:
    start = date(year, month, 1)
    return start, start + relativedelta(months=+1, days=-1)


def _find_employee(name: str) -> Optional[Employee]:
    return Employee.query.filter_by(name=name).first()


def get_or_create_employee(name: str) -> Employee:
    emp = _find_employee(name)
    if emp is None:
        emp = Employee(name=name)
        db.session.add(emp)
        db.session.flush()
    return emp


def list_employees() -> List[str]:
    rows = Employee.query.filter_by(active=True).order_by(Employee.name).all()
    return [r.name for r in rows]


# ----------------- Boundary translation -----------------
def flags_to_day(on: date, flags: Mapping[str, Any], activities: Any,
                 employee: str = "") -> DayRecord:
    found = day_flags(flags)
    if len(found) > 1:
        current_app.logger.warning(
            "Conflicting day flags for %s on %s: %s, using %s",
            employee or "?", on.isoformat(), [f.value for f in found], found[0].value)
    raw_acts = activities if isinstance(activities, list) else []
    return DayRecord(
        date=on,
        day_type=classify_day(flags),
        activities=[normalize_activity(a) for a in raw_acts if isinstance(a, Mapping)],
    )


def row_to_day(row: EmployeeDay) -> DayRecord:
    flags = {"rest": row.rest, "vacation": row.vacation, "sick": row.sick}
    return flags_to_day(row.day, flags, row.activities, row.employee.name if row.employee else "")


def legacy_document_to_day(iso_date: str, doc: Mapping[str, Any], employee: str = "") -> DayRecord:
    """Old document layout: {data, attività: [...], riposo, ferie, malattia}."""
    on = parse_iso_date(doc.get("data") or iso_date)
    activities = doc.get("attività", doc.get("activities"))
    return flags_to_day(on, doc, activities, employee)


# ----------------- Reads -----------------
def get_day(employee: str, iso_date: str) -> Optional[DayRecord]:
    on = parse_iso_date(iso_date)
    emp = _find_employee(employee)
    if emp is None:
        return None
    row = EmployeeDay.query.filter_by(employee_id=emp.id, day=on).first()
    return row_to_day(row) if row else None


def _month_rows(employee_ids: List[int], year: int, month: int) -> List[EmployeeDay]:
    start, end = month_bounds(year, month)
    return (EmployeeDay.query
            .filter(EmployeeDay.employee_id.in_(employee_ids))
            .filter(EmployeeDay.day.between(start, end))
            .order_by(EmployeeDay.day)
            .all())


def get_month(employee: str, year: int, month: int) -> Dict[str, DayRecord]:
    emp = _find_employee(employee)
    if emp is None:
        return {}
    return {r.day.isoformat(): row_to_day(r) for r in _month_rows([emp.id], year, month)}


def get_all_employees_month(year: int, month: int) -> Dict[str, Dict[str, DayRecord]]:
    """Every active employee, including the ones without any day in the month."""
    employees = Employee.query.filter_by(active=True).order_by(Employee.name).all()
    result: Dict[str, Dict[str, DayRecord]] = {e.name: {} for e in employees}
    if not employees:
        return result
    for r in _month_rows([e.id for e in employees], year, month):
        result[r.employee.name][r.day.isoformat()] = row_to_day(r)
    return result


# ----------------- Writes -----------------
def _apply(row: EmployeeDay, day: DayRecord) -> None:
    row.rest = day.day_type is DayType.REST
    row.vacation = day.day_type is DayType.VACATION
    row.sick = day.day_type is DayType.SICK
    row.activities = [a.to_dict() for a in day.activities]


def save_day(employee: str, iso_date: str, day: DayRecord) -> bool:
    """Whole-document replace of one day. Returns False on database errors."""
    on = parse_iso_date(iso_date)
    try:
        emp = get_or_create_employee(employee)
        row = EmployeeDay.query.filter_by(employee_id=emp.id, day=on).first()
        if row is None:
            row = EmployeeDay(employee_id=emp.id, day=on)
            db.session.add(row)
        _apply(row, day)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"save_day failed for {employee} on {iso_date}: {e}")
        return False
    return True


def import_legacy_export(data: Mapping[str, Any]) -> int:
    """Load {employee: {iso_date: legacy document}}; returns the number of days written."""
    written = 0
    for employee, days in data.items():
        if not isinstance(days, Mapping):
            continue
        get_or_create_employee(employee)
        for iso_date, doc in days.items():
            if not isinstance(doc, Mapping):
                continue
            try:
                day = legacy_document_to_day(iso_date, doc, employee)
            except ValueError as e:
                current_app.logger.warning(f"Skipping legacy day {iso_date!r} for {employee}: {e}")
                continue
            if save_day(employee, day.date.isoformat(), day):
                written += 1
    db.session.commit()
    return written


# ----------------- Activity catalog -----------------
def get_catalog(category: str) -> List[Dict[str, Any]]:
    """Parsed activity list of a category; empty for free-text or unseeded categories."""
    if category not in CATALOG_CATEGORIES:
        return []
    row = db.session.get(ActivityCatalog, category)
    entries = row.entries if row is not None and isinstance(row.entries, list) else []
    return [parse_catalog_entry(e) for e in entries if isinstance(e, str) and e.strip()]


def save_catalog(category: str, entries: List[str]) -> bool:
    if category not in CATALOG_CATEGORIES:
        raise ValueError(f"Category '{category}' has no activity list")
    try:
        row = db.session.get(ActivityCatalog, category)
        if row is None:
            row = ActivityCatalog(category=category)
            db.session.add(row)
        row.entries = list(entries)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"save_catalog failed for {category}: {e}")
        return False
    return True
