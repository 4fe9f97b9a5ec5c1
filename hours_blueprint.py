# hours_blueprint.py
from datetime import date, datetime
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request, send_file
from pytz import timezone

import day_store
from hours_export import export_filename, export_month_workbook, summarize_employees
from time_accounting import (CATEGORIES, DayRecord, DayType, aggregate_day, classify_day,
                             decimal_hours, effective_minutes, merge_day, normalize_activity)

# ----------------- Blueprint Initialization -----------------
hours_bp = Blueprint("hours_bp", __name__)

FLAG_KEYS = ("rest", "vacation", "sick")

# selects every employee in summary and export queries
ALL_EMPLOYEES = "all"


# ----------------- Helpers -----------------
def business_today() -> date:
    tz = timezone(current_app.config.get("APP_TIMEZONE", "Europe/Rome"))
    return datetime.now(tz).date()


def bad_request(details: str):
    return jsonify({"error": "Invalid request.", "details": details}), 400


def day_payload(employee: str, day: DayRecord) -> Dict[str, Any]:
    total = aggregate_day(day)
    return {
        "employee": employee,
        "date": day.date.isoformat(),
        "day_type": day.day_type.value,
        "activities": [
            {**a.to_dict(), "effective_minutes": effective_minutes(a)}
            for a in day.activities
        ],
        "total_minutes": total,
        "decimal_hours": decimal_hours(total),
    }


def resolve_day_type(body: Dict[str, Any], existing: Optional[DayRecord]) -> Optional[DayType]:
    """Flags sent in the body win, missing ones keep the stored value."""
    if not any(k in body for k in FLAG_KEYS):
        return None
    current = existing.day_type if existing else DayType.NORMAL
    flags = {k: body[k] if k in body else current.value == k for k in FLAG_KEYS}
    return classify_day(flags)


def check_employee_name(employee: str) -> None:
    if not employee.strip():
        raise ValueError("Employee name is required.")
    if employee.strip().lower() == ALL_EMPLOYEES:
        raise ValueError(f"'{employee}' is reserved and cannot be used as an employee name.")


def read_submission():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValueError("JSON object body required.")
    raw_acts = body.get("activities", [])
    if not isinstance(raw_acts, list):
        raise ValueError("'activities' must be a list.")
    return body, [normalize_activity(a) for a in raw_acts if isinstance(a, dict)]


def month_from_args() -> tuple[int, int]:
    value = request.args.get("month")
    if not value:
        today = business_today()
        return today.year, today.month
    return day_store.parse_month(value)


def load_month_data(year: int, month: int) -> Dict[str, Dict[str, DayRecord]]:
    employee = (request.args.get("employee") or ALL_EMPLOYEES).strip()
    if employee.lower() == ALL_EMPLOYEES:
        return day_store.get_all_employees_month(year, month)
    return {employee: day_store.get_month(employee, year, month)}


# ----------------- Routes -----------------
@hours_bp.route("/employees", methods=["GET"])
def employees():
    return jsonify({"employees": day_store.list_employees()})


@hours_bp.route("/categories", methods=["GET"])
def categories():
    return jsonify({"categories": [{"id": k, "label": v} for k, v in CATEGORIES.items()]})


@hours_bp.route("/categories/<category>/activities", methods=["GET"])
def category_activities(category):
    if category not in CATEGORIES:
        return jsonify({"error": "Category not found.", "details": category}), 404
    return jsonify({"category": category, "activities": day_store.get_catalog(category)})


@hours_bp.route("/categories/<category>/activities", methods=["PUT"])
def replace_category_activities(category):
    if category not in CATEGORIES:
        return jsonify({"error": "Category not found.", "details": category}), 404
    body = request.get_json(silent=True)
    entries = body.get("entries") if isinstance(body, dict) else None
    if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
        return bad_request("'entries' must be a list of \"name|minutes\" strings.")
    try:
        saved = day_store.save_catalog(category, [e.strip() for e in entries if e.strip()])
    except ValueError as e:
        return bad_request(str(e))
    if not saved:
        return jsonify({"error": "Error saving the activity list.", "details": "Database write failed."}), 500
    return jsonify({"category": category, "activities": day_store.get_catalog(category)})


@hours_bp.route("/days/<employee>/<iso_date>", methods=["GET"])
def get_day(employee, iso_date):
    try:
        day = day_store.get_day(employee, iso_date)
    except ValueError as e:
        return bad_request(str(e))
    if day is None:
        return jsonify({"error": "Day not found.", "details": f"No entry for {employee} on {iso_date}."}), 404
    return jsonify(day_payload(employee, day))


@hours_bp.route("/days/<employee>/<iso_date>", methods=["POST"])
def submit_day(employee, iso_date):
    try:
        check_employee_name(employee)
        on = day_store.parse_iso_date(iso_date)
        body, submitted = read_submission()
    except ValueError as e:
        return bad_request(str(e))

    existing = day_store.get_day(employee, iso_date)
    day = merge_day(existing, submitted, day_type=resolve_day_type(body, existing), on=on)
    if not day_store.save_day(employee, iso_date, day):
        return jsonify({"error": "Error saving the day.", "details": "Database write failed."}), 500
    current_app.logger.info(f"Saved {len(submitted)} activities for {employee} on {iso_date}")
    return jsonify(day_payload(employee, day))


@hours_bp.route("/days/<employee>/<iso_date>", methods=["PUT"])
def replace_day(employee, iso_date):
    try:
        check_employee_name(employee)
        on = day_store.parse_iso_date(iso_date)
        body, submitted = read_submission()
    except ValueError as e:
        return bad_request(str(e))

    existing = day_store.get_day(employee, iso_date)
    day_type = resolve_day_type(body, existing)
    if day_type is None:
        day_type = existing.day_type if existing else DayType.NORMAL
    day = DayRecord(date=on, day_type=day_type, activities=[a for a in submitted if a.name])
    if not day_store.save_day(employee, iso_date, day):
        return jsonify({"error": "Error saving the day.", "details": "Database write failed."}), 500
    return jsonify(day_payload(employee, day))


@hours_bp.route("/summary", methods=["GET"])
def monthly_summary():
    try:
        year, month = month_from_args()
    except ValueError as e:
        return bad_request(str(e))

    per_employee = summarize_employees(load_month_data(year, month), year, month, up_to=business_today())
    return jsonify({
        "year": year,
        "month": month,
        "employees": [{**s.to_dict(), "days": rows} for s, rows in per_employee],
    })


@hours_bp.route("/export", methods=["GET"])
def export_month():
    try:
        year, month = month_from_args()
    except ValueError as e:
        return bad_request(str(e))

    data = load_month_data(year, month)
    if not data:
        return jsonify({"error": "No data to export.", "details": f"{year}-{month:02d}"}), 404

    employee = (request.args.get("employee") or ALL_EMPLOYEES).strip()
    output = export_month_workbook(data, year, month, up_to=business_today())
    return send_file(
        output,
        as_attachment=True,
        download_name=export_filename(year, month, None if employee.lower() == ALL_EMPLOYEES else employee),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
