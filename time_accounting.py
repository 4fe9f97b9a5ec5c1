# time_accounting.py
import calendar
import math
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

# ----------------- Types -----------------
CATEGORIES: Dict[str, str] = {
    "uffici": "Uffici",
    "appartamenti": "Appartamenti",
    "bnb": "BnB",
    "pst": "PST",
}

# categories backed by a predefined activity list; "pst" is free text
CATALOG_CATEGORIES = ("uffici", "appartamenti", "bnb")


class DayType(str, Enum):
    NORMAL = "normal"
    REST = "rest"
    VACATION = "vacation"
    SICK = "sick"


@dataclass
class ActivityRecord:
    name: str
    category: str
    minutes: int = 0
    headcount: int = 1
    multiplier: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "minutes": self.minutes,
            "headcount": self.headcount,
            "multiplier": self.multiplier,
        }


@dataclass
class DayRecord:
    date: date
    day_type: DayType = DayType.NORMAL
    activities: List[ActivityRecord] = field(default_factory=list)


@dataclass
class MonthlySummary:
    employee: str
    year: int
    month: int
    total_effective_minutes: float = 0.0
    worked_days: int = 0
    rest_count: int = 0
    vacation_count: int = 0
    sick_count: int = 0

    @property
    def decimal_hours(self) -> float:
        return decimal_hours(self.total_effective_minutes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee": self.employee,
            "year": self.year,
            "month": self.month,
            "total_effective_minutes": self.total_effective_minutes,
            "decimal_hours": self.decimal_hours,
            "worked_days": self.worked_days,
            "rest_count": self.rest_count,
            "vacation_count": self.vacation_count,
            "sick_count": self.sick_count,
        }


# ----------------- Normalizer -----------------
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# current key -> legacy key, as found in old stored documents
_LEGACY_KEYS: Dict[str, str] = {
    "name": "nome",
    "category": "tipo",
    "minutes": "minuti",
    "headcount": "persone",
    "multiplier": "moltiplicatore",
}


def parse_int(value: Any) -> Optional[int]:
    """Integer parse in the permissive way the entry forms send numbers.

    "90" -> 90, "12 min" -> 12, 2.9 -> 2, "abc"/None/True/nan -> None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _field(raw: Mapping[str, Any], key: str) -> Any:
    if key in raw:
        return raw[key]
    return raw.get(_LEGACY_KEYS[key])


def normalize_activity(raw: Mapping[str, Any]) -> ActivityRecord:
    """Coerce a raw activity into canonical numbers. Never raises."""
    minutes = parse_int(_field(raw, "minutes"))
    headcount = parse_int(_field(raw, "headcount"))
    multiplier = parse_int(_field(raw, "multiplier"))

    name = _field(raw, "name")
    category = _field(raw, "category")
    return ActivityRecord(
        name=str(name).strip() if name is not None else "",
        category=str(category).strip() if category is not None else "",
        minutes=minutes if minutes is not None and minutes > 0 else 0,
        headcount=headcount if headcount is not None and headcount >= 1 else 1,
        # zero is a real multiplier, only garbage falls back to 1
        multiplier=multiplier if multiplier is not None and multiplier >= 0 else 1,
    )


def parse_catalog_entry(entry: Any) -> Dict[str, Any]:
    """Split a "Vetri|30" entry into name and minutes; unreadable minutes become 0."""
    name, _, minutes = str(entry).partition("|")
    parsed = parse_int(minutes)
    return {"name": name.strip(), "minutes": parsed if parsed is not None and parsed > 0 else 0}


# ----------------- Calculator -----------------
def effective_minutes(record: ActivityRecord) -> float:
    return (record.minutes * record.multiplier) / max(record.headcount, 1)


# ----------------- Day Classifier -----------------
_FLAG_KEYS = (
    (DayType.SICK, ("sick", "malattia")),
    (DayType.VACATION, ("vacation", "ferie")),
    (DayType.REST, ("rest", "riposo")),
)


_TRUE_STRINGS = {"true", "1", "yes", "on", "si", "sì"}


def as_flag(value: Any) -> bool:
    """Booleans as they are; "true"/"false" style strings and 0/1 coerced."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def day_flags(flags: Mapping[str, Any]) -> List[DayType]:
    """All non-normal day types set in a flag mapping, highest precedence first."""
    return [day_type for day_type, keys in _FLAG_KEYS if any(as_flag(flags.get(k)) for k in keys)]


def classify_day(flags: Mapping[str, Any]) -> DayType:
    """sick > vacation > rest > normal."""
    found = day_flags(flags)
    return found[0] if found else DayType.NORMAL


# ----------------- Aggregator -----------------
def decimal_hours(minutes: float) -> float:
    return round(minutes / 60, 2)


def aggregate_day(day: DayRecord) -> float:
    if day.day_type is not DayType.NORMAL:
        return 0.0
    return math.fsum(effective_minutes(a) for a in day.activities)


def aggregate_month(days: Iterable[DayRecord], employee: str = "",
                    year: Optional[int] = None, month: Optional[int] = None) -> MonthlySummary:
    """Monthly totals; the only rounding happens in ``MonthlySummary.decimal_hours``."""
    summary = MonthlySummary(employee=employee, year=year or 0, month=month or 0)
    day_totals = []
    for day in days:
        if year is not None and day.date.year != year:
            continue
        if month is not None and day.date.month != month:
            continue

        if day.day_type is DayType.SICK:
            summary.sick_count += 1
        elif day.day_type is DayType.VACATION:
            summary.vacation_count += 1
        elif day.day_type is DayType.REST:
            summary.rest_count += 1
        elif day.activities:
            summary.worked_days += 1
            day_totals.append(aggregate_day(day))

    summary.total_effective_minutes = math.fsum(day_totals)
    return summary


def month_day_rows(days: Mapping[str, DayRecord], year: int, month: int,
                   up_to: Optional[date] = None) -> List[Dict[str, Any]]:
    """One row per calendar day, ascending, for tables and the export."""
    rows = []
    last_day = calendar.monthrange(year, month)[1]
    for day_num in range(1, last_day + 1):
        current = date(year, month, day_num)
        if up_to is not None and current > up_to:
            break
        iso = current.isoformat()
        day = days.get(iso)
        minutes = aggregate_day(day) if day is not None else 0.0
        rows.append({
            "date": iso,
            "day_type": day.day_type.value if day is not None else None,
            "minutes": minutes,
            "hours": decimal_hours(minutes),
        })
    return rows


# ----------------- Merge -----------------
def merge_activities(existing: Iterable[ActivityRecord],
                     submitted: Iterable[ActivityRecord]) -> List[ActivityRecord]:
    """Same (name, category): minutes add up, headcount and multiplier follow the
    latest submission. Unknown keys are appended in submission order."""
    merged: Dict[tuple, ActivityRecord] = {}
    for act in existing:
        key = (act.name, act.category)
        if key in merged:
            merged[key].minutes += act.minutes
        else:
            merged[key] = ActivityRecord(**act.to_dict())

    for act in submitted:
        key = (act.name, act.category)
        current = merged.get(key)
        if current is None:
            merged[key] = ActivityRecord(**act.to_dict())
        else:
            current.minutes += act.minutes
            current.headcount = act.headcount
            current.multiplier = act.multiplier
    return list(merged.values())


def merge_day(existing: Optional[DayRecord], submitted: Iterable[ActivityRecord],
              day_type: Optional[DayType] = None, on: Optional[date] = None) -> DayRecord:
    if existing is None:
        if on is None:
            raise ValueError("a date is required to create a new day")
        existing = DayRecord(date=on)
    return DayRecord(
        date=existing.date,
        day_type=day_type if day_type is not None else existing.day_type,
        activities=merge_activities(existing.activities, submitted),
    )
