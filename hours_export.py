# hours_export.py
import io
from datetime import date
from typing import Dict, List, Optional, Tuple

import pandas as pd

from time_accounting import DayRecord, MonthlySummary, aggregate_month, month_day_rows

DAY_TYPE_LABELS: Dict[Optional[str], str] = {
    "normal": "Lavoro",
    "rest": "Riposo",
    "vacation": "Ferie",
    "sick": "Malattia",
    None: "",
}

SUMMARY_COLUMNS = ["Dipendente", "Ore", "Ore (hh:mm)", "Giorni lavorati", "Riposo", "Ferie", "Malattia"]
DETAIL_COLUMNS = ["Dipendente", "Data", "Stato", "Minuti", "Ore"]


# ----------------- Helpers -----------------
def minutes_to_hhmm(total_minutes: float | int | None) -> str:
    if total_minutes is None:
        return "00:00"
    m = int(round(total_minutes))
    return f"{m // 60:02d}:{m % 60:02d}"


def summarize_employees(data: Dict[str, Dict[str, DayRecord]], year: int, month: int,
                        up_to: Optional[date] = None) -> List[Tuple[MonthlySummary, list]]:
    """(summary, day rows) per employee, sorted by name."""
    out = []
    for employee in sorted(data):
        days = data[employee]
        summary = aggregate_month(days.values(), employee=employee, year=year, month=month)
        out.append((summary, month_day_rows(days, year, month, up_to=up_to)))
    return out


# ----------------- Frames -----------------
def build_summary_frame(summaries: List[MonthlySummary]) -> pd.DataFrame:
    records = [{
        "Dipendente": s.employee,
        "Ore": s.decimal_hours,
        "Ore (hh:mm)": minutes_to_hhmm(s.total_effective_minutes),
        "Giorni lavorati": s.worked_days,
        "Riposo": s.rest_count,
        "Ferie": s.vacation_count,
        "Malattia": s.sick_count,
    } for s in summaries]
    return pd.DataFrame(records, columns=SUMMARY_COLUMNS)


def build_detail_frame(per_employee: List[Tuple[MonthlySummary, list]]) -> pd.DataFrame:
    records = []
    for summary, rows in per_employee:
        for row in rows:
            records.append({
                "Dipendente": summary.employee,
                "Data": row["date"],
                "Stato": DAY_TYPE_LABELS.get(row["day_type"], ""),
                "Minuti": row["minutes"],
                "Ore": row["hours"],
            })
    df = pd.DataFrame(records, columns=DETAIL_COLUMNS)
    if not df.empty:
        df = df.sort_values(["Dipendente", "Data"], kind="stable").reset_index(drop=True)
    return df


def export_month_workbook(data: Dict[str, Dict[str, DayRecord]], year: int, month: int,
                          up_to: Optional[date] = None) -> io.BytesIO:
    per_employee = summarize_employees(data, year, month, up_to=up_to)
    summary_df = build_summary_frame([s for s, _ in per_employee])
    detail_df = build_detail_frame(per_employee)

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        summary_df.to_excel(writer, sheet_name="Riepilogo", index=False)
        detail_df.to_excel(writer, sheet_name="Dettaglio", index=False)
    output.seek(0)
    return output


def export_filename(year: int, month: int, employee: Optional[str] = None) -> str:
    who = employee.replace(" ", "_") if employee else "tutti"
    return f"ore_{who}_{year}-{month:02d}.xlsx"
