"""Tests for time_accounting."""

import random
from datetime import date

import pytest

from time_accounting import (
    ActivityRecord,
    DayRecord,
    DayType,
    aggregate_day,
    aggregate_month,
    as_flag,
    classify_day,
    decimal_hours,
    effective_minutes,
    merge_activities,
    merge_day,
    month_day_rows,
    normalize_activity,
    parse_catalog_entry,
    parse_int,
)


def act(minutes, multiplier=1, headcount=1, name="Pulizia", category="uffici"):
    return ActivityRecord(name=name, category=category, minutes=minutes,
                          headcount=headcount, multiplier=multiplier)


class TestParseInt:
    def test_strings(self):
        assert parse_int("90") == 90
        assert parse_int(" 12 min") == 12
        assert parse_int("-3") == -3

    def test_floats_truncate(self):
        assert parse_int(2.9) == 2

    @pytest.mark.parametrize("value", [None, "", "abc", True, float("nan"), float("inf"), [1]])
    def test_garbage(self, value):
        assert parse_int(value) is None


class TestNormalizer:
    def test_defaults_for_missing_fields(self):
        rec = normalize_activity({"name": "Scale"})
        assert (rec.minutes, rec.headcount, rec.multiplier) == (0, 1, 1)
        assert rec.category == ""

    def test_string_numbers(self):
        rec = normalize_activity({"name": "Bagno", "category": "bnb", "minutes": "45",
                                  "headcount": "2", "multiplier": "3"})
        assert (rec.minutes, rec.headcount, rec.multiplier) == (45, 2, 3)

    @pytest.mark.parametrize("headcount", [0, -2, None, "x"])
    def test_headcount_clamped_to_one(self, headcount):
        assert normalize_activity({"minutes": 60, "headcount": headcount}).headcount == 1

    def test_zero_multiplier_kept(self):
        assert normalize_activity({"minutes": 60, "multiplier": 0}).multiplier == 0

    def test_negative_values_degrade(self):
        rec = normalize_activity({"minutes": -10, "multiplier": -1})
        assert rec.minutes == 0
        assert rec.multiplier == 1

    def test_legacy_keys(self):
        rec = normalize_activity({"nome": "Cucina", "tipo": "appartamenti", "minuti": "30",
                                  "persone": 2, "moltiplicatore": 1})
        assert rec == ActivityRecord("Cucina", "appartamenti", 30, 2, 1)


class TestEffectiveMinutes:
    def test_formula(self):
        assert effective_minutes(act(40, multiplier=2, headcount=2)) == 40

    def test_no_rounding(self):
        assert effective_minutes(act(10, headcount=3)) == pytest.approx(10 / 3)

    def test_zero_minutes_or_multiplier(self):
        assert effective_minutes(act(0, multiplier=5, headcount=2)) == 0
        assert effective_minutes(act(90, multiplier=0)) == 0

    @pytest.mark.parametrize("headcount", [0, -1])
    def test_bad_headcount_same_as_one(self, headcount):
        assert effective_minutes(act(90, headcount=headcount)) == effective_minutes(act(90))


class TestClassifier:
    def test_normal_when_no_flags(self):
        assert classify_day({}) is DayType.NORMAL

    def test_single_flags(self):
        assert classify_day({"rest": True}) is DayType.REST
        assert classify_day({"vacation": True}) is DayType.VACATION
        assert classify_day({"sick": True}) is DayType.SICK

    def test_precedence(self):
        assert classify_day({"rest": True, "vacation": True, "sick": True}) is DayType.SICK
        assert classify_day({"rest": True, "vacation": True}) is DayType.VACATION

    def test_legacy_flags(self):
        assert classify_day({"riposo": True, "ferie": False, "malattia": False}) is DayType.REST

    def test_string_flags_coerced(self):
        assert classify_day({"rest": "false"}) is DayType.NORMAL
        assert classify_day({"rest": "true"}) is DayType.REST
        assert classify_day({"sick": "False", "vacation": " TRUE "}) is DayType.VACATION

    @pytest.mark.parametrize("value, expected", [
        (True, True), (False, False), ("true", True), ("false", False), ("1", True), ("0", False),
        (1, True), (0, False), ("", False), (None, False), ([True], False),
    ])
    def test_as_flag(self, value, expected):
        assert as_flag(value) is expected


class TestCatalogEntry:
    def test_name_and_minutes(self):
        assert parse_catalog_entry("Vetri ufficio | 30") == {"name": "Vetri ufficio", "minutes": 30}

    @pytest.mark.parametrize("entry", ["Scale", "Scale|", "Scale|abc", "Scale|-5"])
    def test_unreadable_minutes_are_zero(self, entry):
        assert parse_catalog_entry(entry) == {"name": "Scale", "minutes": 0}


class TestAggregateDay:
    def test_scenario_a(self):
        day = DayRecord(date(2025, 3, 3), activities=[act(90)])
        assert aggregate_day(day) == 90
        assert decimal_hours(aggregate_day(day)) == 1.5

    def test_scenario_b(self):
        day = DayRecord(date(2025, 3, 3), activities=[act(90), act(40, 2, 2, name="Vetri")])
        assert aggregate_day(day) == 130
        assert decimal_hours(aggregate_day(day)) == 2.17

    def test_rest_day_ignores_activities(self):
        day = DayRecord(date(2025, 3, 3), DayType.REST, [act(90)])
        assert aggregate_day(day) == 0

    def test_order_independent(self):
        acts = [act(m, headcount=h, name=str(i)) for i, (m, h) in
                enumerate([(17, 3), (25, 7), (40, 6), (33, 9), (90, 1), (11, 4)])]
        shuffled = list(acts)
        random.Random(7).shuffle(shuffled)
        a = aggregate_day(DayRecord(date(2025, 3, 3), activities=acts))
        b = aggregate_day(DayRecord(date(2025, 3, 3), activities=shuffled))
        assert a == pytest.approx(b)


class TestAggregateMonth:
    def test_rounds_once(self):
        # 10/3 minutes per day: per-day rounding would drift from the single rounding
        days = [DayRecord(date(2025, 3, d), activities=[act(10, headcount=3)]) for d in range(1, 31)]
        summary = aggregate_month(days, "anna", 2025, 3)
        unrounded = sum(10 / 3 for _ in range(30))
        assert summary.decimal_hours == round(unrounded / 60, 2)
        assert summary.decimal_hours != round(sum(round(10 / 3 / 60, 2) for _ in range(30)), 2)

    def test_scenario_d_vacation(self):
        days = [
            DayRecord(date(2025, 3, 3), activities=[act(90)]),
            DayRecord(date(2025, 3, 4), DayType.VACATION, [act(60)]),
        ]
        summary = aggregate_month(days)
        assert summary.total_effective_minutes == 90
        assert summary.vacation_count == 1
        assert summary.worked_days == 1

    def test_counts(self):
        days = [
            DayRecord(date(2025, 3, 1), DayType.REST),
            DayRecord(date(2025, 3, 2), DayType.REST),
            DayRecord(date(2025, 3, 5), DayType.SICK),
        ]
        summary = aggregate_month(days)
        assert (summary.rest_count, summary.vacation_count, summary.sick_count) == (2, 0, 1)
        assert summary.decimal_hours == 0

    def test_filters_other_months(self):
        days = [
            DayRecord(date(2025, 2, 28), activities=[act(60)]),
            DayRecord(date(2025, 3, 1), activities=[act(30)]),
        ]
        assert aggregate_month(days, year=2025, month=3).total_effective_minutes == 30

    def test_to_dict(self):
        summary = aggregate_month([DayRecord(date(2025, 3, 1), activities=[act(130)])], "anna", 2025, 3)
        data = summary.to_dict()
        assert data["decimal_hours"] == 2.17
        assert data["employee"] == "anna"


class TestMonthDayRows:
    def test_full_month(self):
        rows = month_day_rows({}, 2024, 2)
        assert len(rows) == 29
        assert rows[0]["date"] == "2024-02-01"
        assert all(r["day_type"] is None and r["hours"] == 0 for r in rows)

    def test_up_to_cutoff(self):
        days = {"2025-03-02": DayRecord(date(2025, 3, 2), activities=[act(90)])}
        rows = month_day_rows(days, 2025, 3, up_to=date(2025, 3, 3))
        assert [r["date"] for r in rows] == ["2025-03-01", "2025-03-02", "2025-03-03"]
        assert rows[1]["day_type"] == "normal"
        assert rows[1]["hours"] == 1.5


class TestMerge:
    def test_scenario_c(self):
        existing = [act(90, multiplier=1, headcount=1)]
        merged = merge_activities(existing, [act(30, multiplier=2, headcount=3)])
        assert len(merged) == 1
        assert merged[0].minutes == 120
        assert (merged[0].headcount, merged[0].multiplier) == (3, 2)

    def test_different_category_appended(self):
        merged = merge_activities([act(90)], [act(30, category="bnb")])
        assert [(a.category, a.minutes) for a in merged] == [("uffici", 90), ("bnb", 30)]

    def test_does_not_mutate_existing(self):
        existing = [act(90)]
        merge_activities(existing, [act(30)])
        assert existing[0].minutes == 90

    def test_merge_day_creates_new(self):
        day = merge_day(None, [act(45)], on=date(2025, 3, 3))
        assert day.date == date(2025, 3, 3)
        assert day.day_type is DayType.NORMAL

    def test_merge_day_keeps_day_type(self):
        existing = DayRecord(date(2025, 3, 3), DayType.REST)
        assert merge_day(existing, []).day_type is DayType.REST
        assert merge_day(existing, [], day_type=DayType.NORMAL).day_type is DayType.NORMAL

    def test_merge_day_needs_date(self):
        with pytest.raises(ValueError):
            merge_day(None, [act(10)])
