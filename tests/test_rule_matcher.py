"""
Rule matching tests: each condition kind, AND semantics, ordering.
"""
from datetime import datetime, time

import pytest

from conftest import at
from parking_pricing.engine.models import BookingInterval, TimeCondition
from parking_pricing.engine.rule_matcher import RuleMatcher, day_of_week, parse_clock, time_matches


@pytest.fixture
def matcher():
    return RuleMatcher()


def booking(start, end):
    return BookingInterval(parking_id="P-1", start_time=start, end_time=end)


def matched_ids(matcher, rules, interval):
    return [m.rule_id for m in matcher.find_matching_rules(rules, interval)]


def test_rule_without_conditions_always_matches(matcher, make_rule):
    rule = make_rule()
    result = matcher.find_matching_rules([rule], booking(at(10, 9), at(10, 10)))

    assert len(result) == 1
    assert result[0].match_reason == "always"


def test_day_of_week_numbering():
    assert day_of_week(datetime(2026, 3, 15)) == 0  # Sunday
    assert day_of_week(datetime(2026, 3, 10)) == 2  # Tuesday
    assert day_of_week(datetime(2026, 3, 14)) == 6  # Saturday


def test_weekend_rule_matches_saturday(matcher, make_rule):
    rule = make_rule(adjustment_type="FIXED", value=15, conditions={"day": {"daysOfWeek": [0, 6]}})

    assert matched_ids(matcher, [rule], booking(at(14, 10), at(14, 13))) == ["R1"]
    assert matched_ids(matcher, [rule], booking(at(10, 10), at(10, 13))) == []


def test_multi_day_booking_uses_start_day(matcher, make_rule):
    rule = make_rule(conditions={"day": {"daysOfWeek": [6]}})

    # Friday 20:00 → Saturday 10:00 starts on a Friday
    assert matched_ids(matcher, [rule], booking(at(13, 20), at(14, 10))) == []
    # Saturday 20:00 → Sunday 10:00 starts on a Saturday
    assert matched_ids(matcher, [rule], booking(at(14, 20), at(15, 10))) == ["R1"]


def test_duration_bounds(matcher, make_rule):
    rule = make_rule(adjustment_type="FIXED", value=-5, conditions={"duration": {"minHours": 4, "maxHours": 8}})

    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 14))) == ["R1"]  # 5h
    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 11))) == []  # 2h
    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 13))) == ["R1"]  # 4h, inclusive
    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 17))) == ["R1"]  # 8h, inclusive
    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 18))) == []  # 9h


def test_duration_uses_started_hours(matcher, make_rule):
    rule = make_rule(conditions={"duration": {"minHours": 0, "maxHours": 2}})

    # 2h30 counts as 3 billable hours
    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 11, 30))) == []


def test_duration_without_max_is_unbounded(matcher, make_rule):
    rule = make_rule(conditions={"duration": {"minHours": 24}})

    assert matched_ids(matcher, [rule], booking(at(10, 9), at(17, 9))) == ["R1"]
    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 20))) == []


def test_date_range_is_inclusive(matcher, make_rule):
    rule = make_rule(conditions={"date": {"startDate": "2026-03-10", "endDate": "2026-03-12"}})

    assert matched_ids(matcher, [rule], booking(at(10, 0), at(10, 2))) == ["R1"]
    assert matched_ids(matcher, [rule], booking(at(12, 23), at(13, 2))) == ["R1"]
    assert matched_ids(matcher, [rule], booking(at(9, 23), at(10, 2))) == []
    assert matched_ids(matcher, [rule], booking(at(13, 0), at(13, 2))) == []


@pytest.mark.parametrize("start, expected", [
    (time(6, 59), False),
    (time(7, 0), True),
    (time(9, 59), True),
    (time(10, 0), False),
])
def test_time_window_is_half_open(start, expected):
    assert time_matches(TimeCondition("07:00", "10:00"), start) is expected


@pytest.mark.parametrize("start, expected", [
    (time(21, 59), False),
    (time(22, 0), True),
    (time(23, 30), True),
    (time(0, 0), True),
    (time(5, 59), True),
    (time(6, 0), False),
    (time(12, 0), False),
])
def test_overnight_time_window(start, expected):
    assert time_matches(TimeCondition("22:00", "06:00"), start) is expected


def test_equal_bounds_cover_whole_day():
    condition = TimeCondition("00:00", "00:00")
    assert time_matches(condition, time(0, 0))
    assert time_matches(condition, time(13, 45))


def test_end_of_day_bound():
    condition = TimeCondition("18:00", "24:00")
    assert time_matches(condition, time(23, 59))
    assert not time_matches(condition, time(0, 0))


def test_parse_clock():
    assert parse_clock("07:30") == 450
    assert parse_clock("24:00") == 1440
    with pytest.raises(ValueError):
        parse_clock("25:00")
    with pytest.raises(ValueError):
        parse_clock("10:60")


def test_all_present_conditions_must_hold(matcher, make_rule):
    rule = make_rule(conditions={
        "day": {"daysOfWeek": [2]},
        "time": {"startTime": "08:00", "endTime": "10:00"},
    })

    # Tuesday, inside the window
    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 11))) == ["R1"]
    # Tuesday, outside the window: the day alone is not enough
    assert matched_ids(matcher, [rule], booking(at(10, 12), at(10, 14))) == []
    # Wednesday, inside the window
    assert matched_ids(matcher, [rule], booking(at(11, 9), at(11, 11))) == []


def test_type_tag_does_not_drive_matching(matcher, make_rule):
    rule = make_rule(rule_type="TIME_BASED", conditions={"day": {"daysOfWeek": [6]}})

    assert matched_ids(matcher, [rule], booking(at(14, 3), at(14, 4))) == ["R1"]
    assert matched_ids(matcher, [rule], booking(at(10, 3), at(10, 4))) == []


def test_inactive_rules_never_match(matcher, make_rule):
    rule = make_rule(active=False)

    assert matched_ids(matcher, [rule], booking(at(10, 9), at(10, 10))) == []


def test_results_sorted_by_priority(matcher, make_rule):
    rules = [
        make_rule("LATE", priority=5),
        make_rule("EARLY", priority=1),
        make_rule("MIDDLE", priority=3),
    ]

    assert matched_ids(matcher, rules, booking(at(10, 9), at(10, 10))) == ["EARLY", "MIDDLE", "LATE"]


def test_equal_priority_keeps_input_order(matcher, make_rule):
    rules = [make_rule("B", priority=1), make_rule("A", priority=1), make_rule("C", priority=0)]
    interval = booking(at(10, 9), at(10, 10))

    results = [matched_ids(matcher, rules, interval) for _ in range(5)]
    assert all(r == ["C", "B", "A"] for r in results)


def test_timezone_converts_aware_start(make_rule):
    from datetime import timezone
    from zoneinfo import ZoneInfo

    rule = make_rule(conditions={"time": {"startTime": "07:00", "endTime": "10:00"}})
    start = datetime(2026, 3, 10, 6, 30, tzinfo=timezone.utc)  # 07:30 in Amsterdam (CET)
    interval = BookingInterval(parking_id="P-1", start_time=start, end_time=start.replace(hour=8))

    assert matched_ids(RuleMatcher(), [rule], interval) == []
    assert matched_ids(RuleMatcher(timezone=ZoneInfo("Europe/Amsterdam")), [rule], interval) == ["R1"]
