"""Tests for the check-in slot finder."""

from datetime import date, datetime, timezone

import pytest

from project_tracker.calendar.slots import day_bounds, find_slot, overlaps, parse_time_of_day
from project_tracker.core.exceptions import ValidationError
from project_tracker.core.models import CalendarEvent

DAY = date(2025, 3, 4)


def _event(start_hm, end_hm, all_day=False):
    start = datetime(2025, 3, 4, *start_hm)
    end = datetime(2025, 3, 4, *end_hm)
    return CalendarEvent("e", "busy", start, end, is_all_day=all_day)


def test_first_preference_when_free():
    assert find_slot(DAY, [], ["14:00", "10:00"], 30, "14:00") == datetime(2025, 3, 4, 14, 0)


def test_next_preference_when_first_taken():
    events = [_event((14, 0), (14, 30))]
    assert find_slot(DAY, events, ["14:00", "10:00"], 30, "14:00") == datetime(2025, 3, 4, 10, 0)


def test_fallback_when_everything_taken():
    events = [_event((14, 0), (14, 30)), _event((10, 0), (10, 30))]
    assert find_slot(DAY, events, ["14:00", "10:00"], 30, "16:45") == datetime(2025, 3, 4, 16, 45)


def test_preference_order_is_not_chronological():
    assert find_slot(DAY, [], ["15:00", "09:00"], 30, "14:00").hour == 15


def test_adjacent_events_do_not_conflict():
    events = [_event((13, 30), (14, 0)), _event((14, 30), (15, 0))]
    assert find_slot(DAY, events, ["14:00"], 30, "09:00") == datetime(2025, 3, 4, 14, 0)


@pytest.mark.parametrize("busy", [((13, 45), (14, 15)), ((14, 15), (14, 45)), ((13, 0), (16, 0)), ((14, 5), (14, 10))])
def test_partial_and_containing_overlaps_conflict(busy):
    events = [_event(*busy)]
    assert find_slot(DAY, events, ["14:00", "10:00"], 30, "14:00").hour == 10


def test_all_day_event_conflicts_with_every_preference():
    events = [_event((0, 0), (23, 59), all_day=True)]
    assert find_slot(DAY, events, ["14:00", "10:00"], 30, "09:30") == datetime(2025, 3, 4, 9, 30)


def test_all_day_events_can_be_ignored():
    events = [_event((0, 0), (23, 59), all_day=True)]
    assert find_slot(DAY, events, ["14:00"], 30, "10:00", ignore_all_day=True).hour == 14


def test_aware_event_times_are_compared_in_local_time():
    local = datetime(2025, 3, 4, 14, 0).astimezone()
    event = CalendarEvent("e", "busy", local.astimezone(timezone.utc),
                          local.astimezone(timezone.utc).replace(minute=30))
    assert find_slot(DAY, [event], ["14:00", "10:00"], 30, "14:00").hour == 10


def test_pure_function():
    events = [_event((14, 0), (14, 30))]
    first = find_slot(DAY, events, ["14:00", "10:00"], 30, "14:00")
    assert find_slot(DAY, events, ["14:00", "10:00"], 30, "14:00") == first


def test_accepts_datetime_target():
    assert find_slot(datetime(2025, 3, 4, 18, 0), [], ["09:00"], 30, "14:00") == datetime(2025, 3, 4, 9, 0)


def test_overlaps_is_half_open():
    a, b = datetime(2025, 1, 1, 10), datetime(2025, 1, 1, 11)
    assert not overlaps(a, b, b, datetime(2025, 1, 1, 12))
    assert overlaps(a, b, datetime(2025, 1, 1, 10, 59), datetime(2025, 1, 1, 12))


def test_parse_time_of_day():
    assert parse_time_of_day("09:05").minute == 5
    with pytest.raises(ValidationError):
        parse_time_of_day("nine")


def test_day_bounds():
    start, end = day_bounds(DAY)
    assert start == datetime(2025, 3, 4)
    assert end == datetime(2025, 3, 5)
