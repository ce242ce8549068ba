"""Conflict-free time slot search for check-in events."""

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Tuple

from ..core.exceptions import ValidationError
from ..core.models import CalendarEvent


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` into a time."""
    try:
        hours, minutes = value.strip().split(":")
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as e:
        raise ValidationError(f"Invalid time of day '{value}' (expected HH:MM)") from e


def _naive_local(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def overlaps(slot_start: datetime, slot_end: datetime,
             event_start: datetime, event_end: datetime) -> bool:
    """Half-open interval overlap: [slot_start, slot_end) against [event_start, event_end)."""
    return slot_start < event_end and slot_end > event_start


def find_slot(target_day: date, existing_events: Iterable[CalendarEvent],
              preferred_times: List[str], duration_minutes: int,
              fallback_time: str, ignore_all_day: bool = False) -> datetime:
    """
    Pick the start of a check-in slot on ``target_day``.

    Candidates are tried in the order given (a priority order, not a
    chronological one). The first candidate whose slot overlaps no existing
    event wins; when every candidate conflicts the fallback time is returned
    even though it may double-book. All-day events block every candidate
    unless ``ignore_all_day`` is set.
    """
    if isinstance(target_day, datetime):
        target_day = target_day.date()
    duration = timedelta(minutes=duration_minutes)

    busy = []
    for event in existing_events:
        if event.start_time is None or event.end_time is None:
            continue
        if ignore_all_day and event.is_all_day:
            continue
        busy.append((_naive_local(event.start_time), _naive_local(event.end_time)))

    for candidate in preferred_times:
        slot_start = datetime.combine(target_day, parse_time_of_day(candidate))
        slot_end = slot_start + duration
        if not any(overlaps(slot_start, slot_end, start, end) for start, end in busy):
            return slot_start

    return datetime.combine(target_day, parse_time_of_day(fallback_time))


def day_bounds(target_day: date) -> Tuple[datetime, datetime]:
    """Start and end (exclusive) of a calendar day."""
    if isinstance(target_day, datetime):
        target_day = target_day.date()
    start = datetime.combine(target_day, time.min)
    return start, start + timedelta(days=1)
