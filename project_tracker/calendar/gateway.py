"""Apple Calendar gateway using EventKit."""

from datetime import date, datetime, timedelta
from typing import List, Optional
import logging

from ..core.exceptions import NotFoundError, ProviderUnavailable
from ..core.models import CalendarEvent
from ..utils.eventkit import EventKitSession


class CalendarGateway:
    """Gateway for Apple Calendar via EventKit."""

    def __init__(self, calendar_id: Optional[str] = None, timeout: float = 30.0,
                 logger: Optional[logging.Logger] = None):
        self.calendar_id = calendar_id
        self.logger = logger or logging.getLogger(__name__)
        self.session = EventKitSession("event", timeout=timeout, logger=self.logger)

    def _calendar(self):
        store = self.session.store()
        if not self.calendar_id:
            return store.defaultCalendarForNewEvents()
        for cal in store.calendarsForEntityType_(self.session.entity_type) or []:
            if str(cal.calendarIdentifier()) == self.calendar_id:
                return cal
        raise NotFoundError(f"Calendar '{self.calendar_id}' not found")

    def _event(self, event_id: str):
        event = self.session.store().eventWithIdentifier_(event_id)
        if event is None:
            raise NotFoundError(f"Calendar event '{event_id}' not found")
        return event

    def _save(self, event) -> None:
        store = self.session.store()
        success, error = store.saveEvent_span_commit_error_(
            event, self.session.ek.EKSpanThisEvent, True, None
        )
        if not success:
            raise ProviderUnavailable(f"Failed to save event '{event.title()}': {error}")

    def _to_event(self, event) -> CalendarEvent:
        cal = event.calendar()
        reminders = []
        for alarm in event.alarms() or []:
            reminders.append(int(-alarm.relativeOffset() // 60))
        return CalendarEvent(
            event_id=str(event.eventIdentifier()),
            title=str(event.title() or 'Untitled'),
            start_time=self.session.py_datetime(event.startDate()),
            end_time=self.session.py_datetime(event.endDate()),
            description=str(event.notes()) if event.notes() else None,
            is_all_day=bool(event.isAllDay()),
            calendar_name=str(cal.title()) if cal else 'Unknown',
            reminders=reminders,
        )

    def calendar_name(self) -> str:
        return self.session.call("calendar lookup", lambda: str(self._calendar().title()))

    def list_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        """Events of the configured calendar overlapping [start, end)."""
        def fetch():
            store = self.session.store()
            predicate = store.predicateForEventsWithStartDate_endDate_calendars_(
                self.session.ns_date(start), self.session.ns_date(end), [self._calendar()]
            )
            result = []
            for event in store.eventsMatchingPredicate_(predicate) or []:
                try:
                    result.append(self._to_event(event))
                except Exception as e:
                    self.logger.warning(f"Failed to process event: {e}")
            result.sort(key=lambda e: e.start_time or datetime.min.astimezone())
            return result
        return self.session.call("list events", fetch)

    def create_event(self, title: str, start: datetime, end: datetime,
                     description: Optional[str] = None) -> CalendarEvent:
        def create():
            event = self.session.ek.EKEvent.eventWithEventStore_(self.session.store())
            event.setCalendar_(self._calendar())
            event.setTitle_(title)
            event.setStartDate_(self.session.ns_date(start))
            event.setEndDate_(self.session.ns_date(end))
            event.setNotes_(description)
            self._save(event)
            return self._to_event(event)
        return self.session.call("create event", create)

    def create_all_day_event(self, title: str, day: date,
                             description: Optional[str] = None) -> CalendarEvent:
        def create():
            start = datetime.combine(day, datetime.min.time())
            event = self.session.ek.EKEvent.eventWithEventStore_(self.session.store())
            event.setCalendar_(self._calendar())
            event.setTitle_(title)
            event.setAllDay_(True)
            event.setStartDate_(self.session.ns_date(start))
            event.setEndDate_(self.session.ns_date(start + timedelta(days=1)))
            event.setNotes_(description)
            self._save(event)
            return self._to_event(event)
        return self.session.call("create all-day event", create)

    def delete_event(self, event_id: str) -> None:
        def delete():
            store = self.session.store()
            success, error = store.removeEvent_span_commit_error_(
                self._event(event_id), self.session.ek.EKSpanThisEvent, True, None
            )
            if not success:
                raise ProviderUnavailable(f"Failed to delete event {event_id}: {error}")
        self.session.call("delete event", delete)

    def set_color(self, event_id: str, color: str) -> None:
        # EventKit colours whole calendars, not single events.
        self.logger.debug("Colour '%s' for event %s is carried by its calendar", color, event_id)

    def add_reminder(self, event_id: str, minutes_before: int) -> None:
        def add():
            event = self._event(event_id)
            alarm = self.session.ek.EKAlarm.alarmWithRelativeOffset_(-60.0 * minutes_before)
            event.addAlarm_(alarm)
            self._save(event)
        self.session.call("add reminder", add)
