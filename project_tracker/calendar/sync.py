"""
Calendar sync engine.

Projects own at most two calendar events: a timed check-in event and an
all-day completion event. Events are correlated with their project only by
the ``UUID: <id>`` token written into the event description, so every
lookup is a content search over a bounded window around today.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, List, Optional, Set
import logging

from ..core.config import TrackerConfig
from ..core.exceptions import NoDateSet, ProviderUnavailable, TrackerError
from ..core.models import CalendarEvent, DriftKind, EventKind, ProjectRow
from ..sheets.projects import ProjectSheet
from ..utils.date import format_sheet_date
from .slots import day_bounds, find_slot


@dataclass
class DriftReport:
    """Drift classification of one project."""

    project: ProjectRow
    kinds: Set[DriftKind] = field(default_factory=set)
    events: List[CalendarEvent] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def in_sync(self) -> bool:
        return not self.kinds and self.error is None

    def summary(self) -> str:
        label = f"{self.project.id} ({self.project.source_sheet}: {self.project.title})"
        if self.error:
            return f"{label}: error - {self.error}"
        if not self.kinds:
            return f"{label}: in sync"
        return f"{label}: " + ", ".join(sorted(k.value for k in self.kinds))


@dataclass
class EventCreation:
    """Events created for a project, and those already there that were left as is."""

    created: List[CalendarEvent] = field(default_factory=list)
    existing: List[CalendarEvent] = field(default_factory=list)

    @property
    def skipped_kinds(self) -> List[EventKind]:
        kinds = []
        for event in self.existing:
            if event.kind not in kinds:
                kinds.append(event.kind)
        return kinds

    def __iter__(self):
        return iter(self.created)

    def __len__(self) -> int:
        return len(self.created)


class CalendarSyncEngine:
    """Creates, finds, compares and removes the calendar events of projects."""

    def __init__(self, gateway, config: TrackerConfig,
                 clock: Callable[[], datetime] = datetime.now,
                 workbook_link: str = "",
                 logger: Optional[logging.Logger] = None):
        self.gateway = gateway
        self.config = config
        self.clock = clock
        self.workbook_link = workbook_link
        self.logger = logger or logging.getLogger(__name__)

    def _provider(self, what: str, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except ProviderUnavailable:
            raise
        except Exception as e:
            self.logger.error("Calendar provider %s failed: %s", what, e)
            raise ProviderUnavailable(f"Calendar provider {what} failed: {e}") from e

    def _window(self):
        now = self.clock()
        span = timedelta(days=self.config.event_window_days)
        return now - span, now + span

    def _events_in_window(self) -> List[CalendarEvent]:
        start, end = self._window()
        return self._provider("list events", lambda: self.gateway.list_events(start, end))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def find_events_by_project_id(self, project_id: str) -> List[CalendarEvent]:
        """
        Events in the search window whose description carries ``UUID: <project_id>``.

        Events outside the window are not found.
        """
        if not project_id:
            return []
        token = f"UUID: {project_id}"
        return [e for e in self._events_in_window() if token in (e.description or "")]

    def search_project_events(self) -> List[CalendarEvent]:
        """Every event in the window that looks like it belongs to a tracked project."""
        prefixes = set(self.config.id_prefixes.values()) | {self.config.default_id_prefix}
        tokens = [f"UUID: {prefix}" for prefix in sorted(prefixes)]
        tags = [f"[{name}]" for name in self.config.tracked_sheets]

        found = []
        for event in self._events_in_window():
            description = event.description or ""
            if any(t in description for t in tokens) or any(t in event.title for t in tags):
                found.append(event)
        return found

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def _description(self, project: ProjectRow, kind: EventKind) -> str:
        status = project.status.value if project.status else ""
        link = f"{self.workbook_link}#sheet={project.source_sheet}&range=A{project.row}"
        return (
            f"Project: {project.title}\n"
            f"Status: {status}\n"
            f"Next Steps: {project.activity_note}\n"
            f"\n"
            f"UUID: {project.id}\n"
            f"Sheet: {project.source_sheet}\n"
            f"Type: {kind.value}\n"
            f"Link: {link}"
        )

    def _decorate(self, event: CalendarEvent, color: str, reminders: Iterable[int]) -> CalendarEvent:
        try:
            self._provider("set colour", lambda: self.gateway.set_color(event.event_id, color))
            event.color = color
            for minutes in reminders:
                self._provider("add reminder", lambda: self.gateway.add_reminder(event.event_id, minutes))
                event.reminders.append(minutes)
        except ProviderUnavailable as e:
            # the event itself exists even though decorating it failed
            e.completed.append(event)
            raise
        return event

    def _create_check_in(self, project: ProjectRow) -> CalendarEvent:
        day_start, day_end = day_bounds(project.next_check_in)
        existing = self._provider("list events", lambda: self.gateway.list_events(day_start, day_end))
        start = find_slot(
            project.next_check_in, existing, self.config.preferred_time_slots,
            self.config.checkin_duration, self.config.default_checkin_time
        )
        end = start + timedelta(minutes=self.config.checkin_duration)
        title = f"Check-in [{project.source_sheet}]: {project.title}"
        description = self._description(project, EventKind.CHECK_IN)
        event = self._provider(
            "create event", lambda: self.gateway.create_event(title, start, end, description)
        )
        self.logger.info("Check-in for %s on %s at %s", project.id,
                         format_sheet_date(start), start.strftime("%H:%M"))
        return self._decorate(event, self.config.checkin_color, self.config.checkin_reminders)

    def _create_completion(self, project: ProjectRow) -> CalendarEvent:
        title = f"DUE [{project.source_sheet}]: {project.title}"
        description = self._description(project, EventKind.COMPLETION)
        event = self._provider(
            "create all-day event",
            lambda: self.gateway.create_all_day_event(title, project.completion_date, description)
        )
        self.logger.info("Deadline for %s on %s", project.id, format_sheet_date(project.completion_date))
        return self._decorate(event, self.config.completion_color, self.config.completion_reminders)

    def create_events_for_project(self, project: ProjectRow) -> EventCreation:
        """
        Create the check-in and/or completion events a project is missing.

        A kind that already has an event for the project is skipped, so a
        project never holds more than one event of each kind.

        Raises:
            NoDateSet: neither a next check-in nor a completion date is set
            ProviderUnavailable: a provider call failed; events created before
                the failure are kept and listed on the exception's ``completed``
        """
        if not project.has_dates:
            raise NoDateSet(
                f"Project '{project.title}' has no next check-in or completion date"
            )

        result = EventCreation()
        existing = self.find_events_by_project_id(project.id)
        wanted = (
            (EventKind.CHECK_IN, project.next_check_in, self._create_check_in),
            (EventKind.COMPLETION, project.completion_date, self._create_completion),
        )
        try:
            for kind, when, create in wanted:
                if when is None:
                    continue
                present = [e for e in existing if e.kind is kind]
                if present:
                    self.logger.info("%s already has a %s event; not creating another",
                                     project.id, kind.value)
                    result.existing.extend(present)
                    continue
                result.created.append(create(project))
        except ProviderUnavailable as e:
            e.completed = result.created + e.completed
            raise
        return result

    # ------------------------------------------------------------------
    # Drift
    # ------------------------------------------------------------------
    def detect_drift(self, project: ProjectRow,
                     events: Optional[List[CalendarEvent]] = None) -> Set[DriftKind]:
        """
        Classify the project's sheet dates against its calendar events.

        A project without dates never drifts. With sync disabled only
        ``sync-disabled`` is reported since missing events are expected.
        """
        if not project.has_dates:
            return set()
        if not project.calendar_sync_enabled:
            return {DriftKind.SYNC_DISABLED}

        if events is None:
            events = self.find_events_by_project_id(project.id)
        check_ins = [e for e in events if e.kind is EventKind.CHECK_IN]
        completions = [e for e in events if e.kind is EventKind.COMPLETION]

        kinds: Set[DriftKind] = set()
        if project.next_check_in is not None:
            expected = project.next_check_in.date()
            if not check_ins:
                kinds.add(DriftKind.MISSING_CHECKIN)
            elif all(e.day != expected for e in check_ins):
                kinds.add(DriftKind.DIFFERENT_CHECKIN)
        if project.completion_date is not None:
            if not completions:
                kinds.add(DriftKind.MISSING_COMPLETION)
            elif all(e.day != project.completion_date for e in completions):
                kinds.add(DriftKind.DIFFERENT_COMPLETION)
        return kinds

    def review(self, projects: Iterable[ProjectRow]) -> List[DriftReport]:
        """Drift reports for every project with dates; provider errors are kept per project."""
        reports = []
        for project in projects:
            if not project.has_dates:
                continue
            report = DriftReport(project=project)
            try:
                if project.calendar_sync_enabled:
                    report.events = self.find_events_by_project_id(project.id)
                report.kinds = self.detect_drift(project, report.events)
            except TrackerError as e:
                self.logger.warning("Drift review failed for %s: %s", project.id, e)
                report.error = str(e)
            reports.append(report)
        return reports

    def resolve_drift(self, project: ProjectRow, project_sheet: ProjectSheet,
                      policy: Optional[str] = None) -> List[str]:
        """
        Apply the drift policy to one project and return what was done.

        ``sheet`` recreates drifting events from the sheet dates. ``calendar``
        copies event dates onto the sheet and leaves missing events alone.
        """
        policy = policy or self.config.drift_policy
        if policy not in ("sheet", "calendar"):
            raise TrackerError(f"Unknown drift policy '{policy}'")

        events = self.find_events_by_project_id(project.id)
        kinds = self.detect_drift(project, events)
        actions: List[str] = []
        if DriftKind.SYNC_DISABLED in kinds:
            actions.append("calendar sync disabled - enable it first")
            return actions

        pairs = (
            (EventKind.CHECK_IN, DriftKind.MISSING_CHECKIN, DriftKind.DIFFERENT_CHECKIN),
            (EventKind.COMPLETION, DriftKind.MISSING_COMPLETION, DriftKind.DIFFERENT_COMPLETION),
        )
        for kind, missing, different in pairs:
            of_kind = [e for e in events if e.kind is kind]
            if policy == "sheet" and (missing in kinds or different in kinds):
                for event in of_kind:
                    self._provider("delete event", lambda: self.gateway.delete_event(event.event_id))
                if kind is EventKind.CHECK_IN:
                    self._create_check_in(project)
                else:
                    self._create_completion(project)
                actions.append(f"recreated {kind.value} event from sheet")
            elif policy == "calendar" and different in kinds:
                event_day = of_kind[0].start_time
                if kind is EventKind.CHECK_IN:
                    project_sheet.set_check_in(project.row, project.last_check_in,
                                               event_day.replace(tzinfo=None))
                else:
                    project_sheet.set_completion_date(project.row, event_day.date())
                actions.append(f"copied {kind.value} date {format_sheet_date(event_day)} to sheet")
            elif policy == "calendar" and missing in kinds:
                actions.append(f"{kind.value} event missing - left for create")

        for action in actions:
            self.logger.info("Resolved drift for %s: %s", project.id, action)
        return actions

    # ------------------------------------------------------------------
    # Removal and sync flag
    # ------------------------------------------------------------------
    def remove_events_for_project(self, project_id: str) -> int:
        """Delete every event correlated with the project; 0 when none exist."""
        removed = 0
        for event in self.find_events_by_project_id(project_id):
            self._provider("delete event", lambda: self.gateway.delete_event(event.event_id))
            removed += 1
        self.logger.info("Removed %d event(s) for %s", removed, project_id)
        return removed

    def enable_sync(self, project_sheet: ProjectSheet, row: int,
                    create_events: bool = False) -> EventCreation:
        project_sheet.set_sync_enabled(row, True)
        project_sheet.ensure_id(row)
        if not create_events:
            return EventCreation()
        return self.create_events_for_project(project_sheet.read(row))

    def disable_sync(self, project_sheet: ProjectSheet, row: int) -> None:
        project_sheet.set_sync_enabled(row, False)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def check_access(self) -> str:
        """List today's events without creating anything; returns the calendar name."""
        start, end = day_bounds(self.clock().date())
        events = self._provider("list events", lambda: self.gateway.list_events(start, end))
        name = self._provider("calendar lookup", self.gateway.calendar_name)
        self.logger.info("Calendar '%s' reachable (%d event(s) today)", name, len(events))
        return name

    def describe_project(self, project: ProjectRow) -> List[str]:
        """Debug summary of a project and its calendar events."""
        def show(value: Optional[date]) -> str:
            return format_sheet_date(value) if value else "NOT SET"

        lines = [
            f"Sheet: {project.source_sheet}",
            f"Row: {project.row}",
            f"UUID: {project.id or 'MISSING'}",
            f"Project: {project.title}",
            f"Completion: {show(project.completion_date)}",
            f"Next Check In: {show(project.next_check_in)}",
            f"Calendar Sync: {'Enabled' if project.calendar_sync_enabled else 'Disabled'}",
        ]
        try:
            events = self.find_events_by_project_id(project.id)
            lines.append(f"Calendar Events: {len(events)} found")
        except TrackerError as e:
            lines.append(f"Calendar: Error - {e}")
        return lines
