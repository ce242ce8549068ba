"""Calendar command - project check-in and deadline events."""

from datetime import datetime
from typing import Callable, Optional
import logging

from ..calendar.gateway import CalendarGateway
from ..calendar.sync import CalendarSyncEngine
from ..core.config import TrackerConfig
from ..core.exceptions import NoDateSet, ProviderUnavailable, TrackerError
from ..sheets.grid import Workbook
from ..sheets.projects import project_sheet


class CalendarCommand:
    """Command for creating, reviewing and removing project calendar events."""

    def __init__(self, config: TrackerConfig, workbook: Workbook, verbose: bool = False,
                 gateway=None, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.workbook = workbook
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

        gateway = gateway or CalendarGateway(config.calendar_id, timeout=config.provider_timeout)
        link = str(workbook.path) if workbook.path else ""
        self.engine = CalendarSyncEngine(gateway, config, clock=clock or datetime.now,
                                         workbook_link=link)

    def run(self, action: str, sheet_name: Optional[str] = None, row: Optional[int] = None,
            policy: Optional[str] = None, create: bool = False) -> bool:
        """Dispatch one calendar action."""
        handlers = {
            'create': lambda: self.create(sheet_name, row),
            'enable': lambda: self.enable(sheet_name, row, create),
            'disable': lambda: self.disable(sheet_name, row),
            'remove': lambda: self.remove(sheet_name, row),
            'drift': lambda: self.drift(sheet_name),
            'resolve': lambda: self.resolve(sheet_name, row, policy),
            'search': self.search,
            'debug': lambda: self.debug(sheet_name, row),
            'test': self.test,
        }
        if action not in handlers:
            print(f"Unknown calendar action '{action}'.")
            return False
        needs_row = action in ('create', 'enable', 'disable', 'remove', 'resolve', 'debug')
        if needs_row and (not sheet_name or row is None):
            print(f"'calendar {action}' needs --sheet and --row.")
            return False
        if action == 'drift' and not sheet_name:
            print("'calendar drift' needs --sheet.")
            return False
        try:
            return handlers[action]()
        except ProviderUnavailable as e:
            print(f"Calendar unavailable: {e}")
            for event in e.completed:
                print(f"  Completed before the failure: {self._describe(event)}")
            return False
        except TrackerError as e:
            print(f"Error: {e}")
            return False

    def _projects(self, sheet_name: str):
        return project_sheet(self.workbook, sheet_name, self.config)

    @staticmethod
    def _describe(event) -> str:
        if event.is_all_day:
            return f"Deadline: {event.start_time:%m/%d/%Y} (all-day)"
        return f"Check-in: {event.start_time:%m/%d/%Y} at {event.start_time:%H:%M}"

    def _report_creation(self, creation) -> None:
        for event in creation.created:
            print(f"  {self._describe(event)}")
        for kind in creation.skipped_kinds:
            print(f"  Skipped {kind.value}: an event already exists")

    def create(self, sheet_name: str, row: int) -> bool:
        projects = self._projects(sheet_name)
        projects.ensure_id(row)
        project = projects.read(row)
        try:
            creation = self.engine.create_events_for_project(project)
        except NoDateSet:
            print("No dates: set the completion date or next check-in first.")
            return False
        print(f"{len(creation)} event(s) created for {project.title}:")
        self._report_creation(creation)
        return True

    def enable(self, sheet_name: str, row: int, create: bool) -> bool:
        projects = self._projects(sheet_name)
        creation = self.engine.enable_sync(projects, row, create_events=create)
        project = projects.read(row)
        print(f"Sync enabled for {project.title} ({sheet_name})")
        if create:
            print(f"  Created {len(creation)} event(s)")
            self._report_creation(creation)
        return True

    def disable(self, sheet_name: str, row: int) -> bool:
        self.engine.disable_sync(self._projects(sheet_name), row)
        print("Calendar sync disabled for this project.")
        return True

    def remove(self, sheet_name: str, row: int) -> bool:
        project = self._projects(sheet_name).read(row)
        removed = self.engine.remove_events_for_project(project.id)
        print(f"Removed {removed} event(s) for {project.title}")
        return True

    def drift(self, sheet_name: str) -> bool:
        reports = self.engine.review(self._projects(sheet_name).rows())
        print(f"Drift review for {sheet_name}: {len(reports)} project(s) with dates")
        for report in reports:
            print(f"  {report.summary()}")
        return all(report.error is None for report in reports)

    def resolve(self, sheet_name: str, row: int, policy: Optional[str]) -> bool:
        projects = self._projects(sheet_name)
        project = projects.read(row)
        actions = self.engine.resolve_drift(project, projects, policy)
        if not actions:
            print(f"{project.title}: nothing to resolve")
        for action in actions:
            print(f"{project.title}: {action}")
        return True

    def search(self) -> bool:
        events = self.engine.search_project_events()
        print(f"Project events: {len(events)}")
        for index, event in enumerate(events[:10], start=1):
            when = f"{event.start_time:%m/%d/%Y}" if event.start_time else "?"
            print(f"{index}. {event.title}\n   {when}")
        return True

    def debug(self, sheet_name: str, row: int) -> bool:
        project = self._projects(sheet_name).read(row)
        for line in self.engine.describe_project(project):
            print(line)
        return True

    def test(self) -> bool:
        name = self.engine.check_access()
        print(f"Calendar access OK: {name}")
        return True
