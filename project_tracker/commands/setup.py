"""
Setup command for preparing a workbook.
"""

import logging

from ..core.config import TrackerConfig
from ..sheets.grid import Workbook
from ..sheets.projects import setup_workbook


class SetupCommand:
    """Creates the audit and tasks sheets and backfills project ids."""

    def __init__(self, config: TrackerConfig, workbook: Workbook, verbose: bool = False):
        self.config = config
        self.workbook = workbook
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def run(self) -> bool:
        print("project-tracker Setup")
        print("=" * 40)

        for name in self.config.tracked_sheets:
            if not self.workbook.has_sheet(name):
                self.workbook.add_sheet(name, self._project_headers())
                print(f"  Created empty tracked sheet '{name}'")

        for message in setup_workbook(self.workbook, self.config, logger=self.logger):
            print(f"  {message}")

        print("\nSetup complete.")
        return True

    def _project_headers(self):
        headers = [f"Column {i}" for i in range(1, self.config.columns.width + 1)]
        cols = self.config.columns
        for column, label in (
            (cols.title, "Project Title"),
            (cols.status, "Status"),
            (cols.completion_date, "Completion Date"),
            (cols.last_check_in, "Last Check In"),
            (cols.next_check_in, "Next Check In"),
            (cols.activity, "Next Steps"),
            (cols.id, "UUID"),
            (cols.calendar_sync, "Calendar Sync"),
        ):
            headers[column - 1] = label
        return headers
