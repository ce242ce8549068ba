"""
Where project-tracker keeps its files.

One working directory holds the configuration file, the default workbook
and the ``backups/`` folder that purge snapshots are written to.
"""

import os
import sys
from pathlib import Path
from typing import Optional
import logging


class PathManager:
    """Resolves the working directory and the files inside it."""

    APP_DIR = "project-tracker"
    CONFIG_FILE = "config.json"
    WORKBOOK_FILE = "workbook.json"
    BACKUP_DIR = "backups"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._working_dir: Optional[Path] = None

    def _platform_dir(self) -> Path:
        if sys.platform == "darwin":
            return Path.home() / "Library" / "Application Support" / self.APP_DIR
        if sys.platform.startswith("win"):
            base = os.environ.get("APPDATA")
            root = Path(base) if base else Path.home() / "AppData" / "Roaming"
            return root / self.APP_DIR
        return Path.home() / ".config" / self.APP_DIR

    @property
    def working_dir(self) -> Path:
        """
        ``PROJECT_TRACKER_HOME`` when set, else the per-user data directory.

        Resolved once per manager; call ``reset_path_manager`` after changing
        the environment.
        """
        if self._working_dir is None:
            override = os.environ.get("PROJECT_TRACKER_HOME")
            if override:
                self._working_dir = Path(override).expanduser().resolve()
                self.logger.debug("Working directory from PROJECT_TRACKER_HOME: %s", self._working_dir)
            else:
                self._working_dir = self._platform_dir()
        return self._working_dir

    def ensure_directories(self) -> None:
        for directory in (self.working_dir, self.backup_dir):
            directory.mkdir(parents=True, exist_ok=True)

    @property
    def backup_dir(self) -> Path:
        return self.working_dir / self.BACKUP_DIR

    @property
    def config_path(self) -> Path:
        return self.working_dir / self.CONFIG_FILE

    @property
    def workbook_path(self) -> Path:
        return self.working_dir / self.WORKBOOK_FILE

    def resolve_user_path(self, path: str) -> Path:
        """Expand ``~``; relative paths are taken from the working directory."""
        candidate = Path(os.path.expanduser(path))
        return candidate if candidate.is_absolute() else self.working_dir / candidate


_path_manager: Optional[PathManager] = None


def get_path_manager() -> PathManager:
    global _path_manager
    if _path_manager is None:
        _path_manager = PathManager()
    return _path_manager


def reset_path_manager() -> None:
    """Forget the cached manager so the next lookup re-reads the environment."""
    global _path_manager
    _path_manager = None
