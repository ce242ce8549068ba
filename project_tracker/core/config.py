"""
Configuration management for project-tracker.

``TrackerConfig`` is an explicit value handed to every component at
construction; nothing reads configuration from module globals.
"""

from __future__ import annotations

import getpass
import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .exceptions import ConfigurationError
from .paths import get_path_manager


DEFAULT_PREFERRED_SLOTS = ["14:00", "10:00", "11:00", "15:00", "16:00", "09:00"]
DRIFT_POLICIES = ("sheet", "calendar")
COLUMN_REACTIONS = ("ignore", "log", "cascade")


@dataclass
class ColumnLayout:
    """1-based column positions shared by every tracked sheet."""

    title: int = 3
    status: int = 7
    completion_date: int = 9
    last_check_in: int = 12
    next_check_in: int = 13
    activity: int = 15
    id: int = 20
    calendar_sync: int = 21

    def name_for(self, column: int) -> Optional[str]:
        """Return the layout field name occupying ``column`` if any."""
        for name, position in asdict(self).items():
            if position == column:
                return name
        return None

    @property
    def width(self) -> int:
        return max(asdict(self).values())


@dataclass
class TrackerConfig:
    """Tunable settings for the tracker."""

    tracked_sheets: List[str] = field(default_factory=lambda: ["cobuild", "enablement"])
    audit_sheet: str = "Audit Log"
    tasks_sheet: str = "Tasks"
    id_prefixes: Dict[str, str] = field(default_factory=lambda: {"enablement": "enbl_"})
    default_id_prefix: str = "proj_"
    columns: ColumnLayout = field(default_factory=ColumnLayout)
    date_columns: List[int] = field(default_factory=lambda: [8, 9, 10, 12, 13])
    column_reactions: Dict[str, str] = field(
        default_factory=lambda: {"activity": "cascade", "id": "ignore"}
    )

    # Check-in scheduling
    default_next_checkin_days: int = 7
    checkin_duration: int = 30
    default_checkin_time: str = "14:00"
    preferred_time_slots: List[str] = field(default_factory=lambda: list(DEFAULT_PREFERRED_SLOTS))
    checkin_reminders: List[int] = field(default_factory=lambda: [1440])
    completion_reminders: List[int] = field(default_factory=lambda: [1440, 10080])
    checkin_color: str = "blue"
    completion_color: str = "orange"
    event_window_days: int = 365
    calendar_id: Optional[str] = None
    drift_policy: str = "sheet"

    # Tasks
    tasks_auto_sync: bool = True
    duplicate_window_seconds: int = 5
    task_duration: int = 30
    subtask_duration: int = 15

    history_limit: int = 10
    provider_timeout: float = 30.0
    workbook_path: Optional[str] = None
    actor: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.columns, dict):
            self.columns = ColumnLayout(**self.columns)
        self.validate()

    def validate(self) -> None:
        if self.drift_policy not in DRIFT_POLICIES:
            raise ConfigurationError(
                f"drift_policy must be one of {DRIFT_POLICIES}, got '{self.drift_policy}'"
            )
        for column_name, reaction in self.column_reactions.items():
            if reaction not in COLUMN_REACTIONS:
                raise ConfigurationError(
                    f"Unknown reaction '{reaction}' for column '{column_name}'"
                )
            if not hasattr(self.columns, column_name):
                raise ConfigurationError(f"Unknown column '{column_name}' in column_reactions")
        if self.duplicate_window_seconds < 0:
            raise ConfigurationError("duplicate_window_seconds cannot be negative")

    def is_tracked(self, sheet_name: str) -> bool:
        return sheet_name in self.tracked_sheets

    def id_prefix_for(self, sheet_name: str) -> str:
        return self.id_prefixes.get(sheet_name, self.default_id_prefix)

    def current_actor(self) -> str:
        """Identity recorded on audit entries and new tasks."""
        if self.actor:
            return self.actor
        try:
            return getpass.getuser() or "unknown"
        except (KeyError, OSError):
            return "unknown"

    def resolved_workbook_path(self) -> Path:
        manager = get_path_manager()
        if self.workbook_path:
            return manager.resolve_user_path(self.workbook_path)
        return manager.workbook_path

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> TrackerConfig:
        known = {name for name in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def load_from_file(cls, config_path: str) -> TrackerConfig:
        config_path = os.path.abspath(os.path.expanduser(config_path))
        if not os.path.exists(config_path):
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError:
            return cls()

        return cls.from_dict(data)

    def save_to_file(self, config_path: str) -> None:
        config_path = os.path.abspath(os.path.expanduser(config_path))
        os.makedirs(os.path.dirname(config_path), exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2, ensure_ascii=False)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return get_path_manager().config_path


def load_config(config_path: Optional[str] = None) -> TrackerConfig:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        TrackerConfig object
    """
    if config_path is None:
        config_path = str(get_default_config_path())
    return TrackerConfig.load_from_file(config_path)


def save_config(config: TrackerConfig, config_path: Optional[str] = None):
    """
    Save configuration to file.

    Args:
        config: TrackerConfig object to save
        config_path: Optional path to save to. Uses default if not provided.
    """
    if config_path is None:
        manager = get_path_manager()
        manager.ensure_directories()
        config_path = str(manager.config_path)
    config.save_to_file(config_path)


def get_backup_dir() -> Path:
    """Get the backup directory."""
    manager = get_path_manager()
    manager.ensure_directories()
    return manager.backup_dir
