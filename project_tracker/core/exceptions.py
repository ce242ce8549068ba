"""
Exception classes for project-tracker.
"""


class TrackerError(Exception):
    """Base exception for all project-tracker errors."""
    pass


class ConfigurationError(TrackerError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(TrackerError):
    """Raised when caller input is rejected before any state changes."""
    pass


class NestingTooDeep(ValidationError):
    """Raised when a subtask is requested under a task that is itself a subtask."""
    pass


class NoDateSet(ValidationError):
    """Raised when calendar events are requested for a project without dates."""
    pass


class NotFoundError(TrackerError):
    """Raised when a referenced project or task id does not exist."""
    pass


class DuplicateDetected(TrackerError):
    """Raised when an identical task was created inside the duplicate window.

    Not a failure: callers point the user at ``existing`` instead.
    """

    def __init__(self, existing, row=None):
        self.existing = existing
        self.row = row
        super().__init__(
            f"Task '{existing.description}' was just created (id {existing.id}, row {row})"
        )


class ProviderUnavailable(TrackerError):
    """Raised when a calendar or task-list provider call fails.

    ``completed`` holds whatever a multi-step operation finished before the
    failing call, so callers can report partial progress.
    """

    def __init__(self, message: str = "", completed=None):
        super().__init__(message)
        self.completed = list(completed or [])


class EventKitImportError(ProviderUnavailable):
    """Raised when EventKit/PyObjC dependencies are not available."""
    pass


class AuthorizationError(ProviderUnavailable):
    """Raised when EventKit authorization fails."""
    pass
