"""Shared EventKit store access for the calendar and task-list gateways."""

import threading
import time
from datetime import date, datetime
from typing import Any, Callable, Optional
import logging

from ..core.exceptions import (
    AuthorizationError, EventKitImportError, ProviderUnavailable, TrackerError
)


class EventKitSession:
    """Lazily imports EventKit, authorizes one entity type and runs bounded waits."""

    def __init__(self, entity: str, timeout: float = 30.0,
                 logger: Optional[logging.Logger] = None):
        if entity not in ("event", "reminder"):
            raise ValueError(f"Unknown EventKit entity type '{entity}'")
        self.entity = entity
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._store = None
        self.ek = None
        self.foundation = None

    def _ensure_eventkit(self) -> None:
        """Import EventKit with specific error handling."""
        if self.ek is not None:
            return
        try:
            import EventKit
            import Foundation
        except ImportError as e:
            self.logger.error(f"EventKit import failed: {e}")
            raise EventKitImportError(
                "EventKit not available. Please install PyObjC framework:\n"
                "  pip install pyobjc-framework-EventKit\n"
                f"Import error details: {e}"
            )
        self.ek = EventKit
        self.foundation = Foundation

    @property
    def entity_type(self) -> Any:
        self._ensure_eventkit()
        if self.entity == "event":
            return self.ek.EKEntityTypeEvent
        return self.ek.EKEntityTypeReminder

    def store(self):
        """Get or create the EventKit store, requesting access if needed."""
        if self._store is not None:
            return self._store

        self._ensure_eventkit()
        try:
            store = self.ek.EKEventStore.alloc().init()
        except Exception as e:
            raise ProviderUnavailable(f"Failed to initialize EventKit store: {e}")

        status = int(self.ek.EKEventStore.authorizationStatusForEntityType_(self.entity_type))
        if status == int(self.ek.EKAuthorizationStatusAuthorized):
            self._store = store
            return store
        if status == 1:  # Restricted
            raise AuthorizationError(f"Access to {self.entity}s is restricted by system policy.")
        if status == 2:  # Denied
            raise AuthorizationError(
                f"Access to {self.entity}s was previously denied.\n"
                "Grant access under System Settings > Privacy & Security and retry."
            )

        self.logger.info("Requesting EventKit authorization for %ss...", self.entity)
        result = {'granted': False, 'error': None}
        done = threading.Event()

        def completion(granted, error):
            result['granted'] = granted
            result['error'] = error
            done.set()

        store.requestAccessToEntityType_completion_(self.entity_type, completion)
        self.wait(done, f"{self.entity} authorization")

        if not result['granted']:
            raise AuthorizationError(f"User denied access to {self.entity}s: {result['error']}")

        self._store = store
        return store

    def wait(self, done: threading.Event, what: str) -> None:
        """Spin the run loop until ``done`` is set or the timeout expires."""
        deadline = time.monotonic() + self.timeout
        while not done.is_set():
            if time.monotonic() > deadline:
                raise ProviderUnavailable(f"{what} timed out after {self.timeout:.0f} seconds")
            self.foundation.NSRunLoop.currentRunLoop().runUntilDate_(
                self.foundation.NSDate.dateWithTimeIntervalSinceNow_(0.1)
            )

    def ns_date(self, value: datetime):
        self._ensure_eventkit()
        if not isinstance(value, datetime):
            value = datetime.combine(value, datetime.min.time())
        return self.foundation.NSDate.dateWithTimeIntervalSince1970_(value.timestamp())

    def py_datetime(self, ns_date) -> Optional[datetime]:
        if ns_date is None:
            return None
        local_tz = datetime.now().astimezone().tzinfo
        return datetime.fromtimestamp(ns_date.timeIntervalSince1970(), tz=local_tz)

    def date_components(self, day: date):
        self._ensure_eventkit()
        components = self.foundation.NSDateComponents.alloc().init()
        components.setYear_(day.year)
        components.setMonth_(day.month)
        components.setDay_(day.day)
        return components

    def call(self, what: str, func: Callable[[], Any]) -> Any:
        """Run a provider call, converting unexpected failures to ProviderUnavailable."""
        try:
            return func()
        except TrackerError:
            raise
        except Exception as e:
            self.logger.error("EventKit %s failed: %s", what, e)
            raise ProviderUnavailable(f"EventKit {what} failed: {e}")
