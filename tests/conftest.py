#!/usr/bin/env python3
"""
Global pytest configuration and fixtures.

This module provides:
- Platform-specific test skipping (macOS/EventKit tests)
- An isolated PROJECT_TRACKER_HOME per test
- A prepared workbook, default configuration and a controllable clock
"""

import os
import platform
import sys
from datetime import datetime

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from project_tracker.core.config import TrackerConfig
from project_tracker.core.paths import reset_path_manager
from project_tracker.sheets.grid import Workbook
from project_tracker.sheets.projects import setup_workbook
from tests.fakes import (
    PROJECT_HEADERS, FakeCalendarGateway, FakeClock, FakeTaskListGateway, project_row
)

HAS_EVENTKIT = False

try:
    if platform.system() == "Darwin":
        import objc
        import EventKit
        HAS_EVENTKIT = True
except ImportError:
    pass


def pytest_configure(config):
    """Configure pytest environment."""
    config.addinivalue_line("markers", "macos: test requires macOS")
    config.addinivalue_line("markers", "eventkit: test requires EventKit framework")


def pytest_collection_modifyitems(config, items):
    """Automatically skip macOS/EventKit tests where they cannot run."""
    skip_macos = pytest.mark.skip(reason="macOS/EventKit tests require Darwin platform")
    skip_eventkit = pytest.mark.skip(reason="Test requires EventKit framework")

    for item in items:
        if "macos" in item.keywords and platform.system() != "Darwin":
            item.add_marker(skip_macos)
        if "eventkit" in item.keywords and not HAS_EVENTKIT:
            item.add_marker(skip_eventkit)


@pytest.fixture(autouse=True)
def tracker_home(tmp_path, monkeypatch):
    """Point the PathManager at a per-test directory."""
    home = tmp_path / "home"
    monkeypatch.setenv("PROJECT_TRACKER_HOME", str(home))
    reset_path_manager()
    yield home
    reset_path_manager()


@pytest.fixture
def config() -> TrackerConfig:
    return TrackerConfig(actor="tester@example.com")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 2, 3, 9, 0, 0))


@pytest.fixture
def workbook(tmp_path, config) -> Workbook:
    """A workbook with a populated cobuild sheet plus the audit and tasks sheets."""
    wb = Workbook(tmp_path / "workbook.json")
    cobuild = wb.add_sheet("cobuild", PROJECT_HEADERS)
    cobuild.append_row(project_row("Acme rollout", project_id="proj_acme0001"))
    cobuild.append_row(project_row("Globex pilot"))
    wb.add_sheet("enablement", PROJECT_HEADERS)
    setup_workbook(wb, config)
    return wb


@pytest.fixture
def calendar_gateway() -> FakeCalendarGateway:
    return FakeCalendarGateway()


@pytest.fixture
def task_gateway() -> FakeTaskListGateway:
    return FakeTaskListGateway()
