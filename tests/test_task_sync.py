"""Tests for pushing task records to a task-list provider."""

from datetime import date, timedelta

import pytest

from project_tracker.core.exceptions import ProviderUnavailable
from project_tracker.core.models import Priority, Status, TaskList, TaskType
from project_tracker.tasks.store import TaskStore
from project_tracker.tasks.sync import TaskSyncEngine, list_title, remote_status


@pytest.fixture
def store(workbook, config, clock):
    config.tasks_auto_sync = False
    return TaskStore(workbook, config, clock=clock)


@pytest.fixture
def engine(store, task_gateway):
    return TaskSyncEngine(store, task_gateway)


def _task(store, description="Call client", **kwargs):
    return store.create_task("proj_acme0001", "Acme rollout", "cobuild", description, **kwargs)


def test_helpers():
    assert list_title("cobuild", "Acme rollout") == "[cobuild] Acme rollout"
    assert remote_status(Status.COMPLETE) == "completed"
    assert remote_status(Status.BLOCKED) == "needsAction"


class TestResolveList:
    def test_existing_list_matched_by_exact_title(self, engine, task_gateway):
        task_gateway.lists["L1"] = TaskList("L1", "[cobuild] Acme rollout")
        task_gateway.lists["L2"] = TaskList("L2", "[cobuild] Acme")
        assert engine.resolve_or_create_list("proj_acme0001", "Acme rollout", "cobuild") == "L1"
        assert len(task_gateway.lists) == 2

    def test_missing_list_is_created_and_cached(self, engine, task_gateway):
        first = engine.resolve_or_create_list("proj_acme0001", "Acme rollout", "cobuild")
        second = engine.resolve_or_create_list("proj_acme0001", "Acme rollout", "cobuild")
        assert first == second
        assert task_gateway.lists[first].title == "[cobuild] Acme rollout"
        assert task_gateway.list_calls == 1

    def test_provider_error_is_wrapped(self, engine, task_gateway):
        task_gateway.fail_on.add("list_task_lists")
        with pytest.raises(ProviderUnavailable):
            engine.resolve_or_create_list("proj_acme0001", "Acme rollout", "cobuild")


class TestUpsert:
    def test_end_to_end_creation(self, store, engine, task_gateway, clock):
        task = store.create_task(
            "proj_acme0001", "Acme rollout", "cobuild", "Call client", TaskType.FOLLOW_UP,
            due_date=clock.now.date() + timedelta(days=7), priority=Priority.HIGH,
            actor="a@x.com",
        )
        assert task.status is Status.NOT_STARTED
        assert task.parent_id == ""
        assert task.created_at == clock.now

        external_id = engine.upsert(task.id)

        assert external_id
        assert store.get(task.id).external_id == external_id
        [(list_id, payload)] = task_gateway.inserted
        assert payload == {
            "title": "Call client",
            "status": "needsAction",
            "notes": f"Task ID: {task.id}\nProject: Acme rollout",
            "due": "2025-02-10T00:00:00.000Z",
        }

    def test_missing_task_returns_none(self, engine, task_gateway):
        assert engine.upsert("task_nothere") is None
        assert task_gateway.inserted == []

    def test_update_branch_is_fetch_modify_write(self, store, engine, task_gateway):
        task = _task(store)
        external_id = engine.upsert(task.id)
        task_gateway.tasks[external_id][1].notes = "edited remotely"

        store.update_status(task.id, "Complete")
        assert engine.upsert(task.id) == external_id

        assert len(task_gateway.inserted) == 1
        [(_, updated_id, payload)] = task_gateway.updated
        assert updated_id == external_id
        assert payload["status"] == "completed"
        assert payload["notes"] == "edited remotely"

    def test_update_keeps_remote_due_when_local_has_none(self, store, engine, task_gateway):
        task = _task(store)
        external_id = engine.upsert(task.id)
        task_gateway.tasks[external_id][1].due = "2025-03-01T00:00:00.000Z"
        engine.upsert(task.id)
        assert task_gateway.updated[0][2]["due"] == "2025-03-01T00:00:00.000Z"

    def test_insert_failure_leaves_task_unlinked(self, store, engine, task_gateway):
        task = _task(store)
        task_gateway.fail_on.add("insert_task")
        with pytest.raises(ProviderUnavailable):
            engine.upsert(task.id)
        assert store.get(task.id).external_id == ""

    def test_subtask_of_unsynced_parent_inserts_without_link(self, store, engine, task_gateway):
        parent = _task(store)
        sub = store.create_subtask(parent.id, "Prepare agenda")
        engine.upsert(sub.id)
        assert "parent" not in task_gateway.inserted[0][1]


class TestSyncProject:
    def test_parent_synced_before_subtask(self, store, engine, task_gateway):
        parent = _task(store)
        sub = store.create_subtask(parent.id, "Prepare agenda")
        # Storage order puts a later parent after the subtask
        later_parent = _task(store, description="Send recap")

        report = engine.sync_project("proj_acme0001")

        assert report.ok and report.synced == 3
        parent_external = store.get(parent.id).external_id
        payloads = {p["title"]: p for _, p in task_gateway.inserted}
        assert payloads["Prepare agenda"]["parent"] == parent_external
        titles = [p["title"] for _, p in task_gateway.inserted]
        assert titles.index("Prepare agenda") > titles.index("Send recap")
        assert store.get(later_parent.id).external_id

    def test_failures_are_reported_not_raised(self, store, engine, task_gateway):
        a = _task(store, description="A")
        _task(store, description="B")
        calls = {"n": 0}
        original = task_gateway.insert_task

        def flaky(list_id, payload):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("rate limited")
            return original(list_id, payload)

        task_gateway.insert_task = flaky
        report = engine.sync_project("proj_acme0001")

        assert report.synced == 1
        assert [task_id for task_id, _ in report.failed] == [a.id]
        assert not report.ok
        assert "1 failed" in report.summary()

    def test_second_sync_updates_instead_of_inserting(self, store, engine, task_gateway):
        _task(store)
        engine.sync_project("proj_acme0001")
        engine.sync_project("proj_acme0001")
        assert len(task_gateway.inserted) == 1
        assert len(task_gateway.updated) == 1
