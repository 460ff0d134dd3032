"""Tests for TrackerStore against a temporary SQLite database."""

import pytest

from tracker.models import InvalidValueError, NotFoundError, ValidationError
from tracker.store import TrackerStore


def _set_created_at(store, task_id, created_at):
    with store.db.get_connection() as conn:
        conn.execute("UPDATE tasks SET created_at = ? WHERE id = ?", (created_at, task_id))


def _count(store, table):
    return store.db.execute_one(f"SELECT COUNT(*) AS n FROM {table}")["n"]


class TestAgents:

    def test_agent_with_task_is_working(self, store):
        agent, task = store.create_agent("Bot-1", task="Fix bug #42")

        assert agent.status == "working"
        tasks = store.list_tasks(agent_id=agent.id)
        assert len(tasks) == 1
        assert tasks[0]["id"] == task.id
        assert tasks[0]["title"] == "Fix bug #42"
        assert tasks[0]["status"] == "in-progress"
        assert tasks[0]["priority"] == "high"
        assert tasks[0]["started_at"] is not None

    def test_agent_without_task_is_idle(self, store):
        agent, task = store.create_agent("Bot-2")

        assert task is None
        assert store.get_agent(agent.id).status == "idle"
        assert _count(store, "tasks") == 0

    def test_create_agent_requires_name(self, store):
        with pytest.raises(ValidationError):
            store.create_agent("   ")

    def test_blank_task_means_no_task(self, store):
        agent, task = store.create_agent("Bot-4", task="   ")

        assert task is None
        assert agent.status == "idle"
        assert agent.current_task is None
        assert _count(store, "tasks") == 0

    def test_task_title_is_stripped(self, store):
        _, task = store.create_agent("Bot-5", task="  Fix CI  ")
        assert store.get_task(task.id).title == "Fix CI"

    def test_create_agent_is_atomic(self, store, monkeypatch):
        def broken_log(*args, **kwargs):
            raise RuntimeError("log table unavailable")

        monkeypatch.setattr(store, "_log", broken_log)
        with pytest.raises(RuntimeError):
            store.create_agent("Bot-3", task="Never stored")

        assert _count(store, "agents") == 0
        assert _count(store, "tasks") == 0

    def test_list_agents_counts(self, store):
        agent, task = store.create_agent("Counter", task="first")
        store.create_task("second", assigned_to=agent.id)
        done = store.create_task("third", assigned_to=agent.id)
        store.update_task(done.id, status="completed")
        store.create_report(agent.id, "progress", "Halfway")

        listed = {a["id"]: a for a in store.list_agents()}[agent.id]
        assert listed["active_tasks"] == 2
        assert listed["unread_reports"] == 1

    def test_update_agent_heartbeat(self, store):
        agent, _ = store.create_agent("Pinger", task="work")
        updated = store.update_agent(agent.id, current_task=None, metadata={"cpu": 3})

        assert updated.current_task is None
        assert updated.metadata == {"cpu": 3}
        assert updated.status == "working"
        assert updated.last_ping >= agent.last_ping

    def test_update_agent_rejects_unknown_status(self, store):
        agent, _ = store.create_agent("Strict")
        with pytest.raises(InvalidValueError):
            store.update_agent(agent.id, status="sleeping")

    def test_update_missing_agent(self, store):
        with pytest.raises(NotFoundError):
            store.update_agent("agent-missing")

    def test_terminate_unassigns_open_tasks_only(self, store):
        agent, first = store.create_agent("Worker", task="open work")
        backlog = store.create_task("queued", assigned_to=agent.id)
        done = store.create_task("finished", assigned_to=agent.id)
        store.update_task(done.id, status="completed")

        assert store.terminate_agent(agent.id) == 2

        assert store.get_agent(agent.id).status == "terminated"
        assert store.get_task(first.id).assigned_to is None
        assert store.get_task(backlog.id).assigned_to is None
        assert store.get_task(done.id).assigned_to == agent.id

    def test_terminate_missing_agent(self, store):
        with pytest.raises(NotFoundError):
            store.terminate_agent("agent-missing")

    def test_terminate_logs_running_session(self, store):
        agent, _ = store.create_agent("Remote", task="t", reserve=True)
        store.confirm_spawn(agent.id, "sess-1")
        store.terminate_agent(agent.id)

        latest = store.list_logs(agent_id=agent.id, limit=1)[0]
        assert latest["level"] == "warning"
        assert "sess-1" in latest["message"]

    def test_delete_agent_cascades(self, store):
        agent, task = store.create_agent("Doomed", task="t")
        store.create_report(agent.id, "progress", "note")

        assert store.delete_agent(agent.id) is True
        assert store.get_task(task.id).assigned_to is None
        assert _count(store, "reports") == 0
        assert store.list_logs(agent_id=agent.id) == []
        assert store.delete_agent(agent.id) is False


class TestRemoteSpawn:

    def test_reserve_requires_task(self, store):
        with pytest.raises(ValidationError):
            store.create_agent("Remote", reserve=True)
        with pytest.raises(ValidationError):
            store.create_agent("Remote", task="  ", reserve=True)

    def test_reserved_agent_is_pending(self, store):
        agent, task = store.create_agent("Remote", task="t", reserve=True)
        assert store.get_agent(agent.id).status == "pending"
        assert store.get_task(task.id).status == "in-progress"

    def test_confirm_spawn(self, store):
        agent, _ = store.create_agent("Remote", task="t", reserve=True)
        store.confirm_spawn(agent.id, "sess-42")

        confirmed = store.get_agent(agent.id)
        assert confirmed.status == "working"
        assert confirmed.session_key == "sess-42"

    def test_fail_spawn_releases_task(self, store):
        agent, task = store.create_agent("Remote", task="t", reserve=True)

        assert store.fail_spawn(agent.id, "gateway down") == 1
        assert store.get_agent(agent.id).status == "error"
        released = store.get_task(task.id)
        assert released.status == "backlog"
        assert released.assigned_to is None
        assert store.list_logs(agent_id=agent.id, limit=1)[0]["level"] == "error"

    def test_spawn_outcome_only_applies_to_pending(self, store):
        agent, _ = store.create_agent("Local", task="t")
        with pytest.raises(NotFoundError):
            store.confirm_spawn(agent.id, "sess")
        with pytest.raises(NotFoundError):
            store.fail_spawn(agent.id, "boom")


class TestTasks:

    def test_priority_ordering(self, store):
        specs = [
            ("low-old", "low", "2024-01-01T00:00:00"),
            ("medium-new", "medium", "2024-01-05T00:00:00"),
            ("critical-old", "critical", "2024-01-01T00:00:00"),
            ("high-old", "high", "2024-01-02T00:00:00"),
            ("critical-new", "critical", "2024-01-04T00:00:00"),
            ("medium-old", "medium", "2024-01-03T00:00:00"),
            ("high-new", "high", "2024-01-06T00:00:00"),
        ]
        for title, priority, created_at in specs:
            task = store.create_task(title, priority=priority)
            _set_created_at(store, task.id, created_at)

        titles = [t["title"] for t in store.list_tasks()]
        assert titles == [
            "critical-new", "critical-old",
            "high-new", "high-old",
            "medium-new", "medium-old",
            "low-old",
        ]

    def test_create_task_defaults(self, store):
        task = store.create_task("Write docs")
        assert task.status == "backlog"
        assert task.priority == "medium"
        assert task.started_at is None

    def test_create_task_rejects_unknown_refs(self, store):
        with pytest.raises(ValidationError):
            store.create_task("orphan", assigned_to="agent-missing")
        with pytest.raises(ValidationError):
            store.create_task("orphan", project_id="project-missing")
        with pytest.raises(InvalidValueError):
            store.create_task("bad", priority="urgent")

    def test_status_timestamps(self, store):
        task = store.create_task("Timestamps")

        started = store.update_task(task.id, status="in-progress")
        assert started.started_at is not None
        assert started.completed_at is None

        reviewed = store.update_task(task.id, status="review")
        assert reviewed.started_at == started.started_at
        assert reviewed.completed_at is None

        completed = store.update_task(task.id, status="completed")
        assert completed.started_at == started.started_at
        assert completed.completed_at is not None

        reopened = store.update_task(task.id, status="backlog")
        assert reopened.started_at == started.started_at
        assert reopened.completed_at == completed.completed_at

    def test_update_task_assignment(self, store):
        agent, _ = store.create_agent("Assignee")
        task = store.create_task("Assign me")

        assert store.update_task(task.id, assigned_to=agent.id).assigned_to == agent.id
        assert store.update_task(task.id, priority="low").assigned_to == agent.id
        assert store.update_task(task.id, assigned_to=None).assigned_to is None

    def test_update_task_errors(self, store):
        task = store.create_task("x")
        with pytest.raises(ValidationError):
            store.update_task(task.id)
        with pytest.raises(InvalidValueError):
            store.update_task(task.id, status="done")
        with pytest.raises(NotFoundError):
            store.update_task("task-missing", status="review")

    def test_filters_and_stats(self, store):
        agent, _ = store.create_agent("Filter", task="mine")
        store.create_task("other")

        assert [t["title"] for t in store.list_tasks(agent_id=agent.id)] == ["mine"]
        assert [t["title"] for t in store.list_tasks(status="backlog")] == ["other"]
        assert store.list_tasks(agent_id=agent.id)[0]["assigned_name"] == "Filter"
        assert store.task_stats() == {"in-progress": 1, "backlog": 1}
        with pytest.raises(InvalidValueError):
            store.list_tasks(status="todo")

    def test_delete_task(self, store):
        task = store.create_task("gone")
        assert store.delete_task(task.id) is True
        assert store.delete_task(task.id) is False


class TestReports:

    def test_completion_report_moves_task_to_review(self, store):
        agent, task = store.create_agent("Bot-1", task="Fix bug #42")
        store.create_report(agent.id, "completion", "Done", task_id=task.id)
        assert store.get_task(task.id).status == "review"

    def test_completion_report_overrides_any_status(self, store):
        agent, _ = store.create_agent("Bot")
        task = store.create_task("already done", assigned_to=agent.id)
        store.update_task(task.id, status="completed")

        store.create_report(agent.id, "completion", "Done again", task_id=task.id)
        assert store.get_task(task.id).status == "review"

    @pytest.mark.parametrize("report_type", ["progress", "question", "error"])
    def test_other_reports_leave_task_status(self, store, report_type):
        agent, task = store.create_agent("Bot", task="t")
        store.create_report(agent.id, report_type, "note", task_id=task.id)
        assert store.get_task(task.id).status == "in-progress"

    def test_report_validation(self, store):
        agent, _ = store.create_agent("Bot")
        with pytest.raises(ValidationError, match="Missing required fields"):
            store.create_report(agent.id, None, "title")
        with pytest.raises(InvalidValueError):
            store.create_report(agent.id, "blocker", "title")
        with pytest.raises(ValidationError):
            store.create_report("agent-missing", "progress", "title")
        with pytest.raises(ValidationError):
            store.create_report(agent.id, "progress", "title", task_id="task-missing")

    def test_report_is_logged(self, store):
        agent, _ = store.create_agent("Bot")
        store.create_report(agent.id, "progress", "Halfway")
        assert store.list_logs(agent_id=agent.id)[0]["message"] == "Submitted report: Halfway"

    def test_list_and_mark_reports(self, store):
        agent, task = store.create_agent("Reporter", task="t")
        report = store.create_report(agent.id, "progress", "Update", content="body", task_id=task.id)

        listed = store.list_reports()[0]
        assert listed["agent_name"] == "Reporter"
        assert listed["task_title"] == "t"
        assert listed["status"] == "unread"

        store.set_report_status(report.id, "read")
        assert store.list_reports(status="unread") == []
        assert len(store.list_reports(status="read", agent_id=agent.id)) == 1

        with pytest.raises(InvalidValueError):
            store.set_report_status(report.id, "deleted")
        with pytest.raises(NotFoundError):
            store.set_report_status("report-missing", "read")


class TestProjects:

    def test_projects_include_tasks(self, store):
        project = store.create_project("Website", github_repo="acme/site")
        store.create_task("landing page", project_id=project.id)
        done = store.create_task("logo", project_id=project.id)
        store.update_task(done.id, status="completed")
        store.create_project("Empty")

        by_id = {p["id"]: p for p in store.list_projects()}
        assert by_id[project.id]["pending_tasks"] == 1
        assert {t["title"] for t in by_id[project.id]["tasks"]} == {"landing page", "logo"}
        assert all(p["tasks"] == [] for p in by_id.values() if p["id"] != project.id)

    def test_update_project(self, store):
        project = store.create_project("Old")
        store.update_project(project.id, name="New", status="active")

        updated = store.get_project(project.id)
        assert updated["name"] == "New"
        assert updated["status"] == "active"

        with pytest.raises(InvalidValueError):
            store.update_project(project.id, status="paused")
        with pytest.raises(ValidationError):
            store.update_project(project.id, owner="me")
        with pytest.raises(NotFoundError):
            store.update_project("project-missing", name="x")

    def test_delete_project_removes_tasks(self, store):
        project = store.create_project("Short-lived")
        store.create_task("t", project_id=project.id)

        assert store.delete_project(project.id) is True
        assert _count(store, "tasks") == 0

    def test_upsert_synced_project(self, store):
        store.upsert_synced_project("gh-1", "repo", "first", "me/repo")
        store.upsert_synced_project("gh-1", "repo", "second", "me/repo")

        projects = store.list_projects()
        assert len(projects) == 1
        assert projects[0]["description"] == "second"
        assert projects[0]["status"] == "active"


def test_store_creates_sqlite_parent_dir(tmp_path):
    path = tmp_path / "nested" / "dir" / "db.sqlite"
    TrackerStore({"database": {"type": "sqlite", "path": str(path)}})
    assert path.exists()
