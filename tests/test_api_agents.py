"""Tests for the /api/agents endpoints, including remote spawning."""

import threading

import httpx

from integrations.gateway_client import GatewayClient


def _spawn_response(status_code=200, **body):
    return httpx.Response(status_code, json=body)


class TestAgentApi:

    def test_create_agent_with_task(self, client, store):
        resp = client.post("/api/agents", json={"name": "Bot-1", "task": "Fix bug #42"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["agent"]["status"] == "working"
        task = store.get_task(data["task_id"])
        assert task.assigned_to == data["agent"]["id"]
        assert task.status == "in-progress"

    def test_create_agent_without_task(self, client):
        data = client.post("/api/agents", json={"name": "Idle-1"}).json()
        assert data["agent"]["status"] == "idle"
        assert data["task_id"] is None

    def test_create_agent_requires_name(self, client):
        resp = client.post("/api/agents", json={"task": "no name"})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Invalid request")

    def test_list_agents(self, client):
        client.post("/api/agents", json={"name": "Lister", "task": "t"})
        agents = client.get("/api/agents").json()["agents"]

        assert len(agents) == 1
        assert agents[0]["name"] == "Lister"
        assert agents[0]["active_tasks"] == 1
        assert agents[0]["unread_reports"] == 0

    def test_heartbeat(self, client):
        agent_id = client.post("/api/agents", json={"name": "Beat", "task": "t"}).json()["agent"]["id"]

        resp = client.patch("/api/agents", json={"id": agent_id, "status": "idle", "current_task": None})
        assert resp.status_code == 200
        agent = resp.json()["agent"]
        assert agent["status"] == "idle"
        assert agent["current_task"] is None

    def test_heartbeat_keeps_current_task_when_omitted(self, client):
        agent_id = client.post("/api/agents", json={"name": "Beat", "task": "keep me"}).json()["agent"]["id"]
        agent = client.patch("/api/agents", json={"id": agent_id}).json()["agent"]
        assert agent["current_task"] == "keep me"

    def test_heartbeat_errors(self, client):
        assert client.patch("/api/agents", json={"id": "agent-missing"}).status_code == 404
        agent_id = client.post("/api/agents", json={"name": "x"}).json()["agent"]["id"]
        resp = client.patch("/api/agents", json={"id": agent_id, "status": "asleep"})
        assert resp.status_code == 400
        assert "asleep" in resp.json()["error"]

    def test_terminate(self, client, store):
        created = client.post("/api/agents", json={"name": "Bye", "task": "t"}).json()

        resp = client.delete("/api/agents", params={"id": created["agent"]["id"]})
        assert resp.json() == {"success": True, "unassigned_tasks": 1}
        assert store.get_agent(created["agent"]["id"]).status == "terminated"
        assert store.get_task(created["task_id"]).assigned_to is None

    def test_terminate_errors(self, client):
        resp = client.delete("/api/agents")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Agent ID required"}
        assert client.delete("/api/agents", params={"id": "agent-missing"}).status_code == 404

    def test_purge(self, client, store):
        agent_id = client.post("/api/agents", json={"name": "Purge"}).json()["agent"]["id"]
        resp = client.delete("/api/agents", params={"id": agent_id, "purge": "true"})

        assert resp.json()["deleted"] == agent_id
        assert store.get_agent(agent_id) is None

    def test_agent_logs(self, client):
        agent_id = client.post("/api/agents", json={"name": "Logged"}).json()["agent"]["id"]
        logs = client.get("/api/agent-logs", params={"agent": agent_id}).json()["logs"]
        assert logs[0]["message"] == "Agent created: Logged"


class TestRemoteSpawnApi:

    def test_spawn_success(self, client, store, gateway_settings, monkeypatch):
        calls = []

        def fake_post(url, headers=None, json=None, timeout=None):
            calls.append((url, headers, json))
            return _spawn_response(sessionKey="sess-123")

        monkeypatch.setattr("integrations.gateway_client.httpx.post", fake_post)

        resp = client.post("/api/agents", json={"name": "Remote-1", "task": "Ship it", "remote": True})

        assert resp.status_code == 200
        data = resp.json()
        assert data["agent"]["status"] == "working"
        assert data["agent"]["session_key"] == "sess-123"

        url, headers, payload = calls[0]
        assert url == "http://gateway.test/v1/sessions/spawn"
        assert headers["Authorization"] == "Bearer gw-secret"
        assert payload["label"] == f"agent-{data['agent']['id']}"
        assert "Ship it" in payload["task"]
        assert payload["runTimeoutSeconds"] == 3600
        assert payload["cleanup"] == "keep"

        agent = store.get_agent(data["agent"]["id"])
        assert agent.status == "working"
        assert agent.session_key == "sess-123"

    def test_spawn_failure_rolls_back(self, client, store, gateway_settings, monkeypatch):
        def failing_post(*args, **kwargs):
            raise httpx.ConnectError("connection refused")

        monkeypatch.setattr("integrations.gateway_client.httpx.post", failing_post)

        resp = client.post("/api/agents", json={"name": "Remote-2", "task": "Ship it", "remote": True})

        assert resp.status_code == 500
        data = resp.json()
        assert "connection refused" in data["error"]
        assert data["agent"]["status"] == "error"
        agent_id = data["agent"]["id"]
        assert store.get_agent(agent_id).status == "error"
        tasks = store.list_tasks()
        assert len(tasks) == 1
        assert tasks[0]["status"] == "backlog"
        assert tasks[0]["assigned_to"] is None

    def test_spawn_upstream_error_status(self, client, store, gateway_settings, monkeypatch):
        monkeypatch.setattr(
            "integrations.gateway_client.httpx.post",
            lambda *args, **kwargs: _spawn_response(502, error="bad gateway")
        )

        resp = client.post("/api/agents", json={"name": "Remote-3", "task": "t", "remote": True})
        assert resp.status_code == 500
        assert "502" in resp.json()["error"]

    def test_spawn_not_configured(self, client, store):
        resp = client.post("/api/agents", json={"name": "Remote-4", "task": "t", "remote": True})

        assert resp.status_code == 500
        assert "OPENCLAW_GATEWAY_URL not configured" in resp.json()["error"]
        assert store.list_agents() == []

    def test_spawn_requires_task(self, client, gateway_settings):
        resp = client.post("/api/agents", json={"name": "Remote-5", "remote": True})
        assert resp.status_code == 400

    def test_message_agent(self, client, store, gateway_settings, monkeypatch):
        agent, _ = store.create_agent("Chatty", task="t", reserve=True)
        store.confirm_spawn(agent.id, "sess-9")
        sent = []
        monkeypatch.setattr(
            "integrations.gateway_client.httpx.post",
            lambda url, headers=None, json=None, timeout=None: sent.append((url, json)) or httpx.Response(200, json={})
        )

        resp = client.post("/api/agents/message", json={"id": agent.id, "message": "status?"})

        assert resp.json() == {"success": True}
        assert sent == [("http://gateway.test/v1/sessions/sess-9/send", {"message": "status?"})]

    def test_message_agent_without_session(self, client, store, gateway_settings):
        agent, _ = store.create_agent("Local")
        resp = client.post("/api/agents/message", json={"id": agent.id, "message": "hi"})
        assert resp.status_code == 400

    def test_list_sessions(self, client, gateway_settings, monkeypatch):
        monkeypatch.setattr(
            "integrations.gateway_client.httpx.get",
            lambda *args, **kwargs: httpx.Response(200, json={"sessions": [{"key": "sess-1"}]})
        )
        assert client.get("/api/sessions").json() == {"sessions": [{"key": "sess-1"}]}

    def test_spawn_non_object_body_marks_error(self, client, store, gateway_settings, monkeypatch):
        monkeypatch.setattr(
            "integrations.gateway_client.httpx.post",
            lambda *args, **kwargs: httpx.Response(200, json=["queued"])
        )

        resp = client.post("/api/agents", json={"name": "Remote-6", "task": "t", "remote": True})

        assert resp.status_code == 500
        assert "unexpected response" in resp.json()["error"]
        agents = store.list_agents()
        assert [a["status"] for a in agents] == ["error"]
        task = store.list_tasks()[0]
        assert task["status"] == "backlog"
        assert task["assigned_to"] is None

    def test_spawn_unexpected_exception_marks_error(self, client, store, gateway_settings, monkeypatch):
        def exploding_spawn(self, name, task, agent_id):
            raise KeyError("sessionKey")

        monkeypatch.setattr(GatewayClient, "spawn_session", exploding_spawn)

        resp = client.post("/api/agents", json={"name": "Remote-7", "task": "t", "remote": True})

        assert resp.status_code == 500
        assert resp.json()["agent"]["status"] == "error"
        assert store.get_agent(resp.json()["agent"]["id"]).status == "error"

    def test_spawn_blank_task_rejected(self, client, store, gateway_settings):
        resp = client.post("/api/agents", json={"name": "Remote-8", "task": "   ", "remote": True})
        assert resp.status_code == 400
        assert store.list_agents() == []

    def test_slow_gateway_does_not_block_other_requests(self, client, gateway_settings, monkeypatch):
        spawn_started = threading.Event()
        health_done = threading.Event()
        waited = []

        def slow_post(*args, **kwargs):
            spawn_started.set()
            waited.append(health_done.wait(timeout=5))
            return httpx.Response(200, json={"sessionKey": "sess-slow"})

        monkeypatch.setattr("integrations.gateway_client.httpx.post", slow_post)

        responses = []
        spawner = threading.Thread(target=lambda: responses.append(
            client.post("/api/agents", json={"name": "Slow", "task": "t", "remote": True})
        ))
        spawner.start()
        assert spawn_started.wait(timeout=5)

        assert client.get("/health").status_code == 200
        health_done.set()
        spawner.join(timeout=10)

        assert waited == [True]
        assert responses[0].json()["agent"]["session_key"] == "sess-slow"
