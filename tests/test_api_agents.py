"""
Tests for agent management API
"""

import core.executor_setup


class TestServiceEndpoints:
    """Root, health and metrics endpoints"""

    def test_root(self, client):
        """Test root endpoint"""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "running"
        assert data["endpoints"]["agents"] == "/api/v1/agents"

    def test_health(self, client):
        """Test health check with a ready executor"""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["executor"] is True
        assert data["active_agents"] == 0

    def test_health_without_executor(self, client, monkeypatch):
        """Test health check before setup"""
        monkeypatch.setattr(core.executor_setup, "_executor", None)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_metrics(self, client, auth_headers):
        """Test Prometheus exposition"""
        client.post("/api/v1/agents", json={"session_id": "metered"}, headers=auth_headers)

        response = client.get("/metrics/")

        assert response.status_code == 200
        assert "kommon_agent_operations_total" in response.text
        assert "kommon_active_agents" in response.text


class TestAuthentication:
    """API key checks"""

    def test_missing_api_key(self, client):
        """Test request without API key"""
        response = client.get("/api/v1/agents")

        assert response.status_code == 401

    def test_invalid_api_key(self, client):
        """Test request with wrong API key"""
        response = client.get("/api/v1/agents", headers={"X-API-Key": "wrong"})

        assert response.status_code == 403


class TestAgentsAPI:
    """Agent lifecycle endpoints"""

    def test_create_agent(self, client, auth_headers):
        """Test agent creation"""
        response = client.post(
            "/api/v1/agents",
            json={
                "session_id": "issue-1",
                "base_url": "http://localhost:8080",
                "api_key": "agent-key",
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json() == {"session_id": "issue-1", "executor": "local"}

    def test_create_duplicate(self, client, auth_headers):
        """Test duplicate session ID"""
        client.post("/api/v1/agents", json={"session_id": "issue-1"}, headers=auth_headers)

        response = client.post(
            "/api/v1/agents", json={"session_id": "issue-1"}, headers=auth_headers
        )

        assert response.status_code == 409
        assert "issue-1" in response.json()["detail"]

    def test_create_empty_session_id(self, client, auth_headers):
        """Test validation of the session ID"""
        response = client.post("/api/v1/agents", json={"session_id": ""}, headers=auth_headers)

        assert response.status_code == 422

    def test_create_session_start_failure(
        self, client, auth_headers, local_executor, failing_agent_factory
    ):
        """Test that a failed session start maps to 502 and leaves nothing behind"""
        local_executor.agent_factory = failing_agent_factory

        response = client.post(
            "/api/v1/agents", json={"session_id": "broken"}, headers=auth_headers
        )

        assert response.status_code == 502
        assert "broken" in response.json()["detail"]

        listed = client.get("/api/v1/agents", headers=auth_headers).json()
        assert listed == {"agents": [], "count": 0}

    def test_list_agents(self, client, auth_headers):
        """Test listing tracked agents"""
        for session_id in ("b", "a"):
            client.post(
                "/api/v1/agents", json={"session_id": session_id}, headers=auth_headers
            )

        response = client.get("/api/v1/agents", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"agents": ["a", "b"], "count": 2}

    def test_destroy_agent(self, client, auth_headers):
        """Test agent destruction"""
        client.post("/api/v1/agents", json={"session_id": "issue-1"}, headers=auth_headers)

        response = client.delete("/api/v1/agents/issue-1", headers=auth_headers)
        assert response.status_code == 204

        response = client.delete("/api/v1/agents/issue-1", headers=auth_headers)
        assert response.status_code == 404

    def test_destroy_agent_with_slash(self, client, auth_headers):
        """Test session IDs containing a path separator"""
        client.post(
            "/api/v1/agents", json={"session_id": "team/issue-1"}, headers=auth_headers
        )

        response = client.delete("/api/v1/agents/team/issue-1", headers=auth_headers)

        assert response.status_code == 204

    def test_executor_status(self, client, auth_headers):
        """Test executor status"""
        client.post("/api/v1/agents", json={"session_id": "issue-1"}, headers=auth_headers)

        response = client.get("/api/v1/executor/status", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "local"
        assert data["is_ready"] is True
        assert data["active_agents"] == 1
        assert data["resource_status"] is not None
        assert "last_check" in data

    def test_executor_unavailable(self, client, auth_headers, monkeypatch):
        """Test requests before the executor is set up"""
        monkeypatch.setattr(core.executor_setup, "_executor", None)

        response = client.get("/api/v1/agents", headers=auth_headers)

        assert response.status_code == 503
