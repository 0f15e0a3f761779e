"""
Pytest configuration and fixtures for Kommon executor tests
"""

import asyncio
import os
import sys
from typing import Dict
from unittest.mock import MagicMock

import pytest
from docker.errors import NotFound
from fastapi.testclient import TestClient

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def api_key():
    """Test API key (settings default)"""
    return "kommon-api-key-change-in-production"


@pytest.fixture
def auth_headers(api_key):
    """Authentication headers for API requests"""
    return {"X-API-Key": api_key}


# ============== Executor Fixtures ==============


@pytest.fixture
def agent_options():
    """Create sample agent options."""
    from core.executor.models import AgentOptions

    return AgentOptions(
        session_id="test-agent-1",
        base_url="http://localhost:8080",
        api_key="test-key",
    )


@pytest.fixture
def local_options(tmp_path):
    """Local executor options rooted in a temp directory."""
    from core.executor.interface import ExecutorType
    from core.executor.models import ExecutorOptions

    return ExecutorOptions(
        type=ExecutorType.LOCAL,
        config_dir=str(tmp_path / "local-executor"),
    )


@pytest.fixture
def failing_agent_factory():
    """Agent factory whose sessions never start."""
    from core.executor.agent import BaseAgent

    class FailingAgent(BaseAgent):
        async def start_session(self):
            raise RuntimeError("session handshake failed")

    return FailingAgent


@pytest.fixture
def mock_docker_client():
    """
    Mock Docker client backed by an in-memory container table.

    Containers can be looked up by ID or name and disappear on remove().
    """
    client = MagicMock()
    client.ping.return_value = True
    client.images.get.return_value = MagicMock()
    client.images.pull.return_value = MagicMock()

    live: Dict[str, MagicMock] = {}

    def create(image, name, environment, labels, detach, **kwargs):
        container = MagicMock()
        container.id = f"{name}-0123456789abcdef"
        container.name = name
        container.status = "running"
        container.labels = labels
        container.stats.return_value = {
            "cpu_stats": {"cpu_usage": {"total_usage": 250000}},
            "precpu_stats": {"cpu_usage": {"total_usage": 200000}},
            "memory_stats": {"usage": 1048576},
        }
        container.exec_run.return_value = MagicMock(exit_code=0, output=b"ok\n")

        def remove(force=False):
            live.pop(container.id, None)

        container.remove.side_effect = remove
        live[container.id] = container
        return container

    def get(ref):
        for container in live.values():
            if ref in (container.id, container.name):
                return container
        raise NotFound(f"No such container: {ref}")

    def list_containers(all=False, filters=None):
        return list(live.values())

    client.containers.create.side_effect = create
    client.containers.get.side_effect = get
    client.containers.list.side_effect = list_containers
    client.live_containers = live

    return client


@pytest.fixture
def container_options():
    """Container executor options with resource limits."""
    from core.executor.interface import ExecutorType
    from core.executor.models import ExecutorOptions, ResourceRequirements

    return ExecutorOptions(
        type=ExecutorType.CONTAINER,
        resources=ResourceRequirements(
            image="kommon-agent:test",
            cpu_limit="0.5",
            memory_limit="512Mi",
        ),
        stop_timeout=5,
    )


@pytest.fixture
def mock_core_api():
    """Mock Kubernetes CoreV1Api with an existing namespace."""
    api = MagicMock()
    api.read_namespace.return_value = MagicMock()

    pod = MagicMock()
    pod.status.phase = "Pending"
    api.read_namespaced_pod.return_value = pod

    return api


@pytest.fixture
def pod_options():
    """Pod executor options."""
    from core.executor.interface import ExecutorType
    from core.executor.models import ExecutorOptions, ResourceRequirements

    return ExecutorOptions(
        type=ExecutorType.POD,
        namespace="kommon-test",
        resources=ResourceRequirements(
            image="kommon-agent:test",
            cpu_limit="1.0",
            memory_limit="1Gi",
        ),
    )


# ============== API Fixtures ==============


@pytest.fixture
def local_executor(local_options):
    """Initialized local executor, closed after the test."""
    from core.executor.providers.local import LocalExecutor

    executor = LocalExecutor(local_options)
    asyncio.run(executor.initialize())
    yield executor
    asyncio.run(executor.close())


@pytest.fixture
def client(local_executor, monkeypatch):
    """FastAPI test client bound to a local executor"""
    import core.executor_setup
    from main import app

    monkeypatch.setattr(core.executor_setup, "_executor", local_executor)
    return TestClient(app)
