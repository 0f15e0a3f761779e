"""
Tests for executor interface, models and exceptions.
"""

import pytest

from core.executor.exceptions import (
    ExecutorError,
    SessionStartError,
    UnsupportedBackendError,
)
from core.executor.interface import BaseExecutor, ExecutorType
from core.executor.models import (
    AgentOptions,
    ExecutorOptions,
    ExecutorStatus,
    ResourceStatus,
)


class TestExecutorType:
    """Test ExecutorType enum."""

    def test_values(self):
        """Test canonical tags."""
        assert ExecutorType.LOCAL.value == "local"
        assert ExecutorType.CONTAINER.value == "container"
        assert ExecutorType.POD.value == "pod"

    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("docker", ExecutorType.CONTAINER),
            ("kubernetes", ExecutorType.POD),
            ("k8s", ExecutorType.POD),
            ("Docker", ExecutorType.CONTAINER),
        ],
    )
    def test_aliases(self, tag, expected):
        """Test legacy tags."""
        assert ExecutorType(tag) == expected

    def test_unknown(self):
        """Test unknown tag."""
        with pytest.raises(ValueError):
            ExecutorType("lambda")


class TestBaseExecutor:
    """Test BaseExecutor abstract class."""

    def test_cannot_instantiate(self):
        """Test that BaseExecutor is abstract."""
        with pytest.raises(TypeError):
            BaseExecutor()


class TestAgentOptions:
    """Test AgentOptions."""

    def test_environment(self):
        """Test unit environment variables."""
        options = AgentOptions(
            session_id="issue-42",
            base_url="http://api.local",
            api_key="secret",
            headers={"X-Trace": "1"},
        )

        assert options.environment() == {
            "AGENT_SESSION_ID": "issue-42",
            "AGENT_BASE_URL": "http://api.local",
            "AGENT_API_KEY": "secret",
        }

    def test_empty_session_id(self):
        """Test that an empty session ID is rejected."""
        with pytest.raises(ValueError):
            AgentOptions(session_id="")


class TestExecutorOptions:
    """Test ExecutorOptions."""

    def test_defaults(self):
        """Test default options."""
        options = ExecutorOptions()

        assert options.type == ExecutorType.LOCAL
        assert options.stop_timeout == 10
        assert options.reconcile is False
        assert options.resources is None

    def test_unknown_type_is_kept(self):
        """Test that tags are resolved later, not at construction."""
        assert ExecutorOptions(type="lambda").type == "lambda"

    def test_negative_stop_timeout(self):
        """Test stop timeout validation."""
        with pytest.raises(ValueError):
            ExecutorOptions(stop_timeout=-1)


class TestExecutorStatus:
    """Test status serialization."""

    def test_to_dict(self):
        """Test status conversion."""
        status = ExecutorStatus(
            type=ExecutorType.CONTAINER,
            is_ready=True,
            active_agents=2,
            resource_status=ResourceStatus(cpu_usage=12.5, memory_usage=1024.0),
        )

        data = status.to_dict()

        assert data["type"] == "container"
        assert data["is_ready"] is True
        assert data["active_agents"] == 2
        assert data["resource_status"] == {
            "cpu_usage": 12.5,
            "memory_usage": 1024.0,
            "disk_usage": 0.0,
        }
        assert "last_check" in data

    def test_to_dict_without_resources(self):
        """Test status without resource section."""
        status = ExecutorStatus(type=ExecutorType.POD, is_ready=False)

        assert status.to_dict()["resource_status"] is None


class TestExceptions:
    """Test error taxonomy."""

    def test_unsupported_backend(self):
        """Test unsupported backend message."""
        error = UnsupportedBackendError("lambda")

        assert isinstance(error, ExecutorError)
        assert error.backend == "lambda"
        assert "lambda" in str(error)

    def test_session_start_error(self):
        """Test session start error without cleanup failure."""
        error = SessionStartError("a", cause=RuntimeError("boom"))

        assert error.cleanup_failed is False
        assert "boom" in str(error)

    def test_session_start_error_with_cleanup_failure(self):
        """Test compound session start error."""
        error = SessionStartError(
            "a",
            cause=RuntimeError("boom"),
            rollback_error=RuntimeError("daemon gone"),
        )

        assert error.cleanup_failed is True
        assert "boom" in str(error)
        assert "daemon gone" in str(error)
        assert "manual intervention" in str(error)
