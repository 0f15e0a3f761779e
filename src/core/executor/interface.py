"""
Base Executor Interface

Abstract base class for all agent executors.
New backends should inherit from BaseExecutor and implement all abstract methods.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .agent import Agent
    from .models import AgentOptions, ExecutorStatus


class ExecutorType(str, Enum):
    """Supported executor backends"""

    LOCAL = "local"
    CONTAINER = "container"
    POD = "pod"

    @classmethod
    def _missing_(cls, value):
        # Legacy backend tags
        aliases = {
            "docker": cls.CONTAINER,
            "kubernetes": cls.POD,
            "k8s": cls.POD,
        }
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


class BaseExecutor(ABC):
    """
    Abstract base class for all agent executors.

    All executors must implement these methods:
    - initialize(): Prepare the backend (idempotent)
    - create_agent(): Provision a unit and start an agent session
    - destroy_agent(): Tear down a unit and forget the agent
    - list_agents(): Session IDs currently tracked
    - get_status(): Readiness and resource usage
    - close(): Destroy remaining agents and release the backend

    Example:
        executor = create_executor(ExecutorOptions(type=ExecutorType.LOCAL))
        await executor.initialize()

        agent = await executor.create_agent(AgentOptions(session_id="issue-1"))
        output = await agent.execute("hello")

        await executor.destroy_agent("issue-1")
    """

    executor_type: ExecutorType

    @abstractmethod
    async def initialize(self) -> None:
        """
        Set up the executor environment.

        Raises:
            InitializationError: When the backend is unreachable
        """
        pass

    @abstractmethod
    async def create_agent(self, options: "AgentOptions") -> "Agent":
        """
        Create and start a new agent.

        Args:
            options: Agent request; session_id is the unique key

        Returns:
            Started Agent

        Raises:
            DuplicateAgentError: When the session ID is already tracked
            ProvisionError: When the backend rejects creation
            SessionStartError: When the session fails to start (unit rolled back)
        """
        pass

    @abstractmethod
    async def destroy_agent(self, session_id: str) -> None:
        """
        Stop and clean up the agent for a session.

        Raises:
            AgentNotFoundError: When no agent is tracked for the session ID
            TeardownError: When the backend fails to remove the unit
        """
        pass

    @abstractmethod
    async def list_agents(self) -> List[str]:
        """
        Session IDs of currently tracked agents (unordered).
        """
        pass

    @abstractmethod
    async def get_status(self) -> "ExecutorStatus":
        """
        Get executor readiness and aggregated resource usage.

        Backends that cannot reach their control plane report
        is_ready=False instead of raising.
        """
        pass

    async def close(self) -> None:
        """
        Release all resources held by this executor.

        Called during service shutdown.
        """
        pass
