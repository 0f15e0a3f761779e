"""
Agent Capability

The logical, stateful execution context handed back to callers by
create_agent(). Backends provision the unit; agents talk to it.
"""

from abc import ABC, abstractmethod
from typing import Callable

from .models import AgentOptions


class Agent(ABC):
    """
    Abstract agent bound to one session ID.

    Executors call start_session() once after provisioning and close()
    (when implemented) on teardown.
    """

    @property
    @abstractmethod
    def session_id(self) -> str:
        """Session ID this agent is bound to"""
        pass

    @abstractmethod
    async def start_session(self) -> None:
        """
        Start the agent session.

        Raises:
            Exception: Any failure; the executor rolls back the unit
        """
        pass

    @abstractmethod
    async def execute(self, input: str) -> str:
        """
        Execute input within the session.

        Returns:
            Agent output
        """
        pass

    async def close(self) -> None:
        """Release resources held by the agent"""
        pass


AgentFactory = Callable[[AgentOptions], Agent]


class BaseAgent(Agent):
    """In-process agent for development and testing"""

    def __init__(self, options: AgentOptions):
        self.options = options
        self.started = False
        self.closed = False

    @property
    def session_id(self) -> str:
        return self.options.session_id

    async def start_session(self) -> None:
        self.started = True

    async def execute(self, input: str) -> str:
        return f"Executing in session {self.session_id}: {input}"

    async def close(self) -> None:
        self.closed = True
