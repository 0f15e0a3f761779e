"""
Agent Executor

Pluggable executor that creates, tracks and destroys agents, each bound
to one session, across interchangeable backends: in-process (local),
Docker containers (container) and Kubernetes pods (pod).
"""

from .agent import Agent, AgentFactory, BaseAgent
from .interface import BaseExecutor, ExecutorType
from .models import (
    AgentOptions,
    AgentRecord,
    ExecutorOptions,
    ExecutorStatus,
    ResourceRequirements,
    ResourceStatus,
)
from .registry import AgentRegistry, AgentState
from .tracked import AGENT_LABEL, UNIT_NAME_PREFIX, TrackedExecutor
from .factory import create_executor, resolve_executor_type
from .exceptions import (
    AgentExecutionError,
    AgentNotFoundError,
    DuplicateAgentError,
    ExecutorError,
    InitializationError,
    ProvisionError,
    SessionStartError,
    TeardownError,
    UnsupportedBackendError,
)

__all__ = [
    # Interface
    "BaseExecutor",
    "ExecutorType",
    "TrackedExecutor",
    "Agent",
    "AgentFactory",
    "BaseAgent",
    # Models
    "AgentOptions",
    "AgentRecord",
    "ExecutorOptions",
    "ExecutorStatus",
    "ResourceRequirements",
    "ResourceStatus",
    # Registry & Factory
    "AgentRegistry",
    "AgentState",
    "create_executor",
    "resolve_executor_type",
    "AGENT_LABEL",
    "UNIT_NAME_PREFIX",
    # Exceptions
    "ExecutorError",
    "InitializationError",
    "DuplicateAgentError",
    "AgentNotFoundError",
    "ProvisionError",
    "SessionStartError",
    "TeardownError",
    "AgentExecutionError",
    "UnsupportedBackendError",
]
