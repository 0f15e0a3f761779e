"""
Executor Data Models

Request/Response models for agent lifecycle management.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from .interface import ExecutorType

if TYPE_CHECKING:
    from .agent import Agent


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)"""
    return datetime.now(timezone.utc)


@dataclass
class AgentOptions:
    """Request to create an agent bound to one session"""

    # Required
    session_id: str

    # Connection
    base_url: str = ""
    api_key: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """Validate request parameters"""
        if not self.session_id:
            raise ValueError("session_id cannot be empty")

    def environment(self) -> Dict[str, str]:
        """Environment variables passed into a provisioned unit"""
        return {
            "AGENT_SESSION_ID": self.session_id,
            "AGENT_BASE_URL": self.base_url,
            "AGENT_API_KEY": self.api_key,
        }


@dataclass
class ResourceRequirements:
    """Resource limits for provisioned execution units"""

    image: str = ""
    cpu_limit: str = ""  # decimal cores, e.g. "1.0"
    memory_limit: str = ""  # e.g. "512Mi"
    disk_limit: str = ""  # informational only


@dataclass
class ExecutorOptions:
    """Configuration for building an executor"""

    type: Union[ExecutorType, str] = ExecutorType.LOCAL
    config_dir: str = ""
    namespace: str = ""
    resources: Optional[ResourceRequirements] = None

    # Backend tuning
    stop_timeout: int = 10  # seconds
    reconcile: bool = False
    kubeconfig: Optional[str] = None

    def __post_init__(self):
        # type is resolved by the factory so unknown tags surface there
        if self.stop_timeout < 0:
            raise ValueError("stop_timeout cannot be negative")


@dataclass(frozen=True)
class AgentRecord:
    """Registry entry for one live agent"""

    session_id: str
    handle: Any  # container ID, pod name, or in-process agent
    agent: Optional["Agent"] = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class ResourceStatus:
    """Aggregated resource usage"""

    cpu_usage: float = 0.0  # percent
    memory_usage: float = 0.0  # bytes
    disk_usage: float = 0.0  # bytes

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "cpu_usage": self.cpu_usage,
            "memory_usage": self.memory_usage,
            "disk_usage": self.disk_usage,
        }


@dataclass
class ExecutorStatus:
    """Executor readiness and load"""

    type: ExecutorType
    is_ready: bool
    active_agents: int = 0
    resource_status: Optional[ResourceStatus] = None

    # Last check timestamp
    last_check: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "type": self.type.value,
            "is_ready": self.is_ready,
            "active_agents": self.active_agents,
            "resource_status": (
                self.resource_status.to_dict() if self.resource_status else None
            ),
            "last_check": self.last_check.isoformat(),
        }
