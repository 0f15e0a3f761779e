"""
Agent Registry

In-memory mapping from session ID to backend handle.
Enforces at most one live agent per session ID.
"""

import logging
import threading
from enum import Enum
from typing import Dict, List, Optional

from .exceptions import AgentNotFoundError, DuplicateAgentError
from .interface import ExecutorType
from .models import AgentRecord

logger = logging.getLogger(__name__)


class AgentState(str, Enum):
    """Lifecycle state of a session in the registry"""

    CREATING = "creating"  # Reserved, unit being provisioned
    RUNNING = "running"  # Record committed
    DESTROYING = "destroying"  # Claimed for teardown


class AgentRegistry:
    """
    Session-keyed registry of live agents.

    The lock only covers in-memory bookkeeping, never backend I/O:
    creation reserves the ID, provisions outside the lock, then commits;
    destruction claims the record, tears down outside the lock, then removes.
    Reserved and claimed IDs still count as taken.

    Example:
        registry = AgentRegistry()

        registry.reserve("issue-1")
        try:
            handle = provision()
        except Exception:
            registry.abandon("issue-1")
            raise
        registry.commit(AgentRecord(session_id="issue-1", handle=handle))
    """

    def __init__(self, executor_type: Optional[ExecutorType] = None):
        self.executor_type = executor_type
        self._lock = threading.Lock()
        self._records: Dict[str, AgentRecord] = {}
        self._pending: Dict[str, AgentState] = {}

    def reserve(self, session_id: str) -> None:
        """
        Reserve a session ID for creation.

        Raises:
            DuplicateAgentError: If the ID is tracked, reserved, or being destroyed
        """
        with self._lock:
            if session_id in self._records or session_id in self._pending:
                raise DuplicateAgentError(session_id, executor_type=self.executor_type)
            self._pending[session_id] = AgentState.CREATING

        logger.debug(f"Reserved session: {session_id}")

    def commit(self, record: AgentRecord) -> None:
        """Insert the record for a reserved session ID"""
        with self._lock:
            if self._pending.get(record.session_id) != AgentState.CREATING:
                raise RuntimeError(f"Session {record.session_id} was not reserved")
            del self._pending[record.session_id]
            self._records[record.session_id] = record

    def abandon(self, session_id: str) -> None:
        """Release a reservation without inserting a record"""
        with self._lock:
            if self._pending.get(session_id) == AgentState.CREATING:
                del self._pending[session_id]

    def claim(self, session_id: str) -> AgentRecord:
        """
        Mark a record as being destroyed.

        The record stays listed until remove() is called.

        Raises:
            AgentNotFoundError: If no record exists or it is already being destroyed
        """
        with self._lock:
            record = self._records.get(session_id)
            if record is None or session_id in self._pending:
                raise AgentNotFoundError(session_id, executor_type=self.executor_type)
            self._pending[session_id] = AgentState.DESTROYING
            return record

    def release(self, session_id: str) -> None:
        """Undo a claim after a failed teardown, keeping the record"""
        with self._lock:
            if self._pending.get(session_id) == AgentState.DESTROYING:
                del self._pending[session_id]

    def remove(self, session_id: str) -> Optional[AgentRecord]:
        """Remove a record and any claim on it"""
        with self._lock:
            self._pending.pop(session_id, None)
            return self._records.pop(session_id, None)

    def get(self, session_id: str) -> Optional[AgentRecord]:
        """Get record by session ID"""
        with self._lock:
            return self._records.get(session_id)

    def state(self, session_id: str) -> Optional[AgentState]:
        """Current lifecycle state, or None when absent"""
        with self._lock:
            if session_id in self._pending:
                return self._pending[session_id]
            if session_id in self._records:
                return AgentState.RUNNING
            return None

    def session_ids(self) -> List[str]:
        """Snapshot of tracked session IDs"""
        with self._lock:
            return list(self._records.keys())

    def records(self) -> List[AgentRecord]:
        """Snapshot of tracked records"""
        with self._lock:
            return list(self._records.values())

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
