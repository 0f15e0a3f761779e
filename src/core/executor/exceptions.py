"""
Executor Exceptions

Custom exceptions for agent lifecycle operations.
"""

from typing import Optional

from .interface import ExecutorType


class ExecutorError(Exception):
    """Base exception for executor errors"""

    def __init__(self, message: str, executor_type: Optional[ExecutorType] = None):
        self.message = message
        self.executor_type = executor_type
        super().__init__(message)


class InitializationError(ExecutorError):
    """Raised when the backend cannot be reached or prepared"""


class UnsupportedBackendError(ExecutorError):
    """Raised when the factory is given an unknown backend tag"""

    def __init__(self, backend: str):
        self.backend = backend
        super().__init__(f"Unsupported executor type: {backend}")


class DuplicateAgentError(ExecutorError):
    """Raised when an agent already exists for the session ID"""

    def __init__(self, session_id: str, executor_type: Optional[ExecutorType] = None):
        self.session_id = session_id
        super().__init__(
            f"Agent with ID {session_id} already exists",
            executor_type=executor_type,
        )


class AgentNotFoundError(ExecutorError):
    """Raised when no agent is tracked for the session ID"""

    def __init__(self, session_id: str, executor_type: Optional[ExecutorType] = None):
        self.session_id = session_id
        super().__init__(
            f"Agent with ID {session_id} not found",
            executor_type=executor_type,
        )


class ProvisionError(ExecutorError):
    """Raised when the backend rejects creation of an execution unit"""

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        executor_type: Optional[ExecutorType] = None,
    ):
        self.session_id = session_id
        super().__init__(message, executor_type=executor_type)


class SessionStartError(ExecutorError):
    """
    Raised when the agent session could not be started after provisioning.

    The provisioned unit has been rolled back. If the rollback failed as well,
    ``rollback_error`` holds the cleanup failure and the unit may be orphaned.
    """

    def __init__(
        self,
        session_id: str,
        cause: BaseException,
        rollback_error: Optional[BaseException] = None,
        executor_type: Optional[ExecutorType] = None,
    ):
        self.session_id = session_id
        self.cause = cause
        self.rollback_error = rollback_error

        if rollback_error is None:
            message = f"Failed to start agent session {session_id}: {cause}"
        else:
            message = (
                f"Failed to start agent session {session_id} and cleanup failed "
                f"(manual intervention required): {cause}; cleanup: {rollback_error}"
            )
        super().__init__(message, executor_type=executor_type)

    @property
    def cleanup_failed(self) -> bool:
        """True when the provisioned unit may have been left behind"""
        return self.rollback_error is not None


class TeardownError(ExecutorError):
    """Raised when an execution unit could not be stopped or removed"""

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        executor_type: Optional[ExecutorType] = None,
    ):
        self.session_id = session_id
        super().__init__(message, executor_type=executor_type)


class AgentExecutionError(ExecutorError):
    """Raised when an agent fails to execute its input"""

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        exit_code: Optional[int] = None,
    ):
        self.session_id = session_id
        self.exit_code = exit_code
        super().__init__(message)
