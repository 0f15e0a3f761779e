"""
Registry-backed Executor

Shared agent lifecycle for all backends: reservation, provisioning,
session start with rollback, teardown and shutdown. Backends plug in
through the _prepare/_provision/_new_agent/_teardown hooks.
"""

import asyncio
import logging
from abc import abstractmethod
from typing import Any, Dict, List, Optional

from ..metrics import ACTIVE_AGENTS, AGENT_OPERATIONS
from .agent import Agent, AgentFactory
from .exceptions import (
    AgentNotFoundError,
    DuplicateAgentError,
    ExecutorError,
    InitializationError,
    ProvisionError,
    SessionStartError,
    TeardownError,
)
from .interface import BaseExecutor
from .models import AgentOptions, AgentRecord, ExecutorOptions
from .registry import AgentRegistry

logger = logging.getLogger(__name__)

# Execution units are named <prefix>-<session id>
UNIT_NAME_PREFIX = "kommon-agent"

# Label carrying the session ID, used for discovery
AGENT_LABEL = "kommon.agent.id"

# Seconds between checks while close() waits for in-flight creates
CLOSE_POLL_INTERVAL = 0.05


async def run_to_completion(func, *args, **kwargs):
    """
    Run a blocking call in a worker thread.

    If the awaiting task is cancelled, the call is still waited for
    before CancelledError propagates, so whatever it created exists by
    the time rollback looks for it. The call's outcome is attached to
    the CancelledError:

    - ``call_failed``: True if the call raised (nothing was created)
    - ``result``: the call's return value if it succeeded

    Neither attribute is set when the outcome is unknown.
    """
    task = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError as cancelled:
        await asyncio.wait([task])
        if not task.cancelled():
            error = task.exception()
            if error is not None:
                logger.debug(f"Cancelled call also failed: {error}")
                cancelled.call_failed = True
            else:
                cancelled.result = task.result()
        raise


class TrackedExecutor(BaseExecutor):
    """
    Executor that tracks its agents in an AgentRegistry.

    create_agent() follows the same steps on every backend:
    1. Reserve the session ID (duplicate check)
    2. Provision the execution unit (_provision)
    3. Insert the registry record
    4. Build the agent and start its session

    A failure or cancellation after step 2 tears the unit down again
    before the error propagates.
    """

    def __init__(
        self,
        options: ExecutorOptions,
        agent_factory: Optional[AgentFactory] = None,
    ):
        self.options = options
        self.agent_factory = agent_factory
        self._agents = AgentRegistry(executor_type=self.executor_type)
        self._initialized = False
        self._closing = False
        self._creates_in_flight = 0

    @property
    def registry(self) -> AgentRegistry:
        """Registry of tracked agents"""
        return self._agents

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ---- Backend hooks ----

    @abstractmethod
    async def _prepare(self) -> None:
        """Connect to and prepare the backend (must be idempotent)"""
        pass

    @abstractmethod
    async def _provision(self, options: AgentOptions) -> Any:
        """
        Create and start the execution unit.

        Returns:
            Backend handle stored in the registry
        """
        pass

    @abstractmethod
    def _new_agent(self, options: AgentOptions, handle: Any) -> Agent:
        """Build the agent talking to a provisioned unit"""
        pass

    @abstractmethod
    async def _teardown(self, session_id: str, handle: Optional[Any]) -> None:
        """
        Remove the execution unit.

        handle is None when provisioning was interrupted and its outcome
        is unknown; backends then locate the unit by its name. A unit that
        no longer exists counts as removed.
        """
        pass

    async def _discover(self) -> Dict[str, Any]:
        """Existing units on the backend, keyed by session ID"""
        return {}

    async def _release(self) -> None:
        """Release the backend client"""
        pass

    # ---- Executor operations ----

    async def initialize(self) -> None:
        """Prepare the backend and optionally adopt existing units"""
        try:
            await self._prepare()
        except InitializationError:
            raise
        except Exception as e:
            raise InitializationError(
                f"Failed to initialize {self.executor_type.value} executor: {e}",
                executor_type=self.executor_type,
            ) from e

        if self.options.reconcile:
            await self._adopt_existing()

        self._initialized = True
        logger.info(f"{self.executor_type.value} executor initialized")

    async def create_agent(self, options: AgentOptions) -> Agent:
        """Provision a unit for the session and start its agent"""
        if not self._initialized:
            raise ExecutorError(
                "Executor not initialized. Call initialize() first.",
                executor_type=self.executor_type,
            )
        if self._closing:
            raise ExecutorError(
                "Executor is closing",
                executor_type=self.executor_type,
            )

        self._creates_in_flight += 1
        try:
            return await self._create_agent(options)
        finally:
            self._creates_in_flight -= 1

    async def _create_agent(self, options: AgentOptions) -> Agent:
        session_id = options.session_id

        try:
            self._agents.reserve(session_id)
        except DuplicateAgentError:
            self._record_operation("create", "duplicate")
            raise

        # Steps 1-2: provision outside the registry lock
        try:
            handle = await self._provision(options)
        except asyncio.CancelledError as cancelled:
            if getattr(cancelled, "call_failed", False):
                # Nothing was created; the unit name may belong to another session
                logger.warning(f"Provisioning cancelled for {session_id} after it failed")
                self._agents.abandon(session_id)
            else:
                logger.warning(f"Provisioning cancelled for {session_id}, rolling back")
                await self._rollback(session_id, getattr(cancelled, "result", None))
            self._record_operation("create", "cancelled")
            raise
        except ProvisionError:
            self._agents.abandon(session_id)
            self._record_operation("create", "provision_error")
            raise
        except Exception as e:
            self._agents.abandon(session_id)
            self._record_operation("create", "provision_error")
            raise ProvisionError(
                f"Failed to provision agent {session_id}: {e}",
                session_id=session_id,
                executor_type=self.executor_type,
            ) from e

        # Steps 3-4: record, then start the session
        try:
            agent = self._new_agent(options, handle)
            self._agents.commit(
                AgentRecord(session_id=session_id, handle=handle, agent=agent)
            )
            await agent.start_session()
        except asyncio.CancelledError:
            logger.warning(f"Session start cancelled for {session_id}, rolling back")
            await self._rollback(session_id, handle)
            raise
        except Exception as e:
            rollback_error = await self._rollback(session_id, handle)
            self._record_operation("create", "session_error")
            raise SessionStartError(
                session_id,
                cause=e,
                rollback_error=rollback_error,
                executor_type=self.executor_type,
            ) from e

        self._record_operation("create", "success")
        logger.info(f"Created agent {session_id} ({self.executor_type.value})")
        return agent

    async def destroy_agent(self, session_id: str) -> None:
        """Tear down the unit for the session and forget it"""
        try:
            record = self._agents.claim(session_id)
        except AgentNotFoundError:
            self._record_operation("destroy", "not_found")
            raise

        try:
            await self._teardown(session_id, record.handle)
        except asyncio.CancelledError:
            self._agents.release(session_id)
            raise
        except TeardownError:
            self._agents.release(session_id)
            self._record_operation("destroy", "teardown_error")
            raise
        except Exception as e:
            self._agents.release(session_id)
            self._record_operation("destroy", "teardown_error")
            raise TeardownError(
                f"Failed to destroy agent {session_id}: {e}",
                session_id=session_id,
                executor_type=self.executor_type,
            ) from e

        self._agents.remove(session_id)
        self._record_operation("destroy", "success")
        logger.info(f"Destroyed agent {session_id} ({self.executor_type.value})")

    async def list_agents(self) -> List[str]:
        """Snapshot of tracked session IDs"""
        return self._agents.session_ids()

    async def close(self) -> None:
        """
        Destroy all remaining agents, then release the backend.

        New creates are refused once close starts; creates already in
        flight finish first so their units are destroyed with the rest.
        """
        errors: List[ExecutorError] = []

        self._closing = True
        try:
            while self._creates_in_flight:
                await asyncio.sleep(CLOSE_POLL_INTERVAL)

            for session_id in self._agents.session_ids():
                try:
                    await self.destroy_agent(session_id)
                except AgentNotFoundError:
                    # Destroyed concurrently
                    continue
                except ExecutorError as e:
                    logger.error(f"Failed to destroy agent {session_id} on close: {e}")
                    errors.append(e)

            await self._release()
            self._initialized = False
        finally:
            self._closing = False

        if errors:
            raise ExecutorError(
                "Errors occurred while closing executor: "
                + "; ".join(str(e) for e in errors),
                executor_type=self.executor_type,
            )

        logger.info(f"{self.executor_type.value} executor closed")

    # ---- Helpers ----

    async def _rollback(self, session_id: str, handle: Optional[Any]) -> Optional[Exception]:
        """
        Tear down a unit whose creation failed.

        Returns:
            The cleanup error, or None when the unit is gone
        """
        rollback_error: Optional[Exception] = None

        try:
            await self._teardown(session_id, handle)
        except Exception as e:
            rollback_error = e
            logger.error(
                f"Rollback failed for agent {session_id}, unit may be orphaned: {e}",
                exc_info=True,
            )
        finally:
            self._agents.remove(session_id)
            self._agents.abandon(session_id)
            self._update_active_gauge()

        return rollback_error

    async def _adopt_existing(self) -> None:
        """Rebuild registry records for units found on the backend"""
        discovered = await self._discover()
        adopted = 0

        for session_id, handle in discovered.items():
            try:
                self._agents.reserve(session_id)
            except DuplicateAgentError:
                continue
            self._agents.commit(AgentRecord(session_id=session_id, handle=handle))
            adopted += 1

        if adopted:
            logger.info(f"Adopted {adopted} existing agents")
        self._update_active_gauge()

    def _unit_name(self, session_id: str) -> str:
        return f"{UNIT_NAME_PREFIX}-{session_id}"

    def _record_operation(self, operation: str, outcome: str) -> None:
        AGENT_OPERATIONS.labels(
            executor=self.executor_type.value,
            operation=operation,
            outcome=outcome,
        ).inc()
        self._update_active_gauge()

    def _update_active_gauge(self) -> None:
        ACTIVE_AGENTS.labels(executor=self.executor_type.value).set(len(self._agents))
