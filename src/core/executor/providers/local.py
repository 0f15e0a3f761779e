"""
Local Executor

Runs agents as plain in-process objects. No isolation.
"""

import asyncio
import inspect
import logging
import os
from pathlib import Path
from typing import Any, Optional

import psutil

from ..agent import Agent, AgentFactory, BaseAgent
from ..exceptions import ExecutorError, InitializationError
from ..interface import ExecutorType
from ..models import AgentOptions, ExecutorOptions, ExecutorStatus, ResourceStatus
from ..tracked import TrackedExecutor

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = os.path.join("~", ".kommon", "local-executor")


class LocalExecutor(TrackedExecutor):
    """
    In-process executor.

    The registry handle is the agent itself. Resource status is sampled
    host-wide since there is no per-agent boundary to measure.
    """

    executor_type = ExecutorType.LOCAL

    def __init__(
        self,
        options: ExecutorOptions,
        agent_factory: Optional[AgentFactory] = None,
    ):
        """
        Initialize executor.

        Args:
            options: Executor options; config_dir defaults to ~/.kommon/local-executor
            agent_factory: Builds agents (BaseAgent if not given)
        """
        super().__init__(options, agent_factory=agent_factory)
        self.config_dir = Path(options.config_dir or DEFAULT_CONFIG_DIR).expanduser()

    async def _prepare(self) -> None:
        try:
            self.config_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            raise InitializationError(
                f"Failed to create config directory {self.config_dir}: {e}",
                executor_type=self.executor_type,
            ) from e

    async def _provision(self, options: AgentOptions) -> Any:
        factory = self.agent_factory or BaseAgent
        logger.debug(f"Spawning in-process agent {options.session_id}")
        return factory(options)

    def _new_agent(self, options: AgentOptions, handle: Any) -> Agent:
        return handle

    async def _teardown(self, session_id: str, handle: Optional[Any]) -> None:
        close = getattr(handle, "close", None)
        if close is None:
            return

        result = close()
        if inspect.isawaitable(result):
            await result

    async def get_status(self) -> ExecutorStatus:
        """Host-wide resource usage"""
        active_agents = len(self._agents)

        try:
            resource_status = await asyncio.to_thread(self._sample_resources)
        except Exception as e:
            raise ExecutorError(
                f"Failed to get resource status: {e}",
                executor_type=self.executor_type,
            ) from e

        return ExecutorStatus(
            type=self.executor_type,
            is_ready=True,
            active_agents=active_agents,
            resource_status=resource_status,
        )

    def _sample_resources(self) -> ResourceStatus:
        """Collect system resource usage"""
        # Disk usage of the config directory's filesystem
        disk_path = self.config_dir if self.config_dir.exists() else Path.home()

        return ResourceStatus(
            cpu_usage=psutil.cpu_percent(interval=None),
            memory_usage=float(psutil.virtual_memory().used),
            disk_usage=float(psutil.disk_usage(str(disk_path)).used),
        )
