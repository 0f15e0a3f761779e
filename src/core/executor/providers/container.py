"""
Container Executor

One Docker container per agent, discovered through a label.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import docker
from docker.errors import DockerException, ImageNotFound, NotFound
from requests.exceptions import RequestException

from ..agent import Agent, AgentFactory
from ..exceptions import AgentExecutionError, InitializationError, ProvisionError, TeardownError
from ..interface import ExecutorType
from ..models import (
    AgentOptions,
    ExecutorOptions,
    ExecutorStatus,
    ResourceRequirements,
    ResourceStatus,
)
from ..resources import CPU_PERIOD_US, calculate_cpu_percent, parse_cpu_quota, parse_memory_limit
from ..tracked import AGENT_LABEL, TrackedExecutor, run_to_completion

logger = logging.getLogger(__name__)

DEFAULT_AGENT_IMAGE = "kommon-agent:latest"

# The SDK raises requests errors when the daemon socket is unreachable
DOCKER_ERRORS = (DockerException, RequestException)


class ContainerAgent(Agent):
    """Agent running inside a Docker container"""

    def __init__(
        self,
        options: AgentOptions,
        docker_client: docker.DockerClient,
        container_id: str,
    ):
        self.options = options
        self.docker_client = docker_client
        self.container_id = container_id

    @property
    def session_id(self) -> str:
        return self.options.session_id

    async def start_session(self) -> None:
        """Confirm the container is running"""
        container = await asyncio.to_thread(
            self.docker_client.containers.get, self.container_id
        )
        if container.status != "running":
            raise AgentExecutionError(
                f"Container {self.container_id[:12]} is not running "
                f"(status: {container.status})",
                session_id=self.session_id,
            )

    async def execute(self, input: str) -> str:
        """Run input as a shell command inside the container"""
        container = await asyncio.to_thread(
            self.docker_client.containers.get, self.container_id
        )
        result = await asyncio.to_thread(
            container.exec_run,
            ["sh", "-c", input],
            environment=self.options.environment(),
        )

        output = result.output.decode("utf-8", errors="replace") if result.output else ""

        if result.exit_code != 0:
            raise AgentExecutionError(
                f"Command exited with code {result.exit_code}: {output}",
                session_id=self.session_id,
                exit_code=result.exit_code,
            )

        return output


class ContainerExecutor(TrackedExecutor):
    """
    Docker-based executor.

    Each agent gets a container named kommon-agent-<session id> and
    labelled kommon.agent.id=<session id>. The registry maps session ID
    to container ID.

    Features:
    - Memory limit and CPU quota from ResourceRequirements
    - Image pulled on demand
    - Stop with a bounded grace period, then forced removal
    - CPU/memory aggregated from per-container stats
    """

    executor_type = ExecutorType.CONTAINER

    def __init__(
        self,
        options: ExecutorOptions,
        agent_factory: Optional[AgentFactory] = None,
        docker_client: Optional[docker.DockerClient] = None,
        docker_host: Optional[str] = None,
    ):
        """
        Initialize executor.

        Args:
            options: Executor options (resources, stop_timeout, reconcile)
            agent_factory: Builds agents (ContainerAgent if not given)
            docker_client: Docker client (created on initialize if not provided)
            docker_host: Docker daemon URL; environment settings if not given
        """
        super().__init__(options, agent_factory=agent_factory)
        self.docker_client = docker_client
        self.docker_host = docker_host

    @property
    def resources(self) -> ResourceRequirements:
        return self.options.resources or ResourceRequirements()

    async def _prepare(self) -> None:
        """Check Docker daemon connectivity"""
        try:
            if self.docker_client is None:
                if self.docker_host:
                    self.docker_client = await asyncio.to_thread(
                        docker.DockerClient, base_url=self.docker_host
                    )
                else:
                    self.docker_client = await asyncio.to_thread(docker.from_env)

            await asyncio.to_thread(self.docker_client.ping)

        except DOCKER_ERRORS as e:
            logger.error(f"Failed to connect to Docker: {e}")
            raise InitializationError(
                f"Failed to connect to Docker daemon: {e}",
                executor_type=self.executor_type,
            ) from e

    async def _provision(self, options: AgentOptions) -> Any:
        return await run_to_completion(self._create_container, options)

    def _create_container(self, options: AgentOptions) -> str:
        """Create and start the agent container (blocking)"""
        session_id = options.session_id
        image = self.resources.image or DEFAULT_AGENT_IMAGE

        limits: Dict[str, int] = {}
        memory = parse_memory_limit(self.resources.memory_limit)
        if memory:
            limits["mem_limit"] = memory
        cpu_quota = parse_cpu_quota(self.resources.cpu_limit)
        if cpu_quota:
            limits["cpu_quota"] = cpu_quota
            limits["cpu_period"] = CPU_PERIOD_US

        try:
            self._ensure_image(image)

            container = self.docker_client.containers.create(
                image=image,
                name=self._unit_name(session_id),
                environment=options.environment(),
                labels={AGENT_LABEL: session_id},
                detach=True,
                **limits,
            )
        except DOCKER_ERRORS as e:
            raise ProvisionError(
                f"Failed to create container: {e}",
                session_id=session_id,
                executor_type=self.executor_type,
            ) from e

        try:
            container.start()
        except DOCKER_ERRORS as e:
            try:
                container.remove(force=True)
            except DOCKER_ERRORS as cleanup_error:
                logger.error(
                    f"Failed to remove container {container.id[:12]} "
                    f"after start failure: {cleanup_error}"
                )
            raise ProvisionError(
                f"Failed to start container: {e}",
                session_id=session_id,
                executor_type=self.executor_type,
            ) from e

        logger.info(f"Started container {container.id[:12]} for agent {session_id}")
        return container.id

    def _ensure_image(self, image: str) -> None:
        """Pull image if not present locally"""
        try:
            self.docker_client.images.get(image)
        except ImageNotFound:
            logger.info(f"Pulling Docker image: {image}")
            self.docker_client.images.pull(image)

    def _new_agent(self, options: AgentOptions, handle: Any) -> Agent:
        if self.agent_factory:
            return self.agent_factory(options)
        return ContainerAgent(options, self.docker_client, handle)

    async def _teardown(self, session_id: str, handle: Optional[Any]) -> None:
        await asyncio.to_thread(self._remove_container, session_id, handle)

    def _remove_container(self, session_id: str, container_ref: Optional[str]) -> None:
        """Stop and remove the agent container (blocking)"""
        ref = container_ref or self._unit_name(session_id)

        try:
            container = self.docker_client.containers.get(ref)
            container.stop(timeout=self.options.stop_timeout)
            container.remove(force=True)
        except NotFound:
            logger.warning(f"Container for agent {session_id} already removed")
            return
        except DOCKER_ERRORS as e:
            raise TeardownError(
                f"Failed to remove container for agent {session_id}: {e}",
                session_id=session_id,
                executor_type=self.executor_type,
            ) from e

        logger.info(f"Removed container for agent {session_id}")

    async def _discover(self) -> Dict[str, Any]:
        containers = await asyncio.to_thread(
            self.docker_client.containers.list,
            all=True,
            filters={"label": AGENT_LABEL},
        )
        return {
            container.labels[AGENT_LABEL]: container.id
            for container in containers
            if container.labels.get(AGENT_LABEL)
        }

    async def _release(self) -> None:
        if self.docker_client is not None:
            await asyncio.to_thread(self.docker_client.close)

    async def get_status(self) -> ExecutorStatus:
        """Readiness plus CPU/memory summed over tracked containers"""
        active_agents = len(self._agents)

        if self.docker_client is None:
            return ExecutorStatus(
                type=self.executor_type,
                is_ready=False,
                active_agents=active_agents,
            )

        try:
            await asyncio.to_thread(self.docker_client.ping)
            containers = await asyncio.to_thread(
                self.docker_client.containers.list,
                filters={"label": AGENT_LABEL},
            )
        except DOCKER_ERRORS as e:
            logger.warning(f"Docker unavailable for status check: {e}")
            return ExecutorStatus(
                type=self.executor_type,
                is_ready=False,
                active_agents=active_agents,
            )

        tracked = set(self._agents.session_ids())
        total_cpu = 0.0
        total_memory = 0.0

        for container in containers:
            if container.labels.get(AGENT_LABEL) not in tracked:
                continue

            try:
                stats = await asyncio.to_thread(container.stats, stream=False)
                cpu_percent = calculate_cpu_percent(stats)
                memory = float(stats.get("memory_stats", {}).get("usage", 0))
            except DOCKER_ERRORS + (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping stats for container {container.id[:12]}: {e}")
                continue

            total_cpu += cpu_percent
            total_memory += memory

        return ExecutorStatus(
            type=self.executor_type,
            is_ready=True,
            active_agents=active_agents,
            resource_status=ResourceStatus(
                cpu_usage=total_cpu,
                memory_usage=total_memory,
            ),
        )
