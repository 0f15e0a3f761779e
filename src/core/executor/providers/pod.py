"""
Pod Executor

One Kubernetes pod per agent in a target namespace.
"""

import asyncio
import hashlib
import logging
import os
import re
from typing import Any, Dict, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from kubernetes.stream import stream

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
from ..resources import parse_cpu_quota, parse_memory_limit
from ..tracked import AGENT_LABEL, TrackedExecutor, run_to_completion
from .container import DEFAULT_AGENT_IMAGE

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"
AGENT_CONTAINER_NAME = "agent"

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9.-]+")


def sanitize_name(value: str, max_length: int = 63) -> str:
    """
    Make a session ID usable as a Kubernetes name or label value.

    Lower-cases, replaces disallowed characters with '-', trims to
    max_length and strips leading/trailing separators.
    """
    name = _INVALID_NAME_CHARS.sub("-", value.lower()).strip("-.")
    name = name[:max_length].rstrip("-.")
    if not name:
        name = hashlib.sha1(value.encode("utf-8")).hexdigest()[:16]
    return name


class PodAgent(Agent):
    """Agent running inside a Kubernetes pod"""

    def __init__(
        self,
        options: AgentOptions,
        core_api: client.CoreV1Api,
        namespace: str,
        pod_name: str,
    ):
        self.options = options
        self.core_api = core_api
        self.namespace = namespace
        self.pod_name = pod_name

    @property
    def session_id(self) -> str:
        return self.options.session_id

    async def start_session(self) -> None:
        """Verify the pod exists and has not failed"""
        pod = await asyncio.to_thread(
            self.core_api.read_namespaced_pod, self.pod_name, self.namespace
        )
        phase = pod.status.phase if pod.status else None
        if phase == "Failed":
            raise AgentExecutionError(
                f"Pod {self.pod_name} failed to start",
                session_id=self.session_id,
            )

    async def execute(self, input: str) -> str:
        """Run input as a shell command inside the pod"""
        try:
            return await asyncio.to_thread(
                stream,
                self.core_api.connect_get_namespaced_pod_exec,
                self.pod_name,
                self.namespace,
                container=AGENT_CONTAINER_NAME,
                command=["sh", "-c", input],
                stderr=True,
                stdin=False,
                stdout=True,
                tty=False,
            )
        except ApiException as e:
            raise AgentExecutionError(
                f"Exec in pod {self.pod_name} failed: {e.reason}",
                session_id=self.session_id,
            ) from e


class PodExecutor(TrackedExecutor):
    """
    Kubernetes-based executor.

    Creates pod kommon-agent-<session id> in the target namespace, which
    is created on initialize if missing. The registry maps session ID to
    pod name. Cluster resource metrics are not collected, so status
    carries an empty resource section.
    """

    executor_type = ExecutorType.POD

    def __init__(
        self,
        options: ExecutorOptions,
        agent_factory: Optional[AgentFactory] = None,
        core_api: Optional[client.CoreV1Api] = None,
    ):
        """
        Initialize executor.

        Args:
            options: Executor options (namespace, resources, kubeconfig)
            agent_factory: Builds agents (PodAgent if not given)
            core_api: Kubernetes CoreV1Api (loaded on initialize if not provided)
        """
        super().__init__(options, agent_factory=agent_factory)
        self.namespace = options.namespace or DEFAULT_NAMESPACE
        self.core_api = core_api

    @property
    def resources(self) -> ResourceRequirements:
        return self.options.resources or ResourceRequirements()

    def _load_api(self) -> client.CoreV1Api:
        """In-cluster config first, then kubeconfig"""
        configuration = client.Configuration()

        try:
            config.load_incluster_config(client_configuration=configuration)
        except ConfigException:
            kubeconfig = self.options.kubeconfig or os.environ.get("KUBECONFIG")
            if not kubeconfig:
                kubeconfig = os.path.join(os.path.expanduser("~"), ".kube", "config")

            try:
                config.load_kube_config(
                    config_file=kubeconfig,
                    client_configuration=configuration,
                )
            except (ConfigException, OSError) as e:
                raise InitializationError(
                    f"Failed to create kubernetes config: {e}",
                    executor_type=self.executor_type,
                ) from e

        return client.CoreV1Api(client.ApiClient(configuration))

    async def _prepare(self) -> None:
        """Ensure the target namespace exists"""
        if self.core_api is None:
            self.core_api = await asyncio.to_thread(self._load_api)

        try:
            await asyncio.to_thread(self.core_api.read_namespace, self.namespace)
            return
        except ApiException as e:
            if e.status != 404:
                raise InitializationError(
                    f"Failed to check namespace {self.namespace}: {e.reason}",
                    executor_type=self.executor_type,
                ) from e

        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=self.namespace))
        try:
            await asyncio.to_thread(self.core_api.create_namespace, body)
            logger.info(f"Created namespace: {self.namespace}")
        except ApiException as e:
            # Created concurrently
            if e.status != 409:
                raise InitializationError(
                    f"Failed to create namespace {self.namespace}: {e.reason}",
                    executor_type=self.executor_type,
                ) from e

    def _pod_name(self, session_id: str) -> str:
        return self._unit_name(sanitize_name(session_id))[:253]

    def _build_pod(self, options: AgentOptions) -> client.V1Pod:
        session_id = options.session_id

        limits: Dict[str, str] = {}
        if parse_cpu_quota(self.resources.cpu_limit):
            limits["cpu"] = self.resources.cpu_limit
        if parse_memory_limit(self.resources.memory_limit):
            limits["memory"] = self.resources.memory_limit

        container = client.V1Container(
            name=AGENT_CONTAINER_NAME,
            image=self.resources.image or DEFAULT_AGENT_IMAGE,
            env=[
                client.V1EnvVar(name=name, value=value)
                for name, value in options.environment().items()
            ],
            resources=client.V1ResourceRequirements(limits=limits) if limits else None,
        )

        return client.V1Pod(
            metadata=client.V1ObjectMeta(
                name=self._pod_name(session_id),
                labels={
                    "app": "kommon",
                    "component": "agent",
                    AGENT_LABEL: sanitize_name(session_id),
                },
                annotations={AGENT_LABEL: session_id},
            ),
            spec=client.V1PodSpec(
                restart_policy="Never",
                containers=[container],
            ),
        )

    async def _provision(self, options: AgentOptions) -> Any:
        pod = self._build_pod(options)
        return await run_to_completion(self._create_pod, pod, options.session_id)

    def _create_pod(self, pod: client.V1Pod, session_id: str) -> str:
        """Submit the agent pod (blocking)"""
        try:
            self.core_api.create_namespaced_pod(self.namespace, pod)
        except ApiException as e:
            raise ProvisionError(
                f"Failed to create agent pod: {e.reason}",
                session_id=session_id,
                executor_type=self.executor_type,
            ) from e

        logger.info(
            f"Created pod {pod.metadata.name} in {self.namespace} "
            f"for agent {session_id}"
        )
        return pod.metadata.name

    def _new_agent(self, options: AgentOptions, handle: Any) -> Agent:
        if self.agent_factory:
            return self.agent_factory(options)
        return PodAgent(options, self.core_api, self.namespace, handle)

    async def _teardown(self, session_id: str, handle: Optional[Any]) -> None:
        pod_name = handle or self._pod_name(session_id)

        try:
            await asyncio.to_thread(
                self.core_api.delete_namespaced_pod,
                pod_name,
                self.namespace,
                grace_period_seconds=self.options.stop_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                logger.warning(f"Pod {pod_name} already deleted")
                return
            raise TeardownError(
                f"Failed to delete agent pod {pod_name}: {e.reason}",
                session_id=session_id,
                executor_type=self.executor_type,
            ) from e

        logger.info(f"Deleted pod {pod_name} for agent {session_id}")

    async def _discover(self) -> Dict[str, Any]:
        pods = await asyncio.to_thread(
            self.core_api.list_namespaced_pod,
            self.namespace,
            label_selector=AGENT_LABEL,
        )

        discovered: Dict[str, Any] = {}
        for pod in pods.items:
            annotations = pod.metadata.annotations or {}
            labels = pod.metadata.labels or {}
            session_id = annotations.get(AGENT_LABEL) or labels.get(AGENT_LABEL)
            if session_id:
                discovered[session_id] = pod.metadata.name
        return discovered

    async def _release(self) -> None:
        if self.core_api is not None:
            await asyncio.to_thread(self.core_api.api_client.close)

    async def get_status(self) -> ExecutorStatus:
        """Readiness from a namespace read; resource metrics not collected"""
        active_agents = len(self._agents)

        if self.core_api is None:
            return ExecutorStatus(
                type=self.executor_type,
                is_ready=False,
                active_agents=active_agents,
            )

        try:
            await asyncio.to_thread(self.core_api.read_namespace, self.namespace)
        except Exception as e:
            logger.warning(f"Kubernetes API unavailable for status check: {e}")
            return ExecutorStatus(
                type=self.executor_type,
                is_ready=False,
                active_agents=active_agents,
            )

        return ExecutorStatus(
            type=self.executor_type,
            is_ready=True,
            active_agents=active_agents,
            resource_status=ResourceStatus(),
        )
