"""
Executor Factory

Selects and builds the executor backend for a configuration tag.
"""

import logging
from typing import Dict, Type

from .exceptions import UnsupportedBackendError
from .interface import BaseExecutor, ExecutorType
from .models import ExecutorOptions
from .providers import ContainerExecutor, LocalExecutor, PodExecutor

logger = logging.getLogger(__name__)

EXECUTOR_CLASSES: Dict[ExecutorType, Type[BaseExecutor]] = {
    ExecutorType.LOCAL: LocalExecutor,
    ExecutorType.CONTAINER: ContainerExecutor,
    ExecutorType.POD: PodExecutor,
}


def resolve_executor_type(backend) -> ExecutorType:
    """
    Parse a backend tag.

    Raises:
        UnsupportedBackendError: If the tag is unknown
    """
    try:
        return ExecutorType(backend)
    except ValueError:
        raise UnsupportedBackendError(str(backend)) from None


def create_executor(options: ExecutorOptions, **kwargs) -> BaseExecutor:
    """
    Create the executor for options.type.

    Args:
        options: Executor options
        **kwargs: Backend-specific constructor arguments
            (agent_factory, docker_client, docker_host, core_api)

    Returns:
        Uninitialized executor; call initialize() before use

    Raises:
        UnsupportedBackendError: If no backend matches options.type
    """
    executor_type = resolve_executor_type(options.type)
    executor_class = EXECUTOR_CLASSES.get(executor_type)
    if executor_class is None:
        raise UnsupportedBackendError(executor_type.value)

    logger.info(f"Creating {executor_type.value} executor")
    return executor_class(options, **kwargs)
