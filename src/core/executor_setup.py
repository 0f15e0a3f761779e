"""
Executor Setup

Build and initialize the configured executor from settings.
"""

import logging
from typing import Optional

from .config import Settings, get_settings
from .executor import (
    BaseExecutor,
    ExecutorOptions,
    ExecutorType,
    ResourceRequirements,
    create_executor,
    resolve_executor_type,
)

logger = logging.getLogger(__name__)


def build_executor_options(settings: Settings) -> ExecutorOptions:
    """Translate settings into executor options"""
    return ExecutorOptions(
        type=resolve_executor_type(settings.executor_type),
        config_dir=settings.executor_config_dir,
        namespace=settings.executor_namespace,
        resources=ResourceRequirements(
            image=settings.agent_image,
            cpu_limit=settings.agent_cpu_limit,
            memory_limit=settings.agent_memory_limit,
            disk_limit=settings.agent_disk_limit,
        ),
        stop_timeout=settings.executor_stop_timeout,
        reconcile=settings.executor_reconcile,
        kubeconfig=settings.kubeconfig,
    )


async def setup_executor(settings: Optional[Settings] = None, **kwargs) -> BaseExecutor:
    """
    Set up the executor based on configuration.

    Args:
        settings: Settings instance (uses default if None)
        **kwargs: Extra backend constructor arguments (e.g. agent_factory)

    Returns:
        Initialized executor

    Raises:
        UnsupportedBackendError: If executor_type is unknown
        InitializationError: If the backend is unreachable
    """
    global _executor

    settings = settings or get_settings()
    options = build_executor_options(settings)

    if options.type == ExecutorType.CONTAINER and settings.docker_host:
        kwargs.setdefault("docker_host", settings.docker_host)

    logger.info(f"Setting up {options.type.value} executor")
    executor = create_executor(options, **kwargs)
    await executor.initialize()

    _executor = executor
    logger.info("Executor setup complete")
    return executor


async def cleanup_executor() -> None:
    """Destroy remaining agents and release the executor on shutdown"""
    global _executor

    if _executor is None:
        return

    logger.info("Cleaning up executor")
    try:
        await _executor.close()
    finally:
        _executor = None
    logger.info("Executor cleanup complete")


# Global executor instance
_executor: Optional[BaseExecutor] = None


def get_executor() -> BaseExecutor:
    """Get the global executor (must be set up first)"""
    if _executor is None:
        raise RuntimeError("Executor not initialized. Call setup_executor() first.")

    return _executor
