"""
Executor Providers

Concrete implementations of BaseExecutor for different backends.
"""

from .local import LocalExecutor
from .container import ContainerAgent, ContainerExecutor
from .pod import PodAgent, PodExecutor

__all__ = [
    "LocalExecutor",
    "ContainerAgent",
    "ContainerExecutor",
    "PodAgent",
    "PodExecutor",
]
