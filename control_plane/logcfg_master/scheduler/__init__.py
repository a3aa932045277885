"""Collector selection policies."""
from . import project_modulo  # noqa: F401 ensure registration
from .base import SchedulerPolicy, SchedulerRegistry, registry
from .collector import GENERIC_K8S_PREFIX, namespace_prefix, select_collector

__all__ = [
    "GENERIC_K8S_PREFIX",
    "SchedulerPolicy",
    "SchedulerRegistry",
    "namespace_prefix",
    "registry",
    "select_collector",
]
