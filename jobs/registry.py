"""
Build handler registry — maps JobKind to handler instances.

When the worker pool receives an on_start call it knows the JobKind
("url" or "zip") but needs the handler that actually builds it.

Defaults to SimulatedBuildJob for every kind; a real toolchain integration
replaces them with register_handler() at startup.
"""

from jobs.base import AbstractJobHandler
from jobs.simulated import SimulatedBuildJob
from models.enums import JobKind

# Each handler is instantiated once and reused (they're stateless)
_REGISTRY: dict[JobKind, AbstractJobHandler] = {}


def _register_defaults() -> None:
    for kind in JobKind:
        _REGISTRY[kind] = SimulatedBuildJob(kind)


_register_defaults()


def register_handler(kind: JobKind | str, handler: AbstractJobHandler) -> None:
    _REGISTRY[JobKind(kind)] = handler


def get_job_handler(kind: JobKind | str) -> AbstractJobHandler:
    """Look up a handler by kind. Raises ValueError if unknown."""
    try:
        handler = _REGISTRY.get(JobKind(kind))
    except ValueError:
        handler = None
    if handler is None:
        raise ValueError(
            f"Unknown job kind: '{kind}'. Available: {[k.value for k in _REGISTRY]}"
        )
    return handler
