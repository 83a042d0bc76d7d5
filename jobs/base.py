"""
Abstract base class for build handlers.

The build queue never runs builds itself. When it promotes a request it calls
on_start, which the worker pool routes to the handler registered for the
request's JobKind. Each handler implements this interface.

Same Strategy pattern as the state stores:
- AbstractJobHandler = interface
- SimulatedBuildJob (and any real toolchain integration) = implementations
- registry.py = lookup by JobKind

To plug in a real build toolchain:
1. Create a class that inherits AbstractJobHandler
2. Implement run() and kind, calling heartbeat() on every progress event
3. register_handler(kind, handler) at startup
"""

from abc import ABC, abstractmethod
from typing import Callable

from models.enums import JobKind

Heartbeat = Callable[[], None]


class AbstractJobHandler(ABC):

    @abstractmethod
    def run(self, payload: dict, heartbeat: Heartbeat) -> dict:
        """
        Execute one build.

        Args:
            payload:   the opaque request payload stored by the queue.
            heartbeat: call this on progress; builds that stay silent longer
                       than the inactivity budget are killed by the watchdog.

        Returns:
            dict describing the artifact (logged, not stored).

        Raises:
            Any exception → the build is released as failed.
        """
        ...

    @property
    @abstractmethod
    def kind(self) -> JobKind:
        """The JobKind this handler builds."""
        ...
