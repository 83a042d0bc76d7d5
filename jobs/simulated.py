"""
Simulated build — stands in for the real toolchain during development.

The real URL and ZIP builders shell out to a compiler and live outside this
project. This handler has the same shape so the whole queue → executor →
release loop can run end to end without one.

Example payloads:
    {"duration": 3.0}                          → 3 second build, always succeeds
    {"duration": 1.0, "fail_probability": 0.5} → fails half the time
    {"duration": 6.0, "steps": 6}              → heartbeats once per second
"""

import random
import time

from jobs.base import AbstractJobHandler, Heartbeat
from models.enums import JobKind


class SimulatedBuildJob(AbstractJobHandler):

    def __init__(self, kind: JobKind):
        self._kind = kind

    def run(self, payload: dict, heartbeat: Heartbeat) -> dict:
        duration = float(payload.get("duration", 1.0))
        steps = max(1, int(payload.get("steps", 1)))
        fail_probability = float(payload.get("fail_probability", 0.0))

        # Fail before doing any work (no point sleeping just to fail)
        if random.random() < fail_probability:
            raise RuntimeError(
                f"Simulated build failure (fail_probability={fail_probability})"
            )

        for _ in range(steps):
            time.sleep(duration / steps)
            heartbeat()

        return {
            "kind": self._kind.value,
            "built_for": duration,
            "artifact": f"{payload.get('app_name', 'app')}.apk",
        }

    @property
    def kind(self) -> JobKind:
        return self._kind
