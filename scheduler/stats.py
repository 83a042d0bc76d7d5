"""
Statistics tracker — running counters behind the wait-time estimates.

Counters only ever grow, except on an explicit administrative reset:
- total:      every admission attempt (immediate or queued)
- success:    builds released with succeeded=True
- failed:     builds released with succeeded=False (including watchdog kills)
- total_time: summed duration of SUCCESSFUL builds, in milliseconds

Failed builds are excluded from total_time on purpose: a build killed by the
watchdog after 45 minutes would otherwise drag the average far above what a
normal build costs.

Not thread-safe on its own. The BuildQueue calls it under its lock.
"""

import math

from models.job import QueueStats


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class StatsTracker:

    def __init__(self, stats: QueueStats | None = None, default_minutes: int = 3):
        self._stats = stats or QueueStats()
        self._default_minutes = default_minutes

    @property
    def stats(self) -> QueueStats:
        return self._stats

    def record_admission(self) -> None:
        self._stats.total += 1

    def record_completion(self, succeeded: bool, duration_ms: int) -> None:
        if succeeded:
            self._stats.success += 1
            self._stats.total_time += max(0, duration_ms)
        else:
            self._stats.failed += 1

    def reset(self) -> None:
        self._stats = QueueStats()

    def average_success_seconds(self) -> int:
        """Average successful build time in whole seconds (0 with no history)."""
        if self._stats.success == 0:
            return 0
        return _round_half_up(self._stats.total_time / self._stats.success / 1000)

    def average_success_duration_minutes(self) -> int:
        """Average successful build time in whole minutes, or the fallback."""
        if self._stats.success == 0:
            return self._default_minutes
        return _round_half_up(self._stats.total_time / self._stats.success / 1000 / 60)

    def estimated_wait_minutes(self, position: int, active: int, max_concurrent: int) -> int:
        """
        Minutes until the entry at `position` (1-based) should start.

        Free slots absorb the first entries immediately, so only the entries
        beyond them count as "ahead":

            ahead = max(0, position - free_slots)
            wait  = max(1, ceil(ahead * avg_minutes / max_concurrent))

        Never returns less than 1.
        """
        free_slots = max(0, max_concurrent - active)
        ahead = max(0, position - free_slots)
        avg_minutes = self.average_success_duration_minutes()
        return max(1, math.ceil(ahead * avg_minutes / max_concurrent))
