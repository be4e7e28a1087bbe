"""Periodic message injection.

Jobs are data: each pairs a message factory with an interval. The runtime
installs every job as a timer and posts the factory's message into the
reducer's queue when it fires.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from srepd.tui import messages as m

POLL_INTERVAL_SECONDS = 15.0
TICK_INTERVAL_SECONDS = 1.0


@dataclass(frozen=True)
class ScheduledJob:
    name: str
    factory: Callable[[], m.Msg]
    interval: float


def _tick() -> m.Msg:
    return m.Tick(time.time())


DEFAULT_JOBS: tuple[ScheduledJob, ...] = (
    ScheduledJob("poll-incidents", m.PollIncidents, POLL_INTERVAL_SECONDS),
    ScheduledJob("tick", _tick, TICK_INTERVAL_SECONDS),
)


def install(jobs, set_interval: Callable, post: Callable[[m.Msg], object]) -> list:
    """Start each job with ``set_interval(interval, callback)``; return the timers."""
    timers = []
    for job in jobs:
        def _fire(job: ScheduledJob = job) -> None:
            post(job.factory())

        timers.append(set_interval(job.interval, _fire, name=job.name))
    return timers
