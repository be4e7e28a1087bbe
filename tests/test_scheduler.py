"""Tests for periodic message jobs."""

from srepd.tui import messages as m
from srepd.tui.scheduler import DEFAULT_JOBS, POLL_INTERVAL_SECONDS, ScheduledJob, install


class _FakeTimers:
    def __init__(self):
        self.installed = []

    def set_interval(self, interval, callback, name=None):
        self.installed.append((interval, callback, name))
        return name


class TestInstall:
    def test_each_job_becomes_a_timer(self):
        timers = _FakeTimers()
        posted = []
        handles = install(DEFAULT_JOBS, timers.set_interval, posted.append)
        assert handles == ["poll-incidents", "tick"]
        assert [interval for interval, _, _ in timers.installed] == [POLL_INTERVAL_SECONDS, 1.0]

    def test_firing_posts_job_message(self):
        timers = _FakeTimers()
        posted = []
        install(DEFAULT_JOBS, timers.set_interval, posted.append)
        for _, callback, _ in timers.installed:
            callback()
        assert posted[0] == m.PollIncidents()
        assert isinstance(posted[1], m.Tick)
        assert posted[1].now > 0

    def test_callbacks_bind_their_own_job(self):
        timers = _FakeTimers()
        posted = []
        jobs = (
            ScheduledJob("a", lambda: m.SetStatus("a"), 1.0),
            ScheduledJob("b", lambda: m.SetStatus("b"), 2.0),
        )
        install(jobs, timers.set_interval, posted.append)
        timers.installed[0][1]()
        assert posted == [m.SetStatus("a")]

    def test_no_jobs(self):
        assert install((), _FakeTimers().set_interval, print) == []
