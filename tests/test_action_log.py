"""Tests for the recent-actions log."""

from srepd.tui import action_log
from srepd.tui import messages as m
from srepd.tui.action_log import MAX_ENTRIES, RESOLVED_KEY, RESOLVED_TTL_SECONDS, ActionLogEntry
from srepd.tui.update import update

from tests.harness.builders import make_incident


def _entry(key="a", incident_id="Q1", ts=0.0):
    return ActionLogEntry(key, incident_id, "summary", "acknowledge", ts)


class TestAddEntry:
    def test_newest_first(self):
        entries = action_log.add_entry([_entry(incident_id="Q1")], _entry(incident_id="Q2"))
        assert [e.incident_id for e in entries] == ["Q2", "Q1"]

    def test_capped(self):
        entries = []
        for n in range(MAX_ENTRIES + 3):
            entries = action_log.add_entry(entries, _entry(incident_id=f"Q{n}"))
        assert len(entries) == MAX_ENTRIES
        assert entries[0].incident_id == f"Q{MAX_ENTRIES + 2}"

    def test_same_key_and_incident_replaced(self):
        entries = action_log.add_entry([_entry(ts=1.0)], _entry(ts=2.0))
        assert [e.timestamp for e in entries] == [2.0]

    def test_different_key_kept(self):
        entries = action_log.add_entry([_entry("a")], _entry("^s"))
        assert [e.key for e in entries] == ["^s", "a"]


class TestRecord:
    def test_record_uses_title(self):
        entries = action_log.record([], "a", [make_incident()], "acknowledge", 5.0)
        assert entries == [ActionLogEntry("a", "Q123", "Cluster is on fire", "acknowledge", 5.0)]

    def test_record_resolved(self):
        previous = [make_incident("Q1"), make_incident("Q2")]
        entries = action_log.record_resolved([], previous, [make_incident("Q2")], 9.0)
        assert [(e.key, e.incident_id, e.action) for e in entries] == [(RESOLVED_KEY, "Q1", "resolved")]

    def test_nothing_resolved(self):
        assert action_log.record_resolved([], [make_incident()], [make_incident()], 0.0) == []


class TestAgeOut:
    def test_old_resolved_entries_dropped(self):
        entries = [_entry(RESOLVED_KEY, "Q1", 0.0), _entry(RESOLVED_KEY, "Q2", 100.0), _entry("a", "Q3", 0.0)]
        kept = action_log.age_out(entries, RESOLVED_TTL_SECONDS + 1)
        assert [e.incident_id for e in kept] == ["Q2", "Q3"]

    def test_tick_ages_out_through_reducer(self, state):
        state.action_log = [_entry(RESOLVED_KEY, "Q1", 0.0)]
        state, _ = update(state, m.Tick(RESOLVED_TTL_SECONDS))
        assert state.action_log == []
