"""Short history of operator actions and incidents that resolved.

Pure functions over a list of entries, newest first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

MAX_ENTRIES = 5
RESOLVED_KEY = "%R"
RESOLVED_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class ActionLogEntry:
    key: str
    incident_id: str
    summary: str
    action: str
    timestamp: float


def add_entry(entries: list[ActionLogEntry], entry: ActionLogEntry) -> list[ActionLogEntry]:
    """Prepend ``entry``, dropping an identical (key, incident) entry, capped at MAX_ENTRIES."""
    kept = [e for e in entries if (e.key, e.incident_id) != (entry.key, entry.incident_id)]
    return [entry, *kept][:MAX_ENTRIES]


def record(entries, key: str, incidents: Iterable, action: str, now: float) -> list[ActionLogEntry]:
    for incident in incidents:
        summary = incident.title or incident.summary
        entries = add_entry(entries, ActionLogEntry(key, incident.id, summary, action, now))
    return entries


def record_resolved(entries, previous: Iterable, current: Iterable, now: float) -> list[ActionLogEntry]:
    """Log incidents present in ``previous`` but gone from ``current`` as resolved."""
    current_ids = {i.id for i in current}
    for incident in previous:
        if incident.id in current_ids:
            continue
        entries = add_entry(
            entries,
            ActionLogEntry(RESOLVED_KEY, incident.id, incident.title, "resolved", now),
        )
    return entries


def age_out(entries: list[ActionLogEntry], now: float) -> list[ActionLogEntry]:
    """Drop resolved entries older than RESOLVED_TTL_SECONDS."""
    return [
        e for e in entries
        if e.key != RESOLVED_KEY or now - e.timestamp < RESOLVED_TTL_SECONDS
    ]
