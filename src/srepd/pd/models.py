"""Remote data types for the PagerDuty REST API.

Frozen dataclasses built from API JSON. Sequences are tuples so a fetched
value can be handed to the reducer and to worker threads without copying.

// [LAW:one-source-of-truth] Field extraction from API payloads lives here only.

This module is a STABLE BOUNDARY.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _ref(raw: dict | None) -> "Reference | None":
    if not raw:
        return None
    return Reference.from_api(raw)


def _refs(raw: list | None, key: str | None = None) -> tuple["Reference", ...]:
    # Assignments and acknowledgements wrap the user reference in a container dict.
    items = raw or []
    if key is not None:
        items = [item.get(key) for item in items]
    return tuple(Reference.from_api(item) for item in items if item)


@dataclass(frozen=True)
class Reference:
    """APIObject-style reference: id plus a human-readable summary."""

    id: str
    summary: str = ""
    type: str = ""
    html_url: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "Reference":
        return cls(
            id=str(raw.get("id", "")),
            summary=str(raw.get("summary") or raw.get("name") or ""),
            type=str(raw.get("type", "")),
            html_url=str(raw.get("html_url") or ""),
        )

    def to_api(self, type_: str | None = None) -> dict:
        return {"id": self.id, "type": type_ or self.type}


@dataclass(frozen=True)
class User:
    id: str
    name: str = ""
    email: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "User":
        return cls(
            id=str(raw.get("id", "")),
            name=str(raw.get("name") or raw.get("summary") or ""),
            email=str(raw.get("email") or ""),
        )

    def as_reference(self) -> Reference:
        return Reference(id=self.id, summary=self.name, type="user_reference")


@dataclass(frozen=True)
class Incident:
    """A unit of on-call work. Only ``id`` is guaranteed to be populated."""

    id: str
    title: str = ""
    summary: str = ""
    status: str = ""
    urgency: str = ""
    html_url: str = ""
    created_at: str = ""
    service: Reference | None = None
    escalation_policy: Reference | None = None
    priority: Reference | None = None
    assignees: tuple[Reference, ...] = ()
    acknowledgers: tuple[Reference, ...] = ()
    teams: tuple[Reference, ...] = ()

    @classmethod
    def from_api(cls, raw: dict) -> "Incident":
        return cls(
            id=str(raw.get("id", "")),
            title=str(raw.get("title") or ""),
            summary=str(raw.get("summary") or ""),
            status=str(raw.get("status") or ""),
            urgency=str(raw.get("urgency") or ""),
            html_url=str(raw.get("html_url") or ""),
            created_at=str(raw.get("created_at") or ""),
            service=_ref(raw.get("service")),
            escalation_policy=_ref(raw.get("escalation_policy")),
            priority=_ref(raw.get("priority")),
            assignees=_refs(raw.get("assignments"), "assignee"),
            acknowledgers=_refs(raw.get("acknowledgements"), "acknowledger"),
            teams=_refs(raw.get("teams")),
        )

    @classmethod
    def placeholder(cls, incident_id: str) -> "Incident":
        """Identifier-only incident held while the full record is fetched."""
        return cls(id=incident_id, title="Loading incident details...")

    @property
    def assignee_ids(self) -> frozenset[str]:
        return frozenset(ref.id for ref in self.assignees)

    @property
    def priority_name(self) -> str:
        return self.priority.summary if self.priority is not None else ""

    @property
    def service_name(self) -> str:
        return self.service.summary if self.service is not None else ""


@dataclass(frozen=True)
class Note:
    id: str
    content: str
    user: Reference | None = None
    created_at: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "Note":
        return cls(
            id=str(raw.get("id", "")),
            content=str(raw.get("content") or ""),
            user=_ref(raw.get("user")),
            created_at=str(raw.get("created_at") or ""),
        )


@dataclass(frozen=True)
class Alert:
    """Lower-level event attached to an incident.

    ``details`` is the ``body.details`` object of the alert, which carries
    structured fields such as ``cluster_id``.
    """

    id: str
    summary: str = ""
    status: str = ""
    created_at: str = ""
    html_url: str = ""
    service: Reference | None = None
    details: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @classmethod
    def from_api(cls, raw: dict) -> "Alert":
        body = raw.get("body") or {}
        details = body.get("details") if isinstance(body, dict) else None
        return cls(
            id=str(raw.get("id", "")),
            summary=str(raw.get("summary") or ""),
            status=str(raw.get("status") or ""),
            created_at=str(raw.get("created_at") or ""),
            html_url=str(raw.get("html_url") or ""),
            service=_ref(raw.get("service")),
            details=dict(details) if isinstance(details, dict) else {},
        )

    @property
    def cluster_id(self) -> str:
        return str(self.details.get("cluster_id") or "")
