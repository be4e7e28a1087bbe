"""Closed message catalog for the reducer.

// [LAW:one-source-of-truth] The class IS the type; there is no kind string field.
// [LAW:single-enforcer] ALL_MESSAGES is the catalog; the reducer's handler
//   table must cover it exactly (enforced by tests).

Result messages carry ``error``; a non-None error means the data fields
are empty. This module is STABLE and safe for `from` imports everywhere.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from srepd.pd.models import Alert, Incident, Note, User

if TYPE_CHECKING:
    from srepd.pd.config import PdConfig


@dataclass(frozen=True)
class Msg:
    """Base class for everything the reducer consumes."""


# A zero-argument unit of work that resolves to at most one message.
Thunk = Callable[[], "Msg | None"]


# ─── Runtime ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ErrMsg(Msg):
    error: Exception


@dataclass(frozen=True)
class SetStatus(Msg):
    text: str


@dataclass(frozen=True)
class WindowResized(Msg):
    width: int
    height: int


@dataclass(frozen=True)
class KeyPress(Msg):
    """Textual key name, e.g. ``"j"``, ``"G"``, ``"enter"``, ``"ctrl+s"``."""

    key: str


@dataclass(frozen=True)
class Tick(Msg):
    now: float


@dataclass(frozen=True)
class PollIncidents(Msg):
    pass


@dataclass(frozen=True)
class ConfigLoaded(Msg):
    config: "PdConfig | None"
    error: Exception | None = None


# ─── Fetch requests and results ───────────────────────────────────────────────


@dataclass(frozen=True)
class UpdateIncidentList(Msg):
    pass


@dataclass(frozen=True)
class UpdatedIncidentList(Msg):
    incidents: tuple[Incident, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True)
class GetIncident(Msg):
    incident_id: str


@dataclass(frozen=True)
class GotIncident(Msg):
    incident_id: str
    incident: Incident | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class GetIncidentNotes(Msg):
    incident_id: str


@dataclass(frozen=True)
class GotIncidentNotes(Msg):
    incident_id: str
    notes: tuple[Note, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True)
class GetIncidentAlerts(Msg):
    incident_id: str


@dataclass(frozen=True)
class GotIncidentAlerts(Msg):
    incident_id: str
    alerts: tuple[Alert, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True)
class RenderIncident(Msg):
    pass


@dataclass(frozen=True)
class ClearSelectedIncident(Msg):
    reason: str = ""


# ─── Dependency wait ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class WaitForSelectedIncidentThenDo(Msg):
    """Run ``action`` once ``incident_id`` is the selected, populated incident."""

    incident_id: str
    action: Thunk
    tag: str = ""


@dataclass(frozen=True)
class WaitForSelectedIncidentsThenAcknowledge(Msg):
    """Acknowledge ``incident_id`` once its fetch has populated the selection."""

    incident_id: str


# ─── Notes ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ParseTemplateForNote(Msg):
    pass


@dataclass(frozen=True)
class EditorFinished(Msg):
    path: Path | None
    error: Exception | None = None


@dataclass(frozen=True)
class AddedIncidentNote(Msg):
    incident_id: str
    note: Note | None = None
    error: Exception | None = None


# ─── Login and browser ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Login(Msg):
    pass


@dataclass(frozen=True)
class LoginFinished(Msg):
    cluster_id: str
    error: Exception | None = None


@dataclass(frozen=True)
class OpenBrowser(Msg):
    pass


@dataclass(frozen=True)
class BrowserFinished(Msg):
    url: str
    error: Exception | None = None


# ─── Mutations ────────────────────────────────────────────────────────────────
# ``incidents=None`` targets the selected incident.


@dataclass(frozen=True)
class AcknowledgeIncidents(Msg):
    incidents: tuple[Incident, ...] | None = None


@dataclass(frozen=True)
class AcknowledgedIncidents(Msg):
    incidents: tuple[Incident, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True)
class UnAcknowledgeIncidents(Msg):
    incidents: tuple[Incident, ...] | None = None


@dataclass(frozen=True)
class UnAcknowledgedIncidents(Msg):
    incidents: tuple[Incident, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True)
class ReassignIncidents(Msg):
    incidents: tuple[Incident, ...]
    users: tuple[User, ...]


@dataclass(frozen=True)
class ReassignedIncidents(Msg):
    incidents: tuple[Incident, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True)
class SilenceSelectedIncident(Msg):
    pass


@dataclass(frozen=True)
class SilenceIncidents(Msg):
    incidents: tuple[Incident, ...]


@dataclass(frozen=True)
class SilencedIncidents(Msg):
    incidents: tuple[Incident, ...] = ()
    error: Exception | None = None


ALL_MESSAGES: tuple[type[Msg], ...] = (
    ErrMsg,
    SetStatus,
    WindowResized,
    KeyPress,
    Tick,
    PollIncidents,
    ConfigLoaded,
    UpdateIncidentList,
    UpdatedIncidentList,
    GetIncident,
    GotIncident,
    GetIncidentNotes,
    GotIncidentNotes,
    GetIncidentAlerts,
    GotIncidentAlerts,
    RenderIncident,
    ClearSelectedIncident,
    WaitForSelectedIncidentThenDo,
    WaitForSelectedIncidentsThenAcknowledge,
    ParseTemplateForNote,
    EditorFinished,
    AddedIncidentNote,
    Login,
    LoginFinished,
    OpenBrowser,
    BrowserFinished,
    AcknowledgeIncidents,
    AcknowledgedIncidents,
    UnAcknowledgeIncidents,
    UnAcknowledgedIncidents,
    ReassignIncidents,
    ReassignedIncidents,
    SilenceSelectedIncident,
    SilenceIncidents,
    SilencedIncidents,
)
