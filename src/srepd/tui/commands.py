"""Command producers and combinators.

A command is a zero-argument thunk that performs one unit of blocking
work and resolves to at most one message, or one of the combinators
below that the runtime knows how to schedule.

// [LAW:single-enforcer] Producers are the only place remote calls, editor
//   and process launches happen. They receive values, never State.
// [LAW:dataflow-not-control-flow] Failures become the error field of the
//   result message; nothing is raised back into the reducer.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import srepd.browser
import srepd.editor
import srepd.launcher
from srepd.launcher import ClusterLauncher, CommandError
from srepd.pd.client import ClientProtocol, PagerDutyError
from srepd.pd.config import PdConfig
from srepd.pd.models import Incident, User
from srepd.tui import messages as m

logger = logging.getLogger(__name__)

# Expected failure types of blocking work. Anything else is a bug and
# surfaces through the runtime's exception handler.
_WORK_ERRORS = (PagerDutyError, CommandError, OSError)


# ─── Combinators ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Batch:
    """Run commands independently; no completion order."""

    commands: tuple["Cmd", ...]


@dataclass(frozen=True)
class Sequence:
    """Run commands one after another; each starts after the previous posted its message."""

    commands: tuple["Cmd", ...]


@dataclass(frozen=True)
class ExecProcess:
    """Suspend the UI and run an interactive process in the foreground.

    ``prepare`` returns the argv to run; ``on_exit`` maps the outcome
    (None or the failure) to the message fed back to the reducer.
    """

    prepare: Callable[[], list[str]]
    on_exit: Callable[[Exception | None], m.Msg]


@dataclass(frozen=True)
class Quit:
    pass


Cmd = Union[m.Thunk, Batch, Sequence, ExecProcess, Quit]


def batch(*commands: "Cmd | None") -> "Cmd | None":
    cmds = tuple(c for c in commands if c is not None)
    if not cmds:
        return None
    return cmds[0] if len(cmds) == 1 else Batch(cmds)


def sequence(*commands: "Cmd | None") -> "Cmd | None":
    cmds = tuple(c for c in commands if c is not None)
    if not cmds:
        return None
    return cmds[0] if len(cmds) == 1 else Sequence(cmds)


def emit(msg: m.Msg) -> m.Thunk:
    """Command that resolves immediately to ``msg``."""

    def _emit() -> m.Msg:
        return msg

    _emit.__qualname__ = f"emit({type(msg).__name__})"
    return _emit


def flatten(cmd: "Cmd | None") -> list["Cmd"]:
    """Leaf commands of ``cmd`` in issue order (Batch/Sequence unwrapped)."""
    if cmd is None:
        return []
    if isinstance(cmd, (Batch, Sequence)):
        return [leaf for c in cmd.commands for leaf in flatten(c)]
    return [cmd]


# ─── Startup ──────────────────────────────────────────────────────────────────


def load_config(client: ClientProtocol, settings) -> m.Thunk:
    def _load() -> m.Msg:
        try:
            config = PdConfig.load(
                client,
                teams=settings.teams,
                escalation_policies=settings.service_escalation_policies,
                ignored_users=settings.ignoredusers,
            )
        except _WORK_ERRORS as e:
            return m.ConfigLoaded(None, e)
        return m.ConfigLoaded(config)

    return _load


# ─── Fetches ──────────────────────────────────────────────────────────────────


def fetch_incident_list(config: PdConfig) -> m.Thunk:
    def _fetch() -> m.Msg:
        try:
            incidents = config.client.list_incidents(
                team_ids=config.team_ids, statuses=config.statuses
            )
        except _WORK_ERRORS as e:
            return m.UpdatedIncidentList(error=e)
        return m.UpdatedIncidentList(tuple(incidents))

    return _fetch


def fetch_incident(client: ClientProtocol, incident_id: str) -> m.Thunk:
    def _fetch() -> m.Msg:
        try:
            return m.GotIncident(incident_id, client.get_incident(incident_id))
        except _WORK_ERRORS as e:
            return m.GotIncident(incident_id, error=e)

    return _fetch


def fetch_notes(client: ClientProtocol, incident_id: str) -> m.Thunk:
    def _fetch() -> m.Msg:
        try:
            notes = client.list_incident_notes(incident_id)
        except _WORK_ERRORS as e:
            return m.GotIncidentNotes(incident_id, error=e)
        return m.GotIncidentNotes(incident_id, tuple(notes))

    return _fetch


def fetch_alerts(client: ClientProtocol, incident_id: str) -> m.Thunk:
    def _fetch() -> m.Msg:
        try:
            alerts = client.list_incident_alerts(incident_id)
        except _WORK_ERRORS as e:
            return m.GotIncidentAlerts(incident_id, error=e)
        return m.GotIncidentAlerts(incident_id, tuple(alerts))

    return _fetch


# ─── Notes ────────────────────────────────────────────────────────────────────


class _NoteSession:
    """Temp file lifecycle for one editor run."""

    __slots__ = ("editor", "incident", "path")

    def __init__(self, editor: str, incident: Incident):
        self.editor = editor
        self.incident = incident
        self.path: Path | None = None

    def prepare(self) -> list[str]:
        self.path = srepd.editor.write_note_file(self.incident)
        return srepd.editor.editor_argv(self.editor, self.path)

    def finish(self, error: Exception | None) -> m.Msg:
        return m.EditorFinished(self.path, error)


def open_editor(editor: str, incident: Incident) -> ExecProcess:
    session = _NoteSession(editor, incident)
    return ExecProcess(prepare=session.prepare, on_exit=session.finish)


def add_note(config: PdConfig, incident_id: str, path: Path) -> m.Thunk:
    def _add() -> m.Msg:
        try:
            content = srepd.editor.read_note(path)
            note = config.client.add_note(incident_id, config.current_user, content)
        except _WORK_ERRORS as e:
            return m.AddedIncidentNote(incident_id, error=e)
        finally:
            path.unlink(missing_ok=True)
        return m.AddedIncidentNote(incident_id, note)

    return _add


# ─── Processes ────────────────────────────────────────────────────────────────


def login(launcher: ClusterLauncher, cluster_id: str) -> m.Thunk:
    def _login() -> m.Msg:
        try:
            srepd.launcher.run_command(launcher.build_login_command(cluster_id))
        except _WORK_ERRORS as e:
            return m.LoginFinished(cluster_id, e)
        return m.LoginFinished(cluster_id)

    return _login


def open_browser(open_command: list[str], url: str) -> m.Thunk:
    def _open() -> m.Msg:
        try:
            srepd.launcher.run_command(srepd.browser.open_url_argv(open_command, url))
        except _WORK_ERRORS as e:
            return m.BrowserFinished(url, e)
        return m.BrowserFinished(url)

    return _open


# ─── Mutations ────────────────────────────────────────────────────────────────


def acknowledge(config: PdConfig, incidents: tuple[Incident, ...]) -> m.Thunk:
    def _ack() -> m.Msg:
        try:
            done = config.client.acknowledge_incidents(incidents, config.current_user)
        except _WORK_ERRORS as e:
            return m.AcknowledgedIncidents(error=e)
        return m.AcknowledgedIncidents(tuple(done) or incidents)

    return _ack


def re_escalate(config: PdConfig, incidents: tuple[Incident, ...]) -> m.Thunk:
    """Re-escalate each incident to its service policy (or DEFAULT), level 1."""

    def _re_escalate() -> m.Msg:
        by_policy: dict[str, list[Incident]] = defaultdict(list)
        for incident in incidents:
            policy = config.policy_for(incident)
            if policy is None:
                return m.UnAcknowledgedIncidents(
                    error=PagerDutyError(0, f"no escalation policy for incident {incident.id}")
                )
            by_policy[policy.id].append(incident)
        done: list[Incident] = []
        try:
            for policy_id, group in by_policy.items():
                done += config.client.re_escalate_incidents(group, config.current_user, policy_id, 1)
        except _WORK_ERRORS as e:
            return m.UnAcknowledgedIncidents(error=e)
        return m.UnAcknowledgedIncidents(tuple(done) or incidents)

    return _re_escalate


def reassign(config: PdConfig, incidents: tuple[Incident, ...], users: tuple[User, ...]) -> m.Thunk:
    def _reassign() -> m.Msg:
        try:
            done = config.client.reassign_incidents(incidents, config.current_user, users)
        except _WORK_ERRORS as e:
            return m.ReassignedIncidents(error=e)
        return m.ReassignedIncidents(tuple(done) or incidents)

    return _reassign


def silence(config: PdConfig, incidents: tuple[Incident, ...]) -> m.Thunk:
    def _silence() -> m.Msg:
        policy = config.silent_policy
        if policy is None:
            return m.SilencedIncidents(error=PagerDutyError(0, "no SILENT_DEFAULT escalation policy"))
        try:
            done = config.client.silence_incidents(incidents, config.current_user, policy.id)
        except _WORK_ERRORS as e:
            return m.SilencedIncidents(error=e)
        return m.SilencedIncidents(tuple(done) or incidents)

    return _silence
