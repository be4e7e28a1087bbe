"""Reducer: (State, Msg) -> (State, Cmd | None).

Deterministic and free of I/O. Every blocking effect is returned as a
command from srepd.tui.commands; its result comes back as another message.

// [LAW:single-enforcer] update() is the only entry that mutates State in
//   response to messages.
// [LAW:one-source-of-truth] MESSAGE_HANDLERS covers messages.ALL_MESSAGES
//   exactly; a missing handler is a test failure, not a silent no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from srepd.browser import UNSUPPORTED_MESSAGE
from srepd.pd.client import EmptyNoteError, PagerDutyError
from srepd.pd.models import Incident
from srepd.tui import action_log
from srepd.tui import commands as c
from srepd.tui import messages as m
from srepd.tui.focus_modes import dispatch_key
from srepd.tui.model import (
    PendingWait,
    State,
    ViewMode,
    clamp_cursor,
    clear_selection,
    set_error,
    set_status,
    visible_rows,
)
from srepd.tui.views import list_status, render_state_incident

logger = logging.getLogger(__name__)

Result = tuple[State, "c.Cmd | None"]

NOT_CONNECTED_STATUS = "not connected to PagerDuty yet"
NO_SELECTION_STATUS = "no incident selected"
EMPTY_NOTE_STATUS = "skipped empty note"


def _render_if_viewing(state: State) -> "c.Cmd | None":
    if state.view_mode is ViewMode.INCIDENT:
        return c.emit(m.RenderIncident())
    return None


def _targets(state: State, incidents: tuple[Incident, ...] | None) -> tuple[Incident, ...]:
    if incidents is not None:
        return incidents
    if state.selected_incident is None:
        return ()
    return (state.selected_incident,)


def _mutation(state: State, targets: tuple[Incident, ...], verb: str, producer) -> Result:
    """Guard then issue ``producer``, sequenced with clear-selection and a list refresh."""
    if not targets:
        set_status(state, f"{verb}: {NO_SELECTION_STATUS}")
        return state, None
    if state.config is None:
        set_status(state, NOT_CONNECTED_STATUS)
        return state, None
    set_status(state, "{} {}...".format(verb, ", ".join(i.id for i in targets)))
    return state, c.sequence(
        producer(state.config, targets),
        c.emit(m.ClearSelectedIncident(verb)),
        c.emit(m.UpdateIncidentList()),
    )


# ─── Runtime ──────────────────────────────────────────────────────────────────


def handle_error(state: State, msg: m.ErrMsg) -> Result:
    set_error(state, msg.error)
    return state, None


def handle_set_status(state: State, msg: m.SetStatus) -> Result:
    set_status(state, msg.text)
    return state, None


def handle_window_resized(state: State, msg: m.WindowResized) -> Result:
    state.window_size = (msg.width, msg.height)
    return state, None


def handle_key_press(state: State, msg: m.KeyPress) -> Result:
    return dispatch_key(state, msg.key)


def handle_tick(state: State, msg: m.Tick) -> Result:
    state.now = msg.now
    state.action_log = action_log.age_out(state.action_log, msg.now)
    return state, None


def handle_poll(state: State, msg: m.PollIncidents) -> Result:
    if not state.auto_refresh or state.config is None:
        return state, None
    return state, c.emit(m.UpdateIncidentList())


def handle_config_loaded(state: State, msg: m.ConfigLoaded) -> Result:
    if msg.error is not None:
        set_error(state, msg.error)
        return state, None
    state.config = msg.config
    return state, c.emit(m.UpdateIncidentList())


# ─── Fetch requests ───────────────────────────────────────────────────────────


def handle_update_incident_list(state: State, msg: m.UpdateIncidentList) -> Result:
    if state.config is None:
        set_status(state, NOT_CONNECTED_STATUS)
        return state, None
    set_status(state, "loading incidents...")
    return state, c.fetch_incident_list(state.config)


def handle_get_incident(state: State, msg: m.GetIncident) -> Result:
    if state.config is None:
        set_status(state, NOT_CONNECTED_STATUS)
        return state, None
    set_status(state, f"getting details for incident {msg.incident_id}...")
    return state, c.fetch_incident(state.config.client, msg.incident_id)


def handle_get_notes(state: State, msg: m.GetIncidentNotes) -> Result:
    if state.config is None:
        set_status(state, NOT_CONNECTED_STATUS)
        return state, None
    set_status(state, f"getting notes for incident {msg.incident_id}...")
    return state, c.fetch_notes(state.config.client, msg.incident_id)


def handle_get_alerts(state: State, msg: m.GetIncidentAlerts) -> Result:
    if state.config is None:
        set_status(state, NOT_CONNECTED_STATUS)
        return state, None
    set_status(state, f"getting alerts for incident {msg.incident_id}...")
    return state, c.fetch_alerts(state.config.client, msg.incident_id)


# ─── Fetch results ────────────────────────────────────────────────────────────


def handle_updated_incident_list(state: State, msg: m.UpdatedIncidentList) -> Result:
    if msg.error is not None:
        set_error(state, msg.error)
        return state, None
    previous = state.incident_list
    state.incident_list = msg.incidents
    state.rows = visible_rows(state)
    clamp_cursor(state)
    if state.last_refreshed is not None:
        state.action_log = action_log.record_resolved(
            state.action_log, previous, msg.incidents, state.now
        )
    state.last_refreshed = state.now
    set_status(state, list_status(len(state.rows), len(state.incident_list)))
    return state, None


def _take_waits(state: State, incident_id: str) -> list[PendingWait]:
    """Remove and return the continuations parked for ``incident_id``."""
    taken = [w for w in state.pending_waits if w.incident_id == incident_id]
    state.pending_waits = [w for w in state.pending_waits if w.incident_id != incident_id]
    return taken


def handle_got_incident(state: State, msg: m.GotIncident) -> Result:
    if msg.error is not None or msg.incident is None:
        dropped = _take_waits(state, msg.incident_id)
        if dropped:
            logger.warning(
                "dropping %d waiting action(s) for %s: %s",
                len(dropped), msg.incident_id, [w.tag for w in dropped],
            )
        set_error(state, msg.error or PagerDutyError(0, f"incident {msg.incident_id} not found"))
        return state, None

    selected = state.selected_incident
    if selected is None or selected.id != msg.incident_id:
        logger.debug("dropping incident %s: not the selected incident", msg.incident_id)
        return state, None
    incident = msg.incident
    state.selected_incident = incident
    state.loaded.detail = True
    set_status(state, f"got incident {incident.id}")

    # [LAW:dataflow-not-control-flow] Parked continuations are released exactly once.
    waits = _take_waits(state, msg.incident_id)
    if waits:
        logger.debug("releasing waiting action(s): %s", [w.tag for w in waits])

    return state, c.batch(
        c.emit(m.GetIncidentNotes(incident.id)),
        c.emit(m.GetIncidentAlerts(incident.id)),
        _render_if_viewing(state),
        *(w.resume(incident) for w in waits),
    )


def handle_got_notes(state: State, msg: m.GotIncidentNotes) -> Result:
    if msg.error is not None:
        set_error(state, msg.error)
        return state, None
    if state.selected_incident is None or state.selected_incident.id != msg.incident_id:
        logger.debug("dropping notes for incident %s: no longer selected", msg.incident_id)
        return state, None
    state.selected_notes = msg.notes
    state.loaded.notes = True
    return state, _render_if_viewing(state)


def handle_got_alerts(state: State, msg: m.GotIncidentAlerts) -> Result:
    if msg.error is not None:
        # a parked login has no alerts to act on
        state.login_waiting = False
        set_error(state, msg.error)
        return state, None
    if state.selected_incident is None or state.selected_incident.id != msg.incident_id:
        logger.debug("dropping alerts for incident %s: no longer selected", msg.incident_id)
        return state, None
    state.selected_alerts = msg.alerts
    state.loaded.alerts = True
    parked_login = state.login_waiting
    state.login_waiting = False
    return state, c.batch(_render_if_viewing(state), c.emit(m.Login()) if parked_login else None)


def handle_render_incident(state: State, msg: m.RenderIncident) -> Result:
    state.incident_content = render_state_incident(state)
    return state, None


def handle_clear_selected(state: State, msg: m.ClearSelectedIncident) -> Result:
    clear_selection(state)
    return state, None


# ─── Dependency wait ──────────────────────────────────────────────────────────


def _wait_for(state: State, incident_id: str, tag: str, resume) -> Result:
    selected = state.selected_incident
    if selected is None or selected.id != incident_id:
        logger.debug("dropping %r for incident %s: selection moved on", tag, incident_id)
        return state, None
    if state.incident_ready:
        return state, resume(selected)
    logger.debug("parking %r until incident %s is loaded", tag, incident_id)
    state.pending_waits.append(PendingWait(incident_id=incident_id, tag=tag, resume=resume))
    return state, None


def handle_wait_then_do(state: State, msg: m.WaitForSelectedIncidentThenDo) -> Result:
    return _wait_for(state, msg.incident_id, msg.tag, lambda incident: msg.action)


def handle_wait_then_ack(state: State, msg: m.WaitForSelectedIncidentsThenAcknowledge) -> Result:
    def _acknowledge(incident: Incident) -> "c.Cmd":
        return c.emit(m.AcknowledgeIncidents((incident,)))

    return _wait_for(state, msg.incident_id, "acknowledge", _acknowledge)


# ─── Notes ────────────────────────────────────────────────────────────────────


def handle_parse_template_for_note(state: State, msg: m.ParseTemplateForNote) -> Result:
    if state.selected_incident is None:
        set_status(state, f"add note: {NO_SELECTION_STATUS}")
        return state, None
    return state, c.open_editor(state.editor, state.selected_incident)


def handle_editor_finished(state: State, msg: m.EditorFinished) -> Result:
    if msg.error is not None:
        set_error(state, msg.error)
        return state, None
    if state.selected_incident is None or msg.path is None:
        set_status(state, f"add note: {NO_SELECTION_STATUS}")
        return state, None
    if state.config is None:
        set_status(state, NOT_CONNECTED_STATUS)
        return state, None
    set_status(state, f"adding note to incident {state.selected_incident.id}...")
    return state, c.add_note(state.config, state.selected_incident.id, msg.path)


def handle_added_note(state: State, msg: m.AddedIncidentNote) -> Result:
    if isinstance(msg.error, EmptyNoteError):
        set_status(state, EMPTY_NOTE_STATUS)
        return state, None
    if msg.error is not None:
        set_error(state, msg.error)
        return state, None
    set_status(state, f"added note to incident {msg.incident_id}")
    incident = state.selected_incident
    if incident is not None and incident.id == msg.incident_id:
        state.action_log = action_log.record(state.action_log, "n", [incident], "note", state.now)
    return state, c.emit(m.GetIncident(msg.incident_id))


# ─── Login and browser ────────────────────────────────────────────────────────


def handle_login(state: State, msg: m.Login) -> Result:
    if state.selected_incident is None:
        set_status(state, f"login: {NO_SELECTION_STATUS}")
        return state, None
    if not state.loaded.alerts:
        logger.debug("login waiting for alerts of %s", state.selected_incident.id)
        state.login_waiting = True
        return state, None
    if not state.selected_alerts:
        set_status(state, f"login: no alerts found for incident {state.selected_incident.id}")
        return state, None
    # First alert wins when alerts point at different clusters.
    cluster_id = state.selected_alerts[0].cluster_id
    if not cluster_id:
        set_status(state, "login: first alert has no cluster_id")
        return state, None
    if state.launcher is None:
        set_status(state, "login: cluster launcher is not configured")
        return state, None
    set_status(state, f"logging into cluster {cluster_id}...")
    return state, c.login(state.launcher, cluster_id)


def handle_login_finished(state: State, msg: m.LoginFinished) -> Result:
    if msg.error is not None:
        set_error(state, msg.error)
        return state, None
    set_status(state, f"launched login for cluster {msg.cluster_id}")
    return state, None


def handle_open_browser(state: State, msg: m.OpenBrowser) -> Result:
    if not state.browser_command:
        set_error(state, RuntimeError(UNSUPPORTED_MESSAGE))
        return state, None
    if state.selected_incident is None:
        set_status(state, f"open: {NO_SELECTION_STATUS}")
        return state, None
    url = state.selected_incident.html_url
    if not url:
        set_status(state, f"open: incident {state.selected_incident.id} has no URL")
        return state, None
    set_status(state, f"opening {url}...")
    return state, c.open_browser(state.browser_command, url)


def handle_browser_finished(state: State, msg: m.BrowserFinished) -> Result:
    if msg.error is not None:
        set_error(state, msg.error)
        return state, None
    set_status(state, f"opened {msg.url}")
    return state, None


# ─── Mutations ────────────────────────────────────────────────────────────────


def handle_acknowledge(state: State, msg: m.AcknowledgeIncidents) -> Result:
    return _mutation(state, _targets(state, msg.incidents), "acknowledging", c.acknowledge)


def handle_un_acknowledge(state: State, msg: m.UnAcknowledgeIncidents) -> Result:
    return _mutation(state, _targets(state, msg.incidents), "re-escalating", c.re_escalate)


def handle_reassign(state: State, msg: m.ReassignIncidents) -> Result:
    if not msg.users:
        set_status(state, "reassign: no users given")
        return state, None

    def _producer(config, targets):
        return c.reassign(config, targets, msg.users)

    return _mutation(state, msg.incidents, "reassigning", _producer)


def handle_silence_selected(state: State, msg: m.SilenceSelectedIncident) -> Result:
    return _mutation(state, _targets(state, None), "silencing", c.silence)


def handle_silence(state: State, msg: m.SilenceIncidents) -> Result:
    return _mutation(state, msg.incidents, "silencing", c.silence)


def _mutation_result(key: str, action: str, done: str) -> Callable[[State, m.Msg], Result]:
    def _handler(state: State, msg) -> Result:
        if msg.error is not None:
            set_error(state, msg.error)
            return state, None
        ids = ", ".join(i.id for i in msg.incidents)
        set_status(state, f"{done} {ids}")
        state.action_log = action_log.record(state.action_log, key, msg.incidents, action, state.now)
        return state, None

    return _handler


MESSAGE_HANDLERS: dict[type[m.Msg], Callable[[State, m.Msg], Result]] = {
    m.ErrMsg: handle_error,
    m.SetStatus: handle_set_status,
    m.WindowResized: handle_window_resized,
    m.KeyPress: handle_key_press,
    m.Tick: handle_tick,
    m.PollIncidents: handle_poll,
    m.ConfigLoaded: handle_config_loaded,
    m.UpdateIncidentList: handle_update_incident_list,
    m.UpdatedIncidentList: handle_updated_incident_list,
    m.GetIncident: handle_get_incident,
    m.GotIncident: handle_got_incident,
    m.GetIncidentNotes: handle_get_notes,
    m.GotIncidentNotes: handle_got_notes,
    m.GetIncidentAlerts: handle_get_alerts,
    m.GotIncidentAlerts: handle_got_alerts,
    m.RenderIncident: handle_render_incident,
    m.ClearSelectedIncident: handle_clear_selected,
    m.WaitForSelectedIncidentThenDo: handle_wait_then_do,
    m.WaitForSelectedIncidentsThenAcknowledge: handle_wait_then_ack,
    m.ParseTemplateForNote: handle_parse_template_for_note,
    m.EditorFinished: handle_editor_finished,
    m.AddedIncidentNote: handle_added_note,
    m.Login: handle_login,
    m.LoginFinished: handle_login_finished,
    m.OpenBrowser: handle_open_browser,
    m.BrowserFinished: handle_browser_finished,
    m.AcknowledgeIncidents: handle_acknowledge,
    m.AcknowledgedIncidents: _mutation_result("a", "acknowledge", "acknowledged"),
    m.UnAcknowledgeIncidents: handle_un_acknowledge,
    m.UnAcknowledgedIncidents: _mutation_result("^e", "re-escalate", "re-escalated"),
    m.ReassignIncidents: handle_reassign,
    m.ReassignedIncidents: _mutation_result("r", "reassign", "reassigned"),
    m.SilenceSelectedIncident: handle_silence_selected,
    m.SilenceIncidents: handle_silence,
    m.SilencedIncidents: _mutation_result("^s", "silence", "silenced"),
}


def update(state: State, msg: m.Msg) -> Result:
    handler = MESSAGE_HANDLERS.get(type(msg))
    if handler is None:
        raise TypeError(f"no handler for message {type(msg).__name__}")
    return handler(state, msg)
