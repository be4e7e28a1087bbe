"""Focus-mode dispatcher: routes KeyPress to one of four sub-reducers.

Precedence is Error > IncidentDetail > TextInput > Table. It falls out of
State.view_mode: a set error masks base_mode, and base_mode holds exactly
one of the other three.

// [LAW:one-source-of-truth] Keys resolve to action names via MODE_KEYMAP;
//   MODE_ACTIONS maps action names to handlers. Nothing else reads keys.
"""

from __future__ import annotations

from collections.abc import Callable

from srepd.pd.models import Incident
from srepd.tui import commands as c
from srepd.tui import messages as m
from srepd.tui.input_modes import MODE_KEYMAP
from srepd.tui.model import (
    State,
    ViewMode,
    clamp_cursor,
    clear_selection,
    highlighted_incident_id,
    set_status,
    visible_rows,
)
from srepd.tui.views import list_status, render_state_incident

Result = tuple[State, "c.Cmd | None"]

LOADING_GUARD_STATUS = "Loading incident details, please wait..."
NO_ROW_STATUS = "no incident highlighted"


def _quit(state: State) -> Result:
    return state, c.Quit()


def _toggle_help(state: State) -> Result:
    state.show_help = not state.show_help
    return state, None


# ─── Table ────────────────────────────────────────────────────────────────────


def _move(delta: int) -> Callable[[State], Result]:
    def _handler(state: State) -> Result:
        state.cursor += delta
        clamp_cursor(state)
        return state, None

    return _handler


def _top(state: State) -> Result:
    state.cursor = 0
    return state, None


def _bottom(state: State) -> Result:
    state.cursor = max(0, len(state.rows) - 1)
    return state, None


def _toggle_team(state: State) -> Result:
    state.team_mode = not state.team_mode
    state.rows = visible_rows(state)
    clamp_cursor(state)
    set_status(state, list_status(len(state.rows), len(state.incident_list)))
    return state, None


def _refresh_list(state: State) -> Result:
    clear_selection(state)
    return state, c.emit(m.UpdateIncidentList())


def _focus_input(state: State) -> Result:
    state.base_mode = ViewMode.INPUT
    return state, None


def _toggle_auto_refresh(state: State) -> Result:
    state.auto_refresh = not state.auto_refresh
    set_status(state, "auto-refresh " + ("enabled" if state.auto_refresh else "paused"))
    return state, None


def _toggle_action_log(state: State) -> Result:
    state.show_action_log = not state.show_action_log
    return state, None


def _fetch_then(follow_up: m.Msg, tag: str, view: bool = False) -> Callable[[State], Result]:
    """Act on the highlighted row: fetch it, wait until populated, then emit ``follow_up``.

    The row only carries an identifier, so any previous selection is
    dropped, along with actions still waiting on it, and an
    identifier-only placeholder stands in until the fetch lands.
    """

    def _handler(state: State) -> Result:
        incident_id = highlighted_incident_id(state)
        if not incident_id:
            set_status(state, NO_ROW_STATUS)
            return state, None
        clear_selection(state)
        state.selected_incident = Incident.placeholder(incident_id)
        if view:
            state.base_mode = ViewMode.INCIDENT
            state.incident_content = render_state_incident(state)
        wait: m.Msg
        if isinstance(follow_up, m.AcknowledgeIncidents):
            wait = m.WaitForSelectedIncidentsThenAcknowledge(incident_id)
        else:
            wait = m.WaitForSelectedIncidentThenDo(incident_id, c.emit(follow_up), tag)
        return state, c.sequence(c.emit(m.GetIncident(incident_id)), c.emit(wait))

    return _handler


# ─── Incident detail ──────────────────────────────────────────────────────────


def _back_to_table(state: State) -> Result:
    clear_selection(state)
    state.base_mode = ViewMode.TABLE
    return state, None


def _refresh_incident(state: State) -> Result:
    if state.selected_incident is None:
        return state, None
    return state, c.emit(m.GetIncident(state.selected_incident.id))


def _direct(msg: m.Msg) -> Callable[[State], Result]:
    def _handler(state: State) -> Result:
        return state, c.emit(msg)

    return _handler


def _guarded(action: Callable[[State], Result]) -> Callable[[State], Result]:
    """Withhold ``action`` until the selected incident's detail has loaded."""

    def _handler(state: State) -> Result:
        if not state.incident_ready:
            set_status(state, LOADING_GUARD_STATUS)
            return state, None
        return action(state)

    return _handler


def _login_selected(state: State) -> Result:
    incident_id = state.selected_incident.id
    wait = m.WaitForSelectedIncidentThenDo(incident_id, c.emit(m.Login()), "login")
    return state, c.sequence(c.emit(m.GetIncident(incident_id)), c.emit(wait))


# ─── Text input ───────────────────────────────────────────────────────────────


def _blur_input(state: State) -> Result:
    state.base_mode = ViewMode.TABLE
    return state, None


def _submit_input(state: State) -> Result:
    # Free-text commands are not implemented; enter is accepted and ignored.
    return state, None


# ─── Error ────────────────────────────────────────────────────────────────────


def _dismiss_error(state: State) -> Result:
    state.error = None
    state.status = ""
    return state, None


MODE_ACTIONS: dict[ViewMode, dict[str, Callable[[State], Result]]] = {
    ViewMode.TABLE: {
        "quit": _quit,
        "help": _toggle_help,
        "up": _move(-1),
        "down": _move(1),
        "top": _top,
        "bottom": _bottom,
        "team": _toggle_team,
        "refresh": _refresh_list,
        "input": _focus_input,
        "auto_refresh": _toggle_auto_refresh,
        "action_log": _toggle_action_log,
        "view": _fetch_then(m.RenderIncident(), "view", view=True),
        "silence": _fetch_then(m.SilenceSelectedIncident(), "silence"),
        "ack": _fetch_then(m.AcknowledgeIncidents(), "acknowledge"),
        "re_escalate": _fetch_then(m.UnAcknowledgeIncidents(), "re-escalate"),
        "note": _fetch_then(m.ParseTemplateForNote(), "note"),
        "login": _fetch_then(m.Login(), "login"),
        "open": _fetch_then(m.OpenBrowser(), "open"),
    },
    ViewMode.INCIDENT: {
        "quit": _quit,
        "help": _toggle_help,
        "back": _back_to_table,
        "refresh": _refresh_incident,
        "ack": _direct(m.AcknowledgeIncidents()),
        "silence": _direct(m.SilenceSelectedIncident()),
        "re_escalate": _guarded(_direct(m.UnAcknowledgeIncidents())),
        "note": _guarded(_direct(m.ParseTemplateForNote())),
        "login": _guarded(_login_selected),
        "open": _guarded(_direct(m.OpenBrowser())),
    },
    ViewMode.INPUT: {
        "quit": _quit,
        "back": _blur_input,
        "enter": _submit_input,
    },
    ViewMode.ERROR: {
        "quit": _quit,
        "back": _dismiss_error,
    },
}


def dispatch_key(state: State, key: str) -> Result:
    """Resolve ``key`` in the active mode and run its handler.

    Unmapped keys leave State untouched and return no command.
    """
    mode = state.view_mode
    action = MODE_KEYMAP[mode].get(key)
    if action is None:
        return state, None
    return MODE_ACTIONS[mode][action](state)


def handles_key(state: State, key: str) -> bool:
    return key in MODE_KEYMAP[state.view_mode]
