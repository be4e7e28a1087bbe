"""Console state: the single mutable snapshot owned by the reducer.

// [LAW:one-source-of-truth] view_mode is derived from error + base_mode,
//   never stored twice.
// [LAW:single-enforcer] Only srepd.tui.update and srepd.tui.focus_modes
//   mutate State; the helpers below are their shared vocabulary.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, auto

from srepd.launcher import ClusterLauncher
from srepd.pd.config import PdConfig
from srepd.pd.models import Alert, Incident, Note
from srepd.tui.action_log import ActionLogEntry

logger = logging.getLogger(__name__)


class ViewMode(Enum):
    TABLE = auto()
    INCIDENT = auto()
    INPUT = auto()
    ERROR = auto()


@dataclass
class LoadFlags:
    """Which parts of the selected incident have completed their fetch."""

    detail: bool = False
    notes: bool = False
    alerts: bool = False

    def reset(self) -> None:
        self.detail = self.notes = self.alerts = False


@dataclass
class PendingWait:
    """Continuation parked until ``incident_id`` is fetched and selected.

    ``resume`` receives the populated incident and returns the command to run.
    """

    incident_id: str
    tag: str
    resume: Callable[[Incident], object]


@dataclass
class State:
    # Collaborators
    config: PdConfig | None = None
    editor: str = "vim"
    launcher: ClusterLauncher | None = None
    browser_command: list[str] = field(default_factory=list)

    # Mode
    base_mode: ViewMode = ViewMode.TABLE
    error: Exception | None = None

    # List
    incident_list: tuple[Incident, ...] = ()
    rows: tuple[Incident, ...] = ()
    cursor: int = 0
    team_mode: bool = False

    # Selection
    selected_incident: Incident | None = None
    selected_notes: tuple[Note, ...] = ()
    selected_alerts: tuple[Alert, ...] = ()
    loaded: LoadFlags = field(default_factory=LoadFlags)
    incident_content: str = ""

    # Dependency waits
    pending_waits: list[PendingWait] = field(default_factory=list)
    login_waiting: bool = False

    # Chrome
    status: str = ""
    show_help: bool = False
    show_action_log: bool = False
    auto_refresh: bool = True
    action_log: list[ActionLogEntry] = field(default_factory=list)
    scheduled_jobs: tuple = ()
    window_size: tuple[int, int] = (0, 0)
    now: float = 0.0
    last_refreshed: float | None = None

    @property
    def view_mode(self) -> ViewMode:
        return ViewMode.ERROR if self.error is not None else self.base_mode

    @property
    def viewing_incident(self) -> bool:
        return self.base_mode is ViewMode.INCIDENT

    @property
    def input_focused(self) -> bool:
        return self.base_mode is ViewMode.INPUT

    @property
    def incident_ready(self) -> bool:
        """Selected incident is the fully fetched record, not a placeholder."""
        return self.selected_incident is not None and self.loaded.detail


# ─── Shared mutations ─────────────────────────────────────────────────────────


def set_status(state: State, text: str) -> None:
    logger.info("status: %s", text)
    state.status = text


def set_error(state: State, error: Exception) -> None:
    logger.error("error: %s", error)
    state.error = error
    state.status = str(error)


def clear_selection(state: State) -> None:
    """Drop the selected incident, its notes/alerts and every load flag; leave detail view.

    Parked dependency waits belong to the cleared selection and are dropped.
    """
    if state.pending_waits:
        logger.debug(
            "dropping waiting action(s) for cleared selection: %s",
            [w.tag for w in state.pending_waits],
        )
        state.pending_waits = []
    state.selected_incident = None
    state.selected_notes = ()
    state.selected_alerts = ()
    state.loaded.reset()
    state.incident_content = ""
    state.login_waiting = False
    if state.base_mode is ViewMode.INCIDENT:
        state.base_mode = ViewMode.TABLE


def highlighted_incident_id(state: State) -> str:
    """Identifier of the highlighted table row, or "" when none is highlighted."""
    if not state.rows or not 0 <= state.cursor < len(state.rows):
        return ""
    return state.rows[state.cursor].id


def visible_rows(state: State) -> tuple[Incident, ...]:
    """Filter incident_list by team mode and ignored users."""
    if state.config is None:
        return state.incident_list
    ignored = state.config.ignored_user_ids
    user_id = state.config.current_user.id
    rows = []
    for incident in state.incident_list:
        assignees = incident.assignee_ids
        if assignees and assignees <= ignored:
            continue
        if not state.team_mode and user_id not in assignees:
            continue
        rows.append(incident)
    return tuple(rows)


def clamp_cursor(state: State) -> None:
    state.cursor = max(0, min(state.cursor, len(state.rows) - 1))
