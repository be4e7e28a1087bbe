"""Pure rendering of console state to text.

No widget classes here; srepd.tui.app pushes these strings into widgets.

// [LAW:dataflow-not-control-flow] Load flags pick placeholder vs content;
//   the document layout is fixed.
"""

from __future__ import annotations

from typing import Iterable

from srepd.pd.models import Alert, Incident, Note
from srepd.tui.action_log import ActionLogEntry
from srepd.tui.input_modes import HELP_KEYS, key_label
from srepd.tui.model import LoadFlags, State, ViewMode

LOADING_DETAILS = "Loading incident details..."
LOADING_NOTES = "Loading notes..."
LOADING_ALERTS = "Loading alerts..."

TABLE_COLUMNS = ("", "Priority", "Service", "Summary")

_STATUS_GLYPHS = {
    "triggered": "🔥",
    "acknowledged": "✔",
    "resolved": "✓",
}


def _names(refs) -> str:
    return ", ".join(r.summary for r in refs) or "-"


def _notes_section(notes: Iterable[Note]) -> list[str]:
    lines = []
    for note in notes:
        for content_line in note.content.splitlines() or [""]:
            lines.append(f"> {content_line}")
        user = note.user.summary if note.user is not None else "unknown"
        lines += ["", f"- {user} @ {note.created_at}", ""]
    return lines or ["_none_", ""]


def _alerts_section(alerts: Iterable[Alert]) -> list[str]:
    lines = []
    for alert in alerts:
        lines += [f"### {alert.summary or alert.id}", ""]
        lines.append(f"- **ID**: {alert.id}")
        lines.append(f"- **Status**: {alert.status}")
        lines.append(f"- **Created**: {alert.created_at}")
        for key, value in alert.details.items():
            lines.append(f"- **{key}**: {value}")
        lines.append("")
    return lines


def render_incident_markdown(
    incident: Incident | None,
    notes: tuple[Note, ...],
    alerts: tuple[Alert, ...],
    loaded: LoadFlags,
) -> str:
    """Markdown document for the detail view."""
    if incident is None:
        return LOADING_DETAILS

    lines = [f"# {incident.id}", ""]
    title = f"**{incident.priority_name}** {incident.title}" if incident.priority_name else incident.title
    lines += [title, ""]
    if incident.html_url:
        lines += [incident.html_url, ""]

    if not loaded.detail:
        lines += [LOADING_DETAILS, ""]
    else:
        lines += [
            "## Summary",
            "",
            f"- **Service**: {incident.service_name}",
            f"- **Status**: {incident.status}",
            f"- **Priority**: {incident.priority_name or '-'}",
            f"- **Urgency**: {incident.urgency}",
            f"- **Created**: {incident.created_at}",
            "",
            "## Responders and Escalation",
            "",
        ]
        if incident.status == "acknowledged" and incident.acknowledgers:
            lines.append(f"- **Acknowledged by**: {_names(incident.acknowledgers)}")
        else:
            lines.append(f"- **Assigned to**: {_names(incident.assignees)}")
        policy = incident.escalation_policy.summary if incident.escalation_policy else "-"
        lines += [f"- **Escalation policy**: {policy}", ""]

    lines += ["## Notes", ""]
    lines += _notes_section(notes) if loaded.notes else [LOADING_NOTES, ""]

    if loaded.alerts:
        lines += [f"## Alerts ({len(alerts)})", ""]
        lines += _alerts_section(alerts)
    else:
        lines += ["## Alerts", "", LOADING_ALERTS, ""]
    return "\n".join(lines).rstrip() + "\n"


def render_state_incident(state: State) -> str:
    return render_incident_markdown(
        state.selected_incident, state.selected_notes, state.selected_alerts, state.loaded
    )


def list_status(visible: int, total: int) -> str:
    noun = "incident" if visible == 1 and total == 1 else "incidents"
    return f"showing {visible}/{total} {noun}..."


def status_line(state: State) -> str:
    watching = "Watching for updates..."
    if not state.auto_refresh:
        watching += " [PAUSED]"
    if state.last_refreshed is not None and state.now:
        watching += f" (refreshed {int(max(0, state.now - state.last_refreshed))}s ago)"
    return f"> {state.status}    {watching}" if state.status else f"> {watching}"


def assignee_line(state: State) -> str:
    if state.config is None:
        return "Connecting..."
    if state.team_mode:
        teams = ", ".join(t.summary for t in state.config.teams) or "Team"
        return f"Showing assigned to Team ({teams})"
    return f"Showing assigned to {state.config.current_user.name}"


def table_row(incident: Incident) -> tuple[str, str, str, str]:
    glyph = _STATUS_GLYPHS.get(incident.status, "?")
    return (glyph, incident.priority_name, incident.service_name, incident.title or incident.summary)


def help_lines(mode: ViewMode) -> list[str]:
    return [f"{key_label(keys)} {desc}" for keys, _, desc in HELP_KEYS[mode]]


def help_text(mode: ViewMode, full: bool) -> str:
    """Footer help: a short hint line, or every binding of the mode when ``full``."""
    lines = help_lines(mode)
    if full:
        return "\n".join(lines)
    if mode in (ViewMode.TABLE, ViewMode.INCIDENT):
        lines = lines[:6] + ["h help"]
    return " • ".join(lines)


def error_text(error: Exception) -> str:
    return f"Error: {error}\n\nPress esc to dismiss."


def action_log_rows(entries: Iterable[ActionLogEntry]) -> list[tuple[str, str, str, str]]:
    return [(e.key, e.incident_id, e.summary, e.action) for e in entries]
