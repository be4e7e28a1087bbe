"""Textual runtime for the incident console.

// [LAW:locality-or-seam] Thin coordinator: State lives in srepd.tui.model,
//   transitions in srepd.tui.update, text in srepd.tui.views. This module
//   only moves messages in, runs commands and mirrors State into widgets.
// [LAW:single-enforcer] feed() is the sole path into the reducer; every
//   message (keys, timers, worker results) arrives through it on the UI thread.
"""

from __future__ import annotations

import logging
import subprocess
import traceback
from functools import partial

from rich.text import Text
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.containers import VerticalScroll
from textual.css.query import NoMatches
from textual.message import Message
from textual.widgets import DataTable, Header, Input, Markdown, Static

import srepd.tui.focus_modes
import srepd.tui.scheduler
import srepd.tui.update
import srepd.tui.views
from srepd.launcher import CommandError
from srepd.tui import commands as c
from srepd.tui import messages as m
from srepd.tui.model import State, ViewMode

logger = logging.getLogger(__name__)

# Keys the detail viewport scrolls on when the reducer does not claim them.
_VIEWPORT_KEYS = {
    "up": "scroll_up",
    "k": "scroll_up",
    "down": "scroll_down",
    "j": "scroll_down",
    "pageup": "scroll_page_up",
    "pagedown": "scroll_page_down",
    "space": "scroll_page_down",
    "home": "scroll_home",
    "g": "scroll_home",
    "end": "scroll_end",
    "G": "scroll_end",
}


class _ReducerMessage(Message, bubble=False):
    """Thread-safe bridge: worker/timer → app message pump → reducer."""

    def __init__(self, msg: m.Msg) -> None:
        self.msg = msg
        super().__init__()


class SrepdApp(App, inherit_bindings=False):
    """Incident triage console."""

    TITLE = "srepd"
    ENABLE_COMMAND_PALETTE = False

    DEFAULT_CSS = """
    #assignee {
        height: 1;
        padding: 0 1;
        text-style: bold;
    }
    #incidents {
        height: 1fr;
    }
    #detail {
        height: 1fr;
        display: none;
    }
    #error {
        height: 1fr;
        padding: 1 2;
        color: $error;
        display: none;
    }
    #action-log {
        height: auto;
        max-height: 7;
        display: none;
    }
    #input {
        display: none;
    }
    #status {
        height: 1;
        padding: 0 1;
        background: $boost;
    }
    #help {
        height: auto;
        padding: 0 1;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        state: State,
        startup: "c.Cmd | None" = None,
    ):
        super().__init__()
        self.state = state
        self._startup = startup
        self._shown_rows: tuple | None = None
        self._shown_content: str | None = None
        self._shown_log: list | None = None

    # ─── Widget accessors ──────────────────────────────────────────────

    def _query_safe(self, selector):
        try:
            return self.query_one(selector)
        except NoMatches:
            return None

    def _get_table(self) -> DataTable | None:
        return self._query_safe("#incidents")

    def _get_detail(self) -> VerticalScroll | None:
        return self._query_safe("#detail")

    def _get_input(self) -> Input | None:
        return self._query_safe("#input")

    # ─── Lifecycle ─────────────────────────────────────────────────────

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="assignee", markup=False)
        table = DataTable(id="incidents", cursor_type="row", zebra_stripes=True)
        table.can_focus = False
        yield table
        detail = VerticalScroll(id="detail")
        detail.can_focus = False
        with detail:
            yield Markdown(id="incident")
        yield Static(id="error", markup=False)
        log_table = DataTable(id="action-log", cursor_type="none", show_cursor=False)
        log_table.can_focus = False
        yield log_table
        yield Input(id="input", placeholder="type a command, esc to cancel")
        yield Static(id="status", markup=False)
        yield Static(id="help", markup=False)

    def on_mount(self) -> None:
        table = self._get_table()
        if table is not None:
            table.add_columns(*srepd.tui.views.TABLE_COLUMNS)
        log_table = self._query_safe("#action-log")
        if log_table is not None:
            log_table.add_columns("Key", "Incident", "Summary", "Action")

        srepd.tui.scheduler.install(self.state.scheduled_jobs, self.set_interval, self.send)
        self._sync()
        self._run_command(self._startup)

    def _handle_exception(self, error: Exception) -> None:
        """// [LAW:single-enforcer] Top-level exception handler - keeps the console running.

        Logs the traceback and routes the error into Error mode instead of exiting.
        """
        tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        logger.error("unhandled exception: %s\n%s", error, tb)
        self.send(m.ErrMsg(error))

    # ─── Message loop ──────────────────────────────────────────────────

    def send(self, msg: m.Msg) -> None:
        """Queue ``msg`` for the reducer. Safe from any thread."""
        self.post_message(_ReducerMessage(msg))

    def on__reducer_message(self, message: _ReducerMessage) -> None:
        self.feed(message.msg)

    def feed(self, msg: m.Msg) -> None:
        logger.debug("msg: %s", type(msg).__name__)
        self.state, cmd = srepd.tui.update.update(self.state, msg)
        self._sync()
        self._run_command(cmd)

    # ─── Commands ──────────────────────────────────────────────────────

    def _run_command(self, cmd: "c.Cmd | None") -> None:
        if cmd is None:
            return
        if isinstance(cmd, c.Batch):
            for part in cmd.commands:
                self._run_command(part)
        elif isinstance(cmd, c.Sequence):
            self.run_worker(partial(self._run_sequence, cmd.commands), thread=True, group="commands")
        elif isinstance(cmd, c.ExecProcess):
            self._exec_process(cmd)
        elif isinstance(cmd, c.Quit):
            self.exit()
        else:
            self.run_worker(partial(self._run_thunk, cmd), thread=True, group="commands")

    def _run_thunk(self, thunk: m.Thunk) -> None:
        msg = thunk()
        if msg is not None:
            self.send(msg)

    def _run_sequence(self, commands: tuple) -> None:
        """Worker thread: start each command only after the previous one posted."""
        for cmd in commands:
            if callable(cmd):
                self._run_thunk(cmd)
            else:
                self.call_from_thread(self._run_command, cmd)

    def _exec_process(self, cmd: c.ExecProcess) -> None:
        error: Exception | None = None
        try:
            argv = cmd.prepare()
            with self.suspend():
                completed = subprocess.run(argv, check=False)
            if completed.returncode:
                error = CommandError(f"{argv[0]} exited with status {completed.returncode}")
        except (OSError, SuspendNotSupported) as e:
            error = e
        self.send(cmd.on_exit(error))

    # ─── Input ─────────────────────────────────────────────────────────

    async def on_key(self, event) -> None:
        """// [LAW:single-enforcer] on_key is the sole key dispatcher.

        Keys the active mode maps go to the reducer. In the detail view,
        unmapped scrolling keys pass through to the viewport.
        """
        mode = self.state.view_mode
        if mode is ViewMode.INPUT and event.key == "enter":
            return  # Input posts Submitted
        if srepd.tui.focus_modes.handles_key(self.state, event.key):
            event.prevent_default()
            event.stop()
            self.feed(m.KeyPress(event.key))
            return
        if mode is ViewMode.INCIDENT:
            scroll = _VIEWPORT_KEYS.get(event.key)
            detail = self._get_detail()
            if scroll and detail is not None:
                event.prevent_default()
                getattr(detail, scroll)()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.feed(m.KeyPress("enter"))

    def on_resize(self, event) -> None:
        self.send(m.WindowResized(event.size.width, event.size.height))

    # ─── State → widgets ───────────────────────────────────────────────

    def _sync(self) -> None:
        state = self.state
        mode = state.view_mode
        views = srepd.tui.views

        assignee = self._query_safe("#assignee")
        if assignee is not None:
            assignee.update(views.assignee_line(state))

        table = self._get_table()
        if table is not None:
            table.display = mode in (ViewMode.TABLE, ViewMode.INPUT)
            if state.rows is not self._shown_rows:
                table.clear()
                for incident in state.rows:
                    table.add_row(*map(Text, views.table_row(incident)), key=incident.id)
                self._shown_rows = state.rows
            if state.rows and table.cursor_row != state.cursor:
                table.move_cursor(row=state.cursor)

        detail = self._get_detail()
        if detail is not None:
            detail.display = mode is ViewMode.INCIDENT
            if state.incident_content != self._shown_content:
                self.query_one("#incident", Markdown).update(state.incident_content)
                self._shown_content = state.incident_content

        error = self._query_safe("#error")
        if error is not None:
            error.display = mode is ViewMode.ERROR
            if state.error is not None:
                error.update(views.error_text(state.error))

        log_table = self._query_safe("#action-log")
        if log_table is not None:
            log_table.display = state.show_action_log and mode is ViewMode.TABLE
            if state.action_log is not self._shown_log:
                log_table.clear()
                for row in views.action_log_rows(state.action_log):
                    log_table.add_row(*map(Text, row))
                self._shown_log = state.action_log

        input_widget = self._get_input()
        if input_widget is not None:
            focused = mode is ViewMode.INPUT
            if focused and not input_widget.display:
                input_widget.display = True
                input_widget.focus()
            elif not focused and input_widget.display:
                input_widget.value = ""
                input_widget.display = False
                self.set_focus(None)

        status = self._query_safe("#status")
        if status is not None:
            status.update(views.status_line(state))

        help_widget = self._query_safe("#help")
        if help_widget is not None:
            help_widget.update(views.help_text(mode, state.show_help))
