"""Test harness for srepd.

Re-exports all public API for convenient imports:
    from tests.harness import run_app, MessageLoop, FakeClient, make_incident, ...
"""

from tests.harness.app_runner import run_app, settle
from tests.harness.builders import (
    CURRENT_USER,
    IGNORED_USER,
    OTHER_USER,
    make_alert,
    make_config,
    make_incident,
    make_note,
    make_state,
)
from tests.harness.fake_client import ERR_ID, FakeClient
from tests.harness.loop import MessageLoop

__all__ = [
    "run_app",
    "settle",
    "CURRENT_USER",
    "IGNORED_USER",
    "OTHER_USER",
    "make_alert",
    "make_config",
    "make_incident",
    "make_note",
    "make_state",
    "ERR_ID",
    "FakeClient",
    "MessageLoop",
]
