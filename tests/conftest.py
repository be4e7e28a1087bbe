"""Pytest configuration and shared fixtures for srepd tests."""

import pytest

import srepd.io.logging_setup
from srepd.tui.model import ViewMode

from tests.harness.builders import make_incident, make_state
from tests.harness.fake_client import FakeClient


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path, monkeypatch):
    """Point XDG_CONFIG_HOME at a temp dir so no test touches ~/.config."""
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    for var in ("SREPD_CONFIG", "SREPD_LOG_FILE", "SREPD_LOG_LEVEL", "EDITOR"):
        monkeypatch.delenv(var, raising=False)
    return config_home


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop any configured logging runtime before and after the test."""
    srepd.io.logging_setup.reset()
    yield
    srepd.io.logging_setup.reset()


# ---------------------------------------------------------------------------
# State fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def state(client):
    """Table-mode state listing one incident assigned to the current user."""
    incident = make_incident()
    return make_state(client, incident_list=(incident,), rows=(incident,))


@pytest.fixture
def detail_state(client):
    """Detail-mode state for Q123 with every load flag false."""
    incident = make_incident()
    st = make_state(client, incident_list=(incident,), rows=(incident,))
    st.base_mode = ViewMode.INCIDENT
    st.selected_incident = incident
    return st
