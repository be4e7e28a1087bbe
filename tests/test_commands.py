"""Tests for command producers, combinators and the editor/browser helpers."""

from pathlib import Path

import pytest

import srepd.browser
import srepd.editor
import srepd.launcher
from srepd.launcher import CommandError
from srepd.pd.client import EmptyNoteError, PagerDutyError
from srepd.pd.models import Reference
from srepd.tui import commands as c
from srepd.tui import messages as m

from tests.harness.builders import OTHER_USER, make_config, make_incident
from tests.harness.fake_client import ERR_ID, FakeClient


@pytest.fixture
def config(client):
    return make_config(client)


class TestCombinators:
    def test_batch_drops_none_and_unwraps_single(self):
        only = c.emit(m.Login())
        assert c.batch(None, only, None) is only
        assert c.batch(None, None) is None
        assert isinstance(c.batch(only, only), c.Batch)

    def test_sequence_keeps_order(self):
        first, second = c.emit(m.Login()), c.emit(m.OpenBrowser())
        seq = c.sequence(first, None, second)
        assert seq.commands == (first, second)

    def test_flatten_nested(self):
        a, b, d = c.emit(m.Login()), c.emit(m.OpenBrowser()), c.emit(m.RenderIncident())
        assert c.flatten(c.batch(a, c.sequence(b, d))) == [a, b, d]
        assert c.flatten(None) == []

    def test_emit_returns_message(self):
        assert c.emit(m.PollIncidents())() == m.PollIncidents()


class TestFetchProducers:
    def test_incident_list_uses_config_filters(self, config, client):
        result = c.fetch_incident_list(config)()
        assert isinstance(result, m.UpdatedIncidentList)
        assert [i.id for i in result.incidents] == ["Q123"]
        assert client.called("list_incidents") == [(("PTEAM",), (), ("triggered", "acknowledged"))]

    def test_incident_list_error(self, config, client):
        client.list_error = PagerDutyError(500, "down")
        result = c.fetch_incident_list(config)()
        assert result.error is client.list_error
        assert result.incidents == ()

    def test_fetch_incident(self, client):
        assert c.fetch_incident(client, "Q123")() == m.GotIncident("Q123", make_incident())

    @pytest.mark.parametrize(
        "producer, result_type",
        [
            (c.fetch_incident, m.GotIncident),
            (c.fetch_notes, m.GotIncidentNotes),
            (c.fetch_alerts, m.GotIncidentAlerts),
        ],
    )
    def test_failures_become_result_errors(self, client, producer, result_type):
        result = producer(client, ERR_ID)()
        assert isinstance(result, result_type)
        assert isinstance(result.error, PagerDutyError)

    def test_notes_and_alerts_are_tuples(self, client):
        assert isinstance(c.fetch_notes(client, "Q123")().notes, tuple)
        assert c.fetch_alerts(client, "Q123")().alerts[0].cluster_id == "abcdefg"

    def test_load_config(self, client):
        class _Settings:
            teams = ("PTEAM",)
            service_escalation_policies = {"DEFAULT": "PEP1", "SILENT_DEFAULT": "PEP2"}
            ignoredusers = ("PBOT",)

        result = c.load_config(client, _Settings())()
        assert result.error is None
        assert result.config.team_ids == ("PTEAM",)
        assert set(result.config.escalation_policies) == {"DEFAULT", "SILENT_DEFAULT"}
        assert result.config.ignored_user_ids == frozenset({"PUSER1"})

    def test_load_config_failure(self):
        class _Broken(FakeClient):
            def get_current_user(self):
                raise PagerDutyError(401, "bad token")

        class _Settings:
            teams = ()
            service_escalation_policies = {}
            ignoredusers = ()

        result = c.load_config(_Broken(), _Settings())()
        assert result.config is None
        assert result.error.status == 401


class TestNotes:
    def test_editor_session(self, monkeypatch, tmp_path):
        monkeypatch.setattr(srepd.editor.tempfile, "tempdir", str(tmp_path))
        cmd = c.open_editor("code --wait", make_incident())
        argv = cmd.prepare()
        assert argv[:2] == ["code", "--wait"]
        path = Path(argv[2])
        assert path.read_text().startswith("# Note for incident Q123")
        assert cmd.on_exit(None) == m.EditorFinished(path)

    def test_editor_failure_reported(self, monkeypatch, tmp_path):
        monkeypatch.setattr(srepd.editor.tempfile, "tempdir", str(tmp_path))
        cmd = c.open_editor("vim", make_incident())
        cmd.prepare()
        error = OSError("vim: not found")
        assert cmd.on_exit(error).error is error

    def test_untouched_template_is_empty_note(self, config, client, tmp_path):
        path = tmp_path / "note.md"
        path.write_text(srepd.editor.note_template(make_incident()))
        result = c.add_note(config, "Q123", path)()
        assert isinstance(result.error, EmptyNoteError)
        assert not path.exists()

    def test_note_file_removed_on_failure(self, config, tmp_path):
        path = tmp_path / "note.md"
        path.write_text("some text")
        result = c.add_note(config, ERR_ID, path)()
        assert isinstance(result.error, PagerDutyError)
        assert not path.exists()

    def test_missing_note_file(self, config, tmp_path):
        result = c.add_note(config, "Q123", tmp_path / "gone.md")()
        assert isinstance(result.error, OSError)


class TestEditorHelpers:
    def test_read_note_strips_comments(self, tmp_path):
        path = tmp_path / "n.md"
        path.write_text("# header\nline one\n#more\n\nline two\n")
        assert srepd.editor.read_note(path) == "line one\n\nline two"

    def test_template_includes_url(self):
        text = srepd.editor.note_template(make_incident())
        assert "https://example.pagerduty.com/incidents/Q123" in text

    def test_editor_argv(self):
        assert srepd.editor.editor_argv("vim", Path("/tmp/x.md")) == ["vim", "/tmp/x.md"]


class TestProcesses:
    def test_open_browser(self, monkeypatch):
        calls = []
        monkeypatch.setattr(srepd.launcher, "run_command", calls.append)
        result = c.open_browser(["open"], "https://pd.test/Q1")()
        assert result == m.BrowserFinished("https://pd.test/Q1")
        assert calls == [["open", "https://pd.test/Q1"]]

    def test_open_browser_failure(self, monkeypatch):
        def _fail(argv):
            raise CommandError("no display")

        monkeypatch.setattr(srepd.launcher, "run_command", _fail)
        assert str(c.open_browser(["xdg-open"], "u")().error) == "no display"

    @pytest.mark.parametrize(
        "platform, expected",
        [("linux", ["xdg-open"]), ("darwin", ["open"]), ("freebsd13", ["xdg-open"]), ("win32", [])],
    )
    def test_default_open_command(self, platform, expected):
        assert srepd.browser.default_open_command(platform) == expected


class TestMutationProducers:
    def test_acknowledge(self, config, client):
        result = c.acknowledge(config, (make_incident(),))()
        assert [i.id for i in result.incidents] == ["Q123"]
        assert client.called("acknowledge_incidents") == [("Q123",)]

    def test_re_escalate_groups_by_policy(self, client):
        config = make_config(client, escalation_policies={
            "DEFAULT": Reference(id="PEPDEFAULT"),
            "SILENT_DEFAULT": Reference(id="PEPSILENT"),
            "PSVC2": Reference(id="PEPSVC2"),
        })
        incidents = (make_incident("Q1"), make_incident("Q2", service_id="PSVC2"), make_incident("Q3"))
        c.re_escalate(config, incidents)()
        assert client.called("re_escalate_incidents") == [
            (("Q1", "Q3"), "PEPDEFAULT", 1),
            (("Q2",), "PEPSVC2", 1),
        ]

    def test_re_escalate_without_policy(self, client):
        config = make_config(client, escalation_policies={})
        result = c.re_escalate(config, (make_incident(),))()
        assert "no escalation policy" in str(result.error)
        assert client.called("re_escalate_incidents") == []

    def test_silence_without_silent_policy(self, client):
        config = make_config(client, escalation_policies={})
        result = c.silence(config, (make_incident(),))()
        assert "SILENT_DEFAULT" in str(result.error)

    def test_reassign(self, config, client):
        result = c.reassign(config, (make_incident(),), (OTHER_USER,))()
        assert result.error is None
        assert client.called("reassign_incidents") == [("Q123",)]
