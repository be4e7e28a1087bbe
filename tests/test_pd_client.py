"""Tests for the PagerDuty REST client and API models, with urlopen patched out."""

import io
import json
import urllib.error
import urllib.parse

import pytest

import srepd.pd.client
from srepd.pd.client import EmptyNoteError, PagerDutyClient, PagerDutyError
from srepd.pd.models import Alert, Incident, Note

from tests.harness.builders import CURRENT_USER, make_incident


class _Response:
    def __init__(self, payload):
        self._raw = json.dumps(payload).encode() if payload is not None else b""

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeTransport:
    """Serves queued payloads and records every request."""

    def __init__(self, *payloads):
        self.payloads = list(payloads)
        self.requests = []

    def __call__(self, request, timeout=None):
        self.requests.append(request)
        payload = self.payloads.pop(0)
        if isinstance(payload, Exception):
            raise payload
        return _Response(payload)

    def query(self, index=0):
        return urllib.parse.parse_qsl(urllib.parse.urlsplit(self.requests[index].full_url).query)

    def body(self, index=0):
        return json.loads(self.requests[index].data)


@pytest.fixture
def transport(monkeypatch):
    def _install(*payloads):
        fake = FakeTransport(*payloads)
        monkeypatch.setattr(srepd.pd.client.urllib.request, "urlopen", fake)
        return fake

    return _install


@pytest.fixture
def pd():
    return PagerDutyClient("tok", base_url="https://pd.test/")


INCIDENT_JSON = {
    "id": "Q123",
    "title": "Cluster is on fire",
    "summary": "[#1] Cluster is on fire",
    "status": "acknowledged",
    "urgency": "high",
    "html_url": "https://pd.test/incidents/Q123",
    "created_at": "2024-05-01T10:00:00Z",
    "service": {"id": "PSVC1", "summary": "osd-cluster-monitor", "type": "service_reference"},
    "priority": {"id": "PPRI", "summary": "P1"},
    "assignments": [{"assignee": {"id": "PUSER1", "summary": "Ada Operator"}}],
    "acknowledgements": [{"acknowledger": {"id": "PUSER1", "summary": "Ada Operator"}}],
}


class TestModels:
    def test_incident_from_api(self):
        incident = Incident.from_api(INCIDENT_JSON)
        assert incident.id == "Q123"
        assert incident.service_name == "osd-cluster-monitor"
        assert incident.priority_name == "P1"
        assert incident.assignee_ids == frozenset({"PUSER1"})
        assert [a.summary for a in incident.acknowledgers] == ["Ada Operator"]

    def test_incident_from_sparse_payload(self):
        incident = Incident.from_api({"id": "Q1"})
        assert incident.service is None
        assert incident.assignees == ()
        assert incident.priority_name == ""

    def test_placeholder_carries_only_id(self):
        placeholder = Incident.placeholder("Q9")
        assert placeholder.id == "Q9"
        assert placeholder.service is None

    def test_alert_cluster_id_from_body_details(self):
        alert = Alert.from_api({"id": "A1", "body": {"details": {"cluster_id": "abc", "region": "us"}}})
        assert alert.cluster_id == "abc"
        assert alert.details["region"] == "us"

    def test_alert_without_body(self):
        assert Alert.from_api({"id": "A1", "body": None}).cluster_id == ""

    def test_note_from_api(self):
        note = Note.from_api({"id": "N1", "content": "hi", "user": {"id": "PUSER1", "summary": "Ada"}})
        assert note.user.summary == "Ada"


class TestTransport:
    def test_headers_and_url(self, transport, pd):
        fake = transport({"incident": INCIDENT_JSON})
        pd.get_incident("Q123")
        request = fake.requests[0]
        assert request.full_url == "https://pd.test/incidents/Q123"
        assert request.get_header("Authorization") == "Token token=tok"
        assert request.get_method() == "GET"

    def test_http_error_message(self, transport, pd):
        body = json.dumps({"error": {"message": "Not Found", "errors": ["Incident not found"]}}).encode()
        transport(urllib.error.HTTPError("https://pd.test", 404, "Not Found", {}, io.BytesIO(body)))
        with pytest.raises(PagerDutyError) as exc:
            pd.get_incident("nope")
        assert exc.value.status == 404
        assert str(exc.value) == "Not Found: Incident not found (HTTP 404)"

    def test_http_error_without_json_body(self, transport, pd):
        transport(urllib.error.HTTPError("https://pd.test", 502, "Bad Gateway", {}, io.BytesIO(b"<html>")))
        with pytest.raises(PagerDutyError, match="Bad Gateway"):
            pd.get_incident("Q1")

    def test_network_error(self, transport, pd):
        transport(urllib.error.URLError("connection refused"))
        with pytest.raises(PagerDutyError) as exc:
            pd.get_current_user()
        assert exc.value.status == 0
        assert "connection refused" in str(exc.value)

    def test_repr_hides_token(self, pd):
        assert "tok" not in repr(pd).replace("token", "")


class TestPagination:
    def test_follows_more_flag(self, transport, pd):
        fake = transport(
            {"incidents": [INCIDENT_JSON], "more": True},
            {"incidents": [dict(INCIDENT_JSON, id="Q124")], "more": False},
        )
        incidents = pd.list_incidents(team_ids=["PTEAM"], statuses=["triggered"])
        assert [i.id for i in incidents] == ["Q123", "Q124"]
        assert ("offset", "1") in fake.query(1)
        assert ("team_ids[]", "PTEAM") in fake.query(0)
        assert ("statuses[]", "triggered") in fake.query(0)

    def test_empty_page_stops(self, transport, pd):
        fake = transport({"alerts": [], "more": True})
        assert pd.list_incident_alerts("Q123") == []
        assert len(fake.requests) == 1

    def test_team_members(self, transport, pd):
        transport({"users": [{"id": "PUSER1"}, {"id": "PUSER2"}]})
        assert pd.list_team_member_ids("PTEAM") == ["PUSER1", "PUSER2"]


class TestWrites:
    def test_add_note_posts_with_from_header(self, transport, pd):
        fake = transport({"note": {"id": "N1", "content": "done"}})
        note = pd.add_note("Q123", CURRENT_USER, "done")
        assert note.id == "N1"
        request = fake.requests[0]
        assert request.get_method() == "POST"
        assert request.get_header("From") == CURRENT_USER.email
        assert fake.body() == {"note": {"content": "done"}}

    def test_empty_note_is_rejected_before_request(self, transport, pd):
        fake = transport()
        with pytest.raises(EmptyNoteError):
            pd.add_note("Q123", CURRENT_USER, "  \n")
        assert fake.requests == []

    def test_acknowledge(self, transport, pd):
        fake = transport({"incidents": [INCIDENT_JSON]})
        done = pd.acknowledge_incidents([make_incident()], CURRENT_USER)
        assert [i.status for i in done] == ["acknowledged"]
        assert fake.body() == {
            "incidents": [{"id": "Q123", "type": "incident_reference", "status": "acknowledged"}]
        }
        assert fake.requests[0].get_method() == "PUT"

    def test_silence_re_escalates_to_policy(self, transport, pd):
        fake = transport({"incidents": []})
        pd.silence_incidents([make_incident()], CURRENT_USER, "PEPSILENT")
        update = fake.body()["incidents"][0]
        assert update["escalation_policy"]["id"] == "PEPSILENT"
        assert update["escalation_level"] == 1

    def test_reassign(self, transport, pd):
        fake = transport({"incidents": []})
        pd.reassign_incidents([make_incident()], CURRENT_USER, [CURRENT_USER])
        update = fake.body()["incidents"][0]
        assert update["assignments"] == [{"assignee": {"id": "PUSER1", "type": "user_reference"}}]
