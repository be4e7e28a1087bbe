"""PagerDuty REST API v2 client.

Blocking calls over urllib; every method is meant to run on a worker
thread. Failures raise PagerDutyError so command producers have a single
exception type to wrap into a message.

// [LAW:single-enforcer] HTTP transport and error translation live in _request() only.

This module is a STABLE BOUNDARY.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Iterable, Iterator, Protocol, Sequence

from srepd.pd.models import Alert, Incident, Note, Reference, User

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.pagerduty.com"
DEFAULT_TIMEOUT = 30
PAGE_LIMIT = 100

DEFAULT_STATUSES = ("triggered", "acknowledged")


class PagerDutyError(Exception):
    """Transport or API failure. ``status`` is 0 when no response arrived."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"{message} (HTTP {status})" if status else message)


class EmptyNoteError(PagerDutyError):
    """Note content was empty; the caller skips the note instead of failing."""

    def __init__(self):
        super().__init__(0, "incident note content is empty")


class ClientProtocol(Protocol):
    """Operations the console needs from the remote service."""

    def get_current_user(self) -> User: ...
    def get_team(self, team_id: str) -> Reference: ...
    def list_team_member_ids(self, team_id: str) -> list[str]: ...
    def get_escalation_policy(self, policy_id: str) -> Reference: ...
    def get_user(self, user_id: str) -> User: ...
    def list_incidents(
        self,
        team_ids: Sequence[str] = (),
        user_ids: Sequence[str] = (),
        statuses: Sequence[str] = DEFAULT_STATUSES,
    ) -> list[Incident]: ...
    def get_incident(self, incident_id: str) -> Incident: ...
    def list_incident_notes(self, incident_id: str) -> list[Note]: ...
    def list_incident_alerts(self, incident_id: str) -> list[Alert]: ...
    def add_note(self, incident_id: str, user: User, content: str) -> Note: ...
    def acknowledge_incidents(self, incidents: Sequence[Incident], user: User) -> list[Incident]: ...
    def reassign_incidents(
        self, incidents: Sequence[Incident], user: User, assignees: Sequence[User]
    ) -> list[Incident]: ...
    def re_escalate_incidents(
        self, incidents: Sequence[Incident], user: User, policy_id: str, level: int = 1
    ) -> list[Incident]: ...
    def silence_incidents(
        self, incidents: Sequence[Incident], user: User, policy_id: str
    ) -> list[Incident]: ...


def _error_message(raw: bytes, fallback: str) -> str:
    try:
        body = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return fallback
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return fallback
    message = str(error.get("message") or fallback)
    details = error.get("errors") or []
    if details:
        message = "{}: {}".format(message, "; ".join(str(d) for d in details))
    return message


class PagerDutyClient:
    """Minimal PagerDuty client covering incidents, notes, alerts and users."""

    def __init__(self, token: str, base_url: str = API_BASE_URL, timeout: int = DEFAULT_TIMEOUT):
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def __repr__(self) -> str:
        return f"PagerDutyClient(base_url={self._base_url!r}, token='*****')"

    # ─── Transport ─────────────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Iterable[tuple[str, object]] = (),
        body: dict | None = None,
        from_email: str | None = None,
    ) -> dict:
        query = urllib.parse.urlencode(list(params))
        url = f"{self._base_url}{path}" + (f"?{query}" if query else "")
        headers = {
            "accept": "application/vnd.pagerduty+json;version=2",
            "authorization": f"Token token={self._token}",
            "content-type": "application/json",
        }
        if from_email:
            headers["from"] = from_email
        data = json.dumps(body).encode("utf-8") if body is not None else None
        request = urllib.request.Request(url, data=data, headers=headers, method=method)
        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            raise PagerDutyError(e.code, _error_message(e.read(), str(e.reason))) from e
        except urllib.error.URLError as e:
            raise PagerDutyError(0, f"{method} {path} failed: {e.reason}") from e
        except TimeoutError as e:
            raise PagerDutyError(0, f"{method} {path} timed out") from e
        if not raw:
            return {}
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PagerDutyError(0, f"{method} {path} returned invalid JSON") from e
        return parsed if isinstance(parsed, dict) else {}

    def _paginate(self, path: str, key: str, params: Sequence[tuple[str, object]] = ()) -> Iterator[dict]:
        offset = 0
        while True:
            page = self._request(
                "GET", path, params=[*params, ("limit", PAGE_LIMIT), ("offset", offset)]
            )
            items = page.get(key) or []
            yield from items
            if not page.get("more") or not items:
                return
            offset += len(items)

    # ─── Users, teams, policies ────────────────────────────────────────

    def get_current_user(self) -> User:
        return User.from_api(self._request("GET", "/users/me").get("user") or {})

    def get_user(self, user_id: str) -> User:
        return User.from_api(self._request("GET", f"/users/{user_id}").get("user") or {})

    def get_team(self, team_id: str) -> Reference:
        return Reference.from_api(self._request("GET", f"/teams/{team_id}").get("team") or {})

    def list_team_member_ids(self, team_id: str) -> list[str]:
        return [
            str(user.get("id"))
            for user in self._paginate("/users", "users", [("team_ids[]", team_id)])
        ]

    def get_escalation_policy(self, policy_id: str) -> Reference:
        raw = self._request("GET", f"/escalation_policies/{policy_id}")
        return Reference.from_api(raw.get("escalation_policy") or {})

    # ─── Incidents ─────────────────────────────────────────────────────

    def list_incidents(
        self,
        team_ids: Sequence[str] = (),
        user_ids: Sequence[str] = (),
        statuses: Sequence[str] = DEFAULT_STATUSES,
    ) -> list[Incident]:
        params = [("statuses[]", s) for s in statuses]
        params += [("team_ids[]", t) for t in team_ids]
        params += [("user_ids[]", u) for u in user_ids]
        return [Incident.from_api(raw) for raw in self._paginate("/incidents", "incidents", params)]

    def get_incident(self, incident_id: str) -> Incident:
        raw = self._request("GET", f"/incidents/{incident_id}")
        return Incident.from_api(raw.get("incident") or {})

    def list_incident_notes(self, incident_id: str) -> list[Note]:
        raw = self._request("GET", f"/incidents/{incident_id}/notes")
        return [Note.from_api(n) for n in raw.get("notes") or []]

    def list_incident_alerts(self, incident_id: str) -> list[Alert]:
        return [
            Alert.from_api(raw)
            for raw in self._paginate(f"/incidents/{incident_id}/alerts", "alerts")
        ]

    def add_note(self, incident_id: str, user: User, content: str) -> Note:
        if not content.strip():
            raise EmptyNoteError()
        raw = self._request(
            "POST",
            f"/incidents/{incident_id}/notes",
            body={"note": {"content": content}},
            from_email=user.email,
        )
        return Note.from_api(raw.get("note") or {})

    def _manage(self, user: User, updates: list[dict]) -> list[Incident]:
        raw = self._request("PUT", "/incidents", body={"incidents": updates}, from_email=user.email)
        return [Incident.from_api(i) for i in raw.get("incidents") or []]

    def acknowledge_incidents(self, incidents: Sequence[Incident], user: User) -> list[Incident]:
        return self._manage(user, [
            {"id": i.id, "type": "incident_reference", "status": "acknowledged"}
            for i in incidents
        ])

    def reassign_incidents(
        self, incidents: Sequence[Incident], user: User, assignees: Sequence[User]
    ) -> list[Incident]:
        assignments = [{"assignee": {"id": a.id, "type": "user_reference"}} for a in assignees]
        return self._manage(user, [
            {"id": i.id, "type": "incident_reference", "assignments": assignments}
            for i in incidents
        ])

    def re_escalate_incidents(
        self, incidents: Sequence[Incident], user: User, policy_id: str, level: int = 1
    ) -> list[Incident]:
        return self._manage(user, [
            {
                "id": i.id,
                "type": "incident_reference",
                "escalation_policy": {"id": policy_id, "type": "escalation_policy_reference"},
                "escalation_level": level,
            }
            for i in incidents
        ])

    def silence_incidents(
        self, incidents: Sequence[Incident], user: User, policy_id: str
    ) -> list[Incident]:
        """Silence by re-escalating to the no-notify policy at its first level."""
        return self.re_escalate_incidents(incidents, user, policy_id, level=1)
