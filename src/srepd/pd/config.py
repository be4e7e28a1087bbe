"""Session-level PagerDuty context resolved once at startup.

Turns configured identifiers (team ids, policy ids, ignored user ids) into
resolved references, and carries the client handle that command producers
use. Built on a worker thread; the reducer only ever stores the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from srepd.pd.client import ClientProtocol, DEFAULT_STATUSES
from srepd.pd.models import Incident, Reference, User

logger = logging.getLogger(__name__)

DEFAULT_POLICY_KEY = "DEFAULT"
SILENT_POLICY_KEY = "SILENT_DEFAULT"


@dataclass(frozen=True)
class PdConfig:
    client: ClientProtocol
    current_user: User
    teams: tuple[Reference, ...] = ()
    team_member_ids: frozenset[str] = frozenset()
    escalation_policies: Mapping[str, Reference] = field(default_factory=dict)
    ignored_users: tuple[User, ...] = ()
    statuses: tuple[str, ...] = DEFAULT_STATUSES

    @classmethod
    def load(
        cls,
        client: ClientProtocol,
        teams: Sequence[str],
        escalation_policies: Mapping[str, str],
        ignored_users: Sequence[str] = (),
    ) -> "PdConfig":
        """Resolve all configured identifiers. Raises PagerDutyError on any failure."""
        current_user = client.get_current_user()
        logger.info("authenticated as %s <%s>", current_user.name, current_user.email)

        resolved_teams = tuple(client.get_team(team_id) for team_id in teams)
        member_ids: set[str] = set()
        for team in resolved_teams:
            member_ids.update(client.list_team_member_ids(team.id))

        policies = {
            key.upper(): client.get_escalation_policy(policy_id)
            for key, policy_id in escalation_policies.items()
        }
        ignored = tuple(client.get_user(user_id) for user_id in ignored_users)
        logger.debug(
            "resolved %d team(s), %d member(s), %d policies, %d ignored user(s)",
            len(resolved_teams), len(member_ids), len(policies), len(ignored),
        )
        return cls(
            client=client,
            current_user=current_user,
            teams=resolved_teams,
            team_member_ids=frozenset(member_ids),
            escalation_policies=policies,
            ignored_users=ignored,
        )

    @property
    def ignored_user_ids(self) -> frozenset[str]:
        return frozenset(u.id for u in self.ignored_users)

    @property
    def team_ids(self) -> tuple[str, ...]:
        return tuple(t.id for t in self.teams)

    def policy_for(self, incident: Incident) -> Reference | None:
        """Escalation policy for re-escalating ``incident``.

        A policy keyed by the incident's service id wins over DEFAULT.
        """
        if incident.service is not None:
            policy = self.escalation_policies.get(incident.service.id.upper())
            if policy is not None:
                return policy
        return self.escalation_policies.get(DEFAULT_POLICY_KEY)

    @property
    def silent_policy(self) -> Reference | None:
        return self.escalation_policies.get(SILENT_POLICY_KEY)
