"""Role capabilities and visibility scoping.

Every role is described by one capability entry: which statuses it may move
a case into, whether it may answer inquiries, and which cases it sees.
Unknown roles and actors lacking their scope key see nothing.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml

from .dto import Actor, Case, CaseStatus, Inquiry, UserRole

CasePredicate = Callable[[Case], bool]


def _nothing(case: Case) -> bool:
    return False


class AgentAssignments:
    """Many-to-many mapping of agents (Sachbearbeiter) to creditors.

    Example file (YAML or JSON)::

        agents:
          agent-1: [kreditor-a, kreditor-b]
          agent-2: [kreditor-b]
    """

    def __init__(self, mapping: Mapping[str, Iterable[str]] | None = None):
        self._mapping: dict[str, frozenset[str]] = {
            agent_id: frozenset(kreditors) for agent_id, kreditors in (mapping or {}).items()
        }

    @classmethod
    def from_file(cls, path: str | Path) -> "AgentAssignments":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        agents = data.get("agents", {})
        if not isinstance(agents, dict):
            raise ValueError(f"'agents' in {path} must map agent ids to creditor lists")
        return cls({str(agent): [str(k) for k in kreditors or []] for agent, kreditors in agents.items()})

    def kreditors_for(self, agent_id: str) -> frozenset[str]:
        return self._mapping.get(agent_id, frozenset())

    def is_assigned(self, agent_id: str, kreditor_id: str) -> bool:
        return kreditor_id in self.kreditors_for(agent_id)

    def with_assignment(self, agent_id: str, kreditor_id: str) -> "AgentAssignments":
        mapping = dict(self._mapping)
        mapping[agent_id] = self.kreditors_for(agent_id) | {kreditor_id}
        return AgentAssignments(mapping)

    def to_dict(self) -> dict[str, list[str]]:
        return {agent: sorted(kreditors) for agent, kreditors in self._mapping.items()}


def _admin_scope(actor: Actor, assignments: AgentAssignments) -> CasePredicate:
    return lambda case: True


def _agent_scope(actor: Actor, assignments: AgentAssignments) -> CasePredicate:
    if not actor.user_id:
        return _nothing
    kreditors = assignments.kreditors_for(actor.user_id)
    return lambda case: case.agent_id == actor.user_id and case.kreditor_id in kreditors


def _client_scope(actor: Actor, assignments: AgentAssignments) -> CasePredicate:
    if not actor.kreditor_id:
        return _nothing
    return lambda case: case.kreditor_id == actor.kreditor_id


def _debtor_scope(actor: Actor, assignments: AgentAssignments) -> CasePredicate:
    if not actor.linked_debtor_id:
        return _nothing
    return lambda case: case.debtor_id == actor.linked_debtor_id


@dataclass(frozen=True)
class RoleCapabilities:
    """What a role may do."""

    may_transition: bool
    may_enter_court_statuses: bool
    can_resolve_inquiry: bool
    scope: Callable[[Actor, AgentAssignments], CasePredicate]

    def can_transition_to(self, status: CaseStatus) -> bool:
        if not self.may_transition:
            return False
        if status.is_court_related:
            return self.may_enter_court_statuses
        return True


NO_CAPABILITIES = RoleCapabilities(
    may_transition=False,
    may_enter_court_statuses=False,
    can_resolve_inquiry=False,
    scope=lambda actor, assignments: _nothing,
)

ROLE_CAPABILITIES: dict[UserRole, RoleCapabilities] = {
    UserRole.ADMIN: RoleCapabilities(True, True, True, _admin_scope),
    UserRole.AGENT: RoleCapabilities(True, True, True, _agent_scope),
    UserRole.CLIENT: RoleCapabilities(False, False, False, _client_scope),
    UserRole.DEBTOR: RoleCapabilities(False, False, False, _debtor_scope),
}


def capabilities_for(role: UserRole | str | None) -> RoleCapabilities:
    """Capabilities of a role; unknown roles get none."""
    parsed = UserRole.parse(role)
    if parsed is None:
        return NO_CAPABILITIES
    return ROLE_CAPABILITIES.get(parsed, NO_CAPABILITIES)


def visible_cases(actor: Actor, assignments: AgentAssignments | None = None) -> CasePredicate:
    """Predicate selecting the cases ``actor`` may see."""
    return capabilities_for(actor.role).scope(actor, assignments or AgentAssignments())


class AccessScope:
    """Applies role visibility to case and inquiry collections."""

    def __init__(self, assignments: AgentAssignments | None = None):
        self.assignments = assignments or AgentAssignments()

    def predicate(self, actor: Actor) -> CasePredicate:
        return visible_cases(actor, self.assignments)

    def can_view(self, actor: Actor, case: Case) -> bool:
        return self.predicate(actor)(case)

    def filter_cases(self, actor: Actor, cases: Iterable[Case]) -> list[Case]:
        is_visible = self.predicate(actor)
        return [case for case in cases if is_visible(case)]

    def filter_inquiries(
        self,
        actor: Actor,
        inquiries: Iterable[Inquiry],
        case_lookup: Callable[[str], Case | None],
    ) -> list[Inquiry]:
        """Inquiries whose parent case is visible; orphans are hidden."""
        is_visible = self.predicate(actor)
        result = []
        for inquiry in inquiries:
            case = case_lookup(inquiry.case_id)
            if case is not None and is_visible(case):
                result.append(inquiry)
        return result
