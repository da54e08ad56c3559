"""Test configuration and fixtures for the Inkasso engine."""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from agents.inkasso.access import AgentAssignments
from agents.inkasso.config import InkassoConfig
from agents.inkasso.dto import Actor, Case, CaseStatus, Inquiry, UserRole
from agents.inkasso.service import InkassoService
from agents.inkasso.store import CaseStore

KREDITOR_A = "kreditor-a"
KREDITOR_B = "kreditor-b"
AS_OF = datetime(2025, 1, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def config() -> InkassoConfig:
    return InkassoConfig()


@pytest.fixture
def make_case():
    """Factory for cases with sensible defaults."""

    def _make(**overrides) -> Case:
        values = dict(
            case_id="CASE-001",
            kreditor_id=KREDITOR_A,
            debtor_id="debtor-1",
            agent_id="agent-1",
            invoice_number="RE-2024-0001",
            invoice_date=date(2024, 1, 1),
            due_date=date(2024, 1, 15),
            principal_amount=Decimal("1000.00"),
            status=CaseStatus.NEW,
        )
        values.update(overrides)
        return Case(**values)

    return _make


@pytest.fixture
def case(make_case) -> Case:
    return make_case()


@pytest.fixture
def interest_case(make_case) -> Case:
    """1000.00 at 5 % p.a. from 2024-01-01."""
    return make_case(
        interest_rate=Decimal("5"),
        interest_start_date=date(2024, 1, 1),
    )


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="admin-1", role=UserRole.ADMIN, name="Anna Admin")


@pytest.fixture
def agent() -> Actor:
    return Actor(user_id="agent-1", role=UserRole.AGENT, name="Sam Sachbearbeiter")


@pytest.fixture
def client_actor() -> Actor:
    return Actor(user_id="client-1", role=UserRole.CLIENT, kreditor_id=KREDITOR_A)


@pytest.fixture
def debtor_actor() -> Actor:
    return Actor(user_id="debtor-user", role=UserRole.DEBTOR, linked_debtor_id="debtor-1")


@pytest.fixture
def assignments() -> AgentAssignments:
    return AgentAssignments({"agent-1": [KREDITOR_A], "agent-2": [KREDITOR_A, KREDITOR_B]})


@pytest.fixture
def store(tmp_path) -> CaseStore:
    return CaseStore(tmp_path / "cases.json")


@pytest.fixture
def service(store, config, assignments) -> InkassoService:
    return InkassoService(store, config=config, assignments=assignments)


@pytest.fixture
def portfolio(store, make_case) -> list[Case]:
    """Small mixed portfolio stored in ``store``."""
    cases = [
        make_case(case_id="CASE-001"),
        make_case(case_id="CASE-002", debtor_id="debtor-2", principal_amount=Decimal("250.00")),
        make_case(case_id="CASE-003", kreditor_id=KREDITOR_B, agent_id="agent-2"),
        make_case(
            case_id="CASE-004",
            status=CaseStatus.MB_REQUESTED,
            principal_amount=Decimal("5000.00"),
            procedure_costs=Decimal("120.50"),
            next_action_date=date(2024, 12, 20),
        ),
        make_case(case_id="CASE-005", status=CaseStatus.PAID, agent_id="agent-2"),
        make_case(case_id="CASE-006", status=CaseStatus.UNCOLLECTIBLE, debtor_id="debtor-3"),
        make_case(case_id="CASE-007", status=CaseStatus.REMINDER_1, next_action_date=date(2025, 2, 1)),
    ]
    for item in cases:
        store.add_case(item)
    return cases


@pytest.fixture
def open_inquiry(store, case) -> Inquiry:
    store.add_case(case)
    return store.add_inquiry(
        Inquiry.open(
            case_id=case.case_id,
            question="Kann ich in Raten zahlen?",
            created_by="debtor-user",
            now=datetime(2024, 12, 1, tzinfo=UTC),
            inquiry_id="INQ-001",
        )
    )
