"""Tests for Inkasso data transfer objects."""

from dataclasses import FrozenInstanceError
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from agents.inkasso.dto import (
    COURT_STATUSES,
    DEFAULT_COURT,
    Actor,
    Case,
    CaseHistoryEntry,
    CaseStatus,
    TransitionReason,
    UserRole,
    to_money,
)


class TestEnums:
    def test_status_strings_are_stable(self):
        assert [s.value for s in CaseStatus] == [
            "DRAFT", "NEW", "REMINDER_1", "REMINDER_2", "ADDRESS_RESEARCH",
            "PREPARE_MB", "MB_REQUESTED", "MB_ISSUED", "MB_OBJECTION",
            "PREPARE_VB", "VB_REQUESTED", "VB_ISSUED", "TITLE_OBTAINED",
            "ENFORCEMENT_PREP", "GV_MANDATED", "EV_TAKEN",
            "PAID", "SETTLED", "INSOLVENCY", "UNCOLLECTIBLE",
        ]

    def test_from_wire(self):
        assert CaseStatus.from_wire(" mb_issued ") == CaseStatus.MB_ISSUED
        with pytest.raises(ValueError):
            CaseStatus.from_wire("7")

    def test_court_statuses_start_at_prepare_mb(self):
        assert CaseStatus.PREPARE_MB in COURT_STATUSES
        assert CaseStatus.REMINDER_2 not in COURT_STATUSES
        assert CaseStatus.EV_TAKEN.is_court_related

    def test_role_parse(self):
        assert UserRole.parse("agent") == UserRole.AGENT
        assert UserRole.parse(UserRole.CLIENT) == UserRole.CLIENT
        assert UserRole.parse("SUPERUSER") is None
        assert UserRole.parse(None) is None
        assert Actor(user_id="u", role="debtor").role == UserRole.DEBTOR

    def test_acknowledgement_reasons(self):
        assert TransitionReason.PARTIAL_PAYMENT.resets_limitations
        assert not TransitionReason.CLIENT_INSTRUCTION.resets_limitations


class TestCase:
    def test_money_is_quantized(self, make_case):
        case = make_case(principal_amount=1000, costs="12.345", interest=Decimal("0.004"))

        assert case.principal_amount == Decimal("1000.00")
        assert case.costs == Decimal("12.35")
        assert case.interest == Decimal("0.00")

    def test_total_is_sum_of_components(self, make_case):
        case = make_case(
            costs=Decimal("40.00"),
            interest=Decimal("12.50"),
            additional_costs=Decimal("5.00"),
            procedure_costs=Decimal("36.00"),
        )

        assert case.total_amount == Decimal("1093.50")

    def test_is_immutable(self, case):
        with pytest.raises(FrozenInstanceError):
            case.status = CaseStatus.PAID

    def test_defaults(self, case):
        assert case.currency == "EUR"
        assert case.competent_court == DEFAULT_COURT
        assert case.history == ()
        assert case.version == 0

    def test_serialization_round_trip(self, make_case):
        entry = CaseHistoryEntry(
            action="STATUS_CHANGE",
            actor="Anna",
            timestamp=datetime(2025, 1, 1, tzinfo=UTC),
            from_status=CaseStatus.NEW,
            to_status=CaseStatus.REMINDER_1,
            details="Status changed from NEW to REMINDER_1",
            reason=TransitionReason.PARTIAL_PAYMENT,
        )
        case = make_case(
            status=CaseStatus.REMINDER_1,
            interest_rate=Decimal("9.12"),
            interest_start_date=date(2024, 2, 1),
            is_variable_interest=True,
            statute_of_limitations_date=date(2027, 12, 31),
            history=[entry],
            version=3,
        )

        data = case.to_dict()
        restored = Case.from_dict(data)

        assert data["status"] == "REMINDER_1"
        assert data["total_amount"] == "1000.00"
        assert data["history"][0]["reason"] == "PARTIAL_PAYMENT"
        assert restored == case

    def test_history_list_becomes_tuple(self, make_case):
        entry = CaseHistoryEntry(action="X", actor="a", timestamp=datetime(2025, 1, 1, tzinfo=UTC))

        assert make_case(history=[entry]).history == (entry,)


def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money(Decimal("2.344")) == Decimal("2.34")
