"""Tests for next action scheduling and statute of limitations."""

from dataclasses import replace
from datetime import date

import pytest

from agents.inkasso.config import DeadlinePolicy, InkassoConfig
from agents.inkasso.dto import CaseStatus, TransitionReason
from agents.inkasso.scheduler import DeadlineScheduler, add_years

AS_OF = date(2025, 1, 1)


class TestNextAction:
    """Next action date per status."""

    @pytest.fixture
    def scheduler(self, config):
        return DeadlineScheduler(config)

    @pytest.mark.parametrize(
        "status,expected",
        [
            (CaseStatus.DRAFT, date(2025, 1, 2)),
            (CaseStatus.NEW, date(2025, 1, 8)),
            (CaseStatus.REMINDER_1, date(2025, 1, 15)),
            (CaseStatus.ADDRESS_RESEARCH, date(2025, 1, 31)),
            (CaseStatus.PREPARE_MB, date(2025, 1, 4)),
            (CaseStatus.MB_REQUESTED, date(2025, 1, 22)),
            (CaseStatus.GV_MANDATED, date(2025, 1, 31)),
            (CaseStatus.EV_TAKEN, date(2025, 3, 2)),
        ],
    )
    def test_default_offsets(self, scheduler, case, status, expected):
        assert scheduler.schedule_next_action(replace(case, status=status), AS_OF) == expected

    @pytest.mark.parametrize(
        "status",
        [CaseStatus.PAID, CaseStatus.SETTLED, CaseStatus.INSOLVENCY, CaseStatus.UNCOLLECTIBLE],
    )
    def test_terminal_has_no_next_action(self, scheduler, case, status):
        assert scheduler.schedule_next_action(replace(case, status=status), AS_OF) is None

    def test_policy_override(self, case):
        policy = DeadlinePolicy().with_overrides({"REMINDER_1": 10})
        scheduler = DeadlineScheduler(InkassoConfig(deadline_policy=policy))

        result = scheduler.schedule_next_action(replace(case, status=CaseStatus.REMINDER_1), AS_OF)

        assert result == date(2025, 1, 11)

    def test_override_rejects_terminal_status(self):
        with pytest.raises(ValueError):
            DeadlinePolicy().with_overrides({"PAID": 5})

    @pytest.mark.parametrize(
        "status, low, high",
        [
            (CaseStatus.DRAFT, 1, 1),
            (CaseStatus.NEW, 3, 10),
            (CaseStatus.REMINDER_1, 10, 21),
            (CaseStatus.REMINDER_2, 7, 14),
            (CaseStatus.ADDRESS_RESEARCH, 14, 30),
            (CaseStatus.PREPARE_MB, 3, 7),
            (CaseStatus.PREPARE_VB, 3, 7),
            (CaseStatus.ENFORCEMENT_PREP, 3, 7),
            (CaseStatus.MB_REQUESTED, 14, 28),
            (CaseStatus.VB_REQUESTED, 14, 28),
            (CaseStatus.MB_ISSUED, 14, 21),
            (CaseStatus.VB_ISSUED, 14, 21),
            (CaseStatus.MB_OBJECTION, 7, 14),
            (CaseStatus.TITLE_OBTAINED, 7, 14),
            (CaseStatus.GV_MANDATED, 21, 42),
            (CaseStatus.EV_TAKEN, 30, 90),
        ],
    )
    def test_default_offsets_within_process_windows(self, status, low, high):
        assert low <= DeadlinePolicy().offset_for(status) <= high

    def test_policy_is_deterministic(self):
        assert DeadlinePolicy() == DeadlinePolicy()


class TestLimitations:
    """Verjährung (BGB §§ 195, 197, 199, 212)."""

    @pytest.fixture
    def scheduler(self, config):
        return DeadlineScheduler(config)

    def test_end_of_third_year_after_origin(self, scheduler, make_case):
        case = make_case(date_of_origin=date(2024, 3, 10))

        assert scheduler.compute_limitations(case, AS_OF) == date(2027, 12, 31)

    def test_falls_back_to_due_date(self, scheduler, make_case):
        case = make_case(due_date=date(2023, 12, 31))

        assert scheduler.compute_limitations(case, AS_OF) == date(2026, 12, 31)

    def test_never_decreases(self, scheduler, make_case):
        case = make_case(statute_of_limitations_date=date(2030, 12, 31))

        assert scheduler.compute_limitations(case, AS_OF) == date(2030, 12, 31)

    @pytest.mark.parametrize(
        "reason",
        [
            TransitionReason.DEBT_ACKNOWLEDGED,
            TransitionReason.PAYMENT_ARRANGEMENT,
            TransitionReason.PARTIAL_PAYMENT,
        ],
    )
    def test_acknowledgement_restarts_period(self, scheduler, make_case, reason):
        case = make_case(statute_of_limitations_date=date(2030, 12, 31))

        result = scheduler.compute_limitations(case, date(2025, 6, 15), reason=reason)

        assert result == date(2028, 6, 15)

    def test_other_reason_does_not_restart(self, scheduler, make_case):
        case = make_case(date_of_origin=date(2024, 3, 10))

        result = scheduler.compute_limitations(
            case, date(2025, 6, 15), reason=TransitionReason.CLIENT_INSTRUCTION
        )

        assert result == date(2027, 12, 31)

    @pytest.mark.parametrize("status", [CaseStatus.VB_ISSUED, CaseStatus.TITLE_OBTAINED])
    def test_title_extends_to_thirty_years(self, scheduler, make_case, status):
        case = make_case(status=status)

        assert scheduler.compute_limitations(case, date(2025, 3, 1)) == date(2055, 3, 1)

    def test_title_is_kept_in_enforcement(self, scheduler, make_case):
        case = make_case(
            status=CaseStatus.ENFORCEMENT_PREP,
            statute_of_limitations_date=date(2055, 3, 1),
        )

        assert scheduler.compute_limitations(case, date(2025, 9, 1)) == date(2055, 3, 1)

    def test_acknowledgement_of_titled_claim(self, scheduler, make_case):
        case = make_case(status=CaseStatus.GV_MANDATED, statute_of_limitations_date=date(2055, 3, 1))

        result = scheduler.compute_limitations(
            case, date(2026, 1, 10), reason=TransitionReason.DEBT_ACKNOWLEDGED
        )

        assert result == date(2056, 1, 10)

    def test_add_years_leap_day(self):
        assert add_years(date(2024, 2, 29), 3) == date(2027, 2, 28)
        assert add_years(date(2024, 2, 29), 4) == date(2028, 2, 29)
