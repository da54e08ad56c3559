"""Tests for the financial ledger - offline.

Interest accrual, totals and input validation without store or clock.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from agents.inkasso.base_rates import BUSINESS_SURCHARGE, BaseRatePeriod, BaseRateTable
from agents.inkasso.config import DAY_COUNT_ACT_365, InkassoConfig
from agents.inkasso.errors import InvalidFinancialInputError
from agents.inkasso.ledger import FinancialLedger, year_fraction


def step_rate(day: date) -> Decimal:
    """4 % until end of June 2024, 6 % afterwards."""
    return Decimal("4") if day < date(2024, 7, 1) else Decimal("6")


class TestFixedInterest:
    """Fixed-rate accrual."""

    @pytest.fixture
    def ledger(self, config):
        return FinancialLedger(config)

    def test_full_calendar_year(self, ledger, interest_case):
        """1000.00 at 5 % over 2024 yields exactly 50.00."""
        result = ledger.accrue(interest_case, date(2025, 1, 1))

        assert result.interest == Decimal("50.00")
        assert result.total_amount == Decimal("1050.00")
        assert result.accrued_days == 366
        assert not result.from_stored_interest

    def test_half_year_rounds_half_up(self, ledger, interest_case):
        # 182 days of 366
        result = ledger.accrue(interest_case, date(2024, 7, 1))

        assert result.interest == Decimal("24.86")

    def test_act_365_basis(self, interest_case):
        ledger = FinancialLedger(InkassoConfig(day_count_basis=DAY_COUNT_ACT_365))

        result = ledger.accrue(interest_case, date(2025, 1, 1))

        assert result.interest == Decimal("50.14")

    def test_interest_end_date_caps_accrual(self, ledger, interest_case):
        capped = replace(interest_case, interest_end_date=date(2024, 4, 1))

        result = ledger.accrue(capped, date(2025, 1, 1))

        # 91 days of 366
        assert result.interest == Decimal("12.43")

    def test_accrual_starts_at_invoice_date_if_later(self, ledger, make_case):
        case = make_case(
            invoice_date=date(2024, 7, 1),
            interest_rate=Decimal("5"),
            interest_start_date=date(2024, 1, 1),
        )

        result = ledger.accrue(case, date(2025, 1, 1))

        # 184 days of 366
        assert result.interest == Decimal("25.14")

    def test_before_start_is_zero(self, ledger, make_case):
        case = make_case(interest_rate=Decimal("5"), interest_start_date=date(2024, 6, 1))

        result = ledger.accrue(case, date(2024, 5, 1))

        assert result.interest == Decimal("0.00")
        assert result.total_amount == Decimal("1000.00")

    def test_interest_on_costs(self, ledger, make_case):
        case = make_case(
            interest_rate=Decimal("5"),
            interest_start_date=date(2024, 1, 1),
            additional_costs=Decimal("100.00"),
            procedure_costs=Decimal("100.00"),
            interest_on_costs=True,
        )

        result = ledger.accrue(case, date(2025, 1, 1))

        assert result.interest == Decimal("60.00")
        assert result.total_amount == Decimal("1260.00")

    def test_costs_do_not_accrue_without_flag(self, ledger, make_case):
        case = make_case(
            interest_rate=Decimal("5"),
            interest_start_date=date(2024, 1, 1),
            costs=Decimal("40.00"),
            procedure_costs=Decimal("100.00"),
        )

        result = ledger.accrue(case, date(2025, 1, 1))

        assert result.interest == Decimal("50.00")
        assert result.total_amount == Decimal("1190.00")


class TestStoredInterest:
    """Cases without interest configuration."""

    def test_stored_interest_is_kept(self, make_case):
        case = make_case(interest=Decimal("12.34"), costs=Decimal("40.00"))

        result = FinancialLedger().accrue(case, date(2025, 1, 1))

        assert result.from_stored_interest
        assert result.interest == Decimal("12.34")
        assert result.total_amount == Decimal("1052.34")

    def test_rate_without_start_keeps_stored_interest(self, make_case):
        case = make_case(interest_rate=Decimal("5"), interest=Decimal("7.00"))

        result = FinancialLedger().accrue(case, date(2025, 1, 1))

        assert result.interest == Decimal("7.00")


class TestVariableInterest:
    """Variable-rate accrual through the rate lookup seam."""

    @pytest.fixture
    def variable_case(self, make_case):
        return make_case(
            is_variable_interest=True,
            interest_rate=Decimal("5"),
            interest_start_date=date(2024, 1, 1),
        )

    def test_piecewise_rates(self, variable_case):
        result = FinancialLedger().accrue(variable_case, date(2025, 1, 1), rate_lookup=step_rate)

        # 1000 * 4 % * 182/366 + 1000 * 6 % * 184/366
        assert result.interest == Decimal("50.05")

    def test_rate_segments_group_equal_days(self):
        segments = FinancialLedger().rate_segments(date(2024, 6, 29), date(2024, 7, 3), step_rate)

        assert segments == [
            (date(2024, 6, 29), date(2024, 7, 1), Decimal("4")),
            (date(2024, 7, 1), date(2024, 7, 3), Decimal("6")),
        ]

    def test_end_date_is_ignored(self, variable_case):
        with_end = replace(variable_case, interest_end_date=date(2024, 2, 1))

        result = FinancialLedger().accrue(with_end, date(2025, 1, 1), rate_lookup=step_rate)

        assert result.interest == Decimal("50.05")

    def test_flat_rate_without_lookup(self, variable_case):
        result = FinancialLedger().accrue(variable_case, date(2025, 1, 1))

        assert result.interest == Decimal("50.00")

    def test_ledger_default_lookup(self, variable_case):
        ledger = FinancialLedger(rate_lookup=step_rate)

        assert ledger.accrue(variable_case, date(2025, 1, 1)).interest == Decimal("50.05")

    def test_base_rate_table_file(self, tmp_path, variable_case):
        rates_file = tmp_path / "basiszins.yaml"
        rates_file.write_text(
            "surcharge_points: 5\n"
            "rates:\n"
            "  - valid_from: 2023-07-01\n"
            "    base_rate: 3.12\n"
            "  - valid_from: 2024-01-01\n"
            "    base_rate: 3.62\n"
            "  - valid_from: 2024-07-01\n"
            "    base_rate: 3.37\n",
            encoding="utf-8",
        )
        table = BaseRateTable.from_file(rates_file)

        assert table.rate_at(date(2024, 3, 15)) == Decimal("8.62")
        result = FinancialLedger().accrue(variable_case, date(2025, 1, 1), rate_lookup=table)

        assert result.interest == Decimal("84.94")

    def test_base_rate_before_first_period(self):
        table = BaseRateTable([BaseRatePeriod(date(2024, 1, 1), Decimal("3.62"))], BUSINESS_SURCHARGE)

        assert table.rate_at(date(2024, 1, 1)) == Decimal("12.62")
        with pytest.raises(InvalidFinancialInputError):
            table.rate_at(date(2023, 12, 31))


class TestValidation:
    """Invalid inputs are rejected."""

    @pytest.mark.parametrize(
        "field",
        ["principal_amount", "costs", "interest", "additional_costs", "procedure_costs"],
    )
    def test_negative_amount(self, make_case, field):
        case = make_case(**{field: Decimal("-0.01")})

        with pytest.raises(InvalidFinancialInputError) as exc_info:
            FinancialLedger().accrue(case, date(2025, 1, 1))

        assert exc_info.value.context["field"] == field

    def test_negative_rate(self, make_case):
        case = make_case(interest_rate=Decimal("-1"), interest_start_date=date(2024, 1, 1))

        with pytest.raises(InvalidFinancialInputError):
            FinancialLedger().accrue(case, date(2025, 1, 1))

    def test_end_before_start(self, make_case):
        case = make_case(
            interest_rate=Decimal("5"),
            interest_start_date=date(2024, 6, 1),
            interest_end_date=date(2024, 5, 31),
        )

        with pytest.raises(InvalidFinancialInputError):
            FinancialLedger().accrue(case, date(2025, 1, 1))

    def test_negative_lookup_rate(self, make_case):
        case = make_case(is_variable_interest=True, interest_start_date=date(2024, 1, 1))

        with pytest.raises(InvalidFinancialInputError):
            FinancialLedger().accrue(case, date(2024, 2, 1), rate_lookup=lambda day: Decimal("-0.5"))


class TestLedgerProperties:
    """Idempotence and money identity."""

    def test_idempotent_and_pure(self, interest_case):
        ledger = FinancialLedger()
        before = interest_case.to_dict()

        first = ledger.accrue(interest_case, date(2024, 10, 3))
        second = ledger.accrue(interest_case, date(2024, 10, 3))

        assert first == second
        assert interest_case.to_dict() == before

    def test_apply_keeps_money_identity(self, make_case):
        case = make_case(
            costs=Decimal("55.10"),
            additional_costs=Decimal("12.00"),
            procedure_costs=Decimal("36.00"),
            interest_rate=Decimal("9.12"),
            interest_start_date=date(2024, 2, 14),
        )

        updated = FinancialLedger().apply(case, date(2024, 11, 30))

        assert updated.total_amount == (
            updated.principal_amount
            + updated.costs
            + updated.interest
            + updated.additional_costs
            + updated.procedure_costs
        )
        assert updated.interest > Decimal("0")
        assert case.interest == Decimal("0.00")


class TestYearFraction:
    def test_leap_year_is_one(self):
        assert year_fraction(date(2024, 1, 1), date(2025, 1, 1)) == Decimal(1)

    def test_act_365_leap_year(self):
        assert year_fraction(date(2024, 1, 1), date(2025, 1, 1), DAY_COUNT_ACT_365) == Decimal(366) / Decimal(365)

    def test_empty_interval(self):
        assert year_fraction(date(2024, 5, 1), date(2024, 4, 1)) == Decimal(0)
