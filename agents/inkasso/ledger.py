"""Financial ledger for collection cases.

Pure computation of accrued interest and total claim amount as of an
evaluation date. Interest is simple (non-compounding) interest. Rounding
happens once per result, never per segment.
"""

import calendar
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

from .config import DAY_COUNT_ACT_365, DAY_COUNT_ACT_ACT, InkassoConfig
from .dto import Case, to_money
from .errors import InvalidFinancialInputError

RateLookup = Callable[[date], Decimal]

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class LedgerResult:
    """Accrued interest and resulting total claim amount."""

    interest: Decimal
    total_amount: Decimal
    accrued_days: int = 0
    from_stored_interest: bool = False

    def to_dict(self) -> dict:
        return {
            "interest": str(self.interest),
            "total_amount": str(self.total_amount),
            "accrued_days": self.accrued_days,
            "from_stored_interest": self.from_stored_interest,
        }


def year_fraction(start: date, end: date, basis: str = DAY_COUNT_ACT_ACT) -> Decimal:
    """Fraction of a year between ``start`` (inclusive) and ``end`` (exclusive).

    ACT/ACT counts the days falling into each calendar year over that year's
    length (365 or 366), so a full calendar year is exactly 1. ACT/365
    divides the plain day count by 365.
    """
    if end <= start:
        return Decimal(0)
    if basis == DAY_COUNT_ACT_365:
        return Decimal((end - start).days) / Decimal(365)

    fraction = Decimal(0)
    cursor = start
    while cursor < end:
        chunk_end = min(date(cursor.year + 1, 1, 1), end)
        year_length = 366 if calendar.isleap(cursor.year) else 365
        fraction += Decimal((chunk_end - cursor).days) / Decimal(year_length)
        cursor = chunk_end
    return fraction


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _percent(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class FinancialLedger:
    """Interest accrual and total calculation.

    All methods are pure functions of their inputs.
    """

    def __init__(self, config: Optional[InkassoConfig] = None, rate_lookup: Optional[RateLookup] = None):
        """Initialize ledger.

        Args:
            config: Engine configuration (day count basis)
            rate_lookup: Default rate seam for variable-interest cases
        """
        self.config = config or InkassoConfig()
        self.rate_lookup = rate_lookup

    def validate(self, case: Case) -> None:
        """Check monetary inputs and interest window.

        Raises:
            InvalidFinancialInputError: On a negative amount or rate, or an
                interest end date before the start date
        """
        for name in ("principal_amount", "costs", "interest", "additional_costs", "procedure_costs"):
            amount = getattr(case, name)
            if amount < 0:
                raise InvalidFinancialInputError(
                    f"Negativer Betrag in {name}: {amount}",
                    case_id=case.case_id,
                    field=name,
                )
        if case.interest_rate is not None and case.interest_rate < 0:
            raise InvalidFinancialInputError(
                f"Negativer Zinssatz: {case.interest_rate}",
                case_id=case.case_id,
                field="interest_rate",
            )
        if (
            case.interest_start_date is not None
            and case.interest_end_date is not None
            and case.interest_end_date < case.interest_start_date
        ):
            raise InvalidFinancialInputError(
                "Zinsende liegt vor Zinsbeginn",
                case_id=case.case_id,
                interest_start_date=case.interest_start_date.isoformat(),
                interest_end_date=case.interest_end_date.isoformat(),
            )

    def interest_base(self, case: Case) -> Decimal:
        """Amount interest accrues on."""
        base = case.principal_amount
        if case.interest_on_costs:
            base += case.additional_costs + case.procedure_costs
        return base

    def accrual_window(self, case: Case, as_of: date) -> tuple[date, date]:
        """Start (inclusive) and end (exclusive) of the accrual period.

        Variable-rate cases ignore the interest end date.
        """
        start = max(case.interest_start_date, case.invoice_date)
        end = as_of
        if not case.is_variable_interest and case.interest_end_date is not None:
            end = min(end, case.interest_end_date)
        return start, end

    def accrue(self, case: Case, as_of: date | datetime, rate_lookup: Optional[RateLookup] = None) -> LedgerResult:
        """Compute interest and total as of ``as_of``.

        Args:
            case: Case snapshot (not modified)
            as_of: Evaluation date
            rate_lookup: Rate seam overriding the ledger default

        Returns:
            Ledger result; cases without interest configuration keep their
            stored interest

        Raises:
            InvalidFinancialInputError: If the inputs are invalid
        """
        self.validate(case)
        as_of = _as_date(as_of)
        lookup = rate_lookup or self.rate_lookup

        if not self._has_interest_config(case, lookup):
            return LedgerResult(
                interest=case.interest,
                total_amount=self._total(case, case.interest),
                from_stored_interest=True,
            )

        start, end = self.accrual_window(case, as_of)
        if end <= start:
            return LedgerResult(interest=to_money(0), total_amount=self._total(case, Decimal(0)))

        base = self.interest_base(case)
        if case.is_variable_interest and lookup is not None:
            raw = sum(
                (
                    base * rate / Decimal(100) * year_fraction(seg_start, seg_end, self.config.day_count_basis)
                    for seg_start, seg_end, rate in self.rate_segments(start, end, lookup)
                ),
                Decimal(0),
            )
        else:
            raw = (
                base
                * case.interest_rate
                / Decimal(100)
                * year_fraction(start, end, self.config.day_count_basis)
            )

        interest = to_money(max(raw, Decimal(0)))
        return LedgerResult(
            interest=interest,
            total_amount=self._total(case, interest),
            accrued_days=(end - start).days,
        )

    def apply(self, case: Case, as_of: date | datetime, rate_lookup: Optional[RateLookup] = None) -> Case:
        """Return a copy of ``case`` carrying the accrued interest."""
        result = self.accrue(case, as_of, rate_lookup)
        return replace(case, interest=result.interest)

    def rate_segments(self, start: date, end: date, lookup: RateLookup) -> list[tuple[date, date, Decimal]]:
        """Split ``[start, end)`` into runs of consecutive days sharing a rate.

        Raises:
            InvalidFinancialInputError: If the lookup yields a negative rate
        """
        segments = []
        seg_start = start
        seg_rate = self._checked_rate(lookup, start)
        day = start + ONE_DAY
        while day < end:
            rate = self._checked_rate(lookup, day)
            if rate != seg_rate:
                segments.append((seg_start, day, seg_rate))
                seg_start, seg_rate = day, rate
            day += ONE_DAY
        segments.append((seg_start, end, seg_rate))
        return segments

    @staticmethod
    def _checked_rate(lookup: RateLookup, day: date) -> Decimal:
        rate = _percent(lookup(day))
        if rate < 0:
            raise InvalidFinancialInputError(
                f"Negativer Zinssatz am {day.isoformat()}: {rate}", day=day.isoformat()
            )
        return rate

    @staticmethod
    def _has_interest_config(case: Case, lookup: Optional[RateLookup]) -> bool:
        if case.interest_start_date is None:
            return False
        if case.interest_rate is not None:
            return True
        return case.is_variable_interest and lookup is not None

    @staticmethod
    def _total(case: Case, interest: Decimal) -> Decimal:
        # Single rounding at summation
        return to_money(
            case.principal_amount
            + case.costs
            + interest
            + case.additional_costs
            + case.procedure_costs
        )
