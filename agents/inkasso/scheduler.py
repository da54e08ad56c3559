"""Deadline scheduling for collection cases.

Derives the next processing date from the case status and the statute of
limitations date (Verjährung) from the claim dates.
"""

from datetime import UTC, date, datetime
from typing import Optional

from .config import InkassoConfig
from .dto import Case, CaseStatus, TransitionReason

# Statuses at which an enforceable title exists (BGB § 197 Abs. 1 Nr. 3)
TITLED_STATUSES = frozenset(
    {
        CaseStatus.VB_ISSUED,
        CaseStatus.TITLE_OBTAINED,
        CaseStatus.ENFORCEMENT_PREP,
        CaseStatus.GV_MANDATED,
        CaseStatus.EV_TAKEN,
    }
)

# Entering these statuses extends the limitation period to the title period
TITLE_EVENTS = frozenset({CaseStatus.VB_ISSUED, CaseStatus.TITLE_OBTAINED})


def add_years(day: date, years: int) -> date:
    """Add calendar years; 29 February maps to 28 February in common years."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def _as_date(value: date | datetime | None) -> date:
    if value is None:
        return datetime.now(UTC).date()
    return value.date() if isinstance(value, datetime) else value


class DeadlineScheduler:
    """Next action and limitation date calculation.

    Deterministic for a given policy; the clock is only read when no
    evaluation date is passed.
    """

    def __init__(self, config: Optional[InkassoConfig] = None):
        self.config = config or InkassoConfig()

    def schedule_next_action(self, case: Case, as_of: date | datetime | None = None) -> Optional[date]:
        """Next action date for the case's current status.

        Args:
            case: Case snapshot
            as_of: Evaluation date (defaults to today, UTC)

        Returns:
            Next action date, or None for terminal statuses
        """
        offset = self.config.deadline_policy.offset_for(case.status)
        if offset is None:
            return None
        return date.fromordinal(_as_date(as_of).toordinal() + offset)

    def regular_limitations(self, case: Case) -> date:
        """End of the regular period (BGB §§ 195, 199).

        The period starts at the end of the year the claim arose in and runs
        for ``limitation_years`` full calendar years.
        """
        origin = case.date_of_origin or case.due_date
        return date(origin.year + self.config.limitation_years, 12, 31)

    def compute_limitations(
        self,
        case: Case,
        as_of: date | datetime | None = None,
        *,
        reason: Optional[TransitionReason] = None,
    ) -> Optional[date]:
        """Statute of limitations date after the case reached its status.

        An acknowledgement reason restarts the applicable period from
        ``as_of`` (BGB § 212) and replaces the stored date, even if earlier.
        Otherwise the date never decreases.

        Args:
            case: Case snapshot carrying the new status
            as_of: Evaluation date (defaults to today, UTC)
            reason: Named reason attached to the change

        Returns:
            Limitation date
        """
        as_of = _as_date(as_of)

        if reason is not None and reason.resets_limitations:
            years = (
                self.config.title_limitation_years
                if case.status in TITLED_STATUSES
                else self.config.limitation_years
            )
            return add_years(as_of, years)

        candidate = self.regular_limitations(case)
        if case.status in TITLE_EVENTS:
            candidate = max(candidate, add_years(as_of, self.config.title_limitation_years))

        stored = case.statute_of_limitations_date
        if stored is not None and stored > candidate:
            return stored
        return candidate
