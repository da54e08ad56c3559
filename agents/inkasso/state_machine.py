"""Case status state machine.

Validates status changes against the legal process graph (vorgerichtliches
Mahnwesen, gerichtliches Mahnverfahren, Zwangsvollstreckung) and applies
their effects: interest accrual, next action date, limitation date and an
audit trail entry. Rejections are returned as typed failures; the input
case is never modified.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from backend.core.observability.metrics import (
    increment_case_transitions,
    increment_debt_acknowledged,
    increment_transition_rejected,
)

from .access import capabilities_for
from .config import InkassoConfig
from .dto import (
    TERMINAL_STATUSES,
    Case,
    CaseHistoryEntry,
    CaseStatus,
    TransitionReason,
    UserRole,
    to_timestamp,
)
from .errors import InkassoError, InvalidTransitionError, Result, UnauthorizedRoleError
from .ledger import FinancialLedger, RateLookup
from .scheduler import DeadlineScheduler

STATUS_CHANGE = "STATUS_CHANGE"
DEBT_ACKNOWLEDGED = "DEBT_ACKNOWLEDGED"

_PROCESS_GRAPH: dict[CaseStatus, frozenset[CaseStatus]] = {
    CaseStatus.DRAFT: frozenset({CaseStatus.NEW}),
    CaseStatus.NEW: frozenset({CaseStatus.REMINDER_1, CaseStatus.ADDRESS_RESEARCH}),
    CaseStatus.REMINDER_1: frozenset({CaseStatus.REMINDER_2, CaseStatus.ADDRESS_RESEARCH}),
    CaseStatus.REMINDER_2: frozenset({CaseStatus.ADDRESS_RESEARCH, CaseStatus.PREPARE_MB}),
    CaseStatus.ADDRESS_RESEARCH: frozenset(
        {CaseStatus.REMINDER_1, CaseStatus.REMINDER_2, CaseStatus.PREPARE_MB}
    ),
    CaseStatus.PREPARE_MB: frozenset({CaseStatus.MB_REQUESTED}),
    CaseStatus.MB_REQUESTED: frozenset({CaseStatus.MB_ISSUED}),
    CaseStatus.MB_ISSUED: frozenset({CaseStatus.MB_OBJECTION, CaseStatus.PREPARE_VB}),
    CaseStatus.MB_OBJECTION: frozenset({CaseStatus.PREPARE_VB}),
    CaseStatus.PREPARE_VB: frozenset({CaseStatus.VB_REQUESTED}),
    CaseStatus.VB_REQUESTED: frozenset({CaseStatus.VB_ISSUED}),
    CaseStatus.VB_ISSUED: frozenset({CaseStatus.TITLE_OBTAINED}),
    CaseStatus.TITLE_OBTAINED: frozenset({CaseStatus.ENFORCEMENT_PREP}),
    CaseStatus.ENFORCEMENT_PREP: frozenset({CaseStatus.GV_MANDATED}),
    CaseStatus.GV_MANDATED: frozenset({CaseStatus.EV_TAKEN}),
    CaseStatus.EV_TAKEN: frozenset(),
}

# Every open case may be closed directly; terminal statuses have no exits
TRANSITIONS: dict[CaseStatus, frozenset[CaseStatus]] = {
    status: (
        frozenset()
        if status in TERMINAL_STATUSES
        else _PROCESS_GRAPH[status] | TERMINAL_STATUSES
    )
    for status in CaseStatus
}


def allowed_transitions(status: CaseStatus) -> frozenset[CaseStatus]:
    """Statuses reachable from ``status`` in one step."""
    return TRANSITIONS[status]


def is_terminal(status: CaseStatus) -> bool:
    return not TRANSITIONS[status]


def can_transition(from_status: CaseStatus, to_status: CaseStatus) -> bool:
    return to_status in TRANSITIONS[from_status]


class CaseStateMachine:
    """Applies status transitions to case snapshots."""

    def __init__(
        self,
        config: Optional[InkassoConfig] = None,
        ledger: Optional[FinancialLedger] = None,
        scheduler: Optional[DeadlineScheduler] = None,
        rate_lookup: Optional[RateLookup] = None,
    ):
        """Initialize state machine.

        Args:
            config: Engine configuration
            ledger: Financial ledger (built from config if omitted)
            scheduler: Deadline scheduler (built from config if omitted)
            rate_lookup: Rate seam for variable-interest cases
        """
        self.config = config or InkassoConfig()
        self.ledger = ledger or FinancialLedger(self.config, rate_lookup)
        self.scheduler = scheduler or DeadlineScheduler(self.config)
        self.logger = logging.getLogger(__name__)

    def transition(
        self,
        case: Case,
        target_status: CaseStatus | str,
        actor_role: UserRole | str | None,
        as_of: date | datetime | None = None,
        *,
        actor_name: str = "system",
        reason: TransitionReason | str | None = None,
        note: Optional[str] = None,
        court_file_number: Optional[str] = None,
    ) -> Result[Case]:
        """Move a case to ``target_status``.

        Args:
            case: Current case snapshot
            target_status: Requested status
            actor_role: Role of the acting user
            as_of: Evaluation timestamp (defaults to now, UTC)
            actor_name: Name recorded in the audit trail
            reason: Named reason; acknowledgement reasons restart the
                limitation period
            note: Free text appended to the history details
            court_file_number: Aktenzeichen, once a court filing exists

        Returns:
            Updated case, or a failure carrying InvalidTransitionError,
            UnauthorizedRoleError or InvalidFinancialInputError
        """
        try:
            target = (
                target_status
                if isinstance(target_status, CaseStatus)
                else CaseStatus.from_wire(target_status)
            )
            reason = self._parse_reason(reason)
        except ValueError as e:
            return self._reject(case, InvalidTransitionError(str(e), case_id=case.case_id))

        source = case.status
        if is_terminal(source):
            return self._reject(
                case,
                InvalidTransitionError(
                    f"Fall {case.case_id} ist abgeschlossen ({source.value})",
                    case_id=case.case_id,
                    from_status=source.value,
                    to_status=target.value,
                ),
            )
        if not can_transition(source, target):
            return self._reject(
                case,
                InvalidTransitionError(
                    f"Statuswechsel {source.value} -> {target.value} nicht zulässig",
                    case_id=case.case_id,
                    from_status=source.value,
                    to_status=target.value,
                ),
            )
        if not capabilities_for(actor_role).can_transition_to(target):
            return self._reject(
                case,
                UnauthorizedRoleError(
                    f"Rolle {self._role_name(actor_role)} darf nicht nach {target.value} wechseln",
                    case_id=case.case_id,
                    role=self._role_name(actor_role),
                    to_status=target.value,
                ),
            )

        timestamp = to_timestamp(as_of)
        updated = replace(
            case,
            status=target,
            court_file_number=court_file_number or case.court_file_number,
        )

        details = f"Status changed from {source.value} to {target.value}"
        if note:
            details += f". Note: {note}"
        entry = CaseHistoryEntry(
            action=STATUS_CHANGE,
            actor=actor_name,
            timestamp=timestamp,
            from_status=source,
            to_status=target,
            details=details,
            reason=reason,
        )

        try:
            updated = self._recompute(updated, timestamp, reason).with_history(entry)
        except InkassoError as e:
            return self._reject(case, e)

        increment_case_transitions(source.value, target.value)
        self.logger.info(
            f"Case {case.case_id} moved from {source.value} to {target.value}",
            extra={
                "case_id": case.case_id,
                "from_status": source.value,
                "to_status": target.value,
                "actor_role": self._role_name(actor_role),
                "reason": reason.value if reason else None,
            },
        )
        return Result.success(updated)

    def acknowledge(
        self,
        case: Case,
        actor_role: UserRole | str | None,
        as_of: date | datetime | None = None,
        *,
        actor_name: str = "system",
        reason: TransitionReason | str = TransitionReason.DEBT_ACKNOWLEDGED,
        note: Optional[str] = None,
    ) -> Result[Case]:
        """Record a debt acknowledgement without changing the status.

        Restarts the limitation period from ``as_of`` (BGB § 212).

        Returns:
            Updated case, or a failure for closed cases, roles without
            transition rights and reasons that are no acknowledgement
        """
        try:
            reason = self._parse_reason(reason)
        except ValueError as e:
            return self._reject(case, InvalidTransitionError(str(e), case_id=case.case_id))

        if reason is None or not reason.resets_limitations:
            return self._reject(
                case,
                InvalidTransitionError(
                    f"{reason.value if reason else None} ist kein Anerkenntnis",
                    case_id=case.case_id,
                ),
            )
        if is_terminal(case.status):
            return self._reject(
                case,
                InvalidTransitionError(
                    f"Fall {case.case_id} ist abgeschlossen ({case.status.value})",
                    case_id=case.case_id,
                ),
            )
        if not capabilities_for(actor_role).may_transition:
            return self._reject(
                case,
                UnauthorizedRoleError(
                    f"Rolle {self._role_name(actor_role)} darf kein Anerkenntnis erfassen",
                    case_id=case.case_id,
                    role=self._role_name(actor_role),
                ),
            )

        timestamp = to_timestamp(as_of)
        details = f"Debt acknowledged ({reason.value})"
        if note:
            details += f". Note: {note}"
        entry = CaseHistoryEntry(
            action=DEBT_ACKNOWLEDGED,
            actor=actor_name,
            timestamp=timestamp,
            details=details,
            reason=reason,
        )
        try:
            updated = self._recompute(case, timestamp, reason).with_history(entry)
        except InkassoError as e:
            return self._reject(case, e)

        increment_debt_acknowledged()
        self.logger.info(
            f"Debt acknowledgement recorded for case {case.case_id}",
            extra={
                "case_id": case.case_id,
                "reason": reason.value,
                "statute_of_limitations_date": updated.statute_of_limitations_date.isoformat(),
            },
        )
        return Result.success(updated)

    def _recompute(self, case: Case, timestamp: datetime, reason: Optional[TransitionReason]) -> Case:
        day = timestamp.date()
        case = self.ledger.apply(case, day)
        return replace(
            case,
            next_action_date=self.scheduler.schedule_next_action(case, day),
            statute_of_limitations_date=self.scheduler.compute_limitations(case, day, reason=reason),
            updated_at=timestamp,
        )

    def _reject(self, case: Case, error: InkassoError) -> Result[Case]:
        increment_transition_rejected(error.code)
        self.logger.warning(
            f"Rejected change on case {case.case_id}: {error.message}",
            extra={"case_id": case.case_id, "error_code": error.code},
        )
        return Result.failure(error)

    @staticmethod
    def _parse_reason(reason: TransitionReason | str | None) -> Optional[TransitionReason]:
        if reason is None or isinstance(reason, TransitionReason):
            return reason
        try:
            return TransitionReason(reason.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown transition reason: {reason!r}") from None

    @staticmethod
    def _role_name(role: UserRole | str | None) -> str:
        parsed = UserRole.parse(role)
        return parsed.value if parsed else "NONE"
