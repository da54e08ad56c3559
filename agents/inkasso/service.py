"""Service layer exposing the engine to the API layer.

Loads snapshots from the store, runs them through the engine components and
persists the outcome. Every public operation returns a ``Result``, a page or
a plain list; nothing here raises for expected business failures.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from backend.core.config import settings
from backend.core.observability.metrics import record_accrual_duration

from .access import AccessScope, AgentAssignments, capabilities_for
from .base_rates import BaseRateTable
from .config import InkassoConfig
from .dto import Actor, Case, CaseHistoryEntry, CaseStatus, Inquiry, InquiryStatus, TransitionReason
from .errors import ConcurrencyConflictError, InkassoError, NotFoundError, Result
from .inquiry import InquiryWorkflow
from .kpi import PortfolioKPI, PortfolioStats
from .ledger import FinancialLedger, LedgerResult, RateLookup
from .state_machine import CaseStateMachine, allowed_transitions
from .store import INQUIRY_VALIDATOR, CaseStore

INQUIRY_RESOLVED = "INQUIRY_RESOLVED"


class CaseFilters(BaseModel):
    """Listing filters, applied after access scoping."""

    status: CaseStatus | None = Field(None, description="Exact status")
    kreditor_id: str | None = Field(None, description="Owning creditor")
    debtor_id: str | None = Field(None, description="Debtor")
    agent_id: str | None = Field(None, description="Assigned agent")
    min_amount: Decimal | None = Field(None, ge=0, description="Lower bound on total amount")
    max_amount: Decimal | None = Field(None, ge=0, description="Upper bound on total amount")
    page: int = Field(1, ge=1, description="1-based page number")
    page_size: int = Field(20, ge=1, le=settings.READ_MAX_LIMIT, description="Cases per page")

    def matches(self, case: Case) -> bool:
        if self.status is not None and case.status != self.status:
            return False
        if self.kreditor_id is not None and case.kreditor_id != self.kreditor_id:
            return False
        if self.debtor_id is not None and case.debtor_id != self.debtor_id:
            return False
        if self.agent_id is not None and case.agent_id != self.agent_id:
            return False
        total = case.total_amount
        if self.min_amount is not None and total < self.min_amount:
            return False
        if self.max_amount is not None and total > self.max_amount:
            return False
        return True

    def paginate(self, cases: list[Case]) -> "CasePage":
        start = (self.page - 1) * self.page_size
        return CasePage(
            items=cases[start : start + self.page_size],
            page=self.page,
            page_size=self.page_size,
            total_count=len(cases),
        )


@dataclass
class CasePage:
    """One page of a case listing."""

    items: list[Case] = field(default_factory=list)
    page: int = 1
    page_size: int = 20
    total_count: int = 0  # matches across all pages

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class InkassoService:
    """Entry points for case transitions, financials, listings and inquiries."""

    def __init__(
        self,
        store: CaseStore,
        config: Optional[InkassoConfig] = None,
        assignments: Optional[AgentAssignments] = None,
        rate_lookup: Optional[RateLookup] = None,
    ):
        """Initialize service.

        Args:
            store: Persistence collaborator
            config: Engine configuration
            assignments: Agent to creditor mapping for access scoping
            rate_lookup: Rate seam for variable-interest cases
        """
        self.store = store
        self.config = config or InkassoConfig()
        self.access = AccessScope(assignments)
        self.ledger = FinancialLedger(self.config, rate_lookup)
        self.state_machine = CaseStateMachine(self.config, ledger=self.ledger)
        self.inquiries = InquiryWorkflow(self.config)
        self.kpi = PortfolioKPI()
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls) -> "InkassoService":
        """Build a service from the INKASSO_* settings."""
        config = (
            InkassoConfig.from_yaml(settings.INKASSO_POLICY_PATH)
            if settings.INKASSO_POLICY_PATH
            else InkassoConfig()
        )
        assignments = (
            AgentAssignments.from_file(settings.INKASSO_ASSIGNMENTS_PATH)
            if settings.INKASSO_ASSIGNMENTS_PATH
            else AgentAssignments()
        )
        rate_lookup = (
            BaseRateTable.from_file(settings.INKASSO_BASE_RATE_PATH)
            if settings.INKASSO_BASE_RATE_PATH
            else None
        )
        return cls(
            CaseStore(settings.INKASSO_STORE_PATH or None),
            config=config,
            assignments=assignments,
            rate_lookup=rate_lookup,
        )

    # Cases ------------------------------------------------------------

    def transition_case(
        self,
        case_id: str,
        target_status: CaseStatus | str,
        actor: Actor,
        as_of: date | datetime | None = None,
        *,
        reason: TransitionReason | str | None = None,
        note: Optional[str] = None,
        court_file_number: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Result[Case]:
        """Transition a case and persist it.

        Args:
            case_id: Case to change
            target_status: Requested status
            actor: Acting user
            as_of: Evaluation timestamp (defaults to now)
            reason: Named transition reason
            note: Free text for the audit trail
            court_file_number: Aktenzeichen to record
            expected_version: Version the caller loaded; defaults to the
                version read here

        Returns:
            Stored case, or the failure from lookup, state machine or store
        """
        loaded = self._visible_case(case_id, actor)
        if not loaded.ok:
            return loaded
        case = loaded.value

        result = self.state_machine.transition(
            case,
            target_status,
            actor.role,
            as_of,
            actor_name=actor.display_name,
            reason=reason,
            note=note,
            court_file_number=court_file_number,
        )
        if not result.ok:
            return result
        return self._save(result.value, case.version if expected_version is None else expected_version)

    def acknowledge_debt(
        self,
        case_id: str,
        actor: Actor,
        as_of: date | datetime | None = None,
        *,
        reason: TransitionReason | str = TransitionReason.DEBT_ACKNOWLEDGED,
        note: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Result[Case]:
        """Record a debt acknowledgement and persist the restarted limitation date."""
        loaded = self._visible_case(case_id, actor)
        if not loaded.ok:
            return loaded
        case = loaded.value

        result = self.state_machine.acknowledge(
            case, actor.role, as_of, actor_name=actor.display_name, reason=reason, note=note
        )
        if not result.ok:
            return result
        return self._save(result.value, case.version if expected_version is None else expected_version)

    def recompute_financials(self, case_id: str, as_of: date | datetime | None = None) -> Result[LedgerResult]:
        """Interest and total of a stored case as of ``as_of`` (not persisted)."""
        try:
            case = self.store.get_case(case_id)
        except NotFoundError as e:
            return Result.failure(e)

        started = time.perf_counter()
        try:
            result = self.ledger.accrue(case, as_of or datetime.now(UTC).date())
        except InkassoError as e:
            return Result.failure(e)
        finally:
            record_accrual_duration((time.perf_counter() - started) * 1000)
        return Result.success(result)

    def list_visible_cases(self, actor: Actor, filters: Optional[CaseFilters] = None) -> CasePage:
        """Cases the actor may see, filtered and paginated, ordered by case id.

        Returns:
            Requested page together with the total number of matches
        """
        filters = filters or CaseFilters()
        visible = self.access.filter_cases(actor, self.store.all_cases())
        matching = sorted((case for case in visible if filters.matches(case)), key=lambda c: c.case_id)
        return filters.paginate(matching)

    def get_case_history(self, case_id: str, actor: Actor) -> Result[tuple[CaseHistoryEntry, ...]]:
        loaded = self._visible_case(case_id, actor)
        if not loaded.ok:
            return Result.failure(loaded.error)
        return Result.success(loaded.value.history)

    def allowed_transitions(self, case_id: str, actor: Actor) -> Result[list[CaseStatus]]:
        """Statuses the actor could move the case to, in declaration order."""
        loaded = self._visible_case(case_id, actor)
        if not loaded.ok:
            return Result.failure(loaded.error)
        capabilities = capabilities_for(actor.role)
        reachable = allowed_transitions(loaded.value.status)
        return Result.success(
            [status for status in CaseStatus if status in reachable and capabilities.can_transition_to(status)]
        )

    def due_actions(self, actor: Actor, as_of: date | datetime | None = None) -> list[Case]:
        """Open cases whose next action date is on or before ``as_of``."""
        if as_of is None:
            as_of = datetime.now(UTC).date()
        elif isinstance(as_of, datetime):
            as_of = as_of.date()
        due = [
            case
            for case in self.access.filter_cases(actor, self.store.all_cases())
            if not case.is_terminal and case.next_action_date is not None and case.next_action_date <= as_of
        ]
        return sorted(due, key=lambda c: (c.next_action_date, c.case_id))

    def portfolio_stats(self, actor: Actor) -> PortfolioStats:
        return self.kpi.compute(self.access.filter_cases(actor, self.store.all_cases()))

    # Inquiries --------------------------------------------------------

    def resolve_inquiry(
        self,
        inquiry_id: str,
        answer: str,
        actor: Actor,
        as_of: date | datetime | None = None,
    ) -> Result[Inquiry]:
        """Answer an inquiry and note it in the parent case history.

        Returns:
            Resolved inquiry, or NotFoundError when the inquiry or its case
            is unknown or invisible to the actor, or the workflow failure
        """
        try:
            inquiry = self.store.get_inquiry(inquiry_id)
        except NotFoundError as e:
            return Result.failure(e)

        loaded = self._visible_case(inquiry.case_id, actor)
        if not loaded.ok:
            return Result.failure(
                NotFoundError(f"Anfrage {inquiry_id} nicht gefunden", inquiry_id=inquiry_id)
            )
        case = loaded.value

        result = self.inquiries.resolve(inquiry, answer, actor.role, as_of)
        if not result.ok:
            return result
        resolved = result.value
        INQUIRY_VALIDATOR.validate(resolved.to_dict())

        entry = CaseHistoryEntry(
            action=INQUIRY_RESOLVED,
            actor=actor.display_name,
            timestamp=resolved.resolved_at,
            details=f"Inquiry {inquiry_id} resolved",
        )
        try:
            self.store.save_case(case.with_history(entry), case.version)
        except ConcurrencyConflictError as e:
            return Result.failure(e)
        self.store.save_inquiry(resolved)
        return Result.success(resolved)

    def list_visible_inquiries(self, actor: Actor, status: InquiryStatus | None = None) -> list[Inquiry]:
        inquiries = self.store.all_inquiries()
        if status is not None:
            inquiries = [inquiry for inquiry in inquiries if inquiry.status == status]
        visible = self.access.filter_inquiries(actor, inquiries, self.store.find_case)
        return sorted(visible, key=lambda i: (i.created_at or datetime.min.replace(tzinfo=UTC), i.inquiry_id))

    # Internal helpers -------------------------------------------------

    def _visible_case(self, case_id: str, actor: Actor) -> Result[Case]:
        # Invisible cases are reported as missing
        case = self.store.find_case(case_id)
        if case is None or not self.access.can_view(actor, case):
            return Result.failure(NotFoundError(f"Fall {case_id} nicht gefunden", case_id=case_id))
        return Result.success(case)

    def _save(self, case: Case, expected_version: int) -> Result[Case]:
        try:
            saved = self.store.save_case(case, expected_version)
        except (ConcurrencyConflictError, NotFoundError) as e:
            self.logger.warning(
                f"Could not store case {case.case_id}: {e.message}",
                extra={"case_id": case.case_id, "error_code": e.code},
            )
            return Result.failure(e)
        return Result.success(saved)
