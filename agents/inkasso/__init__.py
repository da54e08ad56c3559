"""Inkasso engine - case lifecycle and financial accrual for German debt collection.

This module drives collection cases through the statutory dunning procedure:
unpaid invoice, reminders, Mahnbescheid, Vollstreckungsbescheid, bailiff
mandate, and finally settlement or write-off.

Key Components:
- CaseStateMachine: Validated status transitions with audit trail
- FinancialLedger: Interest accrual and total claim amount
- DeadlineScheduler: Next action date and statute of limitations
- AccessScope: Role and tenant visibility of cases and inquiries
- InquiryWorkflow: Open/resolve workflow for client and debtor questions
- InkassoService: Store-backed entry points for the API layer

All components operate on immutable snapshots and return new state.
"""

__version__ = "1.0.0"
__author__ = "0Admin-NEXT Team"

from .access import AccessScope, AgentAssignments, RoleCapabilities, visible_cases
from .config import DeadlinePolicy, InkassoConfig
from .dto import (
    Actor,
    Case,
    CaseHistoryEntry,
    CaseStatus,
    Inquiry,
    InquiryStatus,
    TransitionReason,
    UserRole,
)
from .errors import (
    ConcurrencyConflictError,
    InkassoError,
    InvalidFinancialInputError,
    InvalidInquiryAnswerError,
    InvalidTransitionError,
    NotFoundError,
    Result,
    UnauthorizedRoleError,
)
from .inquiry import InquiryWorkflow
from .ledger import FinancialLedger, LedgerResult
from .scheduler import DeadlineScheduler
from .service import CaseFilters, CasePage, InkassoService
from .state_machine import CaseStateMachine

__all__ = [
    "AccessScope",
    "AgentAssignments",
    "RoleCapabilities",
    "visible_cases",
    "DeadlinePolicy",
    "InkassoConfig",
    "Actor",
    "Case",
    "CaseHistoryEntry",
    "CaseStatus",
    "Inquiry",
    "InquiryStatus",
    "TransitionReason",
    "UserRole",
    "InkassoError",
    "InvalidTransitionError",
    "UnauthorizedRoleError",
    "InvalidFinancialInputError",
    "InvalidInquiryAnswerError",
    "ConcurrencyConflictError",
    "NotFoundError",
    "Result",
    "InquiryWorkflow",
    "FinancialLedger",
    "LedgerResult",
    "DeadlineScheduler",
    "CaseFilters",
    "CasePage",
    "InkassoService",
    "CaseStateMachine",
]
