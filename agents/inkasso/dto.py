"""Data Transfer Objects for the Inkasso engine.

Cases, inquiries and actors are immutable value objects that reference each
other by identifier only. Every engine operation returns a new snapshot and
leaves its input untouched.

Enumerations serialize through their string values. The value strings are
the persisted contract and must never be renamed; declaration order carries
no meaning.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_COURT = "Amtsgericht Coburg - Zentrales Mahngericht"


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Convert a value to a 2-decimal money amount (round half up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_timestamp(as_of: date | datetime | None) -> datetime:
    """UTC timestamp for an evaluation date; naive datetimes are taken as UTC."""
    if as_of is None:
        return datetime.now(UTC)
    if isinstance(as_of, datetime):
        return as_of if as_of.tzinfo else as_of.replace(tzinfo=UTC)
    return datetime.combine(as_of, time.min, tzinfo=UTC)


class CaseStatus(Enum):
    """Legal workflow status (ZPO dunning procedure)."""

    # Vorgerichtlich
    DRAFT = "DRAFT"
    NEW = "NEW"
    REMINDER_1 = "REMINDER_1"
    REMINDER_2 = "REMINDER_2"
    ADDRESS_RESEARCH = "ADDRESS_RESEARCH"
    # Gerichtliches Mahnverfahren
    PREPARE_MB = "PREPARE_MB"
    MB_REQUESTED = "MB_REQUESTED"
    MB_ISSUED = "MB_ISSUED"
    MB_OBJECTION = "MB_OBJECTION"
    # Vollstreckungsbescheid
    PREPARE_VB = "PREPARE_VB"
    VB_REQUESTED = "VB_REQUESTED"
    VB_ISSUED = "VB_ISSUED"
    TITLE_OBTAINED = "TITLE_OBTAINED"
    # Zwangsvollstreckung
    ENFORCEMENT_PREP = "ENFORCEMENT_PREP"
    GV_MANDATED = "GV_MANDATED"
    EV_TAKEN = "EV_TAKEN"
    # Abschluss
    PAID = "PAID"
    SETTLED = "SETTLED"
    INSOLVENCY = "INSOLVENCY"
    UNCOLLECTIBLE = "UNCOLLECTIBLE"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_court_related(self) -> bool:
        return self in COURT_STATUSES

    @classmethod
    def from_wire(cls, value: str) -> "CaseStatus":
        """Parse a persisted status string.

        Raises:
            ValueError: If the string is not a known status
        """
        try:
            return cls(value.strip().upper())
        except (AttributeError, ValueError):
            raise ValueError(f"Unknown case status: {value!r}") from None


TERMINAL_STATUSES = frozenset(
    {CaseStatus.PAID, CaseStatus.SETTLED, CaseStatus.INSOLVENCY, CaseStatus.UNCOLLECTIBLE}
)

# PREPARE_MB and every later court or enforcement step
COURT_STATUSES = frozenset(
    {
        CaseStatus.PREPARE_MB,
        CaseStatus.MB_REQUESTED,
        CaseStatus.MB_ISSUED,
        CaseStatus.MB_OBJECTION,
        CaseStatus.PREPARE_VB,
        CaseStatus.VB_REQUESTED,
        CaseStatus.VB_ISSUED,
        CaseStatus.TITLE_OBTAINED,
        CaseStatus.ENFORCEMENT_PREP,
        CaseStatus.GV_MANDATED,
        CaseStatus.EV_TAKEN,
    }
)

# Statuses counted as legal cases on the dashboard (MB_REQUESTED onwards)
LEGAL_STATUSES = COURT_STATUSES - {CaseStatus.PREPARE_MB}


class UserRole(Enum):
    """Roles of acting users."""

    ADMIN = "ADMIN"
    AGENT = "AGENT"  # Sachbearbeiter
    CLIENT = "CLIENT"  # Mandant / Gläubiger
    DEBTOR = "DEBTOR"  # Schuldner

    @classmethod
    def parse(cls, value: "UserRole | str | None") -> "UserRole | None":
        """Parse a role, returning None for unknown or missing values."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class InquiryStatus(Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class TransitionReason(Enum):
    """Named reason attached to a transition or acknowledgement."""

    DEBT_ACKNOWLEDGED = "DEBT_ACKNOWLEDGED"
    PAYMENT_ARRANGEMENT = "PAYMENT_ARRANGEMENT"
    PARTIAL_PAYMENT = "PARTIAL_PAYMENT"
    CLIENT_INSTRUCTION = "CLIENT_INSTRUCTION"

    @property
    def resets_limitations(self) -> bool:
        """Debtor acknowledgement restarts the limitation period (BGB § 212)."""
        return self in ACKNOWLEDGEMENT_REASONS


ACKNOWLEDGEMENT_REASONS = frozenset(
    {
        TransitionReason.DEBT_ACKNOWLEDGED,
        TransitionReason.PAYMENT_ARRANGEMENT,
        TransitionReason.PARTIAL_PAYMENT,
    }
)


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value.replace("Z", "+00:00")) if value else None


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Actor:
    """Acting user as resolved by the authentication layer."""

    user_id: str
    role: UserRole | None
    name: str = ""
    kreditor_id: str | None = None
    linked_debtor_id: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "role", UserRole.parse(self.role))

    @property
    def display_name(self) -> str:
        return self.name or self.user_id


@dataclass(frozen=True)
class CaseHistoryEntry:
    """Audit trail entry appended on every case change."""

    action: str
    actor: str
    timestamp: datetime
    from_status: CaseStatus | None = None
    to_status: CaseStatus | None = None
    details: str = ""
    reason: TransitionReason | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "actor": self.actor,
            "timestamp": self.timestamp.isoformat(),
            "from_status": self.from_status.value if self.from_status else None,
            "to_status": self.to_status.value if self.to_status else None,
            "details": self.details,
            "reason": self.reason.value if self.reason else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CaseHistoryEntry":
        return cls(
            action=data["action"],
            actor=data["actor"],
            timestamp=_parse_datetime(data["timestamp"]),
            from_status=CaseStatus.from_wire(data["from_status"]) if data.get("from_status") else None,
            to_status=CaseStatus.from_wire(data["to_status"]) if data.get("to_status") else None,
            details=data.get("details", ""),
            reason=TransitionReason(data["reason"]) if data.get("reason") else None,
        )


_MONEY_FIELDS = ("principal_amount", "costs", "interest", "additional_costs", "procedure_costs")


@dataclass(frozen=True)
class Case:
    """Collection case (Inkassofall)."""

    case_id: str
    kreditor_id: str
    debtor_id: str
    invoice_number: str
    invoice_date: date
    due_date: date
    principal_amount: Decimal
    agent_id: str | None = None
    costs: Decimal = ZERO
    interest: Decimal = ZERO
    additional_costs: Decimal = ZERO
    procedure_costs: Decimal = ZERO
    currency: str = "EUR"
    status: CaseStatus = CaseStatus.NEW
    date_of_origin: date | None = None
    next_action_date: date | None = None
    court_file_number: str | None = None
    competent_court: str = DEFAULT_COURT
    statute_of_limitations_date: date | None = None
    interest_rate: Decimal | None = None
    is_variable_interest: bool = False
    interest_start_date: date | None = None
    interest_end_date: date | None = None
    interest_on_costs: bool = False
    claim_description: str | None = None
    payment_allocation_notes: str | None = None
    history: tuple[CaseHistoryEntry, ...] = ()
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        for name in _MONEY_FIELDS:
            object.__setattr__(self, name, to_money(getattr(self, name)))
        if self.interest_rate is not None and not isinstance(self.interest_rate, Decimal):
            object.__setattr__(self, "interest_rate", Decimal(str(self.interest_rate)))
        if not isinstance(self.history, tuple):
            object.__setattr__(self, "history", tuple(self.history))

    @property
    def total_amount(self) -> Decimal:
        """Principal + costs + interest + additional costs + procedure costs."""
        return to_money(
            self.principal_amount
            + self.costs
            + self.interest
            + self.additional_costs
            + self.procedure_costs
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def with_history(self, entry: CaseHistoryEntry) -> "Case":
        return replace(self, history=self.history + (entry,))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "case_id": self.case_id,
            "kreditor_id": self.kreditor_id,
            "debtor_id": self.debtor_id,
            "agent_id": self.agent_id,
            "invoice_number": self.invoice_number,
            "invoice_date": self.invoice_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "date_of_origin": _iso(self.date_of_origin),
            "principal_amount": str(self.principal_amount),
            "costs": str(self.costs),
            "interest": str(self.interest),
            "additional_costs": str(self.additional_costs),
            "procedure_costs": str(self.procedure_costs),
            "total_amount": str(self.total_amount),
            "currency": self.currency,
            "status": self.status.value,
            "next_action_date": _iso(self.next_action_date),
            "court_file_number": self.court_file_number,
            "competent_court": self.competent_court,
            "statute_of_limitations_date": _iso(self.statute_of_limitations_date),
            "interest_rate": str(self.interest_rate) if self.interest_rate is not None else None,
            "is_variable_interest": self.is_variable_interest,
            "interest_start_date": _iso(self.interest_start_date),
            "interest_end_date": _iso(self.interest_end_date),
            "interest_on_costs": self.interest_on_costs,
            "claim_description": self.claim_description,
            "payment_allocation_notes": self.payment_allocation_notes,
            "history": [entry.to_dict() for entry in self.history],
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Case":
        """Create from dictionary. ``total_amount`` is derived and ignored."""
        rate = data.get("interest_rate")
        return cls(
            case_id=data["case_id"],
            kreditor_id=data["kreditor_id"],
            debtor_id=data["debtor_id"],
            agent_id=data.get("agent_id"),
            invoice_number=data["invoice_number"],
            invoice_date=_parse_date(data["invoice_date"]),
            due_date=_parse_date(data["due_date"]),
            date_of_origin=_parse_date(data.get("date_of_origin")),
            principal_amount=Decimal(data["principal_amount"]),
            costs=Decimal(data.get("costs", "0")),
            interest=Decimal(data.get("interest", "0")),
            additional_costs=Decimal(data.get("additional_costs", "0")),
            procedure_costs=Decimal(data.get("procedure_costs", "0")),
            currency=data.get("currency", "EUR"),
            status=CaseStatus.from_wire(data["status"]),
            next_action_date=_parse_date(data.get("next_action_date")),
            court_file_number=data.get("court_file_number"),
            competent_court=data.get("competent_court", DEFAULT_COURT),
            statute_of_limitations_date=_parse_date(data.get("statute_of_limitations_date")),
            interest_rate=Decimal(rate) if rate is not None else None,
            is_variable_interest=data.get("is_variable_interest", False),
            interest_start_date=_parse_date(data.get("interest_start_date")),
            interest_end_date=_parse_date(data.get("interest_end_date")),
            interest_on_costs=data.get("interest_on_costs", False),
            claim_description=data.get("claim_description"),
            payment_allocation_notes=data.get("payment_allocation_notes"),
            history=tuple(CaseHistoryEntry.from_dict(h) for h in data.get("history", [])),
            version=data.get("version", 0),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass(frozen=True)
class Inquiry:
    """Question by a client or debtor attached to one case."""

    inquiry_id: str
    case_id: str
    question: str
    created_by: str
    status: InquiryStatus = InquiryStatus.OPEN
    answer: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None

    def __post_init__(self):
        if (self.answer is None) != (self.resolved_at is None):
            raise ValueError("answer and resolved_at must be set together")
        if self.status == InquiryStatus.RESOLVED and self.answer is None:
            raise ValueError("resolved inquiry requires answer and resolved_at")
        if self.status == InquiryStatus.OPEN and self.answer is not None:
            raise ValueError("open inquiry cannot carry an answer")

    @classmethod
    def open(
        cls,
        case_id: str,
        question: str,
        created_by: str,
        now: datetime | None = None,
        inquiry_id: str | None = None,
    ) -> "Inquiry":
        """Create a new OPEN inquiry."""
        return cls(
            inquiry_id=inquiry_id or str(uuid4()),
            case_id=case_id,
            question=question,
            created_by=created_by,
            created_at=now or datetime.now(UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "inquiry_id": self.inquiry_id,
            "case_id": self.case_id,
            "question": self.question,
            "created_by": self.created_by,
            "status": self.status.value,
            "answer": self.answer,
            "resolved_at": _iso(self.resolved_at),
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Inquiry":
        return cls(
            inquiry_id=data["inquiry_id"],
            case_id=data["case_id"],
            question=data["question"],
            created_by=data["created_by"],
            status=InquiryStatus(data.get("status", "OPEN")),
            answer=data.get("answer"),
            resolved_at=_parse_datetime(data.get("resolved_at")),
            created_at=_parse_datetime(data.get("created_at")),
        )

