"""Configuration management for the Inkasso engine.

Provides creditor-specific configuration with sensible defaults,
environment-based overrides and an optional YAML policy file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .dto import CaseStatus

DAY_COUNT_ACT_ACT = "ACT/ACT"
DAY_COUNT_ACT_365 = "ACT/365"
DAY_COUNT_BASES = (DAY_COUNT_ACT_ACT, DAY_COUNT_ACT_365)

# Days until the next processing step, per status
DEFAULT_NEXT_ACTION_DAYS: Dict[CaseStatus, int] = {
    CaseStatus.DRAFT: 1,
    CaseStatus.NEW: 7,
    CaseStatus.REMINDER_1: 14,
    CaseStatus.REMINDER_2: 14,
    CaseStatus.ADDRESS_RESEARCH: 30,
    CaseStatus.PREPARE_MB: 3,
    CaseStatus.MB_REQUESTED: 21,
    CaseStatus.MB_ISSUED: 14,
    CaseStatus.MB_OBJECTION: 14,
    CaseStatus.PREPARE_VB: 3,
    CaseStatus.VB_REQUESTED: 14,
    CaseStatus.VB_ISSUED: 14,
    CaseStatus.TITLE_OBTAINED: 7,
    CaseStatus.ENFORCEMENT_PREP: 7,
    CaseStatus.GV_MANDATED: 30,
    CaseStatus.EV_TAKEN: 60,
}


@dataclass(frozen=True)
class DeadlinePolicy:
    """Per-status offsets (days) for the next processing step.

    Terminal statuses never have a next action. Statuses missing from the
    table fall back to ``default_days``.
    """

    days: Dict[CaseStatus, int] = field(
        default_factory=lambda: dict(DEFAULT_NEXT_ACTION_DAYS)
    )
    default_days: int = 7

    def offset_for(self, status: CaseStatus) -> Optional[int]:
        """Get the offset for a status.

        Args:
            status: Case status after the transition

        Returns:
            Offset in days, or None for terminal statuses
        """
        if status.is_terminal:
            return None
        return self.days.get(status, self.default_days)

    def with_overrides(self, overrides: Dict[str, Any]) -> "DeadlinePolicy":
        """Return a copy with offsets replaced by status name."""
        days = dict(self.days)
        for name, value in overrides.items():
            status = CaseStatus.from_wire(name)
            if status.is_terminal:
                raise ValueError(f"Terminal status {status.value} has no next action")
            offset = int(value)
            if offset < 0:
                raise ValueError(f"Negative offset for {status.value}: {offset}")
            days[status] = offset
        return DeadlinePolicy(days=days, default_days=self.default_days)

    def to_dict(self) -> Dict[str, int]:
        return {status.value: offset for status, offset in self.days.items()}


@dataclass
class InkassoConfig:
    """Configuration for collection case processing.

    Supports creditor-specific overrides via environment variables
    with pattern: INKASSO_<KREDITOR_ID>_<SETTING>
    """

    kreditor_id: Optional[str] = None

    # Next action scheduling
    deadline_policy: DeadlinePolicy = field(default_factory=DeadlinePolicy)

    # Regelverjährung (BGB § 195) and titulierte Ansprüche (BGB § 197)
    limitation_years: int = 3
    title_limitation_years: int = 30

    # Interest day count basis
    day_count_basis: str = DAY_COUNT_ACT_ACT

    default_currency: str = "EUR"

    # Inquiry answer bounds (characters, after trimming)
    answer_min_length: int = 10
    answer_max_length: int = 2000

    def __post_init__(self):
        if self.day_count_basis not in DAY_COUNT_BASES:
            raise ValueError(f"Unknown day count basis: {self.day_count_basis}")

    @classmethod
    def from_kreditor(cls, kreditor_id: str) -> "InkassoConfig":
        """Create configuration for a specific creditor.

        Args:
            kreditor_id: Identifier of the creditor (tenant)

        Returns:
            Configured instance with creditor-specific overrides
        """
        config = cls(kreditor_id=kreditor_id)

        prefix = f"INKASSO_{kreditor_id.upper().replace('-', '_')}"

        config.limitation_years = int(
            os.getenv(f"{prefix}_LIMITATION_YEARS", config.limitation_years)
        )
        config.title_limitation_years = int(
            os.getenv(f"{prefix}_TITLE_LIMITATION_YEARS", config.title_limitation_years)
        )
        config.day_count_basis = os.getenv(
            f"{prefix}_DAY_COUNT_BASIS", config.day_count_basis
        )
        config.default_currency = os.getenv(
            f"{prefix}_CURRENCY", config.default_currency
        )
        config.answer_min_length = int(
            os.getenv(f"{prefix}_ANSWER_MIN_LENGTH", config.answer_min_length)
        )
        config.answer_max_length = int(
            os.getenv(f"{prefix}_ANSWER_MAX_LENGTH", config.answer_max_length)
        )

        # Per-status offsets, e.g. INKASSO_ACME_DAYS_REMINDER_1=10
        overrides = {
            status.value: os.environ[f"{prefix}_DAYS_{status.value}"]
            for status in DEFAULT_NEXT_ACTION_DAYS
            if f"{prefix}_DAYS_{status.value}" in os.environ
        }
        if overrides:
            config.deadline_policy = config.deadline_policy.with_overrides(overrides)

        if config.day_count_basis not in DAY_COUNT_BASES:
            raise ValueError(f"Unknown day count basis: {config.day_count_basis}")

        return config

    @classmethod
    def from_yaml(cls, path: str | Path) -> "InkassoConfig":
        """Load configuration from a YAML policy file.

        Expected layout::

            day_count_basis: ACT/ACT
            limitation_years: 3
            next_action_days:
              REMINDER_1: 10

        Args:
            path: Path to the YAML file

        Returns:
            Configured instance

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file contains unknown statuses or settings
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        overrides = data.pop("next_action_days", None) or {}
        known = {
            "kreditor_id",
            "limitation_years",
            "title_limitation_years",
            "day_count_basis",
            "default_currency",
            "answer_min_length",
            "answer_max_length",
        }
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown settings in {path}: {sorted(unknown)}")

        config = cls(**data)
        if overrides:
            config.deadline_policy = config.deadline_policy.with_overrides(overrides)
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        return {
            "kreditor_id": self.kreditor_id,
            "next_action_days": self.deadline_policy.to_dict(),
            "limitation_years": self.limitation_years,
            "title_limitation_years": self.title_limitation_years,
            "day_count_basis": self.day_count_basis,
            "default_currency": self.default_currency,
            "answer_min_length": self.answer_min_length,
            "answer_max_length": self.answer_max_length,
        }
