"""JSON-backed persistence for cases and inquiries.

Reference collaborator for the engine: keeps records in memory and, when a
path is configured, mirrors them to a single JSON document. Every record is
validated against its JSON Schema on load and on save. Case writes use
optimistic concurrency on ``Case.version``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from backend.core.observability.metrics import increment_concurrency_conflicts

from .dto import Case, Inquiry
from .errors import ConcurrencyConflictError, NotFoundError

SCHEMA_DIR = Path(__file__).parent / "schemas"


def _load_validator(name: str) -> Draft202012Validator:
    schema = json.loads((SCHEMA_DIR / name).read_text(encoding="utf-8"))
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


CASE_VALIDATOR = _load_validator("case.schema.json")
INQUIRY_VALIDATOR = _load_validator("inquiry.schema.json")


class CaseStore:
    """Case and inquiry repository."""

    def __init__(self, path: Path | str | None = None):
        """Initialize store.

        Args:
            path: JSON file to mirror records to; None keeps them in memory
        """
        self.path = Path(path) if path else None
        self._cases: dict[str, Case] = {}
        self._inquiries: dict[str, Inquiry] = {}
        self._loaded = False
        self.logger = logging.getLogger(__name__)

    # Cases ------------------------------------------------------------

    def add_case(self, case: Case) -> Case:
        """Insert a new case (created by an external workflow).

        Raises:
            ValueError: If a case with the same id exists
        """
        self._load()
        if case.case_id in self._cases:
            raise ValueError(f"Case {case.case_id} already exists")
        CASE_VALIDATOR.validate(case.to_dict())
        self._cases[case.case_id] = case
        self._persist()
        return case

    def find_case(self, case_id: str) -> Case | None:
        self._load()
        return self._cases.get(case_id)

    def get_case(self, case_id: str) -> Case:
        """Get a case by id.

        Raises:
            NotFoundError: If no such case exists
        """
        case = self.find_case(case_id)
        if case is None:
            raise NotFoundError(f"Fall {case_id} nicht gefunden", case_id=case_id)
        return case

    def save_case(self, case: Case, expected_version: int) -> Case:
        """Replace a stored case if nobody wrote it since it was loaded.

        Args:
            case: New snapshot
            expected_version: Version the caller loaded

        Returns:
            Stored snapshot with the version incremented

        Raises:
            NotFoundError: If the case does not exist
            ConcurrencyConflictError: If the stored version differs
        """
        stored = self.get_case(case.case_id)
        if stored.version != expected_version:
            increment_concurrency_conflicts()
            raise ConcurrencyConflictError(
                f"Fall {case.case_id} wurde zwischenzeitlich geändert",
                case_id=case.case_id,
                expected_version=expected_version,
                actual_version=stored.version,
            )

        saved = replace(case, version=stored.version + 1)
        CASE_VALIDATOR.validate(saved.to_dict())
        self._cases[saved.case_id] = saved
        self._persist()
        return saved

    def all_cases(self) -> list[Case]:
        self._load()
        return list(self._cases.values())

    # Inquiries --------------------------------------------------------

    def add_inquiry(self, inquiry: Inquiry) -> Inquiry:
        self._load()
        if inquiry.case_id not in self._cases:
            raise NotFoundError(f"Fall {inquiry.case_id} nicht gefunden", case_id=inquiry.case_id)
        if inquiry.inquiry_id in self._inquiries:
            raise ValueError(f"Inquiry {inquiry.inquiry_id} already exists")
        INQUIRY_VALIDATOR.validate(inquiry.to_dict())
        self._inquiries[inquiry.inquiry_id] = inquiry
        self._persist()
        return inquiry

    def get_inquiry(self, inquiry_id: str) -> Inquiry:
        """Get an inquiry by id.

        Raises:
            NotFoundError: If no such inquiry exists
        """
        self._load()
        inquiry = self._inquiries.get(inquiry_id)
        if inquiry is None:
            raise NotFoundError(f"Anfrage {inquiry_id} nicht gefunden", inquiry_id=inquiry_id)
        return inquiry

    def save_inquiry(self, inquiry: Inquiry) -> Inquiry:
        self.get_inquiry(inquiry.inquiry_id)
        INQUIRY_VALIDATOR.validate(inquiry.to_dict())
        self._inquiries[inquiry.inquiry_id] = inquiry
        self._persist()
        return inquiry

    def inquiries_for_case(self, case_id: str) -> list[Inquiry]:
        self._load()
        return [inquiry for inquiry in self._inquiries.values() if inquiry.case_id == case_id]

    def all_inquiries(self) -> list[Inquiry]:
        self._load()
        return list(self._inquiries.values())

    # Internal helpers -------------------------------------------------

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        if self.path is None or not self.path.exists():
            return

        with self.path.open("r", encoding="utf-8") as fp:
            payload: dict[str, Any] = json.load(fp)

        for record in payload.get("cases", {}).values():
            CASE_VALIDATOR.validate(record)
            case = Case.from_dict(record)
            self._cases[case.case_id] = case

        for record in payload.get("inquiries", {}).values():
            INQUIRY_VALIDATOR.validate(record)
            inquiry = Inquiry.from_dict(record)
            self._inquiries[inquiry.inquiry_id] = inquiry

        self.logger.debug(
            f"Loaded {len(self._cases)} cases from {self.path}",
            extra={"cases": len(self._cases), "inquiries": len(self._inquiries)},
        )

    def _persist(self) -> None:
        if self.path is None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": 1,
            "updated_at": datetime.now(UTC).isoformat(),
            "cases": {case_id: case.to_dict() for case_id, case in self._cases.items()},
            "inquiries": {
                inquiry_id: inquiry.to_dict() for inquiry_id, inquiry in self._inquiries.items()
            },
        }

        # Atomic replace
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fp:
            json.dump(data, fp, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)
