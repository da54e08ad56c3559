"""Inquiry resolve workflow (OPEN -> RESOLVED)."""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from backend.core.observability.metrics import increment_inquiries_resolved, increment_inquiry_rejected

from .access import capabilities_for
from .config import InkassoConfig
from .dto import Inquiry, InquiryStatus, UserRole, to_timestamp
from .errors import InkassoError, InvalidInquiryAnswerError, InvalidTransitionError, Result, UnauthorizedRoleError


class InquiryWorkflow:
    """Resolves client and debtor inquiries.

    Only agents and admins answer; a resolved inquiry stays resolved.
    """

    def __init__(self, config: Optional[InkassoConfig] = None):
        self.config = config or InkassoConfig()
        self.logger = logging.getLogger(__name__)

    def resolve(
        self,
        inquiry: Inquiry,
        answer: str,
        actor_role: UserRole | str | None,
        as_of: date | datetime | None = None,
    ) -> Result[Inquiry]:
        """Answer an open inquiry.

        Args:
            inquiry: Inquiry snapshot
            answer: Answer text (trimmed before storing)
            actor_role: Role of the acting user
            as_of: Resolution timestamp (defaults to now, UTC)

        Returns:
            Resolved inquiry, or a failure carrying InvalidTransitionError,
            UnauthorizedRoleError or InvalidInquiryAnswerError
        """
        if inquiry.status != InquiryStatus.OPEN:
            return self._reject(
                inquiry,
                InvalidTransitionError(
                    "Anfrage wurde bereits beantwortet",
                    inquiry_id=inquiry.inquiry_id,
                    status=inquiry.status.value,
                ),
            )

        if not capabilities_for(actor_role).can_resolve_inquiry:
            role = UserRole.parse(actor_role)
            return self._reject(
                inquiry,
                UnauthorizedRoleError(
                    f"Rolle {role.value if role else 'NONE'} darf Anfragen nicht beantworten",
                    inquiry_id=inquiry.inquiry_id,
                ),
            )

        text = (answer or "").strip()
        if not self.config.answer_min_length <= len(text) <= self.config.answer_max_length:
            return self._reject(
                inquiry,
                InvalidInquiryAnswerError(
                    f"Antwort muss zwischen {self.config.answer_min_length} und "
                    f"{self.config.answer_max_length} Zeichen lang sein",
                    inquiry_id=inquiry.inquiry_id,
                    length=len(text),
                ),
            )

        resolved = replace(
            inquiry,
            status=InquiryStatus.RESOLVED,
            answer=text,
            resolved_at=to_timestamp(as_of),
        )

        increment_inquiries_resolved()
        self.logger.info(
            f"Inquiry {inquiry.inquiry_id} resolved",
            extra={"inquiry_id": inquiry.inquiry_id, "case_id": inquiry.case_id},
        )
        return Result.success(resolved)

    def _reject(self, inquiry: Inquiry, error: InkassoError) -> Result[Inquiry]:
        increment_inquiry_rejected(error.code)
        self.logger.warning(
            f"Rejected resolve of inquiry {inquiry.inquiry_id}: {error.message}",
            extra={"inquiry_id": inquiry.inquiry_id, "error_code": error.code},
        )
        return Result.failure(error)
