"""Centralized logging configuration with PII redaction."""

import logging
import re


class PIIRedactionFilter(logging.Filter):
    """Filter to redact PII from log messages.

    Debtor data (IBANs, e-mail addresses, phone numbers) must never reach
    log sinks in clear text.
    """

    def __init__(self):
        super().__init__()
        # IBAN pattern: 2 letters + 2 digits + up to 30 alphanumeric characters
        self.iban_pattern = re.compile(r'\b([A-Z]{2}\d{2}[A-Z0-9]{11,30})\b')
        self.email_pattern = re.compile(r'(\b[\w.+-]+@[\w-]+\.[\w.-]+\b)')
        # Phone pattern: + or leading 0, then digits, spaces, dashes or slashes
        self.phone_pattern = re.compile(r'((?:\+|\b0)\d[\d \-/]{6,}\d)')

    def redact(self, text):
        """Redact PII from a string; other values pass through unchanged."""
        if not isinstance(text, str):
            return text
        text = self.iban_pattern.sub(self._mask_iban, text)
        text = self.email_pattern.sub(self._mask_email, text)
        text = self.phone_pattern.sub(self._mask_phone, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact PII from log record message."""
        if record.msg:
            record.msg = self.redact(str(record.msg))

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(self.redact(arg) for arg in record.args)

        return True

    def _mask_iban(self, match) -> str:
        """Mask IBAN: show first 2 chars, mask the rest."""
        iban = match.group(1)
        return iban[:2] + "*" * (len(iban) - 2)

    def _mask_email(self, match) -> str:
        """Mask email: show first char of user, keep domain."""
        user, domain = match.group(1).split("@", 1)
        masked_user = user[0] + "*" * (len(user) - 1) if len(user) > 1 else "*"
        return f"{masked_user}@{domain}"

    def _mask_phone(self, match) -> str:
        """Mask phone: show first 2 chars, mask the rest."""
        phone = match.group(1)
        return phone[:2] + "*" * (len(phone) - 2)


def setup_logging_with_pii_redaction() -> None:
    """Attach the PII redaction filter to all root handlers and engine loggers."""
    root_logger = logging.getLogger()
    pii_filter = PIIRedactionFilter()

    for target in [*root_logger.handlers, *(logging.getLogger(name) for name in ["agents.inkasso", "backend", "tools"])]:
        if not any(isinstance(f, PIIRedactionFilter) for f in target.filters):
            target.addFilter(pii_filter)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with PII redaction applied."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, PIIRedactionFilter) for f in logger.filters):
        logger.addFilter(PIIRedactionFilter())
    return logger
