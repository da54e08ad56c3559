"""JSON structured logging with mandatory fields and PII redaction."""
import json
import logging
import sys
import threading
from datetime import UTC, datetime
from typing import Optional

from backend.core.config import settings
from backend.core.logging import PIIRedactionFilter

# Thread-local storage for context
_context = threading.local()

# Attributes every LogRecord carries; everything else came in via ``extra``
_RESERVED_ATTRS = frozenset(
    {
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
        'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
        'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
        'processName', 'process', 'message', 'taskName',
    }
)


class JSONFormatter(logging.Formatter):
    """JSON formatter with mandatory fields and PII redaction."""

    def __init__(self):
        super().__init__()
        self._redactor = PIIRedactionFilter()

    def format(self, record):
        """Format log record as JSON with mandatory fields and PII redaction."""
        trace_id = getattr(_context, 'trace_id', None) or 'unknown'
        tenant_id = getattr(_context, 'tenant_id', None) or 'unknown'
        actor_id = getattr(_context, 'actor_id', None)

        log_entry = {
            'trace_id': trace_id,
            'tenant_id': tenant_id,
            'level': record.levelname.lower(),
            'logger': record.name,
            'msg': self._redactor.redact(record.getMessage()),
            'ts_utc': datetime.now(UTC).isoformat().replace('+00:00', 'Z'),
        }

        if actor_id:
            log_entry['actor_id'] = actor_id

        if record.exc_info:
            log_entry['exc_info'] = self.formatException(record.exc_info)

        # Extra fields (case_id, status, ...) with PII redaction
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in log_entry:
                continue
            if isinstance(value, str):
                value = self._redactor.redact(value)
            log_entry[key] = value

        return json.dumps(log_entry, default=str)


def set_trace_id(trace_id: Optional[str]) -> None:
    """Set trace ID for current thread context."""
    _context.trace_id = trace_id


def set_tenant_id(tenant_id: Optional[str]) -> None:
    """Set tenant (creditor) ID for current thread context."""
    _context.tenant_id = tenant_id


def set_actor_id(actor_id: Optional[str]) -> None:
    """Set acting user ID for current thread context."""
    _context.actor_id = actor_id


def clear_context() -> None:
    for attr in ('trace_id', 'tenant_id', 'actor_id'):
        if hasattr(_context, attr):
            delattr(_context, attr)


def init_logging() -> None:
    """Initialize root logging according to settings.log_format."""
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s')
        )
        handler.addFilter(PIIRedactionFilter())
    logger.addHandler(handler)
