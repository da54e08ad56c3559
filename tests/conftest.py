import inspect
import json
import socket
from pathlib import Path

import pytest

from backend.core.observability.metrics import reset_metrics


VIOLATIONS = []
ARTIFACTS_DIR = Path("artifacts")
REPORT = ARTIFACTS_DIR / "egress-violations.json"


def _is_allowed_callstack(allowed_paths: list[str]) -> bool:
    for frame in inspect.stack():
        filename = (frame.filename or "").replace("\\", "/")
        for ap in allowed_paths:
            if ap in filename:
                return True
    return False


@pytest.fixture(autouse=True, scope="session")
def egress_guard():
    """The engine is offline; any outbound connection outside tests is a violation."""
    allowed_client_paths = ["/tests/"]

    real_getaddrinfo = socket.getaddrinfo
    real_create_connection = socket.create_connection

    def guard_getaddrinfo(host, *args, **kwargs):
        if _is_allowed_callstack(allowed_client_paths):
            return real_getaddrinfo(host, *args, **kwargs)
        VIOLATIONS.append({"fn": "getaddrinfo", "host": str(host)})
        raise RuntimeError("Egress blocked: getaddrinfo disallowed")

    def guard_create_connection(address, *args, **kwargs):
        if _is_allowed_callstack(allowed_client_paths):
            return real_create_connection(address, *args, **kwargs)
        VIOLATIONS.append({"fn": "create_connection", "address": str(address)})
        raise RuntimeError("Egress blocked: create_connection disallowed")

    socket.getaddrinfo = guard_getaddrinfo  # type: ignore[assignment]
    socket.create_connection = guard_create_connection  # type: ignore[assignment]

    yield

    socket.getaddrinfo = real_getaddrinfo  # type: ignore[assignment]
    socket.create_connection = real_create_connection  # type: ignore[assignment]

    if VIOLATIONS:
        ARTIFACTS_DIR.mkdir(parents=True, exist_ok=True)
        REPORT.write_text(json.dumps(VIOLATIONS, indent=2))


@pytest.fixture(autouse=True)
def clean_metrics():
    """Start every test with empty in-process metrics."""
    reset_metrics()
    yield
    reset_metrics()
