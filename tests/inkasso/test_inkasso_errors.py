"""Tests for the error taxonomy and result wrapper."""

import pytest

from agents.inkasso.errors import (
    ConcurrencyConflictError,
    InkassoError,
    InvalidFinancialInputError,
    NotFoundError,
    Result,
    UnauthorizedRoleError,
    http_status_for,
)


def test_error_payload():
    error = NotFoundError("Fall CASE-404 nicht gefunden", case_id="CASE-404")

    assert error.to_dict() == {
        "error": "not_found",
        "detail": "Fall CASE-404 nicht gefunden",
        "case_id": "CASE-404",
    }
    assert str(error) == "Fall CASE-404 nicht gefunden"


@pytest.mark.parametrize(
    "error, status",
    [
        (NotFoundError("x"), 404),
        (UnauthorizedRoleError("x"), 403),
        (ConcurrencyConflictError("x"), 409),
        (InvalidFinancialInputError("x"), 422),
        (InkassoError("x"), 400),
    ],
)
def test_http_status(error, status):
    assert http_status_for(error) == status


def test_result_success():
    result = Result.success(42)

    assert result.ok
    assert result.unwrap() == 42


def test_result_failure_raises_on_unwrap():
    result = Result.failure(NotFoundError("weg"))

    assert not result.ok
    assert result.value is None
    with pytest.raises(NotFoundError):
        result.unwrap()
