import pytest

from kollector.core.exceptions import (
    BadRequestError, DuplicateError, ExternalServiceError, ForbiddenError, NotFoundException,
    ServerError, raise_for_result
)
from kollector.core.result import ErrorType, Result


def test_success_result():
    result = Result.success(42)
    assert result.is_success
    assert not result.is_failure
    assert result.value == 42
    assert result.error_type is None


def test_not_found_message():
    result = Result.not_found("Artist", 7)
    assert result.is_failure
    assert result.error_type == ErrorType.NOT_FOUND
    assert result.error_message == "Artist with ID 7 was not found"


def test_failure_requires_message():
    with pytest.raises(ValueError):
        Result.failure("")
    with pytest.raises(ValueError):
        Result.failure("   ")


def test_raise_for_result_returns_value():
    assert raise_for_result(Result.success("ok")) == "ok"


@pytest.mark.parametrize("result, exception, status_code", [
    (Result.not_found("Label", 1), NotFoundException, 404),
    (Result.validation_error("Name is required"), BadRequestError, 400),
    (Result.duplicate_error("Already exists"), DuplicateError, 409),
    (Result.authorization_error(), ForbiddenError, 403),
    (Result.external_error("Discogs is down"), ExternalServiceError, 502),
    (Result.failure("Boom", ErrorType.DATABASE_ERROR), ServerError, 500),
    (Result.failure("Boom"), ServerError, 500),
])
def test_raise_for_result_maps_error_types(result, exception, status_code):
    with pytest.raises(exception) as exc_info:
        raise_for_result(result)
    assert exc_info.value.status_code == status_code
    assert exc_info.value.detail == result.error_message
