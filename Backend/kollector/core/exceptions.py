from fastapi import HTTPException
from typing import Any, Dict, Optional, TypeVar

from kollector.core.result import ErrorType, Result

T = TypeVar("T")


class KollectorException(HTTPException):
    """Base exception for the KollectorScum API"""
    def __init__(
        self,
        status_code: int,
        detail: Any,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)

class NotFoundException(KollectorException):
    """Resource not found"""
    def __init__(self, resource: str, resource_id: Any = None, message: Optional[str] = None):
        super().__init__(
            status_code=404,
            detail=message or f"{resource} with ID {resource_id} was not found"
        )

class DuplicateError(KollectorException):
    """Resource already exists"""
    def __init__(self, message: str):
        super().__init__(status_code=409, detail=message)

class BadRequestError(KollectorException):
    """Request failed validation"""
    def __init__(self, message: str):
        super().__init__(status_code=400, detail=message)

class UnauthorizedError(KollectorException):
    """User is not authenticated"""
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(
            status_code=401,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"}
        )

class ForbiddenError(KollectorException):
    """User is authenticated but may not perform the action"""
    def __init__(self, message: str = "Access denied"):
        super().__init__(status_code=403, detail=message)

class ExternalServiceError(KollectorException):
    """An upstream API could not be reached or answered badly"""
    def __init__(self, message: str):
        super().__init__(status_code=502, detail=message)

class ServerError(KollectorException):
    def __init__(self, message: str = "An error occurred while processing your request"):
        super().__init__(status_code=500, detail=message)


def raise_for_result(result: Result[T]) -> T:
    """Return the value of a successful result or raise the matching HTTP error."""
    if result.is_success:
        return result.value

    message = result.error_message
    if result.error_type == ErrorType.NOT_FOUND:
        raise NotFoundException("Resource", message=message)
    if result.error_type == ErrorType.VALIDATION_ERROR:
        raise BadRequestError(message)
    if result.error_type == ErrorType.DUPLICATE_ERROR:
        raise DuplicateError(message)
    if result.error_type == ErrorType.AUTHORIZATION_ERROR:
        raise ForbiddenError(message)
    if result.error_type == ErrorType.EXTERNAL_API_ERROR:
        raise ExternalServiceError(message)
    raise ServerError(message)
