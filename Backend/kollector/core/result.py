"""Result type returned across the service boundary.

Services report expected business failures (missing rows, validation problems,
duplicates, ownership violations) as a failed ``Result`` instead of raising.
Routers turn failed results into HTTP errors with ``raise_for_result`` from
``kollector.core.exceptions``.
"""

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorType(str, enum.Enum):
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    DUPLICATE_ERROR = "duplicate_error"
    EXTERNAL_API_ERROR = "external_api_error"
    DATABASE_ERROR = "database_error"
    AUTHORIZATION_ERROR = "authorization_error"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class Result(Generic[T]):
    is_success: bool
    value: Optional[T] = None
    error_message: Optional[str] = None
    error_type: Optional[ErrorType] = None

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def failure(cls, message: str, error_type: ErrorType = ErrorType.INTERNAL_ERROR) -> "Result[T]":
        if not message or not message.strip():
            raise ValueError("A failure result requires an error message")
        return cls(is_success=False, error_message=message, error_type=error_type)

    @classmethod
    def not_found(cls, entity: str, entity_id: Any) -> "Result[T]":
        return cls.failure(f"{entity} with ID {entity_id} was not found", ErrorType.NOT_FOUND)

    @classmethod
    def validation_error(cls, message: str) -> "Result[T]":
        return cls.failure(message, ErrorType.VALIDATION_ERROR)

    @classmethod
    def duplicate_error(cls, message: str) -> "Result[T]":
        return cls.failure(message, ErrorType.DUPLICATE_ERROR)

    @classmethod
    def authorization_error(cls, message: str = "Access denied") -> "Result[T]":
        return cls.failure(message, ErrorType.AUTHORIZATION_ERROR)

    @classmethod
    def external_error(cls, message: str) -> "Result[T]":
        return cls.failure(message, ErrorType.EXTERNAL_API_ERROR)
