# SPDX-License-Identifier: Apache-2.0

"""
Application exception taxonomy.

Every exception carries the HTTP status and RFC 7807 type slug it maps to,
so the error handler can render it without knowing the raising layer.
Duplicate votes and repeated check-ins are not exceptions; they are
reported through ``models.enums.Outcome``.
"""

from typing import Any, Dict, List, Optional


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Malformed input: empty title, fewer than two options, missing user."""

    def __init__(self, message: str, validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []

    @classmethod
    def from_pydantic(cls, message: str, error) -> "ValidationException":
        """Build from a pydantic ``ValidationError``, one entry per failing field."""
        details = []
        for item in error.errors():
            details.append({
                "field": ".".join(str(part) for part in item.get("loc", ())),
                "message": item.get("msg", "Invalid value"),
                "type": item.get("type", "value_error"),
            })
        return cls(message, details)


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for authorization errors."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Referenced assembly or agenda item does not exist in the caller's condominium."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class StateConflictException(CustomException):
    """Illegal state transition or operation not allowed in the current status."""

    def __init__(self, message: str, current_status: Optional[str] = None,
                 target_status: Optional[str] = None):
        super().__init__(message, 409, "state-conflict")
        self.current_status = current_status
        self.target_status = target_status


class PersistenceException(CustomException):
    """Store unreachable, or a constraint violation other than the expected uniqueness case."""

    def __init__(self, message: str):
        super().__init__(message, 503, "persistence-error")
