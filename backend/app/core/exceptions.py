"""
Application exceptions

Services raise these instead of HTTPException so business rules stay
independent of the web layer. main.py maps them to HTTP responses.

Author: TM3
Date: 2025-11-20
"""
from typing import Any, Optional


class AppError(Exception):
    """Base class for business errors carrying an HTTP status code"""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"detail": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """Invalid input or a business rule rejected the request"""
    status_code = 400


class InsufficientStockError(ValidationError):
    """Requested quantity exceeds available stock"""

    def __init__(self, message: str = "Insufficient stock", details: Optional[Any] = None):
        super().__init__(message, details)


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        message = f"{resource} not found" if identifier is None else f"{resource} {identifier} not found"
        super().__init__(message)
        self.resource = resource


class ConflictError(AppError):
    """Duplicate unique value or state conflict"""
    status_code = 409
