"""Custom exceptions for the application"""
from typing import Optional, Any


class AppException(Exception):
    """Base exception for the application"""
    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        details: Optional[Any] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details if details is not None else {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found, or owned by someone else"""
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message=message, code="NOT_FOUND", status_code=404, details=details)


class AuthenticationError(AppException):
    """Authentication failed"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message=message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class ValidationError(AppException):
    """Validation error"""
    def __init__(self, message: str = "Validation failed", details: Optional[Any] = None):
        super().__init__(message=message, code="VALIDATION_ERROR", status_code=400, details=details)


class ConflictError(AppException):
    """Resource conflict"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Any] = None):
        super().__init__(message=message, code="CONFLICT", status_code=409, details=details)


class BusinessRuleError(ConflictError):
    """Request conflicts with the state of a deal (already promoted, wrong stage)"""
    def __init__(self, message: str = "Business rule violated", details: Optional[Any] = None):
        super().__init__(message=message, details=details)
        self.code = "BUSINESS_RULE_VIOLATION"
        self.status_code = 400
