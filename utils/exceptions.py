"""
Platform Exceptions
Domain errors raised by services and rendered by the API layer
"""

from typing import Any, Dict, List, Optional


class PlatformError(Exception):
    """Base class for errors that map to an HTTP status and a client-safe message"""

    status_code = 500

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None,
                 errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message
        self.data = data
        self.errors = errors
        super().__init__(message)


class ValidationError(PlatformError):
    """Custom validation error for input validation failures"""
    status_code = 400


class ConflictError(PlatformError):
    """Duplicate pending request, duplicate account, email already in use"""
    status_code = 400


class InsufficientFundsError(PlatformError):
    status_code = 400

    def __init__(self, message: str = "Insufficient balance", **kwargs):
        super().__init__(message, **kwargs)


class AuthenticationError(PlatformError):
    status_code = 401


class AuthorizationError(PlatformError):
    status_code = 403


class SubscriptionRequiredError(AuthorizationError):
    def __init__(self, message: str = "You do not have an active bot subscription", **kwargs):
        super().__init__(message, **kwargs)


class NotFoundError(PlatformError):
    status_code = 404


class DependencyError(PlatformError):
    """An external collaborator (email provider) failed"""
    status_code = 500


class StateTransitionError(ValidationError):
    """Raised when an invalid state transition is attempted"""
    pass
