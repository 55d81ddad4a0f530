"""
Application error taxonomy.

Services raise these; ``gowra.main`` turns them into
``{"success": false, "error": ...}`` responses with the matching status.
"""
from typing import Any, Dict


class AppError(Exception):
    """Base class for errors that map onto a client-facing HTTP response."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication failed", code: str = None):
        super().__init__(message, code)


class AuthorizationError(AppError):
    """
    Valid credentials, insufficient role.

    ``needs_upgrade`` tells the client that the caller is a regular user
    hitting an organizer-only endpoint, so it can offer the upgrade flow
    instead of a plain "forbidden".
    """

    status_code = 403
    code = "AUTHORIZATION_ERROR"

    def __init__(self, message: str = "Access denied", needs_upgrade: bool = False, code: str = None):
        super().__init__(message, code)
        self.needs_upgrade = needs_upgrade

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.needs_upgrade:
            body["needsUpgrade"] = True
        return body


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class RateLimitError(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
