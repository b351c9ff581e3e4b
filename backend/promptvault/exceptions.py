"""Business-layer exceptions.

Services raise these instead of HTTPException; the handler registered in
main.py turns them into ``{"code": ..., "message": ...}`` JSON responses.
"""
from typing import Optional


class PromptVaultError(Exception):
    """Base class for all expected failures.

    Attributes:
        message: human readable text shown to the caller
        status_code: HTTP status used at the API boundary
        code: stable failure kind (UNAUTHORIZED, FORBIDDEN, ...)
    """

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        super().__init__(message)


class UnauthorizedError(PromptVaultError):
    """No authenticated actor (401)."""

    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(PromptVaultError):
    """Authenticated but not allowed (403)."""

    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message)


class NotFoundError(PromptVaultError):
    """Entity absent or soft-deleted (404)."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Optional[object] = None):
        self.resource = resource
        self.identifier = identifier
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} not found: {identifier}"
        super().__init__(message)


class InvalidStateError(PromptVaultError):
    """Invariant violation, e.g. deleting a non-empty folder (400)."""

    status_code = 400
    code = "BAD_REQUEST"


class InvalidInputError(PromptVaultError):
    """Malformed input that passed schema parsing (400)."""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)
