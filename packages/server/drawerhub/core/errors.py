"""
Error hierarchy for drawer operations.

Every error carries the HTTP status it maps to. Services raise these at the
point of detection; the transaction coordinator rolls back and the API layer
renders them as ``{"success": false, "status": ..., "message": ...}``.
"""

from __future__ import annotations


class DrawerHubError(Exception):
    """Base class for all business-rule failures."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> dict:
        return {"success": False, "status": self.status_code, "message": self.message}


# --- 400 ---------------------------------------------------------------

class ValidationError(DrawerHubError):
    status_code = 400
    default_message = "Invalid request"


# --- 401 ---------------------------------------------------------------

class AuthenticationError(DrawerHubError):
    status_code = 401
    default_message = "Authentication required"


# --- 403 ---------------------------------------------------------------

class AuthorizationError(DrawerHubError):
    status_code = 403
    default_message = "Permission denied"


class NotMemberError(AuthorizationError):
    default_message = "Not a member of this drawer"


class ForbiddenError(AuthorizationError):
    default_message = "Insufficient role for this action"


# --- 404 ---------------------------------------------------------------

class NotFoundError(DrawerHubError):
    status_code = 404
    default_message = "Not found"


# --- 409 ---------------------------------------------------------------

class ConflictError(DrawerHubError):
    status_code = 409
    default_message = "Conflict"


class InvitationExpiredError(ConflictError):
    default_message = "Invitation has expired"


class InvitationExhaustedError(ConflictError):
    default_message = "Invitation has no remaining uses"
