"""
nsasa.errors — Typed Failures for State Transitions
=====================================================

Every refused command raises one of these.  They are ordinary, recoverable
outcomes: the API layer maps them onto an HTTP status and a machine-readable
``error`` code; nothing here is fatal to the process.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for all refused portal commands."""

    status_code: int = 400
    code: str = "portal_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class Unauthorized(PortalError):
    """The actor's role (or admission status) does not permit the action."""
    status_code = 403
    code = "unauthorized"


class NotFound(PortalError):
    status_code = 404
    code = "not_found"


class InvalidTransition(PortalError):
    """The requested state change is not an edge of the state machine."""
    status_code = 409
    code = "invalid_transition"


class InvalidInput(PortalError):
    status_code = 422
    code = "invalid_input"


class AlreadyVoted(PortalError):
    status_code = 409
    code = "already_voted"


class PollClosed(PortalError):
    status_code = 409
    code = "poll_closed"
