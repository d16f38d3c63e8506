"""Error kinds raised by the disclosure engine and rendered as JSON by app.py."""

from __future__ import annotations

from typing import Any, Dict, Optional


class DisclosureError(Exception):
    """Raised when a reveal or checkpoint operation cannot be carried out."""

    kind = "disclosure_error"
    default_status = 400

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status
        self.payload = payload or {"error": self.kind, "message": message}


class InvalidState(DisclosureError):
    """A prerequisite is missing, e.g. the couple has no anniversary date."""

    kind = "invalid_state"
    default_status = 400


class NotYetEligible(DisclosureError):
    """The annual reveal gate has not opened yet."""

    kind = "not_yet_eligible"
    default_status = 409


class NotAMember(DisclosureError):
    """The caller is not one of the couple's two partners."""

    kind = "not_a_member"
    default_status = 403


class NotFound(DisclosureError):
    kind = "not_found"
    default_status = 404
