"""
Exception classes for the job-dispatch gateway.

Every GatewayError carries the HTTP status it maps to; handlers convert it
into the JSON error envelope in one place.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for all errors returned to the caller."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "success": False}
        if self.details:
            body["details"] = self.details
        return body


class Unauthenticated(GatewayError):
    """Missing, malformed, or rejected bearer credential."""

    status_code = 401


class InvalidRequest(GatewayError):
    """Request body is not JSON or lacks required fields."""

    status_code = 400


class NotFound(GatewayError):
    """Target notebook or source does not exist."""

    status_code = 404


class Forbidden(GatewayError):
    """Caller does not own the target resource."""

    status_code = 403


class MethodNotAllowed(GatewayError):
    """Job routes accept POST (and OPTIONS preflight) only."""

    status_code = 405

    def __init__(self):
        super().__init__("Method not allowed")


class Misconfigured(GatewayError):
    """A required deployment setting is missing."""

    status_code = 500

    def __init__(self, missing: tuple = ()):
        super().__init__("Web service configuration missing")
        self.missing = tuple(missing)


class DispatchFailure(GatewayError):
    """The external processor returned non-2xx or could not be reached."""

    status_code = 500


class UpstreamInvalidResponse(GatewayError):
    """The external processor answered 2xx with an unusable body."""

    status_code = 500


class StoreError(Exception):
    """Resource store request failed (HTTP error or network failure)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
