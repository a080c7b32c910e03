"""
Domain error taxonomy.

Every failure raised by the services is scoped to a single request and
rendered by the API layer as ``{"success": false, "error": message}``
with the status code carried by the exception.
"""
from typing import Optional


class PortfolioError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(PortfolioError):
    """Missing or invalid field in a request."""
    status_code = 400
    default_message = "Invalid request"


class AuthError(PortfolioError):
    """Missing, expired or revoked session."""
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(PortfolioError):
    """Requested record does not exist for the caller."""
    status_code = 404
    default_message = "Not found"


class UpstreamError(PortfolioError):
    """Non-2xx answer from a provider, or a failed database call."""
    status_code = 502
    default_message = "Upstream service error"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        provider: Optional[str] = None
    ):
        super().__init__(message, status_code)
        self.provider = provider
