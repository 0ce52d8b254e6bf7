"""
Failure taxonomy for the OTC proxy.

Every failure is classified once, at the point where it is raised, into one
of the kinds below. Route handlers never inspect messages to decide the HTTP
status; they read ``status_code`` off the exception.

    InvalidInput          400  caller's fault, raised before any network call
    NotConfigured         500  missing credentials, detail never sent to clients
    UpstreamNotFound      404  provider answered 404
    UpstreamTimeout       504  provider did not answer within the timeout
    UpstreamUnauthorized  502  provider rejected our credentials
    UpstreamFailure       502  any other provider or transport failure
"""

from typing import Optional


class OTCError(Exception):
    """Base class for every classified failure."""

    kind = "upstream"
    status_code = 502

    def __init__(
        self,
        detail: str,
        upstream_status: Optional[int] = None,
        path: Optional[str] = None,
    ):
        self.detail = detail
        self.upstream_status = upstream_status
        self.path = path
        super().__init__(detail)

    def log_line(self) -> str:
        parts = [self.kind]
        if self.upstream_status is not None:
            parts.append(str(self.upstream_status))
        if self.path:
            parts.append(f"[{self.path}]")
        return f"{' '.join(parts)} - {self.detail}"


class InvalidInput(OTCError):
    """Raised when request input fails validation."""

    kind = "invalid_input"
    status_code = 400

    def __init__(self, error: str, message: Optional[str] = None):
        self.error = error
        self.message = message
        super().__init__(message or error)


class NotConfigured(OTCError):
    kind = "not_configured"
    status_code = 500


class UpstreamNotFound(OTCError):
    kind = "not_found"
    status_code = 404


class UpstreamTimeout(OTCError):
    kind = "timeout"
    status_code = 504


class UpstreamUnauthorized(OTCError):
    kind = "unauthorized"
    status_code = 502


class UpstreamFailure(OTCError):
    kind = "upstream"
    status_code = 502
