from __future__ import annotations

from typing import Any


class BinaryBuildError(Exception):
    """Base exception for all binbuild errors.

    Attributes:
        code: Optional machine-readable error code.
        details: Arbitrary key/value context about the error.
        status_code: HTTP-style status code reported to the caller of the
            binary build endpoint (``500`` unless a subclass says otherwise).
        reason: Kubernetes-style ``Status.reason`` string.
    """

    default_status_code: int = 500
    default_reason: str = "InternalError"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.reason = reason or self.default_reason

    @property
    def is_retryable(self) -> bool:
        """Whether the operation that raised this error can be retried."""
        return False

    def to_status(self) -> dict[str, Any]:
        """Render this error as a Kubernetes ``Status`` object."""
        status: dict[str, Any] = {
            "kind": "Status",
            "apiVersion": "v1",
            "status": "Failure",
            "message": self.message,
            "reason": self.reason,
            "code": self.status_code,
        }
        if self.details:
            status["details"] = dict(self.details)
        return status


class ConfigurationError(BinaryBuildError): ...


# ---------------------------------------------------------------------------
# API status family (errors returned by the API server)
# ---------------------------------------------------------------------------


class APIStatusError(BinaryBuildError):
    """An error carrying a ``Status`` response from the API server."""

    @classmethod
    def from_status(cls, status: dict[str, Any], status_code: int | None = None) -> APIStatusError:
        """Build the most specific error subclass for a ``Status`` payload."""
        code = status_code if status_code is not None else int(status.get("code") or 500)
        message = str(status.get("message") or "unknown API error")
        reason = status.get("reason") or None
        details: dict[str, Any] = status.get("details") or {}
        if code == 404:
            return NotFoundError(
                message,
                kind=details.get("kind", ""),
                name=details.get("name", ""),
                details=details,
            )
        if code == 409:
            return ConflictError(message, details=details)
        if code == 400:
            return BadRequestError(message, details=details)
        if code in (408, 504):
            return BuildTimeoutError(message, details=details, status_code=code)
        return cls(message, details=details, status_code=code, reason=reason)


class NotFoundError(APIStatusError):
    """The requested resource does not exist.

    ``kind`` names the resource type the server could not find, e.g.
    ``"imagestreamtags"`` when the build's source image has not been pushed.
    """

    default_status_code = 404
    default_reason = "NotFound"

    def __init__(
        self,
        message: str,
        *,
        kind: str = "",
        name: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = {"kind": kind, "name": name, **(details or {})}
        super().__init__(message, details=merged)
        self.kind = kind
        self.name = name


class ConflictError(APIStatusError):
    """The object was modified since it was read (stale ``resourceVersion``)."""

    default_status_code = 409
    default_reason = "Conflict"


class BadRequestError(APIStatusError):
    default_status_code = 400
    default_reason = "BadRequest"


class BuildTimeoutError(APIStatusError):
    default_status_code = 504
    default_reason = "Timeout"


class InternalError(APIStatusError):
    default_status_code = 500
    default_reason = "InternalError"


class APIConnectionError(BinaryBuildError):
    """A transport-level connection failure (DNS, TCP, TLS).

    Always retryable; transient network issues are common.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


# ---------------------------------------------------------------------------
# Binary build flow
# ---------------------------------------------------------------------------


class InvalidRequestError(BadRequestError):
    default_reason = "Invalid"


class BuildDeletedError(BinaryBuildError):
    """Raised by phase trackers when the build disappears while waiting."""


class BuildDeletedBeforeStartError(BadRequestError): ...


class WaitObservationError(BadRequestError): ...


class StartTimeoutError(BuildTimeoutError): ...


class TerminalPhaseError(BadRequestError):
    """The build reached Error, Failed or Cancelled before the upload."""


class InvalidPhaseError(BadRequestError):
    """The build is in a phase that does not accept an upload."""


class StreamingFailedError(InternalError):
    """Copying the payload into the build container failed."""


class AttachError(BinaryBuildError):
    """The attach session failed or the container reported a failure."""


class PollTimeoutError(BinaryBuildError):
    """A polling loop ran out of time before its condition was met."""
