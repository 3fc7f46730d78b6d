"""Exception classes for pkgversion."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import PackageVersionCreateRequestResult

SUPPORT_ACTION = (
    "If the problem persists, contact your platform support team and include "
    "the request id and the full error output."
)

# Error-code specific remediation, matched against APIError.error_code
ERROR_CODE_ACTIONS: dict[str, str] = {
    "INVALID_TYPE": (
        "Packaging is not enabled on this org. Enable Dev Hub and second-generation "
        "packaging, then run the command again."
    ),
    "INSUFFICIENT_ACCESS_OR_READONLY": (
        "Ask your administrator for the Create and Update Second-Generation "
        "Packages user permission."
    ),
    "INVALID_OR_NULL_FOR_RESTRICTED_PICKLIST": (
        "Check the value you passed for the package type or status and try again."
    ),
}


class PackagingError(Exception):
    """Base exception for all pkgversion errors.

    Attributes:
        message: Error message.
        actions: Remediation hints added by apply_error_action().
    """

    def __init__(self, message: str) -> None:
        self.message = message
        self.actions: list[str] = []
        super().__init__(message)

    def add_action(self, action: str) -> None:
        """Add a remediation hint, ignoring duplicates."""
        if action not in self.actions:
            self.actions.append(action)

    def format(self) -> str:
        """Render the message followed by its remediation hints."""
        if not self.actions:
            return self.message
        lines = [self.message, "", "Try this:"]
        lines.extend(f"  - {action}" for action in self.actions)
        return "\n".join(lines)


class APIError(PackagingError):
    """Error returned from the Tooling API.

    Attributes:
        status_code: HTTP status code from the API.
        message: Error message.
        error_code: API error code (e.g. INVALID_TYPE), when reported.
        details: Additional error details from the API.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(f"[{status_code}] {message}")

    @property
    def is_retryable(self) -> bool:
        """Check if this error could be resolved by retrying."""
        return self.status_code == 429 or self.status_code >= 500


class AuthenticationError(APIError):
    """Authentication failed (missing, invalid or expired session)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(401, message, error_code, details)


class ForbiddenError(APIError):
    """The user lacks permission for the requested operation."""

    def __init__(
        self,
        message: str = "Forbidden",
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(403, message, error_code, details)


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: str = "",
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        message = (
            f"{resource} '{resource_id}' not found" if resource_id else f"{resource} not found"
        )
        super().__init__(404, message, error_code, details)


class ValidationError(APIError):
    """The API rejected the request (malformed query, bad field value)."""

    def __init__(
        self,
        message: str = "Bad request",
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(400, message, error_code, details)


class RateLimitError(APIError):
    """Rate limit exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(429, message, error_code, details)


class ConnectionError(PackagingError):
    """Failed to connect to the Tooling API."""

    def __init__(
        self,
        message: str = "Failed to connect to the Tooling API",
        cause: Exception | None = None,
    ) -> None:
        self.cause = cause
        super().__init__(message)


class TimeoutError(PackagingError):
    """A single HTTP request took longer than the configured timeout."""

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: float | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(message)


class SingleRecordQueryError(PackagingError):
    """A query expected to match exactly one record matched zero or many."""

    def __init__(self, query: str, count: int) -> None:
        self.query = query
        self.count = count
        if count == 0:
            message = "No record found"
        else:
            message = f"Expected exactly one record, found {count}"
        super().__init__(f"{message} for query: {query}")


class InvalidIdError(PackagingError):
    """An id does not have one of the accepted key prefixes or lengths."""

    def __init__(self, value: str, expected: list[str]) -> None:
        self.value = value
        self.expected = expected
        super().__init__(
            f"The id [{value}] is invalid. It must start with "
            f"{' or '.join(repr(p) for p in expected)} and be 15 or 18 characters long."
        )


class SubmissionError(PackagingError):
    """The service rejected a package version create request."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class PollingTimeoutError(PackagingError):
    """Polling ran out of time before the create request reached a final status.

    Attributes:
        request_id: Create request being polled.
        timeout_seconds: The configured polling timeout.
        last_result: Last status snapshot fetched, if any.
    """

    def __init__(
        self,
        request_id: str,
        timeout_seconds: float,
        last_result: PackageVersionCreateRequestResult | None = None,
    ) -> None:
        self.request_id = request_id
        self.timeout_seconds = timeout_seconds
        self.last_result = last_result
        status = last_result.status if last_result else "unknown"
        super().__init__(
            f"Package version create request {request_id} did not finish within "
            f"{timeout_seconds:g}s (last status: {status})"
        )


class SaveError(PackagingError):
    """A record update or create reported success=false."""

    def __init__(self, entity: str, operation: str, errors: list[str]) -> None:
        self.entity = entity
        self.operation = operation
        self.errors = errors
        lines = [f"An error occurred during CRUD operation {operation} on entity {entity}."]
        lines.extend(errors)
        super().__init__("\n".join(lines))


class ManifestError(PackagingError):
    """Base exception for project manifest errors."""


class ManifestNotFoundError(ManifestError):
    """Raised when the project manifest file is not found."""


class ManifestParseError(ManifestError):
    """Raised when the project manifest file cannot be parsed."""


def raise_for_status(status_code: int, response_data: Any = None) -> None:
    """Raise an appropriate exception for an HTTP status code.

    Tooling API errors come back as a list of ``{"message", "errorCode"}``
    objects; only the first one is used for the message and code.

    Raises:
        AuthenticationError: For 401 status.
        ForbiddenError: For 403 status.
        NotFoundError: For 404 status.
        ValidationError: For 400 status.
        RateLimitError: For 429 status.
        APIError: For other 4xx/5xx status codes.
    """
    if status_code < 400:
        return

    data = response_data
    all_messages: list[str] = []
    if isinstance(data, list):
        entries = [entry for entry in data if isinstance(entry, dict)]
        all_messages = [entry["message"] for entry in entries if entry.get("message")]
        data = entries[0] if entries else {}
    if not isinstance(data, dict):
        data = {}

    message = data.get("message") or data.get("error_description") or "Unknown error"
    error_code = data.get("errorCode") or data.get("error")
    details: dict[str, Any] = {"errors": all_messages or [message]}
    if data.get("fields"):
        details["fields"] = data["fields"]

    if status_code == 401:
        raise AuthenticationError(message, error_code, details)
    elif status_code == 403:
        raise ForbiddenError(message, error_code, details)
    elif status_code == 404:
        raise NotFoundError(resource=message, error_code=error_code, details=details)
    elif status_code == 400:
        raise ValidationError(message, error_code, details)
    elif status_code == 429:
        raise RateLimitError(message, error_code, details)
    else:
        raise APIError(status_code, message, error_code, details)


def apply_error_action(err: BaseException) -> BaseException:
    """Attach remediation hints to an error without changing its type.

    Returns the same exception object so callers can ``raise apply_error_action(e)``.
    Exceptions outside the PackagingError hierarchy are returned untouched.
    """
    if not isinstance(err, PackagingError):
        return err

    error_code = getattr(err, "error_code", None)
    if error_code in ERROR_CODE_ACTIONS:
        err.add_action(ERROR_CODE_ACTIONS[error_code])
    err.add_action(SUPPORT_ACTION)
    return err
