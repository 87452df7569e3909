"""Typed error hierarchy for omni-ai, including HTTP status mapping for the agent runtime."""


class OmniError(Exception):
    """Base exception for all omni-ai errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        request_id: str | None = None,
        method: str | None = None,
        path: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.request_id = request_id
        self.method = method
        self.path = path


class ConfigurationError(OmniError):
    """Missing or invalid local configuration (API key, paths)."""


class AuthenticationError(OmniError):
    """401: invalid or missing API key."""


class PermissionDeniedError(OmniError):
    """403: insufficient permissions."""


class NotFoundError(OmniError):
    """404: resource does not exist."""


class SessionNotFoundError(NotFoundError):
    """No upstream session is stored for the requested thread."""

    def __init__(self, thread_id: str, resource_id: str):
        super().__init__(
            f"Parent session not found for thread '{thread_id}'. "
            "Cannot fork from non-existent thread.",
            status_code=404,
        )
        self.thread_id = thread_id
        self.resource_id = resource_id


class ConflictError(OmniError):
    """409: resource already exists or conflicts."""


class ValidationError(OmniError):
    """400/422: invalid request parameters."""


class RateLimitError(OmniError):
    """429: too many requests."""


class APIError(OmniError):
    """500+: server-side or transport error."""


# Map HTTP status codes to exception classes.
STATUS_MAP: dict[int, type[OmniError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}
