"""
Exception hierarchy for the discogs_api package.
"""

from .types import AuthLevel


class DiscogsError(Exception):
    """Base exception for all library errors."""


class AuthRequiredError(DiscogsError):
    """Raised before any network call when the credential level is too low."""

    def __init__(self, required: AuthLevel, current: AuthLevel) -> None:
        super().__init__(
            f"authentication level {required.name} required, current level is {current.name}"
        )
        self.required = required
        self.current = current


class HttpError(DiscogsError):
    """Raised when the API answers with a non-success status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"http error {status}: {message}")
        self.status = status
        self.message = message


class RequestError(DiscogsError):
    """Raised when the underlying transport fails (connection, timeout, TLS)."""


class DecodeError(DiscogsError):
    """Raised when a success body does not match the expected payload shape."""


class InvalidOAuthResponse(DiscogsError):
    """Raised when an OAuth endpoint omits a required token field."""

    def __init__(self, body: str) -> None:
        super().__init__(f"invalid OAuth response: {body}")
        self.body = body
