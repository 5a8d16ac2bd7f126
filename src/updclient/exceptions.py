"""Exception hierarchy for updclient.

All exceptions inherit from :class:`UpdateClientError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`updclient.exit_codes`.
The top-level error handler in :func:`updclient.app.main` catches
``UpdateClientError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    UpdateClientError (exit 1)
    +-- ConfigError             (exit 1)
    |   +-- MissingBaseURLError (exit 1)
    +-- TransportError          (exit 6)
    +-- APIError                (exit 5, 3 on 401/403, 4 on 404)
    +-- ParseError              (exit 5)
    +-- AuthError               (exit 3)
        +-- MissingTokenError
        +-- NotAuthenticatedError
"""

from __future__ import annotations

from typing import Optional

from updclient.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class UpdateClientError(Exception):
    """Base exception for all updclient errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`updclient.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(UpdateClientError):
    """Raised for configuration problems (invalid JSON, bad server URL, unreadable manifest)."""

    exit_code = EXIT_GENERIC_FAILURE


class MissingBaseURLError(ConfigError):
    """Raised when a request is attempted before an update server URL is configured."""

    def __init__(self, message: str = "The update server URL has not been configured."):
        super().__init__(message)


class TransportError(UpdateClientError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class APIError(UpdateClientError):
    """Raised when the update server answers with a status outside 200-299.

    Args:
        message: The server-supplied ``message`` field, or a generic text.
        status_code: The HTTP status code of the response.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        exit_code: Optional[int] = None
        if status_code in (401, 403):
            exit_code = EXIT_AUTH_FAILURE
        elif status_code == 404:
            exit_code = EXIT_NOT_FOUND
        super().__init__(message, exit_code)
        self.status_code = status_code


class ParseError(UpdateClientError):
    """Raised when a successful response body is not valid JSON."""

    exit_code = EXIT_SERVER_ERROR


class AuthError(UpdateClientError):
    """Raised when authentication fails or is required."""

    exit_code = EXIT_AUTH_FAILURE


class MissingTokenError(AuthError):
    """Raised when the login endpoint answers 2xx but does not return a token."""

    def __init__(self, message: str = "The update server did not return a token."):
        super().__init__(message)


class NotAuthenticatedError(AuthError):
    """Raised by the download guard to block a package download from the update server."""

    def __init__(
        self,
        message: str = "Please log in to the update service before installing updates.",
    ):
        super().__init__(message)
