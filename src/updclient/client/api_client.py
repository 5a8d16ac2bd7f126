"""Synchronous HTTP client for the update server.

This module provides :class:`APIClient`, the low-level wrapper every other
component talks to the update server through. It wraps :class:`httpx.Client`
and layers on:

- **Settings** -- the persisted :class:`~updclient.models.Settings`
  (server URL and mirrored token), lazily loaded from the option store.
- **URL building** -- paths are resolved against the configured server;
  nothing is sent when no server is configured.
- **JSON in, JSON out** -- request bodies are JSON-encoded, responses
  decoded.
- **Error mapping** -- network failures, non-2xx statuses, and unreadable
  bodies are raised as :class:`~updclient.exceptions.TransportError`,
  :class:`~updclient.exceptions.APIError`, and
  :class:`~updclient.exceptions.ParseError`.

Requests use a fixed 20 second timeout and are never retried.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from updclient.config import OptionStore
from updclient.exceptions import (
    APIError,
    ConfigError,
    MissingBaseURLError,
    ParseError,
    TransportError,
)
from updclient.models import Settings
from updclient.output import get_output

OPTION_SETTINGS = "update_client_settings"
"""Option name the settings are stored under."""

REQUEST_TIMEOUT = 20.0
"""Per-request timeout in seconds."""

_GENERIC_ERROR = "Unexpected response from the update server."
_PARSE_ERROR = "Unable to parse the response from the update server."


class APIClient:
    """HTTP client bound to the configured update server.

    Args:
        options: Option store holding the settings.
        transport: Optional httpx transport, used by tests to stand in for
            the network.

    Example::

        client = APIClient(OptionStore())
        data = client.post("check-updates", {"plugins": []})
    """

    def __init__(
        self,
        options: OptionStore,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._options = options
        self._transport = transport
        self._settings: Optional[Settings] = None
        self._token_provider: Optional[Callable[[], str]] = None

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    def get_settings(self) -> Settings:
        """Return the settings, loading them from the option store on first use.

        Missing keys are filled with defaults; stored values are never
        overwritten by defaults. The returned object is a copy, so callers
        must go through :meth:`update_settings` to change anything.

        Raises:
            ConfigError: If the stored option is unreadable or invalid.
        """
        if self._settings is None:
            stored = self._options.get(OPTION_SETTINGS, {})
            if not isinstance(stored, dict):
                stored = {}
            try:
                self._settings = Settings.model_validate(stored)
            except ValidationError as exc:
                raise ConfigError(f"Invalid update client settings: {exc}") from exc
        return self._settings.model_copy(deep=True)

    def update_settings(self, settings: Settings) -> None:
        """Replace the persisted settings wholesale and refresh the cache."""
        self._options.update(OPTION_SETTINGS, settings.model_dump(mode="json"), private=True)
        self._settings = settings.model_copy(deep=True)

    def get_api_base(self) -> str:
        """Return the configured server URL without trailing slashes, or ``""``."""
        return self.get_settings().api_base.rstrip("/\\")

    # ------------------------------------------------------------------ #
    # Bearer token
    # ------------------------------------------------------------------ #

    def set_token_provider(self, provider: Callable[[], str]) -> None:
        """Use *provider* as the source of the bearer token for outgoing requests.

        The authentication manager installs itself here so that there is a
        single source of truth for the token. Without a provider the token
        mirrored into the settings is used.
        """
        self._token_provider = provider

    def bearer_token(self) -> str:
        """Return the bearer token for outgoing requests, or ``""``."""
        if self._token_provider is not None:
            return self._token_provider()
        return self.get_settings().remember_token

    def with_token_header(self, headers: Optional[dict[str, str]] = None) -> dict[str, str]:
        """Return *headers* with ``Authorization: Bearer <token>`` when a token exists."""
        result = dict(headers or {})
        token = self.bearer_token()
        if not token:
            return result
        result["Authorization"] = f"Bearer {token}"
        return result

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def get(self, path: str, headers: Optional[dict[str, str]] = None) -> Any:
        """Send a GET request and return the decoded JSON body.

        Args:
            path: Path relative to the server URL. Leading slashes are ignored.
            headers: Extra headers; they override the defaults.

        Raises:
            MissingBaseURLError: If no server URL is configured.
            TransportError: If the server cannot be reached.
            APIError: On a status outside 200-299.
            ParseError: If a successful body is not JSON.
        """
        return self._request("GET", path, headers=headers)

    def post(
        self,
        path: str,
        body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Send a POST request with a JSON body and return the decoded JSON body.

        Args:
            path: Path relative to the server URL. Leading slashes are ignored.
            body: JSON-serialisable request body. Defaults to ``{}``.
            headers: Extra headers; they override the defaults.

        Raises:
            MissingBaseURLError: If no server URL is configured.
            TransportError: If the server cannot be reached.
            APIError: On a status outside 200-299.
            ParseError: If a successful body is not JSON.
        """
        return self._request("POST", path, body=body if body is not None else {}, headers=headers)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _build_url(self, path: str) -> str:
        base = self.get_api_base()
        if not base:
            raise MissingBaseURLError()
        return f"{base}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        url = self._build_url(path)

        merged_headers = httpx.Headers({"Accept": "application/json"})
        content: Optional[str] = None
        if method == "POST":
            merged_headers["Content-Type"] = "application/json"
            content = json.dumps(body)
        # Caller-supplied headers win over the defaults.
        merged_headers.update(headers or {})

        get_output().debug(f"{method} {url}")
        try:
            with httpx.Client(
                timeout=REQUEST_TIMEOUT,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = client.request(method, url, headers=merged_headers, content=content)
        except httpx.HTTPError as exc:
            raise TransportError(f"Could not reach the update server: {exc}") from exc

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        """Decode *response*, raising a typed exception for error statuses."""
        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = None

        if not 200 <= status <= 299:
            message = _GENERIC_ERROR
            if isinstance(data, dict) and data.get("message") is not None:
                message = str(data["message"])
            get_output().debug(f"HTTP {status}: {message}")
            raise APIError(message, status_code=status)

        if data is None:
            raise ParseError(_PARSE_ERROR)

        return data
