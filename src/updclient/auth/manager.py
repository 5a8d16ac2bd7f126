"""Authentication manager -- owns the bearer token lifecycle.

:class:`AuthenticationManager` exchanges a username and password for a
bearer token at the update server, persists it through
:class:`~updclient.auth.credential_store.TokenStore`, and answers the two
questions the rest of the client asks:

* :meth:`~AuthenticationManager.is_authenticated` -- is there a token that
  has not expired yet? Recomputed from the stored record on every call.
* :meth:`~AuthenticationManager.authorized_headers` -- attach the token to
  an outgoing request. This does **not** look at the expiry; an expired token
  is still sent and the server decides.

See Also:
    :class:`~updclient.client.api_client.APIClient` -- performs the login
    request and receives the token provider.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from updclient.auth.credential_store import TokenStore
from updclient.client.api_client import APIClient
from updclient.exceptions import MissingTokenError
from updclient.models import TokenRecord

logger = logging.getLogger(__name__)

LOGIN_PATH = "wp-json/wp-product-update-server/v1/login"
"""Login endpoint, relative to the server URL."""


def _clean_text(value: Any) -> str:
    """Collapse whitespace (including line breaks) and trim."""
    return " ".join(str(value).split())


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return 0


class AuthenticationManager:
    """Log in to, and out of, the update server.

    On construction the manager registers :meth:`bearer_token` as the token
    provider of *api_client*, so both header helpers read the token from the
    same record.

    Args:
        api_client: Client used for the login request and settings mirror.
        store: Persistence for the token record.
        site_url: Identity of this site, sent along with the credentials.
        clock: Returns the current time as epoch seconds.

    Example::

        auth = AuthenticationManager(api_client, TokenStore(options), "https://example.org")
        auth.login("alice", "s3cret")
        assert auth.is_authenticated()
    """

    def __init__(
        self,
        api_client: APIClient,
        store: TokenStore,
        site_url: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._api_client = api_client
        self._store = store
        self._site_url = site_url
        self._clock = clock
        self._token: Optional[TokenRecord] = None
        api_client.set_token_provider(self.bearer_token)

    def is_authenticated(self) -> bool:
        """Return ``True`` if a token is stored and has not expired."""
        record = self.get_token()
        if not record.token:
            return False
        return not record.is_expired(self._clock())

    def login(self, username: str, password: str) -> None:
        """Exchange credentials for a token and persist it.

        The token record is written to its own option and mirrored into the
        settings (``remember_token`` / ``token_expires``).

        Args:
            username: Account name at the update server.
            password: Account password.

        Raises:
            MissingTokenError: If the server accepted the request but returned
                no token.
            UpdateClientError: Any error raised by the API client, unchanged.
        """
        payload = {
            "username": username,
            "password": password,
            "site": self._site_url,
        }
        response = self._api_client.post(LOGIN_PATH, payload)

        raw_token = response.get("token") if isinstance(response, dict) else None
        token_value = _clean_text(raw_token) if raw_token else ""
        if not token_value:
            raise MissingTokenError()

        user = response.get("user")
        record = TokenRecord(
            token=token_value,
            expires=_to_int(response.get("expires")),
            user=user if isinstance(user, dict) else {},
        )
        self._store.save(record)

        settings = self._api_client.get_settings()
        settings.remember_token = record.token
        settings.token_expires = record.expires
        self._api_client.update_settings(settings)

        self._token = record
        logger.info("Logged in to the update server as %s", record.display_name or username)

    def logout(self) -> None:
        """Delete the token record and clear the settings mirror."""
        self._store.clear()

        settings = self._api_client.get_settings()
        settings.remember_token = ""
        settings.token_expires = 0
        self._api_client.update_settings(settings)

        self._token = None
        logger.info("Logged out from the update server")

    def get_token(self) -> TokenRecord:
        """Return the token record, loading it on first use.

        Returns:
            The stored record, or an empty :class:`~updclient.models.TokenRecord`
            when none is stored. Never raises.
        """
        if self._token is None:
            self._token = self._store.load() or TokenRecord()
        return self._token

    def bearer_token(self) -> str:
        """Return the current token string, or ``""``."""
        return self.get_token().token

    def authorized_headers(self, headers: Optional[dict[str, str]] = None) -> dict[str, str]:
        """Return *headers* with ``Authorization: Bearer <token>`` when a token is stored.

        Expiry is not checked here; :meth:`is_authenticated` is the local
        gate and the server enforces the rest.
        """
        result = dict(headers or {})
        token = self.bearer_token()
        if not token:
            return result
        result["Authorization"] = f"Bearer {token}"
        return result
