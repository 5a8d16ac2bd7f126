"""Authentication with the update server.

- :class:`AuthenticationManager` -- login, logout, authentication state, and
  ``Authorization`` header injection.
- :class:`TokenStore` -- persistence of the issued
  :class:`~updclient.models.TokenRecord`.

Typical usage::

    from updclient.auth import AuthenticationManager, TokenStore

    auth = AuthenticationManager(api_client, TokenStore(options), site_url)
    auth.login(username, password)
    headers = auth.authorized_headers()
"""

from updclient.auth.credential_store import OPTION_TOKEN, TokenStore
from updclient.auth.manager import LOGIN_PATH, AuthenticationManager

__all__ = [
    "AuthenticationManager",
    "LOGIN_PATH",
    "OPTION_TOKEN",
    "TokenStore",
]
