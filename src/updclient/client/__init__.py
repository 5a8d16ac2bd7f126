"""HTTP client module for updclient.

Provides :class:`APIClient`, a blocking client backed by :class:`httpx.Client`
that resolves paths against the configured update server, sends and decodes
JSON, and maps failures onto the exceptions in :mod:`updclient.exceptions`.

Example::

    from updclient.client import APIClient
    from updclient.config import OptionStore

    client = APIClient(OptionStore())
    info = client.post("plugin-information", {"slug": "plugin-a"})
"""

from updclient.client.api_client import APIClient

__all__ = ["APIClient"]
