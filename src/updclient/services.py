"""Construction and wiring of the update client's service graph.

:func:`build_services` creates one instance of every component and connects
them: the authentication manager installs itself as the API client's token
provider, and the update manager registers its handlers on a fresh
:class:`~updclient.updates.hooks.UpdatePipeline`. Each call returns an
independent graph, so tests and embedders can build as many as they need.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from updclient.auth.credential_store import TokenStore
from updclient.auth.manager import AuthenticationManager
from updclient.client.api_client import APIClient
from updclient.config import OptionStore, resolve_site_url
from updclient.updates.hooks import UpdatePipeline
from updclient.updates.manager import UpdateManager


@dataclass
class Services:
    """The wired components of one update client."""

    options: OptionStore
    api_client: APIClient
    auth_manager: AuthenticationManager
    update_manager: UpdateManager
    pipeline: UpdatePipeline
    transport: Optional[httpx.BaseTransport] = None


def build_services(
    options: Optional[OptionStore] = None,
    site_url: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Services:
    """Build and wire a complete service graph.

    Args:
        options: Option store to persist into. Defaults to the user's
            option directory.
        site_url: Site identity sent on login. Resolved through
            :func:`~updclient.config.resolve_site_url` when omitted.
        transport: Optional httpx transport for the API client and package
            downloads.
    """
    if options is None:
        options = OptionStore()
    if site_url is None:
        site_url = resolve_site_url()

    api_client = APIClient(options, transport=transport)
    auth_manager = AuthenticationManager(api_client, TokenStore(options), site_url)
    update_manager = UpdateManager(auth_manager, api_client)

    pipeline = UpdatePipeline()
    update_manager.register(pipeline)

    return Services(
        options=options,
        api_client=api_client,
        auth_manager=auth_manager,
        update_manager=update_manager,
        pipeline=pipeline,
        transport=transport,
    )
