"""Built-in CLI sub-commands for updclient.

* :mod:`~updclient.commands.auth` -- log in to and out of the update server.
* :mod:`~updclient.commands.config` -- server URL and installed-package manifest.
* :mod:`~updclient.commands.updates` -- check for, describe, and download updates.

Commands obtain their service graph through :func:`get_services`, which
returns ``ctx.obj["services"]`` when a caller (usually a test) supplied one
and builds a fresh graph otherwise.
"""

from __future__ import annotations

from typing import Optional

import typer

from updclient.services import Services, build_services


def get_services(ctx: typer.Context, site_url: Optional[str] = None) -> Services:
    """Return the service graph for this invocation, building it on first use."""
    ctx.ensure_object(dict)
    services = ctx.obj.get("services")
    if services is None:
        services = build_services(site_url=site_url or ctx.obj.get("site_url"))
        ctx.obj["services"] = services
    return services
