"""Auth commands -- log in to and out of the update server.

Provides the ``updclient auth`` sub-command group. Logging in exchanges a
username and password for a bearer token that unlocks update checks,
package information, and package downloads.

Typical workflow::

    updclient config set-server https://updates.example.com
    updclient auth login
    updclient auth status
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import typer

from updclient.commands import get_services
from updclient.commands.notices import handle_login, handle_logout, render, status_notice
from updclient.output import format_response, info, suggest


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    username: Optional[str] = typer.Option(
        None, "--username", "-u", help="Account name at the update server."
    ),
    password: Optional[str] = typer.Option(
        None,
        "--password",
        envvar="UPDCLIENT_PASSWORD",
        help="Account password (prompted when omitted).",
    ),
    site_url: Optional[str] = typer.Option(
        None, "--site-url", help="Site identity sent to the server."
    ),
) -> None:
    """Log in to the update server.

    Prompts for the username and the password (hidden) when they are not
    passed as options. On success the issued token is stored with
    ``0o600`` permissions.

    Raises:
        typer.Exit: With code 2 if either credential is empty, or with the
            error's exit code if the server rejects the login.

    Example::

        updclient auth login
        updclient auth login -u alice --site-url https://shop.example.org
    """
    if username is None:
        username = typer.prompt("Username", default="", show_default=False)
    if password is None:
        password = typer.prompt("Password", default="", show_default=False, hide_input=True)

    services = get_services(ctx, site_url=site_url)
    notice = handle_login(services.auth_manager, username, password)
    render(notice)
    if notice.exit_code:
        raise typer.Exit(code=notice.exit_code)
    suggest("Check for updates: updclient updates check")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Forget the stored token.

    Example::

        updclient auth logout
    """
    services = get_services(ctx)
    render(handle_logout(services.auth_manager))


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show whether updates are unlocked and for whom."""
    services = get_services(ctx)
    auth = services.auth_manager
    record = auth.get_token()
    authenticated = auth.is_authenticated()

    render(status_notice(auth))
    if authenticated:
        if record.expires:
            expires = datetime.fromtimestamp(record.expires, tz=timezone.utc)
            info(f"Token expires {expires.isoformat()}.")
        else:
            info("Token does not expire.")

    format_response(
        {
            "server": services.api_client.get_api_base() or None,
            "authenticated": authenticated,
            "user": record.display_name,
            "expires": record.expires or None,
        }
    )
