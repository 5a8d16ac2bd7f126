"""Config commands -- update server URL and installed-package manifest.

Provides the ``updclient config`` sub-command group. The server URL lives in
the ``update_client_settings`` option; the manifest is a JSON object mapping
each installed plugin file to its version, sent with every update check.
"""

from __future__ import annotations

from pathlib import Path

import typer

from updclient.commands import get_services
from updclient.exceptions import ConfigError
from updclient.exit_codes import EXIT_INVALID_USAGE, EXIT_NOT_FOUND
from updclient.output import error, format_response, info, success, suggest


config_app = typer.Typer(no_args_is_help=True)


def _manifest_path(ctx: typer.Context) -> Path:
    from updclient.config import resolve_manifest_path

    manifest = ctx.obj.get("manifest") if ctx.obj else None
    return resolve_manifest_path(manifest)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the current configuration.

    Example::

        updclient config show
        updclient --json config show
    """
    from updclient.config import get_config_dir, load_installed

    services = get_services(ctx)
    manifest = _manifest_path(ctx)
    settings = services.api_client.get_settings()

    info(f"Config directory: {get_config_dir()}")
    format_response(
        {
            "server": settings.api_base or None,
            "logged_in": services.auth_manager.is_authenticated(),
            "manifest": str(manifest),
            "installed": load_installed(manifest),
        }
    )


@config_app.command("set-server")
def config_set_server(
    ctx: typer.Context,
    url: str = typer.Argument(help="Base URL of the update server."),
) -> None:
    """Set the update server URL.

    Surrounding whitespace and trailing slashes are removed; only
    ``http://`` and ``https://`` URLs are accepted.

    Raises:
        typer.Exit: With code 2 if the URL is not usable.

    Example::

        updclient config set-server https://updates.example.com
    """
    from updclient.config import sanitize_api_base

    try:
        api_base = sanitize_api_base(url)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    api_client = get_services(ctx).api_client
    settings = api_client.get_settings()
    settings.api_base = api_base
    api_client.update_settings(settings)
    success(f"Update server set to {api_base}.")
    suggest("Log in: updclient auth login")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key: 'site_url' or 'manifest'."),
    value: str = typer.Argument(help="Value to set; an empty string clears the key."),
) -> None:
    """Set a value in the user-wide ``config.json``.

    ``site_url`` is the site identity sent to the server on login;
    ``manifest`` is the default location of the installed-package manifest.
    Both are overridden by the matching CLI flag or environment variable.

    Raises:
        typer.Exit: With code 2 if the key is unknown or the config file
            is invalid.

    Example::

        updclient config set site_url https://shop.example.org
        updclient config set manifest ~/sites/shop/installed.json
        updclient config set manifest ""
    """
    from updclient.config import load_global_config, save_global_config
    from updclient.models import GlobalConfig

    try:
        data = load_global_config().model_dump(mode="json")
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    if key not in data:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    cleaned = value.strip()
    data[key] = cleaned or None
    save_global_config(GlobalConfig.model_validate(data))
    if cleaned:
        success(f"Set {key} = {cleaned}")
    else:
        success(f"Cleared {key}.")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Forget the server URL and the stored token.

    Asks for confirmation unless ``--force`` is active.

    Example::

        updclient config reset
        updclient --force config reset
    """
    from updclient.models import Settings

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset the update client settings and log out?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    services = get_services(ctx)
    services.auth_manager.logout()
    services.api_client.update_settings(Settings())
    success("Update client settings reset to defaults.")


@config_app.command("track")
def config_track(
    ctx: typer.Context,
    plugin_file: str = typer.Argument(help="Plugin file, e.g. 'plugin-a/plugin-a.php'."),
    version: str = typer.Argument(help="Installed version."),
) -> None:
    """Record an installed package in the manifest.

    Example::

        updclient config track plugin-a/plugin-a.php 1.0.0
    """
    from updclient.config import load_installed, save_installed

    manifest = _manifest_path(ctx)
    installed = load_installed(manifest)
    installed[plugin_file] = version
    save_installed(manifest, installed)
    success(f"Tracking {plugin_file} at version {version}.")


@config_app.command("untrack")
def config_untrack(
    ctx: typer.Context,
    plugin_file: str = typer.Argument(help="Plugin file to remove from the manifest."),
) -> None:
    """Remove a package from the manifest.

    Raises:
        typer.Exit: With code 4 if the package is not tracked.
    """
    from updclient.config import load_installed, save_installed

    manifest = _manifest_path(ctx)
    installed = load_installed(manifest)
    if plugin_file not in installed:
        error(f"{plugin_file} is not tracked.")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    del installed[plugin_file]
    save_installed(manifest, installed)
    success(f"No longer tracking {plugin_file}.")
