"""Update commands -- check for, describe, and download package updates.

Provides the ``updclient updates`` sub-command group. Each command drives
the update pipeline the way a host's update routine would, so the same
login rules apply: while logged out no updates are reported, package
information is unavailable, and downloads from the update server are
refused.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from updclient.commands import get_services
from updclient.commands.notices import locked_notice, render
from updclient.exceptions import UpdateClientError
from updclient.exit_codes import EXIT_NOT_FOUND
from updclient.output import error, format_response, info, print_table, success, suggest
from updclient.updates.installer import (
    PackageDownloader,
    check_for_updates,
    fetch_plugin_information,
    should_auto_update,
)


updates_app = typer.Typer(no_args_is_help=True)


def _installed(ctx: typer.Context) -> dict[str, str]:
    from updclient.config import load_installed, resolve_manifest_path

    manifest = ctx.obj.get("manifest") if ctx.obj else None
    return load_installed(resolve_manifest_path(manifest))


@updates_app.command("check")
def updates_check(ctx: typer.Context) -> None:
    """List available updates for the tracked packages.

    Example::

        updclient updates check
        updclient --json updates check
    """
    services = get_services(ctx)
    notice = locked_notice(services.auth_manager)
    if notice is not None:
        render(notice)

    installed = _installed(ctx)
    if not installed:
        info("No packages are tracked.")
        suggest("Track one: updclient config track <plugin_file> <version>")
        return

    transient = check_for_updates(services.pipeline, installed)
    if not transient.response:
        info("No updates available.")
        return

    rows = []
    for plugin_file, descriptor in sorted(transient.response.items()):
        auto = should_auto_update(services.pipeline, descriptor)
        rows.append(
            [
                plugin_file,
                installed.get(plugin_file, ""),
                descriptor.new_version,
                "yes" if auto else "no",
            ]
        )
    print_table(
        ["Plugin", "Installed", "Available", "Auto-update"],
        rows,
        title="Available updates",
    )


@updates_app.command("info")
def updates_info(
    ctx: typer.Context,
    slug: str = typer.Argument(help="Package slug, e.g. 'plugin-a'."),
) -> None:
    """Show the update server's description of a package.

    Raises:
        typer.Exit: With code 4 if no information is available.
    """
    services = get_services(ctx)
    notice = locked_notice(services.auth_manager)
    if notice is not None:
        render(notice)

    result = fetch_plugin_information(services.pipeline, slug)
    if not isinstance(result, dict):
        error(f"No information available for {slug}.")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    format_response(result)


@updates_app.command("download")
def updates_download(
    ctx: typer.Context,
    plugin_file: str = typer.Argument(help="Tracked plugin file to download the update for."),
    dest: Optional[Path] = typer.Option(
        None, "--dest", "-d", help="Directory to save the package in."
    ),
) -> None:
    """Download the available update of a tracked package.

    The package is saved under ``<data_dir>/downloads`` unless ``--dest`` is
    given. Downloads from the update server require a login.

    Raises:
        typer.Exit: With code 4 if the package is not tracked or has no
            update, or with the error's exit code if the download fails.

    Example::

        updclient updates download plugin-a/plugin-a.php --dest ./packages
    """
    from updclient.config import get_data_dir

    services = get_services(ctx)
    installed = _installed(ctx)
    if plugin_file not in installed:
        error(f"{plugin_file} is not tracked.")
        suggest(f"Track it: updclient config track {plugin_file} <version>")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    transient = check_for_updates(services.pipeline, {plugin_file: installed[plugin_file]})
    descriptor = transient.response.get(plugin_file)
    if descriptor is None or not descriptor.package:
        notice = locked_notice(services.auth_manager)
        if notice is not None:
            render(notice)
        error(f"No update available for {plugin_file}.")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    target_dir = dest if dest is not None else get_data_dir() / "downloads"
    downloader = PackageDownloader(services.pipeline, transport=services.transport)
    try:
        path = downloader.download(descriptor.package, target_dir, {"plugin": plugin_file})
    except UpdateClientError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Downloaded {plugin_file} {descriptor.new_version}.")
    format_response(
        {
            "plugin_file": plugin_file,
            "version": descriptor.new_version,
            "path": str(path),
        }
    )
