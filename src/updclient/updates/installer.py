"""Minimal host that drives the update pipeline.

These helpers play the part of the host's update routine: they invoke the
extension points in the order a real host would and act on the results.
The command line uses them; embedders with their own update routine call
the :class:`~updclient.updates.hooks.UpdatePipeline` directly instead.
"""

from __future__ import annotations

import contextlib
import logging
import os
import posixpath
import tempfile
from pathlib import Path
from typing import Any, Optional

import httpx

from updclient.exceptions import APIError, TransportError
from updclient.models import UpdateDescriptor
from updclient.updates.hooks import (
    PLUGIN_INFORMATION_ACTION,
    PluginInfoArgs,
    UpdatePipeline,
    UpdateTransient,
)

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 300.0
"""Timeout for package downloads, in seconds."""

_DEFAULT_FILENAME = "package.zip"


def check_for_updates(pipeline: UpdatePipeline, installed: dict[str, str]) -> UpdateTransient:
    """Run an update check for the *installed* ``{plugin_file: version}`` map."""
    transient = UpdateTransient(checked=dict(installed))
    return pipeline.run_update_check(transient)


def fetch_plugin_information(pipeline: UpdatePipeline, slug: str) -> Any:
    """Look up package information for *slug*.

    Returns:
        Whatever the handlers answered, or ``False`` when none did.
    """
    return pipeline.run_plugin_information(
        False, PLUGIN_INFORMATION_ACTION, PluginInfoArgs(slug=slug)
    )


def should_auto_update(
    pipeline: UpdatePipeline,
    descriptor: UpdateDescriptor,
    default: bool = True,
) -> bool:
    """Return whether *descriptor* may be installed automatically."""
    return bool(pipeline.run_auto_update(default, descriptor))


def _filename_for(url: str) -> str:
    try:
        name = posixpath.basename(httpx.URL(url).path)
    except httpx.InvalidURL:
        name = ""
    return name or _DEFAULT_FILENAME


class PackageDownloader:
    """Download packages the way a host installer would.

    Each download runs the pre-download point first (which may raise
    :class:`~updclient.exceptions.NotAuthenticatedError`), then lets the
    request-args point amend the outgoing request before streaming the
    package to disk.

    Args:
        pipeline: The pipeline whose handlers guard and authorise downloads.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        pipeline: UpdatePipeline,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._pipeline = pipeline
        self._transport = transport

    def download(
        self,
        url: str,
        dest_dir: Path,
        hook_extra: Optional[dict[str, Any]] = None,
    ) -> Path:
        """Download *url* into *dest_dir* and return the written file.

        The file is named after the last segment of the URL path and written
        atomically; a failed download leaves no partial file behind.

        Raises:
            NotAuthenticatedError: If a pre-download handler blocks the download.
            APIError: On a status outside 200-299.
            TransportError: If the server cannot be reached.
        """
        reply = self._pipeline.run_pre_download(False, url, hook_extra)
        if isinstance(reply, (str, Path)) and str(reply):
            # A handler already produced the file.
            return Path(reply)

        args: dict[str, Any] = {"timeout": DOWNLOAD_TIMEOUT, "headers": {}}
        args = self._pipeline.run_request_args(args, url)

        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        target = dest_dir / _filename_for(url)

        logger.debug("Downloading %s to %s", url, target)
        try:
            with httpx.Client(
                timeout=args.get("timeout", DOWNLOAD_TIMEOUT),
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                with client.stream("GET", url, headers=args.get("headers") or {}) as response:
                    status = response.status_code
                    if not 200 <= status <= 299:
                        raise APIError(
                            f"Package download failed with HTTP {status}.",
                            status_code=status,
                        )
                    self._write_stream(response, target)
        except httpx.HTTPError as exc:
            raise TransportError(f"Could not download {url}: {exc}") from exc

        logger.info("Downloaded %s", target)
        return target

    @staticmethod
    def _write_stream(response: httpx.Response, target: Path) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)
            os.replace(tmp_path, target)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            raise
