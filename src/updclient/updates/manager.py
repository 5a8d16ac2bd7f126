"""Update manager -- plugs the update server into the host's update routine.

:class:`UpdateManager` implements one handler per
:class:`~updclient.updates.hooks.ExtensionPoint`:

1. :meth:`~UpdateManager.inject_update_data` -- ask the server which of the
   installed packages have updates and add them to the update transient.
2. :meth:`~UpdateManager.provide_plugin_information` -- answer package-info
   lookups with the server's description of the package.
3. :meth:`~UpdateManager.guard_download` -- refuse to download one of *our*
   packages while logged out; otherwise approve the package URL.
4. :meth:`~UpdateManager.ensure_auto_updates_require_login` -- switch off
   automatic updates of our packages while logged out.
5. :meth:`~UpdateManager.authorize_download_request` -- attach the bearer
   token to the request for the URL approved in step 3, once.

Server failures never reach the host: the update check and info lookup log
them and leave the host's state as it was, so an outage reads as "no updates
known". Blocking a download is the only failure raised on purpose.

The approved URL is a single slot. Step 3 must run before step 5 within one
download, and two downloads must not interleave on the same instance.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from updclient.auth.manager import AuthenticationManager
from updclient.client.api_client import APIClient
from updclient.exceptions import NotAuthenticatedError, UpdateClientError
from updclient.models import UpdateDescriptor
from updclient.updates.hooks import (
    PLUGIN_INFORMATION_ACTION,
    ExtensionPoint,
    PluginInfoArgs,
    UpdatePipeline,
    UpdateTransient,
)

logger = logging.getLogger(__name__)

CHECK_UPDATES_PATH = "check-updates"
PLUGIN_INFORMATION_PATH = "plugin-information"


class UpdateManager:
    """Handlers that connect the host's update routine to the update server.

    Args:
        auth_manager: Source of the authentication state and headers.
        api_client: Client for the update server.

    Example::

        manager = UpdateManager(auth_manager, api_client)
        manager.register(pipeline)
    """

    def __init__(self, auth_manager: AuthenticationManager, api_client: APIClient) -> None:
        self._auth = auth_manager
        self._api = api_client
        self._approved_url: Optional[str] = None

    @property
    def approved_url(self) -> Optional[str]:
        """The package URL approved by the last download guard, if not yet used."""
        return self._approved_url

    def register(self, pipeline: UpdatePipeline) -> None:
        """Attach every handler to its extension point on *pipeline*."""
        pipeline.register(ExtensionPoint.UPDATE_CHECK, self.inject_update_data)
        pipeline.register(ExtensionPoint.PLUGIN_INFORMATION, self.provide_plugin_information)
        pipeline.register(ExtensionPoint.PRE_DOWNLOAD, self.guard_download)
        pipeline.register(ExtensionPoint.AUTO_UPDATE, self.ensure_auto_updates_require_login)
        pipeline.register(ExtensionPoint.REQUEST_ARGS, self.authorize_download_request)

    # ------------------------------------------------------------------ #
    # Update check
    # ------------------------------------------------------------------ #

    def inject_update_data(self, transient: UpdateTransient) -> UpdateTransient:
        """Add the server's available updates to ``transient.response``.

        Nothing happens while logged out or when nothing is installed. Entries
        without ``plugin_file`` or ``version`` are skipped; an existing entry
        for the same plugin file is replaced.
        """
        if not self._auth.is_authenticated():
            return transient

        checked = transient.checked
        if not checked or not isinstance(checked, dict):
            return transient

        payload = [
            {"plugin_file": plugin_file, "version": version}
            for plugin_file, version in checked.items()
        ]

        try:
            response = self._api.post(
                CHECK_UPDATES_PATH,
                {"plugins": payload},
                self._auth.authorized_headers(),
            )
        except UpdateClientError as exc:
            logger.warning("Update check failed: %s", exc)
            return transient

        updates = response.get("updates") if isinstance(response, dict) else None
        if not updates or not isinstance(updates, list):
            logger.debug("Update server reported no updates")
            return transient

        for update in updates:
            if not isinstance(update, dict):
                continue
            if not update.get("plugin_file") or not update.get("version"):
                continue
            try:
                descriptor = UpdateDescriptor.from_update(update)
            except ValidationError as exc:
                logger.debug("Skipping malformed update entry %r: %s", update.get("plugin_file"), exc)
                continue
            transient.response[descriptor.plugin_file] = descriptor

        return transient

    # ------------------------------------------------------------------ #
    # Package information
    # ------------------------------------------------------------------ #

    def provide_plugin_information(self, result: Any, action: str, args: PluginInfoArgs) -> Any:
        """Answer a ``plugin_information`` lookup with the server's package description.

        Any other action, a missing slug, a logged-out client, or a server
        failure leaves *result* unchanged.
        """
        if action != PLUGIN_INFORMATION_ACTION:
            return result

        if not self._auth.is_authenticated():
            return result

        slug = getattr(args, "slug", None)
        if not slug:
            return result

        try:
            response = self._api.post(
                PLUGIN_INFORMATION_PATH,
                {"slug": slug},
                self._auth.authorized_headers(),
            )
        except UpdateClientError as exc:
            logger.warning("Package information lookup for '%s' failed: %s", slug, exc)
            return result

        if not isinstance(response, dict):
            return result
        return response

    # ------------------------------------------------------------------ #
    # Downloads
    # ------------------------------------------------------------------ #

    def guard_download(
        self,
        reply: Any,
        package: str,
        hook_extra: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Block downloads from the update server while logged out.

        Packages hosted elsewhere pass through untouched. For our packages
        the URL is remembered as approved so that
        :meth:`authorize_download_request` can attach the token.

        Raises:
            NotAuthenticatedError: If *package* lives on the update server and
                the client is not logged in.
        """
        self._approved_url = None

        base = self._api.get_api_base()
        if not base or not isinstance(package, str) or not package.startswith(base):
            return reply

        if not self._auth.is_authenticated():
            logger.warning("Blocked download of %s: not logged in", package)
            raise NotAuthenticatedError()

        self._approved_url = package
        return reply

    def ensure_auto_updates_require_login(self, should_update: bool, item: Any) -> bool:
        """Return ``False`` for our packages while logged out, else *should_update*.

        *item* may be an :class:`~updclient.models.UpdateDescriptor` or any
        object or mapping with a ``package`` URL.
        """
        base = self._api.get_api_base()
        if not base:
            return should_update

        if isinstance(item, dict):
            package = item.get("package")
        else:
            package = getattr(item, "package", None)
        if not isinstance(package, str) or not package.startswith(base):
            return should_update

        if not self._auth.is_authenticated():
            return False

        return should_update

    def authorize_download_request(self, args: dict[str, Any], url: str) -> dict[str, Any]:
        """Attach the bearer token to the request for the approved package URL.

        The approval is consumed: a second request for the same URL gets no
        token until the download guard approves it again.
        """
        if not self._approved_url or url != self._approved_url:
            return args

        args = dict(args)
        args["headers"] = self._auth.authorized_headers(args.get("headers") or {})
        self._approved_url = None
        return args
