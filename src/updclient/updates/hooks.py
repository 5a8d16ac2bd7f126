"""Extension points, host-side containers, and the pipeline that runs them.

This module provides the contract between the update client and a host's
update routine:

* :class:`ExtensionPoint` -- the five named points a host invokes.
* :class:`UpdateTransient` and :class:`PluginInfoArgs` -- mutable containers
  the host threads through the update-check and package-info points.
* :class:`UpdatePipeline` -- holds typed handlers per point and runs them in
  registration order.

Every point follows a filter pattern: each handler receives the value
returned by the previous handler and returns the (possibly modified) value
for the next one. A handler may raise to stop the host's operation; the
download guard does exactly that.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional, Union, overload

from updclient.models import UpdateDescriptor

PLUGIN_INFORMATION_ACTION = "plugin_information"
"""The package-info action the update client answers."""


class ExtensionPoint(str, enum.Enum):
    """Named points in the host's update routine."""

    UPDATE_CHECK = "update_check"
    PLUGIN_INFORMATION = "plugin_information"
    PRE_DOWNLOAD = "pre_download"
    AUTO_UPDATE = "auto_update"
    REQUEST_ARGS = "request_args"


@dataclass
class UpdateTransient:
    """State of one update check as seen by the host.

    Attributes:
        checked: Installed packages, plugin file -> installed version.
        response: Available updates, plugin file -> descriptor.
    """

    checked: dict[str, str] = field(default_factory=dict)
    response: dict[str, UpdateDescriptor] = field(default_factory=dict)


@dataclass
class PluginInfoArgs:
    """Arguments of a package-info lookup."""

    slug: str = ""


UpdateCheckHandler = Callable[[UpdateTransient], UpdateTransient]
PluginInformationHandler = Callable[[Any, str, PluginInfoArgs], Any]
PreDownloadHandler = Callable[[Any, str, Optional[dict[str, Any]]], Any]
AutoUpdateHandler = Callable[[bool, Any], bool]
RequestArgsHandler = Callable[[dict[str, Any], str], dict[str, Any]]

Handler = Union[
    UpdateCheckHandler,
    PluginInformationHandler,
    PreDownloadHandler,
    AutoUpdateHandler,
    RequestArgsHandler,
]


class UpdatePipeline:
    """Ordered handler chains for each :class:`ExtensionPoint`.

    Example::

        pipeline = UpdatePipeline()
        pipeline.register(ExtensionPoint.UPDATE_CHECK, manager.inject_update_data)
        transient = pipeline.run_update_check(UpdateTransient(checked=installed))
    """

    def __init__(self) -> None:
        self._handlers: dict[ExtensionPoint, list[Handler]] = {
            point: [] for point in ExtensionPoint
        }

    @overload
    def register(self, point: Literal[ExtensionPoint.UPDATE_CHECK], handler: UpdateCheckHandler) -> None: ...

    @overload
    def register(
        self, point: Literal[ExtensionPoint.PLUGIN_INFORMATION], handler: PluginInformationHandler
    ) -> None: ...

    @overload
    def register(self, point: Literal[ExtensionPoint.PRE_DOWNLOAD], handler: PreDownloadHandler) -> None: ...

    @overload
    def register(self, point: Literal[ExtensionPoint.AUTO_UPDATE], handler: AutoUpdateHandler) -> None: ...

    @overload
    def register(self, point: Literal[ExtensionPoint.REQUEST_ARGS], handler: RequestArgsHandler) -> None: ...

    def register(self, point: ExtensionPoint, handler: Handler) -> None:
        """Append *handler* to the chain of *point*."""
        self._handlers[ExtensionPoint(point)].append(handler)

    def handlers(self, point: ExtensionPoint) -> list[Handler]:
        """Return a copy of the handler chain registered for *point*."""
        return list(self._handlers[ExtensionPoint(point)])

    def run_update_check(self, transient: UpdateTransient) -> UpdateTransient:
        """Let handlers add available updates to *transient*."""
        for handler in self._handlers[ExtensionPoint.UPDATE_CHECK]:
            transient = handler(transient)
        return transient

    def run_plugin_information(self, result: Any, action: str, args: PluginInfoArgs) -> Any:
        """Let handlers answer a package-info lookup.

        Args:
            result: The host's answer so far (``False`` when it has none).
            action: The lookup action, e.g. ``"plugin_information"``.
            args: The lookup arguments.
        """
        for handler in self._handlers[ExtensionPoint.PLUGIN_INFORMATION]:
            result = handler(result, action, args)
        return result

    def run_pre_download(
        self,
        reply: Any,
        package: str,
        hook_extra: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Run handlers before the host downloads *package*.

        Raises:
            NotAuthenticatedError: When a handler blocks the download.
        """
        for handler in self._handlers[ExtensionPoint.PRE_DOWNLOAD]:
            reply = handler(reply, package, hook_extra)
        return reply

    def run_auto_update(self, should_update: bool, item: Any) -> bool:
        """Let handlers veto or allow an automatic update of *item*."""
        for handler in self._handlers[ExtensionPoint.AUTO_UPDATE]:
            should_update = handler(should_update, item)
        return should_update

    def run_request_args(self, args: dict[str, Any], url: str) -> dict[str, Any]:
        """Let handlers amend the arguments of an outgoing HTTP request to *url*."""
        for handler in self._handlers[ExtensionPoint.REQUEST_ARGS]:
            args = handler(args, url)
        return args
