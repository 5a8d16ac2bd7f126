"""Update pipeline, update manager, and the reference host that drives them."""

from updclient.updates.hooks import (
    PLUGIN_INFORMATION_ACTION,
    ExtensionPoint,
    PluginInfoArgs,
    UpdatePipeline,
    UpdateTransient,
)
from updclient.updates.installer import (
    PackageDownloader,
    check_for_updates,
    fetch_plugin_information,
    should_auto_update,
)
from updclient.updates.manager import UpdateManager

__all__ = [
    "PLUGIN_INFORMATION_ACTION",
    "ExtensionPoint",
    "PackageDownloader",
    "PluginInfoArgs",
    "UpdateManager",
    "UpdatePipeline",
    "UpdateTransient",
    "check_for_updates",
    "fetch_plugin_information",
    "should_auto_update",
]
