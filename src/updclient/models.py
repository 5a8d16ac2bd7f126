"""Canonical Pydantic models shared across all updclient modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Persisted models** -- serialised as JSON options in the user's config and
data directories:
    :class:`Settings`, :class:`TokenRecord`, and :class:`GlobalConfig`.

**Server payload models** -- built from update server responses and consumed
by the host's update routine:
    :class:`UpdateDescriptor`.

All models use Pydantic v2. :class:`Settings` uses ``extra="allow"`` so that
keys written by other tools into the same option are preserved on save.
"""

from __future__ import annotations

import posixpath
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Persisted options ---


class Settings(BaseModel):
    """Per-installation settings stored in the ``update_client_settings`` option.

    ``remember_token`` and ``token_expires`` mirror the :class:`TokenRecord`
    written at login so that the settings alone describe the session.

    Example::

        Settings(api_base="https://updates.example.com")
    """

    model_config = ConfigDict(extra="allow")

    api_base: str = Field(
        default="", description="Base URL of the update server (no trailing slash)"
    )
    remember_token: str = Field(default="", description="Mirrored bearer token")
    token_expires: int = Field(
        default=0, description="Mirrored token expiry, epoch seconds (0 = none)"
    )


class TokenRecord(BaseModel):
    """Bearer token issued by the update server, stored in its own option.

    An instance with an empty ``token`` represents "not logged in".

    Attributes:
        token: The bearer token. Empty when absent.
        expires: Expiry as epoch seconds. ``0`` means the token never expires.
        user: Opaque user attributes returned by the server. The display
            name lives under ``user["name"]``.
    """

    token: str = ""
    expires: int = 0
    user: dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> Optional[str]:
        """The user's display name, when the server supplied one."""
        name = self.user.get("name")
        return str(name) if name else None

    def is_expired(self, now: float) -> bool:
        """Return ``True`` when an expiry is recorded and *now* has reached it."""
        return bool(self.expires) and now >= self.expires


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/updclient/config.json``.

    Loaded and saved by :func:`~updclient.config.load_global_config` and
    :func:`~updclient.config.save_global_config`.
    """

    site_url: Optional[str] = Field(
        default=None, description="Site identity sent to the server on login"
    )
    manifest: Optional[str] = Field(
        default=None, description="Path to the installed-package manifest"
    )


# --- Server payloads ---


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _mapping(value: Any) -> dict[str, Any]:
    # Some servers encode an empty mapping as ``[]``.
    return dict(value) if isinstance(value, dict) else {}


class UpdateDescriptor(BaseModel):
    """Metadata describing one available package update.

    Built fresh from every ``check-updates`` response and valid for one
    update check only.
    """

    plugin_file: str
    slug: str
    new_version: str
    package: str = ""
    requires: str = ""
    tested: str = ""
    sections: dict[str, Any] = Field(default_factory=dict)
    icons: dict[str, Any] = Field(default_factory=dict)
    banners: dict[str, Any] = Field(default_factory=dict)
    banners_rtl: dict[str, Any] = Field(default_factory=dict)
    homepage: str = ""

    @classmethod
    def from_update(cls, update: dict[str, Any]) -> UpdateDescriptor:
        """Build a descriptor from one entry of a ``check-updates`` response.

        Missing optional fields fall back to empty values. When the server
        omits ``slug``, it is derived from the plugin file's directory name
        (``plugin-a/plugin-a.php`` -> ``plugin-a``). A single-file package
        has no directory, so its file stem is used instead (``hello.php`` ->
        ``hello``) rather than ``"."``.

        Args:
            update: A mapping carrying at least ``plugin_file`` and ``version``.
        """
        plugin_file = str(update["plugin_file"])
        slug = update.get("slug")
        if slug is None:
            slug = posixpath.dirname(plugin_file) or posixpath.splitext(plugin_file)[0]
        return cls(
            plugin_file=plugin_file,
            slug=str(slug),
            new_version=str(update["version"]),
            package=_text(update.get("package")),
            requires=_text(update.get("requires")),
            tested=_text(update.get("tested")),
            sections=_mapping(update.get("sections")),
            icons=_mapping(update.get("icons")),
            banners=_mapping(update.get("banners")),
            banners_rtl=_mapping(update.get("banners_rtl")),
            homepage=_text(update.get("homepage")),
        )
