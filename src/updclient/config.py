"""Configuration management with XDG paths, atomic writes, and the option store.

This module handles all persistent state for updclient:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.updclient/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Option store** -- :class:`OptionStore`, a named key-value store with
  one JSON file per option. It backs the update server settings and the
  bearer token record.
* **Global config** -- a single :class:`~updclient.models.GlobalConfig`
  JSON file (site identity, manifest location).
* **Precedence resolution** -- :func:`resolve_site_url` and
  :func:`resolve_manifest_path` merge CLI flags, environment variables, and
  global config.
* **Installed manifest** -- :func:`load_installed` / :func:`save_installed`
  read and write the ``{plugin_file: version}`` map the update check sends.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import socket
import tempfile
from pathlib import Path
from typing import Any, Optional

import httpx

from updclient.exceptions import ConfigError
from updclient.models import GlobalConfig

_APP_NAME = "updclient"
_CONFIG_FILENAME = "config.json"
_MANIFEST_FILENAME = "installed.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/updclient/`` (default ``~/.config/updclient/``).
    On macOS/Windows: ``~/.updclient/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs, downloads), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/updclient/`` (default ``~/.local/share/updclient/``).
    On macOS/Windows: ``~/.updclient/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_options_dir() -> Path:
    """Return the option store directory (``<config_dir>/options/``), creating it if necessary."""
    path = get_config_dir() / "options"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    When *mode* is given it is applied to the temp file before any content
    is written, so secrets are never readable by others, even momentarily.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Option store ---


class OptionStore:
    """Named key-value persistence, one JSON file per option.

    This is the storage contract the update client needs from its host:
    read an option with a default, replace it wholesale, or delete it.

    Args:
        directory: Where option files live. Defaults to
            :func:`get_options_dir`.

    Example::

        options = OptionStore()
        options.update("update_client_settings", {"api_base": "https://x"})
        options.get("update_client_settings", {})
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self._directory = directory if directory is not None else get_options_dir()

    @property
    def directory(self) -> Path:
        """The directory holding the option files."""
        return self._directory

    def path(self, name: str) -> Path:
        """Return the file backing option *name*."""
        return self._directory / f"{name}.json"

    def get(self, name: str, default: Any = None) -> Any:
        """Read option *name*, returning *default* when it has never been set.

        Raises:
            ConfigError: If the option file exists but is not valid JSON.
        """
        path = self.path(name)
        if not path.is_file():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            raise ConfigError(f"Invalid option '{name}' at {path}: {exc}") from exc

    def update(self, name: str, value: Any, private: bool = False) -> None:
        """Replace option *name* with *value*.

        Args:
            name: Option name.
            value: Any JSON-serialisable value.
            private: Write the file with ``0o600`` permissions.
        """
        text = json.dumps(value, indent=2) + "\n"
        _atomic_write(self.path(name), text, mode=0o600 if private else None)

    def delete(self, name: str) -> bool:
        """Delete option *name*. Returns ``True`` if something was removed."""
        path = self.path(name)
        if not path.is_file():
            return False
        path.unlink()
        return True


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~updclient.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_site_url(cli_site_url: Optional[str] = None) -> str:
    """Resolve the site identity sent to the update server on login.

    Precedence (high to low):
        1. CLI flag (``cli_site_url``)
        2. Environment variable ``UPDCLIENT_SITE_URL``
        3. ``site_url`` in the global config
        4. The host's fully qualified domain name
    """
    if cli_site_url:
        return cli_site_url
    env_site = os.environ.get("UPDCLIENT_SITE_URL")
    if env_site:
        return env_site
    config = load_global_config()
    if config.site_url:
        return config.site_url
    return socket.getfqdn()


def resolve_manifest_path(cli_manifest: Optional[str] = None) -> Path:
    """Resolve the installed-package manifest location.

    Precedence (high to low): CLI flag, ``UPDCLIENT_MANIFEST``, ``manifest``
    in the global config, ``<config_dir>/installed.json``.
    """
    if cli_manifest:
        return Path(cli_manifest).expanduser()
    env_manifest = os.environ.get("UPDCLIENT_MANIFEST")
    if env_manifest:
        return Path(env_manifest).expanduser()
    config = load_global_config()
    if config.manifest:
        return Path(config.manifest).expanduser()
    return get_config_dir() / _MANIFEST_FILENAME


# --- Installed manifest ---


def load_installed(path: Path) -> dict[str, str]:
    """Load the ``{plugin_file: version}`` manifest of installed packages.

    Returns:
        The manifest, or an empty dict when the file does not exist.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid manifest at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Manifest at {path} must be a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def save_installed(path: Path, installed: dict[str, str]) -> None:
    """Persist the installed-package manifest atomically, keys sorted."""
    _atomic_write(path, json.dumps(dict(sorted(installed.items())), indent=2) + "\n")


# --- Validation ---


def sanitize_api_base(value: str) -> str:
    """Validate and normalise a user-supplied update server URL.

    Surrounding whitespace and trailing slashes are removed. Only absolute
    ``http``/``https`` URLs with a host are accepted.

    Raises:
        ConfigError: If *value* is not a usable server URL.
    """
    candidate = value.strip()
    try:
        url = httpx.URL(candidate)
    except httpx.InvalidURL as exc:
        raise ConfigError(f"Invalid server URL '{candidate}': {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigError(
            f"Invalid server URL '{candidate}': expected an http:// or https:// URL"
        )
    return candidate.rstrip("/")
