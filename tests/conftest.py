"""Shared test fixtures for updclient.

Provides isolated config environments, an option store, a fake update
server built on :class:`httpx.MockTransport`, wired service graphs, and a
CLI runner. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from updclient.config import OptionStore
from updclient.output import OutputFormat, OutputManager, reset_output, set_output


API_BASE = "https://updates.example.com"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.  The package logger gets the same
    treatment, since the CLI binds a handler to the redirected stderr.
    """
    yield
    reset_output()
    logger = logging.getLogger("updclient")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config. Clears all UPDCLIENT_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("updclient.config._is_xdg_platform", lambda: True)

    for var in [
        "UPDCLIENT_SITE_URL",
        "UPDCLIENT_MANIFEST",
        "UPDCLIENT_PASSWORD",
        "NO_COLOR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def options(tmp_path: Path) -> OptionStore:
    """An option store in a fresh temporary directory."""
    return OptionStore(tmp_path / "options")


@pytest.fixture
def configured_options(options: OptionStore) -> OptionStore:
    """An option store whose settings point at :data:`API_BASE`."""
    options.update("update_client_settings", {"api_base": API_BASE})
    return options


# ---------------------------------------------------------------------------
# Fake update server
# ---------------------------------------------------------------------------


class FakeServer:
    """Route table for :class:`httpx.MockTransport` that records requests.

    Routes are keyed by ``(method, path)``; each value is either an
    :class:`httpx.Response` or a callable taking the request.
    Unrouted requests answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, response: Any) -> None:
        self.routes[(method.upper(), path)] = response

    def json(
        self,
        method: str,
        path: str,
        body: Any,
        status_code: int = 200,
    ) -> None:
        self.route(method, path, httpx.Response(status_code, json=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        target = self.routes.get((request.method, request.url.path))
        if target is None:
            return httpx.Response(404, json={"message": "No route."})
        if callable(target):
            return target(request)
        return target

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def last_body(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


# ---------------------------------------------------------------------------
# Service graph
# ---------------------------------------------------------------------------


@pytest.fixture
def make_services(server: FakeServer) -> Callable[..., Any]:
    """Factory building a wired service graph against the fake server."""
    from updclient.services import build_services

    def _make(options: OptionStore, site_url: Optional[str] = "https://shop.example.org"):
        return build_services(options=options, site_url=site_url, transport=server.transport)

    return _make


@pytest.fixture
def store_token() -> Callable[..., None]:
    """Return a helper that writes a token record straight into an option store."""

    def _store(options: OptionStore, token: str = "tok123", expires: int = 0, **user: Any) -> None:
        options.update(
            "update_client_token",
            {"token": token, "expires": expires, "user": dict(user)},
            private=True,
        )

    return _store


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
