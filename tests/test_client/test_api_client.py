"""Tests for updclient.client.api_client.APIClient.

All HTTP traffic goes through :class:`httpx.MockTransport`; no real network
calls are made.
"""

from __future__ import annotations

import json
import os
import stat

import httpx
import pytest

from updclient.client.api_client import OPTION_SETTINGS, APIClient
from updclient.config import OptionStore
from updclient.exceptions import (
    APIError,
    ConfigError,
    MissingBaseURLError,
    ParseError,
    TransportError,
)
from updclient.exit_codes import EXIT_AUTH_FAILURE, EXIT_NOT_FOUND, EXIT_SERVER_ERROR
from updclient.models import Settings


BASE = "https://updates.example.com"


def _make_client(options: OptionStore, handler, api_base: str = BASE) -> APIClient:
    options.update(OPTION_SETTINGS, {"api_base": api_base})
    return APIClient(options, transport=httpx.MockTransport(handler))


def _respond(status: int = 200, **kwargs):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, **kwargs)

    return handler


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults_when_unset(self, options: OptionStore) -> None:
        settings = APIClient(options).get_settings()
        assert settings.api_base == ""
        assert settings.remember_token == ""
        assert settings.token_expires == 0

    def test_stored_values_are_kept(self, options: OptionStore) -> None:
        options.update(OPTION_SETTINGS, {"api_base": BASE, "custom": "kept"})
        settings = APIClient(options).get_settings()
        assert settings.api_base == BASE
        assert settings.token_expires == 0
        assert settings.model_extra == {"custom": "kept"}

    def test_non_object_option_uses_defaults(self, options: OptionStore) -> None:
        options.update(OPTION_SETTINGS, "garbage")
        assert APIClient(options).get_settings() == Settings()

    def test_invalid_field_raises_config_error(self, options: OptionStore) -> None:
        options.update(OPTION_SETTINGS, {"token_expires": "soon"})
        with pytest.raises(ConfigError):
            APIClient(options).get_settings()

    def test_returned_settings_are_a_copy(self, options: OptionStore) -> None:
        client = APIClient(options)
        client.get_settings().api_base = "https://changed.example"
        assert client.get_settings().api_base == ""

    def test_update_settings_persists_privately(self, options: OptionStore) -> None:
        client = APIClient(options)
        client.update_settings(Settings(api_base=BASE, custom="kept"))

        stored = options.get(OPTION_SETTINGS)
        assert stored["api_base"] == BASE
        assert stored["custom"] == "kept"
        assert stat.S_IMODE(os.stat(options.path(OPTION_SETTINGS)).st_mode) == 0o600
        assert APIClient(options).get_settings().api_base == BASE

    @pytest.mark.parametrize("stored", [BASE + "/", BASE + "//", BASE + "\\"])
    def test_api_base_trailing_separators_removed(self, options: OptionStore, stored: str) -> None:
        options.update(OPTION_SETTINGS, {"api_base": stored})
        assert APIClient(options).get_api_base() == BASE


# ---------------------------------------------------------------------------
# Bearer token
# ---------------------------------------------------------------------------


class TestBearerToken:
    def test_falls_back_to_mirrored_token(self, options: OptionStore) -> None:
        options.update(OPTION_SETTINGS, {"remember_token": "mirror"})
        client = APIClient(options)
        assert client.bearer_token() == "mirror"
        assert client.with_token_header({"X-A": "1"}) == {
            "X-A": "1",
            "Authorization": "Bearer mirror",
        }

    def test_provider_wins(self, options: OptionStore) -> None:
        options.update(OPTION_SETTINGS, {"remember_token": "mirror"})
        client = APIClient(options)
        client.set_token_provider(lambda: "fresh")
        assert client.with_token_header() == {"Authorization": "Bearer fresh"}

    def test_no_token_leaves_headers_alone(self, options: OptionStore) -> None:
        client = APIClient(options)
        assert client.with_token_header({"X-A": "1"}) == {"X-A": "1"}


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TestRequests:
    def test_missing_base_url_sends_nothing(self, options: OptionStore) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        client = _make_client(options, handler, api_base="")
        with pytest.raises(MissingBaseURLError):
            client.post("check-updates", {"plugins": []})
        assert calls == []

    def test_post_sends_json_body(self, options: OptionStore) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            seen["headers"] = request.headers
            return httpx.Response(200, json={"ok": True})

        client = _make_client(options, handler)
        result = client.post("/check-updates", {"plugins": [{"plugin_file": "a/a.php", "version": "1.0"}]})

        assert result == {"ok": True}
        assert seen["url"] == f"{BASE}/check-updates"
        assert seen["method"] == "POST"
        assert seen["body"] == {"plugins": [{"plugin_file": "a/a.php", "version": "1.0"}]}
        assert seen["headers"]["Content-Type"] == "application/json"
        assert seen["headers"]["Accept"] == "application/json"

    def test_post_defaults_to_empty_object(self, options: OptionStore) -> None:
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        _make_client(options, handler).post("ping")
        assert bodies == [{}]

    def test_get_has_no_body(self, options: OptionStore) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["content"] = request.content
            return httpx.Response(200, json=[1, 2])

        assert _make_client(options, handler).get("status") == [1, 2]
        assert seen == {"method": "GET", "content": b""}

    def test_base_with_path_is_joined(self, options: OptionStore) -> None:
        urls = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url))
            return httpx.Response(200, json={})

        _make_client(options, handler, api_base="https://example.com/api/").post("//plugin-information")
        assert urls == ["https://example.com/api/plugin-information"]

    def test_caller_headers_override_defaults(self, options: OptionStore) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, json={})

        _make_client(options, handler).post(
            "x", headers={"Accept": "text/plain", "Authorization": "Bearer t"}
        )
        assert seen["accept"] == "text/plain"
        assert seen["authorization"] == "Bearer t"


class TestErrorMapping:
    def test_server_message_is_used(self, options: OptionStore) -> None:
        client = _make_client(options, _respond(403, json={"message": "Invalid credentials."}))
        with pytest.raises(APIError) as exc_info:
            client.post("login")
        assert str(exc_info.value) == "Invalid credentials."
        assert exc_info.value.status_code == 403
        assert exc_info.value.exit_code == EXIT_AUTH_FAILURE

    def test_generic_message_without_server_message(self, options: OptionStore) -> None:
        client = _make_client(options, _respond(500, text="<html>oops</html>"))
        with pytest.raises(APIError) as exc_info:
            client.post("check-updates")
        assert str(exc_info.value) == "Unexpected response from the update server."
        assert exc_info.value.exit_code == EXIT_SERVER_ERROR

    def test_not_found_exit_code(self, options: OptionStore) -> None:
        client = _make_client(options, _respond(404, json={}))
        with pytest.raises(APIError) as exc_info:
            client.post("missing")
        assert exc_info.value.exit_code == EXIT_NOT_FOUND

    def test_redirect_status_is_an_error(self, options: OptionStore) -> None:
        client = _make_client(options, _respond(304))
        with pytest.raises(APIError):
            client.get("x")

    def test_non_json_success_raises_parse_error(self, options: OptionStore) -> None:
        client = _make_client(options, _respond(200, text="not json"))
        with pytest.raises(ParseError, match="Unable to parse the response"):
            client.post("check-updates")

    def test_json_null_success_raises_parse_error(self, options: OptionStore) -> None:
        client = _make_client(options, _respond(200, text="null"))
        with pytest.raises(ParseError):
            client.post("check-updates")

    def test_transport_failure(self, options: OptionStore) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _make_client(options, handler)
        with pytest.raises(TransportError, match="connection refused"):
            client.post("check-updates")
