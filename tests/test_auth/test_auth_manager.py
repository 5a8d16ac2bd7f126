"""Tests for updclient.auth.manager.AuthenticationManager."""

from __future__ import annotations

import httpx
import pytest

from updclient.auth.credential_store import OPTION_TOKEN, TokenStore
from updclient.auth.manager import AuthenticationManager
from updclient.client.api_client import OPTION_SETTINGS, APIClient
from updclient.config import OptionStore
from updclient.exceptions import APIError, MissingBaseURLError, MissingTokenError


LOGIN = "/wp-json/wp-product-update-server/v1/login"
NOW = 1_700_000_000


def _make_auth(options: OptionStore, server, now: float = NOW) -> AuthenticationManager:
    api_client = APIClient(options, transport=server.transport)
    return AuthenticationManager(
        api_client,
        TokenStore(options),
        "https://shop.example.org",
        clock=lambda: now,
    )


class TestLogin:
    def test_success_stores_token_and_mirror(self, configured_options: OptionStore, server) -> None:
        server.json("POST", LOGIN, {"token": "tok123", "expires": NOW + 3600, "user": {"name": "Alice"}})
        auth = _make_auth(configured_options, server)

        auth.login("alice", "s3cret")

        assert server.last_body() == {
            "username": "alice",
            "password": "s3cret",
            "site": "https://shop.example.org",
        }
        assert configured_options.get(OPTION_TOKEN) == {
            "token": "tok123",
            "expires": NOW + 3600,
            "user": {"name": "Alice"},
        }
        settings = configured_options.get(OPTION_SETTINGS)
        assert settings["remember_token"] == "tok123"
        assert settings["token_expires"] == NOW + 3600
        assert settings["api_base"] == "https://updates.example.com"
        assert auth.is_authenticated() is True
        assert auth.get_token().display_name == "Alice"

    def test_login_request_carries_no_token(self, configured_options: OptionStore, server, store_token) -> None:
        store_token(configured_options, "old")
        server.json("POST", LOGIN, {"token": "new"})
        auth = _make_auth(configured_options, server)

        auth.login("alice", "pw")

        assert "authorization" not in server.requests[-1].headers

    def test_missing_token(self, configured_options: OptionStore, server) -> None:
        server.json("POST", LOGIN, {"user": {"name": "Alice"}})
        auth = _make_auth(configured_options, server)

        with pytest.raises(MissingTokenError, match="did not return a token"):
            auth.login("alice", "pw")

        assert configured_options.get(OPTION_TOKEN) is None
        assert auth.is_authenticated() is False

    def test_whitespace_only_token_is_missing(self, configured_options: OptionStore, server) -> None:
        server.json("POST", LOGIN, {"token": "  \n "})
        with pytest.raises(MissingTokenError):
            _make_auth(configured_options, server).login("alice", "pw")

    def test_token_is_cleaned(self, configured_options: OptionStore, server) -> None:
        server.json("POST", LOGIN, {"token": "  tok\n123  "})
        auth = _make_auth(configured_options, server)
        auth.login("alice", "pw")
        assert auth.bearer_token() == "tok 123"

    @pytest.mark.parametrize(
        "raw, expected",
        [(None, 0), ("1700003600", 1700003600), ("later", 0), (1700003600.9, 1700003600)],
    )
    def test_expires_is_coerced(self, configured_options: OptionStore, server, raw, expected) -> None:
        body = {"token": "tok"}
        if raw is not None:
            body["expires"] = raw
        server.json("POST", LOGIN, body)
        auth = _make_auth(configured_options, server)

        auth.login("alice", "pw")

        assert auth.get_token().expires == expected

    def test_non_mapping_user_is_dropped(self, configured_options: OptionStore, server) -> None:
        server.json("POST", LOGIN, {"token": "tok", "user": "alice"})
        auth = _make_auth(configured_options, server)
        auth.login("alice", "pw")
        assert auth.get_token().user == {}

    def test_server_rejection_propagates(self, configured_options: OptionStore, server) -> None:
        server.json("POST", LOGIN, {"message": "Invalid credentials."}, status_code=403)
        auth = _make_auth(configured_options, server)

        with pytest.raises(APIError, match="Invalid credentials."):
            auth.login("alice", "wrong")
        assert auth.is_authenticated() is False

    def test_no_server_configured(self, options: OptionStore, server) -> None:
        with pytest.raises(MissingBaseURLError):
            _make_auth(options, server).login("alice", "pw")
        assert server.requests == []


class TestLogout:
    def test_logout_clears_everything(self, configured_options: OptionStore, server) -> None:
        server.json("POST", LOGIN, {"token": "tok123", "expires": NOW + 60})
        auth = _make_auth(configured_options, server)
        auth.login("alice", "pw")

        auth.logout()

        assert configured_options.get(OPTION_TOKEN) is None
        settings = configured_options.get(OPTION_SETTINGS)
        assert settings["remember_token"] == ""
        assert settings["token_expires"] == 0
        assert settings["api_base"] == "https://updates.example.com"
        assert auth.is_authenticated() is False
        assert auth.authorized_headers() == {}

    def test_logout_when_logged_out(self, configured_options: OptionStore, server) -> None:
        auth = _make_auth(configured_options, server)
        auth.logout()
        assert auth.is_authenticated() is False


class TestAuthenticationState:
    def test_no_token(self, options: OptionStore, server) -> None:
        auth = _make_auth(options, server)
        assert auth.is_authenticated() is False
        assert auth.get_token().token == ""

    def test_token_without_expiry(self, options: OptionStore, server, store_token) -> None:
        store_token(options, "tok", expires=0)
        assert _make_auth(options, server).is_authenticated() is True

    def test_token_before_expiry(self, options: OptionStore, server, store_token) -> None:
        store_token(options, "tok", expires=NOW + 1)
        assert _make_auth(options, server).is_authenticated() is True

    def test_token_at_expiry(self, options: OptionStore, server, store_token) -> None:
        store_token(options, "tok", expires=NOW)
        assert _make_auth(options, server).is_authenticated() is False

    def test_state_follows_the_clock(self, options: OptionStore, server, store_token) -> None:
        store_token(options, "tok", expires=NOW + 10)
        times = [NOW, NOW + 10]
        auth = AuthenticationManager(
            APIClient(options), TokenStore(options), "site", clock=lambda: times[0]
        )
        assert auth.is_authenticated() is True
        times[0] = times[1]
        assert auth.is_authenticated() is False


class TestHeaders:
    def test_authorized_headers_merges(self, options: OptionStore, server, store_token) -> None:
        store_token(options, "tok")
        auth = _make_auth(options, server)
        assert auth.authorized_headers({"X-Trace": "1"}) == {
            "X-Trace": "1",
            "Authorization": "Bearer tok",
        }

    def test_authorized_headers_ignores_expiry(self, options: OptionStore, server, store_token) -> None:
        store_token(options, "stale", expires=NOW - 100)
        auth = _make_auth(options, server)
        assert auth.is_authenticated() is False
        assert auth.authorized_headers() == {"Authorization": "Bearer stale"}

    def test_without_token_headers_unchanged(self, options: OptionStore, server) -> None:
        headers = {"X-Trace": "1"}
        assert _make_auth(options, server).authorized_headers(headers) == {"X-Trace": "1"}

    def test_api_client_reads_the_same_token(self, options: OptionStore, server, store_token) -> None:
        options.update(OPTION_SETTINGS, {"remember_token": "mirror"})
        store_token(options, "record")
        api_client = APIClient(options, transport=server.transport)
        auth = AuthenticationManager(api_client, TokenStore(options), "site")

        assert api_client.with_token_header() == auth.authorized_headers()
        assert api_client.with_token_header() == {"Authorization": "Bearer record"}


def test_login_then_request_uses_new_token(configured_options: OptionStore, server) -> None:
    seen = []

    def check(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json={"updates": []})

    server.json("POST", LOGIN, {"token": "fresh"})
    server.route("POST", "/check-updates", check)
    auth = _make_auth(configured_options, server)
    api_client = APIClient(configured_options, transport=server.transport)
    auth.login("alice", "pw")

    api_client.post("check-updates", {}, auth.authorized_headers())

    assert seen == ["Bearer fresh"]
