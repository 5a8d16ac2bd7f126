"""Status notices shown after login, logout, and status commands.

The handlers here hold the decision logic of the login surface and return a
:class:`Notice`; :func:`render` prints it. Keeping the two apart lets tests
check the outcome without capturing terminal output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from updclient.auth.manager import AuthenticationManager
from updclient.exceptions import UpdateClientError
from updclient.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS
from updclient.output import error, info, success, warning

logger = logging.getLogger(__name__)

MISSING_CREDENTIALS = "Please provide both username and password."
LOGIN_SUCCESS = "Successfully logged in to the update server."
LOGOUT_SUCCESS = "You have been logged out from the update server."
UPDATES_LOCKED = (
    "Product updates are locked. Please log in to the update server to enable "
    "manual and automatic updates."
)


@dataclass
class Notice:
    """A message for the user and the exit code that goes with it."""

    level: str
    message: str
    exit_code: int = EXIT_SUCCESS


def render(notice: Notice) -> None:
    """Print *notice* through the output manager at its level."""
    if notice.level == "error":
        error(notice.message)
    elif notice.level == "warning":
        warning(notice.message)
    elif notice.level == "success":
        success(notice.message)
    else:
        info(notice.message)


def handle_login(auth: AuthenticationManager, username: str, password: str) -> Notice:
    """Log in with *username* and *password* and describe the outcome."""
    username = username.strip()
    if not username or not password:
        return Notice("error", MISSING_CREDENTIALS, EXIT_INVALID_USAGE)

    try:
        auth.login(username, password)
    except UpdateClientError as exc:
        logger.debug("Login failed: %s", exc)
        return Notice("error", str(exc), exc.exit_code)

    return Notice("success", LOGIN_SUCCESS)


def handle_logout(auth: AuthenticationManager) -> Notice:
    auth.logout()
    return Notice("success", LOGOUT_SUCCESS)


def status_notice(auth: AuthenticationManager) -> Notice:
    """Describe who is logged in, or warn that updates are locked."""
    locked = locked_notice(auth)
    if locked is not None:
        return locked
    name = auth.get_token().display_name or "unknown user"
    return Notice("info", f"Logged in as {name}.")


def locked_notice(auth: AuthenticationManager) -> Optional[Notice]:
    """Return the locked-updates warning while logged out, else ``None``."""
    if auth.is_authenticated():
        return None
    return Notice("warning", UPDATES_LOCKED)
