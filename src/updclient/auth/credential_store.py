"""Persistent store for the bearer token record.

The :class:`~updclient.models.TokenRecord` issued at login lives in its own
option (``update_client_token``), separate from the update server settings.
Writes go through :meth:`~updclient.config.OptionStore.update` with
``private=True``, so the file is created atomically with ``0o600``
permissions and the token is never world-readable, even momentarily.

See Also:
    :class:`~updclient.auth.manager.AuthenticationManager` -- the only writer.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from updclient.config import OptionStore
from updclient.exceptions import ConfigError
from updclient.models import TokenRecord

logger = logging.getLogger(__name__)

OPTION_TOKEN = "update_client_token"
"""Option name the token record is stored under."""


class TokenStore:
    """Read/write the token record in an :class:`~updclient.config.OptionStore`.

    Args:
        options: The option store to persist into.

    Example::

        store = TokenStore(OptionStore())
        store.save(TokenRecord(token="tok123", expires=0))
        assert store.load().token == "tok123"
    """

    def __init__(self, options: OptionStore) -> None:
        self._options = options

    @property
    def path(self) -> Path:
        """The filesystem path of the token option."""
        return self._options.path(OPTION_TOKEN)

    def save(self, record: TokenRecord) -> None:
        """Persist *record* with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written (permissions, disk full, etc.).
        """
        self._options.update(OPTION_TOKEN, record.model_dump(mode="json"), private=True)

    def load(self) -> Optional[TokenRecord]:
        """Load the stored token record.

        Returns:
            The :class:`~updclient.models.TokenRecord`, or ``None`` if no
            record is stored or the stored data cannot be read.
        """
        try:
            data = self._options.get(OPTION_TOKEN)
        except ConfigError as exc:
            logger.warning("Ignoring unreadable token record: %s", exc)
            return None
        if data is None:
            return None
        try:
            return TokenRecord.model_validate(data)
        except ValidationError as exc:
            logger.warning("Ignoring invalid token record at %s: %s", self.path, exc)
            return None

    def clear(self) -> None:
        """Delete the stored token record. No-op when nothing is stored."""
        self._options.delete(OPTION_TOKEN)
