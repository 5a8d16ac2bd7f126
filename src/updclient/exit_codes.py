"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~updclient.exceptions.UpdateClientError` subclass.
Shell wrappers and cron jobs can inspect the exit code to tell a rejected
login from an unreachable server without parsing stderr.

Example::

    $ updclient updates check
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the update server could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred, or the configuration is invalid."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or values."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed or is required but missing."""

EXIT_NOT_FOUND = 4
"""The update server answered HTTP 404."""

EXIT_SERVER_ERROR = 5
"""The update server returned an error status or an unreadable body."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
