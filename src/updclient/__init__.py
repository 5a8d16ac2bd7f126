"""updclient -- authenticate a site against a product update server and fetch updates.

The package logs a site in to a remote update server, keeps the issued bearer
token, and uses it to look up and download package updates. The update logic
is exposed through a small pipeline of named extension points so that any
host (the bundled CLI included) can plug it into its own update routine.

Typical workflow::

    updclient config set-server https://updates.example.com
    updclient auth login
    updclient updates check

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for everything that is persisted.
    config: XDG-aware paths, atomic writes, and the option store.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    services: Explicit construction of the client, auth, and update objects.
"""

__version__ = "1.0.0"
