"""Built-in CLI sub-commands for apinav.

This package groups the Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~apinav.commands.api` -- list, inspect, compile, and register APIs.
* :mod:`~apinav.commands.links` -- discover hypermedia links in a response.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``api``) or a plain callback function registered
directly on the root app (for single commands like ``links``).
"""
