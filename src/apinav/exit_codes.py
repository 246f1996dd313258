"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apinav.exceptions.ApinavError` subclass.
Shell wrappers can inspect the exit code to tell a broken configuration
from an unreadable API description without parsing stderr.

Example::

    $ apinav api show missing
    $ echo $?
    4   # EXIT_NOT_FOUND -- no API with that name is configured
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an unknown profile."""

EXIT_NOT_FOUND = 4
"""The requested API is not configured."""

EXIT_SPEC_ERROR = 7
"""The API description could not be loaded, resolved or compiled."""
