"""Exception hierarchy for apinav.

All exceptions inherit from :class:`ApinavError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apinav.exit_codes`.
The top-level error handler in :func:`apinav.app.main` catches
``ApinavError`` and exits with the appropriate code.

Subclass hierarchy::

    ApinavError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- ConfigError            (exit 1)
    |   +-- UnknownAPIError     (exit 4)
    |   +-- UnknownProfileError (exit 2)
    +-- SpecError              (exit 7)
    +-- LinkError              (exit 1)
"""

from __future__ import annotations

from typing import Optional

from apinav.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SPEC_ERROR,
)


class ApinavError(Exception):
    """Base exception for all apinav errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`apinav.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ApinavError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ApinavError):
    """Raised for configuration problems (unreadable files, duplicate bases, bad entries)."""

    exit_code = EXIT_GENERIC_FAILURE


class UnknownAPIError(ConfigError):
    """Raised when an API name is not present in the registry.

    Args:
        name: The requested API name.
        available: Names of the configured APIs, listed in the message.
    """

    exit_code = EXIT_NOT_FOUND

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = sorted(available)
        if self.available:
            message = (
                f"API '{name}' not found. Available APIs: {', '.join(self.available)}"
            )
        else:
            message = f"API '{name}' not found (no APIs configured)"
        super().__init__(message)


class UnknownProfileError(ConfigError):
    """Raised when a profile is requested that an API does not declare.

    Args:
        profile: The requested profile name.
        api_name: The API the profile was requested for.
        available: Profiles declared by the API, listed sorted in the message.
    """

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, profile: str, api_name: str, available: list[str]):
        self.profile = profile
        self.api_name = api_name
        self.available = sorted(available)
        if self.available:
            message = (
                f"profile '{profile}' not found for API '{api_name}'. "
                f"Available profiles: {', '.join(self.available)}"
            )
        else:
            message = (
                f"profile '{profile}' not found for API '{api_name}' "
                "(no profiles defined)"
            )
        super().__init__(message)


class SpecError(ApinavError):
    """Raised when an API description is unsupported or cannot be resolved."""

    exit_code = EXIT_SPEC_ERROR


class LinkError(ApinavError):
    """Raised by a link strategy that found a malformed link-bearing structure.

    Args:
        strategy: Name of the strategy that failed.
        message: What was wrong with the structure.
    """

    def __init__(self, strategy: str, message: str, exit_code: Optional[int] = None):
        self.strategy = strategy
        super().__init__(f"{strategy}: {message}", exit_code)
