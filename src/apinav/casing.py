"""Name casing helpers shared by the compiler and the models."""

from __future__ import annotations

import re

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]+")


def dash_case(value: str) -> str:
    """Convert an identifier or free text to lowercase dash-separated words.

    CamelCase boundaries and runs of non-alphanumeric characters both become
    a single dash.

    Example::

        >>> dash_case("getWidget")
        'get-widget'
        >>> dash_case("GET-widgets/{id}")
        'get-widgets-id'
        >>> dash_case("HTTPServerStatus")
        'http-server-status'
    """
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", value)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", result)
    result = _NON_ALNUM_RE.sub("-", result)
    return result.strip("-").lower()


def legacy_slug(value: str) -> str:
    """Slug form used for operation names by older releases.

    Lowercases first and only then collapses non-alphanumeric runs, so
    CamelCase words run together (``getWidget`` becomes ``getwidget``).
    """
    return _NON_ALNUM_RE.sub("-", value.lower()).strip("-")
