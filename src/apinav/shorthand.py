"""Compact CLI shorthand for structured request examples.

Shorthand is the single-line form of a JSON document that a user can type as
command-line arguments::

    >>> marshal({"name": "foo", "tags": ["a", "b"], "size": {"w": 1}})
    'name: foo, tags: [a, b], size.w: 1'

* ``key: value`` pairs are joined with ``, ``.
* A nested object with a single key collapses into a dotted path; any other
  nested object is written as ``key{...}``.
* Lists are written as ``[a, b]``.
* Strings are quoted only when they would otherwise read as another type or
  contain shorthand syntax characters.
"""

from __future__ import annotations

import json
import re
from typing import Any

_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?([eE][-+]?\d+)?$")
_SPECIAL_CHARS = set(',:{}[]"\n')
_KEYWORDS = {"null", "true", "false", "undefined"}


def marshal(value: Any) -> str:
    """Render *value* as shorthand.

    A top-level object is written as bare pairs without surrounding braces;
    any other value is rendered as it would appear on the right of a ``:``.
    """
    if isinstance(value, dict):
        return _pairs(value)
    return _value(value)


def _pairs(obj: dict[Any, Any]) -> str:
    return ", ".join(_pair(str(key), value) for key, value in obj.items())


def _pair(path: str, value: Any) -> str:
    if isinstance(value, dict):
        if len(value) == 1:
            key, inner = next(iter(value.items()))
            return _pair(f"{path}.{key}", inner)
        if value:
            return f"{path}{{{_pairs(value)}}}"
    return f"{path}: {_value(value)}"


def _value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    if isinstance(value, str):
        return _string(value)
    if isinstance(value, dict):
        return "{" + _pairs(value) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_value(item) for item in value) + "]"
    return _string(str(value))


def _string(value: str) -> str:
    if (
        not value
        or value != value.strip()
        or value in _KEYWORDS
        or _NUMBER_RE.match(value)
        or any(char in _SPECIAL_CHARS for char in value)
    ):
        return json.dumps(value, ensure_ascii=False)
    return value
