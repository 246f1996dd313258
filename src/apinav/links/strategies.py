"""Built-in link strategies.

Each strategy recognises one way of advertising links:

* :class:`LinkHeaderStrategy` -- the RFC 8288 ``Link`` header.
* :class:`HALStrategy` -- HAL ``_links`` objects.
* :class:`SirenStrategy` -- Siren ``links`` lists.
* :class:`JSONAPIStrategy` -- JSON:API ``links`` objects and ``data`` items.
* :class:`HeuristicStrategy` -- any ``self`` string found in the body.

Bodies are plain decoded values (``None``, ``bool``, numbers, ``str``,
``list``, ``dict``) and every strategy dispatches on their type explicitly.
"""

from __future__ import annotations

import re
from typing import Any

from apinav.links.base import LinkStrategy, add_link
from apinav.models import Links

_ENTRY_RE = re.compile(r"\s*<([^>]*)>\s*(.*)$", re.DOTALL)


def _split_outside(value: str, separator: str) -> list[str]:
    """Split on *separator* where it is not inside ``<...>`` or double quotes."""
    parts: list[str] = []
    current: list[str] = []
    in_uri = False
    in_quotes = False
    for char in value:
        if char == '"' and not in_uri:
            in_quotes = not in_quotes
        elif char == "<" and not in_quotes:
            in_uri = True
        elif char == ">" and not in_quotes:
            in_uri = False
        elif char == separator and not in_uri and not in_quotes:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


class LinkHeaderStrategy(LinkStrategy):
    """Links from the ``Link`` response header.

    Each comma-separated entry has the form ``<uri>; rel="name"``.  A ``rel``
    may list several space-separated relations.  Entries without ``rel`` are
    ignored; an entry that does not start with ``<uri>`` makes the whole
    header invalid.
    """

    @property
    def name(self) -> str:
        return "link-header"

    def extract(self, headers: dict[str, str], body: Any) -> Links:
        values = [value for key, value in headers.items() if key.lower() == "link"]
        links: Links = {}
        for value in values:
            for entry in _split_outside(value, ","):
                if not entry.strip():
                    continue
                match = _ENTRY_RE.match(entry)
                if match is None:
                    raise self.error(f"invalid link header entry {entry.strip()!r}")
                uri, rest = match.groups()
                rels = self._params(rest).get("rel", "")
                for rel in rels.split():
                    add_link(links, rel, uri)
        return links

    def _params(self, rest: str) -> dict[str, str]:
        params: dict[str, str] = {}
        for part in _split_outside(rest, ";"):
            key, sep, value = part.partition("=")
            if not sep:
                continue
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] == '"':
                value = value[1:-1]
            params[key.strip().lower()] = value
        return params


class HALStrategy(LinkStrategy):
    """Links from HAL ``_links`` objects.

    A relation maps to ``{"href": ...}`` or to a list of such objects.  The
    ``curies`` relation is never reported.  A list body is processed item by
    item and the results concatenated.
    """

    @property
    def name(self) -> str:
        return "hal"

    def extract(self, headers: dict[str, str], body: Any) -> Links:
        links: Links = {}
        items = body if isinstance(body, list) else [body]
        for item in items:
            if isinstance(item, dict) and "_links" in item:
                self._collect(item["_links"], links)
        return links

    def _collect(self, hal_links: Any, links: Links) -> None:
        if not isinstance(hal_links, dict):
            raise self.error(f"_links must be an object, got {type(hal_links).__name__}")

        for rel, value in hal_links.items():
            if rel == "curies" or value is None:
                continue
            entries = value if isinstance(value, list) else [value]
            for entry in entries:
                if not isinstance(entry, dict):
                    raise self.error(f"link '{rel}' must be an object or a list of objects")
                href = entry.get("href")
                if isinstance(href, str):
                    add_link(links, str(rel), href)


class SirenStrategy(LinkStrategy):
    """Links from a Siren ``links`` list.

    Every relation in an entry's ``rel`` list maps to the entry's ``href``.
    Entries without an ``href`` are skipped.
    """

    @property
    def name(self) -> str:
        return "siren"

    def extract(self, headers: dict[str, str], body: Any) -> Links:
        if not isinstance(body, dict) or not isinstance(body.get("links"), list):
            return {}

        links: Links = {}
        for entry in body["links"]:
            if not isinstance(entry, dict):
                raise self.error(f"link entries must be objects, got {type(entry).__name__}")
            href = entry.get("href")
            if not isinstance(href, str):
                continue
            rels = entry.get("rel") or []
            if isinstance(rels, str):
                rels = [rels]
            for rel in rels:
                add_link(links, str(rel), href)
        return links


class JSONAPIStrategy(LinkStrategy):
    """Links from a JSON:API document.

    Every member of the top-level ``links`` object is reported under its own
    name, and the ``links.self`` of each resource in a ``data`` list is
    reported as ``item``.  A link is either a string or an object with an
    ``href``.
    """

    @property
    def name(self) -> str:
        return "jsonapi"

    def extract(self, headers: dict[str, str], body: Any) -> Links:
        if not isinstance(body, dict):
            return {}

        links: Links = {}
        top = body.get("links")
        if isinstance(top, dict):
            for rel, value in top.items():
                href = self._href(str(rel), value)
                if href is not None:
                    add_link(links, str(rel), href)

        data = body.get("data")
        if isinstance(data, list):
            for resource in data:
                if not isinstance(resource, dict):
                    continue
                resource_links = resource.get("links")
                if not isinstance(resource_links, dict):
                    continue
                href = self._href("self", resource_links.get("self"))
                if href is not None:
                    add_link(links, "item", href)
        return links

    def _href(self, rel: str, value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, dict):
            href = value.get("href")
            if href is None or isinstance(href, str):
                return href
        raise self.error(f"link '{rel}' must be a string or an object with an href")


class HeuristicStrategy(LinkStrategy):
    """Links found by looking for ``self`` strings anywhere in the body.

    A ``self`` member holding a string is a link for the enclosing key, so a
    top-level ``self`` is reported as ``self``.  Items of a list under key
    ``things`` are reported as ``things-item``.  Non-string keys are
    converted to strings.
    """

    @property
    def name(self) -> str:
        return "heuristic"

    def extract(self, headers: dict[str, str], body: Any) -> Links:
        links: Links = {}
        self._walk("self", body, links)
        return links

    def _walk(self, key: str, value: Any, links: Links) -> None:
        if isinstance(value, dict):
            for child_key, child in value.items():
                if child_key == "self" and isinstance(child, str):
                    add_link(links, key, child)
                else:
                    self._walk(str(child_key), child, links)
        elif isinstance(value, list):
            for item in value:
                self._walk(f"{key}-item", item, links)
