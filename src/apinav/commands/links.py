"""Links command -- discover hypermedia links in a saved response.

Implements the ``apinav links`` top-level command. The response body is
read from a file (or stdin with ``-``), decoded as JSON or YAML, and run
through every built-in link strategy. Response headers such as ``Link`` can
be supplied with ``--header``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer
import yaml

from apinav.exceptions import InvalidUsageError
from apinav.output import format_response, info, warning


def _parse_headers(raw: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in raw:
        key, sep, value = item.partition(":")
        if not sep or not key.strip():
            raise InvalidUsageError(f"Invalid header {item!r}, expected 'Name: value'")
        key = key.strip()
        if key in headers:
            headers[key] += ", " + value.strip()
        else:
            headers[key] = value.strip()
    return headers


def _read_body(file: str) -> Any:  # noqa: ANN401
    """Decode the body as JSON, falling back to YAML; empty input is ``None``."""
    if file == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(file).read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidUsageError(f"Cannot read response body {file}: {exc}") from exc

    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise InvalidUsageError(f"Response body {file} is neither JSON nor YAML") from exc


def links_command(
    file: str = typer.Argument(help="Response body file, or '-' for stdin."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Response header as 'Name: value' (repeatable)."
    ),
    base: Optional[str] = typer.Option(
        None, "--base", help="Request URI that relative links resolve against."
    ),
) -> None:
    """Print the links found in a response, grouped by relation.

    Strategies that find a malformed structure are reported as warnings;
    links from the other strategies are still printed.

    Example::

        apinav links response.json
        apinav links page.json -H 'Link: </items?page=2>; rel="next"' \\
            --base https://api.example.com/items
    """
    from apinav.links import LinkResolver

    headers = _parse_headers(header or [])
    body = _read_body(file)

    result = LinkResolver.default().resolve(headers, body, base=base)
    for exc in result.errors:
        warning(str(exc))

    if not result.links:
        info("No links found.")
        return
    format_response(result.links)
