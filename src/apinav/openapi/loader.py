"""Fetch and parse OpenAPI documents from a URL or local file.

This module handles all I/O for API descriptions. It fetches raw documents,
converts them into Python dictionaries with automatic JSON/YAML detection,
and checks that a document declares a supported OpenAPI version (3.x).

The public functions are:

* :func:`load_document` -- Fetch the raw text of a document.
* :func:`parse_document` -- Parse JSON or YAML text into a dict.
* :func:`detect_openapi` -- Cheap content sniffing used by loader selection.
* :func:`document_version` -- Check and return the ``openapi`` version.

:class:`OpenAPILoader` ties these to
:func:`~apinav.openapi.compiler.compile_document` behind the
:class:`~apinav.openapi.base.SpecLoader` interface.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import httpx
import yaml

from apinav.exceptions import SpecError
from apinav.models import API
from apinav.openapi.base import SpecLoader

_OPENAPI3_RE = re.compile(r"""['"]?openapi['"]?\s*:\s*['"]?3""")
_OPENAPI_MEDIA_TYPE = "application/vnd.oai.openapi"


def load_document(location: str) -> tuple[str, str]:
    """Fetch a document from an ``http(s)`` URL or a local file path.

    Args:
        location: URL or file path.

    Returns:
        ``(text, content_type)``. For local files the content type is derived
        from the extension, or empty when the extension is unknown.

    Raises:
        SpecError: If the document cannot be fetched or read.
    """
    if location.startswith(("http://", "https://")):
        return _load_from_url(location)
    return _load_from_file(location)


def _load_from_url(url: str) -> tuple[str, str]:
    """Fetch a document over HTTP(S).

    Raises:
        SpecError: On an HTTP error status or a network failure.
    """
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecError(
            f"HTTP {exc.response.status_code} fetching API description from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecError(f"Failed to fetch API description from {url}: {exc}") from exc

    return response.text, response.headers.get("content-type", "")


def _load_from_file(path: str) -> tuple[str, str]:
    """Read a local document.

    Raises:
        SpecError: If the file does not exist or cannot be read.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecError(f"API description not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecError(f"Failed to read API description {path}: {exc}") from exc

    suffix = file_path.suffix.lower()
    content_type = ""
    if suffix == ".json":
        content_type = "application/json"
    elif suffix in (".yaml", ".yml"):
        content_type = "application/yaml"
    return content, content_type


def format_hint(location: str, content_type: str = "") -> str:
    """Guess ``"json"`` or ``"yaml"`` from a content type or file extension."""
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    suffix = Path(location.split("?", 1)[0]).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    return ""


def parse_document(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    This order is chosen because valid JSON is also valid YAML, but JSON
    parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if not content.strip():
        raise SpecError("API description is empty")

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecError(f"Invalid JSON: {exc}") from exc
        else:
            if not isinstance(result, dict):
                raise SpecError(
                    "API description must be a JSON/YAML object (got "
                    f"{type(result).__name__})"
                )
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        if not isinstance(result, dict):
            raise SpecError(
                "API description must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result

    msg = "Failed to parse API description as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecError(msg)


def detect_openapi(text: str, content_type: str = "") -> bool:
    """Return ``True`` when the content looks like an OpenAPI 3 document.

    The ``application/vnd.oai.openapi`` media type is trusted outright;
    otherwise the body is searched for an ``openapi: 3`` marker.
    """
    if content_type.startswith(_OPENAPI_MEDIA_TYPE):
        return True
    return _OPENAPI3_RE.search(text) is not None


def document_version(doc: dict[str, Any]) -> str:
    """Validate and return the OpenAPI version string.

    Any ``3.x`` version is accepted.

    Raises:
        SpecError: If the version is missing, is Swagger 2.x, or is not 3.x.
    """
    if "swagger" in doc:
        raise SpecError(
            f"unsupported OpenAPI document: Swagger {doc['swagger']} is not supported, "
            "only OpenAPI 3.x"
        )

    version = doc.get("openapi")
    if version is None:
        raise SpecError(
            "unsupported OpenAPI document: missing 'openapi' field"
        )

    version_str = str(version)
    if not version_str.startswith("3."):
        raise SpecError(f"unsupported OpenAPI document: version {version_str}")
    return version_str


class OpenAPILoader(SpecLoader):
    """Loader for OpenAPI 3.x descriptions in JSON or YAML."""

    @property
    def location_hints(self) -> list[str]:
        return ["/openapi.json", "/openapi.yaml", "openapi.json", "openapi.yaml"]

    def detect(self, text: str, content_type: str) -> bool:
        return detect_openapi(text, content_type)

    def load(self, base: str, location: str, text: str) -> API:
        from apinav.openapi.compiler import compile_document

        doc = parse_document(text, hint=format_hint(location))
        return compile_document(doc, base, location)
