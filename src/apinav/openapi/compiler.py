"""Compile resolved OpenAPI documents into executable operations.

This module walks an OpenAPI 3 document and builds an
:class:`~apinav.models.API`: one :class:`~apinav.models.Operation` per
path + HTTP method pair, plus auth suggestions mapped from the document's
security schemes and the optional ``x-cli-config`` auto-configuration block.

The single public entry point is :func:`compile_document`.  Internally it
delegates to private helpers that each handle one part of the document:

* :func:`get_base_path` -- the path prefix implied by ``servers``.
* ``_compile_operation`` -- names, parameters, documentation, and examples
  for one operation.
* ``_response_docs`` -- response sections, grouped by schema hash.
* ``_security_schemes`` / ``_auto_config`` -- auth mapping.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name``.

The behaviour can be tuned from the document with these extensions:

=====================  ====================================================
``x-cli-name``         Rename an operation, parameter, or the API itself.
``x-cli-aliases``      Extra command aliases for an operation.
``x-cli-description``  Replace a description.
``x-cli-ignore``       Drop a path, operation, or parameter.
``x-cli-hidden``       Compile an operation but leave it out of listings.
``x-cli-config``       Document-level auto-configuration.
=====================  ====================================================
"""

from __future__ import annotations

import json
import logging
from typing import Any, NamedTuple, Optional
from urllib.parse import urljoin, urlparse

from pydantic import ValidationError

from apinav.casing import dash_case, legacy_slug
from apinav.models import API, APIAuth, AutoConfig, AutoConfigVar, Operation, Param, ParamStyle
from apinav.openapi.loader import document_version
from apinav.openapi.resolver import resolve_refs
from apinav.openapi.schema import SchemaMode, generate_example, render_schema, schema_hash, schema_type
from apinav.shorthand import marshal

logger = logging.getLogger(__name__)

EXT_NAME = "x-cli-name"
EXT_ALIASES = "x-cli-aliases"
EXT_DESCRIPTION = "x-cli-description"
EXT_IGNORE = "x-cli-ignore"
EXT_HIDDEN = "x-cli-hidden"
EXT_CLI_CONFIG = "x-cli-config"

# HTTP methods recognized by OpenAPI
_HTTP_METHODS = frozenset(
    {"get", "put", "post", "delete", "options", "head", "patch", "trace"}
)

EXAMPLE_LIMIT = 150
"""Shorthand or string examples at least this long are replaced by a placeholder."""

INPUT_PLACEHOLDER = "<input.json"


class _ResponseEntry(NamedTuple):
    code: str
    content_type: str
    schema: Optional[dict[str, Any]]


def compile_document(doc: dict[str, Any], base: str, location: str = "") -> API:
    """Compile a raw OpenAPI document into an :class:`~apinav.models.API`.

    The version is checked first, then every ``$ref`` is resolved via
    :func:`~apinav.openapi.resolver.resolve_refs`, and finally each path and
    operation is compiled in document order.

    Args:
        doc: The parsed document, before reference resolution.
        base: The configured base URI.  Operation URI templates are resolved
            against it, after adding the base path found in ``servers``.
        location: Where the document was loaded from, for relative
            file references.

    Returns:
        The compiled API.

    Raises:
        SpecError: If the document is not OpenAPI 3.x or references cannot
            be resolved.

    Example::

        doc = parse_document(text)
        api = compile_document(doc, "https://api.example.com")
        for op in api.operations:
            print(op.name, op.method, op.uri_template)
    """
    document_version(doc)
    spec = resolve_refs(doc, location)

    base_path = get_base_path(base, _as_list(spec.get("servers")))

    operations: list[Operation] = []
    paths = _mapping(spec.get("paths"))
    for uri, path_item in paths.items():
        if not isinstance(path_item, dict) or path_item.get(EXT_IGNORE):
            continue

        template = urljoin(base, base_path.rstrip("/") + str(uri))

        for method, operation in path_item.items():
            if method.lower() not in _HTTP_METHODS or not isinstance(operation, dict):
                continue
            if operation.get(EXT_IGNORE):
                continue
            operations.append(
                _compile_operation(method.upper(), str(uri), template, path_item, operation)
            )

    info = _mapping(spec.get("info"))
    api = API(
        short=str(info.get(EXT_NAME) or info.get("title") or ""),
        long=str(info.get(EXT_DESCRIPTION) or info.get("description") or ""),
        operations=operations,
        auth=_security_schemes(spec),
        auto_config=_auto_config(spec),
    )
    logger.debug("Compiled %d operation(s) for %s", len(operations), location or base)
    return api


def get_base_path(base: str, servers: list[Any]) -> str:
    """Find the path prefix that operation paths are relative to.

    Each server URL is expanded with its variables: variables without an
    ``enum`` get their default substituted, enumerated ones fan out into one
    candidate per value.  The path of the first candidate on the same scheme
    and host as *base* wins.  A server URL that is itself a path is returned
    as is.

    Args:
        base: The configured base URI.
        servers: The document's ``servers`` list.

    Returns:
        The base path without a trailing slash, or the path of *base* when no
        server matches.
    """
    parsed = urlparse(base)
    prefix = f"{parsed.scheme}://{parsed.netloc}"

    for server in servers:
        if not isinstance(server, dict):
            continue
        url = str(server.get("url", ""))
        if url.startswith("/"):
            return url

        endpoints = [url]
        for name, variable in _mapping(server.get("variables")).items():
            key = "{" + str(name) + "}"
            variable = variable if isinstance(variable, dict) else {}
            values = variable.get("enum") or []
            if not values:
                default = str(variable.get("default", ""))
                endpoints = [endpoint.replace(key, default) for endpoint in endpoints]
            else:
                endpoints = [
                    endpoint.replace(key, str(value))
                    for value in values
                    for endpoint in endpoints
                ]

        for endpoint in endpoints:
            if endpoint.startswith(prefix):
                return urlparse(endpoint).path.rstrip("/")

    return parsed.path


def _as_list(value: Any) -> list[Any]:
    """Treat a scalar extension or tag value as a one-item list."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


# --- Parameters ---


def _merge_parameters(
    path_params: list[Any],
    op_params: list[Any],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters come first; path-level parameters follow
    unless an operation-level parameter has the same name.
    """
    merged = [param for param in op_params if isinstance(param, dict)]
    seen = {param.get("name") for param in merged}
    for param in path_params:
        if isinstance(param, dict) and param.get("name") not in seen:
            merged.append(param)
    return merged


def _compile_param(raw: dict[str, Any]) -> tuple[Param, Optional[dict[str, Any]]]:
    """Convert a raw parameter dict into a :class:`~apinav.models.Param`.

    Returns:
        The param and its schema (``None`` when it declares none), which is
        kept for the documentation blocks.
    """
    schema = raw.get("schema") if isinstance(raw.get("schema"), dict) else None

    typ = "string"
    default = None
    example = None
    if schema is not None:
        typ = schema_type(schema)
        if typ == "array":
            item_type = schema_type(schema.get("items"), default="")
            if item_type:
                typ += f"[{item_type}]"
        default = schema.get("default")
        example = schema.get("example", default)

    if "example" in raw:
        example = raw["example"]

    param = Param(
        name=str(raw.get("name", "")),
        display_name=str(raw.get(EXT_NAME) or ""),
        description=str(raw.get(EXT_DESCRIPTION) or raw.get("description") or ""),
        type=typ,
        style=ParamStyle.FORM if raw.get("style") == "form" else ParamStyle.SIMPLE,
        explode=bool(raw.get("explode", False)),
        default=default,
        example=example,
    )
    return param, schema


def _param_schema(param: Param, schema: Optional[dict[str, Any]]) -> str:
    if schema is not None:
        rendered = render_schema(schema, "  ", SchemaMode.WRITE)
        if param.description and not schema.get("description"):
            rendered += " " + " ".join(param.description.split())
        return rendered
    return f"({param.type}): {param.description}"


# --- Request body ---


def _request_info(operation: dict[str, Any]) -> tuple[str, Optional[dict[str, Any]], list[Any]]:
    """Pick the request media type, its schema, and its examples.

    JSON media types are preferred, then YAML, otherwise the first one
    declared.  When a media type declares no examples but has a schema, one
    example is generated from the schema.
    """
    body = operation.get("requestBody")
    content = body.get("content") if isinstance(body, dict) else None
    if not isinstance(content, dict):
        return "", None, []

    candidates: dict[str, tuple[Optional[dict[str, Any]], list[Any]]] = {}
    for media_type, item in content.items():
        item = item if isinstance(item, dict) else {}
        examples: list[Any] = []
        if "example" in item:
            examples.append(item["example"])
        named = item.get("examples")
        if isinstance(named, dict):
            for key in sorted(named):
                entry = named[key]
                if isinstance(entry, dict) and "value" in entry:
                    examples.append(entry["value"])

        schema = item.get("schema") if isinstance(item.get("schema"), dict) else None
        if schema is not None and not examples:
            generated = generate_example(schema, SchemaMode.WRITE)
            if generated is not None:
                examples.append(generated)
        candidates[str(media_type)] = (schema, examples)

    for short in ("json", "yaml"):
        for media_type, (schema, examples) in candidates.items():
            if short in media_type:
                return media_type, schema, examples
    if candidates:
        media_type = next(iter(candidates))
        schema, examples = candidates[media_type]
        return media_type, schema, examples
    return "", None, []


def _placeholder(media_type: str) -> str:
    if "json" in media_type:
        return INPUT_PLACEHOLDER
    if "yaml" in media_type:
        return "<input.yaml"
    return "<input.txt"


def _example_docs(media_type: str, examples: list[Any], cli_examples: list[str]) -> str:
    """Render the ``## Input Example`` section and fill *cli_examples*."""
    blocks: list[str] = []
    for example in examples:
        if isinstance(example, str):
            if example == INPUT_PLACEHOLDER:
                continue
            if len(example) < EXAMPLE_LIMIT:
                cli_examples.append(example)
            elif _placeholder(media_type) not in cli_examples:
                cli_examples.append(_placeholder(media_type))
            blocks.append("\n```\n" + example.strip("\n") + "\n```\n")
            continue

        short = marshal(example)
        if len(short) < EXAMPLE_LIMIT:
            cli_examples.append(short)
        elif INPUT_PLACEHOLDER not in cli_examples:
            cli_examples.append(INPUT_PLACEHOLDER)
        rendered = json.dumps(example, indent=2, ensure_ascii=False, default=str)
        blocks.append("\n```json\n" + rendered + "\n```\n")

    if not blocks:
        return ""
    return "\n## Input Example\n" + "".join(blocks)


# --- Responses ---


def _response_docs(responses: Any) -> str:
    """Render response sections, one per distinct schema.

    Status codes whose schemas hash identically share one section.  Sections
    are ordered by their first status code.
    """
    if not isinstance(responses, dict):
        return ""

    by_code = {str(code): value for code, value in responses.items()}
    groups: dict[Optional[str], list[_ResponseEntry]] = {}
    for code in sorted(by_code):
        response = by_code[code]
        if not isinstance(response, dict):
            continue
        content = response.get("content")
        if isinstance(content, dict) and content:
            for content_type, item in content.items():
                schema = item.get("schema") if isinstance(item, dict) else None
                if not isinstance(schema, dict):
                    schema = None
                groups.setdefault(schema_hash(schema), []).append(
                    _ResponseEntry(code, str(content_type), schema)
                )
        else:
            groups.setdefault(None, []).append(_ResponseEntry(code, "", None))

    docs = ""
    for digest, entries in sorted(groups.items(), key=lambda item: item[1][0].code):
        codes = list(dict.fromkeys(entry.code for entry in entries))
        first = entries[0]
        has_schema = digest is not None
        ct = f" ({first.content_type})" if has_schema else ""

        if len(codes) == 1:
            response = by_code[first.code]
            docs += f"\n## Response {first.code}{ct}\n"
            description = response.get(EXT_DESCRIPTION) or response.get("description") or ""
            if description:
                docs += f"\n{description}\n"
            elif not has_schema:
                docs += "\nResponse has no body\n"
        else:
            docs += f"\n## Responses {'/'.join(codes)}{ct}\n"
            if not has_schema:
                docs += "\nResponse has no body\n"

        headers = by_code[first.code].get("headers")
        if isinstance(headers, dict) and headers:
            docs += "\nHeaders: " + ", ".join(sorted(str(h) for h in headers)) + "\n"

        if has_schema:
            docs += "\n```schema\n" + render_schema(first.schema, "", SchemaMode.READ) + "\n```\n"

    return docs


# --- Operations ---


def _compile_operation(
    method: str,
    path: str,
    template: str,
    path_item: dict[str, Any],
    operation: dict[str, Any],
) -> Operation:
    """Build one :class:`~apinav.models.Operation`.

    Args:
        method: Upper-case HTTP method.
        path: The path key as written in the document.
        template: The resolved URI template.
        path_item: The enclosing path item, for path-level parameters.
        operation: The operation object.
    """
    params: dict[str, list[tuple[Param, Optional[dict[str, Any]]]]] = {
        "path": [],
        "query": [],
        "header": [],
    }
    merged = _merge_parameters(
        path_item.get("parameters") or [], operation.get("parameters") or []
    )
    for raw in merged:
        if raw.get(EXT_IGNORE):
            continue
        location = raw.get("in")
        if location in params:
            params[location].append(_compile_param(raw))

    operation_id = str(operation.get("operationId") or "")
    name = dash_case(operation_id)
    if not name:
        name = dash_case(f"{method}-{path.strip('/')}")

    aliases = [str(alias) for alias in _as_list(operation.get(EXT_ALIASES))]
    override = operation.get(EXT_NAME)
    if override:
        name = str(override)
    else:
        old_name = legacy_slug(operation_id)
        if old_name and old_name != name:
            aliases.append(old_name)

    desc = str(operation.get(EXT_DESCRIPTION) or operation.get("description") or "")

    if params["path"]:
        desc += "\n## Argument Schema:\n```schema\n{\n"
        for param, schema in params["path"]:
            desc += f"  {param.option_name}: {_param_schema(param, schema)}\n"
        desc += "}\n```\n"

    if params["query"] or params["header"]:
        desc += "\n## Option Schema:\n```schema\n{\n"
        for param, schema in params["query"] + params["header"]:
            desc += f"  --{param.option_name}: {_param_schema(param, schema)}\n"
        desc += "}\n```\n"

    media_type = ""
    examples: list[str] = []
    if operation.get("requestBody") is not None:
        media_type, request_schema, request_examples = _request_info(operation)
        desc += _example_docs(media_type, request_examples, examples)
        if request_schema is not None:
            desc += (
                f"\n## Request Schema ({media_type})\n\n```schema\n"
                + render_schema(request_schema, "", SchemaMode.WRITE)
                + "\n```\n"
            )

    desc += _response_docs(operation.get("responses"))

    tags = _as_list(operation.get("tags"))

    return Operation(
        name=name,
        group=str(tags[0]) if tags else "",
        aliases=aliases,
        short=str(operation.get("summary") or ""),
        long=desc.strip("\n") + "\n",
        method=method,
        uri_template=template,
        path_params=[param for param, _ in params["path"]],
        query_params=[param for param, _ in params["query"]],
        header_params=[param for param, _ in params["header"]],
        body_media_type=media_type,
        examples=examples,
        hidden=bool(operation.get(EXT_HIDDEN, False)),
        deprecated="do not use" if operation.get("deprecated") else "",
    )


# --- Security ---


def _security_scheme_map(spec: dict[str, Any]) -> dict[str, Any]:
    return _mapping(_mapping(spec.get("components")).get("securitySchemes"))


def _security_schemes(spec: dict[str, Any]) -> list[APIAuth]:
    """Map supported ``components/securitySchemes`` to auth suggestions.

    Schemes are visited in name order.  HTTP Basic, OAuth2 client
    credentials, and OAuth2 authorization code are supported; anything else
    is skipped.
    """
    schemes = _security_scheme_map(spec)
    auth: list[APIAuth] = []

    for key in sorted(schemes):
        scheme = schemes[key]
        if not isinstance(scheme, dict):
            continue

        scheme_type = scheme.get("type")
        if scheme_type == "http" and str(scheme.get("scheme", "")).lower() == "basic":
            auth.append(APIAuth(name="http-basic", params={"username": "", "password": ""}))
        elif scheme_type == "oauth2":
            flows = _mapping(scheme.get("flows"))
            client_credentials = flows.get("clientCredentials")
            if isinstance(client_credentials, dict):
                auth.append(
                    APIAuth(
                        name="oauth-client-credentials",
                        params={
                            "client_id": "",
                            "client_secret": "",
                            "token_url": str(client_credentials.get("tokenUrl", "")),
                        },
                    )
                )
            authorization_code = flows.get("authorizationCode")
            if isinstance(authorization_code, dict):
                auth.append(
                    APIAuth(
                        name="oauth-authorization-code",
                        params={
                            "client_id": "",
                            "authorize_url": str(authorization_code.get("authorizationUrl", "")),
                            "token_url": str(authorization_code.get("tokenUrl", "")),
                        },
                    )
                )
        else:
            logger.debug("Skipping unsupported security scheme '%s' (%s)", key, scheme_type)

    return auth


def _auto_config(spec: dict[str, Any]) -> Optional[AutoConfig]:
    """Compile the document-level ``x-cli-config`` block, if any.

    The referenced security scheme provides the auth name and default
    params; authorization code is preferred when an OAuth2 scheme offers
    several flows.  Explicit ``params`` override the derived values.
    """
    raw = spec.get(EXT_CLI_CONFIG)
    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.warning(
            "Ignoring %s: expected an object, got %s", EXT_CLI_CONFIG, type(raw).__name__
        )
        return None

    security = str(raw.get("security") or "")
    auth_name = security
    params: dict[str, str] = {}

    schemes = _security_scheme_map(spec)
    scheme = schemes.get(security) if security else None
    if isinstance(scheme, dict):
        if scheme.get("type") == "http":
            if str(scheme.get("scheme", "")).lower() == "basic":
                auth_name = "http-basic"
        elif scheme.get("type") == "oauth2":
            flows = _mapping(scheme.get("flows"))
            authorization_code = flows.get("authorizationCode")
            client_credentials = flows.get("clientCredentials")
            if isinstance(authorization_code, dict):
                auth_name = "oauth-authorization-code"
                params["client_id"] = ""
                params["authorize_url"] = str(authorization_code.get("authorizationUrl", ""))
                params["token_url"] = str(authorization_code.get("tokenUrl", ""))
            elif isinstance(client_credentials, dict):
                auth_name = "oauth-client-credentials"
                params["client_id"] = ""
                params["client_secret"] = ""
                params["token_url"] = str(client_credentials.get("tokenUrl", ""))

    for key, value in _config_field(raw, "params").items():
        params[str(key)] = str(value)

    try:
        prompt = {
            str(key): AutoConfigVar.model_validate(value)
            for key, value in _config_field(raw, "prompt").items()
        }
    except ValidationError as exc:
        logger.warning("Ignoring %s: invalid prompt definition: %s", EXT_CLI_CONFIG, exc)
        return None

    headers = {str(key): str(value) for key, value in _config_field(raw, "headers").items()}

    return AutoConfig(
        headers=headers,
        prompt=prompt,
        auth=APIAuth(name=auth_name, params=params),
    )


def _config_field(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning(
            "Ignoring %s.%s: expected an object, got %s",
            EXT_CLI_CONFIG,
            key,
            type(value).__name__,
        )
        return {}
    return value
