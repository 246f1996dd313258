"""Helpers over resolved JSON Schema subtrees.

The compiler documents request and response bodies with a compact rendering
of their schemas (:func:`render_schema`), generates an input example when a
request body declares none (:func:`generate_example`), and groups response
codes by a canonical content hash of their schemas (:func:`schema_hash`).

All functions take plain ``dict`` schemas as produced by
:func:`~apinav.openapi.resolver.resolve_refs`.  A ``$ref`` dict that survives
resolution marks a circular reference and is rendered by name instead of being
expanded again.
"""

from __future__ import annotations

import enum
import hashlib
import json
from typing import Any, Optional

# Keys rendered as ``key:value`` after a scalar type
_CONSTRAINTS = (
    ("minimum", "min"),
    ("exclusiveMinimum", "exclusiveMin"),
    ("maximum", "max"),
    ("exclusiveMaximum", "exclusiveMax"),
    ("minLength", "minLen"),
    ("maxLength", "maxLen"),
    ("pattern", "pattern"),
    ("minItems", "minItems"),
    ("maxItems", "maxItems"),
    ("default", "default"),
)

_STRING_EXAMPLES = {
    "date": "2020-01-01",
    "date-time": "2020-01-01T12:00:00Z",
    "email": "user@example.com",
    "hostname": "example.com",
    "ipv4": "192.0.2.1",
    "ipv6": "2001:db8::1",
    "uri": "https://example.com/",
    "uuid": "00000000-0000-0000-0000-000000000000",
}


class SchemaMode(str, enum.Enum):
    """Which side of the wire a schema is shown for.

    ``readOnly`` properties only appear in responses and ``writeOnly`` ones
    only in requests.
    """

    READ = "read"
    WRITE = "write"


def schema_type(schema: Any, default: str = "string") -> str:
    """Extract the type string from a schema object.

    Handles OpenAPI 3.1 type arrays (e.g., ``["string", "null"]``) by
    returning the first non-null type.  Falls back to *default* if the type
    is missing.
    """
    if not isinstance(schema, dict):
        return default

    type_value = schema.get("type")
    if type_value is None:
        if "properties" in schema:
            return "object"
        if "items" in schema:
            return "array"
        return default

    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return str(non_null[0]) if non_null else default

    return str(type_value)


def schema_hash(schema: Optional[dict[str, Any]]) -> Optional[str]:
    """Return a content hash of *schema* that ignores key order.

    The schema is serialised as JSON with sorted keys and compact separators
    before hashing, so two schemas that differ only in the order their
    members were declared hash the same.

    Returns:
        A SHA-256 hex digest, or ``None`` when there is no schema.
    """
    if schema is None:
        return None
    canonical = json.dumps(schema, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _is_hidden(schema: Any, mode: SchemaMode) -> bool:
    if not isinstance(schema, dict):
        return False
    if mode == SchemaMode.READ:
        return bool(schema.get("writeOnly"))
    return bool(schema.get("readOnly"))


def _ref_name(ref: str) -> str:
    return ref.rstrip("/").rsplit("/", 1)[-1] or ref


def _scalar(schema: dict[str, Any], typ: str) -> str:
    parts = [typ]
    if schema.get("format"):
        parts.append(f"format:{schema['format']}")
    if schema.get("nullable"):
        parts.append("nullable:true")
    for key, label in _CONSTRAINTS:
        if key in schema:
            parts.append(f"{label}:{json.dumps(schema[key], default=str)}")
    if schema.get("enum"):
        parts.append("enum:" + ",".join(str(v) for v in schema["enum"]))

    rendered = "(" + " ".join(parts) + ")"
    description = str(schema.get("description") or "").strip()
    if description:
        rendered += " " + " ".join(description.split())
    return rendered


def render_schema(
    schema: Any, indent: str = "", mode: SchemaMode = SchemaMode.READ
) -> str:
    """Render *schema* as compact, human-readable documentation.

    Objects are shown as ``{ name: <schema> }`` blocks with required
    properties marked ``*``, arrays as ``[ <items> ]`` and scalars as
    ``(type constraints...) description``.  Properties hidden in *mode* are
    left out.

    Args:
        schema: A resolved schema dict.
        indent: Prefix of the line the rendering starts on; nested lines are
            indented two further spaces.
        mode: Request (``WRITE``) or response (``READ``) view.

    Returns:
        The rendered text, without a trailing newline.

    Example::

        >>> print(render_schema({"type": "object", "required": ["id"],
        ...     "properties": {"id": {"type": "string"}}}))
        {
          id*: (string)
        }
    """
    if not isinstance(schema, dict) or not schema:
        return "<any>"

    if isinstance(schema.get("$ref"), str):
        return f"<{_ref_name(schema['$ref'])}>"

    inner = indent + "  "
    for combinator in ("oneOf", "anyOf", "allOf"):
        options = schema.get(combinator)
        if isinstance(options, list) and options:
            lines = [f"{combinator}{{"]
            for option in options:
                lines.append(inner + render_schema(option, inner, mode))
            lines.append(indent + "}")
            return "\n".join(lines)

    typ = schema_type(schema, default="any")

    if typ == "object":
        properties = schema.get("properties") or {}
        additional = schema.get("additionalProperties")
        if not properties and not isinstance(additional, dict):
            return _scalar(schema, typ)

        required = set(schema.get("required") or [])
        lines = ["{"]
        for name, prop in properties.items():
            if _is_hidden(prop, mode):
                continue
            marker = "*" if name in required else ""
            lines.append(f"{inner}{name}{marker}: {render_schema(prop, inner, mode)}")
        if isinstance(additional, dict):
            lines.append(f"{inner}<any>: {render_schema(additional, inner, mode)}")
        lines.append(indent + "}")
        return "\n".join(lines)

    if typ == "array":
        items = schema.get("items")
        return "[\n" + inner + render_schema(items, inner, mode) + "\n" + indent + "]"

    return _scalar(schema, typ)


def generate_example(schema: Any, mode: SchemaMode = SchemaMode.WRITE) -> Any:
    """Build an example value that satisfies *schema*.

    Explicit ``example``, ``examples``, ``default`` and ``enum`` values are
    used first.  Otherwise a placeholder is generated from the type; objects
    include every property that is not hidden in *mode*.

    Returns:
        The example, or ``None`` when the schema gives nothing to go on.
    """
    if not isinstance(schema, dict) or "$ref" in schema:
        return None

    if "example" in schema:
        return schema["example"]
    examples = schema.get("examples")
    if isinstance(examples, list) and examples:
        return examples[0]
    if "default" in schema:
        return schema["default"]
    if schema.get("enum"):
        return schema["enum"][0]

    for combinator in ("oneOf", "anyOf"):
        options = schema.get(combinator)
        if isinstance(options, list) and options:
            return generate_example(options[0], mode)

    all_of = schema.get("allOf")
    if isinstance(all_of, list) and all_of:
        merged: dict[str, Any] = {}
        for part in all_of:
            value = generate_example(part, mode)
            if isinstance(value, dict):
                merged.update(value)
        return merged

    typ = schema_type(schema, default="")
    if typ == "object":
        result: dict[str, Any] = {}
        for name, prop in (schema.get("properties") or {}).items():
            if _is_hidden(prop, mode):
                continue
            result[name] = generate_example(prop, mode)
        additional = schema.get("additionalProperties")
        if not result and isinstance(additional, dict):
            result["<any>"] = generate_example(additional, mode)
        return result
    if typ == "array":
        items = schema.get("items")
        return [generate_example(items, mode)] if isinstance(items, dict) else []
    if typ == "string":
        return _STRING_EXAMPLES.get(schema.get("format", ""), "string")
    if typ == "integer":
        return schema.get("minimum", 0)
    if typ == "number":
        return schema.get("minimum", 1.5)
    if typ == "boolean":
        return True
    return None
