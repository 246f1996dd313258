"""Canonical Pydantic models shared across all apinav modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON or YAML in the global
``apis.json`` and in local ``.apinav.json`` / ``.apinav.yaml`` files:
    :class:`APIAuth`, :class:`PKCS11Config`, :class:`TLSConfig`,
    :class:`APIProfile`, and :class:`APIConfig`.

**Compiled API models** -- produced by the OpenAPI compiler and consumed by a
command-registration front end:
    :class:`ParamStyle`, :class:`Param`, :class:`Operation`,
    :class:`AutoConfigVar`, :class:`AutoConfig`, and :class:`API`.

**Response models** -- a decoded response and the hypermedia links found in
it: :data:`Links`, :class:`LinkResult`, and :class:`Response`.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from apinav.casing import dash_case
from apinav.exceptions import LinkError


# --- Configuration ---


class APIAuth(BaseModel):
    """Auth scheme name plus its parameters.

    Used both in configuration profiles and as the auth suggestions
    compiled from an OpenAPI document's security schemes.

    Example::

        APIAuth(name="http-basic", params={"username": "", "password": ""})
    """

    name: str = ""
    params: dict[str, str] = Field(default_factory=dict)


class PKCS11Config(BaseModel):
    """Location of a client certificate held on a PKCS#11 device."""

    path: Optional[str] = None
    label: Optional[str] = None


class TLSConfig(BaseModel):
    """TLS settings handed to the HTTP transport for one API."""

    insecure: bool = Field(
        default=False, description="Skip server certificate verification"
    )
    cert: Optional[str] = None
    key: Optional[str] = None
    ca_cert: Optional[str] = None
    pkcs11: Optional[PKCS11Config] = None


class APIProfile(BaseModel):
    """Named variant of connection settings for one API.

    A profile can override the API's base URL and carries the headers,
    query parameters, and auth used when talking to it, e.g. one profile per
    environment or per account.
    """

    base: Optional[str] = Field(
        default=None, description="Base URL override for this profile"
    )
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    auth: Optional[APIAuth] = None


class APIConfig(BaseModel):
    """Per-API configuration entry, keyed by short name in config files.

    The ``name`` is the key the entry was registered under and is never
    written back into the file body.

    See Also:
        :func:`~apinav.config.merge_api_config`: Layer one entry over another.
        :class:`~apinav.registry.Registry`: Holds every loaded entry.
    """

    name: str = Field(default="", exclude=True)
    base: str = Field(default="", description="Base URI of the API")
    operation_base: Optional[str] = Field(
        default=None, description="Base URI that operation paths resolve against"
    )
    spec_files: list[str] = Field(
        default_factory=list, description="Local paths or URLs of API descriptions"
    )
    profiles: dict[str, APIProfile] = Field(default_factory=dict)
    tls: Optional[TLSConfig] = None

    def to_file_entry(self) -> dict[str, Any]:
        """Serialise for a config file, omitting empty and unset fields."""
        return self.model_dump(mode="json", exclude_none=True, exclude_defaults=True)


# --- Compiled API ---


class ParamStyle(str, enum.Enum):
    """Serialisation style of a parameter value, per the OpenAPI ``style`` field."""

    SIMPLE = "simple"
    FORM = "form"


class Param(BaseModel):
    """A single path, query, or header parameter of an :class:`Operation`.

    ``type`` is the schema type with one level of array item typing, e.g.
    ``"integer"`` or ``"array[string]"``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str = ""
    description: str = ""
    type: str = "string"
    style: ParamStyle = ParamStyle.SIMPLE
    explode: bool = False
    default: Any = None
    example: Any = None

    @property
    def option_name(self) -> str:
        """Name used for the generated CLI argument or ``--option``."""
        return dash_case(self.display_name or self.name)


class Operation(BaseModel):
    """An executable command compiled from one OpenAPI path + method pair.

    Created once by :func:`~apinav.openapi.compiler.compile_document` and
    never mutated afterwards; a front end registers one command per
    operation.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    group: str = ""
    aliases: list[str] = Field(default_factory=list)
    short: str = ""
    long: str = ""
    method: str
    uri_template: str
    path_params: list[Param] = Field(default_factory=list)
    query_params: list[Param] = Field(default_factory=list)
    header_params: list[Param] = Field(default_factory=list)
    body_media_type: str = ""
    examples: list[str] = Field(default_factory=list)
    hidden: bool = False
    deprecated: str = Field(
        default="", description="Deprecation notice, empty when not deprecated"
    )


class AutoConfigVar(BaseModel):
    """A value the user is prompted for when an API is first configured."""

    description: str = ""
    example: Any = None
    default: Any = None
    enum: list[Any] = Field(default_factory=list)
    exclude: bool = Field(
        default=False, description="Prompt for the value but do not store it in auth params"
    )


class AutoConfig(BaseModel):
    """Default setup an API description suggests through ``x-cli-config``."""

    headers: dict[str, str] = Field(default_factory=dict)
    prompt: dict[str, AutoConfigVar] = Field(default_factory=dict)
    auth: APIAuth = Field(default_factory=APIAuth)


class API(BaseModel):
    """Everything compiled from the description(s) of one configured API."""

    short: str = ""
    long: str = ""
    operations: list[Operation] = Field(default_factory=list)
    auth: list[APIAuth] = Field(default_factory=list)
    auto_config: Optional[AutoConfig] = None

    def visible_operations(self) -> list[Operation]:
        """Operations that should appear in listings (hidden ones excluded)."""
        return [op for op in self.operations if not op.hidden]


# --- Responses ---


Links = dict[str, list[str]]
"""Relation name to discovered URIs, in discovery order."""


class LinkResult(BaseModel):
    """Links gathered from one response plus the per-strategy failures."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    links: Links = Field(default_factory=dict)
    errors: list[LinkError] = Field(default_factory=list)


class Response(BaseModel):
    """A received response after the transport decoded its body.

    ``links`` is filled by :meth:`~apinav.links.LinkResolver.attach`.
    """

    status: int = 0
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    links: Links = Field(default_factory=dict)
