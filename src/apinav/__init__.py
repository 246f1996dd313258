"""apinav -- a generic REST API client core driven by API descriptions.

Instead of hand-written bindings, apinav learns what an API can do from
declarative descriptions and what a response links to from the response
itself. The package is built around three pieces:

* **Configuration registry** -- layered ``apis.json`` / ``.apinav.json`` /
  ``.apinav.yaml`` files are discovered and deep-merged into a
  :class:`~apinav.registry.Registry` of named APIs.
* **OpenAPI compilation** -- an OpenAPI 3 document is compiled into a list of
  immutable :class:`~apinav.models.Operation` values ready to be registered
  as commands by a front end.
* **Hypermedia links** -- :class:`~apinav.links.LinkResolver` runs an ordered
  set of format-specific strategies (``Link`` header, HAL, Siren, JSON:API,
  plain JSON) over each response.

Typical usage::

    from apinav.links import LinkResolver
    from apinav.openapi import OpenAPILoader
    from apinav.registry import Registry

    registry = Registry.load()
    registry.register_loader(OpenAPILoader())
    name, config = registry.find_api("https://api.example.com/items")
    api = registry.load_api(name)

    resolver = LinkResolver.default()
    result = resolver.resolve(headers, body, base="https://api.example.com/items")

Modules:
    models: Pydantic models shared across the package.
    config: XDG paths, config file discovery, reading, writing and merging.
    registry: The in-memory registry of configured APIs.
    openapi: OpenAPI document loading and compilation.
    links: Hypermedia link extraction strategies.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer application exposing the ``api`` and ``links`` commands.
"""

__version__ = "0.3.0"
