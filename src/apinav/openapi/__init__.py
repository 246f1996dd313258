"""OpenAPI support -- load, resolve ``$ref`` pointers, and compile operations.

This sub-package turns an OpenAPI 3.x document (JSON or YAML, local file or
remote URL) into an :class:`~apinav.models.API` whose operations a front end
can register as commands.

Typical usage::

    from apinav.openapi import OpenAPILoader
    from apinav.registry import Registry

    registry = Registry.load()
    registry.register_loader(OpenAPILoader())
    operations = registry.operations("widgets")

Sub-modules:

* :mod:`~apinav.openapi.base` -- The :class:`SpecLoader` interface.
* :mod:`~apinav.openapi.loader` -- I/O layer (URL, file) plus format
  detection and OpenAPI version validation.
* :mod:`~apinav.openapi.resolver` -- Recursive ``$ref`` resolution with
  circular-reference detection.
* :mod:`~apinav.openapi.schema` -- Schema rendering, hashing, and example
  generation.
* :mod:`~apinav.openapi.compiler` -- Walks the resolved document and
  produces :class:`~apinav.models.Operation` objects.
"""

from apinav.openapi.base import SpecLoader
from apinav.openapi.compiler import compile_document
from apinav.openapi.loader import OpenAPILoader, load_document, parse_document

__all__ = [
    "OpenAPILoader",
    "SpecLoader",
    "compile_document",
    "load_document",
    "parse_document",
]
