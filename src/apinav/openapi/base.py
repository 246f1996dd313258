"""Abstract base class for API description loaders.

A loader knows one description format. The
:class:`~apinav.registry.Registry` fetches a document, asks each registered
loader in turn whether it recognises the content via :meth:`SpecLoader.detect`,
and hands the document to the first one that does.

See Also:
    :class:`~apinav.openapi.loader.OpenAPILoader` for the OpenAPI 3 loader.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from apinav.models import API


class SpecLoader(ABC):
    """Turns a fetched API description into a compiled :class:`~apinav.models.API`."""

    @property
    @abstractmethod
    def location_hints(self) -> list[str]:
        """Paths, relative to an API base, where a description is commonly served."""

    @abstractmethod
    def detect(self, text: str, content_type: str) -> bool:
        """Return ``True`` if *text* looks like a document this loader handles."""

    @abstractmethod
    def load(self, base: str, location: str, text: str) -> API:
        """Compile the document *text* fetched from *location*.

        Args:
            base: The API base URI operations are resolved against.
            location: Where the document came from, used for relative
                references.
            text: The raw document.

        Raises:
            SpecError: If the document is unsupported or cannot be resolved.
        """
