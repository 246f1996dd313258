"""Abstract base class for hypermedia link strategies.

Every strategy must subclass :class:`LinkStrategy` and implement the
:attr:`~LinkStrategy.name` property and :meth:`~LinkStrategy.extract`.
Strategies are registered explicitly on a
:class:`~apinav.links.resolver.LinkResolver`; there is no runtime discovery.

A strategy looks for one structural shape in a response.  When the shape is
absent it returns an empty mapping.  When the shape is present but malformed
it raises :class:`~apinav.exceptions.LinkError`, which the resolver records
without affecting any other strategy.

Example:
    Minimal strategy implementation::

        class LocationStrategy(LinkStrategy):
            @property
            def name(self) -> str:
                return "location"

            def extract(self, headers, body):
                location = headers.get("Location")
                return {"location": [location]} if location else {}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from apinav.exceptions import LinkError
from apinav.models import Links


class LinkStrategy(ABC):
    """Base class for all link strategies."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the strategy name used in errors and logging.

        Returns:
            A short identifier (e.g. ``"hal"``).
        """
        ...

    @abstractmethod
    def extract(self, headers: dict[str, str], body: Any) -> Links:
        """Find links in one response.

        Args:
            headers: Response headers.
            body: The decoded body: ``None``, a bool, a number, a string, a
                list, or a dict.

        Returns:
            Relation name to URIs, in the order they were found.

        Raises:
            LinkError: If the strategy's shape is present but malformed.
        """
        ...

    def error(self, message: str) -> LinkError:
        """Build a :class:`~apinav.exceptions.LinkError` tagged with this strategy."""
        return LinkError(self.name, message)


def add_link(links: Links, rel: str, uri: str) -> None:
    """Append *uri* under *rel*, keeping discovery order."""
    links.setdefault(rel, []).append(uri)
