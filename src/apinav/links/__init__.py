"""Hypermedia link discovery for decoded responses.

Typical usage::

    from apinav.links import LinkResolver

    resolver = LinkResolver.default()
    errors = resolver.attach(response, base=request_uri)
    next_page = response.links.get("next", [])
"""

from apinav.links.base import LinkStrategy
from apinav.links.resolver import LinkResolver
from apinav.links.strategies import (
    HALStrategy,
    HeuristicStrategy,
    JSONAPIStrategy,
    LinkHeaderStrategy,
    SirenStrategy,
)

__all__ = [
    "HALStrategy",
    "HeuristicStrategy",
    "JSONAPIStrategy",
    "LinkHeaderStrategy",
    "LinkResolver",
    "LinkStrategy",
    "SirenStrategy",
]
