"""Run every registered link strategy over a response.

The :class:`LinkResolver` is built once at startup (usually with
:meth:`LinkResolver.default`) and then called for each received response.
Strategies run in registration order and each runs in isolation: a
:class:`~apinav.exceptions.LinkError` from one is recorded and the others
still contribute.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urljoin

from apinav.exceptions import LinkError
from apinav.links.base import LinkStrategy
from apinav.links.strategies import (
    HALStrategy,
    HeuristicStrategy,
    JSONAPIStrategy,
    LinkHeaderStrategy,
    SirenStrategy,
)
from apinav.models import LinkResult, Response

logger = logging.getLogger(__name__)


class LinkResolver:
    """Ordered collection of link strategies.

    Args:
        strategies: Initial strategies, in the order they should run.

    Example::

        resolver = LinkResolver.default()
        result = resolver.resolve(
            {"Link": '</page/2>; rel="next"'},
            {"self": "/page/1"},
            base="https://api.example.com/items",
        )
        result.links["next"]  # ["https://api.example.com/page/2"]
    """

    def __init__(self, strategies: Optional[list[LinkStrategy]] = None) -> None:
        self._strategies: list[LinkStrategy] = list(strategies or [])

    @classmethod
    def default(cls) -> LinkResolver:
        """Resolver with the built-in strategies: header, HAL, Siren, JSON:API, heuristic."""
        return cls(
            [
                LinkHeaderStrategy(),
                HALStrategy(),
                SirenStrategy(),
                JSONAPIStrategy(),
                HeuristicStrategy(),
            ]
        )

    @property
    def strategies(self) -> list[LinkStrategy]:
        return list(self._strategies)

    def register(self, strategy: LinkStrategy) -> None:
        """Append *strategy*; it runs after those already registered."""
        self._strategies.append(strategy)

    def resolve(
        self, headers: dict[str, str], body: Any, base: Optional[str] = None
    ) -> LinkResult:
        """Collect links from all strategies.

        Relations found by several strategies are concatenated in strategy
        order.  Output of a strategy that fails is discarded entirely.

        Args:
            headers: Response headers.
            body: The decoded response body.
            base: Request URI that relative links are resolved against.
                Links are returned as found when omitted.

        Returns:
            The merged links and the errors of failed strategies.
        """
        result = LinkResult()
        for strategy in self._strategies:
            try:
                found = strategy.extract(headers, body)
            except LinkError as exc:
                logger.debug("Link strategy %s failed: %s", strategy.name, exc)
                result.errors.append(exc)
                continue

            for rel, uris in found.items():
                target = result.links.setdefault(rel, [])
                for uri in uris:
                    target.append(urljoin(base, uri) if base else uri)
        return result

    def attach(self, response: Response, base: Optional[str] = None) -> list[LinkError]:
        """Resolve links for *response* and store them on ``response.links``.

        Returns:
            Errors of the strategies that failed.
        """
        result = self.resolve(response.headers, response.body, base)
        response.links = result.links
        return result.errors
