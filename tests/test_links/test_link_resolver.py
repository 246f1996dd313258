"""Tests for apinav.links.resolver -- running strategies together."""

from __future__ import annotations

from typing import Any

from apinav.exceptions import LinkError
from apinav.links import (
    HALStrategy,
    HeuristicStrategy,
    JSONAPIStrategy,
    LinkHeaderStrategy,
    LinkResolver,
    LinkStrategy,
    SirenStrategy,
)
from apinav.models import Links, Response


class BrokenStrategy(LinkStrategy):
    """Strategy that always reports a malformed structure."""

    @property
    def name(self) -> str:
        return "broken"

    def extract(self, headers: dict[str, str], body: Any) -> Links:
        raise self.error("always fails")


class FixedStrategy(LinkStrategy):
    def __init__(self, links: Links) -> None:
        self._links = links

    @property
    def name(self) -> str:
        return "fixed"

    def extract(self, headers: dict[str, str], body: Any) -> Links:
        return {rel: list(uris) for rel, uris in self._links.items()}


class TestDefault:
    def test_strategy_order(self) -> None:
        types = [type(s) for s in LinkResolver.default().strategies]
        assert types == [
            LinkHeaderStrategy,
            HALStrategy,
            SirenStrategy,
            JSONAPIStrategy,
            HeuristicStrategy,
        ]

    def test_strategies_copy(self) -> None:
        resolver = LinkResolver.default()
        resolver.strategies.clear()
        assert len(resolver.strategies) == 5

    def test_header_and_body_combined(self) -> None:
        result = LinkResolver.default().resolve(
            {"Link": '</page/2>; rel="next"'},
            {"_links": {"self": {"href": "/page/1"}}},
        )
        assert result.links == {"next": ["/page/2"], "self": ["/page/1"]}
        assert result.errors == []


class TestResolve:
    def test_failure_is_isolated(self) -> None:
        resolver = LinkResolver(
            [
                FixedStrategy({"self": ["/a"]}),
                BrokenStrategy(),
                FixedStrategy({"self": ["/b"], "next": ["/c"]}),
            ]
        )
        result = resolver.resolve({}, None)
        assert result.links == {"self": ["/a", "/b"], "next": ["/c"]}
        assert len(result.errors) == 1
        assert result.errors[0].strategy == "broken"
        assert str(result.errors[0]) == "broken: always fails"

    def test_bad_header_keeps_body_links(self) -> None:
        result = LinkResolver.default().resolve(
            {"Link": "bad value"}, {"self": "/self", "things": [{"self": "/foo"}]}
        )
        assert result.links == {"self": ["/self"], "things-item": ["/foo"]}
        assert [e.strategy for e in result.errors] == ["link-header"]

    def test_relative_links_resolved_against_base(self) -> None:
        resolver = LinkResolver([FixedStrategy({"next": ["page/2", "/top", "https://o.example.com/x"]})])
        result = resolver.resolve({}, None, base="https://api.example.com/items/")
        assert result.links["next"] == [
            "https://api.example.com/items/page/2",
            "https://api.example.com/top",
            "https://o.example.com/x",
        ]

    def test_register_appends(self) -> None:
        resolver = LinkResolver()
        resolver.register(FixedStrategy({"a": ["/1"]}))
        resolver.register(FixedStrategy({"a": ["/2"]}))
        assert resolver.resolve({}, None).links == {"a": ["/1", "/2"]}

    def test_nothing_found(self) -> None:
        result = LinkResolver.default().resolve({}, None)
        assert result.links == {}
        assert result.errors == []


class TestAttach:
    def test_sets_response_links(self) -> None:
        response = Response(
            status=200,
            headers={"Link": '</next>; rel="next"'},
            body={"self": "/items"},
        )
        errors = LinkResolver.default().attach(response, base="https://api.example.com/")
        assert errors == []
        assert response.links == {
            "next": ["https://api.example.com/next"],
            "self": ["https://api.example.com/items"],
        }

    def test_returns_errors(self) -> None:
        response = Response(body={"_links": "oops"})
        errors = LinkResolver([BrokenStrategy(), HALStrategy()]).attach(response)
        assert [e.strategy for e in errors] == ["broken", "hal"]
        assert all(isinstance(e, LinkError) for e in errors)
        assert response.links == {}
