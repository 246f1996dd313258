"""Tests for apinav.openapi.resolver -- $ref resolution."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from apinav.exceptions import SpecError
from apinav.openapi.resolver import resolve_refs


class TestInternalRefs:
    def test_schema_ref_replaced(self) -> None:
        doc = {
            "components": {"schemas": {"Id": {"type": "string"}}},
            "paths": {"/x": {"get": {"schema": {"$ref": "#/components/schemas/Id"}}}},
        }
        resolved = resolve_refs(doc)
        assert resolved["paths"]["/x"]["get"]["schema"] == {"type": "string"}

    def test_input_not_mutated(self) -> None:
        doc = {"a": {"type": "string"}, "b": {"$ref": "#/a"}}
        resolve_refs(doc)
        assert doc["b"] == {"$ref": "#/a"}

    def test_nested_refs(self) -> None:
        doc = {
            "defs": {
                "Outer": {"properties": {"inner": {"$ref": "#/defs/Inner"}}},
                "Inner": {"type": "integer"},
            },
            "use": {"$ref": "#/defs/Outer"},
        }
        assert resolve_refs(doc)["use"]["properties"]["inner"] == {"type": "integer"}

    def test_escaped_pointer(self) -> None:
        doc = {"paths": {"/a/{id}": {"x": 1}}, "use": {"$ref": "#/paths/~1a~1{id}"}}
        assert resolve_refs(doc)["use"] == {"x": 1}

    def test_list_index(self) -> None:
        doc = {"items": [{"v": 0}, {"v": 1}], "use": {"$ref": "#/items/1"}}
        assert resolve_refs(doc)["use"] == {"v": 1}

    def test_siblings_resolve_independently(self) -> None:
        doc = {
            "defs": {"Id": {"type": "string"}},
            "pair": [{"$ref": "#/defs/Id"}, {"$ref": "#/defs/Id"}],
        }
        assert resolve_refs(doc)["pair"] == [{"type": "string"}, {"type": "string"}]


class TestCycles:
    def test_self_reference_left_in_place(self) -> None:
        doc = {
            "defs": {
                "Node": {
                    "type": "object",
                    "properties": {"child": {"$ref": "#/defs/Node"}},
                }
            },
            "use": {"$ref": "#/defs/Node"},
        }
        resolved = resolve_refs(doc)
        node = resolved["use"]
        assert node["type"] == "object"
        assert node["properties"]["child"] == {"$ref": "#/defs/Node"}

    def test_mutual_recursion_terminates(self) -> None:
        doc = {
            "defs": {
                "A": {"properties": {"b": {"$ref": "#/defs/B"}}},
                "B": {"properties": {"a": {"$ref": "#/defs/A"}}},
            },
        }
        resolved = resolve_refs(doc)
        a_again = resolved["defs"]["A"]["properties"]["b"]["properties"]["a"]
        assert a_again["properties"]["b"] == {"$ref": "#/defs/B"}


class TestFileRefs:
    def test_relative_file(self, tmp_path: Path) -> None:
        (tmp_path / "common.json").write_text(
            json.dumps({"schemas": {"Id": {"type": "string", "format": "uuid"}}}),
            encoding="utf-8",
        )
        doc = {"use": {"$ref": "common.json#/schemas/Id"}}
        resolved = resolve_refs(doc, str(tmp_path / "api.yaml"))
        assert resolved["use"] == {"type": "string", "format": "uuid"}

    def test_refs_inside_file_use_that_file(self, tmp_path: Path) -> None:
        shared = tmp_path / "shared"
        shared.mkdir()
        (shared / "common.yaml").write_text(
            "schemas:\n"
            "  Wrapper:\n"
            "    properties:\n"
            "      id:\n"
            "        $ref: '#/schemas/Id'\n"
            "      name:\n"
            "        $ref: 'names.yaml#/Name'\n"
            "  Id:\n"
            "    type: integer\n",
            encoding="utf-8",
        )
        (shared / "names.yaml").write_text("Name:\n  type: string\n", encoding="utf-8")

        doc = {"use": {"$ref": "shared/common.yaml#/schemas/Wrapper"}}
        resolved = resolve_refs(doc, str(tmp_path / "api.yaml"))
        assert resolved["use"]["properties"] == {
            "id": {"type": "integer"},
            "name": {"type": "string"},
        }

    def test_whole_file(self, tmp_path: Path) -> None:
        (tmp_path / "id.json").write_text('{"type": "string"}', encoding="utf-8")
        resolved = resolve_refs({"use": {"$ref": "id.json"}}, str(tmp_path / "api.json"))
        assert resolved["use"] == {"type": "string"}

    def test_missing_file(self, tmp_path: Path) -> None:
        doc = {"use": {"$ref": "nope.yaml#/x"}}
        with pytest.raises(SpecError, match="cannot read referenced file nope.yaml"):
            resolve_refs(doc, str(tmp_path / "api.yaml"))


class TestErrors:
    def test_remote_ref_rejected(self) -> None:
        doc = {"use": {"$ref": "https://example.com/schemas.json#/Id"}}
        with pytest.raises(SpecError, match="remote \\$ref not supported"):
            resolve_refs(doc)

    def test_relative_file_in_remote_document(self, tmp_path: Path, monkeypatch) -> None:
        (tmp_path / "common.yaml").write_text("Id:\n  type: string\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        doc = {"use": {"$ref": "common.yaml#/Id"}}
        with pytest.raises(SpecError, match="relative \\$ref in a remote document not supported"):
            resolve_refs(doc, "https://api.example.com/openapi.yaml")

    def test_internal_refs_in_remote_document(self) -> None:
        doc = {"defs": {"Id": {"type": "string"}}, "use": {"$ref": "#/defs/Id"}}
        resolved = resolve_refs(doc, "https://api.example.com/openapi.yaml")
        assert resolved["use"] == {"type": "string"}

    def test_all_errors_reported_together(self) -> None:
        doc = {
            "one": {"$ref": "#/missing/one"},
            "two": {"$ref": "#/missing/two"},
        }
        with pytest.raises(SpecError) as exc_info:
            resolve_refs(doc)
        message = str(exc_info.value)
        assert message.startswith("failed to load the OpenAPI document:")
        assert "#/missing/one" in message
        assert "#/missing/two" in message

    def test_invalid_pointer(self) -> None:
        with pytest.raises(SpecError, match="invalid JSON pointer"):
            resolve_refs({"use": {"$ref": "#nope"}})

    def test_bad_list_index(self) -> None:
        with pytest.raises(SpecError, match="invalid array index"):
            resolve_refs({"items": [1], "use": {"$ref": "#/items/5"}})
