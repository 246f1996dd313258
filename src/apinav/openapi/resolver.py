"""Resolve ``$ref`` JSON Reference pointers in OpenAPI documents.

OpenAPI documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Widget"}``) to avoid repetition.  This module
performs a recursive deep-copy traversal of the document, replacing every
``$ref`` with the actual referenced object.

Two kinds of reference are supported:

* **internal** references starting with ``#/`` (RFC 6901 JSON Pointers);
* **relative file** references such as ``common.yaml#/components/schemas/Id``,
  read from disk relative to the directory of the referring document.  Refs
  inside such a file resolve against that file.  A document fetched from a
  URL has no directory on disk, so its relative file references are errors.

Remote ``http(s)`` references are not fetched and are reported as errors.

Circular references are detected via a ``seen`` set and left unresolved to
prevent infinite recursion.  This means a schema that references itself (common
in tree-like structures) will retain its ``$ref`` dict at the cycle point.

Resolution never stops at the first problem: every broken reference is
recorded and all of them are raised together as one
:class:`~apinav.exceptions.SpecError`.

The single public function is :func:`resolve_refs`.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

from apinav.exceptions import SpecError

logger = logging.getLogger(__name__)


def resolve_refs(doc: dict[str, Any], location: str = "") -> dict[str, Any]:
    """Resolve all ``$ref`` JSON Reference pointers in the document.

    Args:
        doc: The raw OpenAPI document, as returned by
            :func:`~apinav.openapi.loader.parse_document`.
        location: Where the document was loaded from.  Relative file
            references are resolved against its directory; with no location
            they resolve against the working directory.  For a URL they are
            reported as errors.

    Returns:
        A **new** dictionary (deep copy) with all resolvable ``$ref``
        pointers replaced by their target objects.

    Raises:
        SpecError: Listing every reference that could not be resolved.

    Example::

        raw = parse_document(text)
        resolved = resolve_refs(raw, "specs/widgets.yaml")
    """
    resolver = _Resolver(location)
    root = copy.deepcopy(doc)
    result = resolver.resolve(root, _Scope(root, resolver.base_dir), frozenset())
    if resolver.errors:
        raise SpecError(
            "failed to load the OpenAPI document:\n"
            + "\n".join(f"  {error}" for error in resolver.errors)
        )
    return result


class _Scope:
    """The document a ``#/`` pointer resolves against, plus its directory."""

    def __init__(self, root: Any, base_dir: Optional[Path], name: str = "") -> None:
        self.root = root
        self.base_dir = base_dir
        self.name = name


class _Resolver:
    def __init__(self, location: str) -> None:
        self.base_dir: Optional[Path]
        if location.startswith(("http://", "https://")):
            self.base_dir = None
        elif location:
            self.base_dir = Path(location).parent
        else:
            self.base_dir = Path(os.curdir)
        self.errors: list[str] = []
        self._files: dict[Path, Any] = {}

    def resolve(self, obj: Any, scope: _Scope, seen: frozenset[str]) -> Any:
        """Recursively resolve all ``$ref`` pointers within *obj*.

        *seen* holds the qualified refs currently on the resolution stack; a
        new set is built for each branch so that sibling references do not
        interfere with each other.
        """
        if isinstance(obj, dict):
            ref = obj.get("$ref")
            if isinstance(ref, str):
                return self._follow(obj, ref, scope, seen)
            return {key: self.resolve(value, scope, seen) for key, value in obj.items()}

        if isinstance(obj, list):
            return [self.resolve(item, scope, seen) for item in obj]

        return obj

    def _follow(self, obj: dict[str, Any], ref: str, scope: _Scope, seen: frozenset[str]) -> Any:
        file_part, _, pointer = ref.partition("#")

        if file_part.startswith(("http://", "https://")):
            self.errors.append(f"remote $ref not supported: {ref}")
            return obj

        target_scope = scope
        if file_part:
            target_scope = self._load_file(file_part, scope)
            if target_scope is None:
                return obj

        qualified = f"{target_scope.name}#{pointer}"
        if qualified in seen:
            # Circular reference -- keep the $ref dict unresolved
            return obj

        try:
            target = _follow_pointer(pointer, target_scope.root)
        except LookupError as exc:
            self.errors.append(f"cannot resolve $ref '{ref}': {exc}")
            return obj

        return self.resolve(copy.deepcopy(target), target_scope, seen | {qualified})

    def _load_file(self, file_part: str, scope: _Scope) -> _Scope | None:
        from apinav.openapi.loader import format_hint, parse_document

        if scope.base_dir is None:
            self.errors.append(f"relative $ref in a remote document not supported: {file_part}")
            return None

        path = (scope.base_dir / file_part).resolve()
        if path not in self._files:
            try:
                text = path.read_text(encoding="utf-8")
                self._files[path] = parse_document(text, hint=format_hint(str(path)))
            except OSError as exc:
                self.errors.append(f"cannot read referenced file {file_part}: {exc}")
                self._files[path] = None
            except SpecError as exc:
                self.errors.append(f"cannot parse referenced file {file_part}: {exc}")
                self._files[path] = None
            else:
                logger.debug("Loaded referenced document %s", path)

        root = self._files[path]
        if root is None:
            return None
        return _Scope(root, path.parent, str(path))


def _follow_pointer(pointer: str, root: Any) -> Any:
    """Navigate *root* along an RFC 6901 JSON Pointer.

    An empty pointer (or ``/``-less fragment) refers to the whole document.
    Handles RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``).

    Raises:
        LookupError: If any segment in the pointer path does not exist.
    """
    if not pointer:
        return root
    if not pointer.startswith("/"):
        raise LookupError(f"invalid JSON pointer '{pointer}'")

    current: Any = root
    for segment in pointer[1:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")

        if isinstance(current, dict):
            if segment not in current:
                raise LookupError(f"key '{segment}' not found at path")
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                raise LookupError(f"invalid array index '{segment}'") from None
        else:
            raise LookupError(f"cannot navigate into {type(current).__name__}")

    return current
