# Copyright 2026 TIER IV, inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Structural unification of JSON Schema fragments.

Fragments contributed by the base definition, a chart plugin, the shared
query sub-types and the generator are merged into one schema document.
Unification is commutative for mappings and fails on any disagreement of
concrete values, so the order of fragments only affects key order.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional, Sequence

JsonPointer = str

OPTIONAL_MARKER = "?"
ONE_OF_DIRECTIVE = "x-one-of"
SUBTYPES_SOURCE = "subtypes"

# keywords whose value is a single sub-schema
_SCHEMA_KEYWORDS = (
    "items", "additionalProperties", "not", "if", "then", "else", "contains",
    "propertyNames", "unevaluatedItems", "unevaluatedProperties", "additionalItems",
)
# keywords whose value is a list of sub-schemas
_SCHEMA_LIST_KEYWORDS = ("allOf", "anyOf", "oneOf", "prefixItems")
# keywords whose value maps names to sub-schemas
_SCHEMA_MAP_KEYWORDS = ("properties", "patternProperties", "$defs", "definitions", "dependentSchemas")


class UnificationError(Exception):
    """Raised when two fragments disagree on a value."""

    def __init__(self, message: str, path: JsonPointer):
        super().__init__(f"{message} (at {path or '/'})")
        self.path = path


def _jp_escape(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def _jp_unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def join_path(base: Optional[JsonPointer], token: Any) -> JsonPointer:
    if not base:
        return f"/{_jp_escape(str(token))}"
    return f"{base}/{_jp_escape(str(token))}"


def resolve_pointer(document: Any, pointer: JsonPointer) -> Any:
    """Resolve a JSON pointer (without the leading ``#``) in ``document``.

    Raises:
        KeyError: If a token of the pointer does not exist
    """
    current = document
    if pointer in ("", "/"):
        return current
    for raw in pointer.lstrip("/").split("/"):
        token = _jp_unescape(raw)
        if isinstance(current, dict):
            if token not in current:
                raise KeyError(token)
            current = current[token]
        elif isinstance(current, list):
            try:
                current = current[int(token)]
            except (ValueError, IndexError):
                raise KeyError(token)
        else:
            raise KeyError(token)
    return current


def walk_schemas(schema: Any, visit: Callable[[Dict[str, Any], JsonPointer], None], path: JsonPointer = "") -> None:
    """Call ``visit`` on ``schema`` and every sub-schema it contains."""
    if not isinstance(schema, dict):
        return
    visit(schema, path)
    for keyword in _SCHEMA_KEYWORDS:
        if keyword in schema:
            walk_schemas(schema[keyword], visit, join_path(path, keyword))
    for keyword in _SCHEMA_LIST_KEYWORDS:
        value = schema.get(keyword)
        if isinstance(value, list):
            for idx, item in enumerate(value):
                walk_schemas(item, visit, join_path(join_path(path, keyword), idx))
    for keyword in _SCHEMA_MAP_KEYWORDS:
        value = schema.get(keyword)
        if isinstance(value, dict):
            for name, item in value.items():
                walk_schemas(item, visit, join_path(join_path(path, keyword), name))


def normalize_fields(schema: Any) -> Any:
    """Turn ``name?`` properties into optional fields and the rest into regular ones.

    Every property declared without the optional marker is appended to the
    ``required`` list of its enclosing schema. The input is not modified.
    """
    result = copy.deepcopy(schema)

    def _visit(node: Dict[str, Any], _path: JsonPointer) -> None:
        properties = node.get("properties")
        if not isinstance(properties, dict):
            return
        renamed: Dict[str, Any] = {}
        regular: List[str] = []
        for name, sub_schema in properties.items():
            name = str(name)
            if name.endswith(OPTIONAL_MARKER) and len(name) > 1:
                renamed[name[:-1]] = sub_schema
            else:
                renamed[name] = sub_schema
                regular.append(name)
        node["properties"] = renamed
        if regular:
            required = list(node.get("required", []))
            node["required"] = required + [n for n in regular if n not in required]

    walk_schemas(result, _visit)
    return result


def unify(left: Any, right: Any, path: JsonPointer = "") -> Any:
    """Unify two schema fragments into a new value.

    Raises:
        UnificationError: If the fragments conflict
    """
    if isinstance(left, dict) and isinstance(right, dict):
        merged = dict(left)
        for key, value in right.items():
            if key not in merged:
                merged[key] = copy.deepcopy(value)
                continue
            child = join_path(path, key)
            if key == "required":
                merged[key] = _union_list(merged[key], value, child)
            elif key == "allOf":
                merged[key] = _concat_list(merged[key], value, child)
            else:
                merged[key] = unify(merged[key], value, child)
        return merged

    # {} is the top value and unifies with any schema
    if isinstance(left, dict) and not left:
        return copy.deepcopy(right)
    if isinstance(right, dict) and not right:
        return copy.deepcopy(left)

    if type(left) is not type(right) or left != right:
        raise UnificationError(f"conflicting values {left!r} and {right!r}", path)
    return copy.deepcopy(left)


def _as_list(value: Any, path: JsonPointer) -> List[Any]:
    if not isinstance(value, list):
        raise UnificationError(f"expected a list, got {value!r}", path)
    return value


def _union_list(left: Any, right: Any, path: JsonPointer) -> List[Any]:
    result = list(_as_list(left, path))
    for item in _as_list(right, path):
        if item not in result:
            result.append(item)
    return result


def _concat_list(left: Any, right: Any, path: JsonPointer) -> List[Any]:
    return list(_as_list(left, path)) + copy.deepcopy(_as_list(right, path))


def expand_disjunctions(schema: Dict[str, Any], subtypes: Sequence[str]) -> int:
    """Replace every ``{x-one-of: subtypes}`` directive with a ``oneOf`` over the sub-types.

    The schema is modified in place. With no sub-types the directive becomes
    an empty disjunction that nothing satisfies.

    Returns:
        Number of directives expanded

    Raises:
        UnificationError: If a directive names an unknown source
    """
    expanded = 0

    def _visit(node: Dict[str, Any], path: JsonPointer) -> None:
        nonlocal expanded
        if ONE_OF_DIRECTIVE not in node:
            return
        source = node.pop(ONE_OF_DIRECTIVE)
        if source != SUBTYPES_SOURCE:
            raise UnificationError(f"unknown disjunction source {source!r}", join_path(path, ONE_OF_DIRECTIVE))
        if subtypes:
            alternatives = [{"$ref": f"#/$defs/{_jp_escape(name)}"} for name in subtypes]
            node["oneOf"] = _concat_list(node.get("oneOf", []), alternatives, join_path(path, "oneOf"))
        else:
            node["not"] = {}
        expanded += 1

    walk_schemas(schema, _visit)
    return expanded


def strip_required(schema: Any) -> Any:
    """Return a copy of ``schema`` without any ``required`` constraint."""
    result = copy.deepcopy(schema)

    def _visit(node: Dict[str, Any], _path: JsonPointer) -> None:
        node.pop("required", None)

    walk_schemas(result, _visit)
    return result


def collect_refs(schema: Any) -> List[tuple]:
    """Return ``(ref, path)`` for every ``$ref`` in ``schema``."""
    refs: List[tuple] = []

    def _visit(node: Dict[str, Any], path: JsonPointer) -> None:
        ref = node.get("$ref")
        if isinstance(ref, str):
            refs.append((ref, path))

    walk_schemas(schema, _visit)
    return refs


# keywords applying a sub-schema to the same instance location
_IN_PLACE_KEYWORDS = ("not", "if", "then", "else")
_IN_PLACE_LIST_KEYWORDS = ("allOf", "anyOf", "oneOf")


def _in_place_edges(document: Any, pointer: JsonPointer) -> List[JsonPointer]:
    try:
        node = resolve_pointer(document, pointer)
    except KeyError:
        return []
    if not isinstance(node, dict):
        return []

    edges: List[JsonPointer] = []
    ref = node.get("$ref")
    if isinstance(ref, str) and ref.startswith("#"):
        target = ref[1:]
        edges.append("" if target == "/" else target)
    for keyword in _IN_PLACE_KEYWORDS:
        if keyword in node:
            edges.append(join_path(pointer, keyword))
    for keyword in _IN_PLACE_LIST_KEYWORDS:
        value = node.get(keyword)
        if isinstance(value, list):
            edges.extend(join_path(join_path(pointer, keyword), idx) for idx in range(len(value)))
    return edges


def find_reference_cycle(document: Any) -> Optional[List[JsonPointer]]:
    """Find a ``$ref`` loop that never descends into the instance.

    Following ``$ref`` and the in-place applicators (``allOf``, ``not``, ...)
    from a schema back to itself would evaluate the same instance location
    forever. Loops passing through ``properties`` or ``items`` are fine.

    Returns:
        The pointers along the first loop found, ending with its first one,
        or None
    """
    done = set()
    for _ref, start in collect_refs(document):
        if start in done:
            continue
        trail = [start]
        on_trail = {start: 0}
        stack = [iter(_in_place_edges(document, start))]
        while stack:
            target = next(stack[-1], None)
            if target is None:
                stack.pop()
                finished = trail.pop()
                del on_trail[finished]
                done.add(finished)
                continue
            if target in on_trail:
                return trail[on_trail[target]:] + [target]
            if target in done:
                continue
            on_trail[target] = len(trail)
            trail.append(target)
            stack.append(iter(_in_place_edges(document, target)))
    return None
