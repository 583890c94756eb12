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

"""Compiled panel schema: path lookup and validation of panel values."""

from __future__ import annotations

import copy
import hashlib
import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError, best_match, relevance

from ..exceptions import ConstraintError
from .unification import join_path, strip_required

HIDDEN_PREFIX = "_"
DEFINITION_PREFIX = "#"


@dataclass(frozen=True)
class ValidateOptions:
    """Switches applied when a value is checked against a compiled schema.

    Attributes:
        concrete: Regular fields must be present with a concrete value
        attributes: Report the ``title`` annotation of the failing schema
        definitions: Check ``#``-prefixed fields instead of dropping them
        hidden: Check ``_``-prefixed fields instead of dropping them
    """
    concrete: bool = True
    attributes: bool = True
    definitions: bool = True
    hidden: bool = True


STRICT = ValidateOptions()


def _format_pointer(error: ValidationError) -> str:
    path = ""
    for token in error.absolute_path:
        path = join_path(path, token)
    return path or "/"


def _filter_fields(value: Any, options: ValidateOptions) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if isinstance(key, str):
                if not options.hidden and key.startswith(HIDDEN_PREFIX):
                    continue
                if not options.definitions and key.startswith(DEFINITION_PREFIX):
                    continue
            result[key] = _filter_fields(item, options)
        return result
    if isinstance(value, list):
        return [_filter_fields(item, options) for item in value]
    return value


def _conjuncts(node: Any) -> List[Dict[str, Any]]:
    """Return ``node`` followed by the members of its ``allOf`` lists, depth first."""
    result: List[Dict[str, Any]] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if not isinstance(current, dict):
            continue
        result.append(current)
        members = current.get("allOf")
        if isinstance(members, list):
            stack.extend(reversed(members))
    return result


def describe_error(error: ValidationError, attributes: bool = True) -> str:
    """Render a jsonschema error as ``<pointer>: <message>``.

    A failed ``oneOf`` with no matching alternative is reported as an empty
    disjunction together with the most relevant error of its alternatives.
    """
    if error.validator == "oneOf" and error.context:
        nested = best_match(error.context)
        message = f"{len(error.context)} errors in empty disjunction: {describe_error(nested, attributes)}"
    else:
        message = error.message

    if attributes and isinstance(error.schema, dict):
        title = error.schema.get("title")
        if title:
            message = f"{message} [{title}]"
    return f"{_format_pointer(error)}: {message}"


class CompiledSchema:
    """Immutable constraint value produced by compiling a fragment set.

    Instances are shared between threads: the schema document is never
    modified after construction and validators are built once per option set.
    """

    def __init__(
        self,
        document: Dict[str, Any],
        *,
        package: Optional[str] = None,
        files: Sequence[Path] = (),
        subtypes: Sequence[str] = (),
    ):
        self._document = copy.deepcopy(document)
        self.package = package
        self.files: Tuple[Path, ...] = tuple(Path(f) for f in files)
        self.subtypes: Tuple[str, ...] = tuple(subtypes)
        self._validators: Dict[bool, Draft202012Validator] = {}
        self._lock = threading.Lock()
        self._fingerprint: Optional[str] = None

    def __repr__(self) -> str:
        return f"CompiledSchema(package={self.package!r}, files={len(self.files)}, subtypes={list(self.subtypes)})"

    @property
    def document(self) -> Dict[str, Any]:
        """Copy of the composed JSON Schema document."""
        return copy.deepcopy(self._document)

    @property
    def fingerprint(self) -> str:
        """SHA-256 of the canonical schema document."""
        if self._fingerprint is None:
            canonical = json.dumps(self._document, sort_keys=True, separators=(',', ':'))
            self._fingerprint = f"sha256:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"
        return self._fingerprint

    def lookup_path(self, path: str) -> Any:
        """Return the concrete value the schema fixes for a dotted field path.

        A field may be declared by the schema itself or by any member of its
        ``allOf`` lists; every declaration found takes part in the lookup.
        ``$ref`` targets are not followed.

        Raises:
            ConstraintError: If the field is not declared, is not concrete or
                is fixed to conflicting values
        """
        nodes: List[Any] = [self._document]
        for token in path.split("."):
            nodes = [
                conjunct["properties"][token]
                for node in nodes
                for conjunct in _conjuncts(node)
                if isinstance(conjunct.get("properties"), dict) and token in conjunct["properties"]
            ]
            if not nodes:
                raise ConstraintError(f"field not found: {path}")

        values = []
        for node in nodes:
            for conjunct in _conjuncts(node):
                if "const" in conjunct:
                    values.append(conjunct["const"])
                    continue
                enum = conjunct.get("enum")
                if isinstance(enum, list) and len(enum) == 1:
                    values.append(enum[0])
        if not values:
            raise ConstraintError(f"{path}: incomplete value")

        first = values[0]
        for other in values[1:]:
            if type(other) is not type(first) or other != first:
                raise ConstraintError(f"{path}: conflicting values {first!r} and {other!r}")
        return first

    def lookup_string(self, path: str) -> str:
        value = self.lookup_path(path)
        if not isinstance(value, str):
            raise ConstraintError(f"{path}: cannot use value {value!r} as string")
        return value

    def _validator(self, concrete: bool) -> Draft202012Validator:
        with self._lock:
            validator = self._validators.get(concrete)
            if validator is None:
                schema = self._document if concrete else strip_required(self._document)
                validator = Draft202012Validator(schema)
                self._validators[concrete] = validator
            return validator

    def iter_violations(self, value: Any, options: ValidateOptions = STRICT) -> Iterable[ValidationError]:
        """Iterate over the top-level violations of ``value``.

        Raises:
            ConstraintError: If evaluating the value exceeds the maximum nesting depth
        """
        try:
            instance = _filter_fields(value, options)
            errors = list(self._validator(options.concrete).iter_errors(instance))
        except RecursionError as exc:
            raise ConstraintError("/: evaluation exceeded the maximum nesting depth") from exc
        return iter(errors)

    def violations(self, value: Any, options: ValidateOptions = STRICT) -> List[str]:
        """Describe every top-level violation of ``value``."""
        return [describe_error(e, options.attributes) for e in self.iter_violations(value, options)]

    def validate(self, value: Any, options: ValidateOptions = STRICT) -> None:
        """Unify ``value`` with the schema and check the result.

        Raises:
            ConstraintError: Describing the most relevant violation
        """
        errors = list(self.iter_violations(value, options))
        if not errors:
            return
        error = max(errors, key=relevance)
        raise ConstraintError(describe_error(error, options.attributes))
