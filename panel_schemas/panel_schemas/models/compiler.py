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

"""Compilation of an ordered fragment set into one :class:`CompiledSchema`."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from ..exceptions import CompileError
from .compiled_schema import CompiledSchema
from .fragment_parser import Fragment, FragmentParser, fragment_parser
from .unification import (
    UnificationError,
    collect_refs,
    expand_disjunctions,
    find_reference_cycle,
    resolve_pointer,
    unify,
)

logger = logging.getLogger(__name__)

ANONYMOUS_PACKAGE = "_"


class SchemaCompiler:
    """Builds a compiled schema out of fragment files.

    Fragments are unified in the order given. All of them must belong to the
    same build unit (``package``); the generator directives are expanded once
    every fragment has been unified.
    """

    def __init__(self, parser: Optional[FragmentParser] = None):
        self.parser = parser or fragment_parser

    def compile(self, fragment_paths: Sequence[Union[str, Path]], origin: Optional[Union[str, Path]] = None) -> CompiledSchema:
        """Compile fragment files into one schema.

        Args:
            fragment_paths: Ordered fragment files
            origin: Path reported in errors (defaults to the first fragment)

        Raises:
            CompileError: On read, parse, unification or build errors
        """
        paths = [Path(p) for p in fragment_paths]
        if not paths:
            raise CompileError("No schema fragments to compile: expected exactly 1 build unit, found 0", origin)
        origin = Path(origin) if origin is not None else paths[0]

        fragments = [self.parser.load_fragment(p) for p in paths]
        return self.compile_fragments(fragments, origin)

    def compile_fragments(self, fragments: Sequence[Fragment], origin: Optional[Union[str, Path]] = None) -> CompiledSchema:
        if not fragments:
            raise CompileError("No schema fragments to compile: expected exactly 1 build unit, found 0", origin)
        origin = Path(origin) if origin is not None else fragments[0].path

        packages: List[str] = []
        for fragment in fragments:
            package = fragment.package or ANONYMOUS_PACKAGE
            if package not in packages:
                packages.append(package)
        if len(packages) != 1:
            raise CompileError(
                f"The number of build units for {origin} is {len(packages)} ({', '.join(packages)}), expected exactly 1",
                origin,
            )

        schema: Dict[str, Any] = {}
        subtypes: List[str] = []
        for fragment in fragments:
            try:
                schema = unify(schema, fragment.schema)
                for name, sub_schema in fragment.subtypes:
                    schema = unify(schema, {"$defs": {name: sub_schema}})
                    if name not in subtypes:
                        subtypes.append(name)
            except UnificationError as exc:
                raise CompileError(f"Error during build for {fragment.path}: {exc}", fragment.path) from exc
            except RecursionError as exc:
                raise CompileError(f"Error during build for {fragment.path}: schema nested too deeply", fragment.path) from exc

        try:
            expanded = expand_disjunctions(schema, subtypes)
        except UnificationError as exc:
            raise CompileError(f"Error during build for {origin}: {exc}", origin) from exc
        if expanded:
            logger.debug(f"Expanded {expanded} disjunction(s) over {len(subtypes)} sub-type(s) for {origin}")

        self._check_build(schema, origin)

        package = packages[0]
        return CompiledSchema(
            schema,
            package=None if package == ANONYMOUS_PACKAGE else package,
            files=[f.path for f in fragments],
            subtypes=subtypes,
        )

    @staticmethod
    def _check_build(schema: Dict[str, Any], origin: Path) -> None:
        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as exc:
            path = "/" + "/".join(str(p) for p in exc.absolute_path) if exc.absolute_path else "/"
            raise CompileError(f"Invalid schema built for {origin}: {exc.message} (at {path})", origin) from exc

        for ref, path in collect_refs(schema):
            if not ref.startswith("#"):
                raise CompileError(f"Unsupported reference {ref!r} in schema for {origin} (at {path})", origin)
            try:
                resolve_pointer(schema, ref[1:])
            except KeyError:
                raise CompileError(f"Reference {ref!r} not found in schema for {origin} (at {path})", origin)

        cycle = find_reference_cycle(schema)
        if cycle:
            raise CompileError(f"Reference cycle in schema for {origin}: {' -> '.join(p or '#' for p in cycle)}", origin)
