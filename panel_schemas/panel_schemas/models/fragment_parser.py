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

"""YAML parser for schema fragment files."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from yaml.composer import ComposerError

from ..exceptions import CompileError
from .unification import normalize_fields

logger = logging.getLogger(__name__)

FRAGMENT_KEYS = ("package", "schema", "subtypes")


class FragmentLoader(yaml.SafeLoader):
    """Safe loader that rejects an alias used inside the node of its own anchor."""

    def __init__(self, stream):
        super().__init__(stream)
        self._open_anchors: List[str] = []

    def compose_node(self, parent, index):
        event = self.peek_event()
        if isinstance(event, yaml.AliasEvent):
            if event.anchor in self._open_anchors:
                raise ComposerError(None, None, f"found recursive alias {event.anchor!r}", event.start_mark)
            return super().compose_node(parent, index)

        anchor = getattr(event, "anchor", None)
        if anchor is None:
            return super().compose_node(parent, index)
        self._open_anchors.append(anchor)
        try:
            return super().compose_node(parent, index)
        finally:
            self._open_anchors.pop()


@dataclass(frozen=True)
class Fragment:
    """One parsed fragment file.

    ``schema`` and the values of ``subtypes`` are already normalized: regular
    properties are listed in ``required``, optional ones lost their marker.
    """
    path: Path
    package: Optional[str] = None
    schema: Dict[str, Any] = field(default_factory=dict)
    subtypes: Tuple[Tuple[str, Dict[str, Any]], ...] = ()


class FragmentParser:
    """Parser turning fragment YAML into :class:`Fragment` objects."""

    def load_fragment(self, file_path: Union[str, Path]) -> Fragment:
        """Load and check one fragment file.

        Raises:
            CompileError: If the file cannot be read, parsed or has an invalid layout
        """
        path = Path(file_path)
        if not path.is_file():
            raise CompileError(f"Schema fragment not found: {path}", path)

        try:
            logger.debug(f"Loading schema fragment: {path}")
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CompileError(f"Failed to read schema fragment {path}: {exc}", path) from exc

        return self.load_fragment_from_string(content, path)

    def load_fragment_from_string(self, content: str, origin: Union[str, Path] = "<string>") -> Fragment:
        path = Path(origin)
        try:
            data = yaml.load(content, Loader=FragmentLoader)
        except (yaml.YAMLError, RecursionError) as exc:
            raise CompileError(f"Failed to parse schema fragment {path}: {exc}", path) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise CompileError(f"Schema fragment {path} must contain a mapping", path)

        unknown = sorted(str(k) for k in data if k not in FRAGMENT_KEYS)
        if unknown:
            raise CompileError(
                f"Unknown top-level keys in schema fragment {path}: {', '.join(unknown)}. "
                f"Expected any of: {', '.join(FRAGMENT_KEYS)}",
                path,
            )

        package = data.get("package")
        if package is not None and (not isinstance(package, str) or not package.strip()):
            raise CompileError(f"Field 'package' must be a non-empty string in {path}", path)

        schema = data.get("schema", {})
        if schema is None:
            schema = {}
        if not isinstance(schema, dict):
            raise CompileError(f"Field 'schema' must be a mapping in {path}", path)

        subtypes = data.get("subtypes", {})
        if subtypes is None:
            subtypes = {}
        if not isinstance(subtypes, dict):
            raise CompileError(f"Field 'subtypes' must be a mapping in {path}", path)
        for name, sub_schema in subtypes.items():
            if not isinstance(sub_schema, dict):
                raise CompileError(f"Sub-type '{name}' must be a mapping in {path}", path)

        # nesting is bounded by the interpreter recursion limit
        try:
            normalized = normalize_fields(schema)
            normalized_subtypes = tuple((str(name), normalize_fields(sub)) for name, sub in subtypes.items())
        except RecursionError as exc:
            raise CompileError(f"Schema fragment {path} is nested too deeply", path) from exc

        return Fragment(
            path=path,
            package=package.strip() if package else None,
            schema=normalized,
            subtypes=normalized_subtypes,
        )


# Global parser instance
fragment_parser = FragmentParser()
