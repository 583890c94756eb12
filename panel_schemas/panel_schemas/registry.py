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

"""Registry of compiled panel schemas keyed by kind.

Thread-safety:
    - ``reload`` builds the new mapping privately and publishes it with a
      single reference swap, so readers see either the previous or the new
      set of schemas, never a partially loaded one
    - reloads are serialized by an internal lock
    - lookups never take the lock

Invariants:
    - At most one schema per kind; within a reload pass the first plugin
      (in lexical order) declaring a kind wins, later ones are rejected
    - A plugin whose generator-expanded schema fails to build is left out of
      the new registry even if the previous pass had registered its kind
"""

import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence

from .config import SchemasConfig
from .discovery import find_fragment_files, list_plugin_dirs
from .exceptions import (
    CompileError,
    ConstraintError,
    DiscoveryError,
    DuplicateKindError,
    GeneratorCompileError,
    MissingKindError,
    SchemaLoadError,
)
from .models.compiled_schema import CompiledSchema
from .models.compiler import SchemaCompiler

logger = logging.getLogger(__name__)

KIND_PATH = "kind"


class SchemaRegistry:
    """Keyed store of compiled schemas, repopulated from the schema root."""

    def __init__(self, config: SchemasConfig, compiler: Optional[SchemaCompiler] = None):
        self.config = config
        self.compiler = compiler or SchemaCompiler()
        self._schemas: Mapping[str, CompiledSchema] = MappingProxyType({})
        self._reload_lock = threading.Lock()

    def lookup(self, kind: str) -> Optional[CompiledSchema]:
        """Get the schema registered for a kind, None if unknown."""
        return self._schemas.get(kind)

    def kinds(self) -> List[str]:
        return sorted(self._schemas)

    def snapshot(self) -> Mapping[str, CompiledSchema]:
        """Read-only view of the currently published registry."""
        return self._schemas

    def __contains__(self, kind: object) -> bool:
        return kind in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def publish(self, schemas: Mapping[str, CompiledSchema]) -> None:
        """Replace the whole registry content at once."""
        self._schemas = MappingProxyType(dict(schemas))

    def reload(self) -> None:
        """Load the known list of schemas from the schema root.

        Plugin-level problems are logged and the plugin is skipped. An
        unreadable plugin root or shared sub-type folder aborts the pass and
        keeps the previously published registry.
        """
        with self._reload_lock:
            charts_path = self.config.charts_path
            try:
                plugin_dirs = list_plugin_dirs(charts_path)
                shared_files = find_fragment_files(self.config.queries_path)
            except DiscoveryError as exc:
                logger.error(f"Schemas reload aborted: {exc}")
                return

            schemas: Dict[str, CompiledSchema] = {}
            for plugin_dir in plugin_dirs:
                try:
                    kind, schema = self._load_plugin(plugin_dir, shared_files, schemas)
                except SchemaLoadError as exc:
                    logger.error(f"{exc}, skipping this chart")
                    continue
                schemas[kind] = schema
                logger.debug(f"Loaded schema {kind} from {plugin_dir}: {schema!r}")

            self.publish(schemas)
            logger.info(f"Schemas list (re)loaded: {len(schemas)} kind(s)")

    def _load_plugin(
        self,
        plugin_dir: Path,
        shared_files: Sequence[Path],
        loaded: Mapping[str, CompiledSchema],
    ):
        plugin_files = find_fragment_files(plugin_dir)
        if not plugin_files:
            raise DiscoveryError(f"No schema files found for chart plugin {plugin_dir}", plugin_dir)

        fragment_set = [self.config.base_path, *plugin_files, *shared_files]

        # disjunction-free probe: cheap check that the kind is usable
        probe = self.compiler.compile(fragment_set, origin=plugin_dir)
        try:
            kind = probe.lookup_string(KIND_PATH)
        except ConstraintError as exc:
            raise MissingKindError(f"No usable kind in schema for {plugin_dir}: {exc}", plugin_dir) from exc
        if not kind:
            raise MissingKindError(f"Empty kind in schema for {plugin_dir}", plugin_dir)

        if kind in loaded:
            raise DuplicateKindError(
                f"Conflict caused by {plugin_dir}: a schema already exists for kind {kind}",
                kind,
                plugin_dir,
            )

        try:
            schema = self.compiler.compile([*fragment_set, self.config.generator_path], origin=plugin_dir)
        except CompileError as exc:
            raise GeneratorCompileError(
                f"Error while building the full schema of kind {kind} for {plugin_dir}: {exc}",
                plugin_dir,
            ) from exc
        return kind, schema
