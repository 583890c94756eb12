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

"""Registry of chart plugin schemas and validation of dashboard panels."""

from .config import SchemasConfig
from .exceptions import (
    CompileError,
    ConfigurationError,
    ConstraintError,
    DiscoveryError,
    DuplicateKindError,
    GeneratorCompileError,
    InvalidDocumentError,
    MissingKindError,
    PanelSchemasError,
    PanelValidationError,
    SchemaLoadError,
    SchemaViolationError,
    UnknownKindError,
)
from .models.compiled_schema import CompiledSchema, ValidateOptions
from .models.compiler import SchemaCompiler
from .registry import SchemaRegistry
from .reloader import SchemaReloader
from .validator import PanelValidator

__version__ = "0.1.0"

__all__ = [
    "SchemasConfig",
    "SchemaCompiler",
    "CompiledSchema",
    "ValidateOptions",
    "SchemaRegistry",
    "SchemaReloader",
    "PanelValidator",
    "PanelSchemasError",
    "ConfigurationError",
    "SchemaLoadError",
    "DiscoveryError",
    "CompileError",
    "GeneratorCompileError",
    "MissingKindError",
    "DuplicateKindError",
    "ConstraintError",
    "PanelValidationError",
    "InvalidDocumentError",
    "UnknownKindError",
    "SchemaViolationError",
]
