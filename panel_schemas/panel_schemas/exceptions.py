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

"""Custom exceptions for the panel schema registry."""

from pathlib import Path
from typing import Optional, Union


class PanelSchemasError(Exception):
    """Base exception for panel-schemas related errors."""
    pass


class ConfigurationError(PanelSchemasError):
    """Exception raised for invalid schema root configuration."""
    pass


class SchemaLoadError(PanelSchemasError):
    """Exception raised while loading a plugin schema during a reload pass.

    These never escape a reload: the plugin is logged and skipped.
    """

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class DiscoveryError(SchemaLoadError):
    """Exception raised when a schema directory cannot be walked."""
    pass


class CompileError(SchemaLoadError):
    """Exception raised when a fragment set cannot be parsed or built."""
    pass


class GeneratorCompileError(CompileError):
    """Exception raised when the generator-expanded schema fails to build."""
    pass


class MissingKindError(SchemaLoadError):
    """Exception raised when a compiled schema declares no concrete kind."""
    pass


class DuplicateKindError(SchemaLoadError):
    """Exception raised when a kind is already claimed by an earlier plugin."""

    def __init__(self, message: str, kind: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message, path)
        self.kind = kind


class ConstraintError(PanelSchemasError):
    """Exception raised by a compiled schema when a value does not satisfy it."""
    pass


class PanelValidationError(PanelSchemasError):
    """Exception raised when a panel of a validation batch is rejected.

    Attributes:
        panel: Name of the offending panel
        kind: Declared kind of the panel, when it could be resolved
        cause: Underlying error description
    """

    def __init__(self, message: str, panel: str, kind: Optional[str] = None, cause: str = ""):
        super().__init__(message)
        self.panel = panel
        self.kind = kind
        self.cause = cause


class InvalidDocumentError(PanelValidationError):
    """Exception raised when a panel cannot be parsed or has no usable kind."""

    def __init__(self, panel: str, cause: str):
        super().__init__(f"invalid panel {panel}: {cause}", panel, cause=cause)


class UnknownKindError(PanelValidationError):
    """Exception raised when no schema is registered for the panel's kind."""

    def __init__(self, panel: str, kind: str):
        super().__init__(f"invalid panel {panel}: Unknown kind {kind}", panel, kind=kind)


class SchemaViolationError(PanelValidationError):
    """Exception raised when a panel does not meet its kind's schema."""

    def __init__(self, panel: str, kind: str, cause: str):
        super().__init__(
            f"invalid panel {panel}: {kind} schema conditions not met: {cause}",
            panel,
            kind=kind,
            cause=cause,
        )
