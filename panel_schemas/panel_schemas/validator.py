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

"""Validation of panels against the registered schemas."""

import json
import logging
from typing import Any, Dict, List, Mapping, Union

from .exceptions import (
    ConstraintError,
    InvalidDocumentError,
    PanelValidationError,
    SchemaViolationError,
    UnknownKindError,
)
from .models.compiled_schema import STRICT, ValidateOptions
from .registry import KIND_PATH, SchemaRegistry

logger = logging.getLogger(__name__)

RawPanel = Union[bytes, bytearray, str]


def parse_panel(raw: RawPanel) -> Dict[str, Any]:
    """Decode a serialized panel into a JSON object.

    Raises:
        ValueError: If the data is not a JSON object or is nested too deeply to decode
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    try:
        value = json.loads(raw)
    except RecursionError as exc:
        raise ValueError("document nested too deeply to be decoded") from exc
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


class PanelValidator:
    """Checks panels against the schema registered for their kind.

    The registry is only read; it can be reloaded concurrently.
    """

    def __init__(self, registry: SchemaRegistry, options: ValidateOptions = STRICT):
        self.registry = registry
        self.options = options

    def validate(self, panels: Mapping[str, RawPanel]) -> None:
        """Verify a batch of panels.

        Processing stops at the first invalid panel, in the iteration order
        of ``panels``; the remaining panels are not checked.

        Raises:
            PanelValidationError: For the first invalid panel
        """
        logger.debug(f"Panels to validate: {list(panels)}")
        for name, raw in panels.items():
            self.validate_panel(name, raw)
        logger.debug("All panels are valid")

    def collect_errors(self, panels: Mapping[str, RawPanel]) -> List[PanelValidationError]:
        """Check every panel and return one error per invalid panel."""
        errors: List[PanelValidationError] = []
        for name, raw in panels.items():
            try:
                self.validate_panel(name, raw)
            except PanelValidationError as exc:
                errors.append(exc)
        return errors

    def validate_panel(self, name: str, raw: RawPanel) -> None:
        """Verify a single panel.

        Raises:
            InvalidDocumentError: If the panel cannot be decoded or has no string kind
            UnknownKindError: If no schema is registered for the kind
            SchemaViolationError: If the panel does not meet the schema
        """
        try:
            value = parse_panel(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            err = InvalidDocumentError(name, str(exc))
            logger.warning(err)
            raise err from exc

        kind = value.get(KIND_PATH)
        if kind is None:
            err = InvalidDocumentError(name, f"field not found: {KIND_PATH}")
            logger.warning(err)
            raise err
        if not isinstance(kind, str):
            err = InvalidDocumentError(name, f"{KIND_PATH}: cannot use value {kind!r} as string")
            logger.warning(err)
            raise err

        schema = self.registry.lookup(kind)
        if schema is None:
            err = UnknownKindError(name, kind)
            logger.debug(err)
            raise err

        try:
            schema.validate(value, self.options)
        except ConstraintError as exc:
            err = SchemaViolationError(name, kind, str(exc))
            logger.debug(err)
            raise err from exc
