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

"""Error reporting for the validation CLI."""

from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import PanelValidationError


class ValidationReport:
    """Container for validation results for a single input file."""

    def __init__(self, file_path: Path):
        """Initialize validation report.

        Args:
            file_path: Path to the file holding the panels
        """
        self.file_path = file_path
        self.panels: List[str] = []
        self.errors: List[Dict[str, Any]] = []

    def add_error(
        self,
        message: str,
        panel: Optional[str] = None,
        kind: Optional[str] = None,
    ):
        """Add an error message.

        Args:
            message: Error message
            panel: Name of the offending panel, if any
            kind: Declared kind of the panel, if resolved
        """
        error = {'message': message}
        if panel is not None:
            error['panel'] = panel
        if kind is not None:
            error['kind'] = kind
        self.errors.append(error)

    def add_panel_error(self, exc: PanelValidationError):
        self.add_error(str(exc), panel=exc.panel, kind=exc.kind)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'file': str(self.file_path),
            'panels': list(self.panels),
            'errors': list(self.errors),
        }
