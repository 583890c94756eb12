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

"""Configuration of the schema root consumed by the registry."""

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .exceptions import ConfigurationError
from .utils.logging_utils import configure_split_stream_logging, resolve_level

ENV_PREFIX = "PANEL_SCHEMAS_"


@dataclass
class SchemasConfig:
    """Location and layout of the schema root.

    The root holds the base and generator fragments, one directory per chart
    plugin under ``charts_folder`` and the shared query sub-types under
    ``queries_folder``.
    """
    path: str = "schemas"
    charts_folder: str = "charts"
    queries_folder: str = "queries"
    base_file: str = "base.schema.yaml"
    generator_file: str = "generator.schema.yaml"
    # seconds between periodic reloads, 0 disables them
    interval: float = 3600.0

    log_level: str = "INFO"
    print_level: str = "ERROR"

    def __post_init__(self) -> None:
        if not self.path:
            raise ConfigurationError("Schema root path must not be empty")
        for name in ("charts_folder", "queries_folder", "base_file", "generator_file"):
            if not getattr(self, name):
                raise ConfigurationError(f"Schema setting '{name}' must not be empty")
        try:
            self.interval = float(self.interval)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid reload interval: {self.interval!r}") from exc
        if self.interval < 0:
            raise ConfigurationError(f"Reload interval must not be negative, got {self.interval}")

    @property
    def root(self) -> Path:
        return Path(self.path)

    @property
    def charts_path(self) -> Path:
        return self.root / self.charts_folder

    @property
    def queries_path(self) -> Path:
        return self.root / self.queries_folder

    @property
    def base_path(self) -> Path:
        return self.root / self.base_file

    @property
    def generator_path(self) -> Path:
        return self.root / self.generator_file

    @classmethod
    def from_env(cls) -> 'SchemasConfig':
        """Create configuration from environment variables."""
        return cls(
            path=os.getenv(f'{ENV_PREFIX}PATH', 'schemas'),
            charts_folder=os.getenv(f'{ENV_PREFIX}CHARTS_FOLDER', 'charts'),
            queries_folder=os.getenv(f'{ENV_PREFIX}QUERIES_FOLDER', 'queries'),
            base_file=os.getenv(f'{ENV_PREFIX}BASE_FILE', 'base.schema.yaml'),
            generator_file=os.getenv(f'{ENV_PREFIX}GENERATOR_FILE', 'generator.schema.yaml'),
            interval=os.getenv(f'{ENV_PREFIX}INTERVAL', '3600'),
            log_level=os.getenv(f'{ENV_PREFIX}LOG_LEVEL', 'INFO'),
            print_level=os.getenv(f'{ENV_PREFIX}PRINT_LEVEL', 'ERROR'),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SchemasConfig':
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown schema settings: {', '.join(unknown)}. Valid settings: {', '.join(sorted(known))}"
            )
        return cls(**data)

    @classmethod
    def from_yaml(cls, file_path: Union[str, Path]) -> 'SchemasConfig':
        """Create configuration from a YAML file.

        Relative schema paths are resolved against the directory of the file.
        """
        path = Path(file_path)
        try:
            with open(path, 'r', encoding='utf-8') as stream:
                data = yaml.safe_load(stream)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse configuration file {path}: {exc}")
        except OSError as exc:
            raise ConfigurationError(f"Failed to read configuration file {path}: {exc}")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a mapping")

        config = cls.from_dict(data)
        if not Path(config.path).is_absolute():
            config.path = str(path.parent / config.path)
        return config

    def set_logging(self) -> logging.Logger:
        """Setup logging based on configuration."""
        level = resolve_level(self.log_level)
        stderr_level = resolve_level(self.print_level, logging.ERROR)

        formatter = logging.Formatter('%(name)s - %(levelname)s - %(message)s')
        return configure_split_stream_logging(level=level, stderr_level=stderr_level, formatter=formatter)
