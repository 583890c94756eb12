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

"""Logging setup for the package logger and capture of the reload side channel."""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional, Union

PACKAGE_LOGGER = "panel_schemas"


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int) -> None:
        super().__init__()
        self._max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self._max_level


def resolve_level(level: Union[int, str], default: int = logging.INFO) -> int:
    """Turn a level name such as ``"debug"`` into its numeric value."""
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), default)


def configure_split_stream_logging(
    *,
    level: int = logging.INFO,
    stderr_level: int = logging.WARNING,
    formatter: Optional[logging.Formatter] = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """Attach split stdout/stderr handlers to the package logger.

    - records below ``stderr_level`` go to stdout
    - the others go to stderr

    Only the ``logger_name`` logger is touched, so an embedding application
    keeps its own root configuration; package records stop propagating to it.
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False

    if formatter is None:
        formatter = logging.Formatter("%(name)s - %(levelname)s - %(message)s")

    if stderr_level < logging.DEBUG:
        stderr_level = logging.DEBUG

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(_MaxLevelFilter(stderr_level - 1))
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setLevel(stderr_level)
    stderr_handler.setFormatter(formatter)

    logger.addHandler(stdout_handler)
    logger.addHandler(stderr_handler)
    return logger


class RecordCollector(logging.Handler):
    """Keeps the messages of the records it receives, in emission order."""

    def __init__(self, level: int = logging.WARNING) -> None:
        super().__init__(level)
        self.messages: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


@contextmanager
def collect_records(
    level: int = logging.WARNING,
    logger_name: str = PACKAGE_LOGGER,
) -> Iterator[RecordCollector]:
    """Collect the records logged under ``logger_name`` while the block runs.

    Reload problems (skipped plugins, kind conflicts, aborted passes) are only
    reported through logging; this turns them into data for a caller.
    Records filtered out by the logger level are not seen.
    """
    collector = RecordCollector(level)
    logger = logging.getLogger(logger_name)
    logger.addHandler(collector)
    try:
        yield collector
    finally:
        logger.removeHandler(collector)
