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

"""Discovery of schema fragment files in the schema root."""

import logging
import os
from pathlib import Path
from typing import List, Union

from .exceptions import DiscoveryError

logger = logging.getLogger(__name__)

FRAGMENT_EXTENSION = ".schema.yaml"


def is_fragment_file(path: Union[str, Path]) -> bool:
    return Path(path).name.endswith(FRAGMENT_EXTENSION)


def list_plugin_dirs(plugins_path: Union[str, Path]) -> List[Path]:
    """List the plugin directories directly under ``plugins_path``.

    Entries are returned in lexical order. Entries that are not directories
    are skipped with a warning.

    Raises:
        DiscoveryError: If ``plugins_path`` cannot be read
    """
    root = Path(plugins_path)
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise DiscoveryError(f"Not able to read from plugins dir {root}: {exc}", root) from exc

    plugin_dirs = []
    for entry in entries:
        if not entry.is_dir():
            logger.warning(f"Chart plugin {entry.name} is not a folder")
            continue
        plugin_dirs.append(entry)
    return plugin_dirs


def find_fragment_files(directory: Union[str, Path]) -> List[Path]:
    """Recursively collect the fragment files below ``directory``.

    The tree is walked top-down with directory entries visited in lexical
    order, so the result is stable for an unchanged tree.

    Raises:
        DiscoveryError: If the directory or one of its sub-directories cannot be read
    """
    root = Path(directory)
    if not root.is_dir():
        raise DiscoveryError(f"Schema directory does not exist or is not a folder: {root}", root)

    def _raise(exc: OSError) -> None:
        raise DiscoveryError(
            f"Not able to retrieve the schema files from dir {root}: {exc}", root
        ) from exc

    fragment_files: List[Path] = []
    for current, dirs, files in os.walk(root, onerror=_raise):
        dirs.sort()
        for file_name in sorted(files):
            if is_fragment_file(file_name):
                fragment_files.append(Path(current) / file_name)
    return fragment_files
