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

"""Background task reloading the schema registry at a fixed interval."""

import logging
import threading
from typing import Optional

from .registry import SchemaRegistry

logger = logging.getLogger(__name__)


class SchemaReloader:
    """Reloads a registry once at start, then every ``interval`` seconds."""

    def __init__(self, registry: SchemaRegistry, interval: Optional[float] = None):
        self.registry = registry
        self.interval = registry.config.interval if interval is None else float(interval)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.reload_count = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="SchemaReloader", daemon=True)
        self._thread.start()
        logger.info(f"Schema reloader started (interval={self.interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Schema reloader stopped")

    def _reload_once(self) -> None:
        try:
            self.registry.reload()
        except Exception:
            # keep the loop alive, the next tick retries
            logger.exception("Unexpected error while reloading schemas")
        self.reload_count += 1

    def _run(self) -> None:
        self._reload_once()
        if self.interval <= 0:
            return
        while not self._stop_event.wait(self.interval):
            self._reload_once()
