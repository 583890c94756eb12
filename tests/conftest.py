"""
Shared fixtures for the panel schema tests.

The checked-in tree under ``testdata/schemas`` holds two chart plugins
(AwesomeChart, AverageChart), two query sub-types and the base and generator
fragments. ``schema_tree`` builds throw-away trees for error scenarios.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

import pytest

from panel_schemas.config import SchemasConfig
from panel_schemas.registry import SchemaRegistry
from panel_schemas.validator import PanelValidator

TESTDATA = Path(__file__).parent / "testdata"
SCHEMAS_ROOT = TESTDATA / "schemas"

BASE_FRAGMENT = (SCHEMAS_ROOT / "base.schema.yaml").read_text(encoding="utf-8")
GENERATOR_FRAGMENT = (SCHEMAS_ROOT / "generator.schema.yaml").read_text(encoding="utf-8")


def chart_fragment(kind: str, options: str = "{}") -> str:
    return f"schema:\n  properties:\n    kind:\n      const: {kind}\n    options: {options}\n"


def panel(data: dict) -> bytes:
    return json.dumps(data).encode("utf-8")


AWESOME_PANEL = {
    "kind": "AwesomeChart",
    "display": {"name": "simple awesome chart"},
    "datasource": {"kind": "CustomDatasource", "key": "MyCustomDatasource"},
    "options": {
        "a": "yes",
        "b": {"c": [{"e": "up", "f": "the up metric"}]},
        "queries": [
            {"kind": "CustomGraphQuery", "options": {"custom": True}},
            {"kind": "CustomGraphQuery", "options": {"custom": False}},
        ],
    },
}

AVERAGE_PANEL = {
    "kind": "AverageChart",
    "display": {"name": "simple average chart"},
    "datasource": {"kind": "SQLDatasource"},
    "options": {
        "a": "yes",
        "b": {"c": False, "d": [{"f": 66}]},
        "query": {
            "kind": "SQLGraphQuery",
            "options": {"select": "*", "from": "TABLE", "where": "ID > 0"},
        },
    },
}


class SchemaTree:
    """Builder for a schema root in a temporary directory."""

    def __init__(self, root: Path):
        self.root = root
        self.write("base.schema.yaml", BASE_FRAGMENT)
        self.write("generator.schema.yaml", GENERATOR_FRAGMENT)
        (root / "charts").mkdir(exist_ok=True)
        (root / "queries").mkdir(exist_ok=True)

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def add_chart(self, plugin: str, files: Dict[str, str]) -> Path:
        for name, content in files.items():
            self.write(f"charts/{plugin}/{name}", content)
        return self.root / "charts" / plugin

    def add_query(self, name: str, content: str) -> Path:
        return self.write(f"queries/{name}", content)

    def config(self, **overrides) -> SchemasConfig:
        return SchemasConfig(path=str(self.root), **overrides)


@pytest.fixture
def schemas_config() -> SchemasConfig:
    return SchemasConfig(path=str(SCHEMAS_ROOT))


@pytest.fixture
def registry(schemas_config) -> SchemaRegistry:
    registry = SchemaRegistry(schemas_config)
    registry.reload()
    return registry


@pytest.fixture
def validator(registry) -> PanelValidator:
    return PanelValidator(registry)


@pytest.fixture
def schema_tree(tmp_path) -> SchemaTree:
    return SchemaTree(tmp_path / "schemas")


@pytest.fixture
def restore_logging():
    """Undo the handler setup done by the CLI."""
    package = logging.getLogger("panel_schemas")
    handlers, level, propagate = list(package.handlers), package.level, package.propagate
    yield
    package.handlers[:] = handlers
    package.setLevel(level)
    package.propagate = propagate
