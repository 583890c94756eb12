"""
Unit tests for fragment parsing and schema compilation.

Tests cover:
- Fragment layout checks
- Exactly-one build unit rule
- Conflicts between fragments
- Build checks (meta-schema, unresolved references)
- Generator expansion over the sub-type library
"""

import pytest

from panel_schemas.exceptions import CompileError
from panel_schemas.models.compiler import SchemaCompiler
from panel_schemas.models.fragment_parser import fragment_parser

from conftest import SCHEMAS_ROOT, chart_fragment


@pytest.fixture
def compiler():
    return SchemaCompiler()


def awesome_fragment_set(with_generator=False):
    files = [
        SCHEMAS_ROOT / "base.schema.yaml",
        SCHEMAS_ROOT / "charts/AwesomeChart/awesome.schema.yaml",
        SCHEMAS_ROOT / "charts/AwesomeChart/options/options.schema.yaml",
        SCHEMAS_ROOT / "queries/custom_graph_query.schema.yaml",
        SCHEMAS_ROOT / "queries/sql_graph_query.schema.yaml",
    ]
    if with_generator:
        files.append(SCHEMAS_ROOT / "generator.schema.yaml")
    return files


class TestFragmentParser:
    """Tests for FragmentParser."""

    def test_loads_fragment(self):
        fragment = fragment_parser.load_fragment(SCHEMAS_ROOT / "queries/sql_graph_query.schema.yaml")

        assert fragment.package is None
        assert [name for name, _ in fragment.subtypes] == ["SQLGraphQuery"]
        options = dict(fragment.subtypes)["SQLGraphQuery"]["properties"]["options"]
        assert options["required"] == ["select", "from"]
        assert "where" in options["properties"]

    def test_empty_file_is_empty_fragment(self):
        fragment = fragment_parser.load_fragment_from_string("")

        assert fragment.schema == {}
        assert fragment.subtypes == ()

    def test_malformed_yaml_raises(self):
        with pytest.raises(CompileError, match="Failed to parse schema fragment"):
            fragment_parser.load_fragment_from_string("schema: [unclosed", "broken.schema.yaml")

    def test_unknown_top_level_key_raises(self):
        with pytest.raises(CompileError, match="Unknown top-level keys .*: properties"):
            fragment_parser.load_fragment_from_string("properties: {}")

    def test_non_mapping_raises(self):
        with pytest.raises(CompileError, match="must contain a mapping"):
            fragment_parser.load_fragment_from_string("- a\n- b\n")

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(CompileError, match="Schema fragment not found") as info:
            fragment_parser.load_fragment(tmp_path / "nope.schema.yaml")

        assert info.value.path == tmp_path / "nope.schema.yaml"

    def test_recursive_alias_raises(self):
        content = (
            "schema:\n"
            "  properties:\n"
            "    options: &o\n"
            "      properties:\n"
            "        self: *o\n"
        )

        with pytest.raises(CompileError, match="found recursive alias 'o'"):
            fragment_parser.load_fragment_from_string(content, "alias.schema.yaml")

    def test_recursive_alias_outside_schema_keywords_raises(self):
        with pytest.raises(CompileError, match="recursive alias"):
            fragment_parser.load_fragment_from_string("schema:\n  x-meta: &m\n    self: *m\n")

    def test_shared_alias_is_accepted(self):
        """An alias reused by siblings is a plain copy."""
        content = (
            "schema:\n"
            "  properties:\n"
            "    a: &s {type: string}\n"
            "    b: *s\n"
        )

        fragment = fragment_parser.load_fragment_from_string(content)

        assert fragment.schema["properties"]["b"] == {"type": "string"}
        assert fragment.schema["required"] == ["a", "b"]

    def test_too_deep_fragment_raises(self):
        content = "schema:\n  properties:\n    deep: " + "{properties: {x: " * 2000 + "{}" + "}}" * 2000 + "\n"

        with pytest.raises(CompileError, match="schema fragment|nested too deeply"):
            fragment_parser.load_fragment_from_string(content)


class TestSchemaCompiler:
    """Tests for SchemaCompiler."""

    def test_compiles_first_pass_schema(self, compiler):
        """Without the generator the query definition stays open."""
        schema = compiler.compile(awesome_fragment_set())

        assert schema.lookup_string("kind") == "AwesomeChart"
        assert schema.subtypes == ("CustomGraphQuery", "SQLGraphQuery")
        assert schema.document["$defs"]["query"] == {}

    def test_compiles_generator_schema(self, compiler):
        schema = compiler.compile(awesome_fragment_set(with_generator=True))

        assert schema.document["$defs"]["query"] == {
            "oneOf": [
                {"$ref": "#/$defs/CustomGraphQuery"},
                {"$ref": "#/$defs/SQLGraphQuery"},
            ]
        }
        assert len(schema.files) == 6

    def test_fragments_are_unified(self, compiler):
        """Base requirements and plugin fields meet in one document."""
        document = compiler.compile(awesome_fragment_set()).document

        assert document["properties"]["kind"] == {"type": "string", "const": "AwesomeChart"}
        assert document["required"] == ["kind", "display", "options"]
        assert document["properties"]["display"]["additionalProperties"] is False
        assert "queries" in document["properties"]["options"]["properties"]

    def test_empty_fragment_set_raises(self, compiler):
        with pytest.raises(CompileError, match="found 0"):
            compiler.compile([])

    def test_several_build_units_raise(self, compiler, tmp_path):
        first = tmp_path / "a.schema.yaml"
        second = tmp_path / "b.schema.yaml"
        first.write_text("package: charts\nschema: {}\n")
        second.write_text("package: other\nschema: {}\n")

        with pytest.raises(CompileError, match="number of build units .* is 2"):
            compiler.compile([first, second], origin=tmp_path)

    def test_same_package_is_one_unit(self, compiler, tmp_path):
        first = tmp_path / "a.schema.yaml"
        second = tmp_path / "b.schema.yaml"
        first.write_text("package: charts\nschema:\n  properties:\n    kind:\n      const: A\n")
        second.write_text("package: charts\nschema:\n  properties:\n    options: {}\n")

        schema = compiler.compile([first, second])

        assert schema.package == "charts"
        assert schema.lookup_string("kind") == "A"

    def test_conflict_with_base_raises(self, compiler, tmp_path):
        """A plugin contradicting the base definition cannot be built."""
        plugin = tmp_path / "bad.schema.yaml"
        plugin.write_text(chart_fragment("Bad") + "    display:\n      type: string\n")

        with pytest.raises(CompileError, match="Error during build for .*bad.schema.yaml") as info:
            compiler.compile([SCHEMAS_ROOT / "base.schema.yaml", plugin])

        assert info.value.path == plugin

    def test_unresolved_reference_raises(self, compiler, tmp_path):
        plugin = tmp_path / "ref.schema.yaml"
        plugin.write_text(chart_fragment("Ref", '{"$ref": "#/$defs/nothing"}'))

        with pytest.raises(CompileError, match="Reference '#/\\$defs/nothing' not found"):
            compiler.compile([SCHEMAS_ROOT / "base.schema.yaml", plugin], origin=tmp_path)

    def test_remote_reference_raises(self, compiler, tmp_path):
        plugin = tmp_path / "ref.schema.yaml"
        plugin.write_text(chart_fragment("Ref", '{"$ref": "https://example.com/schema.json"}'))

        with pytest.raises(CompileError, match="Unsupported reference"):
            compiler.compile([plugin])

    def test_invalid_schema_raises(self, compiler, tmp_path):
        """The composed document must be a valid JSON Schema."""
        plugin = tmp_path / "invalid.schema.yaml"
        plugin.write_text(chart_fragment("Invalid", "{type: 12}"))

        with pytest.raises(CompileError, match="Invalid schema built"):
            compiler.compile([plugin])

    def test_generator_without_subtypes(self, compiler, tmp_path):
        """The generator still builds when no sub-type is known."""
        plugin = tmp_path / "p.schema.yaml"
        plugin.write_text(chart_fragment("Lonely"))

        schema = compiler.compile([
            SCHEMAS_ROOT / "base.schema.yaml",
            plugin,
            SCHEMAS_ROOT / "generator.schema.yaml",
        ])

        assert schema.document["$defs"]["query"] == {"not": {}}

    def test_compilation_is_repeatable(self, compiler):
        first = compiler.compile(awesome_fragment_set(with_generator=True))
        second = compiler.compile(awesome_fragment_set(with_generator=True))

        assert first.fingerprint == second.fingerprint

    def test_reference_cycle_raises(self, compiler, tmp_path):
        """A definition referring only to itself can never be evaluated."""
        plugin = tmp_path / "loop.schema.yaml"
        plugin.write_text(
            chart_fragment("Loop", '{"$ref": "#/$defs/loop"}')
            + "  $defs:\n    loop:\n      $ref: \"#/$defs/loop\"\n"
        )

        with pytest.raises(CompileError, match=r"Reference cycle in schema for .*: /\$defs/loop -> /\$defs/loop"):
            compiler.compile([SCHEMAS_ROOT / "base.schema.yaml", plugin], origin=tmp_path)

    def test_recursive_definition_compiles(self, compiler, tmp_path):
        """A definition recursing through its properties is a tree, not a cycle."""
        plugin = tmp_path / "tree.schema.yaml"
        plugin.write_text(
            chart_fragment("Tree", '{"$ref": "#/$defs/node"}')
            + "  $defs:\n"
            + "    node:\n"
            + "      type: object\n"
            + "      properties:\n"
            + "        children?:\n"
            + "          type: array\n"
            + "          items:\n"
            + "            $ref: \"#/$defs/node\"\n"
        )

        schema = compiler.compile([SCHEMAS_ROOT / "base.schema.yaml", plugin])

        schema.validate({
            "kind": "Tree",
            "display": {"name": "x"},
            "options": {"children": [{"children": []}, {}]},
        })
