"""Tests for mapping and batch document loading."""

import pytest
import yaml

from refuse_config.loader import (
    compute_checksum,
    load_batch_document,
    load_field_mapping_document,
    load_yaml_file,
    parse_batch_entry,
    parse_field_mapping_def,
    parse_field_mapping_document,
)
from refuse_config.schema import BatchEntryDef, FieldMappingDef
from refuse_kernel.exceptions import ConfigurationError


class TestLoadYamlFile:
    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_json_is_accepted(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text('{"customer": []}')
        assert load_yaml_file(path) == {"customer": []}

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("customer: [unclosed")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)


class TestParseFieldMappingDef:
    def test_full_entry(self):
        parsed = parse_field_mapping_def(
            {
                "source": " CUST_NAME ",
                "target": "name",
                "required": "yes",
                "defaultValue": "Unknown",
                "transform": "title",
            },
            "customer",
        )
        assert parsed == FieldMappingDef("CUST_NAME", "name", True, "Unknown", "title")

    def test_snake_case_default(self):
        parsed = parse_field_mapping_def({"source": "A", "target": "a", "default_value": 0})
        assert parsed.default_value == 0
        assert parsed.required is False

    @pytest.mark.parametrize(
        "entry,message",
        [
            ("CUST_NAME", "customer[3]: mapping entry must be an object"),
            ({"target": "name"}, "customer[3]: missing 'source'"),
            ({"source": "A", "target": " "}, "customer[3]: missing 'target'"),
            ({"source": "A", "target": "a", "transform": ["upper"]},
             "customer[3]: transform must be a name"),
            ({"source": "A", "target": "a", "required": "sometimes"},
             "customer[3]: expected a boolean, got 'sometimes'"),
        ],
    )
    def test_invalid_entries(self, entry, message):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_field_mapping_def(entry, "customer", 3)
        assert str(exc_info.value) == message


class TestFieldMappingDocument:
    def test_order_kept(self):
        parsed = parse_field_mapping_document(
            {
                "customer": [{"source": "B", "target": "b"}, {"source": "A", "target": "a"}],
                "route": [],
            }
        )
        assert [d.source for d in parsed["customer"]] == ["B", "A"]
        assert parsed["route"] == ()

    def test_document_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            parse_field_mapping_document([{"source": "A", "target": "a"}])

    def test_entries_must_be_list(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_field_mapping_document({"customer": {"source": "A"}})
        assert exc_info.value.entity_type == "customer"

    def test_bundled_document(self):
        from pathlib import Path

        path = Path(__file__).resolve().parents[2] / "config" / "field_mappings.yaml"
        parsed = load_field_mapping_document(path)
        assert set(parsed) == {"customer", "service"}
        assert parsed["customer"][0] == FieldMappingDef(
            "CUST_NO", "external_id", required=True, transform="strip"
        )


class TestBatchDocument:
    def test_camel_and_snake_case(self):
        assert parse_batch_entry(
            "customer", {"inputFile": "c.csv", "mapping_file": "m.yaml", "outputFile": "o.json"}
        ) == BatchEntryDef("customer", True, "c.csv", "m.yaml", "o.json")

    def test_entry_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            parse_batch_entry("customer", "customers.csv")

    def test_load(self, tmp_path):
        path = tmp_path / "batch.yaml"
        path.write_text(
            "customer:\n  inputFile: customers.csv\n"
            "route:\n  enabled: false\n"
        )
        customer, route = load_batch_document(path)
        assert customer.enabled and customer.input_file == "customers.csv"
        assert not route.enabled and route.input_file is None

    def test_enabled_entry_needs_input(self, tmp_path):
        path = tmp_path / "batch.yaml"
        path.write_text("customer:\n  enabled: true\n")
        with pytest.raises(ConfigurationError, match="inputFile"):
            load_batch_document(path)

    def test_document_must_be_mapping(self, tmp_path):
        path = tmp_path / "batch.yaml"
        path.write_text("- customer\n")
        with pytest.raises(ConfigurationError):
            load_batch_document(path)


class TestChecksum:
    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})

    def test_sensitive_to_values(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
        assert len(compute_checksum({})) == 64
