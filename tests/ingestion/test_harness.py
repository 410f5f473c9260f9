"""Tests for the mapping test harness."""

import pytest

from refuse_kernel.domain.validation import EntityValidator
from refuse_kernel.exceptions import ConfigurationError
from refuse_ingestion.harness import render_mapping_test_report, run_mapping_test


class TestRunMappingTest:
    def test_complete_rows_pass(self, engine, legacy_customer):
        report = run_mapping_test(engine, "customer", [legacy_customer])

        assert report.ok
        assert report.sample_count == 1
        assert report.success_count == 1
        [row] = report.rows
        assert row.source_row == 1
        assert row.raw_data is legacy_customer
        assert row.mapped_data["name"] == "Acme Corporation"
        assert row.canonical_data["contact_information"]["email"] == "contact@acme.com"

    def test_canonical_validation_applied(self, engine):
        report = run_mapping_test(
            engine, "customer", [{"CUSTOMER_ID": "C1", "CUSTOMER_NAME": "Acme"}]
        )

        assert not report.ok
        [row] = report.rows
        assert row.error is None
        assert {e.field for e in row.validation_errors} >= {"type", "status", "service_address"}
        assert "REQUIRED_FIELD_MISSING: service_address is required" in report.summary_errors

    def test_pipeline_failures_reported(self, engine, legacy_customer):
        rows = [legacy_customer, {"CUSTOMER_ID": "C2"}, "garbage"]
        report = run_mapping_test(engine, "customer", rows)

        assert [r.success for r in report.rows] == [True, False, False]
        assert report.error_count == 2
        assert report.rows[1].error == "Required field missing: CUSTOMER_NAME"
        assert report.rows[2].source_row == 3

    def test_custom_validator(self, engine):
        lenient = EntityValidator("customer", required_on_create=("name",))
        report = run_mapping_test(
            engine, "customer", [{"CUSTOMER_NAME": "Acme"}], validator=lenient
        )
        assert report.ok

    def test_warnings_collected(self, engine, legacy_customer):
        report = run_mapping_test(
            engine, "customer", [dict(legacy_customer, CUSTOMER_TYPE="SPACESHIP")]
        )
        assert report.ok
        assert report.summary_warnings == (
            "Unrecognized type code 'SPACESHIP'; defaulted to 'commercial'",
        )

    def test_caller_metrics_untouched(self, engine, legacy_customer):
        run_mapping_test(engine, "customer", [legacy_customer])
        assert engine.get_metrics("customer") is None

    def test_unknown_entity_type(self, engine):
        with pytest.raises(ConfigurationError):
            run_mapping_test(engine, "invoice", [{}])


class TestRenderReport:
    def test_render(self, engine, legacy_customer):
        report = run_mapping_test(
            engine, "customer", [legacy_customer, {"CUSTOMER_ID": "C2"}]
        )
        text = render_mapping_test_report(report)
        lines = text.splitlines()

        assert lines[0] == "Mapping check: customer"
        assert lines[1] == "Samples: 2  passed: 1  failed: 1"
        assert lines[2] == "  row 2: Required field missing: CUSTOMER_NAME"
