"""Tests for the refuse-transform command-line tool."""

import json

import pytest

from refuse_ingestion.cli import METRICS_FILE, build_parser, main

CUSTOMERS_CSV = (
    "CUSTOMER_ID,CUSTOMER_NAME,CUSTOMER_TYPE,STATUS\n"
    "CUST001,Acme Corporation,COMMERCIAL,ACTIVE\n"
    "CUST002,,RESIDENTIAL,ACTIVE\n"
    "CUST003,Gamma Homes,XYZ,ACTIVE\n"
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for name in ("OUTPUT_DIR", "STRICT_CODES", "PROGRESS_INTERVAL", "LOG_LEVEL"):
        monkeypatch.delenv(f"REFUSE_{name}", raising=False)


@pytest.fixture
def customers_csv(tmp_path):
    path = tmp_path / "input" / "customers.csv"
    path.parent.mkdir()
    path.write_text(CUSTOMERS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "out"


class TestParser:
    def test_transform_arguments(self):
        args = build_parser().parse_args(
            ["transform", "customer", "in.csv", "--strict", "--mappings", "m.yaml"]
        )
        assert args.command == "transform"
        assert args.entity_type == "customer"
        assert args.output_file is None
        assert args.strict is True
        assert str(args.mappings) == "m.yaml"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestTransformCommand:
    def test_transform_writes_outputs(self, customers_csv, out_dir, capsys):
        code = main(["transform", "customer", str(customers_csv), "--output-dir", str(out_dir)])

        assert code == 0
        output_file = out_dir / "customer-transformed.json"
        data = json.loads(output_file.read_text())
        assert [d["external_ids"] for d in data] == [["CUST001"], ["CUST003"]]
        assert data[1]["type"] == "commercial"

        report = (out_dir / "customer-transformed.report.txt").read_text()
        assert "Required field missing: CUSTOMER_NAME (records: 1)" in report

        stdout = capsys.readouterr().out
        assert stdout.startswith("Transformation Report: customer")
        assert f"Output saved to: {output_file}" in stdout

    def test_explicit_output_file(self, customers_csv, tmp_path, out_dir):
        target = tmp_path / "elsewhere" / "customers.json"
        code = main(
            ["transform", "customer", str(customers_csv), str(target), "--output-dir", str(out_dir)]
        )
        assert code == 0
        assert len(json.loads(target.read_text())) == 2
        assert (tmp_path / "elsewhere" / "customers.report.txt").exists()

    def test_strict_codes(self, customers_csv, out_dir):
        main(["transform", "customer", str(customers_csv), "--output-dir", str(out_dir), "--strict"])
        data = json.loads((out_dir / "customer-transformed.json").read_text())
        assert [d["external_ids"] for d in data] == [["CUST001"]]

    def test_strict_codes_from_environment(self, customers_csv, out_dir, monkeypatch):
        monkeypatch.setenv("REFUSE_STRICT_CODES", "true")
        main(["transform", "customer", str(customers_csv), "--output-dir", str(out_dir)])
        data = json.loads((out_dir / "customer-transformed.json").read_text())
        assert len(data) == 1

    def test_mapping_override(self, tmp_path, out_dir):
        source = tmp_path / "legacy.csv"
        source.write_text("CUST_NO,CUST_NAME\n77,acme corp\n", encoding="utf-8")
        mappings = tmp_path / "custom.yaml"
        mappings.write_text(
            "customer:\n"
            "  - {source: CUST_NO, target: external_id}\n"
            "  - {source: CUST_NAME, target: name, required: true, transform: title}\n"
        )
        code = main(
            ["transform", "customer", str(source), "--mappings", str(mappings),
             "--output-dir", str(out_dir)]
        )
        assert code == 0
        [record] = json.loads((out_dir / "customer-transformed.json").read_text())
        assert record["name"] == "Acme Corp"
        assert record["external_ids"] == ["77"]

    def test_sibling_mapping_file_picked_up(self, tmp_path, out_dir):
        source = tmp_path / "legacy.csv"
        source.write_text("CUST_NAME\nbeta llc\n", encoding="utf-8")
        (tmp_path / "customer-mappings.yaml").write_text(
            "customer:\n  - {source: CUST_NAME, target: name, transform: upper}\n"
        )
        main(["transform", "customer", str(source), "--output-dir", str(out_dir)])
        [record] = json.loads((out_dir / "customer-transformed.json").read_text())
        assert record["name"] == "BETA LLC"

    def test_all_records_failing_writes_empty_array(self, tmp_path, out_dir):
        source = tmp_path / "empty_names.csv"
        source.write_text("CUSTOMER_ID,CUSTOMER_NAME\nC1,\nC2,\n", encoding="utf-8")
        assert main(["transform", "customer", str(source), "--output-dir", str(out_dir)]) == 0
        assert json.loads((out_dir / "customer-transformed.json").read_text()) == []

    def test_unknown_entity_type(self, customers_csv, out_dir, capsys):
        code = main(["transform", "invoice", str(customers_csv), "--output-dir", str(out_dir)])
        assert code == 1
        assert "ERROR: No field mappings registered for entity type 'invoice'" in capsys.readouterr().err
        assert not (out_dir / "invoice-transformed.json").exists()

    def test_missing_input(self, tmp_path, out_dir, capsys):
        code = main(["transform", "customer", str(tmp_path / "nope.csv"), "--output-dir", str(out_dir)])
        assert code == 1
        assert "ERROR:" in capsys.readouterr().err

    def test_unsupported_input(self, tmp_path, out_dir):
        source = tmp_path / "customers.xml"
        source.write_text("<customers/>")
        assert main(["transform", "customer", str(source), "--output-dir", str(out_dir)]) == 1

    def test_bad_mapping_document(self, customers_csv, tmp_path, out_dir):
        mappings = tmp_path / "bad.yaml"
        mappings.write_text("customer:\n  - {target: name}\n")
        code = main(
            ["transform", "customer", str(customers_csv), "--mappings", str(mappings),
             "--output-dir", str(out_dir)]
        )
        assert code == 1


class TestReportCommand:
    def test_metrics_accumulate_across_runs(self, customers_csv, out_dir, capsys):
        for _ in range(2):
            main(["transform", "customer", str(customers_csv), "--output-dir", str(out_dir)])
        capsys.readouterr()

        stored = json.loads((out_dir / METRICS_FILE).read_text())
        assert stored["customer"]["total_transformations"] == 6
        assert stored["customer"]["successful_transformations"] == 4

        assert main(["report", "--output-dir", str(out_dir)]) == 0
        stdout = capsys.readouterr().out
        assert stdout.startswith("Transformation Metrics")
        assert "Total:                6" in stdout

    def test_clear(self, customers_csv, out_dir, capsys):
        main(["transform", "customer", str(customers_csv), "--output-dir", str(out_dir)])
        main(["report", "--clear", "--output-dir", str(out_dir)])
        assert capsys.readouterr().out.rstrip().endswith("Metrics cleared")

        main(["report", "--output-dir", str(out_dir)])
        assert capsys.readouterr().out == "No transformation metrics recorded.\n"

    def test_no_metrics_yet(self, out_dir, capsys):
        assert main(["report", "--output-dir", str(out_dir)]) == 0
        assert capsys.readouterr().out == "No transformation metrics recorded.\n"


class TestBatchCommand:
    def _setup(self, tmp_path):
        inputs = tmp_path / "exports"
        inputs.mkdir()
        (inputs / "customers.csv").write_text(CUSTOMERS_CSV, encoding="utf-8")
        (inputs / "services.json").write_text(
            json.dumps([{"SVC_NO": "S1", "CUST_NO": "CUST001", "SVC_CODE": "RECYCLE"}])
        )
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "overrides.yaml").write_text(
            "service:\n"
            "  - {source: SVC_NO, target: external_id, required: true}\n"
            "  - {source: CUST_NO, target: customer_id, required: true}\n"
            "  - {source: SVC_CODE, target: service_type}\n"
        )
        config = config_dir / "batch.yaml"
        config.write_text(
            "customer:\n"
            "  inputFile: customers.csv\n"
            "service:\n"
            "  inputFile: services.json\n"
            "  mappingFile: overrides.yaml\n"
            "  outputFile: svc.json\n"
            "route:\n"
            "  enabled: false\n"
            "  inputFile: routes.json\n"
        )
        return config, inputs

    def test_batch(self, tmp_path, out_dir, capsys):
        config, inputs = self._setup(tmp_path)
        code = main(["batch", str(config), str(inputs), "--output-dir", str(out_dir)])

        assert code == 0
        stdout = capsys.readouterr().out
        assert "Starting batch transformation with 2 entity types" in stdout
        assert "customer: 2/3 transformed" in stdout
        assert "service: 1/1 transformed" in stdout
        assert stdout.rstrip().endswith("Batch transformation complete")

        [service] = json.loads((out_dir / "svc.json").read_text())
        assert service["service_type"] == "recycling"
        assert (out_dir / "customer-transformed.json").exists()
        assert not (out_dir / "route-transformed.json").exists()

        stored = json.loads((out_dir / METRICS_FILE).read_text())
        assert set(stored) == {"customer", "service"}

    def test_missing_input_file(self, tmp_path, out_dir):
        config, inputs = self._setup(tmp_path)
        (inputs / "services.json").unlink()
        assert main(["batch", str(config), str(inputs), "--output-dir", str(out_dir)]) == 1

    def test_enabled_entry_without_input(self, tmp_path, out_dir, capsys):
        config = tmp_path / "batch.yaml"
        config.write_text("customer:\n  enabled: true\n")
        assert main(["batch", str(config), str(tmp_path), "--output-dir", str(out_dir)]) == 1
        assert "inputFile" in capsys.readouterr().err


class TestValidateCommand:
    def test_validate(self, tmp_path, capsys):
        mappings = tmp_path / "mappings.yaml"
        mappings.write_text(
            "customer:\n"
            "  - {source: CUST_NAME, target: name, required: true}\n"
            "  - {source: CLASS, target: type, defaultValue: COMMERCIAL}\n"
            "  - {source: ACCT_STATUS, target: status, defaultValue: ACTIVE}\n"
        )
        samples = tmp_path / "samples.json"
        samples.write_text(json.dumps([{"CUST_NAME": "Acme"}, {"CLASS": "RES"}]))

        code = main(["validate", str(mappings), str(samples)])

        assert code == 0
        stdout = capsys.readouterr().out
        assert stdout.startswith("Mapping check: customer")
        assert "row 2: Required field missing: CUST_NAME" in stdout
        assert "Transformed data preview:" in stdout
        assert '"name": "Acme"' in stdout

    def test_validate_single_entity_type(self, tmp_path, capsys):
        mappings = tmp_path / "mappings.yaml"
        mappings.write_text("route:\n  - {source: NAME, target: name}\n")
        samples = tmp_path / "samples.csv"
        samples.write_text("ROUTE_ID,ROUTE_NAME\nR1,Monday\n")

        assert main(["validate", str(mappings), str(samples), "--entity-type", "facility"]) == 0
        assert capsys.readouterr().out.startswith("Mapping check: facility")

    def test_empty_mapping_document(self, tmp_path):
        mappings = tmp_path / "empty.yaml"
        mappings.write_text("")
        samples = tmp_path / "samples.json"
        samples.write_text("[]")
        assert main(["validate", str(mappings), str(samples)]) == 1


class TestAnalyzeCommand:
    def test_analyze_against_mappings(self, customers_csv, capsys):
        code = main(["analyze", str(customers_csv), "--entity-type", "customer"])

        assert code == 0
        out = capsys.readouterr().out
        assert "Legacy source analysis:" in out
        assert "Records: 3  fields: 4" in out
        assert "Required field CUSTOMER_NAME has no value in 1 record(s)" in out

    def test_analyze_without_entity_type(self, customers_csv, capsys):
        assert main(["analyze", str(customers_csv)]) == 0
        assert "Unmapped fields" not in capsys.readouterr().out

    def test_unknown_entity_type(self, customers_csv, capsys):
        assert main(["analyze", str(customers_csv), "--entity-type", "invoice"]) == 1
        assert "invoice" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert main(["analyze", str(tmp_path / "missing.csv")]) == 1


class TestSettingsOptions:
    def test_settings_file_output_dir(self, customers_csv, tmp_path):
        settings = tmp_path / "settings.yaml"
        out_dir = tmp_path / "from-settings"
        settings.write_text(f"output_dir: {out_dir}\nprogress_interval: 1\n")

        code = main(["--settings", str(settings), "transform", "customer", str(customers_csv)])

        assert code == 0
        assert (out_dir / "customer-transformed.json").exists()

    def test_invalid_settings(self, customers_csv, tmp_path, capsys):
        settings = tmp_path / "settings.yaml"
        settings.write_text("progress_interval: 0\n")
        code = main(["--settings", str(settings), "transform", "customer", str(customers_csv)])
        assert code == 1
        assert "progress_interval" in capsys.readouterr().err

    def test_invalid_log_level(self, customers_csv, out_dir):
        code = main(
            ["--log-level", "LOUD", "transform", "customer", str(customers_csv),
             "--output-dir", str(out_dir)]
        )
        assert code == 1
