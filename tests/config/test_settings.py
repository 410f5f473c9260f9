"""Tests for transformer settings resolution."""

import pytest

from refuse_config.schema import TransformerSettings
from refuse_config.settings import apply_overrides, load_settings
from refuse_kernel.exceptions import ConfigurationError


class TestLoadSettings:
    def test_defaults(self):
        assert load_settings(environ={}) == TransformerSettings()

    def test_file_then_environment(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("output_dir: from-file\nstrict_codes: true\nlog_level: debug\n")

        settings = load_settings(path, environ={"REFUSE_OUTPUT_DIR": "from-env"})

        assert settings.output_dir == "from-env"
        assert settings.strict_codes is True
        assert settings.log_level == "DEBUG"
        assert settings.progress_interval == 100

    def test_environment_values_parsed(self):
        settings = load_settings(
            environ={
                "REFUSE_STRICT_CODES": "yes",
                "REFUSE_PROGRESS_INTERVAL": "25",
                "REFUSE_LOG_LEVEL": "warning",
                "UNRELATED": "x",
            }
        )
        assert settings == TransformerSettings("output", True, 25, "WARNING")

    def test_blank_environment_ignored(self):
        assert load_settings(environ={"REFUSE_LOG_LEVEL": ""}).log_level == "INFO"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert load_settings(path, environ={}) == TransformerSettings()

    def test_file_must_be_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- output_dir\n")
        with pytest.raises(ConfigurationError):
            load_settings(path, environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml", environ={})


class TestApplyOverrides:
    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="unknown setting 'colour'"):
            apply_overrides(TransformerSettings(), {"colour": "blue"}, "settings.yaml")

    @pytest.mark.parametrize(
        "values",
        [
            {"progress_interval": 0},
            {"progress_interval": "ten"},
            {"strict_codes": "perhaps"},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_values(self, values):
        with pytest.raises(ConfigurationError):
            apply_overrides(TransformerSettings(), values, "test")

    def test_none_leaves_value(self):
        settings = apply_overrides(TransformerSettings(), {"output_dir": None}, "test")
        assert settings.output_dir == "output"

    def test_original_unchanged(self):
        original = TransformerSettings()
        apply_overrides(original, {"strict_codes": True}, "test")
        assert original.strict_codes is False
