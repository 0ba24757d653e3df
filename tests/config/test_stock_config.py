"""
Tests for stock_config.load_config and the YAML loader.

Verifies the packaged defaults, override files, strict key checking and
the deterministic checksum.
"""

from textwrap import dedent

import pytest
import yaml

from stock_config import DEFAULT_CONFIG_PATH, compute_checksum, load_config
from stock_modules.raw_materials.config import RawMaterialsConfig
from stock_modules.reporting.config import ReportingConfig


def _write(tmp_path, text: str):
    path = tmp_path / "stock.yaml"
    path.write_text(dedent(text))
    return path


class TestDefaults:

    def test_packaged_defaults_match_dataclass_defaults(self):
        config = load_config()
        assert config.config_id == "default"
        assert config.version == 1
        assert config.reporting == ReportingConfig()
        assert config.raw_materials == RawMaterialsConfig()
        assert config.source_path == str(DEFAULT_CONFIG_PATH)

    def test_checksum_is_stable(self):
        assert load_config().checksum == load_config().checksum

    def test_load_emits_trace(self, captured_logs):
        config = load_config()
        (record,) = [r for r in captured_logs() if r["message"] == "STOCK_CONFIG_TRACE"]
        assert record["checksum"] == config.checksum
        assert record["config_id"] == "default"


class TestOverrides:

    def test_partial_override(self, tmp_path):
        path = _write(tmp_path, """
            config_id: dhaka-plant
            version: 3
            reporting:
              entity_name: Dhaka Plant
              expiry_threshold_days: 90
            raw_materials:
              default_unit: g
        """)
        config = load_config(path)
        assert config.config_id == "dhaka-plant"
        assert config.version == 3
        assert config.reporting.entity_name == "Dhaka Plant"
        assert config.reporting.expiry_threshold_days == 90
        assert config.reporting.default_currency == "BDT"
        assert config.raw_materials.default_unit == "g"

    def test_config_id_defaults_to_file_stem(self, tmp_path):
        config = load_config(_write(tmp_path, "reporting: {}\n"))
        assert config.config_id == "stock"

    def test_empty_file_gives_defaults(self, tmp_path):
        config = load_config(_write(tmp_path, ""))
        assert config.reporting == ReportingConfig()

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": {"c": 2, "d": 3}}) == compute_checksum(
            {"b": {"d": 3, "c": 2}, "a": 1}
        )


class TestRejections:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_unknown_section(self, tmp_path):
        with pytest.raises(ValueError, match="sections"):
            load_config(_write(tmp_path, "ledger:\n  x: 1\n"))

    def test_unknown_key_in_section(self, tmp_path):
        with pytest.raises(ValueError, match="expiry_days"):
            load_config(_write(tmp_path, "reporting:\n  expiry_days: 10\n"))

    def test_section_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            load_config(_write(tmp_path, "reporting: [1, 2]\n"))

    def test_top_level_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            load_config(_write(tmp_path, "- a\n- b\n"))

    def test_out_of_range_value(self, tmp_path):
        with pytest.raises(ValueError, match="display_precision"):
            load_config(_write(tmp_path, "reporting:\n  display_precision: -1\n"))

    def test_invalid_unit(self, tmp_path):
        with pytest.raises(ValueError, match="default_unit"):
            load_config(_write(tmp_path, "raw_materials:\n  default_unit: bushel\n"))

    def test_malformed_yaml(self, tmp_path):
        with pytest.raises(yaml.YAMLError):
            load_config(_write(tmp_path, "reporting: [unclosed\n"))
