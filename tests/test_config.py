"""Tests for config defaults and the TOML config loader."""

from pathlib import Path

from code_scanner import config
from code_scanner.config_manager import DEFAULT_SCAN_CONFIG, load_config, load_full_config


def test_defaults_without_config_file(temp_dir: Path):
    merged = load_config(temp_dir / "missing.toml")
    assert merged == DEFAULT_SCAN_CONFIG
    assert merged["patterns"] is not DEFAULT_SCAN_CONFIG["patterns"]


def test_scan_section_overrides_defaults(temp_dir: Path):
    path = temp_dir / "config.toml"
    path.write_text('[scan]\nformat = "json"\ndetail = "detailed"\npatterns = ["src/**/*.py"]\n', encoding="utf-8")

    merged = load_config(path)
    assert merged["format"] == "json"
    assert merged["detail"] == "detailed"
    assert merged["patterns"] == ["src/**/*.py"]


def test_invalid_values_fall_back(temp_dir: Path, caplog):
    path = temp_dir / "config.toml"
    path.write_text('[scan]\nformat = "yaml"\npatterns = "*.py"\n', encoding="utf-8")

    merged = load_config(path)
    assert merged["format"] == config.DEFAULT_OUTPUT_FORMAT
    assert merged["patterns"] == config.DEFAULT_FILE_PATTERNS
    assert "unknown output format" in caplog.text


def test_malformed_toml_is_ignored(temp_dir: Path, caplog):
    path = temp_dir / "config.toml"
    path.write_text("[scan\nformat = ", encoding="utf-8")

    assert load_full_config(path) == {}
    assert "Could not read config file" in caplog.text


def test_default_config_file_location_is_read(temp_dir: Path, monkeypatch):
    path = temp_dir / "config.toml"
    path.write_text('[scan]\ndetail = "minimal"\n', encoding="utf-8")
    monkeypatch.setattr("code_scanner.config.CONFIG_FILE", path)

    assert load_config()["detail"] == "minimal"


def test_parse_int_fallback():
    assert config._parse_int(None, 7) == 7
    assert config._parse_int("12", 7) == 12
    assert config._parse_int("lots", 7) == 7
