"""
Tests for threshold configuration loading.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from plansense.config import (
    Config,
    get_config,
    load_config_from_env,
    load_config_from_file,
    reset_config,
)
from plansense.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_config(monkeypatch: pytest.MonkeyPatch):
    """Every test starts without PLANSENSE_* variables or a cached config."""
    for name in Config.model_fields:
        monkeypatch.delenv(f"PLANSENSE_{name.upper()}", raising=False)
    monkeypatch.delenv("PLANSENSE_CONFIG_FILE", raising=False)
    reset_config()
    yield
    reset_config()


class TestDefaults:
    """Built-in thresholds."""

    def test_default_values(self) -> None:
        config = Config()
        assert config.seq_scan_row_threshold == 10_000
        assert config.parallel_seq_scan_row_threshold == 50_000
        assert config.nested_loop_row_threshold == 1_000
        assert config.seq_scan_index_row_threshold == 1_000
        assert config.high_cost_threshold == 10_000.0
        assert config.expensive_query_cost == 50_000.0
        assert config.row_estimate_error_ratio == 0.5
        assert config.step_cost_display_threshold == 100.0

    def test_is_frozen(self) -> None:
        config = Config()
        with pytest.raises(ValidationError):
            config.seq_scan_row_threshold = 5  # type: ignore[misc]

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            Config(seq_scan_rows=5)  # type: ignore[call-arg]

    def test_rejects_non_positive_thresholds(self) -> None:
        with pytest.raises(ValidationError):
            Config(high_cost_threshold=0)


class TestEnvironment:
    """PLANSENSE_<FIELD> variables."""

    def test_reads_int_and_float(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLANSENSE_SEQ_SCAN_ROW_THRESHOLD", "250000")
        monkeypatch.setenv("PLANSENSE_ROW_ESTIMATE_ERROR_RATIO", "0.75")

        config = load_config_from_env()
        assert config.seq_scan_row_threshold == 250_000
        assert config.row_estimate_error_ratio == 0.75
        assert config.nested_loop_row_threshold == 1_000

    def test_unparseable_value_keeps_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLANSENSE_SEQ_SCAN_ROW_THRESHOLD", "lots")
        assert load_config_from_env().seq_scan_row_threshold == 10_000

    def test_invalid_value_falls_back_to_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLANSENSE_HIGH_COST_THRESHOLD", "-1")
        monkeypatch.setenv("PLANSENSE_SEQ_SCAN_ROW_THRESHOLD", "20")

        config = load_config_from_env()
        assert config == Config()


class TestConfigFile:
    """JSON and YAML config files."""

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plansense.yaml"
        path.write_text("seq_scan_row_threshold: 500\nexpensive_query_cost: 1000.5\n")

        config = load_config_from_file(path)
        assert config.seq_scan_row_threshold == 500
        assert config.expensive_query_cost == 1000.5

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plansense.json"
        path.write_text(json.dumps({"nested_loop_row_threshold": 50}))

        assert load_config_from_file(path).nested_loop_row_threshold == 50

    def test_empty_yaml_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "plansense.yml"
        path.write_text("")
        assert load_config_from_file(path) == Config()

    def test_missing_file_uses_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PLANSENSE_SEQ_SCAN_ROW_THRESHOLD", "42")
        config = load_config_from_file(tmp_path / "missing.yaml")
        assert config.seq_scan_row_threshold == 42

    def test_invalid_file_uses_environment(self, tmp_path: Path) -> None:
        path = tmp_path / "plansense.json"
        path.write_text("{not json")
        assert load_config_from_file(path) == Config()

    def test_strict_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_config_from_file(tmp_path / "missing.yaml", strict=True)

    def test_strict_unknown_key_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "plansense.yaml"
        path.write_text("seq_scan_rows: 5\n")

        with pytest.raises(ConfigurationError, match="Invalid config") as exc_info:
            load_config_from_file(path, strict=True)
        assert exc_info.value.config_key == "seq_scan_rows"

    def test_strict_out_of_range_value_names_the_key(self, tmp_path: Path) -> None:
        path = tmp_path / "plansense.json"
        path.write_text(json.dumps({"high_cost_threshold": -5}))

        with pytest.raises(ConfigurationError) as exc_info:
            load_config_from_file(path, strict=True)
        assert exc_info.value.to_dict() == {
            "error_type": "ConfigurationError",
            "message": exc_info.value.message,
            "config_key": "high_cost_threshold",
        }

    def test_strict_malformed_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "plansense.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Failed to load config") as exc_info:
            load_config_from_file(path, strict=True)
        assert exc_info.value.config_key is None


class TestGlobalConfig:
    """Cached process-wide configuration."""

    def test_is_cached(self) -> None:
        assert get_config() is get_config()

    def test_reset_reloads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert get_config().seq_scan_row_threshold == 10_000

        monkeypatch.setenv("PLANSENSE_SEQ_SCAN_ROW_THRESHOLD", "7")
        assert get_config().seq_scan_row_threshold == 10_000

        reset_config()
        assert get_config().seq_scan_row_threshold == 7

    def test_config_file_variable(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "plansense.yaml"
        path.write_text("high_cost_threshold: 99.0\n")
        monkeypatch.setenv("PLANSENSE_CONFIG_FILE", str(path))

        assert get_config().high_cost_threshold == 99.0
