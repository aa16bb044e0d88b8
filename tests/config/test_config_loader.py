"""Tests for expense_config: YAML loading, parsing, checksums, and the entrypoint."""

from pathlib import Path

import pytest
import yaml

from expense_config import (
    CONFIG_PATH_ENV,
    DATABASE_URL_ENV,
    DatabaseConfig,
    ExpenseConfig,
    get_active_config,
)
from expense_config.loader import (
    compute_checksum,
    load_config,
    load_yaml_file,
    parse_config,
    parse_database,
    parse_logging,
)

MINIMAL = {
    "config_id": "test",
    "version": 3,
    "database": {"url": "sqlite:///:memory:"},
}


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


def _write(tmp_path: Path, data, name: str = "config.yaml") -> Path:
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultConfig:

    def test_packaged_default_loads(self):
        config = get_active_config()
        assert config.config_id == "expense-ledger-default"
        assert config.version == 1
        assert config.database.url == "sqlite:///expenses.db"
        assert config.workflow.enforce_named_reviewer is False
        assert len(config.checksum) == 64

    def test_loaded_event_logged(self, captured_logs):
        config = get_active_config()
        loaded = [r for r in captured_logs() if r["message"] == "expense_config_loaded"]
        assert loaded[0]["checksum"] == config.checksum
        assert loaded[0]["logger"] == "expense_kernel.config"


class TestResolution:

    def test_env_path(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {**MINIMAL, "config_id": "from-env"})
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
        assert get_active_config().config_id == "from-env"

    def test_explicit_path_beats_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_PATH_ENV, str(_write(tmp_path, MINIMAL, "env.yaml")))
        explicit = _write(tmp_path, {**MINIMAL, "config_id": "explicit"}, "explicit.yaml")
        assert get_active_config(explicit).config_id == "explicit"

    def test_database_url_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://u:p@db/expenses")
        config = get_active_config(_write(tmp_path, MINIMAL))
        assert config.database.url == "postgresql://u:p@db/expenses"

    def test_override_changes_checksum(self, tmp_path):
        path = _write(tmp_path, MINIMAL)
        plain = load_config(path)
        overridden = load_config(path, database_url="sqlite:///other.db")
        assert plain.checksum != overridden.checksum

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestParsing:

    def test_defaults_applied(self):
        config = parse_config(MINIMAL)
        assert isinstance(config, ExpenseConfig)
        assert config.database == DatabaseConfig(url="sqlite:///:memory:")
        assert config.logging.level == "INFO"

    def test_engine_options(self):
        database = parse_database({"url": "sqlite://", "pool_size": 5, "sqlite_busy_timeout": 2})
        assert database.engine_options() == {
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 30,
            "sqlite_busy_timeout": 2.0,
        }

    @pytest.mark.parametrize("missing", ["config_id", "version"])
    def test_required_top_level_keys(self, missing):
        data = {k: v for k, v in MINIMAL.items() if k != missing}
        with pytest.raises(KeyError):
            parse_config(data)

    def test_database_url_required(self):
        with pytest.raises(KeyError):
            parse_config({"config_id": "x", "version": 1})

    @pytest.mark.parametrize(
        "section",
        [
            {"url": "sqlite://", "echo": "yes"},
            {"url": "sqlite://", "pool_size": "20"},
            {"url": "sqlite://", "pool_size": True},
            {"url": "sqlite://", "sqlite_busy_timeout": "slow"},
            {"url": ""},
        ],
    )
    def test_malformed_database_values(self, section):
        with pytest.raises(ValueError):
            parse_database(section)

    def test_log_level_normalized(self):
        assert parse_logging({"level": "debug"}).level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValueError, match="logging.level"):
            parse_logging({"level": "chatty"})

    def test_workflow_flag(self):
        config = parse_config({**MINIMAL, "workflow": {"enforce_named_reviewer": True}})
        assert config.workflow.enforce_named_reviewer is True

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)


class TestChecksum:

    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_value_change_detected(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_same_file_same_checksum(self, tmp_path):
        path = _write(tmp_path, MINIMAL)
        assert load_config(path).checksum == load_config(path).checksum
