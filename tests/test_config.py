"""Unit tests for config module."""

import argparse
from pathlib import Path
from typing import Any, Dict

import pytest

from schemacheck.cli import build_parser
from schemacheck.config import (
    build_target,
    deep_get,
    get_env_var,
    load_config,
    load_settings,
    parse_port,
    read_options,
    read_table_filter,
)
from schemacheck.errors import ConfigurationError


def cli_args(*argv: str) -> argparse.Namespace:
    return build_parser().parse_args(list(argv))


class TestDeepGet:
    """Tests for deep_get helper function."""

    def test_nested_keys(self) -> None:
        assert deep_get({"a": {"b": {"c": 3}}}, ["a", "b", "c"]) == 3

    def test_missing_key_returns_default(self) -> None:
        assert deep_get({"a": 1}, ["b"]) is None
        assert deep_get({"a": 1}, ["a", "b"], "x") == "x"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_config(self, tmp_path: Path) -> None:
        config_file = tmp_path / "schemacheck.yml"
        config_file.write_text("dev:\n  host: db\n  port: 3307\n")
        cfg = load_config(config_file)
        assert cfg["dev"]["port"] == 3307

    def test_load_missing_config_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="config not found"):
            load_config(tmp_path / "nonexistent.yml")

    def test_load_empty_config_returns_empty_dict(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yml"
        config_file.write_text("")
        assert load_config(config_file) == {}

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bad.yml"
        config_file.write_text("dev: [unclosed\n")
        with pytest.raises(ConfigurationError, match="invalid YAML"):
            load_config(config_file)

    def test_non_mapping_root_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "list.yml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(config_file)


class TestGetEnvVar:
    """Tests for get_env_var function."""

    def test_returns_value(self) -> None:
        assert get_env_var("dev", "host", {"SCHEMACHECK_DEV_HOST": "db"}) == "db"

    def test_blank_is_unset(self) -> None:
        assert get_env_var("main", "password", {"SCHEMACHECK_MAIN_PASSWORD": ""}) is None


class TestParsePort:
    """Tests for parse_port function."""

    def test_default_port(self) -> None:
        assert parse_port(None, "dev") == 3306
        assert parse_port("", "dev") == 3306

    def test_string_port(self) -> None:
        assert parse_port("3307", "dev") == 3307

    def test_malformed_port(self) -> None:
        with pytest.raises(ConfigurationError, match="invalid port"):
            parse_port("abc", "main")

    def test_out_of_range_port(self) -> None:
        with pytest.raises(ConfigurationError, match="out of range"):
            parse_port(70000, "main")


class TestBuildTarget:
    """Tests for build_target function."""

    @pytest.fixture
    def valid_config(self) -> Dict[str, Any]:
        return {
            "dev": {"host": "dev-db", "user": "ro", "password": "devpw", "database": "app"},
            "main": {"host": "prod-db", "port": 3307, "user": "ro", "password": "prodpw", "database": "app", "ssl": True},
        }

    def test_from_config(self, valid_config: Dict[str, Any]) -> None:
        target = build_target(valid_config, "main", {}, env={})
        assert target.label == "main"
        assert target.host == "prod-db"
        assert target.port == 3307
        assert target.ssl is True
        assert target.ssl_ca is None

    def test_default_port_and_ssl(self, valid_config: Dict[str, Any]) -> None:
        target = build_target(valid_config, "dev", {}, env={})
        assert target.port == 3306
        assert target.ssl is False

    def test_cli_overrides_config(self, valid_config: Dict[str, Any]) -> None:
        target = build_target(valid_config, "dev", {"dev_host": "other", "dev_port": "3310"}, env={})
        assert target.host == "other"
        assert target.port == 3310
        assert target.user == "ro"

    def test_action_inputs_override_cli(self, valid_config: Dict[str, Any]) -> None:
        env = {"INPUT_DEV-DB-HOST": "from-input", "INPUT_DEV-DB-NAME": "app_ci"}
        target = build_target(valid_config, "dev", {"dev_host": "from-cli"}, use_inputs=True, env=env)
        assert target.host == "from-input"
        assert target.database == "app_ci"

    def test_action_inputs_ignored_unless_enabled(self, valid_config: Dict[str, Any]) -> None:
        env = {"INPUT_DEV-DB-HOST": "from-input"}
        assert build_target(valid_config, "dev", {}, env=env).host == "dev-db"

    def test_env_var_takes_highest_priority(self, valid_config: Dict[str, Any]) -> None:
        env = {"SCHEMACHECK_DEV_HOST": "from-env", "INPUT_DEV-DB-HOST": "from-input"}
        target = build_target(valid_config, "dev", {"dev_host": "from-cli"}, use_inputs=True, env=env)
        assert target.host == "from-env"

    def test_ssl_ca_from_input(self, valid_config: Dict[str, Any]) -> None:
        env = {"INPUT_MAIN-DB-SSL": "true", "INPUT_MAIN-DB-SSL-CA": "-----BEGIN CERTIFICATE-----"}
        target = build_target(valid_config, "main", {}, use_inputs=True, env=env)
        assert target.ssl is True
        assert target.ssl_ca == "-----BEGIN CERTIFICATE-----"

    def test_missing_field_message(self) -> None:
        """Test the error names the field, env var, flag and action input."""
        cfg = {"dev": {"host": "h", "user": "u", "password": "p"}}
        with pytest.raises(ConfigurationError) as exc_info:
            build_target(cfg, "dev", {}, env={})
        msg = str(exc_info.value)
        assert "missing dev.database" in msg
        assert "SCHEMACHECK_DEV_DATABASE" in msg
        assert "--dev-database" in msg
        assert "dev-db-name" in msg

    def test_missing_side_entirely(self) -> None:
        with pytest.raises(ConfigurationError, match="missing main.host"):
            build_target({}, "main", {}, env={})

    def test_bad_ssl_flag(self, valid_config: Dict[str, Any]) -> None:
        with pytest.raises(ConfigurationError, match="ssl"):
            build_target(valid_config, "dev", {"dev_ssl": "sometimes"}, env={})


class TestReadOptions:
    """Tests for read_options function."""

    def test_defaults(self) -> None:
        opt = read_options({}, cli_args(), env={})
        assert opt.fail_on_drift is False
        assert opt.normalize_types is False
        assert opt.comment is False
        assert opt.connect_timeout == 10

    def test_from_config(self) -> None:
        cfg = {"options": {"fail_on_drift": True, "connect_timeout": 5}}
        opt = read_options(cfg, cli_args(), env={})
        assert opt.fail_on_drift is True
        assert opt.connect_timeout == 5

    def test_cli_overrides_config(self) -> None:
        cfg = {"options": {"normalize_types": False}}
        opt = read_options(cfg, cli_args("--normalize-types", "--connect-timeout", "3"), env={})
        assert opt.normalize_types is True
        assert opt.connect_timeout == 3

    def test_action_inputs(self) -> None:
        env = {"INPUT_FAIL-ON-DRIFT": "true", "INPUT_COMMENT": "yes"}
        opt = read_options({}, cli_args(), use_inputs=True, env=env)
        assert opt.fail_on_drift is True
        assert opt.comment is True

    def test_invalid_boolean(self) -> None:
        with pytest.raises(ConfigurationError):
            read_options({"options": {"comment": "perhaps"}}, cli_args(), env={})

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ConfigurationError):
            read_options({"options": {"connect_timeout": 0}}, cli_args(), env={})


class TestReadTableFilter:
    """Tests for read_table_filter function."""

    def test_empty_filters(self) -> None:
        tf = read_table_filter({}, cli_args())
        assert tf.include == []
        assert tf.exclude == []
        assert tf.case_sensitive is False

    def test_cli_patterns_append_to_config(self) -> None:
        cfg = {"table_filter": {"include": ["orders%"], "case_sensitive": True}}
        tf = read_table_filter(cfg, cli_args("--include", "users", "--exclude", "tmp_%"))
        assert tf.include == ["orders%", "users"]
        assert tf.exclude == ["tmp_%"]
        assert tf.case_sensitive is True


class TestLoadSettings:
    """Tests for load_settings function."""

    ENV = {
        "SCHEMACHECK_DEV_HOST": "dev-db",
        "SCHEMACHECK_DEV_USER": "ro",
        "SCHEMACHECK_DEV_PASSWORD": "a",
        "SCHEMACHECK_DEV_DATABASE": "app",
        "SCHEMACHECK_MAIN_HOST": "prod-db",
        "SCHEMACHECK_MAIN_USER": "ro",
        "SCHEMACHECK_MAIN_PASSWORD": "b",
        "SCHEMACHECK_MAIN_DATABASE": "app",
    }

    def test_env_only(self) -> None:
        settings = load_settings(cli_args(), env=dict(self.ENV))
        assert settings.dev.host == "dev-db"
        assert settings.main.host == "prod-db"
        assert settings.github is False
        assert settings.out_dir is None
        assert settings.github_token is None

    def test_config_file_and_out_dir(self, tmp_path: Path) -> None:
        config_file = tmp_path / "schemacheck.yml"
        config_file.write_text(
            "out_dir: reports\n"
            "options:\n  fail_on_drift: true\n"
            "dev:\n  host: h1\n  user: u\n  password: p\n  database: d\n"
            "main:\n  host: h2\n  user: u\n  password: p\n  database: d\n"
        )
        settings = load_settings(cli_args("--config", str(config_file)), env={})
        assert settings.dev.host == "h1"
        assert settings.options.fail_on_drift is True
        assert settings.out_dir is not None and settings.out_dir.name == "reports"

    def test_github_actions_reads_inputs_and_token(self) -> None:
        env = {
            "GITHUB_ACTIONS": "true",
            "INPUT_DEV-DB-HOST": "dev-db",
            "INPUT_DEV-DB-USER": "ro",
            "INPUT_DEV-DB-PASSWORD": "a",
            "INPUT_DEV-DB-NAME": "app",
            "INPUT_MAIN-DB-HOST": "prod-db",
            "INPUT_MAIN-DB-PORT": "3306",
            "INPUT_MAIN-DB-USER": "ro",
            "INPUT_MAIN-DB-PASSWORD": "b",
            "INPUT_MAIN-DB-NAME": "app",
            "INPUT_GITHUB-TOKEN": "tok",
        }
        settings = load_settings(cli_args(), env=env)
        assert settings.github is True
        assert settings.main.host == "prod-db"
        assert settings.github_token == "tok"

    def test_missing_settings_fail_before_connecting(self) -> None:
        env = dict(self.ENV)
        del env["SCHEMACHECK_MAIN_PASSWORD"]
        with pytest.raises(ConfigurationError, match="main.password"):
            load_settings(cli_args(), env=env)
