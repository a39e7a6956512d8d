import logging

import pytest

from datafact.config import AppConfig, ConfigError, configure_logging, load_config


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "log_level: DEBUG\n"
        "gemini:\n"
        "  default_model: gemini-2.0-flash\n"
        "  max_retries: 2\n"
        "factory:\n"
        "  max_concurrency: 8\n"
        "personas:\n"
        "  table: personas_v2\n"
    )
    return path


class TestLoadConfig:

    def test_values_from_file(self, config_file):
        config = load_config(config_file, environ={})
        assert config.log_level == "DEBUG"
        assert config.gemini.default_model == "gemini-2.0-flash"
        assert config.gemini.max_retries == 2
        assert config.factory.max_concurrency == 8
        assert config.personas.table == "personas_v2"
        # untouched sections keep their defaults
        assert config.forms.inject_max_concurrency == 20
        assert config.gemini.status_backoff_unit_s == 3.0

    def test_environment_secrets(self, config_file):
        environ = {
            "DATAFACT_API_KEY": "secret",
            "SUPABASE_URL": "https://db.example.co",
            "SUPABASE_SERVICE_ROLE_KEY": "service",
            "SUPABASE_DB_SCHEMA": "personas",
        }
        config = load_config(config_file, environ=environ)
        assert config.auth.api_key == "secret"
        assert config.personas.base_url == "https://db.example.co"
        assert config.personas.db_schema == "personas"
        assert config.personas.table == "personas_v2"
        assert config.personas.configured

    def test_config_path_from_environment(self, config_file):
        config = load_config(environ={"DATAFACT_CONFIG": str(config_file)})
        assert config.factory.max_concurrency == 8

    def test_bundled_defaults(self):
        config = load_config(environ={})
        assert config.gemini.default_model == "gemini-2.5-flash"
        assert config.auth.api_key is None
        assert not config.personas.configured

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config not found"):
            load_config(tmp_path / "absent.yaml", environ={})

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("gemini: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path, environ={})

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("factory:\n  max_concurrency: 0\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path, environ={})

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path, environ={}) == AppConfig()


def test_configure_logging_quiets_http_client():
    configure_logging("debug")
    assert logging.getLogger("httpx").level == logging.WARNING
