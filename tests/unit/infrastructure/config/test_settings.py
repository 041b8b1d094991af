import pytest

from cmscli.infrastructure.config import settings


@pytest.fixture
def fresh_settings(monkeypatch):
    """Resets the module-level configuration store."""
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", False)
    return settings


def test_env_name():
    assert settings.env_name("service_domain") == "CMSCLI_SERVICE_DOMAIN"
    assert settings.env_name("logging.level") == "CMSCLI_LOGGING_LEVEL"


def test_yaml_then_env_precedence(fresh_settings, tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("service_domain: from-yaml\nretry: 4\nlogging:\n  file: /tmp/cmscli.log\n", encoding="utf-8")
    env_file = tmp_path / ".env"
    env_file.write_text("CMSCLI_API_KEY=from-dotenv\n", encoding="utf-8")
    monkeypatch.setenv("CMSCLI_RETRY", "7")
    # registers the variable so load_dotenv's write is undone after the test
    monkeypatch.setenv("CMSCLI_API_KEY", "placeholder")
    monkeypatch.delenv("CMSCLI_API_KEY")

    fresh_settings.load_configuration(config_file=config_file, env_file=env_file)

    assert fresh_settings.get_service_domain() == "from-yaml"
    assert fresh_settings.get_api_key() == "from-dotenv"
    assert fresh_settings.get_config("retry") == 7
    assert fresh_settings.get_config("logging.file") == "/tmp/cmscli.log"
    assert fresh_settings.get_config("missing", "fallback") == "fallback"


def test_dotenv_does_not_override_real_environment(fresh_settings, tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("CMSCLI_SERVICE_DOMAIN=from-dotenv\n", encoding="utf-8")
    monkeypatch.setenv("CMSCLI_SERVICE_DOMAIN", "from-env")

    fresh_settings.load_configuration(config_file=tmp_path / "absent.yaml", env_file=env_file)

    assert fresh_settings.get_service_domain() == "from-env"


def test_env_values_are_coerced(monkeypatch):
    monkeypatch.setenv("CMSCLI_SOME_FLAG", "TRUE")
    monkeypatch.setenv("CMSCLI_SOME_NUMBER", "42")
    monkeypatch.setenv("CMSCLI_SOME_TEXT", "4x2")
    monkeypatch.setenv("CMSCLI_SOME_EMPTY", "")

    assert settings.get_config("some_flag") is True
    assert settings.get_config("some_number") == 42
    assert settings.get_config("some_text") == "4x2"
    assert settings.get_config("some_empty", "default") == "default"


def test_test_config_wins(monkeypatch):
    monkeypatch.setenv("CMSCLI_SERVICE_DOMAIN", "from-env")
    settings.set_config_for_testing({"service_domain": "from-test"})

    assert settings.get_service_domain() == "from-test"
    settings.clear_test_config()
    assert settings.get_service_domain() == "from-env"


def test_mock_store_file(monkeypatch):
    assert settings.get_mock_store_file() is None
    monkeypatch.setenv("CMSCLI_CONTENT_MOCK_FILE", "/tmp/store.json")
    assert settings.get_mock_store_file() == "/tmp/store.json"


def test_find_dotenv_path_searches_parents(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    assert settings.find_dotenv_path() == tmp_path / ".env"
