from pathlib import Path

import pytest

from formacli.infrastructure.config import settings
from formacli.infrastructure.config.settings import (
    get_base_url,
    get_config,
    get_credentials_file,
    get_queue_delay,
    get_retry_policy,
    load_configuration,
    set_config_for_testing,
)


@pytest.fixture
def no_env_file(tmp_path, monkeypatch):
    """Runs from an empty directory so no stray .env is picked up."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "find_dotenv_path", lambda: None)
    yield tmp_path
    load_configuration(config_file=tmp_path / "absent.yaml", force=True)


def test_yaml_is_flattened_into_dotted_keys(no_env_file, monkeypatch):
    monkeypatch.delenv("API_BASE_URL", raising=False)
    monkeypatch.delenv("FORMACLI_BASE_URL", raising=False)
    config_file = no_env_file / "config.yaml"
    config_file.write_text("api:\n  base_url: http://yaml.test/api/\n  queue_delay: 0.25\n")

    load_configuration(config_file=config_file, force=True)

    assert get_config("api.base_url") == "http://yaml.test/api/"
    assert get_base_url() == "http://yaml.test/api"
    assert get_queue_delay() == 0.25


def test_environment_overrides_yaml(no_env_file, monkeypatch):
    config_file = no_env_file / "config.yaml"
    config_file.write_text("retry:\n  max_retries: 5\n")
    monkeypatch.setenv("RETRY_MAX_RETRIES", "1")

    load_configuration(config_file=config_file, force=True)

    assert get_config("retry.max_retries") == 1
    assert get_retry_policy().max_retries == 1


def test_env_file_does_not_override_real_environment(no_env_file, monkeypatch):
    env_file = no_env_file / ".env"
    env_file.write_text("FORMACLI_BASE_URL=http://dotenv.test/api\n")
    monkeypatch.setenv("FORMACLI_BASE_URL", "http://real.test/api")

    load_configuration(config_file=no_env_file / "absent.yaml", env_file=env_file, force=True)

    assert get_base_url() == "http://real.test/api"


def test_invalid_yaml_is_logged_not_raised(no_env_file):
    config_file = no_env_file / "config.yaml"
    config_file.write_text("api: [unclosed\n")

    load_configuration(config_file=config_file, force=True)

    assert get_config("api.base_url", "fallback") == "fallback"


def test_retry_policy_from_test_config():
    set_config_for_testing({
        "retry.max_retries": 0,
        "retry.base_delay": 0.5,
        "retry.statuses": "503, 504",
    })

    policy = get_retry_policy()

    assert policy.max_retries == 0
    assert policy.base_delay == 0.5
    assert policy.retry_statuses == frozenset({503, 504})


def test_credentials_file_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("FORMACLI_CREDENTIALS_FILE", str(tmp_path / "creds.json"))

    assert get_credentials_file() == tmp_path / "creds.json"


def test_credentials_file_default(monkeypatch):
    monkeypatch.delenv("FORMACLI_CREDENTIALS_FILE", raising=False)
    monkeypatch.delenv("AUTH_CREDENTIALS_FILE", raising=False)
    monkeypatch.setattr(settings, "_config", {})

    assert get_credentials_file() == Path.home() / ".formacli" / "credentials.json"


def test_single_retry_status_from_test_config():
    set_config_for_testing({"retry.statuses": 503})

    assert get_retry_policy().retry_statuses == frozenset({503})


def test_single_retry_status_from_environment(monkeypatch):
    monkeypatch.setenv("RETRY_STATUSES", "503")

    assert get_retry_policy().retry_statuses == frozenset({503})


def test_single_retry_status_from_yaml(no_env_file, monkeypatch):
    monkeypatch.delenv("RETRY_STATUSES", raising=False)
    config_file = no_env_file / "config.yaml"
    config_file.write_text("retry:\n  statuses: 429\n")

    load_configuration(config_file=config_file, force=True)

    assert get_retry_policy().retry_statuses == frozenset({429})


def test_retry_status_list_from_yaml(no_env_file, monkeypatch):
    monkeypatch.delenv("RETRY_STATUSES", raising=False)
    config_file = no_env_file / "config.yaml"
    config_file.write_text("retry:\n  statuses: [500, 503]\n")

    load_configuration(config_file=config_file, force=True)

    assert get_retry_policy().retry_statuses == frozenset({500, 503})
