import logging

import pytest
from pydantic import ValidationError

from wirecrypt.shared import attach_file_handler, load_config
from wirecrypt.shared.config import parse_env_flag

BASE_CONFIG = """
[general]
title = "wirecrypt test"

[logging]
level = "warning"

[paths]
logs = "logs"

[network]
host = "127.0.0.1"
port = 8000
reload = false
"""


@pytest.fixture
def write_config(tmp_path):
    def writer(crypto: str, name="config.toml"):
        path = tmp_path / name
        path.write_text(BASE_CONFIG + "\n[crypto]\n" + crypto)
        return path

    return writer


def test_load_config(write_config):
    path = write_config('enabled = true\nforce = true\nmaster_key = "k"\nmax_age = 60\n')

    config = load_config(path, environ={})

    assert config.crypto.enabled is True
    assert config.crypto.force is True
    assert config.crypto.allow_plain is False
    assert config.crypto.master_key.get_secret_value() == "k"
    assert config.crypto.max_age == 60
    assert config.logging.level == logging.WARNING
    assert "/health" in config.crypto.exclude_paths


def test_missing_enabled_fails_startup(write_config):
    path = write_config("force = true\n")

    with pytest.raises(ValidationError):
        load_config(path, environ={})


def test_non_bool_enabled_fails_startup(write_config):
    path = write_config('enabled = "yes"\n')

    with pytest.raises(ValidationError):
        load_config(path, environ={})


def test_environment_overrides(write_config):
    path = write_config("enabled = false\n")
    environ = {
        "CRYPTO_ENABLED": "TRUE",
        "CRYPTO_FORCE": "false",
        "CRYPTO_ALLOW_PLAINTEXT": "true",
        "CRYPTO_DEBUG": "true",
        "CRYPTO_MASTER_KEY": "from-the-environment",
    }

    crypto = load_config(path, environ=environ).crypto

    assert crypto.enabled is True
    assert crypto.force is False
    assert crypto.allow_plain is True
    assert crypto.debug is True
    assert crypto.master_key.get_secret_value() == "from-the-environment"


def test_environment_can_supply_missing_enabled(write_config):
    path = write_config("force = true\n")

    assert load_config(path, environ={"CRYPTO_ENABLED": "false"}).crypto.enabled is False


def test_invalid_environment_flag(write_config):
    path = write_config("enabled = true\n")

    with pytest.raises(ValueError):
        load_config(path, environ={"CRYPTO_ENABLED": "maybe"})


def test_specific_config_replaces_tables(write_config):
    shared = write_config("enabled = false\n")
    specific = shared.parent / "prod.toml"
    specific.write_text('[crypto]\nenabled = true\nforce = true\nmaster_key = "k"\n')

    crypto = load_config(shared, specific, environ={}).crypto

    assert crypto.enabled is True
    assert crypto.force is True


@pytest.mark.parametrize("value,expected", [("true", True), (" False ", False)])
def test_parse_env_flag(value, expected):
    assert parse_env_flag("CRYPTO_FORCE", value) is expected


def test_file_handler_follows_the_latest_log_directory(tmp_path):
    first, second = tmp_path / "first", tmp_path / "second"

    attach_file_handler(str(first))
    handler = attach_file_handler(str(second))

    file_handlers = [
        h for h in logging.getLogger("wirecrypt").handlers if isinstance(h, logging.FileHandler)
    ]
    assert file_handlers == [handler]
    assert handler.baseFilename.startswith(str(second))

    logging.getLogger("wirecrypt.core.transport").warning("routed to the package log")
    handler.flush()
    assert "routed to the package log" in next(second.glob("*.log")).read_text()
