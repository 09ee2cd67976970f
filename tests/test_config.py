from __future__ import annotations

import pytest

from peer.config import DEFAULT_CONFIG, ENV_PREFIX, ConfigError, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in DEFAULT_CONFIG:
        # registers the key so monkeypatch restores whatever load_dotenv writes
        monkeypatch.setenv(f"{ENV_PREFIX}{key.upper()}", "")
        monkeypatch.delenv(f"{ENV_PREFIX}{key.upper()}")


def _missing(tmp_path):
    return str(tmp_path / "missing.env")


def test_port_is_required(tmp_path):
    with pytest.raises(ConfigError, match="Port is required"):
        load_config(_missing(tmp_path), {"name": "alice"})


def test_defaults_with_port_override(tmp_path):
    config = load_config(_missing(tmp_path), {"port": 9000, "name": "alice"})
    assert config["port"] == 9000
    assert config["address"] == "127.0.0.1"
    assert config["server"] is False
    assert config["log_level"] == "WARNING"


def test_env_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("PEERCHAT_PORT=7000\nPEERCHAT_SERVER=true\nPEERCHAT_NAME=bob\n")

    config = load_config(str(env_file))

    assert config["port"] == 7000
    assert config["server"] is True
    assert config["name"] == "bob"


def test_environment_beats_env_file_and_flags_beat_both(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("PEERCHAT_PORT=7000\nPEERCHAT_ADDRESS=10.0.0.1\n")
    monkeypatch.setenv("PEERCHAT_PORT", "7100")

    config = load_config(str(env_file), {"name": "alice"})
    assert config["port"] == 7100
    assert config["address"] == "10.0.0.1"

    config = load_config(str(env_file), {"port": 7200, "address": None, "name": "alice"})
    assert config["port"] == 7200
    assert config["address"] == "10.0.0.1"


@pytest.mark.parametrize("raw, expected", [("1", True), ("yes", True), ("false", False), ("0", False)])
def test_bool_coercion(tmp_path, monkeypatch, raw, expected):
    monkeypatch.setenv("PEERCHAT_SERVER", raw)
    config = load_config(_missing(tmp_path), {"port": 1, "name": "x"})
    assert config["server"] is expected


def test_name_defaults_to_login_name(tmp_path, monkeypatch):
    monkeypatch.setenv("LOGNAME", "carol")
    config = load_config(_missing(tmp_path), {"port": 5000})
    assert config["name"] == "carol"


def test_name_longer_than_255_bytes_is_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_missing(tmp_path), {"port": 5000, "name": "é" * 128})


def test_port_out_of_range(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_missing(tmp_path), {"port": 70000, "name": "alice"})


def test_non_numeric_port_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("PEERCHAT_PORT", "eighty")
    with pytest.raises(ConfigError):
        load_config(_missing(tmp_path), {"name": "alice"})


def test_log_level_is_normalized_and_checked(tmp_path):
    config = load_config(_missing(tmp_path), {"port": 5000, "name": "a", "log_level": "debug"})
    assert config["log_level"] == "DEBUG"

    with pytest.raises(ConfigError):
        load_config(_missing(tmp_path), {"port": 5000, "name": "a", "log_level": "chatty"})


def test_unknown_override_key(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_missing(tmp_path), {"colour": "blue"})
