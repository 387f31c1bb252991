"""Tests for configuration loading."""

from pathlib import Path
from unittest.mock import patch

import pytest

from rtcleak.core.config import DEFAULT_LOOKUP_URL, get_token, load_config, load_settings
from rtcleak.core.errors import ConfigError

_TOKEN_LOAD = "rtcleak.core.tokens.TokenStore.load"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("RTCLEAK_TOKEN", "RTCLEAK_STATE", "RTCLEAK_LOOKUP_URL"):
        monkeypatch.delenv(var, raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text)
    return path


def test_load_config_missing_file(tmp_path):
    assert load_config(tmp_path / "missing.toml") == {}


def test_load_config_reads_toml(tmp_path):
    path = _write(tmp_path, '[lookup]\nurl = "https://lookup.example"\n')
    assert load_config(path) == {"lookup": {"url": "https://lookup.example"}}


def test_load_config_invalid_toml(tmp_path):
    path = _write(tmp_path, "[lookup\nurl = ")
    with pytest.raises(ConfigError):
        load_config(path)


@patch(_TOKEN_LOAD, return_value=None)
def test_settings_defaults(_mock_load, tmp_path):
    settings = load_settings(tmp_path / "missing.toml")

    assert settings.lookup_url == DEFAULT_LOOKUP_URL
    assert settings.token is None
    assert settings.history_size == 5
    assert settings.timeout == 10.0


@patch(_TOKEN_LOAD, return_value=None)
def test_settings_from_file(_mock_load, tmp_path):
    path = _write(
        tmp_path,
        '[lookup]\nurl = "https://lookup.example"\ntoken = "file-token"\ntimeout = 3\n'
        '[history]\nsize = 8\npath = "/tmp/rtcleak-test/state.json"\n',
    )
    settings = load_settings(path)

    assert settings.lookup_url == "https://lookup.example"
    assert settings.token == "file-token"
    assert settings.timeout == 3
    assert settings.history_size == 8
    assert settings.state_path == Path("/tmp/rtcleak-test/state.json")


@patch(_TOKEN_LOAD, return_value=None)
def test_env_overrides_file(_mock_load, tmp_path, monkeypatch):
    path = _write(tmp_path, '[lookup]\nurl = "https://lookup.example"\ntoken = "file-token"\n')
    monkeypatch.setenv("RTCLEAK_TOKEN", "env-token")
    monkeypatch.setenv("RTCLEAK_LOOKUP_URL", "https://env.example")
    monkeypatch.setenv("RTCLEAK_STATE", str(tmp_path / "env-state.json"))

    settings = load_settings(path)

    assert settings.token == "env-token"
    assert settings.lookup_url == "https://env.example"
    assert settings.state_path == tmp_path / "env-state.json"


@patch(_TOKEN_LOAD, return_value=None)
def test_explicit_state_path_wins(_mock_load, tmp_path, monkeypatch):
    monkeypatch.setenv("RTCLEAK_STATE", str(tmp_path / "env-state.json"))
    settings = load_settings(tmp_path / "missing.toml", state_path=tmp_path / "cli.json")
    assert settings.state_path == tmp_path / "cli.json"


@patch(_TOKEN_LOAD, return_value="keyring-token")
def test_token_keyring_before_config(_mock_load):
    assert get_token({"lookup": {"token": "file-token"}}) == "keyring-token"


@patch(_TOKEN_LOAD, return_value=None)
def test_token_falls_back_to_config(_mock_load):
    assert get_token({"lookup": {"token": "file-token"}}) == "file-token"


def test_token_env_skips_keyring(monkeypatch):
    monkeypatch.setenv("RTCLEAK_TOKEN", "env-token")
    with patch(_TOKEN_LOAD) as mock_load:
        assert get_token({}) == "env-token"
    mock_load.assert_not_called()


@patch(_TOKEN_LOAD, return_value=None)
def test_invalid_history_size(_mock_load, tmp_path):
    path = _write(tmp_path, "[history]\nsize = 0\n")
    with pytest.raises(ConfigError):
        load_settings(path)
