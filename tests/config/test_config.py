"""Tests for `flowstream.config` loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from flowstream.config import DEFAULT_CONFIG, ClientConfig, load_config
from flowstream.errors import ConfigError
from flowstream.model.state import HistoryLimits
from flowstream.utils.yaml_utils import load_yaml_mapping, normalize_yaml_dict_keys


def test_defaults_match_engine_conventions() -> None:
    config = ClientConfig()
    assert config.backoff_base_ms == 1000
    assert config.backoff_max_ms == 30000
    assert config.max_reconnect_attempts == 5
    assert config.stop_fallback_ms == 1000
    assert config.stop_fallback_reconnect_ms == 500
    assert config.history_limits() == HistoryLimits()
    assert DEFAULT_CONFIG == config


def test_load_flat_yaml(tmp_path: Path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text(
        "base_url: http://engine:9000\n"
        "ws_url: ws://engine:9000/ws\n"
        "rejected_path_limit: 50\n"
    )
    config = load_config(path)
    assert config.base_url == "http://engine:9000"
    assert config.ws_url == "ws://engine:9000/ws"
    assert config.history_limits().rejected_paths == 50


def test_load_nested_client_section(tmp_path: Path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text("client:\n  backoff_base_ms: 250\n  backoff_max_ms: 4000\n")
    config = load_config(path)
    assert (config.backoff_base_ms, config.backoff_max_ms) == (250, 4000)


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == ClientConfig()


def test_unknown_key_rejected(tmp_path: Path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text("base_url: http://x\nretries: 3\n")
    with pytest.raises(ConfigError, match="retries"):
        load_config(path)


def test_yaml_boolean_keys_reported_as_strings(tmp_path: Path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text("on: 1\n")
    with pytest.raises(ConfigError, match="True"):
        load_config(path)


@pytest.mark.parametrize(
    "content", ["[1, 2]\n", "base_url: [unclosed\n", "client: 5\n"]
)
def test_malformed_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_config(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Cannot read"):
        load_yaml_mapping(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"backoff_base_ms": 0},
        {"backoff_base_ms": 5000, "backoff_max_ms": 1000},
        {"max_reconnect_attempts": -1},
        {"stop_fallback_ms": -5},
        {"frontier_limit": 0},
    ],
)
def test_invalid_values(kwargs) -> None:
    with pytest.raises(ConfigError):
        ClientConfig(**kwargs)


def test_normalize_keys() -> None:
    assert normalize_yaml_dict_keys({True: 1, 2: "x"}) == {"True": 1, "2": "x"}
