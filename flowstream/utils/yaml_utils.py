"""Helpers for reading YAML configuration files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Union

import yaml

from flowstream.errors import ConfigError


def normalize_yaml_dict_keys(data: Dict[Any, Any]) -> Dict[str, Any]:
    """Return ``data`` with every key coerced to ``str``.

    YAML 1.1 turns keys such as ``yes``/``no``/``on``/``off`` into booleans;
    those become ``"True"``/``"False"`` so unknown-key checks report them
    predictably instead of failing on a non-string key.

    Examples:
        >>> normalize_yaml_dict_keys({True: 1, "base_url": "http://x"})
        {'True': 1, 'base_url': 'http://x'}
    """
    return {str(key): value for key, value in data.items()}


def load_yaml_mapping(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML file whose top level must be a mapping.

    An empty file yields an empty dict.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or its top
            level is not a mapping.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}"
        )
    return normalize_yaml_dict_keys(data)
