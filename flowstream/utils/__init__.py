"""Utility helpers for flowstream."""

from flowstream.utils.yaml_utils import load_yaml_mapping, normalize_yaml_dict_keys

__all__ = ["load_yaml_mapping", "normalize_yaml_dict_keys"]
