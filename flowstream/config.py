"""Configuration classes for flowstream components."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from flowstream.errors import ConfigError
from flowstream.model.state import DEFAULT_FRONTIER_LIMIT, HistoryLimits
from flowstream.utils.yaml_utils import load_yaml_mapping


@dataclass
class ClientConfig:
    """Endpoints, retry policy and history caps for a client session."""

    # HTTP API of the engine (start/stop requests, config query)
    base_url: str = "http://localhost:8000"

    # Streaming event endpoint
    ws_url: str = "ws://localhost:8000/ws"

    # Reconnect backoff: delay = min(base * 2**attempt, max)
    backoff_base_ms: int = 1000
    backoff_max_ms: int = 30000

    # Auto-reconnect gives up after this many consecutive attempts
    max_reconnect_attempts: int = 5

    # Local reset after a stop command when no acknowledgment arrives
    stop_fallback_ms: int = 1000
    stop_fallback_reconnect_ms: int = 500

    connect_timeout_s: float = 10.0
    request_timeout_s: float = 10.0

    # WebSocket ping interval; None disables heartbeats
    heartbeat_s: Optional[float] = 30.0

    frontier_limit: Optional[int] = DEFAULT_FRONTIER_LIMIT
    parallel_path_limit: Optional[int] = None
    rejected_path_limit: Optional[int] = None

    def __post_init__(self) -> None:
        if self.backoff_base_ms <= 0 or self.backoff_max_ms < self.backoff_base_ms:
            raise ConfigError(
                "backoff_base_ms must be positive and not exceed backoff_max_ms"
            )
        if self.max_reconnect_attempts < 0:
            raise ConfigError("max_reconnect_attempts must be >= 0")
        if self.stop_fallback_ms < 0 or self.stop_fallback_reconnect_ms < 0:
            raise ConfigError("stop fallback delays must be >= 0")
        try:
            self.history_limits()
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    def history_limits(self) -> HistoryLimits:
        """History caps for the reducer derived from this config."""
        return HistoryLimits(
            frontiers=self.frontier_limit,
            parallel_paths=self.parallel_path_limit,
            rejected_paths=self.rejected_path_limit,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientConfig":
        """Build a config from a mapping, rejecting unknown keys.

        Raises:
            ConfigError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(
                f"Unknown config key(s): {', '.join(unknown)}. "
                f"Valid keys are: {', '.join(sorted(known))}"
            )
        try:
            return cls(**dict(data))
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc


def load_config(path: Union[str, Path]) -> ClientConfig:
    """Load a :class:`ClientConfig` from a YAML file.

    The file may be a flat mapping of config keys or nest them under a
    top-level ``client`` key.

    Raises:
        ConfigError: If the file is unreadable or contains invalid settings.
    """
    data = load_yaml_mapping(path)
    if set(data) == {"client"}:
        section = data["client"] or {}
        if not isinstance(section, dict):
            raise ConfigError("'client' section must be a mapping")
        data = {str(k): v for k, v in section.items()}
    return ClientConfig.from_dict(data)


# Global configuration instance
DEFAULT_CONFIG = ClientConfig()
