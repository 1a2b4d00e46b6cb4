"""HTTP client for the engine's request/response endpoints.

Three calls are supported: the start request, the stop request (a fallback
for the WebSocket stop command) and the one-shot config query that lists
selectable algorithms and graphs.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import aiohttp

from flowstream.errors import EngineRequestError
from flowstream.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StartRequest:
    """Parameters of a start request.

    ``speed`` is normalized to one decimal place on the wire.
    """

    source: int = 0
    sink: Optional[int] = None
    algorithm: str = "dinic"
    graph_type: str = "custom"
    graph_file: str = "SG.json"
    speed: float = 1.0

    def __post_init__(self) -> None:
        if self.speed <= 0:
            raise ValueError(f"speed must be positive, got {self.speed}")

    @property
    def normalized_speed(self) -> float:
        return round(float(self.speed), 1)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "source": self.source,
            "algorithm": self.algorithm,
            "graph_type": self.graph_type,
            "graph_file": self.graph_file,
            "speed": self.normalized_speed,
        }
        if self.sink is not None:
            payload["sink"] = self.sink
        return payload


@dataclass(frozen=True)
class EngineOptions:
    """Selectable options reported by the engine's config endpoint."""

    algorithms: Tuple[str, ...] = ()
    graph_types: Tuple[str, ...] = ()
    predefined_graphs: Tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "EngineOptions":
        def names(key: str, alias: Optional[str] = None) -> Tuple[str, ...]:
            values = data.get(key)
            if values is None and alias is not None:
                values = data.get(alias)
            if values is None:
                values = []
            if not isinstance(values, list):
                raise EngineRequestError(f"config field '{key}' must be a list")
            return tuple(str(v) for v in values)

        return cls(
            algorithms=names("algorithms"),
            graph_types=names("graph_types", "graphTypes"),
            predefined_graphs=names("predefined_graphs", "predefinedGraphs"),
        )


class EngineClient:
    """Thin async wrapper around the engine's HTTP API.

    Args:
        session: Shared aiohttp session; the caller owns its lifetime.
        base_url: Root URL of the engine API.
        timeout_s: Total timeout applied to every request.
    """

    def __init__(
        self, session: aiohttp.ClientSession, base_url: str, timeout_s: float = 10.0
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        url = self._url(path)
        try:
            async with self._session.request(
                method, url, json=payload, timeout=self._timeout
            ) as response:
                body = await _read_body(response)
                if response.status >= 400:
                    detail = _detail(body) or f"HTTP {response.status} from {url}"
                    raise EngineRequestError(detail, status=response.status)
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise EngineRequestError(f"Request to {url} failed: {exc!r}") from exc

    async def start_algorithm(self, request: StartRequest) -> Any:
        """POST the start request; returns the decoded response body.

        Raises:
            EngineRequestError: On transport failure or non-2xx response.
        """
        body = await self._request("POST", "/start-algorithm", request.to_payload())
        logger.info("Algorithm started: %s", body)
        return body

    async def stop_algorithm(self) -> Any:
        """POST the stop request.

        Raises:
            EngineRequestError: On transport failure or non-2xx response.
        """
        return await self._request("POST", "/stop-algorithm")

    async def fetch_options(self) -> EngineOptions:
        """Query the available algorithms, graph types and predefined graphs.

        Raises:
            EngineRequestError: On transport failure, non-2xx response, or a
                body that is not a JSON object.
        """
        body = await self._request("GET", "/config")
        if not isinstance(body, dict):
            raise EngineRequestError("config response is not a JSON object")
        return EngineOptions.from_payload(body)


async def _read_body(response: aiohttp.ClientResponse) -> Any:
    text = await response.text()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _detail(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if detail is not None:
            return str(detail)
        return None
    if isinstance(body, str) and body:
        return body
    return None

