"""flowstream: live client for a remote max-flow engine.

flowstream follows an augmenting-path max-flow computation running in a
remote engine. It folds the engine's event stream into immutable snapshots,
derives the projections a viewer needs (highlighted paths, BFS levels,
progress) and drives the engine through start and stop commands.

Primary API:
    FlowSession - Wires store, connection and commands for one engine
    StateStore - Owns the current FlowState and notifies subscribers
    reduce() - Pure event reducer
    DerivedView, ViewComputer - Presentation-only projections
    to_networkx() - Export a snapshot for graph tooling

Example:
    from flowstream import ClientConfig, FlowSession, StartRequest

    async with FlowSession(ClientConfig()) as session:
        session.store.subscribe(lambda state: print(state.execution.status))
        await session.connect()
        await session.start(StartRequest(source=0, graph_file="SG.json"))
"""

from __future__ import annotations

from flowstream import cli, logging
from flowstream._version import __version__
from flowstream.commands import CommandDispatcher, CommandResult
from flowstream.config import ClientConfig, load_config
from flowstream.errors import (
    ConfigError,
    EngineRequestError,
    EventParseError,
    FlowStreamError,
)
from flowstream.export import snapshot_to_dict, to_networkx
from flowstream.model import (
    ConnectionState,
    EdgeState,
    ExecutionState,
    FlowState,
    GraphSnapshot,
    HistoryLimits,
    NodeInfo,
    TraversalState,
)
from flowstream.protocol import Event, parse_event
from flowstream.reducer import reduce
from flowstream.session import FlowSession
from flowstream.store import StateStore
from flowstream.transport import (
    BackoffPolicy,
    ConnectionManager,
    EngineClient,
    EngineOptions,
    StartRequest,
)
from flowstream.types import ConnectionStatus, Phase, RunStatus
from flowstream.views import DerivedView, StatusSummary, ViewComputer

__all__ = [
    # Version
    "__version__",
    # Session (primary API)
    "FlowSession",
    "ClientConfig",
    "load_config",
    "StartRequest",
    # State
    "StateStore",
    "FlowState",
    "GraphSnapshot",
    "NodeInfo",
    "EdgeState",
    "ExecutionState",
    "TraversalState",
    "ConnectionState",
    "HistoryLimits",
    "reduce",
    # Protocol
    "Event",
    "parse_event",
    # Views
    "DerivedView",
    "StatusSummary",
    "ViewComputer",
    "to_networkx",
    "snapshot_to_dict",
    # Transport and commands
    "ConnectionManager",
    "BackoffPolicy",
    "EngineClient",
    "EngineOptions",
    "CommandDispatcher",
    "CommandResult",
    # Types
    "RunStatus",
    "Phase",
    "ConnectionStatus",
    # Errors
    "FlowStreamError",
    "EventParseError",
    "ConfigError",
    "EngineRequestError",
    # Modules
    "cli",
    "logging",
]
