"""State store: the single owner of the current :class:`FlowState`.

The store applies reducer output atomically and then notifies subscribers in
subscription order. A failing subscriber is logged and skipped; it never rolls
back the state or blocks delivery to the others. Engine-reported errors are
also published on a separate error channel.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from flowstream.logging import get_logger
from flowstream.model.state import FlowState, HistoryLimits
from flowstream.protocol import events as ev
from flowstream.protocol.events import Event
from flowstream.reducer import reduce
from flowstream.views import DerivedView, ViewComputer

logger = get_logger(__name__)

StateListener = Callable[[FlowState], None]
ErrorListener = Callable[[str], None]
Transition = Callable[..., FlowState]


class StateStore:
    """Holds the snapshot and fans out changes.

    Args:
        initial: Starting snapshot; an empty :class:`FlowState` when omitted.
        limits: History caps passed to the reducer.
    """

    def __init__(
        self,
        initial: Optional[FlowState] = None,
        limits: Optional[HistoryLimits] = None,
    ) -> None:
        self._state = initial if initial is not None else FlowState()
        self._limits = limits if limits is not None else HistoryLimits()
        self._listeners: List[StateListener] = []
        self._error_listeners: List[ErrorListener] = []
        self._views = ViewComputer()

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def limits(self) -> HistoryLimits:
        return self._limits

    @property
    def view(self) -> DerivedView:
        """Derived projections of the current snapshot."""
        return self._views.compute(self._state)

    def dispatch(self, event: Event) -> FlowState:
        """Reduce ``event`` into the current snapshot and notify on change."""
        previous = self._state
        new_state = reduce(previous, event, self._limits)
        self._commit(new_state)
        if event.type == ev.ERROR and new_state is not previous:
            self.publish_error(new_state.execution.error or "Unknown engine error")
        return new_state

    def apply(self, transition: Transition, *args: Any, **kwargs: Any) -> FlowState:
        """Run a pure local transition against the snapshot and commit it.

        Args:
            transition: Function ``(state, *args, **kwargs) -> FlowState``.
        """
        new_state = transition(self._state, *args, **kwargs)
        self._commit(new_state)
        return new_state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._remove(self._listeners, listener)

    def subscribe_errors(self, listener: ErrorListener) -> Callable[[], None]:
        """Register an error-message listener; returns an unsubscribe function."""
        self._error_listeners.append(listener)
        return lambda: self._remove(self._error_listeners, listener)

    def publish_error(self, message: str) -> None:
        """Deliver ``message`` to every error listener."""
        logger.error("%s", message)
        for listener in list(self._error_listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Error listener %r failed", listener)

    # ---- internals -------------------------------------------------------
    def _commit(self, new_state: FlowState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("State listener %r failed", listener)

    @staticmethod
    def _remove(listeners: List, listener: Callable) -> None:
        try:
            listeners.remove(listener)
        except ValueError:
            pass
