"""Observer registration for tunnel lifecycle events."""

from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

from .logging import get_logger

logger = get_logger(__name__)

Listener = Callable[..., Any]


class TunnelEvent(str, Enum):
    """Lifecycle notifications emitted by a tunnel."""

    LISTENING = "listening"
    CONNECTION = "connection"
    CLOSE = "close"
    ERROR = "error"


class EventEmitter:
    """Minimal synchronous observer registry keyed by TunnelEvent."""

    def __init__(self) -> None:
        self._listeners: dict[TunnelEvent, list[Listener]] = defaultdict(list)

    def on(self, event: TunnelEvent | str, listener: Listener) -> Listener:
        """Register ``listener`` for ``event``.

        Returns:
            The listener, so this can be used as a decorator
        """
        self._listeners[TunnelEvent(event)].append(listener)
        return listener

    def off(self, event: TunnelEvent | str, listener: Listener) -> None:
        """Unregister ``listener``; unknown listeners are ignored."""
        listeners = self._listeners[TunnelEvent(event)]
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: TunnelEvent | str) -> int:
        return len(self._listeners[TunnelEvent(event)])

    def emit(self, event: TunnelEvent | str, *args: Any) -> bool:
        """Call every listener of ``event`` with ``args``.

        A failing listener is logged and does not prevent the others from
        running.

        Returns:
            True if the event had listeners
        """
        event = TunnelEvent(event)
        listeners = list(self._listeners[event])

        if not listeners and event is TunnelEvent.ERROR:
            error = args[0] if args else None
            logger.warning(
                "Unhandled tunnel error",
                error=str(error),
                origin=getattr(getattr(error, "origin", None), "value", None),
            )

        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("Event listener failed", tunnel_event=event.value)

        return bool(listeners)
