from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Callback-list publisher with a fixed set of event names."""

    EVENTS: ClassVar[frozenset[str]] = frozenset()

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def _check_event(self, event: str) -> None:
        if event not in self.EVENTS:
            known = ", ".join(sorted(self.EVENTS))
            raise ValueError(f"Unknown event '{event}' (expected one of: {known})")

    def on(self, event: str, listener: Listener) -> Listener:
        self._check_event(event)
        self._listeners.setdefault(event, []).append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> None:
        self._check_event(event)
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        self._check_event(event)
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of ``event``; return whether any was registered."""
        self._check_event(event)
        listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for '%s' raised", event)
        return bool(listeners)

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
            return
        self._check_event(event)
        self._listeners.pop(event, None)
