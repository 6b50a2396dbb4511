from __future__ import annotations

"""Tiny pub/sub event bus connecting the engine to its UI collaborator."""

from typing import Any, Callable, Dict, List

from .explain import warn


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception as exc:
                # A failing subscriber must not break the session
                warn(f"handler for '{event}' failed: {exc}")

    def notify(self, level: str, message: str) -> None:
        """Surface a user-facing notice (toast collaborator)."""
        self.emit("notice", {"level": level, "message": message})
