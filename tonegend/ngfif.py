"""Dispatch of feedback requests to the tone methods registered by name."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

TYPE_KEY = "tonegen.type"

HandlerMethod = Callable[[Any, "ToneContext"], bool]


@dataclass
class ToneContext:
    """Shared state of the tone generator: dispatcher, signal bus and audio server."""

    dispatcher: RequestDispatcher | None = None
    bus: Any = None
    audio: Any = None


@dataclass(frozen=True)
class EventHandler:
    """Start and optional stop methods for one request type."""

    name: str
    start: HandlerMethod
    stop: HandlerMethod | None = None


@dataclass
class RequestDispatcher:
    """Routes requests by their ``tonegen.type`` property to registered handlers."""

    context: ToneContext
    handlers: dict[str, EventHandler] = field(default_factory=dict)

    def register(
        self, name: str, start: HandlerMethod, stop: HandlerMethod | None
    ) -> None:
        """Register handlers for ``name``, replacing any earlier registration."""
        self.handlers[name] = EventHandler(name, start, stop)

    def _handler_for(self, request: Any) -> EventHandler | None:
        properties = getattr(request, "properties", None) or {}
        request_type = properties.get(TYPE_KEY)
        if not isinstance(request_type, str):
            return None
        return self.handlers.get(request_type)

    def can_handle(self, request: Any) -> bool:
        """Whether a handler is registered for the request's type."""
        return self._handler_for(request) is not None

    def handle_start(self, request: Any) -> bool:
        """Run the start method for the request; ``False`` if none is registered."""
        handler = self._handler_for(request)
        if handler is None:
            return False
        return bool(handler.start(request, self.context))

    def handle_stop(self, request: Any) -> bool:
        """Run the stop method for the request; ``False`` if there is none."""
        handler = self._handler_for(request)
        if handler is None or handler.stop is None:
            return False
        return bool(handler.stop(request, self.context))