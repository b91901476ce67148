"""Interfaces of the host runtime that delivers events to the component.

The host owns event delivery and per-visitor cookie storage. The component
only sees three things:
- MCEvent: the event name, its free-form payload and the visitor's client
- Client: get/set access to the visitor's cookies and request headers
- Manager: registration of event listeners

EventManager and MemoryClient together form a local host. They are part of
the public API so the component can be driven without the host runtime, for
example to replay captured events against the Dub API from a script or a
worker. Tests use the same pair.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Client(Protocol):
    """Per-visitor key-value access provided by the host."""

    def get(self, key: str) -> str | None:
        """Return a stored cookie, or a request header such as ``"cookie"``."""
        ...

    def set(self, key: str, value: str, options: dict[str, Any] | None = None) -> Any:
        """Store a cookie. ``options["scope"]`` controls persistence."""
        ...


@dataclass
class MCEvent:
    """An event delivered by the host."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    client: Client | None = None

    def with_payload(self, **overrides: Any) -> MCEvent:
        """Return a copy of this event with payload keys overridden."""
        return replace(self, payload={**self.payload, **overrides})


EventHandler = Callable[[MCEvent], Awaitable[None]]


class Manager(Protocol):
    """Listener registration provided by the host."""

    def add_event_listener(self, event_type: str, handler: EventHandler) -> Any:
        ...


class EventManager:
    """In-process Manager that dispatches events to registered listeners.

    Example:
        manager = EventManager()
        Dispatcher(settings).register(manager)
        await manager.dispatch("pageview", MCEvent(name="pageview", client=client))
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[EventHandler]] = defaultdict(list)

    def add_event_listener(self, event_type: str, handler: EventHandler) -> None:
        """Register a listener for an event type."""
        self._listeners[event_type].append(handler)
        logger.debug(f"Registered listener for '{event_type}'")

    def listeners(self, event_type: str) -> list[EventHandler]:
        """Return the listeners registered for an event type."""
        return list(self._listeners.get(event_type, []))

    async def dispatch(self, event_type: str, event: MCEvent) -> None:
        """Run every listener for event_type concurrently.

        Listeners are expected to handle their own errors; anything that
        escapes one listener is logged and does not cancel the others.
        """
        handlers = self.listeners(event_type)
        if not handlers:
            logger.debug(f"No listeners for '{event_type}'")
            return

        results = await asyncio.gather(
            *(handler(event) for handler in handlers), return_exceptions=True
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Listener for '{event_type}' raised: {result!r}")


class MemoryClient:
    """Dict-backed Client that records cookie writes.

    The client half of the local host (see EventManager). Replaying an event
    for a known visitor means seeding it with that visitor's cookies.

    Args:
        cookies: Cookies readable by name through get().
        headers: Request headers. If no ``cookie`` header is given, one is
            built from the initial cookies.
    """

    def __init__(
        self,
        cookies: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.cookies: dict[str, str] = dict(cookies or {})
        self.headers: dict[str, str] = dict(headers or {})
        if "cookie" not in self.headers and self.cookies:
            self.headers["cookie"] = "; ".join(
                f"{name}={value}" for name, value in self.cookies.items()
            )
        self.writes: list[tuple[str, str, dict[str, Any]]] = []

    def get(self, key: str) -> str | None:
        if key in self.headers:
            return self.headers[key]
        return self.cookies.get(key)

    def set(self, key: str, value: str, options: dict[str, Any] | None = None) -> bool:
        self.cookies[key] = value
        self.writes.append((key, value, dict(options or {})))
        return True
