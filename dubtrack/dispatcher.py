"""Event dispatcher - routes host events to Dub lead and sale tracking.

| Event type  | Behavior                                              |
|-------------|-------------------------------------------------------|
| pageview    | lead, eventName forced to "Pageview"                  |
| event       | sale if amount/revenue present, otherwise lead        |
| track       | same as event                                         |
| ecommerce   | always sale                                           |
| identify    | attach customer id to the session cookie, no API call |

Every handler is its own error boundary: failures are logged and never
reach the host or affect other handlers.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from dubtrack.client import DubClient
from dubtrack.config import ComponentSettings
from dubtrack.host import EventHandler, Manager, MCEvent
from dubtrack.identity import IdentityResolver
from dubtrack.normalizer import EventNormalizer, is_sale_payload

logger = logging.getLogger(__name__)

EVENT_TYPES = ("pageview", "event", "track", "ecommerce", "identify")
PAGEVIEW_EVENT_NAME = "Pageview"


class Dispatcher:
    """Handles the five host event types for one component instance.

    Args:
        settings: Component settings.
        api: Tracking API client. Defaults to a DubClient built from settings.
        normalizer: Event normalizer. Defaults to one using the settings'
            cookie names.

    Example:
        settings = ComponentSettings.from_settings({"DUB_API_KEY": "dub_xxx"})
        dispatcher = Dispatcher(settings)
        dispatcher.register(manager)
    """

    def __init__(
        self,
        settings: ComponentSettings,
        api: DubClient | None = None,
        normalizer: EventNormalizer | None = None,
    ):
        self.settings = settings
        self.api = api or DubClient(settings)
        self.normalizer = normalizer or EventNormalizer(
            IdentityResolver.from_settings(settings)
        )

    @property
    def identity(self) -> IdentityResolver:
        return self.normalizer.identity

    @property
    def handlers(self) -> dict[str, EventHandler]:
        """Event type to handler mapping."""
        return {
            "pageview": self.on_pageview,
            "event": self.on_event,
            "track": self.on_track,
            "ecommerce": self.on_ecommerce,
            "identify": self.on_identify,
        }

    def register(self, manager: Manager) -> None:
        """Register a listener for every supported event type."""
        for event_type, handler in self.handlers.items():
            manager.add_event_listener(event_type, handler)
        logger.info(f"Registered Dub tracking for events: {', '.join(EVENT_TYPES)}")

    async def aclose(self) -> None:
        """Release the tracking API client's connections."""
        await self.api.aclose()
        logger.debug("Closed Dub tracking client")

    async def track_lead_event(self, event: MCEvent) -> None:
        """Normalize an event as a lead and send it."""
        record = self.normalizer.build_lead_record(event)
        await self.api.track.lead(record)

    async def track_sale_event(self, event: MCEvent) -> None:
        """Normalize an event as a sale and send it."""
        record = self.normalizer.build_sale_record(event)
        await self.api.track.sale(record)

    async def track_lead_or_sale(self, event: MCEvent) -> None:
        """Send a sale if the payload carries an amount, otherwise a lead."""
        if is_sale_payload(event.payload):
            await self.track_sale_event(event)
        else:
            await self.track_lead_event(event)

    async def on_pageview(self, event: MCEvent) -> None:
        await self._handle(
            "pageview",
            "Failed to track pageview",
            lambda: self.track_lead_event(
                event.with_payload(eventName=PAGEVIEW_EVENT_NAME)
            ),
        )

    async def on_event(self, event: MCEvent) -> None:
        await self._handle(
            "event", "Failed to track event", lambda: self.track_lead_or_sale(event)
        )

    async def on_track(self, event: MCEvent) -> None:
        await self._handle(
            "track", "Failed to track event", lambda: self.track_lead_or_sale(event)
        )

    async def on_ecommerce(self, event: MCEvent) -> None:
        await self._handle(
            "ecommerce",
            "Failed to track ecommerce event",
            lambda: self.track_sale_event(event),
        )

    async def on_identify(self, event: MCEvent) -> None:
        async def identify() -> None:
            customer_id = event.payload.get("customerId") or event.payload.get(
                "customerExternalId"
            )
            if customer_id:
                self.identity.resolve_identity(event.client, customer_id)

        await self._handle("identify", "Failed to identify user", identify)

    async def _handle(
        self,
        event_type: str,
        failure_message: str,
        work: Callable[[], Awaitable[None]],
    ) -> None:
        logger.info(f'"{event_type}" event received')
        try:
            await work()
        except Exception:
            logger.exception(failure_message)


def setup(manager: Manager, settings: Mapping[str, Any]) -> Dispatcher:
    """Component entry point: build a Dispatcher from host settings and register it.

    Args:
        manager: Host manager to register listeners with.
        settings: Host component settings containing DUB_API_KEY.

    Returns:
        The registered Dispatcher.

    Raises:
        ConfigurationError: If the settings are invalid.
    """
    dispatcher = Dispatcher(ComponentSettings.from_settings(settings))
    dispatcher.register(manager)
    return dispatcher
