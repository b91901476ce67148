"""
dubtrack - Dub conversion tracking for site interaction events.

Provides:
- Cookie-backed visitor identity (session id, customer id, Dub click id)
- Normalization of free-form event payloads into lead and sale records
- An async client for the Dub tracking API
- A dispatcher wiring pageview/event/track/ecommerce/identify events to it

Usage:
    from dubtrack import ComponentSettings, Dispatcher, EventManager, MCEvent

    manager = EventManager()
    Dispatcher(ComponentSettings.from_env()).register(manager)

    await manager.dispatch(
        "ecommerce",
        MCEvent(name="ecommerce", payload={"amount": 4999}, client=client),
    )
"""

from dubtrack.client import DubClient, TrackResource
from dubtrack.config import ComponentSettings
from dubtrack.cookies import (
    decode_session_cookie,
    encode_session_cookie,
    is_valid_http_url,
    read_named_cookie,
)
from dubtrack.dispatcher import EVENT_TYPES, Dispatcher, setup
from dubtrack.exceptions import (
    ConfigurationError,
    CookieDecodeError,
    DubTrackError,
    TrackingAPIError,
    TrackingConnectionError,
    TrackingError,
)
from dubtrack.host import Client, EventManager, Manager, MCEvent, MemoryClient
from dubtrack.identity import IdentityResolver, generate_session_id
from dubtrack.normalizer import EventNormalizer, is_sale_payload
from dubtrack.schema import (
    LeadRecord,
    PaymentProcessor,
    SaleRecord,
    SessionRecord,
)

__all__ = [
    # Config
    "ComponentSettings",
    # Cookies
    "read_named_cookie",
    "encode_session_cookie",
    "decode_session_cookie",
    "is_valid_http_url",
    # Schema
    "SessionRecord",
    "LeadRecord",
    "SaleRecord",
    "PaymentProcessor",
    # Identity
    "IdentityResolver",
    "generate_session_id",
    # Normalizer
    "EventNormalizer",
    "is_sale_payload",
    # Client
    "DubClient",
    "TrackResource",
    # Host
    "Client",
    "Manager",
    "MCEvent",
    "EventManager",
    "MemoryClient",
    # Dispatcher
    "Dispatcher",
    "EVENT_TYPES",
    "setup",
    # Exceptions
    "DubTrackError",
    "ConfigurationError",
    "CookieDecodeError",
    "TrackingError",
    "TrackingAPIError",
    "TrackingConnectionError",
]
