"""
Event normalizer - map free-form event payloads onto lead and sale records.

Payload fields are all optional. Where several keys can supply the same
field, the first present one wins (see schema.is_present):
- event name: eventName, then the event's own name, then "Lead" / "Sale"
- amount: amount, then revenue, then 0
- invoice id: invoiceId, then transactionId
- customer: see IdentityResolver.resolve_customer_id()

Optional fields are copied only when present, so records never carry empty
placeholders (except the lead's clickId, which the API requires).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from dubtrack.host import MCEvent
from dubtrack.identity import IdentityResolver
from dubtrack.schema import (
    DEFAULT_LEAD_EVENT_NAME,
    DEFAULT_SALE_EVENT_NAME,
    PAYLOAD_KEYS,
    LeadRecord,
    PaymentProcessor,
    SaleRecord,
    first_present,
    is_present,
)

logger = logging.getLogger(__name__)


def is_sale_payload(payload: Mapping[str, Any]) -> bool:
    """Return True if the payload carries a non-zero amount or revenue."""
    return is_present(payload.get("amount")) or is_present(payload.get("revenue"))


def _optional(payload: Mapping[str, Any], key: str) -> Any:
    value = payload.get(key)
    return value if is_present(value) else None


def _payment_processor(value: Any) -> PaymentProcessor | str:
    try:
        return PaymentProcessor(value)
    except ValueError:
        return value


class EventNormalizer:
    """Builds LeadRecord and SaleRecord objects from host events.

    Resolving the customer id goes through the identity resolver, so building
    a record may create or update the visitor's session cookie.

    Example:
        normalizer = EventNormalizer(IdentityResolver())
        lead = normalizer.build_lead_record(event)
        await api.track.lead(lead)
    """

    def __init__(self, identity: IdentityResolver | None = None):
        self.identity = identity or IdentityResolver()

    def build_lead_record(self, event: MCEvent) -> LeadRecord:
        """Normalize an event into a LeadRecord."""
        payload = event.payload
        self._log_unknown_keys(event)
        click_id = self.identity.resolve_click_id(event.client)
        customer_id = self.identity.resolve_customer_id(event)

        return LeadRecord(
            click_id=click_id or "",
            event_name=first_present(
                payload.get("eventName"), event.name, default=DEFAULT_LEAD_EVENT_NAME
            ),
            customer_external_id=customer_id,
            customer_name=_optional(payload, "customerName"),
            customer_email=_optional(payload, "customerEmail"),
            customer_avatar=_optional(payload, "customerAvatar"),
            event_quantity=_optional(payload, "eventQuantity"),
            metadata=_optional(payload, "metadata"),
        )

    def build_sale_record(self, event: MCEvent) -> SaleRecord:
        """Normalize an event into a SaleRecord.

        A zero amount and a missing amount both produce 0.
        """
        payload = event.payload
        self._log_unknown_keys(event)
        click_id = self.identity.resolve_click_id(event.client)
        customer_id = self.identity.resolve_customer_id(event)

        processor = payload.get("paymentProcessor")

        return SaleRecord(
            customer_external_id=customer_id,
            amount=first_present(payload.get("amount"), payload.get("revenue"), default=0),
            event_name=first_present(
                payload.get("eventName"), event.name, default=DEFAULT_SALE_EVENT_NAME
            ),
            currency=_optional(payload, "currency"),
            payment_processor=_payment_processor(processor) if is_present(processor) else None,
            invoice_id=first_present(payload.get("invoiceId"), payload.get("transactionId")),
            metadata=_optional(payload, "metadata"),
            lead_event_name=_optional(payload, "leadEventName"),
            click_id=click_id or None,
            customer_name=_optional(payload, "customerName"),
            customer_email=_optional(payload, "customerEmail"),
            customer_avatar=_optional(payload, "customerAvatar"),
        )

    def _log_unknown_keys(self, event: MCEvent) -> None:
        unknown = sorted(set(event.payload) - PAYLOAD_KEYS)
        if unknown:
            logger.debug(f"Ignoring payload keys for '{event.name}': {', '.join(unknown)}")
