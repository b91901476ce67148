"""
Tracking record schema - the shapes sent to the Dub tracking API.

Inbound event payloads are open mappings with no enforced schema. They are
normalized into one of two outbound records:
- LeadRecord: sign ups, form submits, pageviews
- SaleRecord: purchases and other events carrying a monetary amount

Both records always carry a resolved customer_external_id so the API never
receives an event without a subject.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

ANONYMOUS_CUSTOMER_ID = "anonymous"
DEFAULT_LEAD_EVENT_NAME = "Lead"
DEFAULT_SALE_EVENT_NAME = "Sale"

# Payload keys the normalizer understands; anything else is ignored
PAYLOAD_KEYS = frozenset(
    {
        "eventName",
        "customerId",
        "customerExternalId",
        "customerEmail",
        "customerName",
        "customerAvatar",
        "amount",
        "revenue",
        "currency",
        "invoiceId",
        "transactionId",
        "paymentProcessor",
        "metadata",
        "leadEventName",
        "eventQuantity",
    }
)


def is_present(value: Any) -> bool:
    """Return True if a payload value counts as supplied.

    None, False, empty strings, zero and NaN are absent. Empty containers are
    present, so an explicit ``metadata: {}`` is still sent.
    """
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (int, float)) and (value == 0 or value != value):
        return False
    return True


def first_present(*values: Any, default: Any = None) -> Any:
    """Return the first value that is_present(), else default."""
    return next((value for value in values if is_present(value)), default)


class PaymentProcessor(str, Enum):
    """Payment processors accepted by the Dub sale endpoint."""

    STRIPE = "stripe"
    SHOPIFY = "shopify"
    POLAR = "polar"
    PADDLE = "paddle"
    REVENUECAT = "revenuecat"
    CUSTOM = "custom"


@dataclass
class SessionRecord:
    """Visitor session stored in the first-party session cookie.

    Serialized as ``{"sessionId": ..., "customerId": ...}``; customerId is
    left out until a customer identifier becomes known.
    """

    session_id: str
    customer_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the cookie's JSON shape."""
        data: dict[str, Any] = {"sessionId": self.session_id}
        if self.customer_id:
            data["customerId"] = self.customer_id
        return data

    @classmethod
    def from_dict(cls, data: Any) -> SessionRecord | None:
        """Create a SessionRecord from decoded cookie JSON.

        Args:
            data: Any decoded JSON value.

        Returns:
            SessionRecord, or None if data is not an object with a sessionId.
        """
        if not isinstance(data, dict) or not data.get("sessionId"):
            return None
        customer_id = data.get("customerId")
        return cls(
            session_id=str(data["sessionId"]),
            customer_id=str(customer_id) if customer_id else None,
        )


@dataclass
class LeadRecord:
    """Lead event sent to ``POST /track/lead``."""

    click_id: str  # Empty string when the visitor has no dub_id cookie
    event_name: str
    customer_external_id: str

    customer_name: str | None = None
    customer_email: str | None = None
    customer_avatar: str | None = None
    event_quantity: int | None = None
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the API request body, omitting unset optional fields."""
        data: dict[str, Any] = {
            "clickId": self.click_id,
            "eventName": self.event_name,
            "customerExternalId": self.customer_external_id,
        }
        optional = {
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerAvatar": self.customer_avatar,
            "eventQuantity": self.event_quantity,
            "metadata": self.metadata,
        }
        data.update({key: value for key, value in optional.items() if is_present(value)})
        return data


@dataclass
class SaleRecord:
    """Sale event sent to ``POST /track/sale``.

    Amounts are passed through as supplied (Dub expects the smallest currency
    unit, e.g. cents).
    """

    customer_external_id: str
    amount: Any = 0
    event_name: str = DEFAULT_SALE_EVENT_NAME

    currency: str | None = None
    payment_processor: PaymentProcessor | str | None = None
    invoice_id: str | None = None
    metadata: dict[str, Any] | None = None
    lead_event_name: str | None = None
    click_id: str | None = None  # Omitted entirely when unknown
    customer_name: str | None = None
    customer_email: str | None = None
    customer_avatar: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the API request body, omitting unset optional fields."""
        data: dict[str, Any] = {
            "customerExternalId": self.customer_external_id,
            "amount": self.amount,
            "eventName": self.event_name,
        }
        payment_processor = self.payment_processor
        if isinstance(payment_processor, PaymentProcessor):
            payment_processor = payment_processor.value
        optional = {
            "currency": self.currency,
            "paymentProcessor": payment_processor,
            "invoiceId": self.invoice_id,
            "metadata": self.metadata,
            "leadEventName": self.lead_event_name,
            "clickId": self.click_id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerAvatar": self.customer_avatar,
        }
        data.update({key: value for key, value in optional.items() if is_present(value)})
        return data
