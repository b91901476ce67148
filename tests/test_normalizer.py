"""Tests for EventNormalizer."""

import pytest
from dubtrack.host import MCEvent, MemoryClient
from dubtrack.identity import IdentityResolver
from dubtrack.normalizer import EventNormalizer, is_sale_payload
from dubtrack.schema import PaymentProcessor


@pytest.fixture
def normalizer():
    """Normalizer with a deterministic session id factory."""
    return EventNormalizer(IdentityResolver(id_factory=lambda: "new-session"))


class TestIsSalePayload:
    """Test is_sale_payload()."""

    def test_amount(self):
        assert is_sale_payload({"amount": 100}) is True

    def test_revenue(self):
        assert is_sale_payload({"revenue": 100}) is True

    def test_zero_amount_is_not_sale(self):
        """Test that a zero amount routes as a lead."""
        assert is_sale_payload({"amount": 0, "revenue": 0}) is False

    def test_empty_payload(self):
        assert is_sale_payload({}) is False


class TestBuildLeadRecord:
    """Test EventNormalizer.build_lead_record()."""

    def test_all_common_fields(self, normalizer, known_client):
        """Test a lead with name, email and click id."""
        event = MCEvent(
            name="track",
            payload={
                "eventName": "Sign Up",
                "customerExternalId": "user123",
                "customerEmail": "a@b.com",
                "customerName": "John Doe",
            },
            client=known_client,
        )

        record = normalizer.build_lead_record(event)

        assert record.to_dict() == {
            "clickId": "click123",
            "eventName": "Sign Up",
            "customerExternalId": "user123",
            "customerEmail": "a@b.com",
            "customerName": "John Doe",
        }
        assert "metadata" not in record.to_dict()

    def test_defaults_without_click_cookie(self, normalizer):
        """Test empty click id and default event name."""
        event = MCEvent(name="", payload={"customerExternalId": "user123"}, client=MemoryClient())

        record = normalizer.build_lead_record(event)

        assert record.click_id == ""
        assert record.event_name == "Lead"
        assert record.customer_external_id == "user123"

    def test_event_name_falls_back_to_event(self, normalizer, known_client):
        """Test that the event's own name is used without payload eventName."""
        event = MCEvent(
            name="Custom Lead Event",
            payload={"customerExternalId": "user123"},
            client=known_client,
        )

        assert normalizer.build_lead_record(event).event_name == "Custom Lead Event"

    def test_metadata_included(self, normalizer, known_client):
        """Test that metadata is passed through unchanged."""
        metadata = {"formName": "Contact Form", "source": "landing-page"}
        event = MCEvent(
            name="track",
            payload={"eventName": "Form Submit", "customerExternalId": "user123", "metadata": metadata},
            client=known_client,
        )

        assert normalizer.build_lead_record(event).metadata == metadata

    def test_avatar_and_quantity_included(self, normalizer, known_client):
        """Test the remaining optional lead fields."""
        event = MCEvent(
            name="track",
            payload={"customerAvatar": "https://example.com/a.png", "eventQuantity": 3},
            client=known_client,
        )

        data = normalizer.build_lead_record(event).to_dict()

        assert data["customerAvatar"] == "https://example.com/a.png"
        assert data["eventQuantity"] == 3

    def test_falsy_optionals_omitted(self, normalizer, known_client):
        """Test that empty optional values are left out entirely."""
        event = MCEvent(
            name="track",
            payload={"customerName": "", "customerEmail": None, "eventQuantity": 0, "metadata": None},
            client=known_client,
        )

        data = normalizer.build_lead_record(event).to_dict()

        assert set(data) == {"clickId", "eventName", "customerExternalId"}

    def test_empty_metadata_is_sent(self, normalizer, known_client):
        """Test that an explicit empty metadata object is kept on a lead."""
        event = MCEvent(
            name="track", payload={"customerExternalId": "u", "metadata": {}}, client=known_client
        )

        data = normalizer.build_lead_record(event).to_dict()

        assert data["metadata"] == {}

    def test_anonymous_visitor_uses_new_session(self, normalizer, new_client):
        """Test that a lead from an unknown visitor carries a fresh session id."""
        event = MCEvent(name="track", payload={}, client=new_client)

        record = normalizer.build_lead_record(event)

        assert record.customer_external_id == "new-session"
        assert "mc_dub" in new_client.cookies

    def test_unknown_payload_keys_ignored(self, normalizer, known_client):
        """Test that unrecognized keys do not reach the record."""
        event = MCEvent(name="track", payload={"utm_source": "google"}, client=known_client)

        data = normalizer.build_lead_record(event).to_dict()

        assert "utm_source" not in data


class TestBuildSaleRecord:
    """Test EventNormalizer.build_sale_record()."""

    def test_all_common_fields(self, normalizer, known_client):
        """Test a sale with amount, currency and invoice id."""
        event = MCEvent(
            name="ecommerce",
            payload={
                "eventName": "Purchase",
                "customerExternalId": "user123",
                "amount": 9999,
                "currency": "USD",
                "invoiceId": "inv_123",
            },
            client=known_client,
        )

        record = normalizer.build_sale_record(event)

        assert record.to_dict() == {
            "customerExternalId": "user123",
            "amount": 9999,
            "eventName": "Purchase",
            "currency": "USD",
            "invoiceId": "inv_123",
            "clickId": "click123",
        }

    def test_revenue_fallback(self, normalizer, known_client):
        """Test that revenue is used when amount is absent."""
        event = MCEvent(
            name="ecommerce",
            payload={"revenue": 2999, "currency": "EUR", "customerExternalId": "user456"},
            client=known_client,
        )

        record = normalizer.build_sale_record(event)

        assert record.amount == 2999
        assert record.currency == "EUR"

    def test_amount_preferred_over_revenue(self, normalizer, known_client):
        """Test that amount wins when both are present."""
        event = MCEvent(name="ecommerce", payload={"amount": 100, "revenue": 200}, client=known_client)

        assert normalizer.build_sale_record(event).amount == 100

    def test_amount_defaults_to_zero(self, normalizer, known_client):
        """Test that a sale without amount or revenue has amount 0."""
        event = MCEvent(name="ecommerce", payload={}, client=known_client)

        assert normalizer.build_sale_record(event).amount == 0

    def test_transaction_id_fallback(self, normalizer, known_client):
        """Test that transactionId is used as invoice id."""
        event = MCEvent(
            name="ecommerce",
            payload={"amount": 10000, "transactionId": "txn_abc123"},
            client=known_client,
        )

        assert normalizer.build_sale_record(event).invoice_id == "txn_abc123"

    def test_invoice_id_preferred_over_transaction_id(self, normalizer, known_client):
        """Test that invoiceId wins over transactionId."""
        event = MCEvent(
            name="ecommerce",
            payload={"amount": 1, "invoiceId": "inv_1", "transactionId": "txn_1"},
            client=known_client,
        )

        assert normalizer.build_sale_record(event).invoice_id == "inv_1"

    def test_event_name_always_present(self, normalizer, known_client):
        """Test the literal default when neither name source is set."""
        event = MCEvent(name="", payload={"amount": 100}, client=known_client)

        record = normalizer.build_sale_record(event)

        assert record.event_name == "Sale"
        assert record.to_dict()["eventName"] == "Sale"

    def test_event_name_falls_back_to_event(self, normalizer, known_client):
        """Test that the event's own name is used without payload eventName."""
        event = MCEvent(name="ecommerce", payload={"amount": 100}, client=known_client)

        assert normalizer.build_sale_record(event).event_name == "ecommerce"

    def test_payment_processor(self, normalizer, known_client):
        """Test that known processors map onto PaymentProcessor."""
        event = MCEvent(
            name="ecommerce",
            payload={"amount": 5000, "paymentProcessor": "stripe"},
            client=known_client,
        )

        record = normalizer.build_sale_record(event)

        assert record.payment_processor is PaymentProcessor.STRIPE
        assert record.to_dict()["paymentProcessor"] == "stripe"

    def test_unknown_payment_processor(self, normalizer, known_client):
        """Test that unknown processors pass through as strings."""
        event = MCEvent(
            name="ecommerce",
            payload={"amount": 5000, "paymentProcessor": "braintree"},
            client=known_client,
        )

        assert normalizer.build_sale_record(event).payment_processor == "braintree"

    def test_lead_event_name_and_metadata(self, normalizer, known_client):
        """Test attribution and metadata fields."""
        metadata = {"productId": "prod_123", "plan": "premium", "quantity": 2}
        event = MCEvent(
            name="ecommerce",
            payload={
                "eventName": "Conversion",
                "amount": 15000,
                "leadEventName": "Free Trial Started",
                "metadata": metadata,
            },
            client=known_client,
        )

        record = normalizer.build_sale_record(event)

        assert record.lead_event_name == "Free Trial Started"
        assert record.metadata == metadata

    def test_customer_fields(self, normalizer, known_client):
        """Test customer profile fields on a sale."""
        event = MCEvent(
            name="ecommerce",
            payload={
                "amount": 100,
                "customerName": "Jane",
                "customerEmail": "jane@example.com",
                "customerAvatar": "https://example.com/j.png",
            },
            client=known_client,
        )

        data = normalizer.build_sale_record(event).to_dict()

        assert data["customerName"] == "Jane"
        assert data["customerEmail"] == "jane@example.com"
        assert data["customerAvatar"] == "https://example.com/j.png"

    def test_empty_metadata_is_sent(self, normalizer, known_client):
        """Test that an explicit empty metadata object is kept on a sale."""
        event = MCEvent(name="ecommerce", payload={"amount": 100, "metadata": {}}, client=known_client)

        data = normalizer.build_sale_record(event).to_dict()

        assert data["metadata"] == {}

    def test_nan_amount_falls_back_to_revenue(self, normalizer, known_client):
        """Test that a NaN amount counts as missing."""
        event = MCEvent(
            name="ecommerce", payload={"amount": float("nan"), "revenue": 300}, client=known_client
        )

        assert normalizer.build_sale_record(event).amount == 300

    def test_click_id_omitted_without_cookie(self, normalizer, new_client):
        """Test that a sale drops clickId rather than sending an empty one."""
        event = MCEvent(name="ecommerce", payload={"amount": 100}, client=new_client)

        data = normalizer.build_sale_record(event).to_dict()

        assert "clickId" not in data
        assert data["customerExternalId"] == "new-session"
