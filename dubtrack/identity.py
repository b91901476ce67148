"""Visitor identity resolution from cookies.

Each visitor gets a session record stored in a first-party cookie. The
record is created on first contact and later enriched with a customer id
once one is supplied (by an identify call or any event carrying one).
The Dub click id comes from a separate referral cookie that this component
only reads.

Examples:
    >>> from dubtrack.host import MemoryClient
    >>> resolver = IdentityResolver()
    >>> client = MemoryClient(cookies={"dub_id": "click123"})
    >>> resolver.resolve_click_id(client)
    'click123'
    >>> record = resolver.resolve_identity(client, "user-42")
    >>> record.customer_id
    'user-42'
"""

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING

from dubtrack.config import CLICK_ID_COOKIE_NAME, SESSION_COOKIE_NAME
from dubtrack.cookies import (
    decode_session_cookie,
    encode_session_cookie,
    read_named_cookie,
)
from dubtrack.exceptions import CookieDecodeError
from dubtrack.schema import ANONYMOUS_CUSTOMER_ID, SessionRecord

if TYPE_CHECKING:
    from dubtrack.config import ComponentSettings
    from dubtrack.host import Client, MCEvent

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    """Generate a random UUIDv4 session identifier.

    Falls back to fallback_session_id() when the OS has no entropy source.
    """
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        return fallback_session_id()


def fallback_session_id() -> str:
    """Generate a UUIDv4-shaped id from the non-cryptographic PRNG.

    Only suitable for session tracking, never for security-sensitive values.
    """
    return str(uuid.UUID(int=random.getrandbits(128), version=4))


class IdentityResolver:
    """Resolves session, customer and click identifiers for a visitor.

    Args:
        session_cookie_name: Cookie holding the encoded SessionRecord.
        click_id_cookie_name: Referral cookie holding the Dub click id.
        cookie_scope: Persistence scope passed to Client.set().
        id_factory: Callable returning new session ids.
    """

    def __init__(
        self,
        session_cookie_name: str = SESSION_COOKIE_NAME,
        click_id_cookie_name: str = CLICK_ID_COOKIE_NAME,
        cookie_scope: str = "infinite",
        id_factory: Callable[[], str] = generate_session_id,
    ):
        self.session_cookie_name = session_cookie_name
        self.click_id_cookie_name = click_id_cookie_name
        self.cookie_scope = cookie_scope
        self.id_factory = id_factory

    @classmethod
    def from_settings(cls, settings: ComponentSettings) -> IdentityResolver:
        """Create a resolver using the cookie names from component settings."""
        return cls(
            session_cookie_name=settings.session_cookie_name,
            click_id_cookie_name=settings.click_id_cookie_name,
            cookie_scope=settings.cookie_scope,
        )

    def resolve_identity(
        self,
        client: Client,
        supplied_customer_id: str | None = None,
    ) -> SessionRecord:
        """Load the visitor's session record, creating or updating it as needed.

        A fresh record is minted and written when the cookie is missing, cannot
        be decoded, or has no sessionId. An existing record gains
        supplied_customer_id only if it has no customer id yet; a customer id
        already stored is never replaced.

        Args:
            client: Host client for the visitor.
            supplied_customer_id: Customer id known from the current event.

        Returns:
            The session record as held in memory after any write.
        """
        raw = client.get(self.session_cookie_name)
        record = None

        if raw:
            try:
                record = SessionRecord.from_dict(decode_session_cookie(raw))
            except CookieDecodeError as e:
                logger.debug(f"Discarding unreadable session cookie: {e}")

        if record is None:
            record = SessionRecord(
                session_id=self.id_factory(),
                customer_id=supplied_customer_id or None,
            )
            logger.debug(f"Created new session {record.session_id}")
            self._write(client, record)
        elif supplied_customer_id and not record.customer_id:
            record.customer_id = supplied_customer_id
            logger.debug(f"Attached customer id to session {record.session_id}")
            self._write(client, record)

        return record

    def resolve_click_id(self, client: Client) -> str | None:
        """Return the Dub click id from the visitor's cookie header, if any."""
        return read_named_cookie(client.get("cookie") or "", self.click_id_cookie_name)

    def resolve_customer_id(self, event: MCEvent) -> str:
        """Return the best customer identifier for an event.

        Precedence: payload customerId, payload customerExternalId, the
        session's customer id, the session id, then "anonymous". The session
        cookie is always resolved (and possibly written) along the way.
        """
        payload = event.payload
        customer_id = payload.get("customerId")
        customer_external_id = payload.get("customerExternalId")
        record = self.resolve_identity(event.client, customer_id or customer_external_id)

        return (
            customer_id
            or customer_external_id
            or record.customer_id
            or record.session_id
            or ANONYMOUS_CUSTOMER_ID
        )

    def _write(self, client: Client, record: SessionRecord) -> None:
        client.set(
            self.session_cookie_name,
            encode_session_cookie(record.to_dict()),
            {"scope": self.cookie_scope},
        )
