"""Async client for the Dub conversion tracking API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dubtrack.config import ComponentSettings
from dubtrack.exceptions import TrackingAPIError, TrackingConnectionError
from dubtrack.schema import LeadRecord, SaleRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class TrackResource:
    """The ``track`` namespace of the Dub API (``/track/lead``, ``/track/sale``)."""

    def __init__(self, client: DubClient):
        self._client = client

    async def lead(self, record: LeadRecord) -> dict[str, Any]:
        """Track a lead event.

        Raises:
            TrackingAPIError: If the API responds with an error status.
            TrackingConnectionError: If the API cannot be reached.
        """
        return await self._client.post("/track/lead", record.to_dict())

    async def sale(self, record: SaleRecord) -> dict[str, Any]:
        """Track a sale event.

        Raises:
            TrackingAPIError: If the API responds with an error status.
            TrackingConnectionError: If the API cannot be reached.
        """
        return await self._client.post("/track/sale", record.to_dict())


class DubClient:
    """Thin async wrapper around the Dub REST API.

    The underlying httpx.AsyncClient is created on first use and reused for
    the lifetime of the component.

    Example:
        async with DubClient(settings) as dub:
            await dub.track.lead(lead_record)
    """

    def __init__(self, settings: ComponentSettings):
        """Initialize the client.

        Args:
            settings: Component settings holding the API key and base URL.

        Raises:
            ValueError: If settings carry no API key.
        """
        if not settings.api_key:
            raise ValueError("Dub client requires an API key")
        self.settings = settings
        self.track = TrackResource(self)
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> DubClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    @property
    def http(self) -> httpx.AsyncClient:
        """Lazy-initialize the HTTP client."""
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.settings.api_base_url,
                headers={
                    "Authorization": f"Bearer {self.settings.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=DEFAULT_TIMEOUT,
            )
        return self._http

    async def post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON response.

        Args:
            path: API path relative to the base URL.
            body: Request body.

        Returns:
            Decoded response body (empty dict for an empty response).

        Raises:
            TrackingAPIError: If the API responds with an error status.
            TrackingConnectionError: If the request fails in transport.
        """
        try:
            response = await self.http.post(path, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise TrackingAPIError(
                f"Dub API {path} returned {status}: {e.response.text}",
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            raise TrackingConnectionError(f"Failed to reach Dub API {path}: {e}") from e

        logger.debug(f"Dub API {path} accepted event '{body.get('eventName')}'")
        if not response.content:
            return {}
        data: dict[str, Any] = response.json()
        return data

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._http is not None:
            try:
                await self._http.aclose()
            except Exception as e:  # pragma: no cover
                logger.warning(f"Error closing Dub HTTP client: {e}")
            self._http = None
