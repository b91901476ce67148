"""Custom exceptions for the Dub tracking component."""

from __future__ import annotations


class DubTrackError(Exception):
    """Base exception for tracking component errors."""

    pass


class ConfigurationError(DubTrackError):
    """Raised when component settings are missing or invalid."""

    pass


class CookieDecodeError(DubTrackError, ValueError):
    """Raised when a session cookie value cannot be decoded."""

    pass


class TrackingError(DubTrackError):
    """Raised when a call to the tracking API fails."""

    pass


class TrackingAPIError(TrackingError):
    """Raised when the tracking API responds with an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TrackingConnectionError(TrackingError):
    """Raised when the tracking API cannot be reached."""

    pass
