"""Configuration for the Dub tracking component."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from dubtrack.cookies import is_valid_http_url
from dubtrack.exceptions import ConfigurationError

DEFAULT_API_BASE_URL = "https://api.dub.co"
SESSION_COOKIE_NAME = "mc_dub"
CLICK_ID_COOKIE_NAME = "dub_id"

API_KEY_SETTING = "DUB_API_KEY"
API_BASE_URL_SETTING = "DUB_API_BASE_URL"


@dataclass
class ComponentSettings:
    """Settings for one tracking component instance.

    Attributes:
        api_key: Dub API token used as a Bearer credential.
        api_base_url: Root URL of the Dub API.
        session_cookie_name: Cookie holding the visitor's session record.
        click_id_cookie_name: Referral cookie holding the Dub click id.
        cookie_scope: Persistence scope passed to the host when writing cookies.
    """

    # repr=False to keep the token out of logs
    api_key: str = field(repr=False)
    api_base_url: str = DEFAULT_API_BASE_URL
    session_cookie_name: str = SESSION_COOKIE_NAME
    click_id_cookie_name: str = CLICK_ID_COOKIE_NAME
    cookie_scope: str = "infinite"

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigurationError(f"{API_KEY_SETTING} is required")
        if not is_valid_http_url(self.api_base_url):
            raise ConfigurationError(
                f"Invalid API base URL: {self.api_base_url!r} (must be http or https)"
            )

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> ComponentSettings:
        """Create settings from the host's component settings mapping.

        Args:
            settings: Mapping containing DUB_API_KEY and optionally DUB_API_BASE_URL.

        Returns:
            ComponentSettings instance.

        Raises:
            ConfigurationError: If the API key is missing or the base URL is invalid.
        """
        return cls(
            api_key=settings.get(API_KEY_SETTING) or "",
            api_base_url=settings.get(API_BASE_URL_SETTING) or DEFAULT_API_BASE_URL,
        )

    @classmethod
    def from_env(cls) -> ComponentSettings:
        """Create settings from DUB_API_KEY / DUB_API_BASE_URL environment variables."""
        return cls.from_settings(os.environ)
