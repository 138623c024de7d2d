"""Google API credentials and service construction."""

import os
from dataclasses import dataclass, field
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from assistant.exceptions import GoogleNotConnectedError
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/tasks",
    "https://www.googleapis.com/auth/contacts",
]

REFRESH_TOKEN_COOKIE = "google_refresh_token"


@dataclass
class GoogleConfig:
    """Configuration for Google APIs."""

    client_id: str | None = field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_ID"))
    client_secret: str | None = field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_SECRET"))
    token_uri: str = "https://oauth2.googleapis.com/token"

    # Places, Geolocation and Custom Search authenticate with an API key
    api_key: str | None = field(default_factory=lambda: os.getenv("GOOGLE_API_KEY"))
    search_engine_id: str | None = field(default_factory=lambda: os.getenv("GOOGLE_SEARCH_ENGINE_ID"))


@dataclass(frozen=True)
class GoogleContext:
    """Credentials for one request, passed explicitly to every collaborator call."""

    credentials: Credentials | None = None
    api_key: str | None = None
    search_engine_id: str | None = None

    def require_credentials(self) -> Credentials:
        if self.credentials is None:
            raise GoogleNotConnectedError("Google account is not connected")
        return self.credentials

    def require_api_key(self) -> str:
        if not self.api_key:
            raise GoogleNotConnectedError("GOOGLE_API_KEY is not configured")
        return self.api_key


def context_from_refresh_token(refresh_token: str | None, config: GoogleConfig | None = None) -> GoogleContext:
    """Build a request context from the user's OAuth refresh token.

    The access token is fetched lazily by google-auth on the first API call.
    A missing token still yields a context so API-key tools keep working.
    """
    config = config or GoogleConfig()

    credentials = None
    if refresh_token:
        credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=config.token_uri,
            client_id=config.client_id,
            client_secret=config.client_secret,
            scopes=SCOPES,
        )
    else:
        logger.debug("No Google refresh token on request")

    return GoogleContext(credentials=credentials, api_key=config.api_key, search_engine_id=config.search_engine_id)


def build_service(name: str, version: str, context: GoogleContext) -> Any:
    """Build a discovery client for a Google API using the context's OAuth credentials."""
    return build(name, version, credentials=context.require_credentials(), cache_discovery=False)
