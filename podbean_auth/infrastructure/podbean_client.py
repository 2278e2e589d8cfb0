"""
Client for the Podbean OAuth2 and podcast API.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from podbean_auth.core.domain import (
    PodbeanDebugToken,
    PodbeanPodcast,
    PodbeanPodcastResponse,
    PodbeanToken,
)
from podbean_auth.core.exceptions import (
    PodbeanDecodeError,
    PodbeanHTTPError,
    PodbeanNetworkError,
)

logger = logging.getLogger(__name__)

PODBEAN_API_URL = "https://api.podbean.com/v1"
AUTHORIZATION_ENDPOINT = f"{PODBEAN_API_URL}/dialog/oauth"
TOKEN_ENDPOINT = f"{PODBEAN_API_URL}/oauth/token"
PODCAST_ENDPOINT = f"{PODBEAN_API_URL}/podcast"
DEBUG_TOKEN_ENDPOINT = f"{PODBEAN_API_URL}/oauth/debugToken"


class PodbeanClient:
    """
    Makes the three calls of a Podbean sign-in.

    The underlying httpx.AsyncClient is owned by the caller and shared
    across requests; this class keeps no per-request state.
    """

    def __init__(self, http_client: httpx.AsyncClient, app_id: str, app_secret: str):
        self._http = http_client
        self._auth = httpx.BasicAuth(app_id, app_secret)

    async def exchange_code(self, code: str, redirect_uri: str) -> PodbeanToken:
        """
        Exchange the authorization code for tokens.

        Raises:
            PodbeanDecodeError: If the response carries no access_token
        """
        data = await self._request(
            "POST",
            TOKEN_ENDPOINT,
            auth=self._auth,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        token = self._decode(PodbeanToken, data, TOKEN_ENDPOINT)
        if not token.access_token:
            raise PodbeanDecodeError("No access_token in response", endpoint=TOKEN_ENDPOINT)
        return token

    async def get_podcast(self, access_token: str) -> PodbeanPodcast:
        """Fetch the podcast the token was granted for."""
        data = await self._request(
            "GET", PODCAST_ENDPOINT, params={"access_token": access_token}
        )
        envelope = self._decode(PodbeanPodcastResponse, data, PODCAST_ENDPOINT)
        if envelope.podcast is None:
            logger.warning("Podcast response has no podcast object")
            return PodbeanPodcast()
        return envelope.podcast

    async def debug_token(self, access_token: str) -> PodbeanDebugToken:
        """Introspect the token; the answer carries the podcast id."""
        data = await self._request(
            "GET",
            DEBUG_TOKEN_ENDPOINT,
            auth=self._auth,
            params={"access_token": access_token},
        )
        return self._decode(PodbeanDebugToken, data, DEBUG_TOKEN_ENDPOINT)

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body."""
        try:
            response = await self._http.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PodbeanHTTPError(
                f"Podbean returned {e.response.status_code} for {method} {url}",
                status_code=e.response.status_code,
                endpoint=url,
            ) from e
        except httpx.RequestError as e:
            raise PodbeanNetworkError(
                f"Network error calling {method} {url}: {e}", endpoint=url
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise PodbeanDecodeError(
                f"Response from {url} is not JSON: {e}", endpoint=url
            ) from e

    @staticmethod
    def _decode(model: type[BaseModel], data: Any, url: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise PodbeanDecodeError(
                f"Unexpected response shape from {url}: {e.error_count()} errors",
                endpoint=url,
            ) from e
