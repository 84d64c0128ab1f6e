"""
Client Credentials Authentication for the reporting service
Uses the OAuth 2.0 Client Credentials Grant to obtain the bearer access token
that authorizes the report and embed-token API calls.
"""

import logging
from typing import Optional

import httpx

from .config import ClientCredentials, EmbedSettings, create_settings_from_env
from .error_report import FetchOutcome, fetch_field

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ERROR = "Error occurred while fetching the access token of the report"


class ClientAuthenticator:
    """
    Handles client credentials flow for machine-to-machine authentication.
    One request per call: no caching, no retry, no refresh.
    """

    def __init__(
        self,
        token_url: str,
        credentials: ClientCredentials,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0
    ):
        """
        Initialize client authenticator.

        Args:
            token_url: OAuth token endpoint
            credentials: Client id, client secret and requested scope
            http_client: Shared client; a short-lived one is opened per call if omitted
            timeout: Request timeout in seconds for the per-call client
        """
        self.token_url = token_url
        self.credentials = credentials
        self._http_client = http_client
        self._timeout = timeout

    async def fetch_access_token(self) -> FetchOutcome:
        """
        Get an access token using client credentials grant.

        Returns:
            FetchOutcome with the access token, or the error report
        """
        logger.info(f"🔐 Requesting access token for client {self.credentials.client_id}")

        if self._http_client is not None:
            outcome = await self._request(self._http_client)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                outcome = await self._request(client)

        if outcome.ok:
            logger.info(f"✓ Access token obtained: {outcome.value[:30]}...")
        return outcome

    async def _request(self, client: httpx.AsyncClient) -> FetchOutcome:
        return await fetch_field(
            client,
            ACCESS_TOKEN_ERROR,
            'accessToken',
            'POST',
            self.token_url,
            fallback_field='access_token',
            data={
                'grant_type': 'client_credentials',
                'client_id': self.credentials.client_id,
                'client_secret': self.credentials.client_secret,
                'scope': self.credentials.scope
            },
            headers={'Content-Type': 'application/x-www-form-urlencoded'}
        )


def create_client_authenticator(
    settings: EmbedSettings,
    http_client: Optional[httpx.AsyncClient] = None
) -> ClientAuthenticator:
    """Create a ClientAuthenticator for the given settings."""
    return ClientAuthenticator(
        token_url=settings.token_url,
        credentials=settings.credentials,
        http_client=http_client,
        timeout=settings.request_timeout
    )


def create_client_authenticator_from_env() -> ClientAuthenticator:
    """
    Create ClientAuthenticator from environment variables.
    """
    return create_client_authenticator(create_settings_from_env())
