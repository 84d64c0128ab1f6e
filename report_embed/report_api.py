# ============================================================================
# REPORT API - Embed URL and embed token for one report
# ============================================================================
# Both calls are authorized with the bearer access token obtained by
# ClientAuthenticator and neither depends on the other, so the orchestrator
# runs them concurrently.
#
# 1. GET  /groups/{workspace}/reports/{report}  -> embedUrl
# 2. POST /GenerateToken                         -> embedToken
#    The body names exactly one dataset and one report, so the issued
#    token is scoped to that pair only.
# ============================================================================

import logging
from typing import Dict, Optional

import httpx

from .config import EmbedSettings
from .error_report import FetchOutcome, fetch_field

logger = logging.getLogger(__name__)

EMBED_URL_ERROR = "Error occurred while fetching the embed URL of the report"
EMBED_TOKEN_ERROR = "Error occurred while fetching the embed token of the report"


class ReportApiClient:
    """
    Reporting service calls made with a management access token.

    Each call performs a single request; failures come back as a
    FetchOutcome carrying the error report, never as an exception.
    """

    def __init__(
        self,
        api_base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0
    ):
        """
        Initialize the report API client.

        Args:
            api_base_url: Service root, e.g. https://api.powerbi.com/v1.0/myorg
            http_client: Shared client; a short-lived one is opened per call if omitted
            timeout: Request timeout in seconds for the per-call client
        """
        self.api_base_url = api_base_url.rstrip('/')
        self._http_client = http_client
        self._timeout = timeout

    async def fetch_embed_url(
        self,
        access_token: str,
        workspace_id: str,
        report_id: str
    ) -> FetchOutcome:
        """
        Fetch the embed URL of a report.

        Args:
            access_token: Bearer access token (must be present)
            workspace_id: Workspace (group) holding the report
            report_id: Report to embed

        Returns:
            FetchOutcome with the embed URL, or the error report
        """
        _require_token(access_token)
        url = f"{self.api_base_url}/groups/{workspace_id}/reports/{report_id}"

        logger.info(f"📍 Resolving embed URL for report {report_id}")
        outcome = await self._send(
            EMBED_URL_ERROR,
            'embedUrl',
            'GET',
            url,
            headers=_bearer(access_token)
        )
        if outcome.ok:
            logger.info("✓ Embed URL resolved")
        return outcome

    async def fetch_embed_token(
        self,
        access_token: str,
        dataset_id: str,
        report_id: str
    ) -> FetchOutcome:
        """
        Request an embed token scoped to one (dataset, report) pair.

        Args:
            access_token: Bearer access token (must be present)
            dataset_id: Dataset behind the report
            report_id: Report to embed

        Returns:
            FetchOutcome with the embed token, or the error report
        """
        _require_token(access_token)

        logger.info(f"📍 Requesting embed token for report {report_id}, dataset {dataset_id}")
        outcome = await self._send(
            EMBED_TOKEN_ERROR,
            'embedToken',
            'POST',
            f"{self.api_base_url}/GenerateToken",
            headers=_bearer(access_token),
            json={
                'datasets': [{'id': dataset_id}],
                'reports': [{'id': report_id}]
            }
        )
        if outcome.ok:
            logger.info(f"✓ Embed token issued: {outcome.value[:30]}...")
        return outcome

    async def _send(self, description: str, field: str, method: str, url: str, **kwargs) -> FetchOutcome:
        if self._http_client is not None:
            return await fetch_field(self._http_client, description, field, method, url, **kwargs)

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await fetch_field(client, description, field, method, url, **kwargs)


def _require_token(access_token: str) -> None:
    if not access_token:
        raise ValueError("An access token is required before calling the report API")


def _bearer(access_token: str) -> Dict[str, str]:
    return {'Authorization': f'Bearer {access_token}'}


def create_report_api_client(
    settings: EmbedSettings,
    http_client: Optional[httpx.AsyncClient] = None
) -> ReportApiClient:
    """Create a ReportApiClient for the given settings."""
    return ReportApiClient(
        api_base_url=settings.api_base_url,
        http_client=http_client,
        timeout=settings.request_timeout
    )
