# ============================================================================
# CONFIGURATION - Static identifiers and client credentials
# ============================================================================
# Everything the embed handshake needs is read once at startup from the
# environment (optionally populated from a .env file):
#
# - Workspace / report / dataset identifiers of the report to embed
# - Client credentials of the app registration used to get the access token
# - Endpoints and the request timeout
#
# Missing identifiers are NOT rejected here. The orchestrator recognizes an
# empty workspace or report id and reports it in the report container.
# ============================================================================

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
DEFAULT_API_BASE_URL = "https://api.powerbi.com/v1.0/myorg"
DEFAULT_SCOPE = "https://analysis.windows.net/powerbi/api/.default"
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class ClientCredentials:
    """Client credentials grant inputs. Never mutated after startup."""

    client_id: str
    client_secret: str
    scope: str = DEFAULT_SCOPE

    def __repr__(self) -> str:
        return f"ClientCredentials(client_id={self.client_id!r}, scope={self.scope!r})"


@dataclass(frozen=True)
class EmbedSettings:
    """Static configuration of one embedded report."""

    workspace_id: str = ""
    report_id: str = ""
    dataset_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    scope: str = DEFAULT_SCOPE
    token_url: str = DEFAULT_TOKEN_URL
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @property
    def credentials(self) -> ClientCredentials:
        return ClientCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=self.scope
        )

    def has_report_identifiers(self) -> bool:
        """Check that both workspace and report ids are assigned."""
        return bool(self.workspace_id) and bool(self.report_id)

    def __repr__(self) -> str:
        return (
            f"EmbedSettings(workspace_id={self.workspace_id!r}, "
            f"report_id={self.report_id!r}, dataset_id={self.dataset_id!r}, "
            f"client_id={self.client_id!r})"
        )


def create_settings_from_env() -> EmbedSettings:
    """
    Create embed settings from environment variables.

    Identifier and credential variables:
    - POWERBI_WORKSPACE_ID
    - POWERBI_REPORT_ID
    - POWERBI_DATASET_ID
    - POWERBI_CLIENT_ID
    - POWERBI_CLIENT_SECRET

    Optional environment variables:
    - POWERBI_SCOPE
    - POWERBI_TOKEN_URL
    - POWERBI_API_BASE_URL
    - POWERBI_REQUEST_TIMEOUT (seconds)

    Returns:
        Configured EmbedSettings instance

    Raises:
        ValueError: If POWERBI_REQUEST_TIMEOUT is not a number
    """
    load_dotenv()

    timeout = os.getenv('POWERBI_REQUEST_TIMEOUT', '').strip()
    try:
        request_timeout = float(timeout) if timeout else DEFAULT_REQUEST_TIMEOUT
    except ValueError:
        raise ValueError(
            f"POWERBI_REQUEST_TIMEOUT must be a number of seconds, got {timeout!r}"
        )

    return EmbedSettings(
        workspace_id=os.getenv('POWERBI_WORKSPACE_ID', '').strip(),
        report_id=os.getenv('POWERBI_REPORT_ID', '').strip(),
        dataset_id=os.getenv('POWERBI_DATASET_ID', '').strip(),
        client_id=os.getenv('POWERBI_CLIENT_ID', '').strip(),
        client_secret=os.getenv('POWERBI_CLIENT_SECRET', ''),
        scope=os.getenv('POWERBI_SCOPE') or DEFAULT_SCOPE,
        token_url=os.getenv('POWERBI_TOKEN_URL') or DEFAULT_TOKEN_URL,
        api_base_url=(os.getenv('POWERBI_API_BASE_URL') or DEFAULT_API_BASE_URL).rstrip('/'),
        request_timeout=request_timeout
    )
