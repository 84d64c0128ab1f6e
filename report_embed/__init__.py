"""
Report embedding handshake: access token, embed URL and embed token
acquisition feeding an embedding surface.
"""

from .client_auth import ClientAuthenticator, create_client_authenticator, create_client_authenticator_from_env
from .config import ClientCredentials, EmbedSettings, create_settings_from_env
from .embed_driver import COUNTRY_FILTER, EmbedDriver, EmbeddedReport, build_embed_config, merge_filters
from .error_report import ErrorKind, ErrorReport, FetchOutcome, build_error_report
from .orchestrator import EmbedOrchestrator, EmbedState
from .report_api import ReportApiClient, create_report_api_client
from .surface import (
    EmbedHandle,
    EmbeddingSurface,
    HeadlessHandle,
    HeadlessSurface,
    ReportContainer,
    SurfaceEvent,
)

__all__ = [
    "COUNTRY_FILTER",
    "ClientAuthenticator",
    "ClientCredentials",
    "EmbedDriver",
    "EmbedHandle",
    "EmbedOrchestrator",
    "EmbedSettings",
    "EmbedState",
    "EmbeddedReport",
    "EmbeddingSurface",
    "ErrorKind",
    "ErrorReport",
    "FetchOutcome",
    "HeadlessHandle",
    "HeadlessSurface",
    "ReportApiClient",
    "ReportContainer",
    "SurfaceEvent",
    "build_embed_config",
    "build_error_report",
    "create_client_authenticator",
    "create_client_authenticator_from_env",
    "create_report_api_client",
    "create_settings_from_env",
    "merge_filters",
]
