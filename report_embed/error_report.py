# ============================================================================
# ERROR REPORTS - Uniform failure aggregation for every fetch
# ============================================================================
# All three network calls (access token, embed URL, embed token) share one
# request/parse routine. Whatever goes wrong, the caller gets back an
# ErrorReport value instead of an exception:
#
# 1. A fixed descriptive line naming the call that failed
# 2. The request id header returned by the service (if any)
# 3. The HTTP status plus the server's error code, a generic parse failure
#    line, or the request error when no readable response arrived
# ============================================================================

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "requestId"


class ErrorKind(str, Enum):
    """Why a stage of the embed handshake failed."""

    CONFIGURATION = "configuration"
    NETWORK = "network"
    PROTOCOL = "protocol"
    PARSE = "parse"


@dataclass(frozen=True)
class ErrorReport:
    """
    Ordered, human-readable description of a failure.

    An empty report means "no error". A new failure replaces the previous
    report wholesale; reports are never merged.
    """

    lines: Tuple[str, ...] = ()
    kind: Optional[ErrorKind] = None

    def __bool__(self) -> bool:
        return bool(self.lines)

    @classmethod
    def empty(cls) -> "ErrorReport":
        return cls()

    @classmethod
    def configuration(cls, message: str) -> "ErrorReport":
        return cls(lines=(message,), kind=ErrorKind.CONFIGURATION)


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one fetch: either a value or an error report."""

    value: Optional[str] = None
    report: ErrorReport = ErrorReport()

    @property
    def ok(self) -> bool:
        return not self.report and self.value is not None

    @classmethod
    def success(cls, value: str) -> "FetchOutcome":
        return cls(value=value)

    @classmethod
    def failure(cls, report: ErrorReport) -> "FetchOutcome":
        return cls(report=report)


def build_error_report(
    description: str,
    response: Optional[httpx.Response] = None,
    body: Any = None,
    error: Optional[BaseException] = None
) -> ErrorReport:
    """
    Build the report for a failed call.

    Args:
        description: Fixed line naming the failed operation
        response: HTTP response, if one was received
        body: Parsed JSON body, or None when it could not be parsed
        error: Request error, when no readable response was received

    Returns:
        ErrorReport with the lines in display order
    """
    lines = [description]

    if response is None:
        if error is None or isinstance(error, httpx.TransportError):
            lines.append(f"Network error: {error}")
            return ErrorReport(lines=tuple(lines), kind=ErrorKind.NETWORK)
        # Response arrived but could not be read (bad encoding, redirect loop)
        lines.append(f"Request failed: {error}")
        kind = ErrorKind.PARSE if isinstance(error, httpx.DecodingError) else ErrorKind.PROTOCOL
        return ErrorReport(lines=tuple(lines), kind=kind)

    request_id = response.headers.get(REQUEST_ID_HEADER)
    if request_id:
        lines.append(f"Request Id: {request_id}")

    code = _error_code(body)
    if code:
        lines.append(f"Error {response.status_code}: {code}")
    else:
        lines.append(f"Error {response.status_code}: An error has occurred")

    kind = ErrorKind.PARSE if response.is_success else ErrorKind.PROTOCOL
    return ErrorReport(lines=tuple(lines), kind=kind)


def _error_code(body: Any) -> Optional[str]:
    """Pull error.code out of a service error body, if it has one."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("code")
    return None


async def fetch_field(
    client: httpx.AsyncClient,
    description: str,
    field: str,
    method: str,
    url: str,
    fallback_field: Optional[str] = None,
    **kwargs
) -> FetchOutcome:
    """
    Perform one request and extract a single string field from its JSON body.

    Never raises for transport, HTTP or parse failures; those come back as
    a failed FetchOutcome carrying the report.

    Args:
        client: HTTP client to send the request with
        description: Descriptive first line of the report on failure
        field: JSON field holding the value on success
        method: HTTP method
        url: Request URL
        fallback_field: Alternative spelling of the field, tried second
        **kwargs: Passed through to client.request (headers, data, json...)

    Returns:
        FetchOutcome with the field value or the error report
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.RequestError as e:
        logger.warning(f"✗ {description}: {e}")
        return FetchOutcome.failure(build_error_report(description, error=e))

    try:
        body = response.json()
    except ValueError:
        logger.warning(f"✗ {description}: unparseable body (HTTP {response.status_code})")
        return FetchOutcome.failure(build_error_report(description, response))

    if not response.is_success:
        logger.warning(f"✗ {description}: HTTP {response.status_code}")
        return FetchOutcome.failure(build_error_report(description, response, body))

    value = None
    if isinstance(body, dict):
        value = body.get(field)
        if value is None and fallback_field:
            value = body.get(fallback_field)

    if not isinstance(value, str) or not value:
        logger.warning(f"✗ {description}: '{field}' missing from response")
        return FetchOutcome.failure(build_error_report(description, response))

    return FetchOutcome.success(value)
