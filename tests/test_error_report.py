"""
Tests for the shared request/parse routine and the error report layout.
"""

import httpx
import pytest

from report_embed.error_report import (
    ErrorKind,
    ErrorReport,
    FetchOutcome,
    build_error_report,
    fetch_field,
)

from conftest import mock_client

DESCRIPTION = "Error occurred while fetching the embed URL of the report"
URL = "https://api.example.test/thing"


def test_empty_report_is_falsy():
    assert not ErrorReport.empty()
    assert ErrorReport.configuration("missing ids")
    assert ErrorReport.configuration("missing ids").kind is ErrorKind.CONFIGURATION


def test_outcome_ok_only_with_value_and_no_report():
    assert FetchOutcome.success("U").ok
    assert not FetchOutcome.failure(ErrorReport(lines=("boom",))).ok


def test_report_with_request_id_and_service_code():
    response = httpx.Response(401, headers={"requestId": "req-42"})

    report = build_error_report(DESCRIPTION, response, {"error": {"code": "invalid_client"}})

    assert report.lines == (
        DESCRIPTION,
        "Request Id: req-42",
        "Error 401: invalid_client",
    )
    assert report.kind is ErrorKind.PROTOCOL


def test_report_omits_missing_request_id():
    response = httpx.Response(500)

    report = build_error_report(DESCRIPTION, response, None)

    assert report.lines == (DESCRIPTION, "Error 500: An error has occurred")


def test_report_for_transport_failure():
    report = build_error_report(DESCRIPTION, error=httpx.ConnectError("connection refused"))

    assert report.lines == (DESCRIPTION, "Network error: connection refused")
    assert report.kind is ErrorKind.NETWORK


@pytest.mark.asyncio
async def test_fetch_field_returns_value():
    async with mock_client(lambda request: httpx.Response(200, json={"embedUrl": "U"})) as client:
        outcome = await fetch_field(client, DESCRIPTION, "embedUrl", "GET", URL)

    assert outcome.ok
    assert outcome.value == "U"


@pytest.mark.asyncio
async def test_fetch_field_uses_fallback_spelling():
    async with mock_client(lambda request: httpx.Response(200, json={"access_token": "T"})) as client:
        outcome = await fetch_field(
            client, DESCRIPTION, "accessToken", "POST", URL, fallback_field="access_token"
        )

    assert outcome.value == "T"


@pytest.mark.asyncio
async def test_fetch_field_reports_http_error_with_code():
    def handler(request):
        return httpx.Response(
            403,
            json={"error": {"code": "PowerBINotAuthorizedException"}},
            headers={"RequestId": "abc"}
        )

    async with mock_client(handler) as client:
        outcome = await fetch_field(client, DESCRIPTION, "embedUrl", "GET", URL)

    assert not outcome.ok
    assert outcome.report.lines == (
        DESCRIPTION,
        "Request Id: abc",
        "Error 403: PowerBINotAuthorizedException",
    )


@pytest.mark.asyncio
async def test_fetch_field_reports_unparseable_body():
    def handler(request):
        return httpx.Response(502, text="<html>Bad gateway</html>")

    async with mock_client(handler) as client:
        outcome = await fetch_field(client, DESCRIPTION, "embedUrl", "GET", URL)

    assert outcome.report.lines == (DESCRIPTION, "Error 502: An error has occurred")


@pytest.mark.asyncio
async def test_fetch_field_treats_missing_field_as_parse_failure():
    async with mock_client(lambda request: httpx.Response(200, json={"id": "rpt-1"})) as client:
        outcome = await fetch_field(client, DESCRIPTION, "embedUrl", "GET", URL)

    assert not outcome.ok
    assert outcome.report.kind is ErrorKind.PARSE
    assert outcome.report.lines[-1] == "Error 200: An error has occurred"


@pytest.mark.asyncio
async def test_fetch_field_localizes_transport_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_client(handler) as client:
        outcome = await fetch_field(client, DESCRIPTION, "embedUrl", "GET", URL)

    assert outcome.report.kind is ErrorKind.NETWORK
    assert outcome.report.lines == (DESCRIPTION, "Network error: connection refused")


@pytest.mark.asyncio
async def test_fetch_field_localizes_undecodable_bodies():
    def handler(request):
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip"))

    async with mock_client(handler) as client:
        outcome = await fetch_field(client, DESCRIPTION, "embedUrl", "GET", URL)

    assert not outcome.ok
    assert outcome.report.kind is ErrorKind.PARSE
    assert outcome.report.lines[0] == DESCRIPTION
    assert outcome.report.lines[1].startswith("Request failed:")


def test_report_for_redirect_loop():
    error = httpx.TooManyRedirects("Exceeded maximum allowed redirects.")

    report = build_error_report(DESCRIPTION, error=error)

    assert report.lines == (DESCRIPTION, "Request failed: Exceeded maximum allowed redirects.")
    assert report.kind is ErrorKind.PROTOCOL
