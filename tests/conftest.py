import asyncio
from typing import Callable, Dict, List, Optional, Union

import httpx
import pytest

from report_embed.config import EmbedSettings
from report_embed.error_report import ErrorReport, FetchOutcome
from report_embed.surface import HeadlessSurface, ReportContainer

TOKEN_URL = "https://login.example.test/oauth2/v2.0/token"
API_BASE_URL = "https://api.example.test/v1.0/myorg"


def failure(*lines: str) -> FetchOutcome:
    return FetchOutcome.failure(ErrorReport(lines=tuple(lines)))


async def drain(ticks: int = 10) -> None:
    """Let pending tasks run up to their next suspension point."""
    for _ in range(ticks):
        await asyncio.sleep(0)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class FakeAuthenticator:
    """Returns the given outcomes in order; the last one repeats."""

    def __init__(self, *outcomes: FetchOutcome, gated: bool = False):
        self.outcomes = list(outcomes) or [FetchOutcome.success("T")]
        self.gated = gated
        self.calls = 0
        self.gates: List[asyncio.Event] = []

    async def fetch_access_token(self) -> FetchOutcome:
        index = self.calls
        self.calls += 1
        if self.gated:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        return self.outcomes[min(index, len(self.outcomes) - 1)]


class FakeReportApi:
    """
    Records calls. Each outcome argument is one outcome or a list used call
    by call (the last one repeats). When gated, every call waits on its own
    gate until release() is called for it.
    """

    def __init__(
        self,
        embed_url: Union[FetchOutcome, List[FetchOutcome], None] = None,
        embed_token: Union[FetchOutcome, List[FetchOutcome], None] = None,
        gated: bool = False
    ):
        self.outcomes = {
            "embed_url": _as_list(embed_url, FetchOutcome.success("U")),
            "embed_token": _as_list(embed_token, FetchOutcome.success("E")),
        }
        self.gated = gated
        self.gates: Dict[str, List[asyncio.Event]] = {"embed_url": [], "embed_token": []}
        self.url_calls: List[tuple] = []
        self.token_calls: List[tuple] = []

    def release(self, slot: str, call: Optional[int] = None) -> None:
        """Release one call of a slot by index, or every call made so far."""
        gates = self.gates[slot] if call is None else [self.gates[slot][call]]
        for gate in gates:
            gate.set()

    async def fetch_embed_url(self, access_token, workspace_id, report_id) -> FetchOutcome:
        self.url_calls.append((access_token, workspace_id, report_id))
        return await self._respond("embed_url", len(self.url_calls) - 1)

    async def fetch_embed_token(self, access_token, dataset_id, report_id) -> FetchOutcome:
        self.token_calls.append((access_token, dataset_id, report_id))
        return await self._respond("embed_token", len(self.token_calls) - 1)

    async def _respond(self, slot: str, index: int) -> FetchOutcome:
        if self.gated:
            gate = asyncio.Event()
            self.gates[slot].append(gate)
            await gate.wait()
        outcomes = self.outcomes[slot]
        return outcomes[min(index, len(outcomes) - 1)]


def _as_list(outcome, default: FetchOutcome) -> List[FetchOutcome]:
    if outcome is None:
        return [default]
    if isinstance(outcome, FetchOutcome):
        return [outcome]
    return list(outcome)


@pytest.fixture
def settings() -> EmbedSettings:
    return EmbedSettings(
        workspace_id="ws-1",
        report_id="rpt-1",
        dataset_id="ds-1",
        client_id="client-1",
        client_secret="s3cret",
        token_url=TOKEN_URL,
        api_base_url=API_BASE_URL
    )


@pytest.fixture
def container() -> ReportContainer:
    return ReportContainer()


@pytest.fixture
def surface() -> HeadlessSurface:
    return HeadlessSurface()
