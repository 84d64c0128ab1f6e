# ============================================================================
# EMBED ORCHESTRATOR - Credential and embedding state machine
# ============================================================================
# Drives the three-stage handshake for one report container:
#
#   IDLE -> AWAITING_ACCESS_TOKEN -> AWAITING_URL_AND_TOKEN -> READY -> EMBEDDED
#                 \                        \
#                  +----------> FAILED <----+
#
# 1. mount() starts a new cycle and runs a render pass
# 2. The access token is fetched once per cycle
# 3. The embed URL and embed token are fetched concurrently, both gated on
#    the access token only
# 4. When all three artifacts are present the report is embedded once
#
# render() can be called any number of times: it only looks at the current
# state, so repeated passes never re-fetch tokens or re-embed the report.
#
# Responses are applied only if their cycle is still current and the
# orchestrator is still waiting for them; anything else is stale and is
# dropped.
# ============================================================================

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Optional, Set, Tuple

from .client_auth import ClientAuthenticator, create_client_authenticator
from .config import EmbedSettings
from .embed_driver import EmbedDriver, EmbeddedReport
from .error_report import ErrorReport, FetchOutcome
from .report_api import ReportApiClient, create_report_api_client
from .surface import EmbeddingSurface, ReportContainer

logger = logging.getLogger(__name__)

MISSING_IDENTIFIERS = "Please assign values for workspace id and report id"


class EmbedState(str, Enum):
    IDLE = "idle"
    AWAITING_ACCESS_TOKEN = "awaiting_access_token"
    AWAITING_URL_AND_TOKEN = "awaiting_url_and_token"
    READY = "ready"
    EMBEDDED = "embedded"
    FAILED = "failed"


class EmbedOrchestrator:
    """
    Owns the artifact slots and the embedded report of one container.

    The access token, embed URL and embed token start empty, are written
    once per successful fetch and are cleared again by unmount().
    """

    def __init__(
        self,
        settings: EmbedSettings,
        container: ReportContainer,
        surface: EmbeddingSurface,
        authenticator: Optional[ClientAuthenticator] = None,
        report_api: Optional[ReportApiClient] = None,
        driver: Optional[EmbedDriver] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            settings: Report identifiers and client credentials
            container: Container the report is shown in
            surface: Embedding surface that renders the report
            authenticator: Access token fetcher (built from settings if omitted)
            report_api: Embed URL / embed token client (built from settings if omitted)
            driver: Embed driver (built around the surface if omitted)
        """
        self.settings = settings
        self.container = container
        self.authenticator = authenticator or create_client_authenticator(settings)
        self.report_api = report_api or create_report_api_client(settings)
        self.driver = driver or EmbedDriver(surface)

        self.state = EmbedState.IDLE
        self.mounted = False
        self.access_token: Optional[str] = None
        self.embed_url: Optional[str] = None
        self.embed_token: Optional[str] = None
        self.error = ErrorReport.empty()
        self.report: Optional[EmbeddedReport] = None

        self._cycle = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def cycle(self) -> int:
        return self._cycle

    @property
    def is_ready(self) -> bool:
        """All three artifacts present and no error."""
        return (
            self.access_token is not None
            and self.embed_url is not None
            and self.embed_token is not None
            and not self.error
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mount(self) -> EmbedState:
        """Start a new cycle for the container and run the first render pass."""
        if self.mounted:
            logger.debug("Already mounted, running a render pass only")
            return self.render()

        self._cycle += 1
        self.mounted = True
        self.state = EmbedState.IDLE
        self.container.show_loading()
        logger.info(f"Mounted {self.container.container_id} (cycle {self._cycle})")
        return self.render()

    def unmount(self) -> None:
        """
        Release the embedded report and clear the cycle's state.

        The surface is reset for the container even when nothing was
        embedded.

        Requests still in flight are not aborted; their responses arrive
        for a cycle that is no longer current and are dropped.
        """
        if self.driver.current(self.container) is not None:
            self.driver.release(self.container)
        else:
            self.driver.surface.reset(self.container)
        self.report = None
        self.access_token = None
        self.embed_url = None
        self.embed_token = None
        self.error = ErrorReport.empty()
        self._cycle += 1
        self.mounted = False
        self._transition(EmbedState.IDLE)
        logger.info(f"Unmounted {self.container.container_id}")

    def render(self) -> EmbedState:
        """
        Re-evaluate the current state; safe to call any number of times.

        Returns:
            The state after the pass
        """
        if not self.mounted:
            return self.state

        if self.state is EmbedState.FAILED:
            self.container.show_lines(self.error.lines)
        elif self.state is EmbedState.IDLE:
            self._start()
        elif self.state is EmbedState.READY and self.is_ready:
            self._embed()

        return self.state

    async def settle(self) -> None:
        """Wait until every request started by this orchestrator has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self.report is not None:
            await self.report.settle()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _start(self) -> None:
        if not self.settings.has_report_identifiers():
            self._fail(ErrorReport.configuration(MISSING_IDENTIFIERS))
            return

        self._transition(EmbedState.AWAITING_ACCESS_TOKEN)
        self._spawn(self._acquire_access_token(self._cycle))

    def _embed(self) -> None:
        # Error content from an earlier cycle must not stay behind the report
        self.container.clear()
        self.report = self.driver.embed(
            self.container,
            self.access_token,
            self.embed_url,
            self.embed_token,
            self.settings.report_id
        )
        self._transition(EmbedState.EMBEDDED)

    def _fail(self, report: ErrorReport) -> None:
        self.error = report
        self._transition(EmbedState.FAILED)
        for line in report.lines:
            logger.warning(f"  {line}")
        self.container.show_lines(report.lines)

    def _transition(self, state: EmbedState) -> None:
        if state is not self.state:
            logger.info(f"State: {self.state.value} → {state.value}")
        self.state = state

    def _is_current(self, cycle: int, expected: EmbedState) -> bool:
        return cycle == self._cycle and self.state is expected

    # ------------------------------------------------------------------
    # Network stages
    # ------------------------------------------------------------------

    async def _acquire_access_token(self, cycle: int) -> None:
        outcome = await self.authenticator.fetch_access_token()

        if not self._is_current(cycle, EmbedState.AWAITING_ACCESS_TOKEN):
            logger.debug(f"Discarding stale access token response (cycle {cycle})")
            return

        if not outcome.ok:
            self._fail(outcome.report)
            return

        self.access_token = outcome.value
        self._transition(EmbedState.AWAITING_URL_AND_TOKEN)
        await self._acquire_embed_artifacts(cycle, outcome.value)

    async def _acquire_embed_artifacts(self, cycle: int, access_token: str) -> None:
        calls = [
            _labelled('embed_url', self.report_api.fetch_embed_url(
                access_token, self.settings.workspace_id, self.settings.report_id)),
            _labelled('embed_token', self.report_api.fetch_embed_token(
                access_token, self.settings.dataset_id, self.settings.report_id)),
        ]

        # Outcomes are applied in completion order; the join is the loop end
        for finished in asyncio.as_completed(calls):
            slot, outcome = await finished
            self._apply_artifact(cycle, slot, outcome)

        if self._is_current(cycle, EmbedState.AWAITING_URL_AND_TOKEN) and self.is_ready:
            self._transition(EmbedState.READY)
            self.render()

    def _apply_artifact(self, cycle: int, slot: str, outcome: FetchOutcome) -> None:
        if cycle != self._cycle:
            logger.debug(f"Discarding stale {slot} response (cycle {cycle})")
            return

        if outcome.ok:
            if self.state is not EmbedState.AWAITING_URL_AND_TOKEN:
                logger.debug(f"Discarding {slot} response, state is {self.state.value}")
                return
            setattr(self, slot, outcome.value)
            return

        # Last failure observed wins; sibling reports are never blended
        if self.state in (EmbedState.AWAITING_URL_AND_TOKEN, EmbedState.FAILED):
            self._fail(outcome.report)
        else:
            logger.debug(f"Discarding {slot} failure, state is {self.state.value}")

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Embed pipeline task failed", exc_info=task.exception())


async def _labelled(slot: str, call: Awaitable[FetchOutcome]) -> Tuple[str, FetchOutcome]:
    return slot, await call
