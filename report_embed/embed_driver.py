# ============================================================================
# EMBED DRIVER - Hands the resolved credentials to the embedding surface
# ============================================================================
# Once the access token, embed URL and embed token are all present, the
# driver:
#
# 1. Builds the embed configuration (report id, embed token type, access token,
#    embed URL, transparent background)
# 2. Tears down any report already embedded in the container
# 3. Embeds the report and subscribes its lifecycle events exactly once:
#    - loaded   -> append the country filter to the active filters
#    - rendered -> informational log
#    - error    -> diagnostic log, no state change
# 4. Releases the surface resources again on teardown
# ============================================================================

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional, Set

from .surface import EmbedHandle, EmbeddingSurface, ReportContainer, SurfaceEvent

logger = logging.getLogger(__name__)

TOKEN_TYPE_EMBED = "Embed"
BACKGROUND_TRANSPARENT = "Transparent"

COUNTRY_FILTER: Dict[str, Any] = {
    "$schema": "http://powerbi.com/product/schema#basic",
    "target": {
        "table": "Country",
        "column": "country_name"
    },
    "operator": "In",
    "values": ["India"],
    "filterType": 1,
    "requireSingleSelection": False
}


def build_embed_config(access_token: str, embed_url: str, report_id: str) -> Dict[str, Any]:
    """Build the configuration passed to the embedding surface."""
    return {
        "type": "report",
        "tokenType": TOKEN_TYPE_EMBED,
        "accessToken": access_token,
        "embedUrl": embed_url,
        "id": report_id,
        "settings": {
            "background": BACKGROUND_TRANSPARENT
        }
    }


def merge_filters(
    existing: List[Dict[str, Any]],
    extra: Dict[str, Any] = COUNTRY_FILTER
) -> List[Dict[str, Any]]:
    """Append extra after the existing filters. Nothing is reordered or deduplicated."""
    return [*existing, copy.deepcopy(extra)]


class EmbeddedReport:
    """
    One embedded report and its lifecycle subscriptions.

    Subscriptions are made once, when the report is created, and removed
    in dispose(). The handle must not be used after dispose().
    """

    EVENTS = ("loaded", "rendered", "error")

    def __init__(
        self,
        surface: EmbeddingSurface,
        container: ReportContainer,
        handle: EmbedHandle,
        config: Dict[str, Any],
        extra_filter: Dict[str, Any] = COUNTRY_FILTER
    ):
        self.surface = surface
        self.container = container
        self.handle = handle
        self.config = config
        self.extra_filter = extra_filter
        self.disposed = False
        self.last_error: Any = None
        self._pending: Set[asyncio.Future] = set()

        callbacks = {
            "loaded": self._on_loaded,
            "rendered": self._on_rendered,
            "error": self._on_error,
        }
        for event in self.EVENTS:
            # Replace anything the surface kept from an earlier registration
            handle.off(event)
            handle.on(event, callbacks[event])

    def _on_loaded(self, event: SurfaceEvent) -> None:
        task = asyncio.ensure_future(self.apply_filters())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _on_rendered(self, event: SurfaceEvent) -> None:
        logger.info("Report render successful")

    def _on_error(self, event: SurfaceEvent) -> None:
        self.last_error = event.detail
        logger.error(f"Embedded report error: {event.detail}")

    async def apply_filters(self) -> Optional[List[Dict[str, Any]]]:
        """
        Read the active filters, append the extra filter and apply the result.

        The report is already rendering when this runs, so a failure is
        logged and otherwise ignored.

        Returns:
            The filters applied, or None if applying them failed
        """
        try:
            existing = await self.handle.get_filters()
            combined = merge_filters(list(existing or []), self.extra_filter)
            await self.handle.set_filters(combined)
        except Exception:
            logger.error("Failed to apply report filters", exc_info=True)
            return None

        logger.info(f"✓ Applied {len(combined)} report filter(s)")
        return combined

    async def settle(self) -> None:
        """Wait for any filter merge still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def dispose(self) -> None:
        """Unsubscribe the lifecycle callbacks and release the surface resources."""
        if self.disposed:
            return
        for event in self.EVENTS:
            self.handle.off(event)
        self.surface.reset(self.container)
        self.disposed = True
        logger.info(f"Released embedded report {self.config.get('id')}")


class EmbedDriver:
    """
    Embeds reports into containers, one live report per container.
    """

    def __init__(self, surface: EmbeddingSurface, extra_filter: Dict[str, Any] = COUNTRY_FILTER):
        self.surface = surface
        self.extra_filter = extra_filter
        self._reports: Dict[int, EmbeddedReport] = {}

    def embed(
        self,
        container: ReportContainer,
        access_token: str,
        embed_url: str,
        embed_token: str,
        report_id: str
    ) -> EmbeddedReport:
        """
        Embed a report, replacing whatever the container held before.

        Args:
            container: Target container
            access_token: Access token handed to the surface in the configuration
            embed_url: Embed URL of the report
            embed_token: Embed token scoped to the report and its dataset; must be present
            report_id: Report to embed

        Returns:
            The EmbeddedReport owning the new handle
        """
        if not (access_token and embed_url and embed_token):
            raise ValueError("Access token, embed URL and embed token are all required to embed")

        self.release(container)

        config = build_embed_config(access_token, embed_url, report_id)
        handle = self.surface.embed(container, config)
        report = EmbeddedReport(self.surface, container, handle, config, self.extra_filter)
        self._reports[id(container)] = report

        logger.info(f"✓ Report {report_id} embedded into {container.container_id}")
        return report

    def current(self, container: ReportContainer) -> Optional[EmbeddedReport]:
        """Return the live report in the container, if any."""
        return self._reports.get(id(container))

    def release(self, container: ReportContainer) -> None:
        """Tear down the report embedded in the container, if any."""
        report = self._reports.pop(id(container), None)
        if report is not None:
            report.dispose()
