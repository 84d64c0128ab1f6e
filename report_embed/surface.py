# ============================================================================
# EMBEDDING SURFACE - Report container and rendering component interfaces
# ============================================================================
# The component that actually renders the report is an external
# collaborator. The orchestrator only relies on:
#
# - surface.embed(container, config) -> handle
# - surface.reset(container)          (tear down whatever is embedded there)
# - handle.on(event, callback) / handle.off(event)
# - await handle.get_filters() / await handle.set_filters(filters)
#
# HeadlessSurface implements that contract without rendering anything. The
# command line dry run and the test suite drive it by emitting lifecycle
# events by hand.
# ============================================================================

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

LOADING_TEXT = "Loading the report..."


@dataclass(frozen=True)
class SurfaceEvent:
    """Lifecycle event delivered to handle callbacks."""

    name: str
    detail: Any = None


EventCallback = Callable[[SurfaceEvent], None]


class ReportContainer:
    """
    Display area the report is embedded into.

    Holds plain text lines while no report is embedded: the loading message
    at mount, or the error report after a failure.
    """

    def __init__(self, container_id: str = "reportContainer"):
        self.container_id = container_id
        self.lines: List[str] = [LOADING_TEXT]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def show_loading(self) -> None:
        self.lines = [LOADING_TEXT]

    def show_lines(self, lines: Sequence[str]) -> None:
        """Replace the entire content, one entry per line."""
        self.lines = list(lines)

    def clear(self) -> None:
        self.lines = []

    def __repr__(self) -> str:
        return f"ReportContainer({self.container_id!r})"


class EmbedHandle(ABC):
    """Handle to one embedded report instance."""

    @abstractmethod
    def on(self, event: str, callback: EventCallback) -> None:
        """Register a callback for a lifecycle event."""

    @abstractmethod
    def off(self, event: str) -> None:
        """Remove every callback registered for a lifecycle event."""

    @abstractmethod
    async def get_filters(self) -> List[Dict[str, Any]]:
        """Return the filters currently applied to the report."""

    @abstractmethod
    async def set_filters(self, filters: List[Dict[str, Any]]) -> None:
        """Replace the filters applied to the report."""


class EmbeddingSurface(ABC):
    """Component that renders reports into containers."""

    @abstractmethod
    def embed(self, container: ReportContainer, config: Dict[str, Any]) -> EmbedHandle:
        """Embed a report into the container and return its handle."""

    @abstractmethod
    def reset(self, container: ReportContainer) -> None:
        """Release whatever is embedded in the container."""


class HeadlessHandle(EmbedHandle):
    """In-memory handle; callbacks fire only when emit() is called."""

    def __init__(self, config: Dict[str, Any], filters: Optional[List[Dict[str, Any]]] = None):
        self.config = config
        self.filters: List[Dict[str, Any]] = list(filters or [])
        self.applied_filters: List[List[Dict[str, Any]]] = []
        self.disposed = False
        self._callbacks: Dict[str, List[EventCallback]] = {}

    def on(self, event: str, callback: EventCallback) -> None:
        self._callbacks.setdefault(event, []).append(callback)

    def off(self, event: str) -> None:
        self._callbacks.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._callbacks.get(event, []))

    async def get_filters(self) -> List[Dict[str, Any]]:
        return list(self.filters)

    async def set_filters(self, filters: List[Dict[str, Any]]) -> None:
        self.filters = list(filters)
        self.applied_filters.append(list(filters))

    def emit(self, event: str, detail: Any = None) -> None:
        """Deliver a lifecycle event to the registered callbacks."""
        for callback in list(self._callbacks.get(event, [])):
            callback(SurfaceEvent(name=event, detail=detail))


class HeadlessSurface(EmbeddingSurface):
    """
    Embedding surface that records what it is asked to do.

    Keeps at most one live handle per container; embedding into an occupied
    container resets the previous handle first.
    """

    def __init__(self, initial_filters: Optional[List[Dict[str, Any]]] = None):
        self.initial_filters = list(initial_filters or [])
        self.embeds: List[Tuple[ReportContainer, Dict[str, Any]]] = []
        self.resets: List[ReportContainer] = []
        self._handles: Dict[int, HeadlessHandle] = {}

    def embed(self, container: ReportContainer, config: Dict[str, Any]) -> HeadlessHandle:
        if id(container) in self._handles:
            logger.warning(f"Container {container.container_id} already holds a report, resetting it")
            self.reset(container)

        handle = HeadlessHandle(config, filters=self.initial_filters)
        self._handles[id(container)] = handle
        self.embeds.append((container, config))
        logger.debug(f"Embedded report {config.get('id')} into {container.container_id}")
        return handle

    def reset(self, container: ReportContainer) -> None:
        handle = self._handles.pop(id(container), None)
        if handle is not None:
            handle.disposed = True
        self.resets.append(container)

    def handle_for(self, container: ReportContainer) -> Optional[HeadlessHandle]:
        """Return the live handle embedded in the container, if any."""
        return self._handles.get(id(container))
