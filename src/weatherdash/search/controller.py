from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..domain.models import Location

if TYPE_CHECKING:
    from ..session import WeatherSession

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3
NO_HIGHLIGHT = -1

SearchHandler = Callable[[str], Awaitable[None]]
SelectHandler = Callable[[Location], Awaitable[None]]


class SearchInputController:
    """Keystroke debouncing and keyboard navigation for the location search box.

    Text changes are emitted to ``on_search`` once typing pauses for
    ``debounce_seconds``. A keystroke inside the window replaces the pending
    emission; an emission that already started is left to finish, and the
    session discards its response if a newer search supersedes it.
    """

    def __init__(
        self,
        on_search: SearchHandler,
        on_select: SelectHandler,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._on_search = on_search
        self._on_select = on_select
        self._debounce_seconds = debounce_seconds
        self._pending: asyncio.Task[None] | None = None
        self._emitting: set[asyncio.Task[None]] = set()

        self.query = ""
        self.results: list[Location] = []
        self.highlighted_index = NO_HIGHLIGHT
        self._open = False

    @property
    def is_dropdown_open(self) -> bool:
        return self._open and bool(self.query.strip())

    @property
    def highlighted(self) -> Location | None:
        if 0 <= self.highlighted_index < len(self.results):
            return self.results[self.highlighted_index]
        return None

    @property
    def has_pending_search(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def input(self, text: str) -> None:
        self.query = text
        self.highlighted_index = NO_HIGHLIGHT
        self.cancel()

        if not text.strip():
            self._open = False
            return

        self._open = True
        self._pending = asyncio.get_running_loop().create_task(self._emit_after_delay(text))

    def set_results(self, results: list[Location]) -> None:
        self.results = list(results)
        self.highlighted_index = NO_HIGHLIGHT

    async def key_down(self, key: str) -> bool:
        if key in ("ArrowDown", "ArrowUp", "Enter") and not self.is_dropdown_open:
            return False
        if key == "ArrowDown":
            if self.results:
                self.highlighted_index = min(self.highlighted_index + 1, len(self.results) - 1)
            return True
        if key == "ArrowUp":
            if self.results:
                self.highlighted_index = max(self.highlighted_index - 1, 0)
            return True
        if key == "Enter":
            selected = self.highlighted
            if selected is not None:
                await self._select(selected)
            return True
        if key == "Escape":
            self._open = False
            self.highlighted_index = NO_HIGHLIGHT
            return True
        return False

    async def click(self, result: Location) -> None:
        await self._select(result)

    def focus(self) -> None:
        self.highlighted_index = NO_HIGHLIGHT
        if not self.query.strip():
            self._open = False

    def blur(self) -> None:
        self._open = False
        self.highlighted_index = NO_HIGHLIGHT

    def cancel(self) -> None:
        pending = self._pending
        self._pending = None
        if pending is not None and not pending.done():
            pending.cancel()

    async def flush(self) -> None:
        """Wait for the pending emission and any search it started."""
        if self._pending is not None:
            await asyncio.gather(self._pending, return_exceptions=True)
        if self._emitting:
            await asyncio.gather(*self._emitting, return_exceptions=True)

    async def _emit_after_delay(self, text: str) -> None:
        await asyncio.sleep(self._debounce_seconds)
        task = asyncio.current_task()
        # Past this point a keystroke no longer cancels the emission.
        if self._pending is task:
            self._pending = None
        if task is not None:
            self._emitting.add(task)
        try:
            LOGGER.debug("Emitting debounced search for %r", text)
            await self._on_search(text)
        finally:
            if task is not None:
                self._emitting.discard(task)

    async def _select(self, result: Location) -> None:
        self.cancel()
        self.query = ""
        self.results = []
        self.highlighted_index = NO_HIGHLIGHT
        self._open = False
        await self._on_select(result)

    def snapshot(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "highlighted_index": self.highlighted_index,
            "dropdown_open": self.is_dropdown_open,
            "search_pending": self.has_pending_search,
        }


def bind_search_controller(
    session: WeatherSession,
    *,
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
) -> SearchInputController:
    """Wire a controller to a session so emitted searches refresh its result list."""

    async def on_search(query: str) -> None:
        await session.search_locations(query)
        controller.set_results(session.search_results)

    controller = SearchInputController(
        on_search,
        session.select_location,
        debounce_seconds=debounce_seconds,
    )
    return controller
