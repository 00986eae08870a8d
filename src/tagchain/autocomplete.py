"""Debounced, stale-safe tag autocomplete.

Keystrokes arrive faster than AO3 can answer and answers can come back out of
order. The controller waits for a quiet period before looking anything up,
stamps each lookup with a generation number, and only renders the answer whose
generation is still the newest when it arrives. Nothing is actually cancelled
on the wire; superseded answers are just ignored.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from tagchain.errors import LookupFailure, RateLimited

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.4
SUGGESTION_LIMIT = 30
MIN_TERM_LENGTH = 2


class ViewState(Enum):
    CLOSED = "closed"
    LOADING = "loading"
    RESULTS = "results"
    EMPTY = "empty"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


@dataclass(frozen=True)
class Suggestion:
    name: str
    already_used: bool = False


@dataclass(frozen=True)
class AutocompleteView:
    """What the suggestion dropdown should show."""
    state: ViewState
    query: str = ""
    suggestions: tuple[Suggestion, ...] = ()
    message: str = ""


CLOSED_VIEW = AutocompleteView(ViewState.CLOSED)


class AutocompleteController:
    """Turns a stream of input changes into rendered suggestion lists.

    Must be driven from inside a running asyncio event loop.

    Example:
        controller = AutocompleteController(
            fetch=api.autocomplete_async,
            render=dropdown.show,
            is_used=game.is_used,
        )
        input.on_change(controller.on_input)
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[list[dict[str, Any]]]],
        render: Callable[[AutocompleteView], None],
        is_used: Optional[Callable[[str], bool]] = None,
        debounce: float = DEBOUNCE_SECONDS,
        limit: int = SUGGESTION_LIMIT,
        min_length: int = MIN_TERM_LENGTH,
    ) -> None:
        """Initialize the controller.

        Args:
            fetch: Async lookup returning [{"name": ...}, ...] for a term.
            render: Called with every new view.
            is_used: Marks suggestions that are already in the chain.
            debounce: Quiet period in seconds before a lookup is issued.
            limit: Maximum number of suggestions shown.
            min_length: Shorter input closes the dropdown without a lookup.
        """
        self._fetch = fetch
        self._render = render
        self._is_used = is_used or (lambda name: False)
        self.debounce = debounce
        self.limit = limit
        self.min_length = min_length

        self._timer: Optional[asyncio.TimerHandle] = None
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()
        self.view = CLOSED_VIEW

    @property
    def generation(self) -> int:
        """Number of the most recently issued lookup."""
        return self._generation

    def _show(self, view: AutocompleteView) -> None:
        self.view = view
        self._render(view)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def on_input(self, text: str) -> None:
        """Handle a change of the input text."""
        text = text.strip()
        self._cancel_timer()

        if len(text) < self.min_length:
            # Also invalidates any lookup still in flight
            self._generation += 1
            self._show(CLOSED_VIEW)
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce, self._issue, text)

    def close(self) -> None:
        """Hide the dropdown and forget any pending or in-flight lookup."""
        self._cancel_timer()
        self._generation += 1
        self._show(CLOSED_VIEW)

    def _issue(self, text: str) -> None:
        self._timer = None
        self._generation += 1
        generation = self._generation

        self._show(AutocompleteView(ViewState.LOADING, text, message="Searching AO3..."))

        task = asyncio.ensure_future(self._lookup(text, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _lookup(self, text: str, generation: int) -> None:
        try:
            items = await self._fetch(text)
        except RateLimited:
            if generation == self._generation:
                self._show(AutocompleteView(
                    ViewState.RATE_LIMITED, text, message="AO3 rate limit hit - wait a moment",
                ))
            return
        except LookupFailure as e:
            logger.warning(f"Autocomplete lookup for {text!r} failed: {e}")
            if generation == self._generation:
                self._show(AutocompleteView(ViewState.ERROR, text, message="Could not reach AO3"))
            return
        except Exception:
            logger.exception(f"Unexpected autocomplete failure for {text!r}")
            if generation == self._generation:
                self._show(AutocompleteView(ViewState.ERROR, text, message="Could not reach AO3"))
            return

        if generation != self._generation:
            logger.debug(f"Dropping stale suggestions for {text!r}")
            return

        suggestions = tuple(
            Suggestion(item["name"], self._is_used(item["name"]))
            for item in items[: self.limit]
            if item.get("name")
        )
        if not suggestions:
            self._show(AutocompleteView(ViewState.EMPTY, text, message="No tags found"))
        else:
            self._show(AutocompleteView(ViewState.RESULTS, text, suggestions))

    def selectable(self, index: int) -> Optional[str]:
        """Name of the suggestion at index, unless it is already used."""
        if self.view.state is not ViewState.RESULTS:
            return None
        if not 0 <= index < len(self.view.suggestions):
            return None
        suggestion = self.view.suggestions[index]
        return None if suggestion.already_used else suggestion.name

    async def wait_idle(self) -> None:
        """Wait for lookups already issued to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
