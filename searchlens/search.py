"""State and key handling of the search window.

The search window keeps the selected lenses, the current query, the list of
results and which result is selected. Handlers update that state and return
the side effects the window has to carry out as a list of actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Union

from searchlens.results import ResultListData, ResultListType

# A query starting with this searches lenses instead of documents.
LENS_SEARCH_PREFIX = "/"
# Shortest query that triggers a document search.
MIN_CHARS = 2
# Delay after the last keystroke before a query is sent.
QUERY_DEBOUNCE_MS = 256
# Keys whose default handling the search box suppresses.
PREVENT_DEFAULT_KEYS = frozenset({"ArrowUp", "ArrowDown", "Tab"})


class ActionKind(Enum):
    """Side effects requested by the search state."""

    # Open the URL of a result.
    OPEN_URL = "open_url"
    # Ask the host to hide the search window.
    ESCAPE = "escape"
    # Bring the result with the given index into view.
    SCROLL_TO_RESULT = "scroll_to_result"
    # Fit the window to its contents.
    RESIZE_WINDOW = "resize_window"
    # Empty the text of the search box.
    CLEAR_INPUT = "clear_input"


@dataclass(frozen=True)
class Action:
    """A side effect and its argument, if it takes one."""

    kind: ActionKind
    value: Optional[Union[str, int]] = None


@dataclass(frozen=True)
class SearchRequest:
    """A search to send to the backend."""

    kind: ResultListType
    query: str
    lenses: tuple[str, ...] = ()


def _scroll_to(idx: int) -> Action:
    return Action(ActionKind.SCROLL_TO_RESULT, idx)


@dataclass
class SearchState:
    """Selected lenses, query and results of the search window."""

    lens: list[str] = field(default_factory=list)
    query: str = ""
    results: list[ResultListData] = field(default_factory=list)
    selected_idx: int = 0

    def handle_key_down(self, key: str) -> list[Action]:
        """Update the state for a key pressed anywhere in the window.

        Raises IndexError when Enter is pressed with no result to select.
        """
        if key == "ArrowDown":
            max_idx = max(len(self.results) - 1, 0)
            self.selected_idx = min(self.selected_idx + 1, max_idx)
            return [_scroll_to(self.selected_idx)]

        if key == "ArrowUp":
            self.selected_idx = max(self.selected_idx, 1) - 1
            return [_scroll_to(self.selected_idx)]

        if key == "Enter":
            if not 0 <= self.selected_idx < len(self.results):
                raise IndexError(f"no result at index {self.selected_idx}")
            selected = self.results[self.selected_idx]
            if selected.url is not None:
                return [Action(ActionKind.OPEN_URL, selected.url)]
            # A lens was chosen: narrow the search to it and start over.
            self.lens = [*self.lens, selected.title]
            self.query = ""
            return [*self.clear_results(), Action(ActionKind.CLEAR_INPUT)]

        if key == "Escape":
            return [Action(ActionKind.ESCAPE)]

        if key == "Backspace":
            actions: list[Action] = []
            if not self.query and self.lens:
                self.lens = self.lens[:-1]
            if len(self.query) < MIN_CHARS:
                actions.extend(self.clear_results())
            return actions

        return []

    def handle_query_change(self, query: str) -> Optional[SearchRequest]:
        """Record the new query and return the search it calls for, if any."""
        self.query = query
        if query.startswith(LENS_SEARCH_PREFIX):
            return SearchRequest(
                kind=ResultListType.LENS_SEARCH,
                query=query[len(LENS_SEARCH_PREFIX):],
            )
        if len(query) >= MIN_CHARS:
            return SearchRequest(
                kind=ResultListType.DOC_SEARCH,
                query=query,
                lenses=tuple(self.lens),
            )
        return None

    def apply_results(self, results: Iterable[ResultListData]) -> list[Action]:
        """Show ``results``, keeping the selection within the new list."""
        self.results = list(results)
        max_idx = max(len(self.results), 1) - 1
        if max_idx < self.selected_idx:
            self.selected_idx = max_idx
        return [Action(ActionKind.RESIZE_WINDOW)]

    def clear_results(self) -> list[Action]:
        """Empty the results list."""
        self.results = []
        return [Action(ActionKind.RESIZE_WINDOW)]

    def reset(self) -> list[Action]:
        """Clear the query, results, selection and lenses."""
        self.query = ""
        self.results = []
        self.selected_idx = 0
        self.lens = []
        return [Action(ActionKind.CLEAR_INPUT), Action(ActionKind.RESIZE_WINDOW)]