from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Tuple

from loguru import logger

from .events import (
    KEY_BACKSPACE,
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_UP,
    KeyPress,
    Message,
)
from .wiki.types import SearchHit, SearchResponse, WikiError


class Tab(Enum):
    HOME = "Home"
    RESULTS = "Results"


class InputMode(Enum):
    NORMAL = "normal"
    SEARCHING = "searching"
    READING = "reading"


class Encyclopedia(Protocol):
    def search(self, query: str) -> SearchResponse: ...

    def fetch_article(self, page_id: int, width: int) -> str: ...


@dataclass
class OpenedArticle:
    hit: SearchHit
    body: Optional[str] = None
    scroll_offset: int = 0


@dataclass
class AppState:
    active_tab: Tab = Tab.HOME
    input_mode: InputMode = InputMode.NORMAL
    search_query: str = ""
    results: Tuple[SearchHit, ...] = ()
    selected_index: Optional[int] = None
    opened_article: Optional[OpenedArticle] = None
    total_hits: int = 0
    last_query: str = ""
    status_message: str = ""
    last_key: str = ""
    should_quit: bool = False

    def selected_hit(self) -> Optional[SearchHit]:
        if self.selected_index is None:
            return None
        if not 0 <= self.selected_index < len(self.results):
            return None
        return self.results[self.selected_index]


class StateMachine:
    """Applies pump messages to an ``AppState`` and calls out to the encyclopedia."""

    def __init__(self, backend: Encyclopedia):
        self.backend = backend

    def update(self, state: AppState, message: Message) -> AppState:
        if not isinstance(message, KeyPress):
            return state
        key = message.key
        state.last_key = key
        state.status_message = ""

        if state.input_mode is InputMode.SEARCHING:
            self._handle_search_key(state, key)
        elif state.input_mode is InputMode.READING:
            self._handle_reading_key(state, key)
        else:
            self._handle_normal_key(state, key)
        return state

    def ensure_article_body(self, state: AppState, width: int) -> bool:
        """Fetch the opened article's body if it is still pending.

        Returns True when a fetch was issued. A failed fetch closes the
        article and leaves a status message instead of raising.
        """
        article = state.opened_article
        if state.input_mode is not InputMode.READING or article is None:
            return False
        if article.body is not None:
            return False
        try:
            article.body = self.backend.fetch_article(article.hit.page_id, width)
        except WikiError as exc:
            logger.warning("Fetching {!r} failed: {}", article.hit.title, exc)
            self._close_article(state)
            state.status_message = f"Could not load {article.hit.title}: {exc}"
        return True

    # ===== Modes =====

    def _handle_search_key(self, state: AppState, key: str) -> None:
        if key == KEY_ESCAPE:
            state.input_mode = InputMode.NORMAL
        elif key == KEY_ENTER:
            self._run_search(state)
        elif key == KEY_BACKSPACE:
            state.search_query = state.search_query[:-1]
        elif len(key) == 1 and key.isprintable():
            state.search_query += key

    def _handle_reading_key(self, state: AppState, key: str) -> None:
        article = state.opened_article
        if key == KEY_ESCAPE or article is None:
            self._close_article(state)
        elif key == KEY_DOWN:
            article.scroll_offset += 1
        elif key == KEY_UP:
            article.scroll_offset = max(0, article.scroll_offset - 1)
        else:
            self._switch_tab(state, key)

    def _handle_normal_key(self, state: AppState, key: str) -> None:
        if key == "q":
            state.should_quit = True
        elif key == "s":
            state.input_mode = InputMode.SEARCHING
        elif self._switch_tab(state, key):
            return
        elif state.active_tab is not Tab.RESULTS:
            return
        elif key == KEY_DOWN:
            self._move_selection(state, 1)
        elif key == KEY_UP:
            self._move_selection(state, -1)
        elif key == KEY_ENTER:
            self._open_selected(state)

    # ===== Actions =====

    def _switch_tab(self, state: AppState, key: str) -> bool:
        if key == "h":
            state.active_tab = Tab.HOME
            return True
        if key == "r":
            state.active_tab = Tab.RESULTS
            return True
        return False

    def _run_search(self, state: AppState) -> None:
        query = state.search_query.strip()
        if not query:
            state.status_message = "Type a search term first"
            return
        try:
            response = self.backend.search(query)
        except WikiError as exc:
            logger.warning("Search {!r} failed: {}", query, exc)
            state.status_message = f"Search failed: {exc}"
            return

        state.results = tuple(response.hits)
        state.selected_index = 0 if state.results else None
        state.total_hits = response.total_hits
        state.last_query = query
        state.input_mode = InputMode.NORMAL
        state.active_tab = Tab.RESULTS
        if not state.results and response.suggestion:
            state.status_message = f"No results. Did you mean: {response.suggestion}?"

    def _move_selection(self, state: AppState, step: int) -> None:
        count = len(state.results)
        if count == 0:
            state.selected_index = None
            return
        current = state.selected_index
        if current is None or not 0 <= current < count:
            current = 0
            step = 0
        state.selected_index = (current + step) % count

    def _open_selected(self, state: AppState) -> None:
        hit = state.selected_hit()
        if hit is None:
            return
        state.opened_article = OpenedArticle(hit=hit)
        state.input_mode = InputMode.READING

    def _close_article(self, state: AppState) -> None:
        state.opened_article = None
        state.input_mode = InputMode.NORMAL
