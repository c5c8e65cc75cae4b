from __future__ import annotations

import sys
from typing import Optional

from bs4 import BeautifulSoup
from loguru import logger
from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import AppConfig
from .events import (
    Channel,
    InputFailure,
    InputPump,
    InputSourceError,
    KeySource,
    RawTerminal,
)
from .reflow import MIN_WIDTH
from .state import AppState, Encyclopedia, InputMode, StateMachine, Tab

HEADER_HEIGHT = 3
FOOTER_HEIGHT = 3
MENU_TITLES = ("Home", "Results", "Quit")
ATTRIBUTION = "xPedia - text from Wikipedia (CC BY-SA)"
NO_RESULTS = "No Results found"
HIGHLIGHT_STYLE = "bold black on yellow"


def list_width(width: int, config: AppConfig) -> int:
    return max(12, width * config.results_percent // 100)


def article_width(width: int, config: AppConfig) -> int:
    """Inner width of the detail panel: borders and padding take four columns."""
    return max(MIN_WIDTH, width - list_width(width, config) - 4)


def body_height(height: int) -> int:
    return max(3, height - HEADER_HEIGHT - FOOTER_HEIGHT)


# ===== Rendering =====


def render(state: AppState, width: int, height: int, config: AppConfig) -> Layout:
    layout = Layout()
    layout.split_column(
        Layout(name="header", size=HEADER_HEIGHT),
        Layout(name="body", ratio=1),
        Layout(name="footer", size=FOOTER_HEIGHT),
    )
    layout["header"].split_row(
        Layout(_render_menu(state), name="menu", ratio=1),
        Layout(_render_search_box(state), name="search", ratio=1),
    )

    if state.active_tab is Tab.HOME:
        layout["body"].update(_render_home())
    else:
        layout["body"].split_row(
            Layout(name="list", size=list_width(width, config)),
            Layout(name="detail", ratio=1),
        )
        panel_height = body_height(height)
        layout["body"]["list"].update(_render_result_list(state, panel_height))
        if state.input_mode is InputMode.READING and state.opened_article:
            layout["body"]["detail"].update(_render_article(state, panel_height))
        else:
            layout["body"]["detail"].update(_render_detail(state))

    layout["footer"].update(_render_footer(state, config))
    return layout


def _render_menu(state: AppState) -> Panel:
    menu = Text()
    for idx, title in enumerate(MENU_TITLES):
        if idx:
            menu.append(" | ", style="dim")
        active = title == state.active_tab.value
        rest_style = "bold yellow" if active else "white"
        menu.append(title[0], style="yellow underline")
        menu.append(title[1:], style=rest_style)
    return Panel(menu, title="Menu", border_style="white")


def _render_search_box(state: AppState) -> Panel:
    searching = state.input_mode is InputMode.SEARCHING
    query = Text(state.search_query, style="green")
    if searching:
        query.append("_", style="blink green")
    elif not state.search_query:
        query.append("press 's' to search", style="dim")
    query.no_wrap = True
    query.overflow = "ellipsis"
    return Panel(
        query,
        title="Search",
        border_style="bold yellow" if searching else "white",
    )


def _render_home() -> Panel:
    lines = Text(justify="center")
    lines.append("\nWelcome\n\nto\n\n")
    lines.append("xPedia", style="bold bright_blue")
    lines.append("\n\nPress 's' to search")
    return Panel(Align.center(lines), title="Home", border_style="white")


def _render_result_list(state: AppState, height: int) -> Panel:
    title = "Results"
    if state.last_query:
        title = f"Results ({len(state.results)} of {state.total_hits})"

    if not state.results:
        return Panel(Text(NO_RESULTS, style="dim"), title=title, border_style="white")

    visible = max(1, height - 2)
    selected = state.selected_index
    if selected is None or not 0 <= selected < len(state.results):
        selected = None
    start = 0
    if selected is not None and selected >= visible:
        start = selected - visible + 1

    text = Text(no_wrap=True, overflow="ellipsis")
    for idx, hit in enumerate(state.results[start : start + visible], start=start):
        if idx > start:
            text.append("\n")
        style = HIGHLIGHT_STYLE if idx == selected else ""
        text.append(hit.title, style=style)
    return Panel(text, title=title, border_style="white")


def _render_detail(state: AppState) -> Panel:
    hit = state.selected_hit()
    if hit is None:
        body = Text(NO_RESULTS, style="dim")
    else:
        table = Table(expand=True, padding=(0, 1), show_lines=False)
        table.add_column("Title", style="bold", ratio=15)
        table.add_column("Description", ratio=75)
        table.add_column("Wordcount", justify="right", no_wrap=True)
        table.add_row(Text(hit.title), snippet_text(hit.snippet), str(hit.word_count))
        hint = Text("\nEnter to read, Up/Down to browse", style="dim")
        body = Group(table, hint)
    return Panel(body, title="Detail", border_style="white")


def _render_article(state: AppState, height: int) -> Panel:
    article = state.opened_article
    visible = max(1, height - 2)
    if article.body is None:
        return Panel(
            Text("Loading...", style="dim"), title=article.hit.title, border_style="cyan"
        )

    lines = article.body.split("\n")
    offset = min(article.scroll_offset, max(0, len(lines) - visible))
    window = lines[offset : offset + visible]
    title = f"{article.hit.title}  line {offset + 1}/{len(lines)}"
    return Panel(
        Text("\n".join(window)),
        title=title,
        subtitle="Esc to close",
        border_style="cyan",
        padding=(0, 1),
    )


def _render_footer(state: AppState, config: AppConfig) -> Panel:
    footer = Text()
    footer.append(ATTRIBUTION, style="bright_cyan")
    if state.status_message:
        footer.append("  |  ", style="dim")
        footer.append(state.status_message, style="bold red")
    footer.append("  |  ", style="dim")
    footer.append(_key_hints(state), style="dim")
    if config.debug:
        footer.append("  |  ", style="dim")
        footer.append(
            f"mode={state.input_mode.value} tab={state.active_tab.value} key={state.last_key}",
            style="dim",
        )
    footer.no_wrap = True
    footer.overflow = "ellipsis"
    return Panel(footer, border_style="white")


def _key_hints(state: AppState) -> str:
    if state.input_mode is InputMode.SEARCHING:
        return "[Enter] Search  [Esc] Cancel"
    if state.input_mode is InputMode.READING:
        return "[Up/Down] Scroll  [Esc] Close  [h/r] Tabs"
    return "[s] Search  [h/r] Tabs  [Up/Down] Select  [Enter] Open  [q] Quit"


def snippet_text(snippet: str) -> Text:
    """Plain text for a search snippet with the matched terms emphasised."""
    soup = BeautifulSoup(snippet or "", "html.parser")
    text = Text()
    for piece in soup.find_all(string=True):
        parent = piece.parent
        is_match = parent is not None and "searchmatch" in (parent.get("class") or [])
        text.append(str(piece), style="bold yellow" if is_match else "")
    return text


# ===== Main loop =====


class XpediaApp:
    def __init__(
        self,
        backend: Encyclopedia,
        config: Optional[AppConfig] = None,
        console: Optional[Console] = None,
        fd: Optional[int] = None,
    ):
        self.config = config or AppConfig()
        self.console = console or Console()
        self.fd = sys.stdin.fileno() if fd is None else fd
        self.state = AppState()
        self.machine = StateMachine(backend)

    def draw(self) -> Layout:
        size = self.console.size
        self.machine.ensure_article_body(self.state, article_width(size.width, self.config))
        return render(self.state, size.width, size.height, self.config)

    def run(self) -> None:
        channel = Channel()
        pump = InputPump(channel, KeySource(self.fd), tick_interval=self.config.tick_interval)
        with RawTerminal(self.fd):
            with Live(
                self.draw(),
                console=self.console,
                screen=True,
                auto_refresh=False,
            ) as live:
                pump.start()
                try:
                    self._loop(channel, live)
                finally:
                    self._stop_input(channel, pump)
        logger.info("Session ended")

    def _stop_input(self, channel: Channel, pump: InputPump) -> None:
        channel.close()
        pump.stop()
        # The pump checks its stop flag once per tick.
        pump.join(self.config.tick_interval * 2)
        if pump.is_alive():
            logger.warning("Input pump did not stop within {}s", self.config.tick_interval * 2)

    def _loop(self, channel: Channel, live: Live) -> None:
        while True:
            message = channel.recv()
            if isinstance(message, InputFailure):
                raise InputSourceError(str(message.error)) from message.error
            self.machine.update(self.state, message)
            if self.state.should_quit:
                return
            live.update(self.draw(), refresh=True)
