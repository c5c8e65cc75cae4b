import copy
import sys
from pathlib import Path
import unittest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from xpedia.events import (
    KEY_BACKSPACE,
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_UP,
    KeyPress,
    Tick,
)
from xpedia.state import AppState, InputMode, OpenedArticle, StateMachine, Tab
from xpedia.wiki.types import (
    DecodeError,
    NetworkError,
    SearchHit,
    SearchInfo,
    SearchResponse,
)


def make_hit(page_id: int, title: str) -> SearchHit:
    return SearchHit(page_id=page_id, title=title, snippet=f"about {title}", word_count=100)


HIT_A = make_hit(1, "A")
HIT_B = make_hit(2, "B")
HIT_C = make_hit(3, "C")


class FakeEncyclopedia:
    def __init__(self, hits=None, suggestion=None, search_error=None, fetch_error=None):
        self.hits = list(hits or [])
        self.suggestion = suggestion
        self.search_error = search_error
        self.fetch_error = fetch_error
        self.queries = []
        self.fetches = []

    def search(self, query):
        self.queries.append(query)
        if self.search_error:
            raise self.search_error
        info = SearchInfo(total_hits=len(self.hits) * 10, suggestion=self.suggestion)
        return SearchResponse(info=info, hits=list(self.hits))

    def fetch_article(self, page_id, width):
        self.fetches.append((page_id, width))
        if self.fetch_error:
            raise self.fetch_error
        return f"body of {page_id}"


def press(machine, state, *keys):
    for key in keys:
        machine.update(state, KeyPress(key))
    return state


def search(machine, state, query):
    return press(machine, state, "s", *query, KEY_ENTER)


class TestSearching(unittest.TestCase):
    def test_search_scenario_with_wraparound(self):
        backend = FakeEncyclopedia([HIT_A, HIT_B, HIT_C])
        machine = StateMachine(backend)
        state = search(machine, AppState(), "cat")

        self.assertEqual(backend.queries, ["cat"])
        self.assertEqual(state.results, (HIT_A, HIT_B, HIT_C))
        self.assertEqual(state.selected_index, 0)
        self.assertIs(state.input_mode, InputMode.NORMAL)
        self.assertIs(state.active_tab, Tab.RESULTS)
        self.assertEqual(state.total_hits, 30)

        press(machine, state, KEY_DOWN, KEY_DOWN)
        self.assertEqual(state.selected_index, 2)
        press(machine, state, KEY_DOWN)
        self.assertEqual(state.selected_index, 0)
        press(machine, state, KEY_UP)
        self.assertEqual(state.selected_index, 2)

    def test_query_editing(self):
        machine = StateMachine(FakeEncyclopedia())
        state = AppState()

        press(machine, state, KEY_BACKSPACE)
        self.assertEqual(state.search_query, "")

        press(machine, state, "s", KEY_BACKSPACE, "d", "o", "g", "q", KEY_BACKSPACE)
        self.assertEqual(state.search_query, "dog")
        self.assertIs(state.input_mode, InputMode.SEARCHING)
        self.assertFalse(state.should_quit)

        press(machine, state, KEY_ESCAPE)
        self.assertIs(state.input_mode, InputMode.NORMAL)
        self.assertEqual(state.search_query, "dog")

        press(machine, state, "s", "s")
        self.assertEqual(state.search_query, "dogs")

    def test_empty_results(self):
        machine = StateMachine(FakeEncyclopedia([]))
        state = search(machine, AppState(), "zzxq")

        self.assertEqual(state.results, ())
        self.assertIsNone(state.selected_index)
        press(machine, state, KEY_DOWN, KEY_UP, KEY_UP, KEY_ENTER)
        self.assertIsNone(state.selected_index)
        self.assertIsNone(state.opened_article)
        self.assertIs(state.input_mode, InputMode.NORMAL)

    def test_suggestion_is_shown_when_nothing_matches(self):
        machine = StateMachine(FakeEncyclopedia([], suggestion="cat"))
        state = search(machine, AppState(), "cta")

        self.assertIn("Did you mean: cat?", state.status_message)

    def test_blank_query_does_not_search(self):
        backend = FakeEncyclopedia([HIT_A])
        machine = StateMachine(backend)
        state = press(machine, AppState(), "s", " ", KEY_ENTER)

        self.assertEqual(backend.queries, [])
        self.assertIs(state.input_mode, InputMode.SEARCHING)
        self.assertTrue(state.status_message)

    def test_failed_search_stays_in_search_mode(self):
        machine = StateMachine(FakeEncyclopedia(search_error=NetworkError("offline")))
        state = search(machine, AppState(), "cat")

        self.assertIs(state.input_mode, InputMode.SEARCHING)
        self.assertEqual(state.search_query, "cat")
        self.assertEqual(state.results, ())
        self.assertIn("Search failed", state.status_message)

        press(machine, state, "s")
        self.assertEqual(state.status_message, "")

    def test_new_search_replaces_results(self):
        backend = FakeEncyclopedia([HIT_A, HIT_B, HIT_C])
        machine = StateMachine(backend)
        state = search(machine, AppState(), "cat")
        press(machine, state, KEY_DOWN, KEY_DOWN)

        backend.hits = [HIT_B]
        press(machine, state, "s", KEY_BACKSPACE, KEY_BACKSPACE, KEY_BACKSPACE, "b", KEY_ENTER)

        self.assertEqual(backend.queries, ["cat", "b"])
        self.assertEqual(state.results, (HIT_B,))
        self.assertEqual(state.selected_index, 0)


class TestSelectionLaws(unittest.TestCase):
    def test_wraparound_returns_to_start(self):
        hits = [make_hit(i, f"hit {i}") for i in range(5)]
        for n in range(1, 6):
            machine = StateMachine(FakeEncyclopedia(hits[:n]))
            state = search(machine, AppState(), "x")
            for start in range(n):
                for key in (KEY_DOWN, KEY_UP):
                    state.selected_index = start
                    press(machine, state, *([key] * n))
                    self.assertEqual(state.selected_index, start)

    def test_selection_is_none_iff_results_empty(self):
        backend = FakeEncyclopedia([HIT_A, HIT_B])
        machine = StateMachine(backend)
        state = AppState()
        keys = ["s", "a", KEY_ENTER, KEY_DOWN, "h", KEY_DOWN, "r", KEY_UP, KEY_ENTER,
                KEY_DOWN, KEY_ESCAPE, "s", KEY_ENTER]
        for key in keys:
            machine.update(state, KeyPress(key))
            self.assertEqual(state.selected_index is None, len(state.results) == 0)
        backend.hits = []
        press(machine, state, KEY_ESCAPE, "s", KEY_ENTER)
        self.assertIsNone(state.selected_index)
        self.assertEqual(state.results, ())

    def test_arrows_ignored_on_home_tab(self):
        machine = StateMachine(FakeEncyclopedia([HIT_A, HIT_B]))
        state = search(machine, AppState(), "a")
        press(machine, state, "h", KEY_DOWN, KEY_ENTER)

        self.assertIs(state.active_tab, Tab.HOME)
        self.assertEqual(state.selected_index, 0)
        self.assertIsNone(state.opened_article)

    def test_out_of_range_selection_is_not_trusted(self):
        machine = StateMachine(FakeEncyclopedia())
        state = AppState(active_tab=Tab.RESULTS, results=(HIT_A,), selected_index=5)

        self.assertIsNone(state.selected_hit())
        press(machine, state, KEY_ENTER)
        self.assertIsNone(state.opened_article)
        press(machine, state, KEY_DOWN)
        self.assertEqual(state.selected_index, 0)


class TestReading(unittest.TestCase):
    def setUp(self):
        self.backend = FakeEncyclopedia([HIT_A, HIT_B, HIT_C])
        self.machine = StateMachine(self.backend)
        self.state = search(self.machine, AppState(), "cat")

    def test_opening_fetches_once(self):
        press(self.machine, self.state, KEY_DOWN, KEY_ENTER)

        self.assertIs(self.state.input_mode, InputMode.READING)
        self.assertEqual(self.state.opened_article, OpenedArticle(hit=HIT_B))
        self.assertIsNone(self.state.opened_article.body)
        self.assertEqual(self.state.opened_article.scroll_offset, 0)

        self.assertTrue(self.machine.ensure_article_body(self.state, 60))
        self.assertEqual(self.backend.fetches, [(2, 60)])
        self.assertEqual(self.state.opened_article.body, "body of 2")

        self.assertFalse(self.machine.ensure_article_body(self.state, 60))
        self.assertEqual(len(self.backend.fetches), 1)

    def test_scrolling(self):
        press(self.machine, self.state, KEY_ENTER, KEY_UP)
        self.assertEqual(self.state.opened_article.scroll_offset, 0)

        press(self.machine, self.state, *([KEY_DOWN] * 7), KEY_UP)
        self.assertEqual(self.state.opened_article.scroll_offset, 6)
        self.assertEqual(self.state.selected_index, 0)

    def test_escape_closes_article(self):
        press(self.machine, self.state, KEY_ENTER, KEY_DOWN, KEY_DOWN, KEY_DOWN, KEY_ESCAPE)

        self.assertIsNone(self.state.opened_article)
        self.assertIs(self.state.input_mode, InputMode.NORMAL)

    def test_reopening_fetches_again(self):
        press(self.machine, self.state, KEY_ENTER)
        self.machine.ensure_article_body(self.state, 60)
        press(self.machine, self.state, KEY_ESCAPE, KEY_DOWN, KEY_ENTER)
        self.machine.ensure_article_body(self.state, 60)

        self.assertEqual(self.backend.fetches, [(1, 60), (2, 60)])

    def test_tabs_switch_while_reading(self):
        press(self.machine, self.state, KEY_ENTER, "h")
        self.assertIs(self.state.active_tab, Tab.HOME)
        self.assertIs(self.state.input_mode, InputMode.READING)

        press(self.machine, self.state, "q", "s", "r")
        self.assertIs(self.state.active_tab, Tab.RESULTS)
        self.assertIs(self.state.input_mode, InputMode.READING)
        self.assertFalse(self.state.should_quit)

    def test_failed_fetch_returns_to_results(self):
        self.backend.fetch_error = DecodeError("garbled")
        press(self.machine, self.state, KEY_ENTER)

        self.assertTrue(self.machine.ensure_article_body(self.state, 60))
        self.assertIsNone(self.state.opened_article)
        self.assertIs(self.state.input_mode, InputMode.NORMAL)
        self.assertIn("Could not load A", self.state.status_message)


class TestMisc(unittest.TestCase):
    def test_tick_changes_nothing(self):
        machine = StateMachine(FakeEncyclopedia([HIT_A]))
        state = search(machine, AppState(), "a")
        before = copy.deepcopy(state)

        machine.update(state, Tick())

        self.assertEqual(state, before)

    def test_q_quits_from_normal_mode(self):
        machine = StateMachine(FakeEncyclopedia())
        state = press(machine, AppState(), "q")

        self.assertTrue(state.should_quit)


if __name__ == "__main__":
    unittest.main()
