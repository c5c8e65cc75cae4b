"""Turn article html into wrapped plain text for the reading pane.

The pipeline runs in a fixed order:

1. ``strip_self_links`` unwraps anchors that point inside the same document.
2. ``html_to_text`` renders the remaining markup as text wrapped at ``width``.
   Headings become ``#``-prefixed lines, list items become ``* `` bullets.
3. ``scrub_artifacts`` drops citation markers, ``[edit]`` labels, stray
   brackets and bare URLs.
4. ``remove_orphan_tokens`` drops lone marker characters (``^``, ``|``...)
   left behind by reference lists.
5. ``collapse_contents`` cuts the table of contents out of the body.

Steps 3-5 only touch plain text, so they can be re-run on their own output.
"""

from __future__ import annotations

import re
import textwrap
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

MIN_WIDTH = 20

BLOCK_TAGS = [
    "p",
    "div",
    "section",
    "table",
    "tr",
    "ul",
    "ol",
    "dl",
    "dt",
    "dd",
    "blockquote",
    "pre",
    "figure",
    "figcaption",
    "caption",
]
DROP_TAGS = ["script", "style", "noscript", "link", "meta"]

HEADING_RE = re.compile(r"^(#{1,6}) (\S.*)$")
CITATION_RE = re.compile(r"\[(?:\d+|[a-z]|note \d+|citation needed)\]", re.IGNORECASE)
EDIT_LABEL_RE = re.compile(r"\[\s*edit(?: source)?\s*\]", re.IGNORECASE)
URL_RE = re.compile(r" ?(?:(?:https?|ftp)://\S*|\bwww\.\S+\.\S*)[^\s.,;:)]")
BRACKET_RE = re.compile(r"[\[\]]")
ORPHAN_TOKEN_RE = re.compile(r"(?<!\S)[\^|†‡](?: |$)", re.MULTILINE)
INNER_SPACES_RE = re.compile(r"(?<=\S) {2,}")
TRAILING_SPACES_RE = re.compile(r"[ \t]+$", re.MULTILINE)
BLANK_RUN_RE = re.compile(r"\n{3,}")

CONTENTS_TITLE = "contents"


def reflow_article(html: str, width: int) -> str:
    text = html_to_text(strip_self_links(html), width)
    return clean_text(text)


def clean_text(text: str) -> str:
    """Run the plain-text steps of the pipeline."""
    text = scrub_artifacts(text)
    text = remove_orphan_tokens(text)
    text = collapse_contents(text)
    return text.strip("\n")


def strip_self_links(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for anchor in soup.find_all("a", href=True):
        if anchor["href"].startswith("#"):
            anchor.unwrap()
    return str(soup)


def html_to_text(html: str, width: int) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(DROP_TAGS):
        tag.decompose()

    for tag in soup.find_all(re.compile(r"^h[1-6]$")):
        level = int(tag.name[1])
        title = tag.get_text(" ", strip=True)
        tag.replace_with(f"\n\n{'#' * level} {title}\n\n" if title else "\n\n")

    for tag in soup.find_all("br"):
        tag.replace_with("\n")
    for tag in soup.find_all("li"):
        tag.insert_before("\n* ")
    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_before("\n\n")
        tag.insert_after("\n\n")

    return reflow(soup.get_text(), width)


def reflow(text: str, width: int) -> str:
    width = max(MIN_WIDTH, width)
    blocks: List[str] = []
    for raw_block in re.split(r"\n\s*\n", text):
        units = _block_units(raw_block)
        if not units:
            continue
        lines: List[str] = []
        for unit in units:
            if unit.startswith("* "):
                lines.extend(textwrap.wrap(unit, width=width, subsequent_indent="  "))
            else:
                lines.extend(textwrap.wrap(unit, width=width))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _block_units(block: str) -> List[str]:
    units: List[str] = []
    for line in block.splitlines():
        line = " ".join(line.split())
        if not line:
            continue
        starts_unit = line.startswith("* ") or HEADING_RE.match(line)
        if starts_unit or not units or HEADING_RE.match(units[-1]):
            units.append(line)
        else:
            units[-1] = f"{units[-1]} {line}"
    return units


def scrub_artifacts(text: str) -> str:
    text = CITATION_RE.sub("", text)
    text = EDIT_LABEL_RE.sub("", text)
    text = BRACKET_RE.sub("", text)
    text = URL_RE.sub("", text)
    return _tidy(text)


def remove_orphan_tokens(text: str) -> str:
    return _tidy(ORPHAN_TOKEN_RE.sub("", text))


def collapse_contents(text: str) -> str:
    lines = text.split("\n")
    start = _find_contents_heading(lines)
    if start is None:
        return text
    level = _heading(lines[start])[0]
    end = _find_next_heading(lines, start + 1, level)
    if end is None:
        # No heading closes the table of contents; keep the text as is.
        return text
    return _tidy("\n".join(lines[:start] + lines[end:]))


def _heading(line: str) -> Optional[Tuple[int, str]]:
    match = HEADING_RE.match(line.strip())
    if not match:
        return None
    return len(match.group(1)), match.group(2).strip()


def _find_contents_heading(lines: List[str]) -> Optional[int]:
    for idx, line in enumerate(lines):
        heading = _heading(line)
        if heading and heading[1].lower() == CONTENTS_TITLE:
            return idx
    return None


def _find_next_heading(lines: List[str], start: int, level: int) -> Optional[int]:
    for idx in range(start, len(lines)):
        heading = _heading(lines[idx])
        if heading and heading[0] <= level:
            return idx
    return None


def _tidy(text: str) -> str:
    text = INNER_SPACES_RE.sub(" ", text)
    text = TRAILING_SPACES_RE.sub("", text)
    return BLANK_RUN_RE.sub("\n\n", text)
