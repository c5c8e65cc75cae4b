"""Blocking MediaWiki API client."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from xpedia.config import AppConfig
from xpedia.reflow import reflow_article
from xpedia.wiki.types import (
    ArticlePage,
    DecodeError,
    NetworkError,
    SearchResponse,
)


class WikiClient:
    """Issues the two requests the reader needs: full-text search and page html."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or AppConfig()
        self.http = http or httpx.Client(
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "application/json",
            },
            timeout=self.config.timeout,
            follow_redirects=True,
        )

    def search(self, query: str) -> SearchResponse:
        logger.info("Searching for {!r}", query)
        payload = self._get(
            {
                "action": "query",
                "list": "search",
                "srsearch": query,
                "srlimit": self.config.results_limit,
            }
        )
        response = SearchResponse.from_json(payload)
        logger.info(
            "Search {!r}: {} hits shown, {} total", query, len(response.hits), response.total_hits
        )
        return response

    def fetch_page(self, page_id: int) -> ArticlePage:
        logger.info("Fetching article {}", page_id)
        payload = self._get(
            {
                "action": "parse",
                "pageid": page_id,
                "prop": "text",
            }
        )
        page = ArticlePage.from_json(payload)
        logger.debug("Article {} ({!r}): {} bytes of html", page_id, page.title, len(page.html))
        return page

    def fetch_html(self, page_id: int) -> str:
        return self.fetch_page(page_id).html

    def fetch_article(self, page_id: int, width: int) -> str:
        return reflow_article(self.fetch_html(page_id), width)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "WikiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get(self, params: Dict[str, Any]) -> Any:
        query = {"format": "json", "formatversion": 2, **params}
        try:
            response = self.http.get(self.config.api_url, params=query)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NetworkError(f"request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeError(f"response is not valid JSON: {exc}") from exc

        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            code = error.get("code", "unknown")
            info = error.get("info", "")
            raise NetworkError(f"API error {code}: {info}".rstrip(": "))
        return payload
