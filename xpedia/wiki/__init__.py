"""MediaWiki API access."""

from .client import WikiClient
from .types import (
    ArticlePage,
    DecodeError,
    NetworkError,
    SearchHit,
    SearchInfo,
    SearchResponse,
    WikiError,
)

__all__ = [
    "ArticlePage",
    "DecodeError",
    "NetworkError",
    "SearchHit",
    "SearchInfo",
    "SearchResponse",
    "WikiClient",
    "WikiError",
]
