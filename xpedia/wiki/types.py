"""Records decoded from MediaWiki API responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


class WikiError(Exception):
    """Base class for failures talking to the encyclopedia."""


class NetworkError(WikiError):
    """The request failed in transport or the API reported an error."""


class DecodeError(WikiError):
    """The response body did not have the expected shape."""


@dataclass(frozen=True)
class SearchHit:
    page_id: int
    title: str
    snippet: str
    word_count: int
    namespace: int = 0
    size: int = 0
    last_modified: Optional[datetime] = None

    @classmethod
    def from_json(cls, data: Any) -> "SearchHit":
        obj = _require_dict(data, "search hit")
        return cls(
            page_id=_require_int(obj, "pageid"),
            title=_require_str(obj, "title"),
            snippet=_optional_str(obj, "snippet"),
            word_count=_optional_int(obj, "wordcount"),
            namespace=_optional_int(obj, "ns"),
            size=_optional_int(obj, "size"),
            last_modified=_parse_timestamp(obj.get("timestamp")),
        )


@dataclass(frozen=True)
class SearchInfo:
    total_hits: int = 0
    suggestion: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "SearchInfo":
        if data is None:
            return cls()
        obj = _require_dict(data, "searchinfo")
        suggestion = obj.get("suggestion")
        return cls(
            total_hits=_optional_int(obj, "totalhits"),
            suggestion=suggestion if isinstance(suggestion, str) and suggestion else None,
        )


@dataclass(frozen=True)
class SearchResponse:
    info: SearchInfo
    hits: List[SearchHit] = field(default_factory=list)

    @property
    def total_hits(self) -> int:
        return self.info.total_hits

    @property
    def suggestion(self) -> Optional[str]:
        return self.info.suggestion

    @classmethod
    def from_json(cls, data: Any) -> "SearchResponse":
        root = _require_dict(data, "search response")
        query = _require_dict(root.get("query"), "query")
        raw_hits = query.get("search")
        if not isinstance(raw_hits, list):
            raise DecodeError("search response is missing the 'search' list")

        return cls(
            info=SearchInfo.from_json(query.get("searchinfo")),
            hits=[SearchHit.from_json(item) for item in raw_hits],
        )


@dataclass(frozen=True)
class ArticlePage:
    page_id: int
    title: str
    html: str

    @classmethod
    def from_json(cls, data: Any) -> "ArticlePage":
        root = _require_dict(data, "parse response")
        parse = _require_dict(root.get("parse"), "parse")
        text = parse.get("text")
        # formatversion=1 nests the html under {"*": ...}
        if isinstance(text, dict):
            text = text.get("*")
        if not isinstance(text, str):
            raise DecodeError("parse response is missing the article text")
        return cls(
            page_id=_require_int(parse, "pageid"),
            title=_require_str(parse, "title"),
            html=text,
        )


def _require_dict(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(f"expected an object for {what}, got {type(value).__name__}")
    return value


def _require_int(obj: Dict[str, Any], key: str) -> int:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"field '{key}' must be an integer")
    return value


def _optional_int(obj: Dict[str, Any], key: str) -> int:
    if obj.get(key) is None:
        return 0
    return _require_int(obj, key)


def _require_str(obj: Dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"field '{key}' must be a string")
    return value


def _optional_str(obj: Dict[str, Any], key: str) -> str:
    if obj.get(key) is None:
        return ""
    return _require_str(obj, key)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise DecodeError(f"bad timestamp: {value!r}") from exc
