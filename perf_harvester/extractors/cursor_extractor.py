"""
Pagination cursor extraction from API responses.

Different endpoint variants expose the next-page cursor in different places.
The body strategies are tried strictly in the order of BODY_STRATEGIES; a
`Link` header with a rel="next" entry is authoritative and short-circuits them.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import parse_qs, unquote, urlparse

_LINK_URL_RE = re.compile(r'<([^>]*)>')
_LINK_SPLIT_RE = re.compile(r',\s*(?=<)')
_LINK_ATTR_RE = re.compile(r'(\w+)="([^"]*)"')
_CURSOR_PARAM_RE = re.compile(r'cursor=([^&]+)')


@dataclass(frozen=True)
class LinkEntry:
    """One entry of a `Link` response header."""
    url: str
    rel: str
    results: Optional[bool]
    cursor: Optional[str]


@dataclass(frozen=True)
class PageResponse:
    """The parts of an HTTP response that pagination looks at."""
    headers: Mapping[str, str]
    body: Any


class LinkHeaderParser:
    """Parses `<url>; rel="next"; results="true"; cursor="..."` headers."""

    @staticmethod
    def parse(header: Optional[str]) -> List[LinkEntry]:
        """
        Split a Link header into its entries.

        Args:
            header: Raw header value (may be None)

        Returns:
            List of LinkEntry in header order
        """
        if not header:
            return []
        entries = []
        # Entries start with '<'; commas inside a URL do not split
        for part in _LINK_SPLIT_RE.split(header):
            part = part.strip()
            url_match = _LINK_URL_RE.search(part)
            if not url_match:
                continue
            attrs = dict(_LINK_ATTR_RE.findall(part))
            results = attrs.get('results')
            entries.append(LinkEntry(
                url=url_match.group(1),
                rel=attrs.get('rel', ''),
                results=None if results is None else results.lower() == 'true',
                cursor=attrs.get('cursor') or None,
            ))
        return entries

    @classmethod
    def next_entry(cls, header: Optional[str]) -> Optional[LinkEntry]:
        for entry in cls.parse(header):
            if entry.rel == 'next':
                return entry
        return None


def _next_link(body: Any) -> Any:
    if not isinstance(body, dict):
        return None
    links = body.get('links')
    if not isinstance(links, dict):
        return None
    nxt = links.get('next')
    if nxt is None or nxt == 'null':
        return None
    return nxt


def _next_link_string(body: Any) -> Optional[str]:
    nxt = _next_link(body)
    if isinstance(nxt, str):
        return nxt
    if isinstance(nxt, dict):
        for key in ('href', 'url'):
            if isinstance(nxt.get(key), str):
                return nxt[key]
    return None


def cursor_from_structured_link(response: PageResponse) -> Optional[str]:
    """`links.next.cursor`."""
    nxt = _next_link(response.body)
    if isinstance(nxt, dict) and nxt.get('cursor'):
        return str(nxt['cursor'])
    return None


def cursor_from_link_url(response: PageResponse) -> Optional[str]:
    """`links.next` as a URL; read its `cursor` query parameter."""
    raw = _next_link_string(response.body)
    if not raw or '://' not in raw:
        return None
    try:
        query = urlparse(raw).query
    except ValueError:
        return None
    values = parse_qs(query).get('cursor')
    return values[0] if values else None


def cursor_from_link_regex(response: PageResponse) -> Optional[str]:
    """`cursor=<value>` anywhere in the raw `links.next` string."""
    raw = _next_link_string(response.body)
    if not raw:
        return None
    match = _CURSOR_PARAM_RE.search(raw)
    return unquote(match.group(1)) if match else None


def cursor_from_meta(response: PageResponse) -> Optional[str]:
    """Top level `meta.cursor`."""
    body = response.body
    if not isinstance(body, dict):
        return None
    meta = body.get('meta')
    if isinstance(meta, dict) and meta.get('cursor'):
        return str(meta['cursor'])
    return None


CursorStrategy = Callable[[PageResponse], Optional[str]]

BODY_STRATEGIES: List[CursorStrategy] = [
    cursor_from_structured_link,
    cursor_from_link_url,
    cursor_from_link_regex,
    cursor_from_meta,
]


class CursorExtractor:
    """Finds the next-page cursor of a response."""

    def __init__(self, strategies: Optional[List[CursorStrategy]] = None):
        self.strategies = list(BODY_STRATEGIES if strategies is None else strategies)

    @staticmethod
    def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
        for key, value in headers.items():
            if key.lower() == name:
                return value
        return None

    def extract(self, response: PageResponse) -> Optional[str]:
        """
        Extract the cursor for the next page.

        Args:
            response: Headers and decoded JSON body of the page

        Returns:
            Cursor string, or None when there is no further page
        """
        entry = LinkHeaderParser.next_entry(self._header(response.headers, 'link'))
        if entry is not None:
            if entry.results is False:
                return None
            if entry.cursor:
                return entry.cursor
            values = parse_qs(urlparse(entry.url).query).get('cursor')
            return values[0] if values else None

        for strategy in self.strategies:
            cursor = strategy(response)
            if cursor:
                return cursor
        return None

    @staticmethod
    def describe(body: Dict) -> str:
        """Short description of the pagination metadata of a body, for logs."""
        if not isinstance(body, dict):
            return type(body).__name__
        meta = body.get('meta')
        meta_cursor = meta.get('cursor') if isinstance(meta, dict) else None
        return f"links={body.get('links')!r} meta.cursor={meta_cursor!r}"
