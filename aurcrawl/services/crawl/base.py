from __future__ import annotations

import logging
import time
from typing import Dict, Optional

import httpx
from selectolax.parser import HTMLParser, Node

from aurcrawl.config import Selectors, Settings
from aurcrawl.errors import FetchError, ParseError

logger = logging.getLogger(__name__)


def create_client(settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """One client per run; shared by every crawl task for connection reuse."""
    headers: Dict[str, str] = {"User-Agent": settings.user_agent}
    return httpx.AsyncClient(
        timeout=settings.page_timeout,
        headers=headers,
        follow_redirects=True,
        transport=transport,
    )


def parse_document(html: str, *, source_url: str) -> HTMLParser:
    if not html or not html.strip():
        raise ParseError(source_url, "empty body")
    doc = HTMLParser(html)
    if doc.body is None:
        raise ParseError(source_url, "no <body> element")
    return doc


def node_text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return (node.text() or "").strip()


def node_attr(node: Optional[Node], name: str) -> str:
    if node is None:
        return ""
    return node.attributes.get(name) or ""


class PageFetcher:
    """Fetches one URL and returns its parsed HTML tree.

    Raises FetchError on network errors, timeouts and non-2xx responses, and
    ParseError when the body is not a usable HTML document. Nothing is retried.
    """

    def __init__(self, client: httpx.AsyncClient, *, timeout: float = 10.0) -> None:
        self.client = client
        self.timeout = float(timeout)

    async def fetch(self, url: str, *, timeout: Optional[float] = None) -> HTMLParser:
        start = time.perf_counter()
        try:
            limit = timeout if timeout is not None else self.timeout
            # pool waits are unbounded; the limit covers connect, read and write
            resp = await self.client.get(url, timeout=httpx.Timeout(limit, pool=None))
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc) or type(exc).__name__) from exc
        logger.debug("%s -> %.3fs", url, time.perf_counter() - start)
        return parse_document(resp.text, source_url=url)


class Spider:
    """Minimal spider contract.

    A spider turns one parsed page into records; it never fetches by itself
    unless given a PageFetcher.
    """

    name: str = "base"

    def __init__(self, selectors: Optional[Selectors] = None) -> None:
        self.selectors = selectors or Selectors()
