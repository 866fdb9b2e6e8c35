from __future__ import annotations

import logging
import urllib.parse
from typing import Dict, List, Optional, Tuple

from selectolax.parser import HTMLParser

from aurcrawl.config import Selectors
from aurcrawl.errors import ParseError
from aurcrawl.models.package import Comment

from ..base import PageFetcher, Spider, node_attr
from ..html import delete_tags
from ..tasks import BoundedTaskGroup

logger = logging.getLogger(__name__)

# The site paginates comments by offset, ten per page
COMMENT_PAGE_STEP = 10


def comment_offsets(highest: int, step: int = COMMENT_PAGE_STEP) -> List[int]:
    """Offsets of every comment page, 0 through ``highest`` inclusive."""
    return list(range(0, max(highest, 0) + 1, step))


def comment_page_url(url: str, offset: int) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}O={offset}"


class CommentsSpider(Spider):
    """Collects every comment of a package across all comment pages.

    The first page is fetched once to discover the pagination extent, then the
    remaining pages are fetched concurrently, at most ``workers`` at a time. A
    failed page is logged and left out; only a failure of the first page fails
    the whole crawl. The pinned comment heading the first page is not returned.
    """

    name = "aur_comments"

    def __init__(
        self,
        selectors: Optional[Selectors] = None,
        *,
        timeout: float = 2.0,
        workers: int = 4,
        step: int = COMMENT_PAGE_STEP,
    ) -> None:
        super().__init__(selectors)
        self.timeout = float(timeout)
        self.step = step
        self.workers = workers

    # --- Public API ---
    async def fetch(self, fetcher: PageFetcher, url: str) -> List[Comment]:
        first = await fetcher.fetch(url)
        offsets = comment_offsets(self.last_offset(first, source_url=url), self.step)

        pages: Dict[int, List[Comment]] = {0: self.parse_html(first, offset=0)}
        rest = [o for o in offsets if o != 0]
        if rest:
            group: BoundedTaskGroup[Tuple[int, List[Comment]]] = BoundedTaskGroup(min(len(rest), self.workers))
            for offset in rest:
                group.submit(lambda offset=offset: self._fetch_page(fetcher, url, offset))
            for outcome in await group.join():
                if outcome.ok:
                    offset, comments = outcome.result  # type: ignore[misc]
                    pages[offset] = comments
                else:
                    logger.warning(
                        "Dropping comment page %s: %s",
                        comment_page_url(url, rest[outcome.index]),
                        outcome.error,
                    )

        return [c for offset in sorted(pages) for c in pages[offset]]

    def last_offset(self, doc: HTMLParser, *, source_url: str) -> int:
        """Highest comment page offset, 0 when the thread has a single page."""
        nav = doc.css_first(self.selectors.comments_nav)
        if nav is None:
            return 0
        links = nav.css(self.selectors.comments_page_link)
        if not links:
            return 0
        href = node_attr(links[-1], "href")
        query = urllib.parse.parse_qs(urllib.parse.urlsplit(href).query)
        raw = (query.get("O") or [href.rsplit("=", 1)[-1]])[0]
        try:
            return int(raw)
        except ValueError as exc:
            raise ParseError(source_url, f"bad comment page offset in {href!r}") from exc

    def parse_html(self, doc: HTMLParser, *, offset: int) -> List[Comment]:
        sel = self.selectors
        pairs = []
        for container in doc.css(sel.comments_container):
            pairs.extend(zip(container.css(sel.comment_header), container.css(sel.comment_content)))
        if offset == 0:
            # pinned comment
            pairs = pairs[1:]
        return [
            Comment(header=delete_tags(h.html or ""), content=delete_tags(c.html or ""))
            for h, c in pairs
        ]

    # --- Internals ---
    async def _fetch_page(self, fetcher: PageFetcher, url: str, offset: int) -> Tuple[int, List[Comment]]:
        page_url = comment_page_url(url, offset)
        doc = await fetcher.fetch(page_url, timeout=self.timeout)
        return offset, self.parse_html(doc, offset=offset)
