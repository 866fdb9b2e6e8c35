from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from aurcrawl.config import Settings
from aurcrawl.models.package import BasicItemData, Item

from .base import PageFetcher
from .spiders.comments_spider import CommentsSpider
from .spiders.detail_spider import DetailSpider
from .spiders.listing_spider import ListingSpider
from .tasks import BoundedTaskGroup

logger = logging.getLogger(__name__)


class CrawlOrchestrator:
    """Crawls one listing page into fully assembled Items.

    Every package row becomes one task that scrapes the details page and the
    comment thread concurrently. Failed packages are logged and left out; the
    rest come back in listing order.
    """

    def __init__(self, fetcher: PageFetcher, settings: Settings, *, fail_fast: bool = False) -> None:
        self.fetcher = fetcher
        self.settings = settings
        self.fail_fast = fail_fast
        self.listing = ListingSpider(settings.selectors)
        self.detail = DetailSpider(settings.selectors)
        self.comments = CommentsSpider(
            settings.selectors,
            timeout=settings.comment_timeout,
            workers=settings.comment_workers,
        )

    async def crawl_page(self, list_url: str) -> List[Item]:
        basics = await self.listing.fetch(self.fetcher, list_url, fail_fast=self.fail_fast)
        group: BoundedTaskGroup[Item] = BoundedTaskGroup(self.settings.max_workers)
        for basic in basics:
            group.submit(lambda basic=basic: self.crawl_item(basic))

        items: List[Item] = []
        for outcome in await group.join():
            basic = basics[outcome.index]
            if outcome.ok:
                items.append(outcome.result)  # type: ignore[arg-type]
            else:
                logger.warning("Dropping package %s from %s: %s", basic.name, list_url, _describe(outcome.error))
        logger.info("Scraped %d/%d packages from %s", len(items), len(basics), list_url)
        return items

    async def crawl_item(self, basic: BasicItemData) -> Item:
        url = self.settings.detail_url(basic.path_to_additional_data)
        details, comments = await asyncio.gather(
            self.detail.fetch(self.fetcher, url),
            self.comments.fetch(self.fetcher, url),
            return_exceptions=True,
        )
        for result in (details, comments):
            if isinstance(result, BaseException):
                raise result
        additional, dependencies = details  # type: ignore[misc]
        logger.info("Scraped: %s", url)
        return Item(basic=basic, additional=additional, dependencies=dependencies, comments=comments)


def _describe(exc: Optional[BaseException]) -> str:
    if exc is None:
        return ""
    cause = exc.__cause__
    return f"{exc} (caused by: {cause})" if cause is not None else str(exc)
