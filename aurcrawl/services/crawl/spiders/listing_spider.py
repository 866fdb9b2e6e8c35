from __future__ import annotations

import logging
from typing import List

from selectolax.parser import HTMLParser, Node

from aurcrawl.errors import ModelError, ScrapeError
from aurcrawl.models.package import BasicItemData

from ..base import PageFetcher, Spider, node_attr, node_text

logger = logging.getLogger(__name__)


class ListingSpider(Spider):
    """Extracts the basic data of every package row on one listing page.

    Each cell contributes its link text and link target when it holds a link,
    or its trimmed text otherwise. The resulting sequence is handed to
    BasicItemData.from_fields positionally, so the site's column order matters.
    """

    name = "aur_listing"

    # --- Public API ---
    async def fetch(self, fetcher: PageFetcher, url: str, *, fail_fast: bool = False) -> List[BasicItemData]:
        doc = await fetcher.fetch(url)
        return self.parse_html(doc, source_url=url, fail_fast=fail_fast)

    def parse_html(self, doc: HTMLParser, *, source_url: str, fail_fast: bool = False) -> List[BasicItemData]:
        records: List[BasicItemData] = []
        for position, row in enumerate(doc.css(self.selectors.results_rows)):
            fields = self.row_fields(row)
            try:
                records.append(BasicItemData.from_fields(fields))
            except ModelError as exc:
                if fail_fast:
                    raise ScrapeError(source_url, f"basic data of row {position}") from exc
                logger.warning("Skipping row %d of %s: %s", position, source_url, exc)
        return records

    # --- Internals ---
    def row_fields(self, row: Node) -> List[str]:
        fields: List[str] = []
        for td in row.css(self.selectors.cell):
            a = td.css_first(self.selectors.link)
            if a is not None:
                fields.append(node_text(a))
                fields.append(node_attr(a, "href"))
            else:
                fields.append(node_text(td))
        return fields
