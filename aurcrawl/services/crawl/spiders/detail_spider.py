from __future__ import annotations

from typing import Dict, List, Tuple

from selectolax.parser import HTMLParser, Node

from aurcrawl.errors import ModelError, ScrapeError
from aurcrawl.models.package import AdditionalItemData, Dependency

from ..base import PageFetcher, Spider, node_text


def normalize_label(label: str) -> str:
    """'Git Clone URL:' -> 'gitcloneurl'"""
    key = "".join(label.split()).lower()
    return key[:-1] if key.endswith(":") else key


class DetailSpider(Spider):
    """Parses a package details page: the info table and the dependency list."""

    name = "aur_detail"

    # --- Public API ---
    async def fetch(self, fetcher: PageFetcher, url: str) -> Tuple[AdditionalItemData, List[Dependency]]:
        doc = await fetcher.fetch(url)
        return self.parse_html(doc, source_url=url)

    def parse_html(self, doc: HTMLParser, *, source_url: str) -> Tuple[AdditionalItemData, List[Dependency]]:
        bag = self.info_fields(doc)
        try:
            additional = AdditionalItemData.from_fields(bag)
        except ModelError as exc:
            raise ScrapeError(source_url, "additional data") from exc
        return additional, self.dependencies(doc)

    def info_fields(self, doc: HTMLParser) -> Dict[str, str]:
        sel = self.selectors
        bag: Dict[str, str] = {}
        for tr in doc.css(sel.pkginfo_rows):
            label = tr.css_first(sel.pkginfo_label)
            if label is None:
                continue
            key = normalize_label(node_text(label))
            for td in tr.css(sel.pkginfo_value):
                bag[key] = self._cell_value(td)
        return bag

    def dependencies(self, doc: HTMLParser) -> List[Dependency]:
        sel = self.selectors
        out: List[Dependency] = []
        for li in doc.css(sel.deps_items):
            group_link = li.css_first(sel.link)
            if group_link is None:
                continue
            packages = [node_text(a) for em in li.css(sel.deps_members) for a in em.css(sel.link)]
            out.append(Dependency(group=node_text(group_link), packages=packages))
        return out

    # --- Internals ---
    def _cell_value(self, td: Node) -> str:
        links = td.css(self.selectors.link)
        if links:
            return ",".join(node_text(a) for a in links)
        return node_text(td)
