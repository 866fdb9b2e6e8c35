from __future__ import annotations

import asyncio
import logging
import os
from typing import Dict, Iterable, List, Optional, Sequence

from aurcrawl.db.base import StorageAdapter
from aurcrawl.errors import CrawlerError
from aurcrawl.models.package import Item

from .pipeline import checkpoint_path, discover_checkpoints, read_checkpoint

logger = logging.getLogger(__name__)


def store_item(item: Item, db: StorageAdapter) -> bool:
    """Insert one item; a failure is logged and reported as False."""
    try:
        db.insert(item)
    except Exception as exc:
        logger.error("Failed to insert %s to %s database. Caused by: %s", item.name, db.backend_name(), exc)
        return False
    return True


def store_items(items: Iterable[Item], adapters: Sequence[StorageAdapter], *, duplicates: int = 0) -> Dict[str, int]:
    """Insert every item into every adapter.

    With ``duplicates`` > 0, also stores that many copies named
    ``<name>_1`` .. ``<name>_<duplicates>``. Returns summary counts.
    """
    processed = 0
    stored = 0
    failed = 0
    for item in items:
        processed += 1
        copies = [item] + [item.renamed(f"{item.name}_{i}") for i in range(1, duplicates + 1)]
        for db in adapters:
            for copy in copies:
                if store_item(copy, db):
                    stored += 1
                else:
                    failed += 1
        logger.info("Loaded %s package to %d database(s)", item.name, len(adapters))
    return {"processed": processed, "stored": stored, "failed": failed}


async def store_items_async(
    items: Iterable[Item], adapters: Sequence[StorageAdapter], *, duplicates: int = 0
) -> Dict[str, int]:
    """store_items on a worker thread, for callers running on the event loop."""
    return await asyncio.to_thread(store_items, list(items), adapters, duplicates=duplicates)


def load_checkpoints(
    in_dir: str,
    adapters: Sequence[StorageAdapter],
    *,
    pages: Optional[Iterable[int]] = None,
    duplicates: int = 0,
) -> Dict[str, int]:
    """Load ``page_<N>.bson`` files from ``in_dir`` into every adapter.

    ``pages`` restricts the load to those page numbers; by default every
    checkpoint in the directory is loaded in page order. Unreadable files are
    logged and skipped.
    """
    if pages is None:
        files = discover_checkpoints(in_dir)
    else:
        files = [(p, checkpoint_path(in_dir, p)) for p in pages]

    totals = {"files": 0, "processed": 0, "stored": 0, "failed": 0}
    for page, path in files:
        if not os.path.isfile(path):
            logger.error("Checkpoint for page %d not found: %s", page, path)
            continue
        try:
            items: List[Item] = read_checkpoint(path)
        except (OSError, CrawlerError) as exc:
            logger.error("Cannot read and deserialize file %s: %s", path, exc)
            continue
        counts = store_items(items, adapters, duplicates=duplicates)
        totals["files"] += 1
        for key, value in counts.items():
            totals[key] += value
    return totals
