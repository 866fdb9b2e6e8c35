from __future__ import annotations

import os
import re
from typing import Iterable, List, Tuple

import bson
from bson.errors import BSONError
from pydantic import ValidationError

from aurcrawl.errors import DecodeError
from aurcrawl.models.package import Item

_CHECKPOINT = "checkpoint"
_PAGE_FILE_RE = re.compile(r"^page_(\d+)\.bson$")


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def checkpoint_path(out_dir: str, page: int) -> str:
    return os.path.join(out_dir, f"page_{page}.bson")


def serialize_items(items: Iterable[Item]) -> bytes:
    return bson.encode({"packages": [item.to_document() for item in items]})


def deserialize_items(data: bytes, *, source: str = "<bytes>") -> List[Item]:
    try:
        doc = bson.decode(data)
    except (BSONError, ValueError) as exc:
        raise DecodeError(_CHECKPOINT, source, str(exc)) from exc
    packages = doc.get("packages")
    if not isinstance(packages, list):
        raise DecodeError(_CHECKPOINT, source, "missing 'packages' list")
    try:
        return [Item.from_document(p) for p in packages]
    except ValidationError as exc:
        raise DecodeError(_CHECKPOINT, source, str(exc)) from exc


def write_checkpoint(items: Iterable[Item], out_dir: str, page: int) -> str:
    """Write one listing page worth of items to ``<out_dir>/page_<page>.bson``.

    Returns the path to the written file. An existing file is replaced.
    """
    ensure_dir(out_dir)
    path = checkpoint_path(out_dir, page)
    payload = serialize_items(items)
    with open(path, "wb") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())
    return path


def read_checkpoint(path: str) -> List[Item]:
    with open(path, "rb") as f:
        data = f.read()
    return deserialize_items(data, source=path)


def discover_checkpoints(in_dir: str) -> List[Tuple[int, str]]:
    """Every ``page_<N>.bson`` in ``in_dir`` as (N, path), ordered by N."""
    found: List[Tuple[int, str]] = []
    for entry in os.listdir(in_dir):
        m = _PAGE_FILE_RE.match(entry)
        if m:
            found.append((int(m.group(1)), os.path.join(in_dir, entry)))
    return sorted(found)
