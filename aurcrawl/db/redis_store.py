"""Redis storage: one package spread over several hashes, lists and sorted sets.

Layout for a package ``<name>``:

- ``items:<name>``              hash of the basic and additional fields
- ``items:<name>:cmnts``        sorted set of comment numbers (score = number)
- ``items:<name>:cmnts:<n>``    hash with ``header`` and ``content`` of comment n (1-based)
- ``items:<name>:deps``         sorted set of dependency group names (score = position)
- ``items:<name>:deps:<group>`` list of the group's packages
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import redis
from pydantic import ValidationError

from aurcrawl.errors import BackendUnavailable, DecodeError, NotFound
from aurcrawl.models.package import BasicItemData, Item

from .base import Backend, StorageAdapter

logger = logging.getLogger(__name__)

# Additional-data fields as stored in the package hash; popularity is renamed so
# it does not clash with the listing popularity.
_ADDITIONAL_KEYS = {
    "git_clone_url": "gitcloneurl",
    "submitter": "submitter",
    "popularity": "details_popularity",
    "keywords": "keywords",
    "license": "license",
    "conflicts": "conflicts",
    "provides": "provides",
    "first_submitted": "firstsubmitted",
}
_OPTIONAL_ADDITIONAL = ("keywords", "license", "conflicts", "provides")


class RedisStore(StorageAdapter):
    backend = Backend.REDIS
    display_name = "Redis"

    def __init__(self, url: str = "redis://localhost:6379/0", *, client: Optional[redis.Redis] = None, prefix: str = "items") -> None:
        self.client = client if client is not None else redis.Redis.from_url(url, decode_responses=True)
        self.prefix = prefix

    def _key(self, name: str) -> str:
        return f"{self.prefix}:{name}"

    # --- Contract ---
    def health_check(self) -> None:
        try:
            self.client.ping()
        except redis.RedisError as exc:
            raise BackendUnavailable(self.display_name, str(exc)) from exc

    def insert(self, item: Item) -> None:
        key = self._key(item.name)
        # retried when a concurrent insert changes the index sets before EXEC
        self.client.transaction(lambda pipe: self._write(pipe, key, item), f"{key}:cmnts", f"{key}:deps")

    def get(self, name: str) -> Item:
        key = self._key(name)
        fields = self.client.hgetall(key)
        if not fields:
            raise NotFound(self.display_name, name)

        comments: List[Dict[str, Any]] = []
        for n in self.client.zrange(f"{key}:cmnts", 0, -1):
            comments.append(self.client.hgetall(f"{key}:cmnts:{n}"))

        dependencies: List[Dict[str, Any]] = []
        for group in self.client.zrange(f"{key}:deps", 0, -1):
            dependencies.append({"group": group, "packages": self.client.lrange(f"{key}:deps:{group}", 0, -1)})

        doc = {
            "basic": self._basic_from_hash(name, fields),
            "additional": self._additional_from_hash(fields),
            "comments": comments,
            "dependencies": dependencies,
        }
        try:
            return Item.from_document(doc)
        except ValidationError as exc:
            raise DecodeError(self.display_name, name, str(exc)) from exc

    def close(self) -> None:
        self.client.close()

    def flushdb(self) -> None:
        self.client.flushdb()

    # --- Internals ---
    def _write(self, pipe: Any, key: str, item: Item) -> None:
        stale = [f"{key}:cmnts:{n}" for n in pipe.zrange(f"{key}:cmnts", 0, -1)]
        stale += [f"{key}:deps:{g}" for g in pipe.zrange(f"{key}:deps", 0, -1)]

        pipe.multi()
        pipe.delete(key, f"{key}:cmnts", f"{key}:deps", *stale)
        pipe.hset(key, mapping=self._flatten(item))
        for n, comment in enumerate(item.comments, start=1):
            pipe.hset(f"{key}:cmnts:{n}", mapping={"header": comment.header, "content": comment.content})
            pipe.zadd(f"{key}:cmnts", {str(n): n})
        for position, dependency in enumerate(item.dependencies):
            if dependency.packages:
                pipe.rpush(f"{key}:deps:{dependency.group}", *dependency.packages)
            pipe.zadd(f"{key}:deps", {dependency.group: position})

    @staticmethod
    def _flatten(item: Item) -> Dict[str, str]:
        flat: Dict[str, str] = {}
        for field, value in item.basic.model_dump().items():
            if field != "name":
                flat[field] = str(value)
        additional = item.additional.model_dump()
        for field, stored in _ADDITIONAL_KEYS.items():
            value = additional.get(field)
            flat[stored] = "" if value is None else str(value)
        return flat

    @staticmethod
    def _basic_from_hash(name: str, fields: Dict[str, str]) -> Dict[str, Any]:
        basic: Dict[str, Any] = {"name": name}
        for field in BasicItemData.model_fields:
            if field != "name":
                basic[field] = fields.get(field)
        return basic

    @staticmethod
    def _additional_from_hash(fields: Dict[str, str]) -> Dict[str, Any]:
        additional: Dict[str, Any] = {}
        for field, stored in _ADDITIONAL_KEYS.items():
            value = fields.get(stored)
            if field in _OPTIONAL_ADDITIONAL:
                value = value or None
            additional[field] = value
        return additional
