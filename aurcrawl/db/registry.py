from __future__ import annotations

import logging
import urllib.parse
from typing import List, Optional, Sequence

from aurcrawl.config import Settings

from .base import Backend, StorageAdapter
from .cassandra_store import CassandraStore
from .mongo_store import MongoStore
from .redis_store import RedisStore

logger = logging.getLogger(__name__)

_SCHEMES = {
    "redis": Backend.REDIS,
    "rediss": Backend.REDIS,
    "unix": Backend.REDIS,
    "cassandra": Backend.CASSANDRA,
    "mongodb": Backend.MONGO,
    "mongodb+srv": Backend.MONGO,
}


def backend_for(connection_string: str) -> Backend:
    scheme = urllib.parse.urlsplit(connection_string).scheme.lower()
    try:
        return _SCHEMES[scheme]
    except KeyError:
        raise ValueError(f"Unsupported connection string scheme: {scheme or connection_string!r}") from None


def _cassandra_store(connection_string: str, settings: Settings) -> CassandraStore:
    """cassandra://host1,host2:9042/keyspace"""
    parts = urllib.parse.urlsplit(connection_string)
    netloc = parts.netloc.rsplit("@", 1)[-1]
    port = settings.cassandra_port
    hosts_part = netloc
    if ":" in netloc:
        hosts_part, raw_port = netloc.rsplit(":", 1)
        port = int(raw_port)
    hosts = [h for h in hosts_part.split(",") if h] or list(settings.cassandra_hosts)
    keyspace = parts.path.strip("/") or settings.cassandra_keyspace
    store = CassandraStore(hosts, port, keyspace)
    store.health_check()
    store.create_tables()
    return store


def build_adapter(connection_string: str, settings: Settings) -> StorageAdapter:
    """Create and health-check the adapter matching the connection string's scheme.

    Raises BackendUnavailable when the backend can't be reached.
    """
    backend = backend_for(connection_string)
    adapter: StorageAdapter
    if backend is Backend.REDIS:
        adapter = RedisStore(connection_string)
    elif backend is Backend.CASSANDRA:
        adapter = _cassandra_store(connection_string, settings)
    else:
        database = urllib.parse.urlsplit(connection_string).path.strip("/") or settings.mongo_database
        adapter = MongoStore(connection_string, database)
    adapter.health_check()
    logger.info("Connected to %s", adapter.backend_name())
    return adapter


def default_connection_strings(settings: Settings) -> List[str]:
    hosts = ",".join(settings.cassandra_hosts)
    return [
        settings.redis_url,
        f"cassandra://{hosts}:{settings.cassandra_port}/{settings.cassandra_keyspace}",
        settings.mongo_uri,
    ]


def build_adapters(connection_strings: Optional[Sequence[str]], settings: Settings) -> List[StorageAdapter]:
    adapters: List[StorageAdapter] = []
    try:
        for cs in connection_strings or default_connection_strings(settings):
            adapters.append(build_adapter(cs, settings))
    except Exception:
        for adapter in adapters:
            adapter.close()
        raise
    return adapters
