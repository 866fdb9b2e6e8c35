"""Cassandra storage: one keyspace, four tables keyed by package name.

``basic`` and ``additional`` hold the JSON encoded record, ``comments`` and
``dependencies`` hold a ``list<text>`` of JSON encoded entries. The keyspace and
tables must exist before the first insert, see ``create_tables``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Optional

from cassandra import AlreadyExists, DriverException
from cassandra.cluster import Cluster, NoHostAvailable
from cassandra.query import BatchStatement, BatchType
from pydantic import ValidationError

from aurcrawl.errors import BackendUnavailable, DecodeError, NotFound
from aurcrawl.models.package import AdditionalItemData, BasicItemData, Comment, Dependency, Item

from .base import Backend, StorageAdapter, ignore_already_exists

logger = logging.getLogger(__name__)

BASIC_TABLE = "basic"
ADDITIONAL_TABLE = "additional"
COMMENTS_TABLE = "comments"
DEPENDENCIES_TABLE = "dependencies"

_TABLES = (
    (BASIC_TABLE, "text"),
    (ADDITIONAL_TABLE, "text"),
    (COMMENTS_TABLE, "list<text>"),
    (DEPENDENCIES_TABLE, "list<text>"),
)


class CassandraStore(StorageAdapter):
    backend = Backend.CASSANDRA
    display_name = "Cassandra"

    def __init__(
        self,
        hosts: Iterable[str] = ("127.0.0.1",),
        port: int = 9042,
        keyspace: str = "pkgs",
        *,
        session: Any = None,
    ) -> None:
        self.keyspace = keyspace
        self.cluster: Optional[Cluster] = None
        if session is None:
            self.cluster = Cluster(list(hosts), port=port)
            try:
                session = self.cluster.connect()
            except (NoHostAvailable, DriverException) as exc:
                self.cluster.shutdown()
                raise BackendUnavailable(self.display_name, str(exc)) from exc
        self.session = session

    def _table(self, table: str) -> str:
        return f"{self.keyspace}.{table}"

    def create_tables(self) -> None:
        """Create the keyspace and tables; existing ones are left alone."""
        with ignore_already_exists(AlreadyExists):
            self.session.execute(
                f"CREATE KEYSPACE {self.keyspace} "
                "WITH replication = {'class': 'SimpleStrategy', 'replication_factor': 1}"
            )
        for table, value_type in _TABLES:
            with ignore_already_exists(AlreadyExists):
                self.session.execute(f"CREATE TABLE {self._table(table)} (name text PRIMARY KEY, data {value_type})")
        logger.debug("Cassandra keyspace %s ready", self.keyspace)

    # --- Contract ---
    def health_check(self) -> None:
        try:
            self.session.execute("SELECT release_version FROM system.local")
        except (NoHostAvailable, DriverException) as exc:
            raise BackendUnavailable(self.display_name, str(exc)) from exc

    def insert(self, item: Item) -> None:
        """Upsert the four rows of the item in one logged batch."""
        name = item.name
        rows = (
            (BASIC_TABLE, item.basic.model_dump_json()),
            (ADDITIONAL_TABLE, item.additional.model_dump_json()),
            (COMMENTS_TABLE, [c.model_dump_json() for c in item.comments]),
            (DEPENDENCIES_TABLE, [d.model_dump_json() for d in item.dependencies]),
        )
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        for table, data in rows:
            batch.add(f"INSERT INTO {self._table(table)} (name, data) VALUES (%s, %s)", (name, data))
        self.session.execute(batch)

    def get(self, name: str) -> Item:
        basic = self._fetch(BASIC_TABLE, name)
        if basic is None:
            raise NotFound(self.display_name, name)
        additional = self._fetch(ADDITIONAL_TABLE, name)
        if additional is None:
            raise DecodeError(self.display_name, name, "additional data is missing")
        comments: List[str] = self._fetch(COMMENTS_TABLE, name) or []
        dependencies: List[str] = self._fetch(DEPENDENCIES_TABLE, name) or []
        try:
            return Item(
                basic=BasicItemData.model_validate_json(basic),
                additional=AdditionalItemData.model_validate_json(additional),
                comments=[Comment.model_validate_json(c) for c in comments],
                dependencies=[Dependency.model_validate_json(d) for d in dependencies],
            )
        except (ValidationError, json.JSONDecodeError) as exc:
            raise DecodeError(self.display_name, name, str(exc)) from exc

    def close(self) -> None:
        if self.cluster is not None:
            self.cluster.shutdown()

    # --- Internals ---
    def _fetch(self, table: str, name: str) -> Any:
        row = self.session.execute(f"SELECT data FROM {self._table(table)} WHERE name = %s", (name,)).one()
        return None if row is None else row.data
