"""Minimal in-memory stand-ins for the Cassandra session and the MongoDB client."""

import copy
import re
import threading
from collections import defaultdict
from types import SimpleNamespace

from cassandra import AlreadyExists, InvalidRequest
from cassandra.query import BatchStatement

_LITERAL_RE = re.compile(r"'((?:[^']|'')*)'")
_BOUND_INSERT_RE = re.compile(r"INSERT INTO ([\w.]+) \(name, data\) VALUES \((.*)\)$", re.S)


def _literals(text):
    return [m.group(1).replace("''", "'") for m in _LITERAL_RE.finditer(text)]


def _parse_bound_insert(statement):
    """Split a client-side bound ``INSERT ... VALUES ('name', <value>)``."""
    m = _BOUND_INSERT_RE.match(statement)
    if m is None:
        raise AssertionError(f"unexpected batch statement: {statement}")
    table, values = m.group(1), m.group(2)
    name_literal = _LITERAL_RE.match(values)
    name = name_literal.group(1).replace("''", "'")
    rest = values[name_literal.end():].lstrip(", ")
    data = _literals(rest) if rest.startswith("[") else _literals(rest)[0]
    return table, name, data


class _ResultSet:
    def __init__(self, rows):
        self._rows = rows

    def one(self):
        return self._rows[0] if self._rows else None


class FakeCassandraSession:
    def __init__(self):
        self.keyspaces = set()
        self.tables = {}
        self.queries = []
        self.fail_with = None
        # table name -> error raised when a batch writes to it
        self.fail_on_table = {}
        self._lock = threading.Lock()

    def execute(self, query, params=None):
        with self._lock:
            if isinstance(query, BatchStatement):
                return self._execute_batch(query)
            return self._execute(query, params)

    def _execute_batch(self, batch):
        self.queries.append("BATCH")
        if self.fail_with is not None:
            raise self.fail_with
        writes = [_parse_bound_insert(stmt) for _, stmt, _ in batch._statements_and_parameters]
        for table, _, _ in writes:
            self._table(table)
            if table in self.fail_on_table:
                raise self.fail_on_table[table]
        # a logged batch applies all of its statements or none
        for table, name, data in writes:
            self.tables[table][name] = data if data != [] else None
        return _ResultSet([])

    def _execute(self, query, params=None):
        q = " ".join(query.split())
        self.queries.append(q)
        if self.fail_with is not None:
            raise self.fail_with

        m = re.match(r"CREATE KEYSPACE (\w+)", q)
        if m:
            if m.group(1) in self.keyspaces:
                raise AlreadyExists(keyspace=m.group(1))
            self.keyspaces.add(m.group(1))
            return _ResultSet([])

        m = re.match(r"CREATE TABLE (\w+)\.(\w+)", q)
        if m:
            name = f"{m.group(1)}.{m.group(2)}"
            if name in self.tables:
                raise AlreadyExists(keyspace=m.group(1), table=m.group(2))
            self.tables[name] = {}
            return _ResultSet([])

        m = re.match(r"INSERT INTO ([\w.]+) \(name, data\)", q)
        if m:
            table = self._table(m.group(1))
            name, data = params
            # empty collections are stored as null
            table[name] = copy.deepcopy(data) if data != [] else None
            return _ResultSet([])

        m = re.match(r"SELECT data FROM ([\w.]+) WHERE name", q)
        if m:
            table = self._table(m.group(1))
            if params[0] not in table:
                return _ResultSet([])
            return _ResultSet([SimpleNamespace(data=copy.deepcopy(table[params[0]]))])

        if q.startswith("SELECT release_version FROM system.local"):
            return _ResultSet([SimpleNamespace(release_version="4.1.3")])

        raise AssertionError(f"unexpected query: {q}")

    def _table(self, name):
        if name not in self.tables:
            raise InvalidRequest(f"unconfigured table {name}")
        return self.tables[name]


class FakeCollection:
    def __init__(self):
        self.docs = {}
        self.fail_with = None

    def replace_one(self, flt, doc, upsert=False):
        if self.fail_with is not None:
            raise self.fail_with
        key = flt["_id"]
        if key in self.docs or upsert:
            self.docs[key] = copy.deepcopy(doc)

    def find_one(self, flt):
        doc = self.docs.get(flt["_id"])
        return copy.deepcopy(doc) if doc is not None else None


class _FakeDatabase:
    def __init__(self, client, name):
        self._client = client
        self._name = name

    def __getitem__(self, collection):
        return self._client.collections[(self._name, collection)]


class _FakeAdmin:
    def __init__(self):
        self.fail_with = None

    def command(self, name):
        if self.fail_with is not None:
            raise self.fail_with
        return {"ok": 1.0}


class FakeMongoClient:
    def __init__(self):
        self.collections = defaultdict(FakeCollection)
        self.admin = _FakeAdmin()
        self.closed = False

    def __getitem__(self, name):
        return _FakeDatabase(self, name)

    def close(self):
        self.closed = True
