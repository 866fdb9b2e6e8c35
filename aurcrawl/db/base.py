from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Tuple, Type

from aurcrawl.models.package import Item

_ALREADY_EXISTS_MARKERS = ("already exists", "already-exists")


class Backend(str, Enum):
    REDIS = "redis"
    CASSANDRA = "cassandra"
    MONGO = "mongodb"


class StorageAdapter(ABC):
    """Persistence contract shared by every backend.

    Implementations must be usable from several threads at once: every call
    takes its own connection from the driver's pool.
    """

    backend: Backend
    display_name: str = "base"

    def backend_name(self) -> str:
        return self.display_name

    @abstractmethod
    def health_check(self) -> None:
        """Raise BackendUnavailable when the backend cannot be reached."""

    @abstractmethod
    def insert(self, item: Item) -> None:
        """Store ``item`` under its name, replacing any previous version."""

    @abstractmethod
    def get(self, name: str) -> Item:
        """Rebuild the stored item; raise NotFound or DecodeError."""

    def close(self) -> None:
        pass


def is_already_exists(exc: BaseException) -> bool:
    msg = str(exc).lower()
    return any(marker in msg for marker in _ALREADY_EXISTS_MARKERS)


@contextmanager
def ignore_already_exists(*exc_types: Type[BaseException]) -> Iterator[None]:
    """Swallow "already exists" failures, re-raise everything else untouched.

    An exception counts as "already exists" when it is one of ``exc_types`` or
    its message says so.
    """
    types: Tuple[Type[BaseException], ...] = exc_types
    try:
        yield
    except Exception as exc:
        if (types and isinstance(exc, types)) or is_already_exists(exc):
            return
        raise
