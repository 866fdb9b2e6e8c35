from __future__ import annotations

from typing import Optional


class CrawlerError(Exception):
    """Base class for every error raised by aurcrawl."""


# --- Crawling ---

class FetchError(CrawlerError):
    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}" + (f": {reason}" if reason else ""))


class ParseError(CrawlerError):
    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to parse {url}" + (f": {reason}" if reason else ""))


class ScrapeError(CrawlerError):
    """A record could not be built from a fetched page.

    The underlying ModelError is chained as __cause__.
    """

    def __init__(self, url: str, what: str) -> None:
        self.url = url
        self.what = what
        super().__init__(f"Failed to scrape {what} from {url}")


# --- Model construction ---

class ModelError(CrawlerError):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class MissingField(ModelError):
    def __init__(self, field: str) -> None:
        super().__init__(field, f"Source is missing data for required field '{field}'")


class InvalidField(ModelError):
    def __init__(self, field: str, value: Optional[str] = None) -> None:
        self.value = value
        super().__init__(field, f"Cannot parse data for field '{field}': {value!r}")


# --- Storage ---

class StorageError(CrawlerError):
    def __init__(self, backend: str, message: str) -> None:
        self.backend = backend
        super().__init__(f"[{backend}] {message}")


class BackendUnavailable(StorageError):
    def __init__(self, backend: str, reason: str = "") -> None:
        super().__init__(backend, "backend is unavailable" + (f": {reason}" if reason else ""))


class NotFound(StorageError):
    def __init__(self, backend: str, name: str) -> None:
        self.name = name
        super().__init__(backend, f"package '{name}' not found")


class DecodeError(StorageError):
    def __init__(self, backend: str, name: str, reason: str = "") -> None:
        self.name = name
        super().__init__(
            backend,
            f"stored data for '{name}' cannot be decoded" + (f": {reason}" if reason else ""),
        )
