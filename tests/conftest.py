from pathlib import Path

import httpx
import pytest

from aurcrawl.models.package import AdditionalItemData, BasicItemData, Comment, Dependency, Item


def read_fixture(name: str) -> str:
    p = Path(__file__).parent / "fixtures" / name
    return p.read_text(encoding="utf-8")


def create_package_data(name: str = "Test") -> Item:
    return Item(
        basic=BasicItemData(
            name=name,
            votes=100,
            version="1.2",
            popularity=6.2,
            maintainer="Tester",
            description="Sample description",
            last_updated="2012",
            path_to_additional_data="/test",
        ),
        additional=AdditionalItemData(
            git_clone_url="some git url",
            submitter="Tester",
            popularity=6.2,
            first_submitted="2011",
        ),
        comments=[
            Comment(header="Someone wrote at 14:15", content="Cool package"),
            Comment(header="Foo wrote at 20:30", content="Not bad"),
        ],
        dependencies=[Dependency(group="abc", packages=["aaa", "bbb", "ccc"])],
    )


@pytest.fixture
def sample_item() -> Item:
    return create_package_data()


class FakeSite:
    """In-memory AUR served through httpx.MockTransport.

    Pages are keyed by (path, value of the ``O`` query parameter).
    """

    def __init__(self) -> None:
        self.pages = {}
        self.errors = {}
        self.requests = []

    def add(self, path, html, *, offset=None, status=200):
        offset = None if offset is None else str(offset)
        self.pages[(path, offset)] = (status, html)

    def fail(self, path, *, offset=None, exc=None):
        offset = None if offset is None else str(offset)
        self.errors[(path, offset)] = exc or httpx.ConnectError("connection refused")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url)
        key = (request.url.path, request.url.params.get("O"))
        if key in self.errors:
            raise self.errors[key]
        status, html = self.pages.get(key, (404, "<html><body>Not found</body></html>"))
        return httpx.Response(status, text=html)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def fetched(self, path):
        return sorted(
            (u.params.get("O") for u in self.requests if u.path == path),
            key=lambda o: -1 if o is None else int(o),
        )
