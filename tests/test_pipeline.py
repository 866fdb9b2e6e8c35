import os
import tempfile

import bson
import pytest

from aurcrawl.errors import DecodeError
from aurcrawl.services.crawl.pipeline import (
    deserialize_items,
    discover_checkpoints,
    read_checkpoint,
    serialize_items,
    write_checkpoint,
)

from conftest import create_package_data


def test_checkpoint_write_and_read(sample_item):
    other = create_package_data("Other")
    with tempfile.TemporaryDirectory() as tmpdir:
        path = write_checkpoint([sample_item, other], tmpdir, 3)
        assert os.path.basename(path) == "page_3.bson"
        items = read_checkpoint(path)
    assert items == [sample_item, other]


def test_checkpoint_layout(sample_item):
    doc = bson.decode(serialize_items([sample_item]))
    assert list(doc) == ["packages"]
    pkg = doc["packages"][0]
    assert pkg["basic"]["name"] == "Test"
    assert pkg["basic"]["path_to_additional_data"] == "/test"
    assert pkg["dependencies"][0] == {"group": "abc", "packages": ["aaa", "bbb", "ccc"]}
    assert len(pkg["comments"]) == 2


def test_empty_page_round_trips():
    assert deserialize_items(serialize_items([])) == []


def test_missing_packages_field_is_decode_error():
    with pytest.raises(DecodeError):
        deserialize_items(bson.encode({"items": []}))


def test_invalid_package_is_decode_error():
    with pytest.raises(DecodeError):
        deserialize_items(bson.encode({"packages": [{"basic": {"name": "x"}}]}))


def test_garbage_is_decode_error():
    with pytest.raises(DecodeError):
        deserialize_items(b"\x05\x00\x00\x00garbage")


def test_discover_checkpoints_orders_by_page():
    with tempfile.TemporaryDirectory() as tmpdir:
        for page in (10, 2, 1):
            write_checkpoint([], tmpdir, page)
        open(os.path.join(tmpdir, "notes.txt"), "w").close()
        found = discover_checkpoints(tmpdir)
    assert [p for p, _ in found] == [1, 2, 10]
