import pytest
from pydantic import ValidationError

from aurcrawl.errors import InvalidField, MissingField
from aurcrawl.models.package import (
    BASIC_FIELDS,
    AdditionalItemData,
    BasicItemData,
    Item,
    normalize_detail_path,
)

ROW = ["Test", "/test", "1.2-1", "100", "6.20", "Sample description", "Tester", "2012"]


def test_basic_from_fields():
    b = BasicItemData.from_fields(ROW)
    assert b.name == "Test"
    assert b.path_to_additional_data == "/test"
    assert b.votes == 100
    assert b.popularity == pytest.approx(6.2)
    assert b.last_updated == "2012"


def test_basic_from_fields_ignores_extra_columns():
    b = BasicItemData.from_fields(ROW + ["extra"])
    assert b.last_updated == "2012"


@pytest.mark.parametrize("length", range(len(BASIC_FIELDS)))
def test_basic_missing_field_names_first_absent(length):
    with pytest.raises(MissingField) as exc_info:
        BasicItemData.from_fields(ROW[:length])
    assert exc_info.value.field == BASIC_FIELDS[length]


@pytest.mark.parametrize("index,field,value", [(3, "votes", "many"), (3, "votes", "-1"), (4, "popularity", "n/a")])
def test_basic_invalid_numbers(index, field, value):
    row = list(ROW)
    row[index] = value
    with pytest.raises(InvalidField) as exc_info:
        BasicItemData.from_fields(row)
    assert exc_info.value.field == field


def test_detail_path_is_normalized():
    assert normalize_detail_path("/packages/foo") == "/foo"
    assert normalize_detail_path("https://aur.archlinux.org/packages/foo") == "/foo"
    assert normalize_detail_path("/foo") == "/foo"
    assert BasicItemData.from_fields(["x", "/packages/x"] + ROW[2:]).path_to_additional_data == "/x"


def test_additional_from_fields_optional_defaults():
    a = AdditionalItemData.from_fields(
        {"gitcloneurl": "https://aur.archlinux.org/x.git", "submitter": "me", "popularity": "0.5", "firstsubmitted": "2011"}
    )
    assert a.git_clone_url.endswith("x.git")
    assert a.popularity == 0.5
    assert a.keywords is None and a.license is None and a.conflicts is None and a.provides is None


def test_additional_reads_licenses_label():
    a = AdditionalItemData.from_fields(
        {"gitcloneurl": "u", "submitter": "s", "popularity": "1", "firstsubmitted": "f", "licenses": "MIT", "keywords": "a,b"}
    )
    assert a.license == "MIT"
    assert a.keywords == "a,b"


@pytest.mark.parametrize("missing,field", [
    ("gitcloneurl", "git_clone_url"),
    ("submitter", "submitter"),
    ("popularity", "popularity"),
    ("firstsubmitted", "first_submitted"),
])
def test_additional_missing_required(missing, field):
    bag = {"gitcloneurl": "u", "submitter": "s", "popularity": "1", "firstsubmitted": "f"}
    del bag[missing]
    with pytest.raises(MissingField) as exc_info:
        AdditionalItemData.from_fields(bag)
    assert exc_info.value.field == field


def test_item_document_round_trip(sample_item):
    doc = sample_item.to_document()
    assert set(doc) == {"basic", "additional", "dependencies", "comments"}
    again = Item.from_document({"_id": "Test", **doc})
    assert again == sample_item
    assert again.name == "Test"


def test_item_renamed_keeps_original(sample_item):
    copy = sample_item.renamed("Test_1")
    assert copy.name == "Test_1"
    assert sample_item.name == "Test"
    assert copy.comments == sample_item.comments


def test_document_without_detail_popularity_is_rejected(sample_item):
    doc = sample_item.to_document()
    del doc["additional"]["popularity"]
    with pytest.raises(ValidationError):
        Item.from_document(doc)
