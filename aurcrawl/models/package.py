"""Normalized package records.

Records are built from loosely-typed scraped fragments through the
``from_fields`` constructors, which raise MissingField / InvalidField naming
the offending field instead of letting bad data through.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from aurcrawl.errors import InvalidField, MissingField

# Column contract of the listing table, after link cells are split into (text, href)
BASIC_FIELDS = (
    "name",
    "path_to_additional_data",
    "version",
    "votes",
    "popularity",
    "description",
    "maintainer",
    "last_updated",
)


def normalize_detail_path(path: str) -> str:
    """Keep only the trailing segment of a detail link, starting at its last '/'."""
    idx = path.rfind("/")
    return path[idx:] if idx >= 0 else path


def _parse_int(field: str, raw: str) -> int:
    try:
        value = int(raw.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidField(field, raw) from exc
    if value < 0:
        raise InvalidField(field, raw)
    return value


def _parse_float(field: str, raw: str) -> float:
    try:
        return float(raw.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidField(field, raw) from exc


def _require(source: Mapping[str, str], key: str, field: str) -> str:
    value = source.get(key)
    if value is None:
        raise MissingField(field)
    return value


def _optional(source: Mapping[str, str], *keys: str) -> Optional[str]:
    for key in keys:
        value = source.get(key)
        if value:
            return value
    return None


class BasicItemData(BaseModel):
    name: str
    version: str
    path_to_additional_data: str
    votes: int = Field(..., ge=0)
    popularity: float
    description: str
    maintainer: str
    last_updated: str

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> "BasicItemData":
        """Build from one listing row, consumed positionally in BASIC_FIELDS order.

        Raises MissingField for the first absent column, InvalidField when votes or
        popularity don't parse. Extra trailing columns are ignored.
        """
        values = list(fields)
        if len(values) < len(BASIC_FIELDS):
            raise MissingField(BASIC_FIELDS[len(values)])
        raw = dict(zip(BASIC_FIELDS, values))
        return cls(
            name=raw["name"],
            version=raw["version"],
            path_to_additional_data=normalize_detail_path(raw["path_to_additional_data"]),
            votes=_parse_int("votes", raw["votes"]),
            popularity=_parse_float("popularity", raw["popularity"]),
            description=raw["description"],
            maintainer=raw["maintainer"],
            last_updated=raw["last_updated"],
        )


class AdditionalItemData(BaseModel):
    git_clone_url: str
    submitter: str
    popularity: float
    keywords: Optional[str] = None
    license: Optional[str] = None
    conflicts: Optional[str] = None
    provides: Optional[str] = None
    first_submitted: str

    @classmethod
    def from_fields(cls, source: Mapping[str, str]) -> "AdditionalItemData":
        """Build from the normalized key/value bag of a package details table.

        Keys are the table labels lower-cased with whitespace and the trailing
        colon removed, e.g. ``Git Clone URL:`` -> ``gitcloneurl``.
        """
        return cls(
            git_clone_url=_require(source, "gitcloneurl", "git_clone_url"),
            submitter=_require(source, "submitter", "submitter"),
            popularity=_parse_float("popularity", _require(source, "popularity", "popularity")),
            keywords=_optional(source, "keywords"),
            license=_optional(source, "licenses", "license"),
            conflicts=_optional(source, "conflicts"),
            provides=_optional(source, "provides"),
            first_submitted=_require(source, "firstsubmitted", "first_submitted"),
        )


class Dependency(BaseModel):
    group: str
    packages: List[str] = Field(default_factory=list)


class Comment(BaseModel):
    header: str
    content: str


class Item(BaseModel):
    basic: BasicItemData
    additional: AdditionalItemData
    dependencies: List[Dependency] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.basic.name

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="python")

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Item":
        """Inverse of to_document; raises pydantic.ValidationError on bad input."""
        return cls.model_validate(dict(doc))

    def renamed(self, name: str) -> "Item":
        basic = self.basic.model_copy(update={"name": name})
        return self.model_copy(update={"basic": basic})
