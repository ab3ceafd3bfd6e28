"""Request models shared by the resource families."""

import re
from dataclasses import dataclass, fields
from decimal import Decimal
from functools import reduce
from typing import Any, List, Mapping, Optional, Type, TypeVar
from urllib.parse import urlencode

import marshmallow as mm
from aibs_informatics_core.models.base import SchemaModel, custom_field
from boto3.dynamodb.conditions import Attr, ConditionBase

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

MODEL = TypeVar("MODEL", bound=SchemaModel)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def load_model(model_class: Type[MODEL], data: Optional[Mapping[str, Any]]) -> MODEL:
    """Build a model from camelCase query parameters or body fields.

    Keys that do not name a field of the model are ignored.

    Raises:
        marshmallow.ValidationError: If a value is invalid or a required field is missing.
    """
    if data is not None and not isinstance(data, Mapping):
        raise mm.ValidationError(f"Expected an object, got {type(data).__name__}")
    names = {f.name for f in fields(model_class)}
    values = {to_snake_case(key): value for key, value in (data or {}).items()}
    return model_class.from_dict({k: v for k, v in values.items() if k in names})


def as_number(value: float) -> Decimal:
    return Decimal(str(value))


def combine_conditions(conditions: List[ConditionBase]) -> Optional[ConditionBase]:
    if not conditions:
        return None
    return reduce(lambda left, right: left & right, conditions)


@dataclass
class PageQuery(SchemaModel):
    page: int = custom_field(default=1, mm_field=mm.fields.Integer(validate=mm.validate.Range(1)))
    limit: int = custom_field(
        default=DEFAULT_PAGE_SIZE,
        mm_field=mm.fields.Integer(validate=mm.validate.Range(1, MAX_PAGE_SIZE)),
    )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class SearchQuery(SchemaModel):
    """Filters common to every search. `q` matches a substring of the name."""

    q: Optional[str] = None

    def conditions(self) -> List[ConditionBase]:
        conditions: List[ConditionBase] = []
        if self.q:
            conditions.append(Attr("name").contains(self.q))
        return conditions

    def to_filter_expression(self) -> Optional[ConditionBase]:
        return combine_conditions(self.conditions())

    @property
    def cache_key(self) -> str:
        """Filters set on this query, url-encoded in name order."""
        items = sorted(self.to_dict().items())
        return urlencode([(name, value) for name, value in items if value is not None])


@dataclass
class FavoriteRequest(SchemaModel):
    user_id: str = custom_field(
        mm_field=mm.fields.String(required=True, validate=mm.validate.Length(min=1))
    )
