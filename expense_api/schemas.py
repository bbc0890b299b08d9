"""Pydantic schemas for validating requests and serialising records."""
from __future__ import annotations

from datetime import UTC, date, datetime, time
from decimal import Decimal
from typing import Annotated, Any, Iterable, List, Mapping, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

BAD_REQUEST = "Bad Request"

# Largest value a signed 64-bit INTEGER primary key column can hold.
MAX_RECORD_ID = 2**63 - 1

# Validation errors whose message is shown to the client as is.
CLIENT_ERROR_TYPES = frozenset({"name_required", "no_valid_fields", "null_field"})


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


Timestamp = Annotated[datetime, AfterValidator(_naive_utc)]
RecordId = Annotated[int, Field(ge=1, le=MAX_RECORD_ID)]
# Matches the Numeric(12, 2) column, so stored values are never rounded.
Amount = Annotated[
    Decimal,
    Field(max_digits=12, decimal_places=2),
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]


class APIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ORMModel(APIModel):
    model_config = ConfigDict(from_attributes=True)


class NamedPayload(APIModel):
    """Create and update body shared by users and categories.

    ``name`` is mandatory on update too, so both operations use this shape.
    """

    name: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def _require_name(self) -> "NamedPayload":
        if not self.name:
            raise PydanticCustomError("name_required", "Name is required")
        return self


class UserCreate(NamedPayload):
    pass


class UserUpdate(NamedPayload):
    pass


class UserRead(ORMModel):
    id: int
    name: str


class CategoryCreate(NamedPayload):
    name: Optional[str] = Field(None, max_length=100)


class CategoryUpdate(CategoryCreate):
    pass


class CategoryRead(ORMModel):
    id: int
    name: str


class ExpenseCreate(APIModel):
    user_id: RecordId
    spent_at: Timestamp
    title: str = Field(..., min_length=1, max_length=255)
    amount: Amount
    category: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = None

    @field_validator("category", "note")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


NOT_NULL_ON_UPDATE = ("user_id", "spent_at", "title", "amount")


class ExpenseUpdate(APIModel):
    """Partial expense update; only the fields present in the body are applied.

    Keys outside the allow-list are ignored.
    """

    user_id: Optional[RecordId] = None
    spent_at: Optional[Timestamp] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Amount] = None
    category: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = None

    @field_validator("category", "note")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @model_validator(mode="after")
    def _check_supplied_fields(self) -> "ExpenseUpdate":
        if not self.model_fields_set:
            raise PydanticCustomError("no_valid_fields", "No valid fields to update")
        for name in NOT_NULL_ON_UPDATE:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise PydanticCustomError(
                    "null_field",
                    "{field} cannot be null",
                    {"field": to_camel(name)},
                )
        return self


class ExpenseRead(ORMModel):
    id: int
    user_id: int
    spent_at: datetime
    title: str
    amount: Amount
    category: Optional[str] = None
    note: Optional[str] = None


def _parse_bound(value: Any, end_of_day: bool) -> Any:
    if not isinstance(value, str):
        return value
    value = value.strip()
    if not value:
        return None
    if len(value) == 10:
        try:
            day = date.fromisoformat(value)
        except ValueError:
            return value
        return datetime.combine(day, time.max if end_of_day else time.min)
    return value


class ExpenseQuery(BaseModel):
    """Filters accepted by the expense listing.

    ``None`` means the corresponding predicate is left out. A bare date
    upper bound covers the whole day.
    """

    user_id: Optional[RecordId] = None
    spent_from: Optional[Timestamp] = None
    spent_to: Optional[Timestamp] = None
    categories: Optional[List[str]] = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _blank_user(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("spent_from", mode="before")
    @classmethod
    def _lower_bound(cls, value: Any) -> Any:
        return _parse_bound(value, end_of_day=False)

    @field_validator("spent_to", mode="before")
    @classmethod
    def _upper_bound(cls, value: Any) -> Any:
        return _parse_bound(value, end_of_day=True)

    @field_validator("categories", mode="before")
    @classmethod
    def _split_categories(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.split(",")
        if value is None:
            return None
        labels = [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return labels or None


def validation_message(errors: Iterable[Mapping[str, Any]]) -> str:
    """Pick the client-facing message for a list of pydantic errors."""

    for error in errors:
        if error.get("type") in CLIENT_ERROR_TYPES:
            return str(error.get("msg"))
    return BAD_REQUEST
