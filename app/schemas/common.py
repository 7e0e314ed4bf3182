"""
Shared Schemas

- CamelModel: base class giving every schema camelCase JSON field names
  (publishedYear, createdAt) while Python code keeps snake_case attributes.
  Request bodies accept either spelling.
- PaginationMeta: the outward pagination block.
- UtcDatetime: datetime normalized to UTC, serialized with a Z suffix.
- ApiResponse: the uniform envelope wrapped around every success response.
- collect_violations: runs a schema over raw data and returns field-level
  violations instead of raising.
"""

from datetime import UTC, datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_serializer
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PaginationMeta(CamelModel):
    """
    Pagination metadata returned alongside list responses.

    The skip offset used for the query is internal and not exposed.
    """

    current_page: int = Field(..., ge=1, description="Current page number")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    total_items: int = Field(..., ge=0, description="Total number of matching items")
    items_per_page: int = Field(..., ge=1, description="Page size actually used")
    has_next_page: bool = Field(..., description="Whether a later page exists")
    has_previous_page: bool = Field(..., description="Whether an earlier page exists")


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def as_utc(value: datetime) -> datetime:
    # SQLite drops the offset of timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class ApiResponse(BaseModel, Generic[T]):
    """
    Uniform success envelope.

    Example:
        {
            "success": true,
            "message": "Books retrieved successfully",
            "data": [...],
            "pagination": {...},
            "meta": {...},
            "timestamp": "2024-01-15T10:30:00.000000Z"
        }

    pagination and meta are left out of the JSON entirely when not set;
    data is always present (null for deletions).
    """

    success: bool = True
    message: str = "Operation completed successfully"
    data: T | None = None
    pagination: PaginationMeta | None = None
    meta: dict[str, Any] | None = None
    timestamp: str = Field(default_factory=utc_timestamp)

    @model_serializer(mode="wrap")
    def _omit_empty_blocks(self, handler):
        payload = handler(self)
        for key in ("pagination", "meta"):
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload


def collect_violations(schema: type[BaseModel], data: dict[str, Any]) -> list[dict[str, str]]:
    """
    Validate data against schema and return the violations.

    Returns:
        A list of {"field": ..., "message": ...} dicts, empty when valid.
        The field name is the dotted error location, using camelCase aliases.
    """
    try:
        schema.model_validate(data)
    except PydanticValidationError as exc:
        return [
            {
                "field": ".".join(str(part) for part in error["loc"]) or "body",
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
    return []
