"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from tasklog.models.domain import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH
from tasklog.models.enums import AuditAction, TaskField
from tasklog.services.errors import ValidationFailure
from tasklog.utils.text import sanitize_text

# field -> (label used in messages, max length after sanitizing)
FIELD_BOUNDS = {
    TaskField.TITLE.value: ("Title", TITLE_MAX_LENGTH),
    TaskField.DESCRIPTION.value: ("Description", DESCRIPTION_MAX_LENGTH),
}

ModelT = TypeVar("ModelT", bound=BaseModel)

# Keys allowed in an audit entry's updated_content
TaskFieldName = Literal["title", "description"]


def _sanitize(value: Any, field: str) -> str:
    label, _ = FIELD_BOUNDS[field]
    if not isinstance(value, str):
        raise PydanticCustomError("string_type", f"{label} must be a string")
    return sanitize_text(value)


def _check_bounds(value: str, field: str) -> str:
    label, max_length = FIELD_BOUNDS[field]
    if not 1 <= len(value) <= max_length:
        raise PydanticCustomError(
            "string_bounds", f"{label} must be between 1 and {max_length} characters"
        )
    return value


# Task schemas
class TaskCreate(BaseModel):
    """Missing fields count as empty strings and fail the length check."""
    title: str = Field(default="", validate_default=True)
    description: str = Field(default="", validate_default=True)

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v: Any, info) -> str:
        if v is None:
            return ""
        return _sanitize(v, info.field_name)

    @field_validator("title", "description")
    @classmethod
    def check_bounds(cls, v: str, info) -> str:
        return _check_bounds(v, info.field_name)


class TaskUpdate(BaseModel):
    """Absent or null fields are left untouched."""
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v: Any, info) -> Optional[str]:
        if v is None:
            return None
        return _sanitize(v, info.field_name)

    @field_validator("title", "description")
    @classmethod
    def check_bounds(cls, v: Optional[str], info) -> Optional[str]:
        if v is None:
            return None
        return _check_bounds(v, info.field_name)

    def supplied_fields(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    created_at: datetime


# Audit log schemas
class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    action: AuditAction
    task_id: Optional[int]
    updated_content: Optional[Dict[TaskFieldName, str]]
    notes: Optional[str]


# Paginated listings
class TaskPage(BaseModel):
    tasks: List[TaskResponse]
    total: int
    page: int
    limit: int
    total_pages: int = Field(serialization_alias="totalPages")


class AuditLogPage(BaseModel):
    logs: List[AuditLogResponse]
    total: int
    page: int
    limit: int
    total_pages: int = Field(serialization_alias="totalPages")


# Error response
class ErrorResponse(BaseModel):
    error: str


def validate_body(model: Type[ModelT], body: Dict[str, Any]) -> ModelT:
    """Validate a request body, turning the first pydantic error into a ValidationFailure."""
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else ""
        raise ValidationFailure(error["msg"], field=field) from exc
