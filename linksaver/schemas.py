"""Request bodies for the JSON API.

Only the shape is checked here; value rules (URL scheme, hex colors, empty
names) live in the services so the CLI and the API share them.
"""

from __future__ import annotations

from typing import Annotated, Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Range of a signed 64-bit INTEGER column.
ID_MIN: Final = -(2**63)
ID_MAX: Final = 2**63 - 1

RowId = Annotated[int, Field(ge=ID_MIN, le=ID_MAX)]


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _blank_to_none(value: Any) -> Any:
    # Forms send "" for "no selection".
    if isinstance(value, str) and not value.strip():
        return None
    return value


class RegisterRequest(_Body):
    email: str
    password: str
    full_name: str | None = Field(default=None, alias="fullName")


class LoginRequest(_Body):
    email: str
    password: str


class ProfileUpdateRequest(_Body):
    full_name: str | None = Field(default=None, alias="fullName")
    avatar_url: str | None = Field(default=None, alias="avatarUrl")


class CategoryCreateRequest(_Body):
    name: str
    color: str | None = None
    parent_id: RowId | None = Field(default=None, alias="parentId")

    @field_validator("parent_id", mode="before")
    @classmethod
    def blank_parent_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class CategoryUpdateRequest(_Body):
    """Partial update; an explicit ``parentId: null`` moves to the top level."""

    name: str | None = None
    color: str | None = None
    parent_id: RowId | None = Field(default=None, alias="parentId")

    @field_validator("parent_id", mode="before")
    @classmethod
    def blank_parent_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class LinkCreateRequest(_Body):
    url: str
    title: str
    description: str | None = None
    platform: str | None = None
    category_id: RowId | None = Field(default=None, alias="categoryId")

    @field_validator("category_id", mode="before")
    @classmethod
    def blank_category_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class LinkUpdateRequest(_Body):
    url: str | None = None
    title: str | None = None
    description: str | None = None
    platform: str | None = None
    category_id: RowId | None = Field(default=None, alias="categoryId")

    @field_validator("category_id", mode="before")
    @classmethod
    def blank_category_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class MetadataRequest(_Body):
    url: str
    content: str | None = None


def supplied(body: BaseModel, field: str) -> bool:
    """True if the client sent ``field`` (even as ``null``)."""
    return field in body.model_fields_set
