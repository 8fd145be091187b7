from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Subject(BaseModel):
    id: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    professor: str | None = Field(default=None, max_length=200)
    default_room: str | None = Field(default=None, alias="defaultRoom", max_length=100)
    lecture_limit: int | None = Field(default=None, alias="lectureLimit", ge=1)
    created_at: datetime | None = Field(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SubjectCreate(BaseModel):
    id: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    professor: str | None = Field(default=None, max_length=200)
    default_room: str | None = Field(default=None, alias="defaultRoom", max_length=100)
    lecture_limit: int | None = Field(default=None, alias="lectureLimit", ge=1)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Subject code is required")
        return code

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Subject name is required")
        return trimmed

    @field_validator("professor", "default_room")
    @classmethod
    def strip_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class SubjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    professor: str | None = Field(default=None, max_length=200)
    default_room: str | None = Field(default=None, alias="defaultRoom", max_length=100)
    lecture_limit: int | None = Field(default=None, alias="lectureLimit", ge=1)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Subject name cannot be empty")
        return trimmed
