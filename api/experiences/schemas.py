"""
Experience API schemas (request/response models) and filter types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field


class CreateExperienceRequest(BaseModel):
    # Required fields default to "" so the service (not pydantic) reports them as missing.
    collected_at: AwareDatetime | None = None
    source_type: str = Field(default="", max_length=255)
    source_id: str | None = Field(default=None, max_length=255)
    source_name: str | None = Field(default=None, max_length=255)
    field_id: str = Field(default="", max_length=255)
    field_label: str | None = None
    field_type: str = Field(default="", max_length=64)
    value_text: str | None = None
    value_number: float | None = None
    value_boolean: bool | None = None
    value_date: AwareDatetime | None = None
    value_json: Any = None
    metadata: Any = None
    language: str | None = Field(default=None, max_length=10)
    user_identifier: str | None = Field(default=None, max_length=255)


class UpdateExperienceRequest(BaseModel):
    """
    Partial update. Omitted (or null) fields keep their stored value.
    """

    source_type: str | None = Field(default=None, max_length=255)
    source_id: str | None = Field(default=None, max_length=255)
    source_name: str | None = Field(default=None, max_length=255)
    field_id: str | None = Field(default=None, max_length=255)
    field_label: str | None = None
    field_type: str | None = Field(default=None, max_length=64)
    value_text: str | None = None
    value_number: float | None = None
    value_boolean: bool | None = None
    value_date: AwareDatetime | None = None
    value_json: Any = None
    metadata: Any = None
    language: str | None = Field(default=None, max_length=10)
    user_identifier: str | None = Field(default=None, max_length=255)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ExperienceResponse(BaseModel):
    id: UUID
    collected_at: datetime
    created_at: datetime
    updated_at: datetime
    source_type: str
    source_id: str | None = None
    source_name: str | None = None
    field_id: str
    field_label: str | None = None
    field_type: str
    value_text: str | None = None
    value_number: float | None = None
    value_boolean: bool | None = None
    value_date: datetime | None = None
    value_json: Any = None
    metadata: Any = None
    language: str | None = None
    user_identifier: str | None = None


class SearchExperiencesResponse(BaseModel):
    data: list[ExperienceResponse]
    page: int
    page_size: int
    total_count: int
    total_pages: int


@dataclass(frozen=True)
class ExperienceFilters:
    """
    Optional narrowing constraints. None means "no constraint".

    The list endpoint only exposes the equality filters; search exposes all of them.
    """

    source_type: str | None = None
    source_id: str | None = None
    field_id: str | None = None
    field_type: str | None = None
    user_identifier: str | None = None
    query: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
