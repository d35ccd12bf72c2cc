"""
Pydantic schemas for the query side.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FilterSchema(BaseModel):
    """Event / snapshot filter."""
    block_height: Optional[int] = Field(None, ge=-1, description="Upper bound of block height")
    version: Optional[int] = Field(None, ge=0, description="Lowest event version to return")


class PagingSchema(BaseModel):
    """Offset pagination."""
    limit: Optional[int] = Field(None, ge=1, le=10000, description="Page size")
    offset: int = Field(0, ge=0, description="Number of items to skip")


class ModelsQuery(BaseModel):
    """Base of the queries addressing aggregates by id."""
    model_config = ConfigDict(protected_namespaces=())

    model_ids: List[str] = Field(..., min_length=1, description="Aggregate ids")
    filter: FilterSchema = Field(default_factory=FilterSchema)

    @field_validator("model_ids")
    @classmethod
    def validate_model_ids(cls, v: List[str]) -> List[str]:
        if any(not model_id for model_id in v):
            raise ValueError("modelIds should not contain empty ids")
        return v


class GetModelsQuery(ModelsQuery):
    """Snapshots of models at a height (latest when no height is given)."""


class FetchEventsQuery(ModelsQuery):
    """Paginated events of one or more models."""
    paging: PagingSchema = Field(default_factory=PagingSchema)
