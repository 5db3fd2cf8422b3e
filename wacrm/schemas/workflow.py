"""Workflow schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WorkflowCreate(BaseModel):
    """Schema for creating a workflow definition."""

    name: str = Field(..., min_length=2, max_length=100)
    triggers: list[str] = Field(default_factory=list)
    nodes: dict[str, Any] = Field(
        default_factory=dict, description="Workflow graph, stored as-is"
    )
    schema_version: int = Field(default=1, ge=1)


class WorkflowUpdate(BaseModel):
    """Schema for updating a workflow definition."""

    name: str | None = Field(None, min_length=2, max_length=100)
    triggers: list[str] | None = None
    nodes: dict[str, Any] | None = None
    schema_version: int | None = Field(None, ge=1)
    is_active: bool | None = None


class WorkflowDuplicate(BaseModel):
    """Copy a workflow under a new name; the copy starts inactive."""

    name: str = Field(..., min_length=2, max_length=100)


class WorkflowSummary(BaseModel):
    """Workflow listing entry without the node graph."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    triggers: list[str]
    is_active: bool
    node_count: int = 0
    created_at: datetime
    updated_at: datetime


class WorkflowDetail(BaseModel):
    """Schema for workflow details."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    name: str
    triggers: list[str]
    nodes: dict[str, Any]
    schema_version: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class WorkflowList(BaseModel):
    """Schema for paginated workflow list."""

    items: list[WorkflowSummary]
    total: int
    skip: int
    limit: int
