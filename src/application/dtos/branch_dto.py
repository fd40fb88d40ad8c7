from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.domain.entities.branch import Branch
from src.domain.entities.comparison import Difference, DifferenceType


class CreateBranchRequest(BaseModel):
    """Request model for forking a branch from an existing version."""
    name: str = Field(..., description="Branch name, unique ignoring case", examples=["feature"])
    source_version_id: str = Field(..., description="Version the branch starts at (initial head)")
    description: Optional[str] = Field(None, description="Branch description")


class RenameBranchRequest(BaseModel):
    new_name: str = Field(..., description="New branch name", examples=["experiment"])


class MergeBranchRequest(BaseModel):
    source_branch_id: str = Field(..., description="Branch to merge from")
    target_branch_id: str = Field(..., description="Branch to merge into")


class BranchItem(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    root_version_id: str
    head_version_id: str
    version_ids: list[str]
    color: str
    is_active: bool
    is_current: bool = Field(False, description="Whether this is the active branch pointer")
    created_at: datetime

    @classmethod
    def from_entity(cls, b: Branch, current_branch_id: str | None = None) -> BranchItem:
        return cls(
            id=b.id,
            name=b.name,
            description=b.description,
            root_version_id=b.root_version_id,
            head_version_id=b.head_version_id,
            version_ids=list(b.version_ids),
            color=b.color,
            is_active=b.is_active,
            is_current=b.id == current_branch_id,
            created_at=b.created_at,
        )


class ListBranchesResponse(BaseModel):
    branches: list[BranchItem]
    current_branch_id: Optional[str] = None


class DifferenceItem(BaseModel):
    type: DifferenceType
    field: str
    old_value: Any = None
    new_value: Any = None
    description: str

    @classmethod
    def from_entity(cls, d: Difference) -> DifferenceItem:
        return cls(
            type=d.type,
            field=d.field,
            old_value=d.old_value,
            new_value=d.new_value,
            description=d.description,
        )


class ConflictsResponse(BaseModel):
    """Advisory differences between two branch heads."""
    source_branch_id: str
    target_branch_id: str
    conflicts: list[DifferenceItem]
