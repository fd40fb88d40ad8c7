from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.domain.entities.image_version import (
    AIParameters,
    Dimensions,
    ImageVersion,
    VersionDraft,
    VersionStatus,
    VersionTag,
    VersionType,
    as_utc,
)
from src.domain.entities.version_filter import VersionFilter


class VersionTagModel(BaseModel):
    id: str = Field(..., description="Tag identifier", examples=["style"])
    name: str = Field(..., description="Tag name", examples=["watercolor"])
    color: str = Field("#6B7280", description="Display color")
    description: Optional[str] = Field(None, description="Tag description")

    def to_entity(self) -> VersionTag:
        return VersionTag(id=self.id, name=self.name, color=self.color, description=self.description)


class DimensionsModel(BaseModel):
    width: int = Field(..., description="Width in pixels", examples=[1024], ge=0)
    height: int = Field(..., description="Height in pixels", examples=[1024], ge=0)


class AIParametersModel(BaseModel):
    model: str = Field("unknown", description="Generation model", examples=["flux"])
    provider: str = Field("unknown", description="Generation provider", examples=["pollinations"])
    seed: Optional[int] = Field(None, description="Random seed")
    guidance: Optional[float] = Field(None, description="Guidance scale", examples=[7.5])
    steps: Optional[int] = Field(None, description="Sampling steps", examples=[20])
    sampler: Optional[str] = Field(None, description="Sampler name", examples=["euler_a"])
    enhance: Optional[bool] = Field(None, description="Prompt enhancement flag")
    style: Optional[str] = Field(None, description="Style preset")

    def to_entity(self) -> AIParameters:
        return AIParameters(**self.model_dump())


class CreateVersionRequest(BaseModel):
    """Request model for creating a root version or a child of an existing one."""
    prompt: str = Field(..., description="Generation prompt", examples=["a cat"])
    image_url: str = Field("", description="Reference to the generated image")
    original_prompt: Optional[str] = Field(None, description="Prompt before enhancement; defaults to prompt")
    parent_version_id: Optional[str] = Field(None, description="Parent version; omit for a new root")
    status: VersionStatus = Field(VersionStatus.ACTIVE, description="Initial status")
    type: Optional[VersionType] = Field(None, description="Version type; derived from parent when omitted")
    branch_name: Optional[str] = Field(None, description="Branch label")
    title: Optional[str] = Field(None, description="Display title")
    description: Optional[str] = Field(None, description="Free-form description")
    tags: list[VersionTagModel] = Field(default_factory=list, description="Tags")
    generation_time: float = Field(0, description="Generation duration in ms", ge=0)
    file_size: int = Field(0, description="File size in bytes", ge=0)
    dimensions: DimensionsModel = Field(
        default_factory=lambda: DimensionsModel(width=1024, height=1024),
        description="Pixel dimensions",
    )
    ai_parameters: AIParametersModel = Field(default_factory=AIParametersModel, description="AI parameters")
    temp_path: Optional[str] = Field(None, description="Temporary file path")
    project_id: Optional[str] = Field(None, description="Associated project")
    character_id: Optional[str] = Field(None, description="Associated character")

    def to_draft(self) -> VersionDraft:
        return VersionDraft(
            prompt=self.prompt,
            image_url=self.image_url,
            original_prompt=self.original_prompt,
            parent_version_id=self.parent_version_id,
            status=self.status,
            type=self.type,
            branch_name=self.branch_name,
            title=self.title,
            description=self.description,
            tags=tuple(t.to_entity() for t in self.tags),
            generation_time=self.generation_time,
            file_size=self.file_size,
            dimensions=Dimensions(self.dimensions.width, self.dimensions.height),
            ai_parameters=self.ai_parameters.to_entity(),
            temp_path=self.temp_path,
            project_id=self.project_id,
            character_id=self.character_id,
        )


class UpdateVersionRequest(BaseModel):
    """Partial update; only fields that are set are applied."""
    status: Optional[VersionStatus] = None
    prompt: Optional[str] = None
    branch_name: Optional[str] = None
    image_url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[list[VersionTagModel]] = None
    generation_time: Optional[float] = Field(None, ge=0)
    file_size: Optional[int] = Field(None, ge=0)
    dimensions: Optional[DimensionsModel] = None
    ai_parameters: Optional[AIParametersModel] = None
    view_count: Optional[int] = Field(None, ge=0)
    like_count: Optional[int] = Field(None, ge=0)
    export_count: Optional[int] = Field(None, ge=0)

    def to_patch(self) -> dict[str, Any]:
        patch: dict[str, Any] = self.model_dump(exclude_unset=True)
        if self.tags is not None:
            patch["tags"] = tuple(t.to_entity() for t in self.tags)
        if self.dimensions is not None:
            patch["dimensions"] = Dimensions(self.dimensions.width, self.dimensions.height)
        if self.ai_parameters is not None:
            patch["ai_parameters"] = self.ai_parameters.to_entity()
        return patch


class VersionItem(BaseModel):
    """A version as returned by the API."""
    id: str
    version_number: int
    status: VersionStatus
    type: VersionType
    parent_version_id: Optional[str] = None
    child_version_ids: list[str]
    root_version_id: str
    branch_name: Optional[str] = None
    prompt: str
    original_prompt: str
    image_url: str
    title: Optional[str] = None
    description: Optional[str] = None
    tags: list[VersionTagModel]
    generation_time: float
    file_size: int
    dimensions: DimensionsModel
    ai_parameters: AIParametersModel
    view_count: int
    like_count: int
    export_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, v: ImageVersion) -> VersionItem:
        m = v.metadata
        return cls(
            id=v.id,
            version_number=v.version_number,
            status=v.status,
            type=v.type,
            parent_version_id=v.parent_version_id,
            child_version_ids=list(v.child_version_ids),
            root_version_id=v.root_version_id,
            branch_name=v.branch_name,
            prompt=v.prompt,
            original_prompt=v.original_prompt,
            image_url=v.image_url,
            title=m.title,
            description=m.description,
            tags=[
                VersionTagModel(id=t.id, name=t.name, color=t.color, description=t.description)
                for t in m.tags
            ],
            generation_time=m.generation_time,
            file_size=m.file_size,
            dimensions=DimensionsModel(width=m.dimensions.width, height=m.dimensions.height),
            ai_parameters=AIParametersModel(**asdict(m.ai_parameters)),
            view_count=m.view_count,
            like_count=m.like_count,
            export_count=m.export_count,
            created_at=m.created_at,
            updated_at=m.updated_at,
        )


class ListVersionsResponse(BaseModel):
    versions: list[VersionItem] = Field(..., description="Versions in creation order")


class VersionFilterRequest(BaseModel):
    """Filter criteria; unset fields do not filter."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    statuses: list[VersionStatus] = Field(default_factory=list)
    types: list[VersionType] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    branches: list[str] = Field(default_factory=list)
    search_keyword: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    min_file_size: Optional[int] = Field(None, ge=0)
    max_file_size: Optional[int] = Field(None, ge=0)

    def to_filter(self) -> VersionFilter:
        return VersionFilter(
            start=as_utc(self.start) if self.start else None,
            end=as_utc(self.end) if self.end else None,
            statuses=tuple(self.statuses),
            types=tuple(self.types),
            tags=tuple(self.tags),
            branches=tuple(self.branches),
            search_keyword=self.search_keyword,
            model=self.model,
            provider=self.provider,
            min_file_size=self.min_file_size,
            max_file_size=self.max_file_size,
        )
