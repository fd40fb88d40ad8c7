from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class VersionStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"
    DRAFT = "draft"


class VersionType(str, Enum):
    ORIGINAL = "original"
    REVISION = "revision"
    BRANCH = "branch"
    MERGE = "merge"


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class VersionTag:
    id: str
    name: str
    color: str = "#6B7280"
    description: str | None = None


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    def label(self) -> str:
        return f"{self.width}×{self.height}"


@dataclass(frozen=True)
class AIParameters:
    model: str = "unknown"
    provider: str = "unknown"
    seed: int | None = None
    guidance: float | None = None
    steps: int | None = None
    sampler: str | None = None
    enhance: bool | None = None
    style: str | None = None


@dataclass(frozen=True)
class VersionMetadata:
    created_at: datetime
    updated_at: datetime
    title: str | None = None
    description: str | None = None
    tags: tuple[VersionTag, ...] = ()
    generation_time: float = 0  # ms
    file_size: int = 0  # bytes
    dimensions: Dimensions = field(default_factory=lambda: Dimensions(1024, 1024))
    ai_parameters: AIParameters = field(default_factory=AIParameters)
    # usage counters
    view_count: int = 0
    like_count: int = 0
    export_count: int = 0


@dataclass(frozen=True)
class ImageVersion:
    id: str
    version_number: int
    status: VersionStatus
    type: VersionType
    root_version_id: str  # id of the parentless ancestor (own id for roots)
    prompt: str
    original_prompt: str
    image_url: str
    metadata: VersionMetadata
    parent_version_id: str | None = None
    # unique ids, insertion order preserved
    child_version_ids: tuple[str, ...] = ()
    branch_name: str | None = None
    temp_path: str | None = None
    project_id: str | None = None
    character_id: str | None = None

    @property
    def is_root(self) -> bool:
        return self.parent_version_id is None

    @property
    def title(self) -> str | None:
        return self.metadata.title


@dataclass(frozen=True)
class VersionDraft:
    """Input for creating a version; the store fills in numbering, lineage and counters."""

    prompt: str
    image_url: str = ""
    original_prompt: str | None = None  # defaults to prompt
    parent_version_id: str | None = None
    status: VersionStatus = VersionStatus.ACTIVE
    type: VersionType | None = None  # branch under a parent, original otherwise
    branch_name: str | None = None
    title: str | None = None
    description: str | None = None
    tags: tuple[VersionTag, ...] = ()
    generation_time: float = 0
    file_size: int = 0
    dimensions: Dimensions = field(default_factory=lambda: Dimensions(1024, 1024))
    ai_parameters: AIParameters = field(default_factory=AIParameters)
    temp_path: str | None = None
    project_id: str | None = None
    character_id: str | None = None
    id: str | None = None
    created_at: datetime | None = None
