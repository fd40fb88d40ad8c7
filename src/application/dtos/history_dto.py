from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from src.application.dtos.branch_dto import BranchItem
from src.application.dtos.version_dto import VersionItem
from src.domain.entities.statistics import VersionHistory, VersionStatistics
from src.domain.entities.version_tree import VersionTree


class TreeNodeItem(BaseModel):
    """One node of the version tree."""
    version: VersionItem
    depth: int
    is_expanded: bool = True
    branch: Optional[BranchItem] = None
    children: list[TreeNodeItem] = Field(default_factory=list)


TreeNodeItem.model_rebuild()


class VersionTreeResponse(BaseModel):
    root_version: VersionItem
    tree: TreeNodeItem
    branches: list[BranchItem]
    total_versions: int
    max_depth: int

    @classmethod
    def from_entity(cls, t: VersionTree) -> VersionTreeResponse:
        # build child dicts bottom-up so deep histories do not recurse here
        rows: dict[int, dict[str, Any]] = {}
        order = list(t.tree.iter_nodes())
        for node in reversed(order):
            rows[id(node)] = {
                "version": VersionItem.from_entity(node.version),
                "depth": node.depth,
                "is_expanded": node.is_expanded,
                "branch": BranchItem.from_entity(node.branch_info) if node.branch_info else None,
                "children": [rows[id(child)] for child in node.children],
            }
        return cls(
            root_version=VersionItem.from_entity(t.root_version),
            tree=TreeNodeItem.model_validate(rows[id(t.tree)]),
            branches=[BranchItem.from_entity(b) for b in t.branches],
            total_versions=t.total_versions,
            max_depth=t.max_depth,
        )


class CreationFrequencyItem(BaseModel):
    daily: list[int] = Field(..., description="30 daily buckets, most recent last")
    weekly: list[int] = Field(..., description="12 weekly buckets, most recent last")
    monthly: list[int] = Field(..., description="12 thirty-day buckets, most recent last")


class StatisticsResponse(BaseModel):
    total_versions: int
    active_versions: int
    archived_versions: int
    status_counts: dict[str, int]
    type_counts: dict[str, int]
    total_branches: int
    active_branches: int
    average_versions_per_branch: float
    average_generation_time: float
    total_generation_time: float
    creation_frequency: CreationFrequencyItem
    most_viewed_versions: list[VersionItem]
    most_liked_versions: list[VersionItem]
    most_exported_versions: list[VersionItem]
    model_usage: dict[str, int]
    provider_usage: dict[str, int]
    average_file_size: float
    total_storage_used: int

    @classmethod
    def from_entity(cls, s: VersionStatistics) -> StatisticsResponse:
        return cls(
            total_versions=s.total_versions,
            active_versions=s.active_versions,
            archived_versions=s.archived_versions,
            status_counts=s.status_counts,
            type_counts=s.type_counts,
            total_branches=s.total_branches,
            active_branches=s.active_branches,
            average_versions_per_branch=s.average_versions_per_branch,
            average_generation_time=s.average_generation_time,
            total_generation_time=s.total_generation_time,
            creation_frequency=CreationFrequencyItem(
                daily=s.creation_frequency.daily,
                weekly=s.creation_frequency.weekly,
                monthly=s.creation_frequency.monthly,
            ),
            most_viewed_versions=[VersionItem.from_entity(v) for v in s.most_viewed_versions],
            most_liked_versions=[VersionItem.from_entity(v) for v in s.most_liked_versions],
            most_exported_versions=[VersionItem.from_entity(v) for v in s.most_exported_versions],
            model_usage=s.model_usage,
            provider_usage=s.provider_usage,
            average_file_size=s.average_file_size,
            total_storage_used=s.total_storage_used,
        )


class HistoryStatsItem(BaseModel):
    total_versions: int
    active_branches: int
    last_modified: Optional[datetime] = None
    average_generation_time: float
    total_file_size: int


class HistoryResponse(BaseModel):
    """Version history bundle for one image lineage."""
    image_id: str
    versions: list[VersionItem]
    tree: Optional[VersionTreeResponse] = None
    stats: HistoryStatsItem
    max_versions_to_keep: int
    auto_cleanup: bool
    default_branch_name: str

    @classmethod
    def from_entity(cls, h: VersionHistory) -> HistoryResponse:
        return cls(
            image_id=h.image_id,
            versions=[VersionItem.from_entity(v) for v in h.versions],
            tree=VersionTreeResponse.from_entity(h.tree) if h.tree else None,
            stats=HistoryStatsItem(
                total_versions=h.stats.total_versions,
                active_branches=h.stats.active_branches,
                last_modified=h.stats.last_modified,
                average_generation_time=h.stats.average_generation_time,
                total_file_size=h.stats.total_file_size,
            ),
            max_versions_to_keep=h.settings.max_versions_to_keep,
            auto_cleanup=h.settings.auto_cleanup,
            default_branch_name=h.settings.default_branch_name,
        )


class ExportVersionsRequest(BaseModel):
    """Export options. An empty version_ids list exports every version."""
    version_ids: list[str] = Field(default_factory=list, description="Versions to export")
    format: Literal["json", "csv"] = Field("json", description="Output format")
    include_metadata: bool = Field(True, description="Include descriptive metadata")
    include_comparisons: bool = Field(False, description="Include pairwise parent/child comparisons")


class ExportVersionsResponse(BaseModel):
    format: str
    content: str = Field(..., description="Serialized export payload")


class ImportVersionsRequest(BaseModel):
    source_data: str = Field(..., description="JSON text in the export format")
    merge_strategy: Literal["replace", "append", "merge"] = Field(
        "append", description="How to combine with existing data"
    )
    validate_data: bool = Field(True, description="Reject payloads with malformed records")


class ExportStatisticsResponse(BaseModel):
    format: str
    content: str
