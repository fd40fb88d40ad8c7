from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from src.domain.entities.image_version import ImageVersion
from src.domain.entities.version_tree import VersionTree

DAILY_BUCKETS = 30
WEEKLY_BUCKETS = 12
MONTHLY_BUCKETS = 12


@dataclass(frozen=True)
class CreationFrequency:
    # oldest bucket first, most recent bucket last
    daily: list[int] = field(default_factory=lambda: [0] * DAILY_BUCKETS)
    weekly: list[int] = field(default_factory=lambda: [0] * WEEKLY_BUCKETS)
    monthly: list[int] = field(default_factory=lambda: [0] * MONTHLY_BUCKETS)


@dataclass(frozen=True)
class VersionStatistics:
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
    creation_frequency: CreationFrequency
    most_viewed_versions: list[ImageVersion]
    most_liked_versions: list[ImageVersion]
    most_exported_versions: list[ImageVersion]
    model_usage: dict[str, int]
    provider_usage: dict[str, int]
    average_file_size: float
    total_storage_used: int


@dataclass(frozen=True)
class HistoryStats:
    total_versions: int
    active_branches: int
    last_modified: datetime | None
    average_generation_time: float
    total_file_size: int


@dataclass(frozen=True)
class HistorySettings:
    max_versions_to_keep: int
    auto_cleanup: bool
    default_branch_name: str


@dataclass(frozen=True)
class VersionHistory:
    image_id: str
    versions: list[ImageVersion]
    tree: VersionTree | None
    stats: HistoryStats
    settings: HistorySettings
