from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from src.domain.entities.image_version import ImageVersion
from src.domain.entities.statistics import HistorySettings, VersionHistory, VersionStatistics
from src.domain.entities.version_filter import VersionFilter
from src.domain.entities.version_tree import VersionTree
from src.domain.errors import NotFoundError, ValidationError
from src.domain.services.statistics_service import StatisticsService
from src.domain.services.tree_builder import build_version_tree
from src.domain.services.version_query import filter_versions, search_versions
from src.infrastructure.config import Settings
from src.infrastructure.store.branch_manager import BranchManager
from src.infrastructure.store.version_store import VersionStore


@dataclass
class VersionHistoryUseCase:
    """Read side: trees, statistics, history bundles and queries.

    Every call works on a fresh snapshot of the store, so results never
    change after they are returned.
    """

    store: VersionStore
    branches: BranchManager
    settings: Settings
    statistics: StatisticsService

    def build_version_tree(self, root_version_id: str, max_depth: int | None = None) -> VersionTree:
        depth = max_depth if max_depth is not None else self.settings.max_tree_depth
        tree = build_version_tree(
            self.store.snapshot(), self.branches.list_branches(), root_version_id, depth
        )
        if tree is None:
            raise NotFoundError(f"Version {root_version_id} not found")
        return tree

    def get_statistics(
        self, root_version_id: str | None = None, now: datetime | None = None
    ) -> VersionStatistics:
        """Statistics over every version, or over one lineage when root_version_id is given."""
        versions, branches = self._scope(root_version_id)
        return self.statistics.generate_statistics(
            versions, branches, now=now, top_n=self.settings.top_n_ranking
        )

    def load_history(self, image_id: str) -> VersionHistory:
        history = self.statistics.load_history(
            self.store.snapshot(),
            self.branches.list_branches(),
            image_id,
            HistorySettings(
                max_versions_to_keep=self.settings.max_versions_to_keep,
                auto_cleanup=False,
                default_branch_name=self.settings.default_branch_name,
            ),
            self.settings.max_tree_depth,
        )
        if history is None:
            raise NotFoundError(f"Version {image_id} not found")
        return history

    def filter(self, criteria: VersionFilter) -> list[ImageVersion]:
        return filter_versions(
            self.store.list_versions(), criteria, self.settings.default_branch_name
        )

    def search(self, keyword: str) -> list[ImageVersion]:
        return search_versions(self.store.list_versions(), keyword)

    def export_statistics(
        self, fmt: str = "json", root_version_id: str | None = None, now: datetime | None = None
    ) -> str:
        stats = self.get_statistics(root_version_id, now=now)
        fmt = fmt.lower()
        if fmt == "json":
            return json.dumps(
                statistics_to_row(stats, now or datetime.now(UTC)), indent=2, ensure_ascii=False
            )
        if fmt == "csv":
            return statistics_to_csv(stats)
        raise ValidationError(f"Unsupported export format {fmt!r}", details="use json or csv")

    def _scope(self, root_version_id: str | None):
        if root_version_id is None:
            return self.store.list_versions(), self.branches.list_branches()
        anchor = self.store.require(root_version_id)
        root_id = anchor.root_version_id
        versions = self.store.lineage(root_id)
        branches = [b for b in self.branches.list_branches() if b.root_version_id == root_id]
        return versions, branches


def statistics_to_row(stats: VersionStatistics, generated_at: datetime) -> dict[str, Any]:
    return {
        "generated_at": generated_at.isoformat(),
        "total_versions": stats.total_versions,
        "active_versions": stats.active_versions,
        "archived_versions": stats.archived_versions,
        "status_counts": stats.status_counts,
        "type_counts": stats.type_counts,
        "total_branches": stats.total_branches,
        "active_branches": stats.active_branches,
        "average_versions_per_branch": stats.average_versions_per_branch,
        "average_generation_time": stats.average_generation_time,
        "total_generation_time": stats.total_generation_time,
        "creation_frequency": {
            "daily": stats.creation_frequency.daily,
            "weekly": stats.creation_frequency.weekly,
            "monthly": stats.creation_frequency.monthly,
        },
        "most_viewed_versions": [v.id for v in stats.most_viewed_versions],
        "most_liked_versions": [v.id for v in stats.most_liked_versions],
        "most_exported_versions": [v.id for v in stats.most_exported_versions],
        "model_usage": stats.model_usage,
        "provider_usage": stats.provider_usage,
        "average_file_size": stats.average_file_size,
        "total_storage_used": stats.total_storage_used,
    }


def statistics_to_csv(stats: VersionStatistics) -> str:
    """Two-column metric,value rendering; mappings are flattened to dotted keys."""
    rows: list[tuple[str, Any]] = [
        ("total_versions", stats.total_versions),
        ("active_versions", stats.active_versions),
        ("archived_versions", stats.archived_versions),
        ("total_branches", stats.total_branches),
        ("active_branches", stats.active_branches),
        ("average_versions_per_branch", stats.average_versions_per_branch),
        ("average_generation_time", stats.average_generation_time),
        ("total_generation_time", stats.total_generation_time),
        ("average_file_size", stats.average_file_size),
        ("total_storage_used", stats.total_storage_used),
    ]
    for prefix, mapping in (
        ("status", stats.status_counts),
        ("type", stats.type_counts),
        ("model", stats.model_usage),
        ("provider", stats.provider_usage),
    ):
        rows.extend((f"{prefix}.{key}", value) for key, value in mapping.items())

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["metric", "value"])
    writer.writerows(rows)
    return buf.getvalue()
