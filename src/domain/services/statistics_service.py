from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Callable

import numpy as np

from src.domain.entities.branch import Branch
from src.domain.entities.image_version import ImageVersion, VersionStatus, VersionType, as_utc
from src.domain.entities.statistics import (
    DAILY_BUCKETS,
    MONTHLY_BUCKETS,
    WEEKLY_BUCKETS,
    CreationFrequency,
    HistorySettings,
    HistoryStats,
    VersionHistory,
    VersionStatistics,
)
from src.domain.services.tree_builder import build_version_tree

SECONDS_PER_DAY = 86400.0


class StatisticsService:
    """Aggregates over a version snapshot. Empty inputs yield zeros, never NaN."""

    @staticmethod
    def generate_statistics(
        versions: Iterable[ImageVersion],
        branches: Iterable[Branch] = (),
        now: datetime | None = None,
        top_n: int = 10,
    ) -> VersionStatistics:
        items = list(versions)
        branch_list = list(branches)
        now = as_utc(now) if now else datetime.now(UTC)

        status_counts = {s.value: 0 for s in VersionStatus}
        status_counts.update(Counter(v.status.value for v in items))
        type_counts = {t.value: 0 for t in VersionType}
        type_counts.update(Counter(v.type.value for v in items))

        gen_times = np.asarray([v.metadata.generation_time for v in items], dtype=np.float64)
        sizes = np.asarray([v.metadata.file_size for v in items], dtype=np.float64)
        branch_sizes = np.asarray([len(b.version_ids) for b in branch_list], dtype=np.float64)

        return VersionStatistics(
            total_versions=len(items),
            active_versions=status_counts[VersionStatus.ACTIVE.value],
            archived_versions=status_counts[VersionStatus.ARCHIVED.value],
            status_counts=status_counts,
            type_counts=type_counts,
            total_branches=len(branch_list),
            active_branches=sum(1 for b in branch_list if b.is_active),
            average_versions_per_branch=StatisticsService._mean(branch_sizes),
            average_generation_time=StatisticsService._mean(gen_times),
            total_generation_time=float(gen_times.sum()),
            creation_frequency=StatisticsService.creation_frequency(items, now),
            most_viewed_versions=StatisticsService.top_by(items, lambda v: v.metadata.view_count, top_n),
            most_liked_versions=StatisticsService.top_by(items, lambda v: v.metadata.like_count, top_n),
            most_exported_versions=StatisticsService.top_by(
                items, lambda v: v.metadata.export_count, top_n
            ),
            model_usage=dict(Counter(v.metadata.ai_parameters.model for v in items)),
            provider_usage=dict(Counter(v.metadata.ai_parameters.provider for v in items)),
            average_file_size=StatisticsService._mean(sizes),
            total_storage_used=int(sizes.sum()),
        )

    # Sliding windows ending at `now`; the last bucket is the most recent one.
    # Versions outside a window (or dated in the future) are not counted in it.
    @staticmethod
    def creation_frequency(versions: Iterable[ImageVersion], now: datetime) -> CreationFrequency:
        ages = np.asarray(
            [(now - v.metadata.created_at).total_seconds() for v in versions], dtype=np.float64
        )
        days = np.floor(ages / SECONDS_PER_DAY).astype(np.int64)
        return CreationFrequency(
            daily=StatisticsService._histogram(days, DAILY_BUCKETS),
            weekly=StatisticsService._histogram(days // 7, WEEKLY_BUCKETS),
            monthly=StatisticsService._histogram(days // 30, MONTHLY_BUCKETS),
        )

    @staticmethod
    def top_by(
        versions: Iterable[ImageVersion], key: Callable[[ImageVersion], int], n: int = 10
    ) -> list[ImageVersion]:
        """Top n by counter, descending; ties go to the most recently created."""
        ranked = sorted(versions, key=lambda v: (key(v), v.metadata.created_at), reverse=True)
        return ranked[:n]

    @staticmethod
    def load_history(
        versions: Mapping[str, ImageVersion],
        branches: Iterable[Branch],
        image_id: str,
        settings: HistorySettings,
        max_depth: int | None = None,
    ) -> VersionHistory | None:
        """History bundle for the lineage containing image_id (root or any member)."""
        anchor = versions.get(image_id)
        if anchor is None:
            return None
        root_id = anchor.root_version_id
        branch_list = list(branches)
        lineage = sorted(
            (v for v in versions.values() if v.root_version_id == root_id),
            key=lambda v: v.metadata.created_at,
        )
        lineage_ids = {v.id for v in lineage}
        gen_times = np.asarray([v.metadata.generation_time for v in lineage], dtype=np.float64)
        stats = HistoryStats(
            total_versions=len(lineage),
            active_branches=sum(
                1 for b in branch_list if b.is_active and b.head_version_id in lineage_ids
            ),
            last_modified=max((v.metadata.updated_at for v in lineage), default=None),
            average_generation_time=StatisticsService._mean(gen_times),
            total_file_size=sum(v.metadata.file_size for v in lineage),
        )
        return VersionHistory(
            image_id=image_id,
            versions=lineage,
            tree=build_version_tree(versions, branch_list, root_id, max_depth),
            stats=stats,
            settings=settings,
        )

    # --------- helpers ---------
    @staticmethod
    def _histogram(offsets: np.ndarray, buckets: int) -> list[int]:
        in_window = offsets[(offsets >= 0) & (offsets < buckets)]
        counts = np.bincount(buckets - 1 - in_window, minlength=buckets)
        return [int(c) for c in counts]

    @staticmethod
    def _mean(values: np.ndarray) -> float:
        return float(values.mean()) if values.size else 0.0
