from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from src.domain.entities.image_version import VersionStatus, VersionType


@dataclass(frozen=True)
class VersionFilter:
    """Criteria for narrowing a version list. Unset fields do not filter."""

    start: datetime | None = None
    end: datetime | None = None
    statuses: tuple[VersionStatus, ...] = ()
    types: tuple[VersionType, ...] = ()
    tags: tuple[str, ...] = ()
    branches: tuple[str, ...] = ()
    search_keyword: str | None = None
    model: str | None = None
    provider: str | None = None
    min_file_size: int | None = None
    max_file_size: int | None = None
