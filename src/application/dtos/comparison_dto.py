from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.application.dtos.branch_dto import DifferenceItem
from src.application.dtos.version_dto import VersionItem
from src.domain.entities.comparison import Comparison, ComparisonType


class CompareVersionsRequest(BaseModel):
    version1_id: str = Field(..., description="Reference (older) version")
    version2_id: str = Field(..., description="Version compared against the reference")
    comparison_type: ComparisonType = Field(ComparisonType.MANUAL, description="manual or auto")


class ComparisonItem(BaseModel):
    id: str
    version1: VersionItem
    version2: VersionItem
    differences: list[DifferenceItem]
    similarity: float = Field(..., ge=0.0, le=1.0, description="Weighted similarity score")
    compared_at: datetime
    comparison_type: ComparisonType

    @classmethod
    def from_entity(cls, c: Comparison) -> ComparisonItem:
        return cls(
            id=c.id,
            version1=VersionItem.from_entity(c.version1),
            version2=VersionItem.from_entity(c.version2),
            differences=[DifferenceItem.from_entity(d) for d in c.differences],
            similarity=c.similarity,
            compared_at=c.compared_at,
            comparison_type=c.comparison_type,
        )


class ComparisonReportResponse(BaseModel):
    comparison: ComparisonItem
    report: str = Field(..., description="Plain-text comparison report")
