from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from src.domain.entities.comparison import Comparison, ComparisonType
from src.domain.services.comparison_service import ComparisonService
from src.infrastructure.store.version_store import VersionStore


@dataclass
class CompareVersionsUseCase:
    store: VersionStore
    comparison: ComparisonService

    def execute(
        self,
        version1_id: str,
        version2_id: str,
        comparison_type: ComparisonType = ComparisonType.MANUAL,
    ) -> Comparison:
        """
        Compare two versions.

        version1 is treated as the reference: each Difference carries the
        version1 value as old_value and the version2 value as new_value.

        Raises:
            NotFoundError: If either version does not exist
        """
        v1 = self.store.require(version1_id)
        v2 = self.store.require(version2_id)
        return self.comparison.compare(v1, v2, comparison_type, datetime.now(UTC))

    def report(self, comparison: Comparison) -> str:
        return self.comparison.generate_comparison_report(comparison)
