from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Callable

from src.domain.entities.comparison import Comparison, ComparisonType, Difference, DifferenceType
from src.domain.entities.image_version import AIParameters, Dimensions, ImageVersion, VersionTag


@dataclass(frozen=True)
class ComparedField:
    name: str
    type: DifferenceType
    accessor: Callable[[ImageVersion], Any]
    description: str


# Order here is the order differences are reported in.
COMPARED_FIELDS: tuple[ComparedField, ...] = (
    ComparedField("prompt", DifferenceType.PROMPT, lambda v: v.prompt, "Prompt text differs"),
    ComparedField(
        "model", DifferenceType.PARAMETERS, lambda v: v.metadata.ai_parameters.model, "AI model differs"
    ),
    ComparedField(
        "provider",
        DifferenceType.PARAMETERS,
        lambda v: v.metadata.ai_parameters.provider,
        "AI provider differs",
    ),
    ComparedField(
        "seed", DifferenceType.PARAMETERS, lambda v: v.metadata.ai_parameters.seed, "Random seed differs"
    ),
    ComparedField(
        "guidance",
        DifferenceType.PARAMETERS,
        lambda v: v.metadata.ai_parameters.guidance,
        "Guidance scale differs",
    ),
    ComparedField(
        "steps",
        DifferenceType.PARAMETERS,
        lambda v: v.metadata.ai_parameters.steps,
        "Generation steps differ",
    ),
    ComparedField(
        "enhance",
        DifferenceType.PARAMETERS,
        lambda v: v.metadata.ai_parameters.enhance,
        "Enhance setting differs",
    ),
    ComparedField(
        "style", DifferenceType.PARAMETERS, lambda v: v.metadata.ai_parameters.style, "Style differs"
    ),
    ComparedField(
        "dimensions",
        DifferenceType.PARAMETERS,
        lambda v: v.metadata.dimensions.label() if v.metadata.dimensions else None,
        "Image dimensions differ",
    ),
    ComparedField("title", DifferenceType.METADATA, lambda v: v.metadata.title, "Title differs"),
    ComparedField(
        "description", DifferenceType.METADATA, lambda v: v.metadata.description, "Description differs"
    ),
    ComparedField(
        "fileSize", DifferenceType.METADATA, lambda v: v.metadata.file_size, "File size differs"
    ),
)

CONFLICT_FIELD_NAMES = ("prompt", "model", "provider", "dimensions")

SIMILARITY_WEIGHTS = {
    "prompt": 0.40,
    "parameters": 0.30,
    "dimensions": 0.10,
    "tags": 0.10,
    "file_size": 0.05,
    "generation_time": 0.05,
}

GUIDANCE_RANGE = 10.0
STEPS_RANGE = 50.0


class ComparisonService:
    """Metadata-level comparison of two image versions.

    Scores are in [0, 1]. Every sub-score is symmetric in its arguments, so
    calculate_similarity(a, b) == calculate_similarity(b, a).
    """

    @staticmethod
    def calculate_similarity(v1: ImageVersion, v2: ImageVersion) -> float:
        m1, m2 = v1.metadata, v2.metadata
        scores = {
            "prompt": ComparisonService.text_similarity(v1.prompt, v2.prompt),
            "parameters": ComparisonService.parameter_similarity(m1.ai_parameters, m2.ai_parameters),
            "dimensions": ComparisonService.dimension_similarity(m1.dimensions, m2.dimensions),
            "tags": ComparisonService.tag_similarity(m1.tags, m2.tags),
            "file_size": ComparisonService.ratio_similarity(m1.file_size, m2.file_size),
            "generation_time": ComparisonService.ratio_similarity(
                m1.generation_time, m2.generation_time
            ),
        }
        total = 0.0
        weight_sum = 0.0
        for key, weight in SIMILARITY_WEIGHTS.items():
            score = scores[key]
            if score is None:
                continue
            total += score * weight
            weight_sum += weight
        return total / weight_sum if weight_sum > 0 else 0.0

    # Jaccard over lower-cased whitespace tokens
    @staticmethod
    def text_similarity(text1: str | None, text2: str | None) -> float:
        words1 = set((text1 or "").lower().split())
        words2 = set((text2 or "").lower().split())
        return ComparisonService._jaccard(words1, words2)

    @staticmethod
    def parameter_similarity(p1: AIParameters | None, p2: AIParameters | None) -> float | None:
        if p1 is None or p2 is None:
            return None
        matched = 0.0
        count = 0
        for a, b in ((p1.model, p2.model), (p1.provider, p2.provider)):
            matched += 1.0 if a == b else 0.0
            count += 1
        if p1.seed is not None and p2.seed is not None:
            matched += 1.0 if p1.seed == p2.seed else 0.0
            count += 1
        if p1.guidance is not None and p2.guidance is not None:
            matched += max(0.0, 1.0 - abs(p1.guidance - p2.guidance) / GUIDANCE_RANGE)
            count += 1
        if p1.steps is not None and p2.steps is not None:
            matched += max(0.0, 1.0 - abs(p1.steps - p2.steps) / STEPS_RANGE)
            count += 1
        for a, b in ((p1.enhance, p2.enhance), (p1.style, p2.style)):
            matched += 1.0 if a == b else 0.0
            count += 1
        return matched / count if count else None

    @staticmethod
    def dimension_similarity(d1: Dimensions | None, d2: Dimensions | None) -> float | None:
        if d1 is None and d2 is None:
            return None
        if d1 is None or d2 is None:
            return 0.0
        width = ComparisonService.ratio_similarity(d1.width, d2.width)
        height = ComparisonService.ratio_similarity(d1.height, d2.height)
        return (width + height) / 2.0

    @staticmethod
    def tag_similarity(tags1: tuple[VersionTag, ...], tags2: tuple[VersionTag, ...]) -> float:
        names1 = {t.name.lower() for t in tags1 or ()}
        names2 = {t.name.lower() for t in tags2 or ()}
        return ComparisonService._jaccard(names1, names2)

    # smaller / larger; 0 vs 0 is identical, 0 vs nonzero shares nothing
    @staticmethod
    def ratio_similarity(a: float | None, b: float | None) -> float:
        a = a or 0
        b = b or 0
        if a == 0 and b == 0:
            return 1.0
        if a == 0 or b == 0:
            return 0.0
        return min(a, b) / max(a, b)

    @staticmethod
    def find_differences(v1: ImageVersion, v2: ImageVersion) -> list[Difference]:
        return ComparisonService._diff_fields(v1, v2, COMPARED_FIELDS)

    @staticmethod
    def detect_conflicts(source_head: ImageVersion, target_head: ImageVersion) -> list[Difference]:
        """Advisory merge conflicts: old values come from target, new from source."""
        fields = tuple(f for f in COMPARED_FIELDS if f.name in CONFLICT_FIELD_NAMES)
        return ComparisonService._diff_fields(target_head, source_head, fields)

    @staticmethod
    def compare(
        v1: ImageVersion,
        v2: ImageVersion,
        comparison_type: ComparisonType = ComparisonType.MANUAL,
        compared_at: datetime | None = None,
    ) -> Comparison:
        return Comparison(
            id=f"cmp_{uuid.uuid4().hex[:12]}",
            version1=v1,
            version2=v2,
            differences=tuple(ComparisonService.find_differences(v1, v2)),
            similarity=ComparisonService.calculate_similarity(v1, v2),
            compared_at=compared_at or datetime.now(UTC),
            comparison_type=comparison_type,
        )

    @staticmethod
    def generate_comparison_report(comparison: Comparison) -> str:
        v1, v2 = comparison.version1, comparison.version2
        lines = [
            "Version Comparison Report",
            "=========================",
            "",
            f"Version 1: {v1.metadata.title or 'Untitled'} (version {v1.version_number})",
            f"Version 2: {v2.metadata.title or 'Untitled'} (version {v2.version_number})",
            f"Similarity: {comparison.similarity * 100:.1f}%",
            "",
        ]
        if not comparison.differences:
            lines.append("The two versions are identical.")
            lines.append("")
        else:
            lines.append(f"Found {len(comparison.differences)} difference(s):")
            lines.append("")
            for index, diff in enumerate(comparison.differences, start=1):
                lines.append(f"{index}. {diff.description}")
                lines.append(f'   {diff.field}: "{diff.old_value}" → "{diff.new_value}"')
                lines.append("")
        if comparison.comparison_type == ComparisonType.MANUAL:
            mode = "Manual comparison"
        else:
            mode = "Automatic comparison"
        lines.append(f"Compared at: {comparison.compared_at.isoformat()}")
        lines.append(f"Comparison mode: {mode}")
        return "\n".join(lines) + "\n"

    # --------- helpers ---------
    @staticmethod
    def _jaccard(set1: set[str], set2: set[str]) -> float:
        if not set1 and not set2:
            return 1.0
        if not set1 or not set2:
            return 0.0
        return len(set1 & set2) / len(set1 | set2)

    @staticmethod
    def _diff_fields(
        old: ImageVersion, new: ImageVersion, fields: tuple[ComparedField, ...]
    ) -> list[Difference]:
        out: list[Difference] = []
        for f in fields:
            old_value = f.accessor(old)
            new_value = f.accessor(new)
            if old_value != new_value:
                out.append(
                    Difference(
                        type=f.type,
                        field=f.name,
                        old_value=old_value,
                        new_value=new_value,
                        description=f.description,
                    )
                )
        return out
